"""Dashboard statistics of a shop."""
from datetime import datetime, time

from app import db
from app.models import (
    Customer, CostEstimate, CostEstimateStatus, Repair, RepairStatus, SparePart, SparePartStatus,
)
from app.services.repair_service import current_month


def get_shop_stats(shop_id: int, now: datetime = None) -> dict:
    """Counts for the dashboard of one shop."""
    now = now or datetime.utcnow()
    start_of_day = datetime.combine(now.date(), time.min)

    rows = db.session.query(Repair.status, db.func.count(Repair.id)) \
        .filter(Repair.shop_id == shop_id) \
        .group_by(Repair.status).all()
    by_status = {status.value: 0 for status in RepairStatus}
    by_status.update({status: count for status, count in rows})

    open_parts = SparePart.query.filter(
        SparePart.shop_id == shop_id,
        SparePart.archived.is_(False),
        SparePart.status.in_([SparePartStatus.BESTELLEN.value, SparePartStatus.BESTELLT.value])
    ).count()

    return {
        'total_repairs': sum(by_status.values()),
        'by_status': by_status,
        'open_repairs': sum(by_status[s] for s in RepairStatus.offene_status()),
        'today': Repair.query.filter(Repair.shop_id == shop_id,
                                     Repair.created_at >= start_of_day).count(),
        'this_month': Repair.query.filter_by(shop_id=shop_id,
                                             creation_month=current_month(now)).count(),
        'customers': Customer.query.filter_by(shop_id=shop_id).count(),
        'open_spare_parts': open_parts,
        'open_cost_estimates': CostEstimate.query.filter(
            CostEstimate.shop_id == shop_id,
            CostEstimate.status.in_([CostEstimateStatus.OFFEN.value,
                                     CostEstimateStatus.GESENDET.value])
        ).count(),
    }
