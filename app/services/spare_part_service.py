"""Spare parts of repairs and the repair status derived from them."""
from datetime import datetime
from typing import Optional

from app import db
from app.errors import ValidationError
from app.models import Repair, RepairStatus, SparePart, SparePartStatus
from app.services.logging_service import log_event
from app.services.repair_service import set_status
from app.utils import parse_datetime, parse_decimal, require_fields

# Repair status values that may be replaced by the spare part status
AUTO_STATUS_SOURCES = (
    RepairStatus.EINGEGANGEN.value,
    RepairStatus.IN_REPARATUR.value,
    *RepairStatus.ersatzteil_status(),
)


def derive_repair_status(part_statuses: list[str]) -> Optional[str]:
    """Repair status implied by the statuses of its active spare parts.

    Returns None when there are no active parts.
    """
    if not part_statuses:
        return None
    if SparePartStatus.BESTELLEN.value in part_statuses:
        return RepairStatus.ERSATZTEILE_BESTELLEN.value
    if SparePartStatus.BESTELLT.value in part_statuses:
        return RepairStatus.WARTEN_AUF_ERSATZTEILE.value
    return RepairStatus.ERSATZTEIL_EINGETROFFEN.value


def recompute_repair_status(repair: Repair, updated_by: str = 'System') -> Optional[str]:
    """Update the repair status from its non-archived spare parts.

    Only repairs still waiting in the workshop are touched, a repair that is
    finished or out of house keeps its status.

    Returns:
        The old status if the status changed, else None
    """
    if repair.status not in AUTO_STATUS_SOURCES:
        return None
    statuses = [
        part.status for part in repair.spare_parts.filter_by(archived=False).all()
    ]
    new_status = derive_repair_status(statuses)
    if new_status is None or new_status == repair.status:
        return None
    return set_status(repair, new_status, updated_by=updated_by)


def _apply_status(part: SparePart, status: str) -> None:
    if status not in SparePartStatus.values():
        raise ValidationError(f'Ungültiger Ersatzteil-Status: {status}')
    if status == part.status:
        return
    now = datetime.utcnow()
    if status == SparePartStatus.BESTELLT.value and part.order_date is None:
        part.order_date = now
    if status == SparePartStatus.EINGETROFFEN.value and part.delivery_date is None:
        part.delivery_date = now
    part.status = status
    # Archived parts only stay archived while arrived or done
    if part.archived and status not in SparePartStatus.archivierbar():
        part.archived = False


def create_spare_part(repair: Repair, data: dict) -> SparePart:
    """Add a spare part to a repair (caller commits)."""
    require_fields(data, ('part_name',))
    part = SparePart(
        shop_id=repair.shop_id,
        repair_id=repair.id,
        part_name=data['part_name'].strip(),
        supplier=data.get('supplier'),
        cost=parse_decimal(data.get('cost'), 'Kosten'),
        notes=data.get('notes'),
        status=SparePartStatus.BESTELLEN.value,
        order_date=parse_datetime(data.get('order_date'), 'Bestelldatum'),
        delivery_date=parse_datetime(data.get('delivery_date'), 'Lieferdatum'),
    )
    _apply_status(part, data.get('status') or SparePartStatus.BESTELLEN.value)
    db.session.add(part)
    db.session.flush()
    log_event('ersatzteile', 'ersatzteil_angelegt',
              details=f'{part.part_name} für {repair.order_code}',
              entity_type='SparePart', entity_id=part.id, shop_id=repair.shop_id)
    return part


def update_spare_part(part: SparePart, data: dict) -> SparePart:
    """Change fields, status or archive flag of a spare part."""
    for field in ('part_name', 'supplier', 'notes'):
        if field in data:
            setattr(part, field, data[field])
    if not part.part_name:
        raise ValidationError('part_name darf nicht leer sein')
    if 'cost' in data:
        part.cost = parse_decimal(data['cost'], 'Kosten')
    if 'order_date' in data:
        part.order_date = parse_datetime(data['order_date'], 'Bestelldatum')
    if 'delivery_date' in data:
        part.delivery_date = parse_datetime(data['delivery_date'], 'Lieferdatum')
    if 'status' in data:
        _apply_status(part, data['status'])
    if 'archived' in data:
        set_archived(part, bool(data['archived']))
    return part


def set_archived(part: SparePart, archived: bool) -> None:
    """Archive or restore a spare part. Only arrived or done parts can be archived."""
    if archived and part.status not in SparePartStatus.archivierbar():
        raise ValidationError('Nur eingetroffene oder erledigte Ersatzteile können archiviert werden')
    part.archived = archived


def bulk_update_status(parts: list[SparePart], status: str) -> set:
    """Set the same status on several parts. Returns the affected repairs."""
    repairs = set()
    for part in parts:
        _apply_status(part, status)
        repairs.add(part.repair)
    return repairs
