"""Cost estimates (Kostenvoranschläge): numbering, totals and conversion."""
import re
from datetime import datetime, timedelta
from decimal import Decimal

from flask import current_app

from app import db
from app.errors import ValidationError
from app.models import (
    CostEstimate, CostEstimateItem, CostEstimateStatus, Customer, Repair, RepairStatus,
)
from app.services.logging_service import log_event
from app.services.repair_service import current_month, unique_order_code
from app.utils import parse_datetime, parse_decimal, parse_int, require_fields, round_money

REFERENCE_PATTERN = re.compile(r'^KV-(\d{4})-(\d{3,})$')

EDITABLE_FIELDS = (
    'title', 'device_type', 'brand', 'model', 'serial_number', 'issue', 'description',
)


def next_reference_number(shop_id: int, now: datetime = None) -> str:
    """Next reference number of a shop, e.g. ``KV-0325-004``.

    The running number continues across months per shop.
    """
    now = now or datetime.utcnow()
    highest = 0
    references = db.session.query(CostEstimate.reference_number) \
        .filter(CostEstimate.shop_id == shop_id).all()
    for (reference,) in references:
        match = REFERENCE_PATTERN.match(reference or '')
        if match:
            highest = max(highest, int(match.group(2)))
    return f'KV-{now:%m%y}-{highest + 1:03d}'


def calculate_totals(item_totals: list, tax_rate: Decimal) -> dict:
    """Split the gross total into net amount and VAT.

    Prices are gross. With 20 % VAT a total of 120.00 gives a subtotal of
    100.00 and tax of 20.00.
    """
    total = round_money(sum((Decimal(t) for t in item_totals), Decimal('0')))
    rate = Decimal(tax_rate)
    subtotal = round_money(total / (Decimal('1') + rate / Decimal('100')))
    return {
        'subtotal': subtotal,
        'tax_amount': total - subtotal,
        'total': total,
    }


def recalculate(estimate: CostEstimate) -> CostEstimate:
    """Recompute subtotal, tax and total from the items."""
    totals = calculate_totals([item.total_price for item in estimate.items], estimate.tax_rate)
    estimate.subtotal = totals['subtotal']
    estimate.tax_amount = totals['tax_amount']
    estimate.total = totals['total']
    return estimate


def create_estimate(shop_id: int, data: dict, user) -> CostEstimate:
    """Create a cost estimate with optional items (caller commits)."""
    require_fields(data, ('customer_id', 'device_type', 'brand', 'model', 'issue'))
    customer = Customer.query.filter_by(id=data['customer_id'], shop_id=shop_id).first()
    if customer is None:
        raise ValidationError('Kunde nicht gefunden')

    tax_rate = parse_decimal(data.get('tax_rate'), 'MwSt-Satz')
    if tax_rate is None:
        tax_rate = Decimal(current_app.config['DEFAULT_TAX_RATE'])
    if tax_rate < 0 or tax_rate > 100:
        raise ValidationError('MwSt-Satz muss zwischen 0 und 100 liegen')

    valid_until = parse_datetime(data.get('valid_until'), 'Gültig bis')
    if valid_until is None:
        valid_until = datetime.utcnow() + timedelta(days=current_app.config['COST_ESTIMATE_VALID_DAYS'])

    estimate = CostEstimate(
        shop_id=shop_id,
        reference_number=next_reference_number(shop_id),
        customer_id=customer.id,
        title=data.get('title'),
        device_type=data['device_type'],
        brand=data['brand'],
        model=data['model'],
        serial_number=data.get('serial_number'),
        issue=data['issue'],
        description=data.get('description'),
        tax_rate=tax_rate,
        status=CostEstimateStatus.OFFEN.value,
        valid_until=valid_until,
        created_by=user.id if user else None,
    )
    db.session.add(estimate)
    db.session.flush()

    for item_data in data.get('items') or []:
        add_item(estimate, item_data)
    recalculate(estimate)

    log_event('kostenvoranschlaege', 'kostenvoranschlag_angelegt',
              details=f'{estimate.reference_number} für {customer.full_name}',
              entity_type='CostEstimate', entity_id=estimate.id, shop_id=shop_id)
    return estimate


def update_estimate(estimate: CostEstimate, data: dict) -> CostEstimate:
    """Change fields and status of an estimate."""
    for field in EDITABLE_FIELDS:
        if field in data:
            setattr(estimate, field, data[field])
    if 'tax_rate' in data:
        estimate.tax_rate = parse_decimal(data['tax_rate'], 'MwSt-Satz', required=True)
    if 'valid_until' in data:
        estimate.valid_until = parse_datetime(data['valid_until'], 'Gültig bis')
    if 'status' in data:
        set_status(estimate, data['status'])
    recalculate(estimate)
    return estimate


def set_status(estimate: CostEstimate, status: str) -> None:
    if status not in CostEstimateStatus.values():
        raise ValidationError(f'Ungültiger Status: {status}')
    if estimate.converted_to_repair and status != CostEstimateStatus.ANGENOMMEN.value:
        raise ValidationError('Umgewandelte Kostenvoranschläge bleiben angenommen')
    if status == CostEstimateStatus.ANGENOMMEN.value and estimate.accepted_at is None:
        estimate.accepted_at = datetime.utcnow()
    estimate.status = status


def add_item(estimate: CostEstimate, data: dict) -> CostEstimateItem:
    """Append a line item (caller recalculates and commits)."""
    require_fields(data, ('description', 'unit_price'))
    quantity = parse_int(data.get('quantity'), 'Menge', default=1)
    if quantity < 1:
        raise ValidationError('Menge muss mindestens 1 sein')
    unit_price = parse_decimal(data['unit_price'], 'Einzelpreis', required=True)
    position = max((item.position for item in estimate.items), default=0) + 1
    item = CostEstimateItem(
        position=position,
        description=data['description'].strip(),
        quantity=quantity,
        unit_price=round_money(unit_price),
        total_price=round_money(unit_price * quantity),
    )
    estimate.items.append(item)
    return item


def remove_item(estimate: CostEstimate, item_id: int) -> None:
    item = next((i for i in estimate.items if i.id == item_id), None)
    if item is None:
        raise ValidationError('Position nicht gefunden')
    estimate.items.remove(item)
    for index, remaining in enumerate(estimate.items, start=1):
        remaining.position = index


def convert_to_repair(estimate: CostEstimate, user) -> Repair:
    """Create a repair from an estimate. Allowed once per estimate."""
    if estimate.converted_to_repair:
        raise ValidationError('Kostenvoranschlag wurde bereits in eine Reparatur umgewandelt')

    now = datetime.utcnow()
    repair = Repair(
        shop_id=estimate.shop_id,
        customer_id=estimate.customer_id,
        order_code=unique_order_code(estimate.brand, estimate.device_type),
        device_type=estimate.device_type,
        brand=estimate.brand,
        model=estimate.model,
        serial_number=estimate.serial_number,
        issue=estimate.issue,
        estimated_cost=estimate.total,
        status=RepairStatus.EINGEGANGEN.value,
        notes=f'Umgewandelt aus Kostenvoranschlag {estimate.reference_number}',
        creation_month=current_month(now),
        status_updated_at=now,
        created_by=user.id if user else None,
    )
    db.session.add(repair)
    db.session.flush()

    estimate.converted_to_repair = True
    estimate.repair_id = repair.id
    set_status(estimate, CostEstimateStatus.ANGENOMMEN.value)

    log_event('kostenvoranschlaege', 'in_reparatur_umgewandelt',
              details=f'{estimate.reference_number} -> {repair.order_code}',
              entity_type='CostEstimate', entity_id=estimate.id, shop_id=estimate.shop_id)
    return repair


def expire_outdated(now: datetime = None) -> int:
    """Set open or sent estimates past valid_until to 'abgelaufen'."""
    now = now or datetime.utcnow()
    outdated = CostEstimate.query.filter(
        CostEstimate.status.in_([CostEstimateStatus.OFFEN.value, CostEstimateStatus.GESENDET.value]),
        CostEstimate.valid_until.isnot(None),
        CostEstimate.valid_until < now
    ).all()
    for estimate in outdated:
        estimate.status = CostEstimateStatus.ABGELAUFEN.value
    return len(outdated)
