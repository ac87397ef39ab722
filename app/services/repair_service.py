"""Repair orders: creation, monthly quota, status changes and notifications."""
import random
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from flask import current_app

from app import db
from app.errors import NotFoundError, QuotaExceededError, ValidationError
from app.models import Customer, PricingPlan, Repair, RepairStatus, Shop
from app.services.broadcast_service import broadcast_repair_status_update
from app.services.email_service import EmailResult, get_email_service
from app.services.email_template_service import (
    REPAIR_STATUS_TEMPLATES, get_email_template_service,
)
from app.services.logging_service import log_event
from app.utils import parse_decimal, require_fields

ORDER_CODE_ATTEMPTS = 20

EDITABLE_FIELDS = (
    'device_type', 'brand', 'model', 'serial_number', 'issue', 'notes', 'technician_note',
)


@dataclass
class StatusChangeResult:
    """Result of a status update."""
    repair: Repair
    old_status: str
    email: Optional[EmailResult] = None


def current_month(now: datetime = None) -> str:
    """Month key used for the quota (YYYY-MM)."""
    return (now or datetime.utcnow()).strftime('%Y-%m')


def generate_order_code(brand: str, device_type: str, now: datetime = None) -> str:
    """Build an order code like ``AS251234``.

    First letter of brand and device type, two digit year, four random digits.
    """
    brand_letter = (brand or 'X').strip()[:1].upper() or 'X'
    type_letter = (device_type or 'X').strip()[:1].upper() or 'X'
    year = (now or datetime.utcnow()).strftime('%y')
    return f'{brand_letter}{type_letter}{year}{random.randint(0, 9999):04d}'


def unique_order_code(brand: str, device_type: str) -> str:
    """Generate an order code that is not used yet."""
    for _ in range(ORDER_CODE_ATTEMPTS):
        code = generate_order_code(brand, device_type)
        if not Repair.query.filter_by(order_code=code).first():
            return code
    raise ValidationError('Auftragsnummer konnte nicht erzeugt werden')


def get_quota(shop: Shop) -> dict:
    """Monthly repair quota of a shop."""
    count = Repair.query.filter_by(shop_id=shop.id, creation_month=current_month()).count()
    if PricingPlan.is_limited(shop.pricing_plan):
        limit = current_app.config['BASIC_PLAN_MONTHLY_REPAIRS']
        return {
            'count': count,
            'limit': limit,
            'canCreate': count < limit,
            'plan': shop.pricing_plan,
            'month': current_month(),
        }
    return {
        'count': count,
        'limit': None,
        'canCreate': True,
        'plan': shop.pricing_plan,
        'month': current_month(),
    }


def create_repair(shop_id: int, data: dict, user) -> Repair:
    """Create a repair order for a customer of the shop.

    Raises:
        ValidationError: Missing fields, unknown customer or status
        QuotaExceededError: Monthly limit of the basic plan reached
    """
    require_fields(data, ('customer_id', 'device_type', 'brand', 'model', 'issue'))

    customer = Customer.query.filter_by(id=data['customer_id'], shop_id=shop_id).first()
    if customer is None:
        raise ValidationError('Kunde nicht gefunden')

    status = data.get('status') or RepairStatus.EINGEGANGEN.value
    if status not in RepairStatus.values():
        raise ValidationError(f'Ungültiger Status: {status}')

    shop = db.session.get(Shop, shop_id)
    quota = get_quota(shop)
    if not quota['canCreate']:
        raise QuotaExceededError(
            f'Monatliches Limit von {quota["limit"]} Reparaturen im Basic-Paket erreicht'
        )

    now = datetime.utcnow()
    repair = Repair(
        shop_id=shop_id,
        customer_id=customer.id,
        order_code=unique_order_code(data['brand'], data['device_type']),
        device_type=data['device_type'].strip(),
        brand=data['brand'].strip(),
        model=data['model'].strip(),
        serial_number=data.get('serial_number'),
        issue=data['issue'].strip(),
        estimated_cost=parse_decimal(data.get('estimated_cost'), 'Kostenvoranschlag'),
        deposit_amount=parse_decimal(data.get('deposit_amount'), 'Anzahlung'),
        status=status,
        notes=data.get('notes'),
        creation_month=current_month(now),
        status_updated_at=now,
        created_by=user.id if user else None,
    )
    db.session.add(repair)
    db.session.flush()
    log_event('reparaturen', 'reparatur_angelegt',
              details=f'{repair.order_code}: {repair.device_label}',
              entity_type='Repair', entity_id=repair.id, shop_id=shop_id)
    return repair


def update_repair(repair: Repair, data: dict) -> Repair:
    """Change the editable fields of a repair."""
    for field in EDITABLE_FIELDS:
        if field in data:
            setattr(repair, field, data[field])
    if 'estimated_cost' in data:
        repair.estimated_cost = parse_decimal(data['estimated_cost'], 'Kostenvoranschlag')
    if 'deposit_amount' in data:
        repair.deposit_amount = parse_decimal(data['deposit_amount'], 'Anzahlung')
    if 'customer_id' in data and data['customer_id'] != repair.customer_id:
        customer = Customer.query.filter_by(id=data['customer_id'], shop_id=repair.shop_id).first()
        if customer is None:
            raise ValidationError('Kunde nicht gefunden')
        repair.customer_id = customer.id
    for field in ('device_type', 'brand', 'model', 'issue'):
        if not getattr(repair, field):
            raise ValidationError(f'{field} darf nicht leer sein')
    return repair


def set_status(repair: Repair, new_status: str, updated_by: str = 'System') -> str:
    """Set a new status without notifications. Returns the old status."""
    if new_status not in RepairStatus.values():
        raise ValidationError(f'Ungültiger Status: {new_status}')
    old_status = repair.status
    if old_status != new_status:
        repair.status = new_status
        repair.status_updated_at = datetime.utcnow()
        log_event('reparaturen', 'status_geaendert',
                  details=f'{repair.order_code}: {old_status} -> {new_status} ({updated_by})',
                  entity_type='Repair', entity_id=repair.id, shop_id=repair.shop_id)
    return old_status


def update_status(repair: Repair, new_status: str, user, send_email: bool = False,
                  technician_note: str = None) -> StatusChangeResult:
    """Change the status of a repair, optionally notifying the customer.

    For 'fertig' and 'ersatzteil_eingetroffen' the matching template is sent
    when send_email is set and the customer has an email address. A failed
    email does not undo the status change. The caller commits.
    """
    old_status = set_status(repair, new_status, updated_by=user.username)
    if technician_note is not None:
        repair.technician_note = technician_note

    result = StatusChangeResult(repair=repair, old_status=old_status)

    template_key = REPAIR_STATUS_TEMPLATES.get(new_status)
    customer = repair.customer
    if send_email and template_key and customer and customer.email:
        template_service = get_email_template_service()
        template = template_service.ensure_template(template_key, repair.shop_id)
        context = template_service.build_repair_context(repair)
        result.email = get_email_service().send_template(
            template, customer.email, context, repair.shop_id,
            repair_id=repair.id, user_id=user.id
        )
        if not result.email.success:
            current_app.logger.warning(
                f'E-Mail für Reparatur {repair.order_code} fehlgeschlagen: {result.email.error}'
            )
    elif send_email and template_key:
        result.email = EmailResult(success=False, error='Kunde hat keine E-Mail-Adresse')

    return result


def notify_status_change(result: StatusChangeResult, updated_by: str) -> None:
    """Broadcast a committed status change to the shop's clients."""
    if result.old_status != result.repair.status:
        broadcast_repair_status_update(result.repair, result.old_status, updated_by)


def delete_repair(repair: Repair) -> None:
    """Delete a repair with its spare parts and email history."""
    log_event('reparaturen', 'reparatur_geloescht', details=repair.order_code,
              wichtigkeit='mittel', entity_type='Repair', entity_id=repair.id,
              shop_id=repair.shop_id)
    db.session.delete(repair)


def get_repair(repair_id: int, shop_id: int) -> Repair:
    repair = Repair.query.filter_by(id=repair_id, shop_id=shop_id).first()
    if repair is None:
        raise NotFoundError('Reparatur nicht gefunden')
    return repair
