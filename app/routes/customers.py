"""Customer routes (JSON API).

Blueprint: customers_bp
Prefix: /api/customers
"""
import csv
import io
from datetime import datetime

from email_validator import EmailNotValidError, validate_email
from flask import Blueprint, Response, g, jsonify, request
from flask_login import current_user

from app import db
from app.errors import ConflictError, ValidationError
from app.models import Customer, Feedback, Repair
from app.routes.auth import STAFF_ROLES, api_login_required, roles_required, shop_required
from app.services.logging_service import log_event
from app.services.tenant_service import get_for_shop, scoped
from app.utils import get_json_data, require_fields

customers_bp = Blueprint('customers', __name__, url_prefix='/api/customers')

CUSTOMER_FIELDS = ('first_name', 'last_name', 'phone', 'email', 'address', 'zip_code', 'city', 'notes')

CSV_HEADERS = ['ID', 'Vorname', 'Nachname', 'Telefon', 'E-Mail', 'Adresse', 'PLZ', 'Ort', 'Angelegt am']


def _apply_fields(customer: Customer, data: dict) -> None:
    for field in CUSTOMER_FIELDS:
        if field in data:
            value = data[field]
            setattr(customer, field, value.strip() if isinstance(value, str) else value)
    if customer.email:
        try:
            customer.email = validate_email(customer.email, check_deliverability=False).normalized
        except EmailNotValidError:
            raise ValidationError('Ungültige E-Mail-Adresse')
    else:
        customer.email = None
    for field in ('first_name', 'last_name', 'phone'):
        if not getattr(customer, field):
            raise ValidationError(f'{field} darf nicht leer sein')


@customers_bp.route('', methods=['GET'])
@api_login_required
@shop_required
def list_customers():
    """List customers of the active shop.

    Query params:
        search: Filter by name, phone or email

    Usage:
        curl -b cookies.txt http://localhost:5000/api/customers?search=muster
    """
    query = scoped(Customer.query, Customer, g.shop_id)
    search = (request.args.get('search') or '').strip()
    if search:
        pattern = f'%{search}%'
        query = query.filter(db.or_(
            Customer.first_name.ilike(pattern),
            Customer.last_name.ilike(pattern),
            Customer.phone.ilike(pattern),
            Customer.email.ilike(pattern),
        ))
    customers = query.order_by(Customer.last_name, Customer.first_name).all()
    return jsonify([c.to_dict() for c in customers])


@customers_bp.route('', methods=['POST'])
@api_login_required
@shop_required
def create_customer():
    """Create a customer. Returns 201 with the stored customer."""
    data = get_json_data()
    require_fields(data, ('first_name', 'last_name', 'phone'))
    customer = Customer(shop_id=g.shop_id, created_by=current_user.id)
    _apply_fields(customer, data)
    db.session.add(customer)
    db.session.flush()
    log_event('kunden', 'kunde_angelegt', details=customer.full_name,
              entity_type='Customer', entity_id=customer.id, shop_id=g.shop_id)
    db.session.commit()
    return jsonify(customer.to_dict()), 201


@customers_bp.route('/export.csv', methods=['GET'])
@api_login_required
@roles_required(*STAFF_ROLES)
@shop_required
def export_customers():
    """Export all customers of the shop as CSV (semicolon separated)."""
    customers = scoped(Customer.query, Customer, g.shop_id) \
        .order_by(Customer.last_name, Customer.first_name).all()

    output = io.StringIO()
    writer = csv.writer(output, delimiter=';')
    writer.writerow(CSV_HEADERS)
    for c in customers:
        writer.writerow([
            c.id, c.first_name, c.last_name, c.phone, c.email or '', c.address or '',
            c.zip_code or '', c.city or '',
            c.created_at.strftime('%d.%m.%Y') if c.created_at else '',
        ])
    log_event('kunden', 'kunden_exportiert', details=f'{len(customers)} Kunden', shop_id=g.shop_id)
    db.session.commit()

    filename = f'kunden_{datetime.now():%Y%m%d}.csv'
    # BOM so Excel detects UTF-8
    return Response(
        '\ufeff' + output.getvalue(),
        mimetype='text/csv',
        headers={'Content-Disposition': f'attachment; filename={filename}'}
    )


@customers_bp.route('/<int:id>', methods=['GET'])
@api_login_required
@shop_required
def get_customer(id):
    """Get one customer."""
    customer = get_for_shop(Customer, id, g.shop_id, current_user)
    db.session.commit()
    return jsonify(customer.to_dict())


@customers_bp.route('/<int:id>', methods=['PATCH', 'PUT'])
@api_login_required
@shop_required
def update_customer(id):
    """Change customer fields."""
    customer = get_for_shop(Customer, id, g.shop_id, current_user)
    _apply_fields(customer, get_json_data())
    log_event('kunden', 'kunde_geaendert', details=customer.full_name,
              entity_type='Customer', entity_id=customer.id, shop_id=g.shop_id)
    db.session.commit()
    return jsonify(customer.to_dict())


@customers_bp.route('/<int:id>', methods=['DELETE'])
@api_login_required
@roles_required(*STAFF_ROLES)
@shop_required
def delete_customer(id):
    """Delete a customer without repairs, cost estimates or feedback (409 otherwise)."""
    customer = get_for_shop(Customer, id, g.shop_id, current_user)
    if customer.repairs.count():
        raise ConflictError('Kunde hat noch Reparaturen und kann nicht gelöscht werden')
    if customer.cost_estimates.count():
        raise ConflictError('Kunde hat noch Kostenvoranschläge und kann nicht gelöscht werden')
    if Feedback.query.filter_by(customer_id=customer.id).count():
        raise ConflictError('Kunde hat noch Bewertungen und kann nicht gelöscht werden')
    log_event('kunden', 'kunde_geloescht', details=customer.full_name, wichtigkeit='mittel',
              entity_type='Customer', entity_id=customer.id, shop_id=g.shop_id)
    db.session.delete(customer)
    db.session.commit()
    return jsonify({'success': True})


@customers_bp.route('/<int:id>/repairs', methods=['GET'])
@api_login_required
@shop_required
def customer_repairs(id):
    """Repairs of a customer, newest first."""
    customer = get_for_shop(Customer, id, g.shop_id, current_user)
    repairs = customer.repairs.filter(Repair.shop_id == g.shop_id) \
        .order_by(Repair.created_at.desc()).all()
    return jsonify([r.to_dict() for r in repairs])
