"""Employee management for shop owners.

Blueprint: employees_bp
Prefix: /api/employees
"""
from flask import Blueprint, g, jsonify
from flask_login import current_user
from flask_wtf import FlaskForm
from wtforms import PasswordField, SelectField, StringField
from wtforms.validators import DataRequired, Email, Length, Optional

from app import db
from app.errors import ConflictError, NotFoundError, ValidationError
from app.models import (
    BusinessSettings, CostEstimate, Customer, EmailHistory, PasswordResetToken, Repair, Rolle,
    Shop, User,
)
from app.routes.auth import MANAGER_ROLES, api_login_required, form_error_message, roles_required, shop_required
from app.services.logging_service import log_event
from app.services.password_service import get_password_service
from app.utils import get_json_data, parse_bool

employees_bp = Blueprint('employees', __name__, url_prefix='/api/employees')

EMPLOYEE_ROLES = ('employee', 'kiosk')
DEFAULT_MAX_EMPLOYEES = 2


class EmployeeForm(FlaskForm):
    """New employee or kiosk account (JSON body)."""
    username = StringField('Benutzername', validators=[DataRequired(), Length(min=3, max=80)])
    email = StringField('E-Mail', validators=[DataRequired(), Email(check_deliverability=False)])
    password = PasswordField('Passwort', validators=[DataRequired(), Length(min=8)])
    first_name = StringField('Vorname', validators=[Optional(), Length(max=50)])
    last_name = StringField('Nachname', validators=[Optional(), Length(max=50)])
    rolle = SelectField('Rolle', choices=[(r, r) for r in EMPLOYEE_ROLES], default='employee')


def _employee_query(shop_id: int):
    return User.query.join(Rolle, User.rolle_id == Rolle.id).filter(
        User.shop_id == shop_id,
        Rolle.name.in_(EMPLOYEE_ROLES)
    )


def _get_employee(employee_id: int, shop_id: int) -> User:
    employee = _employee_query(shop_id).filter(User.id == employee_id).first()
    if employee is None:
        raise NotFoundError('Mitarbeiter nicht gefunden')
    return employee


def _max_employees(shop_id: int) -> int:
    settings = BusinessSettings.query.filter_by(shop_id=shop_id).first()
    return settings.max_employees if settings and settings.max_employees is not None else DEFAULT_MAX_EMPLOYEES


@employees_bp.route('', methods=['GET'])
@api_login_required
@roles_required(*MANAGER_ROLES)
@shop_required
def list_employees():
    """Employee and kiosk accounts of the shop with the account limit.

    Usage:
        curl -b cookies.txt http://localhost:5000/api/employees
    """
    employees = _employee_query(g.shop_id).order_by(User.username).all()
    return jsonify({
        'employees': [e.to_dict() for e in employees],
        'count': len(employees),
        'max_employees': _max_employees(g.shop_id),
    })


@employees_bp.route('', methods=['POST'])
@api_login_required
@roles_required(*MANAGER_ROLES)
@shop_required
def create_employee():
    """Create an employee account. Returns 201, 409 when the limit is reached."""
    form = EmployeeForm(meta={'csrf': False})
    if not form.validate_on_submit():
        raise ValidationError(form_error_message(form))

    limit = _max_employees(g.shop_id)
    if _employee_query(g.shop_id).count() >= limit:
        raise ConflictError(f'Maximale Anzahl von {limit} Mitarbeitern erreicht')

    username = form.username.data.strip()
    if User.query.filter_by(username=username).first():
        raise ConflictError('Benutzername bereits vergeben')

    shop = db.session.get(Shop, g.shop_id)
    owner = shop.owner
    employee = User(
        username=username,
        email=form.email.data.strip().lower(),
        first_name=form.first_name.data or None,
        last_name=form.last_name.data or None,
        rolle_id=Rolle.get_by_name(form.rolle.data).id,
        shop_id=g.shop_id,
        parent_user_id=owner.id if owner else current_user.id,
        is_active=True,
    )
    get_password_service().validate_password(form.password.data)
    employee.set_password(form.password.data)
    db.session.add(employee)
    db.session.flush()

    log_event('mitarbeiter', 'mitarbeiter_angelegt', details=f'{employee.username} ({form.rolle.data})',
              wichtigkeit='mittel', entity_type='User', entity_id=employee.id, shop_id=g.shop_id)
    db.session.commit()
    return jsonify(employee.to_dict()), 201


@employees_bp.route('/<int:id>', methods=['PATCH', 'PUT'])
@api_login_required
@roles_required(*MANAGER_ROLES)
@shop_required
def update_employee(id):
    """Activate/deactivate an employee or change name, email or password.

    JSON body: {"is_active": false} or {"password": "...", "first_name": "..."}
    """
    employee = _get_employee(id, g.shop_id)
    data = get_json_data()

    if 'is_active' in data or 'isActive' in data:
        employee.is_active = parse_bool(data.get('is_active', data.get('isActive')))
    for field in ('first_name', 'last_name'):
        if field in data:
            setattr(employee, field, data[field] or None)
    if data.get('email'):
        employee.email = data['email'].strip().lower()
    if data.get('password'):
        get_password_service().validate_password(data['password'])
        employee.set_password(data['password'])

    log_event('mitarbeiter', 'mitarbeiter_geaendert',
              details=f'{employee.username} aktiv={employee.is_active}',
              entity_type='User', entity_id=employee.id, shop_id=g.shop_id)
    db.session.commit()
    return jsonify(employee.to_dict())


@employees_bp.route('/<int:id>', methods=['DELETE'])
@api_login_required
@roles_required(*MANAGER_ROLES)
@shop_required
def delete_employee(id):
    """Delete an employee account. Records it created keep their data."""
    employee = _get_employee(id, g.shop_id)
    username = employee.username

    for model in (Customer, Repair, CostEstimate):
        model.query.filter_by(created_by=employee.id).update({'created_by': None})
    EmailHistory.query.filter_by(user_id=employee.id).update({'user_id': None})
    PasswordResetToken.query.filter_by(user_id=employee.id).delete()

    db.session.delete(employee)
    log_event('mitarbeiter', 'mitarbeiter_geloescht', details=username, wichtigkeit='mittel',
              entity_type='User', entity_id=id, shop_id=g.shop_id)
    db.session.commit()
    return jsonify({'success': True})
