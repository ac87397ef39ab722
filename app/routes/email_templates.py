"""Email template routes and manual sending of customer emails.

Blueprint: email_templates_bp
Prefix: /api

Shops see system templates (read-only) and their own templates. A shop
template with the key of a system template replaces it for that shop.
"""
from flask import Blueprint, g, jsonify
from flask_login import current_user

from app import db
from app.errors import AccessDeniedError, ConflictError, NotFoundError, ValidationError
from app.models import EmailTemplate, Repair
from app.routes.auth import (
    MANAGER_ROLES, STAFF_ROLES, api_login_required, roles_required, shop_required,
)
from app.services.email_service import get_email_service
from app.services.email_template_service import get_email_template_service
from app.services.logging_service import log_event
from app.services.tenant_service import get_for_shop
from app.utils import get_json_data, parse_bool, parse_int, require_fields

email_templates_bp = Blueprint('email_templates', __name__, url_prefix='/api')

TEMPLATE_FIELDS = ('schluessel', 'name', 'betreff', 'body_html', 'body_text', 'kategorie')
KATEGORIEN = ('customer', 'system')


def _get_visible(template_id: int, shop_id: int) -> EmailTemplate:
    template = EmailTemplate.query.filter(
        EmailTemplate.id == template_id,
        db.or_(EmailTemplate.shop_id.is_(None), EmailTemplate.shop_id == shop_id)
    ).first()
    if template is None:
        raise NotFoundError('E-Mail-Template nicht gefunden')
    return template


def _get_editable(template_id: int, shop_id) -> EmailTemplate:
    """Template the caller may change: own shop template, or system template for shop_id None."""
    if shop_id is None:
        template = EmailTemplate.query.filter_by(id=template_id, shop_id=None).first()
    else:
        template = _get_visible(template_id, shop_id)
        if template.ist_system:
            raise AccessDeniedError('System-Templates können nicht geändert werden')
    if template is None:
        raise NotFoundError('E-Mail-Template nicht gefunden')
    return template


def _apply(template: EmailTemplate, data: dict) -> None:
    for field in TEMPLATE_FIELDS:
        if field in data:
            setattr(template, field, data[field])
    if 'aktiv' in data:
        template.aktiv = parse_bool(data['aktiv'])
    if template.kategorie not in KATEGORIEN:
        raise ValidationError(f'Ungültige Kategorie: {template.kategorie}')
    for field in ('schluessel', 'name', 'betreff', 'body_html'):
        if not getattr(template, field):
            raise ValidationError(f'{field} darf nicht leer sein')
    # Render once so broken Jinja2 syntax is rejected on save
    get_email_template_service().preview(template)


def _create(shop_id):
    data = get_json_data()
    require_fields(data, ('schluessel', 'name', 'betreff', 'body_html'))
    if EmailTemplate.query.filter_by(shop_id=shop_id, schluessel=data['schluessel']).first():
        raise ConflictError(f'Template mit Schlüssel "{data["schluessel"]}" existiert bereits')
    template = EmailTemplate(shop_id=shop_id, kategorie='customer')
    _apply(template, data)
    db.session.add(template)
    db.session.flush()
    log_event('email', 'template_angelegt', details=template.schluessel,
              entity_type='EmailTemplate', entity_id=template.id, shop_id=shop_id)
    db.session.commit()
    return jsonify(template.to_dict()), 201


def _update(template: EmailTemplate):
    _apply(template, get_json_data())
    log_event('email', 'template_geaendert', details=template.schluessel,
              entity_type='EmailTemplate', entity_id=template.id, shop_id=template.shop_id)
    db.session.commit()
    return jsonify(template.to_dict())


@email_templates_bp.route('/email-templates', methods=['GET'])
@api_login_required
@roles_required(*STAFF_ROLES)
@shop_required
def list_templates():
    """Own and system templates.

    Usage:
        curl -b cookies.txt http://localhost:5000/api/email-templates
    """
    return jsonify([t.to_dict() for t in EmailTemplate.get_visible(g.shop_id)])


@email_templates_bp.route('/email-templates', methods=['POST'])
@api_login_required
@roles_required(*MANAGER_ROLES)
@shop_required
def create_template():
    """Create a shop template. Returns 201, 409 if the key is taken."""
    return _create(g.shop_id)


@email_templates_bp.route('/email-templates/<int:id>', methods=['GET'])
@api_login_required
@roles_required(*STAFF_ROLES)
@shop_required
def get_template(id):
    return jsonify(_get_visible(id, g.shop_id).to_dict())


@email_templates_bp.route('/email-templates/<int:id>', methods=['PATCH', 'PUT'])
@api_login_required
@roles_required(*MANAGER_ROLES)
@shop_required
def update_template(id):
    """Change an own template (403 for system templates)."""
    return _update(_get_editable(id, g.shop_id))


@email_templates_bp.route('/email-templates/<int:id>', methods=['DELETE'])
@api_login_required
@roles_required(*MANAGER_ROLES)
@shop_required
def delete_template(id):
    template = _get_editable(id, g.shop_id)
    log_event('email', 'template_geloescht', details=template.schluessel, wichtigkeit='mittel',
              entity_type='EmailTemplate', entity_id=template.id, shop_id=g.shop_id)
    db.session.delete(template)
    db.session.commit()
    return jsonify({'success': True})


@email_templates_bp.route('/email-templates/<int:id>/preview', methods=['GET', 'POST'])
@api_login_required
@roles_required(*STAFF_ROLES)
@shop_required
def preview_template(id):
    """Render a template with sample values."""
    template = _get_visible(id, g.shop_id)
    return jsonify(get_email_template_service().preview(template))


@email_templates_bp.route('/send-email', methods=['POST'])
@api_login_required
@roles_required(*STAFF_ROLES)
@shop_required
def send_email():
    """Send a template to the customer of a repair.

    JSON body: {"repairId": 12, "templateId": 3} or {"repairId": 12, "templateKey": "reparatur_fertig"}
    Optional "to" overrides the customer's address.
    """
    data = get_json_data()
    repair_id = parse_int(data.get('repairId') or data.get('repair_id'), 'repairId')
    if repair_id is None:
        raise ValidationError('repairId ist erforderlich')
    repair = get_for_shop(Repair, repair_id, g.shop_id, current_user)

    template_service = get_email_template_service()
    template_id = parse_int(data.get('templateId') or data.get('template_id'), 'templateId')
    if template_id is not None:
        template = _get_visible(template_id, g.shop_id)
    elif data.get('templateKey'):
        template = template_service.ensure_template(data['templateKey'], g.shop_id)
    else:
        raise ValidationError('templateId oder templateKey ist erforderlich')

    to_email = data.get('to') or (repair.customer.email if repair.customer else None)
    if not to_email:
        raise ValidationError('Kunde hat keine E-Mail-Adresse')

    result = get_email_service().send_template(
        template, to_email, template_service.build_repair_context(repair), g.shop_id,
        repair_id=repair.id, user_id=current_user.id
    )
    log_event('email', 'email_gesendet' if result.success else 'email_fehlgeschlagen',
              details=f'{template.schluessel} an {to_email}', entity_type='Repair',
              entity_id=repair.id, shop_id=g.shop_id)
    db.session.commit()
    if not result.success:
        return jsonify({'success': False, 'error': result.error}), 400
    return jsonify({'success': True, 'message': f'E-Mail an {to_email} gesendet'})


# ============================================================================
# System templates (superadmin)
# ============================================================================

@email_templates_bp.route('/superadmin/email-templates', methods=['GET'])
@api_login_required
@roles_required('superadmin')
def list_system_templates():
    templates = EmailTemplate.query.filter(EmailTemplate.shop_id.is_(None)) \
        .order_by(EmailTemplate.name).all()
    return jsonify([t.to_dict() for t in templates])


@email_templates_bp.route('/superadmin/email-templates', methods=['POST'])
@api_login_required
@roles_required('superadmin')
def create_system_template():
    return _create(None)


@email_templates_bp.route('/superadmin/email-templates/<int:id>', methods=['PATCH', 'PUT'])
@api_login_required
@roles_required('superadmin')
def update_system_template(id):
    return _update(_get_editable(id, None))
