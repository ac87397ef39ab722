"""Business settings, logo upload, SMTP test and branding.

Blueprint: business_settings_bp
Prefix: /api
"""
import io

from email_validator import EmailNotValidError, validate_email
from flask import Blueprint, g, jsonify, request, send_file
from flask_login import current_user

from app import db
from app.errors import NotFoundError, ValidationError
from app.models import BusinessSettings, Shop
from app.routes.auth import MANAGER_ROLES, api_login_required, roles_required, shop_required
from app.services.branding_service import COLOR_THEMES, BrandingService
from app.services.email_service import SmtpSettings, get_email_service
from app.services.logging_service import log_event
from app.services.print_service import RECEIPT_WIDTHS
from app.services.storage_service import get_storage
from app.utils import get_json_data, parse_int

business_settings_bp = Blueprint('business_settings', __name__, url_prefix='/api')

LABEL_FORMATS = ('portrait', 'landscape')
INTEGER_FIELDS = ('label_width', 'label_height', 'smtp_port', 'max_employees')


def _get_or_create_settings(shop_id: int) -> BusinessSettings:
    settings = BusinessSettings.query.filter_by(shop_id=shop_id).first()
    if settings is None:
        shop = db.session.get(Shop, shop_id)
        settings = BusinessSettings(shop_id=shop_id, business_name=shop.name)
        db.session.add(settings)
    return settings


def _validate(data: dict) -> None:
    """Check value ranges of settings fields present in the body."""
    if 'business_name' in data and not (data['business_name'] or '').strip():
        raise ValidationError('Firmenname darf nicht leer sein')
    if data.get('color_theme') and data['color_theme'] not in COLOR_THEMES:
        raise ValidationError(f'Unbekanntes Farbschema: {data["color_theme"]}')
    if data.get('receipt_width') and data['receipt_width'] not in RECEIPT_WIDTHS:
        raise ValidationError('Bonbreite muss 58mm oder 80mm sein')
    if data.get('label_format') and data['label_format'] not in LABEL_FORMATS:
        raise ValidationError('Etikettformat muss portrait oder landscape sein')
    if data.get('kiosk_pin') and not str(data['kiosk_pin']).isdigit():
        raise ValidationError('Kiosk-PIN darf nur Ziffern enthalten')
    if data.get('email'):
        try:
            validate_email(data['email'], check_deliverability=False)
        except EmailNotValidError:
            raise ValidationError('Ungültige E-Mail-Adresse')


@business_settings_bp.route('/business-settings', methods=['GET'])
@api_login_required
@shop_required
def get_settings():
    """Settings of the active shop (defaults when none are saved yet).

    Kiosk PIN and SMTP access data are only returned to managers.

    Usage:
        curl -b cookies.txt http://localhost:5000/api/business-settings
    """
    settings = BusinessSettings.query.filter_by(shop_id=g.shop_id).first()
    if settings is None:
        shop = db.session.get(Shop, g.shop_id)
        return jsonify({
            'shop_id': g.shop_id,
            'business_name': shop.name,
            'country': 'Österreich',
            'color_theme': 'blue',
            'receipt_width': '80mm',
            'label_format': 'portrait',
            'max_employees': 2,
            'exists': False,
        })
    data = settings.to_dict(include_private=current_user.rolle in MANAGER_ROLES)
    data['exists'] = True
    return jsonify(data)


@business_settings_bp.route('/business-settings', methods=['POST', 'PATCH'])
@api_login_required
@roles_required(*MANAGER_ROLES)
@shop_required
def save_settings():
    """Save settings; the row is created on first save.

    An empty smtp_password keeps the stored password. max_employees can
    only be changed by a superadmin.
    """
    data = get_json_data()
    _validate(data)
    settings = _get_or_create_settings(g.shop_id)

    for field in BusinessSettings.EDITABLE_FIELDS:
        if field not in data:
            continue
        value = data[field]
        if field == 'smtp_password' and not value:
            continue
        if field == 'max_employees' and not current_user.is_superadmin:
            continue
        if field in INTEGER_FIELDS:
            value = parse_int(value, field)
        elif isinstance(value, str):
            value = value.strip() or None
        setattr(settings, field, value)

    if not settings.business_name:
        raise ValidationError('Firmenname darf nicht leer sein')

    log_event('einstellungen', 'einstellungen_gespeichert', details=settings.business_name,
              entity_type='BusinessSettings', shop_id=g.shop_id)
    db.session.commit()
    return jsonify({'success': True, 'settings': settings.to_dict()})


# ============================================================================
# Logo
# ============================================================================

@business_settings_bp.route('/business-settings/logo', methods=['POST'])
@api_login_required
@roles_required(*MANAGER_ROLES)
@shop_required
def upload_logo():
    """Upload a logo (multipart field 'logo' or 'file').

    Usage:
        curl -X POST -b cookies.txt -F 'logo=@logo.png' http://localhost:5000/api/business-settings/logo
    """
    upload = request.files.get('logo') or request.files.get('file')
    if upload is None:
        raise ValidationError('Keine Datei hochgeladen')

    storage = get_storage()
    key = storage.save_logo(g.shop_id, upload.read())

    settings = _get_or_create_settings(g.shop_id)
    old_key = settings.logo_path
    settings.logo_path = key
    log_event('einstellungen', 'logo_hochgeladen', details=key, shop_id=g.shop_id)
    db.session.commit()

    if old_key and old_key != key:
        storage.delete(old_key)

    return jsonify({
        'success': True,
        'logo_path': key,
        'logo_url': BrandingService().get_branding(g.shop_id).logo_url,
    })


@business_settings_bp.route('/business-settings/logo', methods=['DELETE'])
@api_login_required
@roles_required(*MANAGER_ROLES)
@shop_required
def delete_logo():
    settings = BusinessSettings.query.filter_by(shop_id=g.shop_id).first()
    if settings is None or not settings.logo_path:
        raise NotFoundError('Kein Logo vorhanden')
    old_key = settings.logo_path
    settings.logo_path = None
    log_event('einstellungen', 'logo_geloescht', details=old_key, shop_id=g.shop_id)
    db.session.commit()
    get_storage().delete(old_key)
    return jsonify({'success': True})


@business_settings_bp.route('/business-settings/logo', methods=['GET'])
@api_login_required
@shop_required
def get_logo():
    """Serve the shop logo as PNG."""
    settings = BusinessSettings.query.filter_by(shop_id=g.shop_id).first()
    if settings is None or not settings.logo_path:
        raise NotFoundError('Kein Logo vorhanden')
    data = get_storage().download(settings.logo_path)
    if data is None:
        raise NotFoundError('Logo-Datei nicht gefunden')
    return send_file(io.BytesIO(data), mimetype='image/png', max_age=300)


# ============================================================================
# SMTP test & Branding
# ============================================================================

@business_settings_bp.route('/business-settings/smtp-test', methods=['POST'])
@api_login_required
@roles_required(*MANAGER_ROLES)
@shop_required
def smtp_test():
    """Send a test email with the given or saved SMTP settings.

    JSON body: {"to_email": "...", "smtp_host": "...", ...} (fields optional)
    """
    data = get_json_data()
    settings = BusinessSettings.query.filter_by(shop_id=g.shop_id).first()

    def value(field, default=None):
        if data.get(field):
            return data[field]
        return getattr(settings, field, None) if settings else default

    host = value('smtp_host')
    user = value('smtp_user')
    password = value('smtp_password')
    if not (host and user and password):
        raise ValidationError('SMTP-Server, Benutzer und Passwort sind erforderlich')

    to_email = data.get('to_email') or value('email') or current_user.email
    smtp = SmtpSettings(
        host=host,
        port=parse_int(value('smtp_port'), 'smtp_port', default=587) or 587,
        user=user,
        password=password,
        sender_email=value('email') or user,
        sender_name=value('smtp_sender_name') or value('business_name') or 'Handyshop',
    )
    result = get_email_service().test_smtp(smtp, to_email)
    log_event('email', 'smtp_test', details=f'{host}: {"OK" if result.success else result.error}',
              shop_id=g.shop_id)
    db.session.commit()
    if not result.success:
        return jsonify({'success': False, 'error': result.error}), 400
    return jsonify({'success': True, 'message': f'Test-E-Mail an {to_email} gesendet'})


@business_settings_bp.route('/branding', methods=['GET'])
@api_login_required
@shop_required
def branding():
    """Logo, colors and title for the active shop."""
    return jsonify(BrandingService().get_branding_dict(g.shop_id))
