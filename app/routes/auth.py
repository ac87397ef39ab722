"""Authentication routes and access decorators for the JSON API."""
from datetime import datetime
from functools import wraps

from flask import Blueprint, g, jsonify, request
from flask_login import current_user, login_user, logout_user
from flask_wtf import FlaskForm
from wtforms import BooleanField, PasswordField, StringField
from wtforms.validators import DataRequired, Length

from app import db
from app.errors import AccessDeniedError, ValidationError, error_response
from app.models import BusinessSettings, Shop, User
from app.services.logging_service import log_event
from app.services.password_service import get_password_service
from app.services.tenant_service import get_accessible_shop_ids, resolve_shop_id
from app.utils import get_json_data

auth_bp = Blueprint('auth', __name__, url_prefix='/api')

# Roles that work in a shop (everyone except kiosk devices)
STAFF_ROLES = ('superadmin', 'multi_shop_admin', 'owner', 'employee')
MANAGER_ROLES = ('superadmin', 'multi_shop_admin', 'owner')


class LoginForm(FlaskForm):
    """Login form (JSON body)."""
    username = StringField('Benutzername', validators=[DataRequired(), Length(max=120)])
    password = PasswordField('Passwort', validators=[DataRequired()])
    remember = BooleanField('Angemeldet bleiben')


def form_error_message(form) -> str:
    """First validation message per field, joined for the JSON response."""
    parts = []
    for field, errors in form.errors.items():
        label = getattr(form, field).label.text if hasattr(form, field) else field
        parts.append(f'{label}: {errors[0]}')
    return '; '.join(parts) or 'Ungültige Eingabe'


def api_login_required(f):
    """Decorator to require a logged-in, active user (JSON 401 otherwise).

    Flask-Login reports deactivated users as not authenticated.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_user.is_authenticated:
            return error_response('Nicht angemeldet', 401)
        return f(*args, **kwargs)
    return decorated_function


def roles_required(*roles):
    """Decorator to require one of the given role names."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not current_user.is_authenticated:
                return error_response('Nicht angemeldet', 401)
            if current_user.rolle not in roles:
                return error_response('Zugriff verweigert', 403)
            return f(*args, **kwargs)
        return decorated_function
    return decorator


def shop_required(f):
    """Decorator that resolves the active shop into g.shop_id.

    The shop is taken from the X-Shop-Id header or the shop_id query
    argument, defaulting to the user's own shop. 403 if not accessible.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_user.is_authenticated:
            return error_response('Nicht angemeldet', 401)
        requested = request.headers.get('X-Shop-Id') or request.args.get('shop_id')
        g.shop_id = resolve_shop_id(current_user, requested)
        shop = db.session.get(Shop, g.shop_id)
        if shop is None:
            raise AccessDeniedError('Shop nicht gefunden')
        if not shop.is_active and not current_user.is_superadmin:
            raise AccessDeniedError('Dieser Shop ist gesperrt')
        return f(*args, **kwargs)
    return decorated_function


def _user_payload(user: User) -> dict:
    data = user.to_dict()
    data['accessible_shop_ids'] = get_accessible_shop_ids(user)
    return data


@auth_bp.route('/auth/login', methods=['POST'])
def login():
    """Log in with username (or email) and password.

    Usage:
        curl -X POST -H 'Content-Type: application/json' \\
             -d '{"username": "owner", "password": "..."}' http://localhost:5000/api/auth/login
    """
    form = LoginForm(meta={'csrf': False})
    if not form.validate_on_submit():
        return error_response(form_error_message(form), 400)

    identifier = form.username.data.strip()
    user = User.query.filter_by(username=identifier).first()
    if user is None:
        user = User.query.filter(db.func.lower(User.email) == identifier.lower()).first()

    if user is None or not user.check_password(form.password.data):
        return error_response('Ungültiger Benutzername oder Passwort', 401)
    if not user.is_active:
        return error_response('Ihr Konto ist deaktiviert', 403)
    if user.shop and not user.shop.is_active:
        return error_response('Dieser Shop ist gesperrt', 403)

    login_user(user, remember=form.remember.data)
    user.last_login_at = datetime.utcnow()
    log_event('auth', 'login', details=user.username, entity_type='User',
              entity_id=user.id, user_id=user.id, shop_id=user.shop_id)
    db.session.commit()

    return jsonify({'success': True, 'user': _user_payload(user)})


@auth_bp.route('/auth/logout', methods=['POST'])
@api_login_required
def logout():
    """Logout user."""
    user = db.session.get(User, current_user.id)
    user.last_logout_at = datetime.utcnow()
    log_event('auth', 'logout', details=user.username, entity_type='User',
              entity_id=user.id, user_id=user.id, shop_id=user.shop_id)
    db.session.commit()
    logout_user()
    return jsonify({'success': True})


@auth_bp.route('/auth/me', methods=['GET'])
@api_login_required
def me():
    """Current user with the shops it may access."""
    return jsonify(_user_payload(current_user))


@auth_bp.route('/auth/change-password', methods=['POST'])
@api_login_required
def change_password():
    """Change the own password.

    JSON body: {"current_password": "...", "new_password": "..."}
    """
    data = get_json_data()
    get_password_service().change_password(
        current_user, data.get('current_password'), data.get('new_password')
    )
    db.session.commit()
    return jsonify({'success': True, 'message': 'Passwort wurde geändert'})


@auth_bp.route('/auth/forgot-password', methods=['POST'])
def forgot_password():
    """Request a password reset link.

    The answer is the same whether or not the account exists.
    """
    data = get_json_data()
    get_password_service().request_reset(data.get('email') or data.get('username'))
    db.session.commit()
    return jsonify({
        'success': True,
        'message': 'Falls ein Konto existiert, wurde eine E-Mail mit einem Link versendet.'
    })


@auth_bp.route('/auth/reset-password', methods=['POST'])
def reset_password():
    """Set a new password with the token from the reset email.

    JSON body: {"token": "...", "password": "..."}
    """
    data = get_json_data()
    get_password_service().reset_password(data.get('token'), data.get('password'))
    db.session.commit()
    return jsonify({'success': True, 'message': 'Passwort wurde zurückgesetzt'})


@auth_bp.route('/kiosk/verify-pin', methods=['POST'])
@api_login_required
def verify_kiosk_pin():
    """Check the kiosk PIN of the user's shop (leaving kiosk mode).

    JSON body: {"pin": "1234"}
    """
    pin = str(get_json_data().get('pin') or '').strip()
    if not pin:
        raise ValidationError('PIN ist erforderlich')
    shop_id = resolve_shop_id(current_user, request.headers.get('X-Shop-Id'))
    settings = BusinessSettings.query.filter_by(shop_id=shop_id).first()
    expected = (settings.kiosk_pin if settings and settings.kiosk_pin else '1234')
    if pin != expected:
        log_event('auth', 'kiosk_pin_falsch', wichtigkeit='mittel', shop_id=shop_id)
        db.session.commit()
        return error_response('Ungültige PIN', 403)
    return jsonify({'success': True, 'valid': True})
