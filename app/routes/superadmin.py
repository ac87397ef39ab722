"""Superadmin routes: shops, users, multi-shop assignments, config, audit log.

Blueprint: superadmin_bp
Prefix: /api/superadmin

The superadmin manages accounts but sees no shop data here; shop data
requires an approved support session.
"""
from flask import Blueprint, jsonify, request
from flask_login import current_user

from app import db
from app.errors import ConflictError, NotFoundError, ValidationError
from app.models import (
    AuditLog, BusinessSettings, Config, PricingPlan, Repair, Rolle, Shop, ShopStatus, User,
    UserShopAccess,
)
from app.models.audit_log import MODULE
from app.models.rolle import ROLLEN
from app.routes.auth import api_login_required, roles_required
from app.services import multi_shop_service
from app.services.logging_service import log_event, log_hoch
from app.services.password_service import get_password_service
from app.utils import get_json_data, parse_bool, parse_datetime, parse_int, require_fields

superadmin_bp = Blueprint('superadmin', __name__, url_prefix='/api/superadmin')

# Config keys whose values are never sent to the client
SECRET_CONFIG_KEYS = ('smtp_password', 'brevo_api_key', 's3_secret_key', 's3_access_key')


def _create_user(data: dict, rolle: str, shop_id: int = None, parent_id: int = None) -> User:
    require_fields(data, ('username', 'email', 'password'))
    username = data['username'].strip()
    if User.query.filter_by(username=username).first():
        raise ConflictError(f'Benutzername "{username}" bereits vergeben')
    get_password_service().validate_password(data['password'])
    user = User(
        username=username,
        email=data['email'].strip().lower(),
        first_name=data.get('first_name'),
        last_name=data.get('last_name'),
        rolle_id=Rolle.get_by_name(rolle).id,
        shop_id=shop_id,
        parent_user_id=parent_id,
        is_active=True,
    )
    user.set_password(data['password'])
    db.session.add(user)
    db.session.flush()
    return user


def _get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError('Benutzer nicht gefunden')
    return user


# ============================================================================
# Shops
# ============================================================================

@superadmin_bp.route('/shops', methods=['GET'])
@api_login_required
@roles_required('superadmin')
def list_shops():
    """All shops with owner and key figures.

    Usage:
        curl -b cookies.txt http://localhost:5000/api/superadmin/shops
    """
    shops = Shop.query.order_by(Shop.name).all()
    result = []
    for shop in shops:
        data = shop.to_dict()
        owner = shop.owner
        data['owner'] = owner.to_dict() if owner else None
        data['user_count'] = shop.users.count()
        data['repair_count'] = Repair.query.filter_by(shop_id=shop.id).count()
        result.append(data)
    return jsonify(result)


@superadmin_bp.route('/shops', methods=['POST'])
@api_login_required
@roles_required('superadmin')
def create_shop():
    """Create a shop with its owner account and settings.

    JSON body:
        {"name": "Handyshop Linz", "pricing_plan": "basic",
         "owner": {"username": "linz", "email": "...", "password": "..."}}
    """
    data = get_json_data()
    require_fields(data, ('name',))
    plan = data.get('pricing_plan') or PricingPlan.BASIC.value
    if plan not in [p.value for p in PricingPlan]:
        raise ValidationError(f'Unbekanntes Paket: {plan}')
    owner_data = data.get('owner')
    if not isinstance(owner_data, dict):
        raise ValidationError('Inhaber-Daten fehlen')

    shop = Shop(
        name=data['name'].strip(),
        pricing_plan=plan,
        trial_ends_at=parse_datetime(data.get('trial_ends_at'), 'Testphase bis'),
    )
    db.session.add(shop)
    db.session.flush()
    owner = _create_user(owner_data, 'owner', shop_id=shop.id)
    db.session.add(BusinessSettings(
        shop_id=shop.id,
        business_name=shop.name,
        owner_first_name=owner.first_name,
        owner_last_name=owner.last_name,
        email=owner.email,
    ))
    log_hoch('superadmin', 'shop_angelegt', details=f'{shop.name} (Inhaber {owner.username})',
             entity_type='Shop', entity_id=shop.id, shop_id=shop.id)
    db.session.commit()
    return jsonify({'success': True, 'shop': shop.to_dict(), 'owner': owner.to_dict()}), 201


@superadmin_bp.route('/shops/<int:id>', methods=['PATCH', 'PUT'])
@api_login_required
@roles_required('superadmin')
def update_shop(id):
    """Change name, status, pricing plan or trial end of a shop."""
    shop = db.session.get(Shop, id)
    if shop is None:
        raise NotFoundError('Shop nicht gefunden')
    data = get_json_data()
    if data.get('name'):
        shop.name = data['name'].strip()
    if 'status' in data:
        if data['status'] not in [s.value for s in ShopStatus]:
            raise ValidationError(f'Ungültiger Status: {data["status"]}')
        shop.status = data['status']
    if 'pricing_plan' in data:
        if data['pricing_plan'] not in [p.value for p in PricingPlan]:
            raise ValidationError(f'Unbekanntes Paket: {data["pricing_plan"]}')
        shop.pricing_plan = data['pricing_plan']
    if 'trial_ends_at' in data:
        shop.trial_ends_at = parse_datetime(data['trial_ends_at'], 'Testphase bis')
    log_hoch('superadmin', 'shop_geaendert',
             details=f'{shop.name}: status={shop.status}, paket={shop.pricing_plan}',
             entity_type='Shop', entity_id=shop.id, shop_id=shop.id)
    db.session.commit()
    return jsonify(shop.to_dict())


# ============================================================================
# Users
# ============================================================================

@superadmin_bp.route('/users', methods=['GET'])
@api_login_required
@roles_required('superadmin')
def list_users():
    """All users (?rolle=owner and ?shop_id=3 filter)."""
    query = User.query
    rolle = request.args.get('rolle')
    if rolle:
        query = query.join(Rolle, User.rolle_id == Rolle.id).filter(Rolle.name == rolle)
    shop_id = request.args.get('shop_id', type=int)
    if shop_id:
        query = query.filter(User.shop_id == shop_id)
    return jsonify([u.to_dict() for u in query.order_by(User.username).all()])


@superadmin_bp.route('/users', methods=['POST'])
@api_login_required
@roles_required('superadmin')
def create_user():
    """Create a multi-shop admin or superadmin account.

    Shop accounts are created with the shop (owner) or by the owner (employees).
    """
    data = get_json_data()
    rolle = data.get('rolle') or 'multi_shop_admin'
    if rolle not in ('multi_shop_admin', 'superadmin'):
        raise ValidationError('Nur Multi-Shop-Admins und Superadmins können hier angelegt werden')
    user = _create_user(data, rolle)
    user.can_assign_multi_shop_admins = parse_bool(data.get('can_assign_multi_shop_admins', False))
    log_hoch('superadmin', 'benutzer_angelegt', details=f'{user.username} ({rolle})',
             entity_type='User', entity_id=user.id)
    db.session.commit()
    return jsonify(user.to_dict()), 201


@superadmin_bp.route('/users/<int:id>/activate', methods=['POST'])
@api_login_required
@roles_required('superadmin')
def activate_user(id):
    user = _get_user(id)
    user.is_active = True
    log_event('superadmin', 'benutzer_aktiviert', details=user.username, wichtigkeit='mittel',
              entity_type='User', entity_id=user.id, shop_id=user.shop_id)
    db.session.commit()
    return jsonify(user.to_dict())


@superadmin_bp.route('/users/<int:id>/deactivate', methods=['POST'])
@api_login_required
@roles_required('superadmin')
def deactivate_user(id):
    """Lock an account. The user is rejected on the next request."""
    user = _get_user(id)
    if user.id == current_user.id:
        raise ValidationError('Sie können sich nicht selbst deaktivieren')
    user.is_active = False
    log_hoch('superadmin', 'benutzer_deaktiviert', details=user.username,
             entity_type='User', entity_id=user.id, shop_id=user.shop_id)
    db.session.commit()
    return jsonify(user.to_dict())


@superadmin_bp.route('/roles', methods=['GET'])
@api_login_required
@roles_required('superadmin')
def list_roles():
    return jsonify([{'name': name, 'beschreibung': beschreibung} for name, beschreibung in ROLLEN])


# ============================================================================
# Multi-shop assignments
# ============================================================================

@superadmin_bp.route('/multi-shop/access', methods=['GET'])
@api_login_required
@roles_required('superadmin')
def list_multi_shop_access():
    """Active shop grants of all multi-shop admins."""
    grants = UserShopAccess.effective().order_by(UserShopAccess.user_id).all()
    return jsonify([
        dict(g.to_dict(), username=g.user.username if g.user else None) for g in grants
    ])


@superadmin_bp.route('/multi-shop/assign', methods=['POST'])
@api_login_required
@roles_required('superadmin')
def assign_shop():
    """Assign a shop to a multi-shop admin.

    JSON body: {"userId": 7, "shopId": 3, "accessLevel": "admin"}
    """
    data = get_json_data()
    user_id = parse_int(data.get('userId') or data.get('user_id'), 'userId')
    shop_id = parse_int(data.get('shopId') or data.get('shop_id'), 'shopId')
    if user_id is None or shop_id is None:
        raise ValidationError('userId und shopId sind erforderlich')
    access = multi_shop_service.assign_shop(
        current_user, user_id, shop_id, data.get('accessLevel') or 'admin'
    )
    db.session.commit()
    return jsonify({'success': True, 'access': access.to_dict()}), 201


@superadmin_bp.route('/multi-shop/access/<int:id>/revoke', methods=['POST'])
@api_login_required
@roles_required('superadmin')
def revoke_multi_shop_access(id):
    access = multi_shop_service.revoke_by_superadmin(id, current_user)
    db.session.commit()
    return jsonify({'success': True, 'access': access.to_dict()})


# ============================================================================
# System config & Audit log
# ============================================================================

@superadmin_bp.route('/config', methods=['GET'])
@api_login_required
@roles_required('superadmin')
def list_config():
    """System settings; secret values are masked."""
    entries = Config.query.order_by(Config.key).all()
    return jsonify([
        {
            'key': c.key,
            'value': ('********' if c.value else '') if c.key in SECRET_CONFIG_KEYS else c.value,
            'beschreibung': c.beschreibung,
        }
        for c in entries
    ])


@superadmin_bp.route('/config', methods=['POST'])
@api_login_required
@roles_required('superadmin')
def save_config():
    """Save system settings.

    JSON body: {"smtp_host": "mail.example.org", "smtp_port": "587"}
    Masked or empty secret values keep the stored value.
    """
    data = get_json_data()
    changed = []
    for key, value in data.items():
        if key in SECRET_CONFIG_KEYS and value in ('', '********', None):
            continue
        Config.set_value(key, '' if value is None else str(value), commit=False)
        changed.append(key)
    if changed:
        log_hoch('superadmin', 'config_geaendert', details=', '.join(sorted(changed)))
    db.session.commit()
    return jsonify({'success': True, 'changed': changed})


@superadmin_bp.route('/audit-log', methods=['GET'])
@api_login_required
@roles_required('superadmin')
def audit_log():
    """Latest audit log entries.

    Query params:
        modul: Filter by module code
        shop_id: Filter by shop
        wichtigkeit: Filter by importance
        limit: Max entries (default 200, max 1000)
    """
    query = AuditLog.query
    modul = request.args.get('modul')
    if modul:
        if modul not in MODULE:
            raise ValidationError(f'Unbekanntes Modul: {modul}')
        query = query.filter(AuditLog.modul == modul)
    shop_id = request.args.get('shop_id', type=int)
    if shop_id:
        query = query.filter(AuditLog.shop_id == shop_id)
    wichtigkeit = request.args.get('wichtigkeit')
    if wichtigkeit:
        query = query.filter(AuditLog.wichtigkeit == wichtigkeit)
    limit = min(request.args.get('limit', 200, type=int), 1000)
    entries = query.order_by(AuditLog.timestamp.desc()).limit(limit).all()
    return jsonify([e.to_dict() for e in entries])
