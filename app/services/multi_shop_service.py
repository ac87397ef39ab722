"""Multi-shop admin grants.

Flow:
1. A multi-shop admin asks for access to a shop (pending MultiShopPermission)
2. The shop owner approves or denies, or grants directly by email
3. Approval creates or reactivates the UserShopAccess row
4. Revocation sets revoked_at on both rows; later requests get 403
"""
from datetime import datetime

from app import db
from app.errors import AccessDeniedError, ConflictError, NotFoundError, ValidationError
from app.models import (
    Customer, MultiShopPermission, Repair, RepairStatus, Rolle, Shop, User,
    UserShopAccess, AccessLevel,
)
from app.services.logging_service import log_event, log_hoch


def _require_owner(owner) -> None:
    if not owner.is_owner or not owner.shop_id:
        raise AccessDeniedError('Nur Shop-Inhaber können Multi-Shop-Zugriffe verwalten')


def _activate_access(msa_id: int, shop_id: int, granted_by: int,
                     access_level: str = AccessLevel.ADMIN.value) -> UserShopAccess:
    """Create or reactivate the effective grant."""
    access = UserShopAccess.query.filter_by(user_id=msa_id, shop_id=shop_id).first()
    now = datetime.utcnow()
    if access is None:
        access = UserShopAccess(user_id=msa_id, shop_id=shop_id)
        db.session.add(access)
    access.access_level = access_level
    access.granted_by = granted_by
    access.granted_at = now
    access.revoked_at = None
    access.is_active = True
    return access


def request_access(msa, shop_id: int) -> MultiShopPermission:
    """Create a pending permission request of a multi-shop admin."""
    if not msa.is_multi_shop_admin:
        raise AccessDeniedError('Nur Multi-Shop-Admins können Zugriff anfragen')
    shop = db.session.get(Shop, shop_id)
    if shop is None:
        raise NotFoundError('Shop nicht gefunden')
    owner = shop.owner
    if owner is None:
        raise ValidationError('Shop hat keinen Inhaber')

    existing = MultiShopPermission.query.filter_by(
        multi_shop_admin_id=msa.id, shop_id=shop_id, revoked_at=None
    ).first()
    if existing is not None:
        if existing.granted:
            raise ConflictError('Zugriff bereits erteilt')
        return existing

    permission = MultiShopPermission(
        multi_shop_admin_id=msa.id,
        shop_id=shop_id,
        shop_owner_id=owner.id,
        granted=False,
    )
    db.session.add(permission)
    db.session.flush()
    log_event('multi_shop', 'zugriff_angefragt', details=f'Shop "{shop.name}"',
              entity_type='MultiShopPermission', entity_id=permission.id,
              user_id=msa.id, shop_id=shop_id)
    return permission


def _get_owned_permission(permission_id: int, owner) -> MultiShopPermission:
    _require_owner(owner)
    permission = db.session.get(MultiShopPermission, permission_id)
    if permission is None or permission.shop_id != owner.shop_id:
        raise NotFoundError('Berechtigungsanfrage nicht gefunden')
    return permission


def approve(permission_id: int, owner) -> MultiShopPermission:
    """Owner approves a pending request."""
    permission = _get_owned_permission(permission_id, owner)
    if not permission.is_pending:
        raise ConflictError('Anfrage wurde bereits bearbeitet')
    permission.granted = True
    permission.granted_at = datetime.utcnow()
    _activate_access(permission.multi_shop_admin_id, permission.shop_id, owner.id)
    log_hoch('multi_shop', 'zugriff_erteilt',
             details=f'Multi-Shop-Admin {permission.multi_shop_admin_id} freigegeben',
             entity_type='MultiShopPermission', entity_id=permission.id,
             user_id=owner.id, shop_id=permission.shop_id)
    return permission


def deny(permission_id: int, owner) -> MultiShopPermission:
    """Owner rejects a pending request."""
    permission = _get_owned_permission(permission_id, owner)
    if not permission.is_pending:
        raise ConflictError('Anfrage wurde bereits bearbeitet')
    permission.granted = False
    permission.revoked_at = datetime.utcnow()
    log_event('multi_shop', 'zugriff_abgelehnt', entity_type='MultiShopPermission',
              entity_id=permission.id, user_id=owner.id, shop_id=permission.shop_id)
    return permission


def grant_by_email(owner, email: str) -> MultiShopPermission:
    """Owner grants access directly to a multi-shop admin identified by email."""
    _require_owner(owner)
    if not email:
        raise ValidationError('E-Mail-Adresse fehlt')
    msa = User.query.join(Rolle, User.rolle_id == Rolle.id).filter(
        db.func.lower(User.email) == email.strip().lower(),
        Rolle.name == 'multi_shop_admin',
        User.is_active.is_(True)
    ).first()
    if msa is None:
        raise NotFoundError('Kein aktiver Multi-Shop-Admin mit dieser E-Mail-Adresse')

    access = UserShopAccess.effective().filter_by(user_id=msa.id, shop_id=owner.shop_id).first()
    if access is not None:
        raise ConflictError('Zugriff bereits erteilt')

    permission = MultiShopPermission.query.filter_by(
        multi_shop_admin_id=msa.id, shop_id=owner.shop_id, revoked_at=None
    ).first()
    if permission is None:
        permission = MultiShopPermission(
            multi_shop_admin_id=msa.id,
            shop_id=owner.shop_id,
            shop_owner_id=owner.id,
        )
        db.session.add(permission)
    permission.granted = True
    permission.granted_at = datetime.utcnow()
    _activate_access(msa.id, owner.shop_id, owner.id)
    db.session.flush()
    log_hoch('multi_shop', 'zugriff_erteilt', details=f'Direkt an {msa.email} erteilt',
             entity_type='MultiShopPermission', entity_id=permission.id,
             user_id=owner.id, shop_id=owner.shop_id)
    return permission


def revoke(owner, msa_id: int) -> UserShopAccess:
    """Owner revokes the access of a multi-shop admin to their shop."""
    _require_owner(owner)
    access = UserShopAccess.effective().filter_by(user_id=msa_id, shop_id=owner.shop_id).first()
    if access is None:
        raise NotFoundError('Kein aktiver Zugriff gefunden')
    return _revoke_access(access, owner.id)


def revoke_by_superadmin(access_id: int, superadmin) -> UserShopAccess:
    """Superadmin revokes any grant."""
    access = db.session.get(UserShopAccess, access_id)
    if access is None or not access.is_effective:
        raise NotFoundError('Kein aktiver Zugriff gefunden')
    return _revoke_access(access, superadmin.id)


def _revoke_access(access: UserShopAccess, revoked_by: int) -> UserShopAccess:
    now = datetime.utcnow()
    access.revoked_at = now
    access.is_active = False
    permissions = MultiShopPermission.query.filter_by(
        multi_shop_admin_id=access.user_id, shop_id=access.shop_id, revoked_at=None
    ).all()
    for permission in permissions:
        permission.revoked_at = now
    log_hoch('multi_shop', 'zugriff_widerrufen',
             details=f'Zugriff von Benutzer {access.user_id} widerrufen',
             entity_type='UserShopAccess', entity_id=access.id,
             user_id=revoked_by, shop_id=access.shop_id)
    return access


def assign_shop(superadmin, msa_id: int, shop_id: int,
                access_level: str = AccessLevel.ADMIN.value) -> UserShopAccess:
    """Superadmin assigns a shop to a multi-shop admin without owner consent."""
    msa = db.session.get(User, msa_id)
    if msa is None or not msa.is_multi_shop_admin:
        raise NotFoundError('Multi-Shop-Admin nicht gefunden')
    if db.session.get(Shop, shop_id) is None:
        raise NotFoundError('Shop nicht gefunden')
    if access_level not in AccessLevel.values():
        raise ValidationError('Ungültige Zugriffsstufe')
    access = _activate_access(msa.id, shop_id, superadmin.id, access_level)
    db.session.flush()
    log_hoch('superadmin', 'shop_zugewiesen', details=f'Shop {shop_id} an {msa.username}',
             entity_type='UserShopAccess', entity_id=access.id,
             user_id=superadmin.id, shop_id=shop_id)
    return access


def list_for_owner(owner) -> dict:
    """Pending requests and effective grants of the owner's shop."""
    _require_owner(owner)
    pending = MultiShopPermission.query.filter_by(
        shop_id=owner.shop_id, granted=False, revoked_at=None
    ).order_by(MultiShopPermission.created_at.desc()).all()
    grants = UserShopAccess.effective().filter_by(shop_id=owner.shop_id).all()
    return {
        'pending': [p.to_dict() for p in pending],
        'granted': [
            dict(g.to_dict(), username=g.user.username, email=g.user.email) for g in grants
        ],
    }


def get_shop_statistics(msa) -> list[dict]:
    """Per-shop key figures for all shops the multi-shop admin may access."""
    grants = UserShopAccess.effective().filter_by(user_id=msa.id).all()
    result = []
    for grant in grants:
        shop_id = grant.shop_id
        repairs = Repair.query.filter_by(shop_id=shop_id)
        open_count = repairs.filter(Repair.status.in_(RepairStatus.offene_status())).count()
        done_count = repairs.filter(Repair.status.in_([
            RepairStatus.FERTIG.value, RepairStatus.ABGEHOLT.value
        ])).count()
        employees = User.query.join(Rolle, User.rolle_id == Rolle.id).filter(
            User.shop_id == shop_id, Rolle.name == 'employee'
        ).count()
        result.append({
            'shop_id': shop_id,
            'shop_name': grant.shop.name if grant.shop else None,
            'access_level': grant.access_level,
            'open_repairs': open_count,
            'completed_repairs': done_count,
            'total_repairs': repairs.count(),
            'customers': Customer.query.filter_by(shop_id=shop_id).count(),
            'employees': employees,
        })
    return result
