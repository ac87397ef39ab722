"""Tenant scoping: which shops a user may see and how queries are filtered.

Every query over shop data goes through ``scoped()`` or ``get_for_shop()``.
"""
from typing import Optional

from app.errors import AccessDeniedError, NotFoundError, ValidationError
from app.models import UserShopAccess
from app.services import support_access_service


def get_accessible_shop_ids(user) -> list[int]:
    """Return the ids of all shops the user may currently access.

    - owner, employee, kiosk: their own shop
    - multi-shop admin: shops with an active, non-revoked grant
    - superadmin: shops with an approved, running support session
    """
    if user is None or not user.is_authenticated or not user.is_active:
        return []

    if user.is_superadmin:
        return support_access_service.get_active_shop_ids(user.id)

    if user.is_multi_shop_admin:
        grants = UserShopAccess.effective().filter_by(user_id=user.id).all()
        return sorted(grant.shop_id for grant in grants)

    return [user.shop_id] if user.shop_id else []


def parse_shop_id(value) -> Optional[int]:
    """Parse a shop id from header or query string."""
    if value in (None, ''):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError('Ungültige Shop-ID')


def resolve_shop_id(user, requested=None) -> int:
    """Determine the active shop for a request.

    Args:
        user: The logged-in user
        requested: Shop id requested by the client (X-Shop-Id / ?shop_id=)

    Returns:
        The shop id all queries of this request are scoped to

    Raises:
        AccessDeniedError: If the shop is not accessible (or none is)
    """
    requested = parse_shop_id(requested)
    accessible = get_accessible_shop_ids(user)

    if requested is not None:
        if requested not in accessible:
            raise AccessDeniedError('Kein Zugriff auf diesen Shop')
        return requested

    if user.shop_id and user.shop_id in accessible:
        return user.shop_id
    if len(accessible) == 1:
        return accessible[0]
    if not accessible:
        raise AccessDeniedError('Kein Shop zugeordnet')
    raise AccessDeniedError('Bitte wählen Sie einen Shop aus (X-Shop-Id)')


def can_access_shop(user, shop_id: int) -> bool:
    """Check if the user may access the given shop."""
    return shop_id in get_accessible_shop_ids(user)


def scoped(query, model, shop_ids):
    """Restrict a query to rows of the given shop(s)."""
    if isinstance(shop_ids, int):
        return query.filter(model.shop_id == shop_ids)
    return query.filter(model.shop_id.in_(list(shop_ids)))


def get_for_shop(model, entity_id: int, shop_id: int, user=None):
    """Load an entity of the active shop or raise NotFoundError.

    Rows of other shops are reported as not found. Superadmin reads are
    recorded on the running support session.
    """
    entity = scoped(model.query, model, shop_id).filter(model.id == entity_id).first()
    if entity is None:
        raise NotFoundError(f'{model.__name__} nicht gefunden')
    if user is not None and user.is_superadmin:
        support_access_service.record_entity_access(
            user.id, shop_id, model.__name__.lower(), entity.id
        )
    return entity
