"""Support access workflow (DSGVO).

A superadmin requests access to a shop, the shop owner approves or denies.
Approved access runs for SUPPORT_ACCESS_MINUTES, then expires.
"""
from datetime import datetime, timedelta

from flask import current_app

from app import db
from app.errors import AccessDeniedError, ConflictError, NotFoundError, ValidationError
from app.models import Shop, SupportAccessLog, SupportAccessStatus
from app.services.logging_service import log_event, log_hoch


def _window_minutes() -> int:
    return current_app.config.get('SUPPORT_ACCESS_MINUTES', 30)


def expire_stale_sessions(now: datetime = None) -> int:
    """Mark approved sessions past their window as expired.

    Returns:
        Number of expired sessions (caller commits)
    """
    now = now or datetime.utcnow()
    cutoff = now - timedelta(minutes=_window_minutes())
    stale = SupportAccessLog.query.filter(
        SupportAccessLog.status == SupportAccessStatus.APPROVED.value,
        SupportAccessLog.is_active.is_(True),
        SupportAccessLog.started_at <= cutoff
    ).all()
    for entry in stale:
        entry.status = SupportAccessStatus.EXPIRED.value
        entry.is_active = False
        entry.ended_at = now
    return len(stale)


def get_active_shop_ids(superadmin_id: int) -> list[int]:
    """Shops with a running, approved support session of this superadmin."""
    if expire_stale_sessions():
        db.session.commit()
    sessions = SupportAccessLog.query.filter_by(
        superadmin_id=superadmin_id,
        status=SupportAccessStatus.APPROVED.value,
        is_active=True
    ).all()
    return sorted({s.shop_id for s in sessions if s.is_valid(_window_minutes())})


def get_active_session(superadmin_id: int, shop_id: int):
    """Return the running session of a superadmin for a shop, or None."""
    entry = SupportAccessLog.query.filter_by(
        superadmin_id=superadmin_id,
        shop_id=shop_id,
        status=SupportAccessStatus.APPROVED.value,
        is_active=True
    ).order_by(SupportAccessLog.started_at.desc()).first()
    if entry and entry.is_valid(_window_minutes()):
        return entry
    return None


def record_entity_access(superadmin_id: int, shop_id: int, entity_type: str, entity_id: int) -> None:
    """Append an accessed entity to the running session.

    Committed right away so that read-only requests are recorded as well.
    """
    entry = get_active_session(superadmin_id, shop_id)
    if entry is not None and entry.add_affected_entity(entity_type, entity_id):
        db.session.commit()


def request_access(superadmin, shop_id: int, reason: str, access_type: str = 'all') -> SupportAccessLog:
    """Create a pending access request.

    Earlier active requests of the same superadmin for this shop are closed.
    """
    if not superadmin.is_superadmin:
        raise AccessDeniedError('Nur Superadmins können Support-Zugriff anfordern')
    if not reason or not reason.strip():
        raise ValidationError('Bitte einen Grund für den Zugriff angeben')
    shop = db.session.get(Shop, shop_id)
    if shop is None:
        raise NotFoundError('Shop nicht gefunden')

    now = datetime.utcnow()
    previous = SupportAccessLog.query.filter_by(
        superadmin_id=superadmin.id, shop_id=shop_id, is_active=True
    ).all()
    for entry in previous:
        entry.is_active = False
        entry.ended_at = now
        if entry.status == SupportAccessStatus.APPROVED.value:
            entry.status = SupportAccessStatus.COMPLETED.value

    entry = SupportAccessLog(
        shop_id=shop_id,
        superadmin_id=superadmin.id,
        reason=reason.strip(),
        access_type=access_type or 'all',
        status=SupportAccessStatus.PENDING.value,
        is_active=True,
        requested_at=now,
    )
    db.session.add(entry)
    db.session.flush()
    log_event('support', 'zugriff_angefordert', details=f'Shop "{shop.name}": {entry.reason}',
              wichtigkeit='mittel', entity_type='SupportAccessLog', entity_id=entry.id,
              user_id=superadmin.id, shop_id=shop_id)
    return entry


def _get_pending_for_owner(request_id: int, owner) -> SupportAccessLog:
    entry = db.session.get(SupportAccessLog, request_id)
    if entry is None or entry.shop_id != owner.shop_id:
        raise NotFoundError('Anfrage nicht gefunden')
    if not owner.is_owner:
        raise AccessDeniedError('Nur der Shop-Inhaber kann Support-Anfragen beantworten')
    if entry.status != SupportAccessStatus.PENDING.value or not entry.is_active:
        raise ConflictError('Anfrage wurde bereits bearbeitet')
    return entry


def approve(request_id: int, owner) -> SupportAccessLog:
    """Approve a pending request. The access window starts now."""
    entry = _get_pending_for_owner(request_id, owner)
    now = datetime.utcnow()
    entry.status = SupportAccessStatus.APPROVED.value
    entry.responded_at = now
    entry.started_at = now
    entry.responding_user_id = owner.id
    log_hoch('support', 'zugriff_genehmigt',
             details=f'Support-Zugriff für {_window_minutes()} Minuten genehmigt',
             entity_type='SupportAccessLog', entity_id=entry.id,
             user_id=owner.id, shop_id=entry.shop_id)
    return entry


def deny(request_id: int, owner) -> SupportAccessLog:
    """Reject a pending request."""
    entry = _get_pending_for_owner(request_id, owner)
    now = datetime.utcnow()
    entry.status = SupportAccessStatus.REJECTED.value
    entry.responded_at = now
    entry.ended_at = now
    entry.is_active = False
    entry.responding_user_id = owner.id
    log_event('support', 'zugriff_abgelehnt', entity_type='SupportAccessLog',
              entity_id=entry.id, user_id=owner.id, shop_id=entry.shop_id)
    return entry


def end_access(request_id: int, user) -> SupportAccessLog:
    """End a running session. Allowed for the superadmin and the shop owner."""
    entry = db.session.get(SupportAccessLog, request_id)
    if entry is None:
        raise NotFoundError('Anfrage nicht gefunden')
    is_requester = user.is_superadmin and entry.superadmin_id == user.id
    is_shop_owner = user.is_owner and entry.shop_id == user.shop_id
    if not (is_requester or is_shop_owner):
        raise AccessDeniedError('Keine Berechtigung')
    if not entry.is_active:
        raise ConflictError('Zugriff ist nicht mehr aktiv')

    entry.is_active = False
    entry.ended_at = datetime.utcnow()
    if entry.status == SupportAccessStatus.APPROVED.value:
        entry.status = SupportAccessStatus.COMPLETED.value
    else:
        entry.status = SupportAccessStatus.EXPIRED.value
    log_event('support', 'zugriff_beendet', entity_type='SupportAccessLog',
              entity_id=entry.id, user_id=user.id, shop_id=entry.shop_id)
    return entry


def list_for_shop(shop_id: int, pending_only: bool = False) -> list[SupportAccessLog]:
    """Requests of a shop, newest first."""
    query = SupportAccessLog.query.filter_by(shop_id=shop_id)
    if pending_only:
        query = query.filter_by(status=SupportAccessStatus.PENDING.value, is_active=True)
    return query.order_by(SupportAccessLog.requested_at.desc()).all()


def list_for_superadmin(superadmin_id: int) -> list[SupportAccessLog]:
    """Requests made by a superadmin, newest first."""
    if expire_stale_sessions():
        db.session.commit()
    return SupportAccessLog.query.filter_by(superadmin_id=superadmin_id) \
        .order_by(SupportAccessLog.requested_at.desc()).all()
