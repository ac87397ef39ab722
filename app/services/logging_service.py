"""Audit-Log Service for tracking important business events."""
from typing import Optional
from app import db
from app.models import AuditLog
from app.models.audit_log import MODULE


def log_event(
    modul: str,
    aktion: str,
    details: str = None,
    wichtigkeit: str = 'niedrig',
    entity_type: str = None,
    entity_id: int = None,
    user_id: int = None,
    shop_id: Optional[int] = None
) -> AuditLog:
    """Create an audit log entry.

    This function should be called within an existing database transaction.
    The caller is responsible for calling db.session.commit() after this function.

    Args:
        modul: Module code (e.g. 'reparaturen', 'multi_shop', 'auth')
        aktion: Action code (e.g. 'status_geaendert', 'zugriff_widerrufen')
        details: Optional detailed description (human-readable)
        wichtigkeit: Importance level - 'niedrig', 'mittel', 'hoch', 'kritisch'
        entity_type: Optional type of affected entity (e.g. 'Repair', 'Customer')
        entity_id: Optional ID of affected entity
        user_id: Optional user ID. If None, uses current_user.id if authenticated
        shop_id: Optional shop the event belongs to

    Returns:
        AuditLog: The created log entry

    Raises:
        ValueError: If the module code is unknown

    Example:
        ```python
        from app.services.logging_service import log_event

        log_event(
            modul='reparaturen',
            aktion='status_geaendert',
            details='AS251234: eingegangen -> fertig',
            entity_type='Repair',
            entity_id=42,
            shop_id=3
        )

        db.session.commit()
        ```
    """
    # Validate importance level
    valid_levels = ('niedrig', 'mittel', 'hoch', 'kritisch')
    if wichtigkeit not in valid_levels:
        wichtigkeit = 'niedrig'

    if modul not in MODULE:
        raise ValueError(f"Unknown module: {modul}")

    # Get user ID from current_user if not provided
    if user_id is None:
        try:
            from flask_login import current_user
            if current_user.is_authenticated:
                user_id = current_user.id
        except (RuntimeError, AttributeError):
            # Outside of request context
            pass

    # Get IP address from request if available
    ip_adresse = None
    try:
        from flask import request
        if request:
            ip_adresse = request.remote_addr
    except RuntimeError:
        # Outside of request context
        pass

    log_entry = AuditLog(
        shop_id=shop_id,
        user_id=user_id,
        modul=modul,
        aktion=aktion,
        details=details,
        wichtigkeit=wichtigkeit,
        entity_type=entity_type,
        entity_id=entity_id,
        ip_adresse=ip_adresse
    )

    db.session.add(log_entry)

    return log_entry


def log_kritisch(modul: str, aktion: str, details: str = None, **kwargs) -> AuditLog:
    """Shortcut for logging critical events."""
    return log_event(modul, aktion, details, wichtigkeit='kritisch', **kwargs)


def log_hoch(modul: str, aktion: str, details: str = None, **kwargs) -> AuditLog:
    """Shortcut for logging high-importance events."""
    return log_event(modul, aktion, details, wichtigkeit='hoch', **kwargs)


def log_mittel(modul: str, aktion: str, details: str = None, **kwargs) -> AuditLog:
    """Shortcut for logging medium-importance events."""
    return log_event(modul, aktion, details, wichtigkeit='mittel', **kwargs)
