"""Password Service for user account passwords.

Handles:
- Password change for logged-in users
- Forgot/reset password with one-time tokens
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from flask import current_app

from app import db
from app.errors import ValidationError
from app.models import PasswordResetToken, User
from app.services.email_service import EmailResult, get_email_service
from app.services.email_template_service import get_email_template_service
from app.services.logging_service import log_event

MIN_PASSWORD_LENGTH = 8


@dataclass
class ResetRequestResult:
    """Result of a forgot-password request.

    The API answers the same way whether or not the account exists;
    this result is for logging and tests only.
    """
    user_found: bool
    email: Optional[EmailResult] = None


class PasswordService:
    """Service for managing user passwords."""

    @staticmethod
    def validate_password(password: str) -> None:
        """Raise ValidationError if the password is too weak."""
        if not password or len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f'Passwort muss mindestens {MIN_PASSWORD_LENGTH} Zeichen lang sein')

    def change_password(self, user: User, current_password: str, new_password: str) -> None:
        """Change the password of a logged-in user (caller commits)."""
        if not user.check_password(current_password or ''):
            raise ValidationError('Aktuelles Passwort ist falsch')
        self.validate_password(new_password)
        user.set_password(new_password)
        log_event('auth', 'passwort_geaendert', details=user.username,
                  entity_type='User', entity_id=user.id, user_id=user.id, shop_id=user.shop_id)

    def request_reset(self, identifier: str, base_url: str = None) -> ResetRequestResult:
        """Create a reset token and email the link to the user.

        Args:
            identifier: Email address or username
            base_url: Frontend URL the link points to (default PORTAL_BASE_URL)
        """
        identifier = (identifier or '').strip()
        if not identifier:
            raise ValidationError('E-Mail-Adresse ist erforderlich')

        user = User.query.filter(
            db.or_(db.func.lower(User.email) == identifier.lower(), User.username == identifier),
            User.is_active.is_(True)
        ).first()
        if user is None:
            current_app.logger.info(f'Passwort-Reset für unbekanntes Konto angefordert: {identifier}')
            return ResetRequestResult(user_found=False)

        minutes = current_app.config['PASSWORD_RESET_MINUTES']
        entry, token = PasswordResetToken.create_for_user(user.id, minutes_valid=minutes)
        db.session.add(entry)

        base_url = (base_url or current_app.config['PORTAL_BASE_URL']).rstrip('/')
        template_service = get_email_template_service()
        template = template_service.ensure_template('passwort_reset')
        rendered = template_service.render_template(template, {
            'benutzername': user.full_name,
            'link': f'{base_url}/reset-password?token={token}',
            'gueltig_minuten': minutes,
        })
        result = get_email_service().send_system(user.email, rendered['subject'],
                                                 rendered['html'], rendered['text'])
        if not result.success:
            current_app.logger.error(f'Passwort-Reset-Mail an {user.email} fehlgeschlagen: {result.error}')

        log_event('auth', 'passwort_reset_angefordert', details=user.username,
                  entity_type='User', entity_id=user.id, user_id=user.id, shop_id=user.shop_id)
        return ResetRequestResult(user_found=True, email=result)

    def reset_password(self, token: str, new_password: str) -> User:
        """Set a new password with a valid token. The token is used up."""
        entry = PasswordResetToken.find_valid(token)
        if entry is None:
            raise ValidationError('Link ist ungültig oder abgelaufen')
        self.validate_password(new_password)

        now = datetime.utcnow()
        user = entry.user
        user.set_password(new_password)
        entry.used_at = now
        # Older tokens of this user become worthless too
        for other in user.password_reset_tokens.filter(PasswordResetToken.used_at.is_(None)):
            other.used_at = now

        log_event('auth', 'passwort_zurueckgesetzt', details=user.username, wichtigkeit='mittel',
                  entity_type='User', entity_id=user.id, user_id=user.id, shop_id=user.shop_id)
        return user


# Singleton instance
_password_service = None


def get_password_service() -> PasswordService:
    """Get the password service singleton."""
    global _password_service
    if _password_service is None:
        _password_service = PasswordService()
    return _password_service
