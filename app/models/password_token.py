"""PasswordResetToken model for the forgot-password flow."""
from datetime import datetime, timedelta
import hashlib
import secrets

from app import db


class PasswordResetToken(db.Model):
    """One-time token for resetting a password.

    Only the SHA-256 hash of the token is stored. The plain token is sent
    to the user by email and is valid for a short time only.
    """
    __tablename__ = 'password_reset_tokens'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    token_hash = db.Column(db.String(64), unique=True, nullable=False, index=True)
    expires_at = db.Column(db.DateTime, nullable=False)
    used_at = db.Column(db.DateTime)  # NULL = not yet used
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    user = db.relationship('User', backref=db.backref(
        'password_reset_tokens', lazy='dynamic', cascade='all, delete-orphan'))

    def __repr__(self):
        return f'<PasswordResetToken user_id={self.user_id}>'

    @staticmethod
    def hash_token(token: str) -> str:
        return hashlib.sha256(token.encode('utf-8')).hexdigest()

    @classmethod
    def create_for_user(cls, user_id: int, minutes_valid: int = 15):
        """Create a new reset token for a user.

        Args:
            user_id: The user ID
            minutes_valid: How many minutes the token is valid (default 15)

        Returns:
            Tuple (PasswordResetToken instance (not yet committed), plain token)
        """
        token = secrets.token_urlsafe(32)
        entry = cls(
            user_id=user_id,
            token_hash=cls.hash_token(token),
            expires_at=datetime.utcnow() + timedelta(minutes=minutes_valid)
        )
        return entry, token

    @classmethod
    def find_valid(cls, token: str):
        """Return the unused, unexpired token row for a plain token."""
        if not token:
            return None
        entry = cls.query.filter_by(token_hash=cls.hash_token(token)).first()
        if entry and entry.is_valid:
            return entry
        return None

    @property
    def is_valid(self) -> bool:
        """Check if token is still valid (not expired, not used)."""
        if self.used_at is not None:
            return False
        return datetime.utcnow() <= self.expires_at

    @property
    def is_expired(self) -> bool:
        """Check if token has expired."""
        return datetime.utcnow() > self.expires_at

    def to_dict(self):
        """Return dictionary representation (without token!)."""
        return {
            'id': self.id,
            'user_id': self.user_id,
            'expires_at': self.expires_at.isoformat() if self.expires_at else None,
            'used_at': self.used_at.isoformat() if self.used_at else None,
            'is_valid': self.is_valid,
        }
