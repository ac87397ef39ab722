"""Cross-tenant grants for multi-shop admins.

MultiShopPermission is the consent record between a multi-shop admin and a
shop owner. UserShopAccess is the effective grant checked on every request.
Revoking keeps the rows and sets revoked_at.
"""
from datetime import datetime
from enum import Enum

from app import db


class AccessLevel(str, Enum):
    """Access level of a shop grant."""
    READ = 'read'
    ADMIN = 'admin'
    OWNER = 'owner'

    @classmethod
    def values(cls):
        return [a.value for a in cls]


class UserShopAccess(db.Model):
    """Effective access of a user to a shop."""
    __tablename__ = 'user_shop_access'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    shop_id = db.Column(db.Integer, db.ForeignKey('shops.id'), nullable=False, index=True)
    access_level = db.Column(db.String(20), default=AccessLevel.ADMIN.value, nullable=False)
    granted_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    granted_at = db.Column(db.DateTime, default=datetime.utcnow)
    revoked_at = db.Column(db.DateTime)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    __table_args__ = (
        db.UniqueConstraint('user_id', 'shop_id', name='uq_user_shop_access'),
    )

    user = db.relationship('User', foreign_keys=[user_id],
                           backref=db.backref('shop_access', lazy='dynamic'))
    shop = db.relationship('Shop')
    granted_by_user = db.relationship('User', foreign_keys=[granted_by])

    def __repr__(self):
        return f'<UserShopAccess user={self.user_id} shop={self.shop_id}>'

    @property
    def is_effective(self) -> bool:
        return self.is_active and self.revoked_at is None

    @classmethod
    def effective(cls):
        """Query of grants that are active and not revoked."""
        return cls.query.filter(cls.is_active.is_(True), cls.revoked_at.is_(None))

    def to_dict(self):
        """Return dictionary representation."""
        return {
            'id': self.id,
            'user_id': self.user_id,
            'shop_id': self.shop_id,
            'shop_name': self.shop.name if self.shop else None,
            'access_level': self.access_level,
            'granted_by': self.granted_by,
            'granted_at': self.granted_at.isoformat() if self.granted_at else None,
            'revoked_at': self.revoked_at.isoformat() if self.revoked_at else None,
            'is_active': self.is_active,
        }


class MultiShopPermission(db.Model):
    """Consent of a shop owner for a multi-shop admin.

    granted=False and revoked_at=None is a pending request.
    """
    __tablename__ = 'multi_shop_permissions'

    id = db.Column(db.Integer, primary_key=True)
    multi_shop_admin_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    shop_id = db.Column(db.Integer, db.ForeignKey('shops.id'), nullable=False, index=True)
    shop_owner_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    granted = db.Column(db.Boolean, default=False, nullable=False)
    granted_at = db.Column(db.DateTime)
    revoked_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    multi_shop_admin = db.relationship('User', foreign_keys=[multi_shop_admin_id])
    shop_owner = db.relationship('User', foreign_keys=[shop_owner_id])
    shop = db.relationship('Shop')

    def __repr__(self):
        return f'<MultiShopPermission msa={self.multi_shop_admin_id} shop={self.shop_id}>'

    @property
    def is_pending(self) -> bool:
        return not self.granted and self.revoked_at is None

    @property
    def status(self) -> str:
        if self.revoked_at is not None:
            return 'revoked'
        return 'granted' if self.granted else 'pending'

    def to_dict(self):
        """Return dictionary representation."""
        msa = self.multi_shop_admin
        return {
            'id': self.id,
            'multi_shop_admin_id': self.multi_shop_admin_id,
            'multi_shop_admin': {
                'id': msa.id, 'username': msa.username, 'email': msa.email
            } if msa else None,
            'shop_id': self.shop_id,
            'shop_name': self.shop.name if self.shop else None,
            'shop_owner_id': self.shop_owner_id,
            'granted': self.granted,
            'status': self.status,
            'granted_at': self.granted_at.isoformat() if self.granted_at else None,
            'revoked_at': self.revoked_at.isoformat() if self.revoked_at else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
