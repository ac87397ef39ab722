"""Shop (tenant) model."""
from datetime import datetime
from enum import Enum

from app import db


class ShopStatus(str, Enum):
    """Lifecycle states of a shop account."""
    ACTIVE = 'active'
    SUSPENDED = 'suspended'
    TERMINATED = 'terminated'

    @classmethod
    def choices(cls):
        """Return choices for form select fields."""
        labels = {
            cls.ACTIVE: 'Aktiv',
            cls.SUSPENDED: 'Gesperrt',
            cls.TERMINATED: 'Gekündigt',
        }
        return [(s.value, labels[s]) for s in cls]


class PricingPlan(str, Enum):
    """Pricing plans. Only the basic plan limits repairs per month."""
    BASIC = 'basic'
    PROFESSIONAL = 'professional'
    ENTERPRISE = 'enterprise'

    @classmethod
    def choices(cls):
        """Return choices for form select fields."""
        return [(p.value, p.value.capitalize()) for p in cls]

    @classmethod
    def is_limited(cls, value) -> bool:
        """Check if the plan has a monthly repair quota."""
        return value == cls.BASIC.value


class Shop(db.Model):
    """A repair shop. Every tenant row references one shop."""
    __tablename__ = 'shops'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    status = db.Column(db.String(20), default=ShopStatus.ACTIVE.value, nullable=False)
    pricing_plan = db.Column(db.String(20), default=PricingPlan.BASIC.value, nullable=False)
    trial_ends_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    users = db.relationship('User', backref='shop', lazy='dynamic',
                            foreign_keys='User.shop_id')

    def __repr__(self):
        return f'<Shop {self.id}: {self.name}>'

    @property
    def is_active(self) -> bool:
        return self.status == ShopStatus.ACTIVE.value

    @property
    def owner(self):
        """Return the owner account of this shop."""
        from app.models.rolle import Rolle
        from app.models.user import User
        return User.query.join(Rolle, User.rolle_id == Rolle.id).filter(
            User.shop_id == self.id,
            Rolle.name == 'owner'
        ).first()

    def to_dict(self):
        """Return dictionary representation."""
        return {
            'id': self.id,
            'name': self.name,
            'status': self.status,
            'pricing_plan': self.pricing_plan,
            'trial_ends_at': self.trial_ends_at.isoformat() if self.trial_ends_at else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
