"""Support access log for the DSGVO approval workflow.

A superadmin may only look at shop data after the shop owner approved a
request. Approved access is limited in time and every touched entity is
recorded on the log row.
"""
from datetime import datetime, timedelta
from enum import Enum

from app import db


class SupportAccessStatus(str, Enum):
    """Status values of a support access request."""
    PENDING = 'pending'
    APPROVED = 'approved'
    REJECTED = 'rejected'
    EXPIRED = 'expired'
    COMPLETED = 'completed'

    @classmethod
    def get_label(cls, value):
        """Get the German label for a status value."""
        labels = {
            cls.PENDING.value: 'Ausstehend',
            cls.APPROVED.value: 'Genehmigt',
            cls.REJECTED.value: 'Abgelehnt',
            cls.EXPIRED.value: 'Abgelaufen',
            cls.COMPLETED.value: 'Beendet',
        }
        return labels.get(value, value)


class SupportAccessLog(db.Model):
    """Request and audit record of a superadmin support session."""
    __tablename__ = 'support_access_logs'

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey('shops.id'), nullable=False, index=True)
    superadmin_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    reason = db.Column(db.Text, nullable=False)
    access_type = db.Column(db.String(30), default='all', nullable=False)
    status = db.Column(db.String(20), default=SupportAccessStatus.PENDING.value,
                       nullable=False, index=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    requested_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    responded_at = db.Column(db.DateTime)
    responding_user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    started_at = db.Column(db.DateTime)
    ended_at = db.Column(db.DateTime)
    # Comma separated list like "repair:12,customer:7"
    affected_entities = db.Column(db.Text)

    shop = db.relationship('Shop')
    superadmin = db.relationship('User', foreign_keys=[superadmin_id])
    responding_user = db.relationship('User', foreign_keys=[responding_user_id])

    def __repr__(self):
        return f'<SupportAccessLog {self.id}: shop={self.shop_id} {self.status}>'

    def expires_at(self, minutes: int):
        """End of the access window, or None if not started."""
        if not self.started_at:
            return None
        return self.started_at + timedelta(minutes=minutes)

    def is_valid(self, minutes: int, now: datetime = None) -> bool:
        """Check if this row currently grants access."""
        if not self.is_active or self.status != SupportAccessStatus.APPROVED.value:
            return False
        now = now or datetime.utcnow()
        return self.started_at is not None and now < self.expires_at(minutes)

    def add_affected_entity(self, entity_type: str, entity_id: int) -> bool:
        """Record an accessed entity once. Returns True if it was new."""
        token = f'{entity_type}:{entity_id}'
        entries = self.affected_entities.split(',') if self.affected_entities else []
        if token not in entries:
            entries.append(token)
            self.affected_entities = ','.join(entries)
            return True
        return False

    def to_dict(self):
        """Return dictionary representation."""
        return {
            'id': self.id,
            'shop_id': self.shop_id,
            'shop_name': self.shop.name if self.shop else None,
            'superadmin_id': self.superadmin_id,
            'superadmin_name': self.superadmin.full_name if self.superadmin else None,
            'reason': self.reason,
            'access_type': self.access_type,
            'status': self.status,
            'status_label': SupportAccessStatus.get_label(self.status),
            'is_active': self.is_active,
            'requested_at': self.requested_at.isoformat() if self.requested_at else None,
            'responded_at': self.responded_at.isoformat() if self.responded_at else None,
            'started_at': self.started_at.isoformat() if self.started_at else None,
            'ended_at': self.ended_at.isoformat() if self.ended_at else None,
            'affected_entities': self.affected_entities.split(',') if self.affected_entities else [],
        }
