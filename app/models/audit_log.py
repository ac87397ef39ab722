"""AuditLog model for tracking important business events."""
from datetime import datetime
from app import db


# Module codes accepted by the audit log
MODULE = (
    'system', 'auth', 'kunden', 'reparaturen', 'ersatzteile', 'kostenvoranschlaege',
    'katalog', 'einstellungen', 'email', 'mitarbeiter', 'multi_shop', 'support',
    'superadmin',
)


class AuditLog(db.Model):
    """Audit log entry for tracking important events.

    Events are categorized by importance (niedrig, mittel, hoch, kritisch)
    and can be filtered by module, shop, user, date range, etc.

    Entries outlive their user. Databases that do not enforce the foreign
    key keep a dangling user_id, shown as "Gelöschter Benutzer (ID: X)".
    """
    __tablename__ = 'audit_log'

    id = db.Column(db.Integer, primary_key=True)
    timestamp = db.Column(db.DateTime, default=datetime.utcnow, index=True, nullable=False)

    # Which tenant?
    shop_id = db.Column(db.Integer, db.ForeignKey('shops.id'), nullable=True, index=True)

    # Who performed the action?
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='SET NULL'), nullable=True)
    user = db.relationship('User', backref=db.backref('audit_logs', lazy='dynamic', passive_deletes=True))

    # In which module?
    modul = db.Column(db.String(30), nullable=False, index=True)

    # What happened?
    aktion = db.Column(db.String(100), nullable=False, index=True)
    details = db.Column(db.Text, nullable=True)

    # How important?
    # Values: niedrig, mittel, hoch, kritisch
    wichtigkeit = db.Column(db.String(20), default='niedrig', index=True, nullable=False)

    # Which entity was affected?
    entity_type = db.Column(db.String(50), nullable=True)  # e.g. 'Repair', 'Customer'
    entity_id = db.Column(db.Integer, nullable=True)

    # Additional metadata
    ip_adresse = db.Column(db.String(45), nullable=True)  # IPv6 compatible

    def __repr__(self):
        return f'<AuditLog {self.id}: {self.aktion} @ {self.timestamp}>'

    @property
    def user_display(self) -> str:
        """Get display name for user, handling deleted users."""
        if self.user:
            return self.user.full_name
        elif self.user_id:
            return f"Gelöschter Benutzer (ID: {self.user_id})"
        else:
            return "System"

    def to_dict(self):
        """Return dictionary representation."""
        return {
            'id': self.id,
            'timestamp': self.timestamp.isoformat() if self.timestamp else None,
            'shop_id': self.shop_id,
            'user_id': self.user_id,
            'user': self.user_display,
            'modul': self.modul,
            'aktion': self.aktion,
            'details': self.details,
            'wichtigkeit': self.wichtigkeit,
            'entity_type': self.entity_type,
            'entity_id': self.entity_id,
        }
