"""Rolle (Role) model."""
from datetime import datetime

from app import db


# name, beschreibung
ROLLEN = [
    ('superadmin', 'Plattform-Betreiber, Zugriff auf Shopdaten nur mit Freigabe'),
    ('multi_shop_admin', 'Verwaltet mehrere freigegebene Shops'),
    ('owner', 'Inhaber eines Shops'),
    ('employee', 'Mitarbeiter eines Shops'),
    ('kiosk', 'Kiosk-Gerät für Kundenaufnahme'),
]


class Rolle(db.Model):
    """Role model for user access control."""
    __tablename__ = 'rolle'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(30), unique=True, nullable=False)
    beschreibung = db.Column(db.String(100))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    # Relationship to User
    users = db.relationship('User', backref='rolle_obj', lazy='dynamic')

    def __repr__(self):
        return f'<Rolle {self.name}>'

    @classmethod
    def get_by_name(cls, name: str) -> 'Rolle':
        """Return the role with this name, creating it when missing."""
        rolle = cls.query.filter_by(name=name).first()
        if rolle is None:
            beschreibung = dict(ROLLEN).get(name)
            rolle = cls(name=name, beschreibung=beschreibung)
            db.session.add(rolle)
            db.session.flush()
        return rolle

    def to_dict(self):
        """Return dictionary representation."""
        return {
            'id': self.id,
            'name': self.name,
            'beschreibung': self.beschreibung,
        }
