"""Repair order model and status values."""
from datetime import datetime
from enum import Enum

from app import db


class RepairStatus(str, Enum):
    """Status values of a repair order."""
    EINGEGANGEN = 'eingegangen'
    IN_REPARATUR = 'in_reparatur'
    ERSATZTEILE_BESTELLEN = 'ersatzteile_bestellen'
    WARTEN_AUF_ERSATZTEILE = 'warten_auf_ersatzteile'
    ERSATZTEIL_EINGETROFFEN = 'ersatzteil_eingetroffen'
    AUSSER_HAUS = 'ausser_haus'
    FERTIG = 'fertig'
    ABGEHOLT = 'abgeholt'

    @classmethod
    def choices(cls):
        """Return choices for form select fields."""
        return [(s.value, cls.get_label(s.value)) for s in cls]

    @classmethod
    def values(cls):
        return [s.value for s in cls]

    @classmethod
    def get_label(cls, value):
        """Get the German label for a status value."""
        labels = {
            cls.EINGEGANGEN.value: 'Eingegangen',
            cls.IN_REPARATUR.value: 'In Reparatur',
            cls.ERSATZTEILE_BESTELLEN.value: 'Ersatzteile bestellen',
            cls.WARTEN_AUF_ERSATZTEILE.value: 'Warten auf Ersatzteile',
            cls.ERSATZTEIL_EINGETROFFEN.value: 'Ersatzteil eingetroffen',
            cls.AUSSER_HAUS.value: 'Außer Haus',
            cls.FERTIG.value: 'Fertig / Abholbereit',
            cls.ABGEHOLT.value: 'Abgeholt',
        }
        return labels.get(value, value)

    @classmethod
    def get_color(cls, value):
        """Get the Bootstrap color class for a status."""
        colors = {
            cls.EINGEGANGEN.value: 'secondary',
            cls.IN_REPARATUR.value: 'primary',
            cls.ERSATZTEILE_BESTELLEN.value: 'warning',
            cls.WARTEN_AUF_ERSATZTEILE.value: 'warning',
            cls.ERSATZTEIL_EINGETROFFEN.value: 'info',
            cls.AUSSER_HAUS.value: 'dark',
            cls.FERTIG.value: 'success',
            cls.ABGEHOLT.value: 'light',
        }
        return colors.get(value, 'secondary')

    @classmethod
    def offene_status(cls):
        """Status values of repairs that are still in the shop."""
        return [s.value for s in cls if s not in (cls.FERTIG, cls.ABGEHOLT)]

    @classmethod
    def ersatzteil_status(cls):
        """Status values driven by the spare parts of a repair."""
        return [
            cls.ERSATZTEILE_BESTELLEN.value,
            cls.WARTEN_AUF_ERSATZTEILE.value,
            cls.ERSATZTEIL_EINGETROFFEN.value,
        ]


class Repair(db.Model):
    """Repair order for a customer device."""
    __tablename__ = 'repairs'

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey('shops.id'), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey('customers.id'), nullable=False)
    order_code = db.Column(db.String(20), unique=True, index=True)
    device_type = db.Column(db.String(50), nullable=False)
    brand = db.Column(db.String(100), nullable=False)
    model = db.Column(db.String(100), nullable=False)
    serial_number = db.Column(db.String(100))
    issue = db.Column(db.Text, nullable=False)
    estimated_cost = db.Column(db.Numeric(10, 2))
    deposit_amount = db.Column(db.Numeric(10, 2))
    status = db.Column(db.String(30), default=RepairStatus.EINGEGANGEN.value,
                       nullable=False, index=True)
    notes = db.Column(db.Text)
    technician_note = db.Column(db.Text)
    creation_month = db.Column(db.String(7), index=True)
    status_updated_at = db.Column(db.DateTime)
    created_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    spare_parts = db.relationship('SparePart', backref='repair', lazy='dynamic',
                                  cascade='all, delete-orphan')
    email_history = db.relationship('EmailHistory', backref='repair', lazy='dynamic',
                                    cascade='all, delete-orphan')

    def __repr__(self):
        return f'<Repair {self.order_code}>'

    @property
    def status_label(self):
        return RepairStatus.get_label(self.status)

    @property
    def device_label(self):
        """Brand and model as shown on documents."""
        return f'{self.brand} {self.model}'.strip()

    def to_dict(self, include_customer=False):
        """Return dictionary representation."""
        data = {
            'id': self.id,
            'shop_id': self.shop_id,
            'customer_id': self.customer_id,
            'order_code': self.order_code,
            'device_type': self.device_type,
            'brand': self.brand,
            'model': self.model,
            'serial_number': self.serial_number,
            'issue': self.issue,
            'estimated_cost': str(self.estimated_cost) if self.estimated_cost is not None else None,
            'deposit_amount': str(self.deposit_amount) if self.deposit_amount is not None else None,
            'status': self.status,
            'status_label': self.status_label,
            'notes': self.notes,
            'technician_note': self.technician_note,
            'creation_month': self.creation_month,
            'status_updated_at': self.status_updated_at.isoformat() if self.status_updated_at else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
        if include_customer and self.customer:
            data['customer'] = self.customer.to_dict()
        return data
