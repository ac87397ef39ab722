"""Spare part model and order status values."""
from datetime import datetime
from enum import Enum

from app import db


class SparePartStatus(str, Enum):
    """Order status of a spare part."""
    BESTELLEN = 'bestellen'
    BESTELLT = 'bestellt'
    EINGETROFFEN = 'eingetroffen'
    ERLEDIGT = 'erledigt'

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
            cls.BESTELLEN.value: 'Zu bestellen',
            cls.BESTELLT.value: 'Bestellt',
            cls.EINGETROFFEN.value: 'Eingetroffen',
            cls.ERLEDIGT.value: 'Erledigt',
        }
        return labels.get(value, value)

    @classmethod
    def archivierbar(cls):
        """Status values that allow archiving."""
        return [cls.EINGETROFFEN.value, cls.ERLEDIGT.value]


class SparePart(db.Model):
    """A part ordered for a repair."""
    __tablename__ = 'spare_parts'

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey('shops.id'), nullable=False, index=True)
    repair_id = db.Column(db.Integer, db.ForeignKey('repairs.id', ondelete='CASCADE'),
                          nullable=False, index=True)
    part_name = db.Column(db.String(200), nullable=False)
    supplier = db.Column(db.String(200))
    cost = db.Column(db.Numeric(10, 2))
    status = db.Column(db.String(20), default=SparePartStatus.BESTELLEN.value, nullable=False)
    order_date = db.Column(db.DateTime)
    delivery_date = db.Column(db.DateTime)
    notes = db.Column(db.Text)
    archived = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f'<SparePart {self.id}: {self.part_name} ({self.status})>'

    def to_dict(self):
        """Return dictionary representation."""
        return {
            'id': self.id,
            'shop_id': self.shop_id,
            'repair_id': self.repair_id,
            'part_name': self.part_name,
            'supplier': self.supplier,
            'cost': str(self.cost) if self.cost is not None else None,
            'status': self.status,
            'status_label': SparePartStatus.get_label(self.status),
            'order_date': self.order_date.isoformat() if self.order_date else None,
            'delivery_date': self.delivery_date.isoformat() if self.delivery_date else None,
            'notes': self.notes,
            'archived': self.archived,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
