"""Cost estimate (Kostenvoranschlag) models."""
from datetime import datetime
from decimal import Decimal
from enum import Enum

from app import db


class CostEstimateStatus(str, Enum):
    """Status values of a cost estimate."""
    OFFEN = 'offen'
    GESENDET = 'gesendet'
    ANGENOMMEN = 'angenommen'
    ABGELEHNT = 'abgelehnt'
    ABGELAUFEN = 'abgelaufen'

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
            cls.OFFEN.value: 'Offen',
            cls.GESENDET.value: 'Gesendet',
            cls.ANGENOMMEN.value: 'Angenommen',
            cls.ABGELEHNT.value: 'Abgelehnt',
            cls.ABGELAUFEN.value: 'Abgelaufen',
        }
        return labels.get(value, value)


class CostEstimate(db.Model):
    """Cost estimate for a device repair.

    Amounts are gross prices. ``total`` is the sum of the item totals,
    ``subtotal`` and ``tax_amount`` are derived from it.
    """
    __tablename__ = 'cost_estimates'

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey('shops.id'), nullable=False, index=True)
    reference_number = db.Column(db.String(20), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey('customers.id'), nullable=False)
    title = db.Column(db.String(200))
    device_type = db.Column(db.String(50), nullable=False)
    brand = db.Column(db.String(100), nullable=False)
    model = db.Column(db.String(100), nullable=False)
    serial_number = db.Column(db.String(100))
    issue = db.Column(db.Text, nullable=False)
    description = db.Column(db.Text)
    subtotal = db.Column(db.Numeric(10, 2), default=Decimal('0.00'), nullable=False)
    tax_rate = db.Column(db.Numeric(5, 2), default=Decimal('20'), nullable=False)
    tax_amount = db.Column(db.Numeric(10, 2), default=Decimal('0.00'), nullable=False)
    total = db.Column(db.Numeric(10, 2), default=Decimal('0.00'), nullable=False)
    status = db.Column(db.String(20), default=CostEstimateStatus.OFFEN.value, nullable=False)
    valid_until = db.Column(db.DateTime)
    accepted_at = db.Column(db.DateTime)
    converted_to_repair = db.Column(db.Boolean, default=False, nullable=False)
    repair_id = db.Column(db.Integer, db.ForeignKey('repairs.id'), nullable=True)
    created_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint('shop_id', 'reference_number', name='uq_cost_estimate_reference'),
    )

    customer = db.relationship('Customer', backref=db.backref('cost_estimates', lazy='dynamic'))
    repair = db.relationship('Repair', backref=db.backref('cost_estimate', uselist=False))
    items = db.relationship('CostEstimateItem', backref='cost_estimate',
                            order_by='CostEstimateItem.position',
                            cascade='all, delete-orphan')

    def __repr__(self):
        return f'<CostEstimate {self.reference_number}>'

    def to_dict(self, include_items=False):
        """Return dictionary representation."""
        data = {
            'id': self.id,
            'shop_id': self.shop_id,
            'reference_number': self.reference_number,
            'customer_id': self.customer_id,
            'title': self.title,
            'device_type': self.device_type,
            'brand': self.brand,
            'model': self.model,
            'serial_number': self.serial_number,
            'issue': self.issue,
            'description': self.description,
            'subtotal': str(self.subtotal),
            'tax_rate': str(self.tax_rate),
            'tax_amount': str(self.tax_amount),
            'total': str(self.total),
            'status': self.status,
            'status_label': CostEstimateStatus.get_label(self.status),
            'valid_until': self.valid_until.isoformat() if self.valid_until else None,
            'converted_to_repair': self.converted_to_repair,
            'repair_id': self.repair_id,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
        if include_items:
            data['items'] = [item.to_dict() for item in self.items]
        return data


class CostEstimateItem(db.Model):
    """Line item of a cost estimate."""
    __tablename__ = 'cost_estimate_items'

    id = db.Column(db.Integer, primary_key=True)
    cost_estimate_id = db.Column(
        db.Integer, db.ForeignKey('cost_estimates.id', ondelete='CASCADE'),
        nullable=False, index=True
    )
    position = db.Column(db.Integer, nullable=False)
    description = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, default=1, nullable=False)
    unit_price = db.Column(db.Numeric(10, 2), nullable=False)
    total_price = db.Column(db.Numeric(10, 2), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f'<CostEstimateItem {self.position}: {self.description}>'

    def to_dict(self):
        """Return dictionary representation."""
        return {
            'id': self.id,
            'cost_estimate_id': self.cost_estimate_id,
            'position': self.position,
            'description': self.description,
            'quantity': self.quantity,
            'unit_price': str(self.unit_price),
            'total_price': str(self.total_price),
        }
