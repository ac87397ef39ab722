"""Customer model."""
from datetime import datetime

from app import db


class Customer(db.Model):
    """End customer of a shop."""
    __tablename__ = 'customers'

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey('shops.id'), nullable=False, index=True)
    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100), nullable=False)
    phone = db.Column(db.String(50), nullable=False)
    email = db.Column(db.String(120))
    address = db.Column(db.String(200))
    zip_code = db.Column(db.String(20))
    city = db.Column(db.String(100))
    notes = db.Column(db.Text)
    created_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    repairs = db.relationship('Repair', backref='customer', lazy='dynamic')

    def __repr__(self):
        return f'<Customer {self.id}: {self.full_name}>'

    @property
    def full_name(self):
        return f'{self.first_name} {self.last_name}'

    def to_dict(self):
        """Return dictionary representation."""
        return {
            'id': self.id,
            'shop_id': self.shop_id,
            'first_name': self.first_name,
            'last_name': self.last_name,
            'phone': self.phone,
            'email': self.email,
            'address': self.address,
            'zip_code': self.zip_code,
            'city': self.city,
            'notes': self.notes,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
