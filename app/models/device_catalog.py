"""Device catalog models: device types, brands and models.

Rows without shop_id belong to the global catalog maintained by the
superadmin. Rows with shop_id are additions of a single shop.
"""
from datetime import datetime

from app import db


class CatalogMixin:
    """Shared helpers for global and shop-scoped catalog rows."""

    @property
    def is_global(self) -> bool:
        return self.shop_id is None

    @classmethod
    def visible_for(cls, shop_id):
        """Query global rows plus rows of the given shop."""
        return cls.query.filter(db.or_(cls.shop_id.is_(None), cls.shop_id == shop_id))


class DeviceType(CatalogMixin, db.Model):
    """Device type, e.g. Smartphone or Tablet."""
    __tablename__ = 'device_types'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(50), nullable=False)
    shop_id = db.Column(db.Integer, db.ForeignKey('shops.id'), nullable=True, index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    brands = db.relationship('Brand', backref='device_type', lazy='dynamic')

    def __repr__(self):
        return f'<DeviceType {self.name}>'

    def to_dict(self):
        """Return dictionary representation."""
        return {
            'id': self.id,
            'name': self.name,
            'shop_id': self.shop_id,
            'is_global': self.is_global,
        }


class Brand(CatalogMixin, db.Model):
    """Manufacturer for a device type."""
    __tablename__ = 'brands'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    device_type_id = db.Column(db.Integer, db.ForeignKey('device_types.id'), nullable=False)
    shop_id = db.Column(db.Integer, db.ForeignKey('shops.id'), nullable=True, index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    models = db.relationship('DeviceModel', backref='brand', lazy='dynamic',
                             cascade='all, delete-orphan')

    def __repr__(self):
        return f'<Brand {self.name}>'

    def to_dict(self):
        """Return dictionary representation."""
        return {
            'id': self.id,
            'name': self.name,
            'device_type_id': self.device_type_id,
            'device_type': self.device_type.name if self.device_type else None,
            'shop_id': self.shop_id,
            'is_global': self.is_global,
        }


class DeviceModel(CatalogMixin, db.Model):
    """Concrete device model of a brand."""
    __tablename__ = 'models'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(150), nullable=False)
    brand_id = db.Column(db.Integer, db.ForeignKey('brands.id'), nullable=False, index=True)
    device_type_id = db.Column(db.Integer, db.ForeignKey('device_types.id'), nullable=True)
    shop_id = db.Column(db.Integer, db.ForeignKey('shops.id'), nullable=True, index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f'<DeviceModel {self.name}>'

    def to_dict(self):
        """Return dictionary representation."""
        return {
            'id': self.id,
            'name': self.name,
            'brand_id': self.brand_id,
            'device_type_id': self.device_type_id,
            'shop_id': self.shop_id,
            'is_global': self.is_global,
        }
