"""Error catalog: common device faults offered when creating a repair."""
from datetime import datetime

from app import db


# device type name (lower case) -> flag column
DEVICE_TYPE_FLAGS = {
    'smartphone': 'for_smartphone',
    'tablet': 'for_tablet',
    'laptop': 'for_laptop',
    'watch': 'for_smartwatch',
    'smartwatch': 'for_smartwatch',
    'spielekonsole': 'for_gameconsole',
    'gameconsole': 'for_gameconsole',
}


class ErrorCatalogEntry(db.Model):
    """Fault description with the device types it applies to."""
    __tablename__ = 'error_catalog_entries'

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey('shops.id'), nullable=True, index=True)
    error_text = db.Column(db.String(255), nullable=False)
    for_smartphone = db.Column(db.Boolean, default=True, nullable=False)
    for_tablet = db.Column(db.Boolean, default=True, nullable=False)
    for_laptop = db.Column(db.Boolean, default=True, nullable=False)
    for_smartwatch = db.Column(db.Boolean, default=True, nullable=False)
    for_gameconsole = db.Column(db.Boolean, default=True, nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    FLAGS = ('for_smartphone', 'for_tablet', 'for_laptop', 'for_smartwatch', 'for_gameconsole')

    def __repr__(self):
        return f'<ErrorCatalogEntry {self.error_text}>'

    @classmethod
    def flag_for_device_type(cls, device_type: str):
        """Return the flag column for a device type name, or None."""
        if not device_type:
            return None
        name = DEVICE_TYPE_FLAGS.get(device_type.strip().lower())
        return getattr(cls, name) if name else None

    def to_dict(self):
        """Return dictionary representation."""
        data = {
            'id': self.id,
            'shop_id': self.shop_id,
            'error_text': self.error_text,
            'is_active': self.is_active,
        }
        for flag in self.FLAGS:
            data[flag] = getattr(self, flag)
        return data
