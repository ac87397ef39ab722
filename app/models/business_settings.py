"""Per-shop business settings (company data, branding, SMTP, printing)."""
from datetime import datetime

from app import db


class BusinessSettings(db.Model):
    """Company data and preferences of a shop. One row per shop."""
    __tablename__ = 'business_settings'

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey('shops.id'), unique=True, nullable=False)

    # Company data
    business_name = db.Column(db.String(150), nullable=False)
    owner_first_name = db.Column(db.String(100))
    owner_last_name = db.Column(db.String(100))
    tax_id = db.Column(db.String(50))
    vat_number = db.Column(db.String(50))
    company_slogan = db.Column(db.String(200))
    street_address = db.Column(db.String(200))
    city = db.Column(db.String(100))
    zip_code = db.Column(db.String(20))
    country = db.Column(db.String(100), default='Österreich')
    phone = db.Column(db.String(50))
    email = db.Column(db.String(120))
    website = db.Column(db.String(200))
    opening_hours = db.Column(db.Text)
    review_link = db.Column(db.String(300))
    repair_terms = db.Column(db.Text)

    # Branding
    logo_path = db.Column(db.String(255))
    color_theme = db.Column(db.String(20), default='blue')

    # Printing
    receipt_width = db.Column(db.String(10), default='80mm')
    label_format = db.Column(db.String(20), default='portrait')
    label_width = db.Column(db.Integer, default=32)
    label_height = db.Column(db.Integer, default=57)

    # Shop SMTP for customer emails
    smtp_sender_name = db.Column(db.String(100))
    smtp_host = db.Column(db.String(150))
    smtp_user = db.Column(db.String(150))
    smtp_password = db.Column(db.String(255))
    smtp_port = db.Column(db.Integer, default=587)

    # Accounts
    kiosk_pin = db.Column(db.String(10), default='1234')
    max_employees = db.Column(db.Integer, default=2, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    shop = db.relationship('Shop', backref=db.backref('business_settings', uselist=False))

    # Fields an owner may change through the API
    EDITABLE_FIELDS = (
        'business_name', 'owner_first_name', 'owner_last_name', 'tax_id', 'vat_number',
        'company_slogan', 'street_address', 'city', 'zip_code', 'country', 'phone',
        'email', 'website', 'opening_hours', 'review_link', 'repair_terms',
        'color_theme', 'receipt_width', 'label_format', 'label_width', 'label_height',
        'smtp_sender_name', 'smtp_host', 'smtp_user', 'smtp_password', 'smtp_port',
        'kiosk_pin', 'max_employees',
    )
    PRIVATE_FIELDS = ('kiosk_pin', 'smtp_host', 'smtp_user', 'smtp_port')

    def __repr__(self):
        return f'<BusinessSettings shop={self.shop_id}: {self.business_name}>'

    @property
    def has_smtp(self) -> bool:
        """Check if shop SMTP is configured."""
        return bool(self.smtp_host and self.smtp_user and self.smtp_password)

    @property
    def address_lines(self) -> list:
        """Address as printed on documents."""
        lines = []
        if self.street_address:
            lines.append(self.street_address)
        city_line = ' '.join(p for p in (self.zip_code, self.city) if p)
        if city_line:
            lines.append(city_line)
        return lines

    def to_dict(self, include_private=True):
        """Return dictionary representation (without SMTP password).

        Without include_private the kiosk PIN and SMTP access data are left out.
        """
        data = {name: getattr(self, name) for name in self.EDITABLE_FIELDS}
        data.pop('smtp_password')
        if not include_private:
            for name in self.PRIVATE_FIELDS:
                data.pop(name)
        data.update({
            'id': self.id,
            'shop_id': self.shop_id,
            'logo_path': self.logo_path,
            'has_smtp_password': bool(self.smtp_password),
        })
        return data
