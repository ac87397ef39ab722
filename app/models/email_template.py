"""Email template and email history models.

Templates are stored in the database with Jinja2 placeholders so shops can
customize their customer notifications without code changes.
"""
from datetime import datetime

from app import db


class EmailTemplate(db.Model):
    """Database-stored email template with Jinja2 placeholders.

    Templates support these standard placeholders:
    - {{ kundenname }} - Customer full name
    - {{ geraet }} - Device model
    - {{ hersteller }} - Device brand
    - {{ auftragsnummer }} - Repair order code
    - {{ fehler }} - Reported issue
    - {{ kostenvoranschlag }} - Estimated cost
    - {{ geschaeftsname }} - Shop business name
    - {{ abholzeit }} - Pickup time hint
    - {{ oeffnungszeiten }} - Opening hours of the shop

    Templates without shop_id are system templates. They are visible to all
    shops and can only be changed by a superadmin.
    """
    __tablename__ = 'email_templates'

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey('shops.id'), nullable=True, index=True)

    # Key for looking up templates (e.g., 'reparatur_fertig')
    schluessel = db.Column(db.String(50), nullable=False, index=True)

    # Human-readable name for the UI
    name = db.Column(db.String(100), nullable=False)

    # Email subject line (supports Jinja2 placeholders)
    betreff = db.Column(db.String(200), nullable=False)

    # HTML body (supports Jinja2 placeholders)
    body_html = db.Column(db.Text, nullable=False)

    # Plain text fallback (optional, supports Jinja2 placeholders)
    body_text = db.Column(db.Text, nullable=True)

    # 'customer' for shop notifications, 'system' for platform mails
    kategorie = db.Column(db.String(20), default='customer', nullable=False)

    aktiv = db.Column(db.Boolean, default=True, nullable=False)

    erstellt_am = db.Column(db.DateTime, default=datetime.utcnow)
    aktualisiert_am = db.Column(db.DateTime, onupdate=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint('shop_id', 'schluessel', name='uq_email_template_shop_key'),
    )

    def __repr__(self):
        return f'<EmailTemplate {self.schluessel} shop={self.shop_id}>'

    @property
    def ist_system(self) -> bool:
        return self.shop_id is None

    @classmethod
    def get_by_key(cls, schluessel: str, shop_id: int = None) -> 'EmailTemplate':
        """Get an active template by its key.

        The shop's own template wins over the system template.

        Args:
            schluessel: Template key (e.g., 'reparatur_fertig')
            shop_id: Shop whose template should be preferred

        Returns:
            EmailTemplate if found and active, None otherwise
        """
        if shop_id is not None:
            template = cls.query.filter_by(
                shop_id=shop_id, schluessel=schluessel, aktiv=True
            ).first()
            if template:
                return template
        return cls.query.filter_by(shop_id=None, schluessel=schluessel, aktiv=True).first()

    @classmethod
    def get_visible(cls, shop_id: int) -> list:
        """Get the shop's own templates plus all system templates."""
        return cls.query.filter(
            db.or_(cls.shop_id == shop_id, cls.shop_id.is_(None))
        ).order_by(cls.name).all()

    def to_dict(self) -> dict:
        """Return dictionary representation."""
        return {
            'id': self.id,
            'shop_id': self.shop_id,
            'schluessel': self.schluessel,
            'name': self.name,
            'betreff': self.betreff,
            'body_html': self.body_html,
            'body_text': self.body_text,
            'kategorie': self.kategorie,
            'aktiv': self.aktiv,
            'ist_system': self.ist_system,
            'erstellt_am': self.erstellt_am.isoformat() if self.erstellt_am else None,
            'aktualisiert_am': self.aktualisiert_am.isoformat() if self.aktualisiert_am else None,
        }


class EmailHistory(db.Model):
    """Record of an email sent to a customer."""
    __tablename__ = 'email_history'

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey('shops.id'), nullable=False, index=True)
    repair_id = db.Column(db.Integer, db.ForeignKey('repairs.id', ondelete='CASCADE'),
                          nullable=True, index=True)
    email_template_id = db.Column(db.Integer, db.ForeignKey('email_templates.id'), nullable=True)
    recipient = db.Column(db.String(120), nullable=False)
    subject = db.Column(db.String(200), nullable=False)
    # 'success' or 'failed'
    status = db.Column(db.String(20), nullable=False)
    error = db.Column(db.Text)
    sent_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)

    template = db.relationship('EmailTemplate')

    def __repr__(self):
        return f'<EmailHistory {self.id}: {self.recipient} ({self.status})>'

    def to_dict(self):
        """Return dictionary representation."""
        return {
            'id': self.id,
            'repair_id': self.repair_id,
            'email_template_id': self.email_template_id,
            'template_name': self.template.name if self.template else None,
            'recipient': self.recipient,
            'subject': self.subject,
            'status': self.status,
            'error': self.error,
            'sent_at': self.sent_at.isoformat() if self.sent_at else None,
        }
