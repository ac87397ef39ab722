"""Config (Key-Value Store) Model for platform-wide settings."""
from datetime import datetime
from app import db


# key, default value, beschreibung
CONFIG_DEFAULTS = [
    # System SMTP (password reset, SMTP fallback for shops without own server)
    ('smtp_host', '', 'System-SMTP Server'),
    ('smtp_port', '587', 'System-SMTP Port'),
    ('smtp_user', '', 'System-SMTP Benutzer'),
    ('smtp_password', '', 'System-SMTP Passwort'),
    ('smtp_sender_email', 'noreply@handyshop-verwaltung.at', 'Absender E-Mail-Adresse'),
    ('smtp_sender_name', 'Handyshop Verwaltung', 'Absender Name'),
    # Brevo REST API for system mails
    ('brevo_api_key', '', 'Brevo API Key für System-E-Mails'),
    # Branding defaults
    ('brand_app_title', 'Handyshop Verwaltung', 'App-Titel'),
    ('brand_primary_color', '#2563eb', 'Standard-Primärfarbe (Hex)'),
    ('brand_logo', '', 'Standard-Logo (leer = kein Logo)'),
    # S3 Storage for logos
    ('s3_enabled', 'false', 'S3 Storage aktivieren (true/false)'),
    ('s3_endpoint', '', 'S3 Endpoint URL'),
    ('s3_access_key', '', 'S3 Access Key'),
    ('s3_secret_key', '', 'S3 Secret Key (Base64-kodiert)'),
    ('s3_bucket', 'handyshop-logos', 'S3 Bucket Name'),
]


class Config(db.Model):
    """Configuration key-value store."""

    __tablename__ = 'config'

    id = db.Column(db.Integer, primary_key=True)
    key = db.Column(db.String(50), unique=True, nullable=False, index=True)
    value = db.Column(db.Text)
    beschreibung = db.Column(db.String(255))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, onupdate=datetime.utcnow)

    def __repr__(self):
        return f'<Config {self.key}>'

    @staticmethod
    def get_value(key, default=None):
        """Get configuration value by key. Empty values count as unset."""
        entry = Config.query.filter_by(key=key).first()
        return entry.value if entry and entry.value not in (None, '') else default

    @staticmethod
    def get_int(key, default: int = 0) -> int:
        """Get configuration value as integer."""
        try:
            return int(Config.get_value(key, default))
        except (TypeError, ValueError):
            return default

    @staticmethod
    def set_value(key, value, beschreibung=None, commit=True):
        """Set configuration value."""
        entry = Config.query.filter_by(key=key).first()
        if entry:
            entry.value = value
            if beschreibung:
                entry.beschreibung = beschreibung
        else:
            entry = Config(key=key, value=value, beschreibung=beschreibung)
            db.session.add(entry)
        if commit:
            db.session.commit()
        return entry
