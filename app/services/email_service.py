"""E-Mail Service for customer notifications and system mails.

Shops send customer emails through their own SMTP server (BusinessSettings).
Shops without SMTP fall back to the system SMTP server (Config). System mails
(password reset) use the system SMTP server or the Brevo REST API.

Every customer email sent for a repair is recorded in EmailHistory.
"""
import smtplib
from dataclasses import dataclass
from datetime import datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr
from typing import Optional

import requests
from flask import current_app

from app import db
from app.models import BusinessSettings, Config, EmailHistory
from app.services.email_template_service import get_email_template_service


@dataclass
class EmailResult:
    """Result of an email send operation."""
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


@dataclass
class SmtpSettings:
    """Connection data of an SMTP server."""
    host: str
    port: int
    user: str
    password: str
    sender_email: str
    sender_name: str

    @property
    def use_ssl(self) -> bool:
        return self.port == 465


class BrevoService:
    """Sends system emails via the Brevo REST API.

    Config keys (stored in Config model):
    - brevo_api_key: Brevo API key
    - smtp_sender_email / smtp_sender_name: Sender
    """

    BREVO_API_URL = 'https://api.brevo.com/v3/smtp/email'

    @property
    def is_configured(self) -> bool:
        return bool(Config.get_value('brevo_api_key'))

    def send(self, to_email: str, subject: str, html_content: str,
             text_content: str = None) -> EmailResult:
        """Send an email via Brevo API."""
        api_key = Config.get_value('brevo_api_key')
        if not api_key:
            return EmailResult(success=False, error='Brevo API-Key nicht konfiguriert')

        headers = {
            'accept': 'application/json',
            'api-key': api_key,
            'content-type': 'application/json'
        }
        payload = {
            'sender': {
                'name': Config.get_value('smtp_sender_name', 'Handyshop Verwaltung'),
                'email': Config.get_value('smtp_sender_email', 'noreply@handyshop-verwaltung.at')
            },
            'to': [{'email': to_email}],
            'subject': subject,
            'htmlContent': html_content
        }
        if text_content:
            payload['textContent'] = text_content

        try:
            response = requests.post(self.BREVO_API_URL, headers=headers, json=payload, timeout=30)
            if response.status_code == 201:
                return EmailResult(success=True, message_id=response.json().get('messageId'))
            error_msg = f'Brevo API Fehler: {response.status_code}'
            try:
                error_msg = response.json().get('message', error_msg)
            except ValueError:
                pass
            return EmailResult(success=False, error=error_msg)
        except requests.Timeout:
            return EmailResult(success=False, error='Brevo API Timeout')
        except requests.RequestException as e:
            return EmailResult(success=False, error=f'Netzwerkfehler: {str(e)}')


class EmailService:
    """Sends emails over SMTP with per-shop server settings."""

    def __init__(self):
        self.brevo = BrevoService()

    def get_system_smtp(self) -> Optional[SmtpSettings]:
        """System SMTP settings from the Config table, or None."""
        host = Config.get_value('smtp_host')
        if not host:
            return None
        return SmtpSettings(
            host=host,
            port=Config.get_int('smtp_port', 587),
            user=Config.get_value('smtp_user', ''),
            password=Config.get_value('smtp_password', ''),
            sender_email=Config.get_value('smtp_sender_email', 'noreply@handyshop-verwaltung.at'),
            sender_name=Config.get_value('smtp_sender_name', 'Handyshop Verwaltung'),
        )

    def get_shop_smtp(self, shop_id: int) -> Optional[SmtpSettings]:
        """SMTP settings of a shop, falling back to the system server."""
        settings = BusinessSettings.query.filter_by(shop_id=shop_id).first()
        if settings and settings.has_smtp:
            return SmtpSettings(
                host=settings.smtp_host,
                port=settings.smtp_port or 587,
                user=settings.smtp_user,
                password=settings.smtp_password,
                sender_email=settings.email or settings.smtp_user,
                sender_name=settings.smtp_sender_name or settings.business_name,
            )
        system = self.get_system_smtp()
        if system and settings:
            # Customers should see the shop as sender, replies go to the shop
            system.sender_name = settings.smtp_sender_name or settings.business_name
        return system

    def _build_message(self, smtp: SmtpSettings, to_email: str, subject: str,
                       html: str, text: str = None, reply_to: str = None) -> MIMEMultipart:
        msg = MIMEMultipart('alternative')
        msg['Subject'] = subject
        msg['From'] = formataddr((smtp.sender_name, smtp.sender_email))
        msg['To'] = to_email
        if reply_to:
            msg['Reply-To'] = reply_to
        if text:
            msg.attach(MIMEText(text, 'plain', 'utf-8'))
        msg.attach(MIMEText(html, 'html', 'utf-8'))
        return msg

    def send_smtp(self, smtp: SmtpSettings, to_email: str, subject: str,
                  html: str, text: str = None, reply_to: str = None) -> EmailResult:
        """Send one email over SMTP."""
        msg = self._build_message(smtp, to_email, subject, html, text, reply_to)
        try:
            if smtp.use_ssl:
                server = smtplib.SMTP_SSL(smtp.host, smtp.port, timeout=30)
            else:
                server = smtplib.SMTP(smtp.host, smtp.port, timeout=30)
                server.starttls()
            try:
                if smtp.user and smtp.password:
                    server.login(smtp.user, smtp.password)
                server.send_message(msg)
            finally:
                server.quit()
            return EmailResult(success=True)
        except (smtplib.SMTPException, OSError) as e:
            current_app.logger.warning(f'SMTP-Versand an {to_email} fehlgeschlagen: {e}')
            return EmailResult(success=False, error=f'SMTP-Fehler: {e}')

    def send_for_shop(self, shop_id: int, to_email: str, subject: str,
                      html: str, text: str = None) -> EmailResult:
        """Send a customer email on behalf of a shop."""
        smtp = self.get_shop_smtp(shop_id)
        if smtp is None:
            return EmailResult(success=False, error='Kein SMTP-Server konfiguriert')
        settings = BusinessSettings.query.filter_by(shop_id=shop_id).first()
        reply_to = settings.email if settings and settings.email else None
        return self.send_smtp(smtp, to_email, subject, html, text, reply_to)

    def send_system(self, to_email: str, subject: str, html: str, text: str = None) -> EmailResult:
        """Send a platform email (system SMTP first, then Brevo)."""
        smtp = self.get_system_smtp()
        if smtp is not None:
            return self.send_smtp(smtp, to_email, subject, html, text)
        if self.brevo.is_configured:
            return self.brevo.send(to_email, subject, html, text)
        return EmailResult(success=False, error='Kein E-Mail-Versand konfiguriert')

    def send_template(self, template, to_email: str, context: dict, shop_id: int,
                      repair_id: int = None, user_id: int = None) -> EmailResult:
        """Render a template, send it for a shop and record the history.

        The history row is added to the session; the caller commits.
        """
        rendered = get_email_template_service().render_template(template, context)
        result = self.send_for_shop(shop_id, to_email, rendered['subject'],
                                    rendered['html'], rendered['text'])
        db.session.add(EmailHistory(
            shop_id=shop_id,
            repair_id=repair_id,
            email_template_id=template.id,
            recipient=to_email,
            subject=rendered['subject'],
            status='success' if result.success else 'failed',
            error=result.error,
            sent_at=datetime.utcnow(),
            user_id=user_id,
        ))
        return result

    def test_smtp(self, smtp: SmtpSettings, to_email: str) -> EmailResult:
        """Send a test email with the given settings."""
        html = ('<p>Dies ist eine Test-E-Mail Ihrer Handyshop Verwaltung.</p>'
                '<p>Die SMTP-Einstellungen funktionieren.</p>')
        return self.send_smtp(smtp, to_email, 'SMTP-Test', html,
                              'Dies ist eine Test-E-Mail. Die SMTP-Einstellungen funktionieren.')


# Singleton instance
_email_service = None


def get_email_service() -> EmailService:
    """Get singleton EmailService instance."""
    global _email_service
    if _email_service is None:
        _email_service = EmailService()
    return _email_service
