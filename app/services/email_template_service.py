"""Email Template Service for rendering database-stored email templates.

Renders Jinja2 templates in a sandbox, since shop owners edit their own
templates. Shop templates override system templates with the same key.
"""
from typing import Optional

from jinja2 import TemplateSyntaxError, UndefinedError
from jinja2.sandbox import SandboxedEnvironment

from app import db
from app.errors import NotFoundError, ValidationError
from app.models import BusinessSettings, EmailTemplate
from app.utils import format_money


DEFAULT_TEMPLATES = [
    {
        'schluessel': 'reparatur_fertig',
        'name': 'Reparatur abgeschlossen',
        'betreff': 'Ihr Gerät ist abholbereit ({{ auftragsnummer }})',
        'body_html': '''<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
<p>Sehr geehrte(r) {{ kundenname }},</p>
<p>die Reparatur Ihres Geräts <strong>{{ hersteller }} {{ geraet }}</strong> ist abgeschlossen.
Sie können es {{ abholzeit }} bei uns abholen.</p>
<p><strong>Auftragsnummer:</strong> {{ auftragsnummer }}<br>
<strong>Kosten laut Kostenvoranschlag:</strong> {{ kostenvoranschlag }}</p>
{% if oeffnungszeiten %}<p><strong>Öffnungszeiten:</strong><br>{{ oeffnungszeiten }}</p>{% endif %}
<p>Mit freundlichen Grüßen<br>Ihr Team von {{ geschaeftsname }}</p>
</div>''',
        'body_text': '''Sehr geehrte(r) {{ kundenname }},

die Reparatur Ihres Geräts {{ hersteller }} {{ geraet }} ist abgeschlossen.
Sie können es {{ abholzeit }} bei uns abholen.

Auftragsnummer: {{ auftragsnummer }}

Mit freundlichen Grüßen
Ihr Team von {{ geschaeftsname }}''',
    },
    {
        'schluessel': 'ersatzteil_eingetroffen',
        'name': 'Ersatzteil eingetroffen',
        'betreff': 'Ersatzteil für Ihre Reparatur ist eingetroffen',
        'body_html': '''<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
<h2 style="color: #10b981;">Gute Neuigkeiten!</h2>
<p>Sehr geehrte(r) {{ kundenname }},</p>
<p>das bestellte Ersatzteil für Ihre Reparatur ist eingetroffen.</p>
<p><strong>Gerät:</strong> {{ hersteller }} {{ geraet }}<br>
<strong>Auftragsnummer:</strong> {{ auftragsnummer }}<br>
<strong>Beschreibung:</strong> {{ fehler }}</p>
<p>Wir fahren nun mit der Reparatur fort und informieren Sie, sobald Ihr Gerät abholbereit ist.</p>
<p>Mit freundlichen Grüßen<br>Ihr Team von {{ geschaeftsname }}</p>
</div>''',
        'body_text': None,
    },
    {
        'schluessel': 'feedback_anfrage',
        'name': 'Bewertungsanfrage',
        'betreff': 'Wie zufrieden waren Sie mit unserer Reparatur?',
        'body_html': '''<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
<p>Sehr geehrte(r) {{ kundenname }},</p>
<p>vielen Dank, dass Sie Ihr {{ hersteller }} {{ geraet }} bei {{ geschaeftsname }} reparieren ließen.</p>
<p>Wir freuen uns über Ihre Bewertung: <a href="{{ feedback_link }}">{{ feedback_link }}</a></p>
</div>''',
        'body_text': None,
    },
    {
        'schluessel': 'passwort_reset',
        'name': 'Passwort zurücksetzen',
        'kategorie': 'system',
        'betreff': 'Passwort zurücksetzen',
        'body_html': '''<p>Hallo {{ benutzername }},</p>
<p>über folgenden Link können Sie Ihr Passwort innerhalb von {{ gueltig_minuten }} Minuten neu setzen:</p>
<p><a href="{{ link }}">{{ link }}</a></p>
<p>Falls Sie das nicht angefordert haben, ignorieren Sie diese E-Mail.</p>''',
        'body_text': None,
    },
]

# Keys of templates shops use for customer notifications
REPAIR_STATUS_TEMPLATES = {
    'fertig': 'reparatur_fertig',
    'ersatzteil_eingetroffen': 'ersatzteil_eingetroffen',
}


class EmailTemplateService:
    """Service for rendering email templates with Jinja2.

    Templates support the placeholders listed on EmailTemplate.
    """

    def __init__(self):
        self._html_env = SandboxedEnvironment(autoescape=True)
        self._text_env = SandboxedEnvironment(autoescape=False)

    def build_repair_context(self, repair) -> dict:
        """Placeholder values for a repair notification."""
        settings = BusinessSettings.query.filter_by(shop_id=repair.shop_id).first()
        customer = repair.customer
        return {
            'kundenname': customer.full_name if customer else '',
            'geraet': repair.model,
            'hersteller': repair.brand,
            'auftragsnummer': repair.order_code or f'#{repair.id}',
            'fehler': repair.issue,
            'kostenvoranschlag': format_money(repair.estimated_cost) or 'Nicht angegeben',
            'geschaeftsname': settings.business_name if settings else 'Handyshop',
            'abholzeit': 'ab sofort',
            'oeffnungszeiten': settings.opening_hours if settings else '',
        }

    def render_template(self, template: EmailTemplate, context: dict) -> dict:
        """Render subject and bodies of a template.

        Returns:
            {
                'subject': str,      # Rendered subject
                'html': str,         # Rendered HTML body
                'text': str | None   # Rendered text body (if available)
            }

        Raises:
            ValidationError: If the template has syntax errors
        """
        try:
            subject = self._text_env.from_string(template.betreff).render(context)
            html = self._html_env.from_string(template.body_html).render(context)
            text = None
            if template.body_text:
                text = self._text_env.from_string(template.body_text).render(context)
        except (TemplateSyntaxError, UndefinedError) as e:
            raise ValidationError(f"Fehler im Template '{template.name}': {e}")

        return {
            'subject': subject.strip(),
            'html': html,
            'text': text
        }

    def ensure_template(self, schluessel: str, shop_id: Optional[int] = None) -> EmailTemplate:
        """Return the template for a key.

        A missing template is created from the defaults as system template.
        """
        template = EmailTemplate.get_by_key(schluessel, shop_id)
        if template:
            return template
        defaults = next((t for t in DEFAULT_TEMPLATES if t['schluessel'] == schluessel), None)
        if defaults is None:
            raise NotFoundError(f"E-Mail-Template '{schluessel}' nicht gefunden")
        template = EmailTemplate(shop_id=None, **defaults)
        db.session.add(template)
        db.session.flush()
        return template

    def seed_defaults(self) -> list[str]:
        """Create missing system templates. Returns the created keys."""
        created = []
        for data in DEFAULT_TEMPLATES:
            exists = EmailTemplate.query.filter_by(shop_id=None, schluessel=data['schluessel']).first()
            if not exists:
                db.session.add(EmailTemplate(shop_id=None, **data))
                created.append(data['schluessel'])
        return created

    def preview(self, template: EmailTemplate) -> dict:
        """Render a template with sample values."""
        sample = {
            'kundenname': 'Max Mustermann',
            'geraet': 'iPhone 13',
            'hersteller': 'Apple',
            'auftragsnummer': 'AS251234',
            'fehler': 'Display gebrochen',
            'kostenvoranschlag': '189,00 €',
            'geschaeftsname': 'Handyshop Muster',
            'abholzeit': 'ab sofort',
            'oeffnungszeiten': 'Mo-Fr 9-18 Uhr',
            'feedback_link': 'https://example.org/feedback/abc',
        }
        return self.render_template(template, sample)


# Singleton instance
_email_template_service = None


def get_email_template_service() -> EmailTemplateService:
    """Get singleton EmailTemplateService instance."""
    global _email_template_service
    if _email_template_service is None:
        _email_template_service = EmailTemplateService()
    return _email_template_service
