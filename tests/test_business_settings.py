"""Business settings, logo upload and email templates."""
import io

from PIL import Image

from app import db
from app.models import EmailTemplate
from app.services.email_template_service import get_email_template_service

from conftest import login, make_user


def _png(size=(1200, 400)):
    buffer = io.BytesIO()
    Image.new('RGB', size, (37, 99, 235)).save(buffer, format='PNG')
    return buffer.getvalue()


def test_save_settings(client):
    response = client.patch('/api/business-settings', json={
        'business_name': 'Handyshop Wien Mitte',
        'color_theme': 'green',
        'receipt_width': '58mm',
        'label_width': '62',
    })
    assert response.status_code == 200
    settings = client.get('/api/business-settings').get_json()
    assert settings['business_name'] == 'Handyshop Wien Mitte'
    assert settings['receipt_width'] == '58mm'
    assert settings['label_width'] == 62
    assert settings['exists'] is True
    assert client.get('/api/branding').get_json()['color_theme'] == 'green'


def test_invalid_settings(client):
    assert client.patch('/api/business-settings', json={'color_theme': 'pink'}).status_code == 400
    assert client.patch('/api/business-settings', json={'receipt_width': '100mm'}).status_code == 400
    assert client.patch('/api/business-settings', json={'kiosk_pin': '12a4'}).status_code == 400
    assert client.patch('/api/business-settings', json={'business_name': ' '}).status_code == 400


def test_empty_smtp_password_keeps_stored_one(client, shop):
    client.patch('/api/business-settings', json={'smtp_host': 'mail.handyshop.at', 'smtp_password': 'geheim'})
    response = client.patch('/api/business-settings', json={'smtp_host': 'smtp.handyshop.at', 'smtp_password': ''})
    data = response.get_json()['settings']
    assert 'smtp_password' not in data
    assert data['has_smtp_password'] is True
    assert shop.business_settings.smtp_password == 'geheim'


def test_owner_cannot_raise_employee_limit(client, shop):
    client.patch('/api/business-settings', json={'max_employees': 10})
    assert shop.business_settings.max_employees == 2


def test_kiosk_does_not_see_pin_or_smtp_access(app, client, shop, owner):
    client.patch('/api/business-settings', json={
        'kiosk_pin': '1234', 'smtp_host': 'mail.handyshop.at', 'smtp_user': 'office@handyshop.at',
    })
    assert client.get('/api/business-settings').get_json()['kiosk_pin'] == '1234'

    make_user('kiosk1', 'kiosk', shop=shop, parent=owner)
    kiosk = app.test_client()
    login(kiosk, 'kiosk1')
    data = kiosk.get('/api/business-settings').get_json()
    assert data['business_name'] == 'Handyshop Wien'
    for field in ('kiosk_pin', 'smtp_host', 'smtp_user', 'smtp_port'):
        assert field not in data


def test_smtp_test_requires_credentials(client):
    response = client.post('/api/business-settings/smtp-test', json={})
    assert response.status_code == 400


def test_smtp_test_sends_mail(client, outbox):
    response = client.post('/api/business-settings/smtp-test', json={
        'smtp_host': 'mail.handyshop.at', 'smtp_user': 'office@handyshop.at',
        'smtp_password': 'geheim', 'to_email': 'inhaber@handyshop.at',
    })
    assert response.status_code == 200
    assert outbox[0]['To'] == 'inhaber@handyshop.at'


def test_logo_upload_is_resized(client):
    response = client.post('/api/business-settings/logo', data={
        'logo': (io.BytesIO(_png()), 'logo.png'),
    }, content_type='multipart/form-data')
    assert response.status_code == 200

    logo = client.get('/api/business-settings/logo')
    assert logo.status_code == 200
    with Image.open(io.BytesIO(logo.data)) as image:
        assert image.width <= 600 and image.height <= 300

    assert client.delete('/api/business-settings/logo').status_code == 200
    assert client.get('/api/business-settings/logo').status_code == 404


def test_logo_rejects_non_images(client):
    response = client.post('/api/business-settings/logo', data={
        'logo': (io.BytesIO(b'kein bild'), 'logo.png'),
    }, content_type='multipart/form-data')
    assert response.status_code == 400


def test_system_templates_are_read_only_for_shops(client):
    get_email_template_service().seed_defaults()
    db.session.commit()
    system = EmailTemplate.get_by_key('reparatur_fertig')

    templates = client.get('/api/email-templates').get_json()
    assert 'reparatur_fertig' in [t['schluessel'] for t in templates]
    assert client.patch(f'/api/email-templates/{system.id}', json={'name': 'x'}).status_code == 403


def test_shop_template_overrides_system_template(client, shop):
    get_email_template_service().seed_defaults()
    db.session.commit()
    response = client.post('/api/email-templates', json={
        'schluessel': 'reparatur_fertig',
        'name': 'Abholbereit',
        'betreff': '{{ auftragsnummer }} ist fertig',
        'body_html': '<p>Hallo {{ kundenname }}</p>',
    })
    assert response.status_code == 201
    assert EmailTemplate.get_by_key('reparatur_fertig', shop.id).name == 'Abholbereit'

    preview = client.get(f'/api/email-templates/{response.get_json()["id"]}/preview').get_json()
    assert preview['subject'] == 'AS251234 ist fertig'
    assert preview['html'] == '<p>Hallo Max Mustermann</p>'


def test_broken_template_is_rejected(client):
    response = client.post('/api/email-templates', json={
        'schluessel': 'kaputt', 'name': 'Kaputt', 'betreff': 'x', 'body_html': '{% if %}',
    })
    assert response.status_code == 400


def test_send_email_for_repair(client, shop, repair_id, outbox):
    settings = shop.business_settings
    settings.smtp_host = 'mail.handyshop.at'
    settings.smtp_user = 'office@handyshop.at'
    settings.smtp_password = 'geheim'
    db.session.commit()

    response = client.post('/api/send-email', json={'repairId': repair_id, 'templateKey': 'reparatur_fertig'})
    assert response.status_code == 200
    assert outbox[0]['To'] == 'maria.huber@handyshop.at'
    assert 'abholbereit' in outbox[0]['Subject']


def test_employee_cannot_edit_templates(app, shop, owner):
    make_user('mitarbeiter', 'employee', shop=shop, parent=owner)
    employee = app.test_client()
    login(employee, 'mitarbeiter')
    response = employee.post('/api/email-templates', json={
        'schluessel': 'neu', 'name': 'Neu', 'betreff': 'x', 'body_html': 'y',
    })
    assert response.status_code == 403
