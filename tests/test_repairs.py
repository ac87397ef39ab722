"""Repair orders: creation, monthly quota, status emails, feedback and documents."""
import re

import pytest

from app import db
from app.models import AuditLog, EmailHistory, Repair
from app.services.repair_service import generate_order_code


def test_create_repair(client, repair_id):
    data = client.get(f'/api/repairs/{repair_id}').get_json()
    assert data['status'] == 'eingegangen'
    assert data['customer']['last_name'] == 'Huber'
    assert re.fullmatch(r'AS\d{6}', data['order_code'])
    assert data['creation_month']


def test_create_repair_requires_fields(client, customer_id):
    response = client.post('/api/repairs', json={'customer_id': customer_id, 'brand': 'Apple'})
    assert response.status_code == 400


def test_create_repair_for_unknown_customer(client):
    response = client.post('/api/repairs', json={
        'customer_id': 999, 'device_type': 'Tablet', 'brand': 'Samsung',
        'model': 'Tab S9', 'issue': 'Akku',
    })
    assert response.status_code == 400


def test_generate_order_code():
    assert re.fullmatch(r'ST\d{6}', generate_order_code('samsung', 'tablet'))


def test_basic_plan_quota(app, client, customer_id):
    app.config['BASIC_PLAN_MONTHLY_REPAIRS'] = 2
    payload = {
        'customer_id': customer_id, 'device_type': 'Smartphone', 'brand': 'Google',
        'model': 'Pixel 8', 'issue': 'Lädt nicht',
    }
    assert client.post('/api/repairs', json=payload).status_code == 201
    assert client.post('/api/repairs', json=payload).status_code == 201

    quota = client.get('/api/repair-quota').get_json()
    assert quota == dict(quota, count=2, limit=2, canCreate=False, plan='basic')

    response = client.post('/api/repairs', json=payload)
    assert response.status_code == 429
    assert Repair.query.count() == 2


def test_unlimited_plan_has_no_quota(app, client, shop, customer_id):
    shop.pricing_plan = 'professional'
    db.session.commit()
    quota = client.get('/api/repair-quota').get_json()
    assert quota['limit'] is None
    assert quota['canCreate'] is True


def test_list_repairs_filters(client, customer_id, repair_id):
    client.patch(f'/api/repairs/{repair_id}/status', json={'status': 'in_reparatur'})
    assert len(client.get('/api/repairs?status=in_reparatur').get_json()) == 1
    assert client.get('/api/repairs?status=fertig').get_json() == []
    assert len(client.get('/api/repairs?search=huber').get_json()) == 1


def test_status_change_sends_email(app, client, shop, repair_id, outbox):
    settings = shop.business_settings
    settings.smtp_host = 'mail.handyshop.at'
    settings.smtp_user = 'office@handyshop.at'
    settings.smtp_password = 'smtp-geheim'
    db.session.commit()

    response = client.patch(f'/api/repairs/{repair_id}/status', json={
        'status': 'fertig', 'sendEmail': True, 'technicianNote': 'Display getauscht',
    })
    assert response.status_code == 200
    data = response.get_json()
    assert data['repair']['status'] == 'fertig'
    assert data['repair']['technician_note'] == 'Display getauscht'
    assert data['email'] == {'sent': True, 'error': None}

    assert len(outbox) == 1
    assert outbox[0]['To'] == 'maria.huber@handyshop.at'
    history = EmailHistory.query.filter_by(repair_id=repair_id).all()
    assert [h.status for h in history] == ['success']


def test_failed_email_keeps_status(client, repair_id, outbox):
    # No SMTP configured for the shop or the system
    response = client.patch(f'/api/repairs/{repair_id}/status', json={'status': 'fertig', 'sendEmail': True})
    assert response.status_code == 200
    data = response.get_json()
    assert data['repair']['status'] == 'fertig'
    assert data['email']['sent'] is False
    assert outbox == []
    assert db.session.get(Repair, repair_id).status == 'fertig'


def test_invalid_status(client, repair_id):
    response = client.patch(f'/api/repairs/{repair_id}/status', json={'status': 'verloren'})
    assert response.status_code == 400


def test_status_change_is_audited(client, repair_id):
    client.patch(f'/api/repairs/{repair_id}/status', json={'status': 'in_reparatur'})
    entry = AuditLog.query.filter_by(aktion='status_geaendert').one()
    assert entry.modul == 'reparaturen'
    assert 'eingegangen -> in_reparatur' in entry.details


def test_update_and_delete_repair(client, repair_id):
    response = client.patch(f'/api/repairs/{repair_id}', json={'model': 'iPhone 13 Pro', 'estimated_cost': '189,90'})
    assert response.status_code == 200
    assert response.get_json()['model'] == 'iPhone 13 Pro'
    assert response.get_json()['estimated_cost'] == '189.90'

    assert client.delete(f'/api/repairs/{repair_id}').status_code == 200
    assert client.get(f'/api/repairs/{repair_id}').status_code == 404


def test_feedback_link(app, client, shop, repair_id):
    shop.business_settings.review_link = 'https://g.page/handyshop-wien/review'
    db.session.commit()

    response = client.post(f'/api/repairs/{repair_id}/feedback-token')
    assert response.status_code == 201
    token = response.get_json()['token']

    public = app.test_client()
    info = public.get(f'/api/feedback/{token}').get_json()
    assert info['submitted'] is False
    assert info['device'] == 'Apple iPhone 13'

    assert public.post(f'/api/feedback/{token}', json={'rating': 7}).status_code == 400
    response = public.post(f'/api/feedback/{token}', json={'rating': 5, 'comment': 'Super schnell'})
    assert response.status_code == 200
    assert response.get_json()['review_link'] == 'https://g.page/handyshop-wien/review'

    assert public.post(f'/api/feedback/{token}', json={'rating': 4}).status_code == 409


def test_low_rating_gets_no_review_link(app, client, shop, repair_id):
    shop.business_settings.review_link = 'https://g.page/handyshop-wien/review'
    db.session.commit()
    token = client.post(f'/api/repairs/{repair_id}/feedback-token').get_json()['token']
    response = app.test_client().post(f'/api/feedback/{token}', json={'rating': 2})
    assert response.get_json()['review_link'] is None


def test_unknown_feedback_token(app):
    assert app.test_client().get('/api/feedback/unbekannt').status_code == 404


@pytest.mark.parametrize('width', ['58mm', '80mm'])
def test_receipt(client, repair_id, width):
    response = client.get(f'/api/repairs/{repair_id}/receipt?width={width}')
    assert response.status_code == 200
    assert response.mimetype == 'text/html'
    order_code = client.get(f'/api/repairs/{repair_id}').get_json()['order_code']
    assert order_code in response.get_data(as_text=True)


def test_print_repair_order(client, repair_id):
    response = client.get(f'/api/repairs/{repair_id}/print')
    assert response.status_code == 200
    assert 'Huber' in response.get_data(as_text=True)


def test_label_pdf(client, repair_id):
    response = client.get(f'/api/repairs/{repair_id}/label.pdf')
    assert response.status_code == 200
    assert response.mimetype == 'application/pdf'
    assert response.data.startswith(b'%PDF')


def test_export_xlsx(client, repair_id):
    response = client.get('/api/repairs/export.xlsx')
    assert response.status_code == 200
    assert response.data[:2] == b'PK'


def test_stats(client, repair_id):
    client.patch(f'/api/repairs/{repair_id}/status', json={'status': 'fertig'})
    stats = client.get('/api/stats').get_json()
    assert stats['total_repairs'] == 1
    assert stats['by_status']['fertig'] == 1
    assert stats['open_repairs'] == 0
    assert stats['customers'] == 1
