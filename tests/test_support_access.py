"""Support access for superadmins: request, owner approval, time window."""
from datetime import datetime, timedelta

import pytest

from app import db
from app.models import SupportAccessLog, SupportAccessStatus

from conftest import login, make_user


@pytest.fixture
def support(app):
    make_user('support', 'superadmin')
    client = app.test_client()
    login(client, 'support')
    return client


def _request(support, shop):
    response = support.post('/api/support-access/request', json={
        'shopId': shop.id, 'reason': 'Fehleranalyse Kostenvoranschlag',
    })
    assert response.status_code == 201
    return response.get_json()['request']


def test_request_requires_shop_and_reason(support, shop):
    assert support.post('/api/support-access/request', json={'reason': 'x'}).status_code == 400
    assert support.post('/api/support-access/request', json={'shopId': shop.id}).status_code == 400


def test_owner_cannot_request(client, shop):
    response = client.post('/api/support-access/request', json={'shopId': shop.id, 'reason': 'x'})
    assert response.status_code == 403


def test_access_only_after_approval(support, client, shop, customer_id):
    headers = {'X-Shop-Id': str(shop.id)}
    entry = _request(support, shop)
    assert entry['status'] == SupportAccessStatus.PENDING.value
    assert support.get('/api/customers', headers=headers).status_code == 403

    pending = client.get('/api/support-access/requests?pending=1').get_json()
    assert [p['id'] for p in pending] == [entry['id']]

    response = client.post(f'/api/support-access/requests/{entry["id"]}/approve')
    assert response.get_json()['request']['status'] == SupportAccessStatus.APPROVED.value

    response = support.get(f'/api/customers/{customer_id}', headers=headers)
    assert response.status_code == 200
    log = db.session.get(SupportAccessLog, entry['id'])
    assert log.affected_entities == f'customer:{customer_id}'


def test_owner_revokes_running_access(support, client, shop):
    headers = {'X-Shop-Id': str(shop.id)}
    entry = _request(support, shop)
    client.post(f'/api/support-access/requests/{entry["id"]}/approve')
    assert support.get('/api/customers', headers=headers).status_code == 200

    response = client.post(f'/api/support-access/requests/{entry["id"]}/revoke')
    assert response.get_json()['request']['status'] == SupportAccessStatus.COMPLETED.value
    assert support.get('/api/customers', headers=headers).status_code == 403


def test_denied_request(support, client, shop):
    entry = _request(support, shop)
    client.post(f'/api/support-access/requests/{entry["id"]}/deny')
    assert client.post(f'/api/support-access/requests/{entry["id"]}/approve').status_code == 409
    assert support.get('/api/customers', headers={'X-Shop-Id': str(shop.id)}).status_code == 403


def test_access_expires(app, support, client, shop):
    entry = _request(support, shop)
    client.post(f'/api/support-access/requests/{entry["id"]}/approve')

    log = db.session.get(SupportAccessLog, entry['id'])
    log.started_at = datetime.utcnow() - timedelta(minutes=app.config['SUPPORT_ACCESS_MINUTES'] + 1)
    db.session.commit()

    assert support.get('/api/customers', headers={'X-Shop-Id': str(shop.id)}).status_code == 403
    assert db.session.get(SupportAccessLog, entry['id']).status == SupportAccessStatus.EXPIRED.value


def test_superadmin_lists_own_requests(support, shop):
    _request(support, shop)
    entries = support.get('/api/support-access/requests').get_json()
    assert len(entries) == 1
    assert entries[0]['reason'] == 'Fehleranalyse Kostenvoranschlag'
