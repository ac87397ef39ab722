"""Multi-shop admins: access requests, owner approval, revocation."""
from conftest import login, make_shop, make_user


def _msa_client(app):
    msa = make_user('kette', 'multi_shop_admin', email='admin@kette.at')
    client = app.test_client()
    login(client, 'kette')
    return msa, client


def test_request_approve_and_revoke(app, client, shop, customer_id):
    msa, msa_client = _msa_client(app)
    assert msa_client.get('/api/customers').status_code == 403

    response = msa_client.post('/api/multi-shop/request-access', json={'shopId': shop.id})
    assert response.status_code == 201
    permission = response.get_json()['permission']
    assert permission['status'] == 'pending'

    pending = client.get('/api/multi-shop/permissions').get_json()['pending']
    assert [p['id'] for p in pending] == [permission['id']]

    response = client.post(f'/api/multi-shop/permissions/{permission["id"]}/approve')
    assert response.status_code == 200
    assert response.get_json()['permission']['status'] == 'granted'

    headers = {'X-Shop-Id': str(shop.id)}
    customers = msa_client.get('/api/customers', headers=headers).get_json()
    assert [c['id'] for c in customers] == [customer_id]
    assert [s['id'] for s in msa_client.get('/api/multi-shop/shops').get_json()] == [shop.id]

    assert client.post(f'/api/multi-shop/revoke/{msa.id}').status_code == 200
    assert msa_client.get('/api/customers', headers=headers).status_code == 403


def test_request_needs_shop_id(app):
    _, msa_client = _msa_client(app)
    assert msa_client.post('/api/multi-shop/request-access', json={}).status_code == 400


def test_approve_twice_conflicts(app, client, shop):
    _, msa_client = _msa_client(app)
    permission_id = msa_client.post(
        '/api/multi-shop/request-access', json={'shopId': shop.id}
    ).get_json()['permission']['id']
    assert client.post(f'/api/multi-shop/permissions/{permission_id}/approve').status_code == 200
    assert client.post(f'/api/multi-shop/permissions/{permission_id}/approve').status_code == 409


def test_deny_request(app, client, shop):
    _, msa_client = _msa_client(app)
    permission_id = msa_client.post(
        '/api/multi-shop/request-access', json={'shopId': shop.id}
    ).get_json()['permission']['id']
    response = client.post(f'/api/multi-shop/permissions/{permission_id}/deny')
    assert response.get_json()['permission']['status'] == 'revoked'
    assert msa_client.get('/api/customers', headers={'X-Shop-Id': str(shop.id)}).status_code == 403


def test_other_owner_cannot_approve(app, shop, owner):
    _, msa_client = _msa_client(app)
    permission_id = msa_client.post(
        '/api/multi-shop/request-access', json={'shopId': shop.id}
    ).get_json()['permission']['id']

    make_user('linz', 'owner', shop=make_shop('Handyshop Linz'))
    other = app.test_client()
    login(other, 'linz')
    assert other.post(f'/api/multi-shop/permissions/{permission_id}/approve').status_code == 404


def test_grant_by_email_and_stats(app, client, shop, repair_id):
    _, msa_client = _msa_client(app)

    response = client.post('/api/multi-shop/grant', json={'email': 'ADMIN@kette.at'})
    assert response.status_code == 201
    assert client.post('/api/multi-shop/grant', json={'email': 'admin@kette.at'}).status_code == 409
    assert client.post('/api/multi-shop/grant', json={'email': 'niemand@kette.at'}).status_code == 404

    granted = client.get('/api/multi-shop/permissions').get_json()['granted']
    assert [g['username'] for g in granted] == ['kette']

    stats = msa_client.get('/api/multi-shop/stats').get_json()
    assert stats['shops'][0]['shop_id'] == shop.id
    assert stats['totals']['total_repairs'] == 1
    assert stats['totals']['open_repairs'] == 1
    assert stats['totals']['customers'] == 1


def test_employee_cannot_request_access(app, shop, owner):
    make_user('mitarbeiter', 'employee', shop=shop, parent=owner)
    employee = app.test_client()
    login(employee, 'mitarbeiter')
    response = employee.post('/api/multi-shop/request-access', json={'shopId': shop.id})
    assert response.status_code == 403
