"""Superadmin API: shops, accounts, multi-shop assignments, config and audit log."""
import pytest

from app import db
from app.models import Config, Shop

from conftest import login, make_user


@pytest.fixture
def superadmin(app):
    make_user('support', 'superadmin')
    client = app.test_client()
    login(client, 'support')
    return client


def test_create_shop_with_owner(app, superadmin):
    response = superadmin.post('/api/superadmin/shops', json={
        'name': 'Handyshop Graz',
        'pricing_plan': 'professional',
        'owner': {'username': 'graz', 'email': 'graz@handyshop.at', 'password': 'Reparatur2024'},
    })
    assert response.status_code == 201
    shop_id = response.get_json()['shop']['id']

    owner = app.test_client()
    user = login(owner, 'graz', 'Reparatur2024')
    assert user['accessible_shop_ids'] == [shop_id]
    settings = owner.get('/api/business-settings').get_json()
    assert settings['business_name'] == 'Handyshop Graz'


def test_create_shop_validation(superadmin):
    assert superadmin.post('/api/superadmin/shops', json={'name': 'Ohne Inhaber'}).status_code == 400
    response = superadmin.post('/api/superadmin/shops', json={
        'name': 'X', 'pricing_plan': 'gold',
        'owner': {'username': 'x1', 'email': 'x@handyshop.at', 'password': 'Reparatur2024'},
    })
    assert response.status_code == 400


def test_owner_has_no_superadmin_access(client):
    assert client.get('/api/superadmin/shops').status_code == 403


def test_list_shops(superadmin, shop, owner):
    shops = superadmin.get('/api/superadmin/shops').get_json()
    assert shops[0]['name'] == 'Handyshop Wien'
    assert shops[0]['owner']['username'] == 'inhaber'
    assert shops[0]['user_count'] == 1


def test_suspended_shop_is_locked(superadmin, client, shop):
    response = superadmin.patch(f'/api/superadmin/shops/{shop.id}', json={'status': 'suspended'})
    assert response.status_code == 200
    assert client.get('/api/customers').status_code == 403
    assert superadmin.patch(f'/api/superadmin/shops/{shop.id}', json={'status': 'weg'}).status_code == 400


def test_deactivate_user(superadmin, client, owner):
    assert superadmin.post(f'/api/superadmin/users/{owner.id}/deactivate').status_code == 200
    assert client.get('/api/customers').status_code == 401
    assert superadmin.post(f'/api/superadmin/users/{owner.id}/activate').status_code == 200
    assert client.get('/api/customers').status_code == 200


def test_create_multi_shop_admin_and_assign(app, superadmin, shop):
    response = superadmin.post('/api/superadmin/users', json={
        'username': 'kette', 'email': 'admin@kette.at', 'password': 'Reparatur2024',
    })
    assert response.status_code == 201
    msa_id = response.get_json()['id']
    assert response.get_json()['rolle'] == 'multi_shop_admin'

    response = superadmin.post('/api/superadmin/multi-shop/assign', json={'userId': msa_id, 'shopId': shop.id})
    assert response.status_code == 201
    access_id = response.get_json()['access']['id']

    msa = app.test_client()
    assert login(msa, 'kette', 'Reparatur2024')['accessible_shop_ids'] == [shop.id]

    assert superadmin.post(f'/api/superadmin/multi-shop/access/{access_id}/revoke').status_code == 200
    assert msa.get('/api/customers').status_code == 403


def test_create_user_rejects_shop_roles(superadmin):
    response = superadmin.post('/api/superadmin/users', json={
        'username': 'neu', 'email': 'neu@handyshop.at', 'password': 'Reparatur2024', 'rolle': 'owner',
    })
    assert response.status_code == 400


def test_config_secrets_are_masked(superadmin):
    superadmin.post('/api/superadmin/config', json={'smtp_host': 'mail.handyshop.at', 'smtp_password': 'geheim'})
    entries = {c['key']: c['value'] for c in superadmin.get('/api/superadmin/config').get_json()}
    assert entries['smtp_host'] == 'mail.handyshop.at'
    assert entries['smtp_password'] == '********'

    response = superadmin.post('/api/superadmin/config', json={'smtp_password': '********'})
    assert response.get_json()['changed'] == []
    assert Config.get_value('smtp_password') == 'geheim'


def test_audit_log(superadmin, client, shop):
    superadmin.patch(f'/api/superadmin/shops/{shop.id}', json={'pricing_plan': 'enterprise'})
    entries = superadmin.get('/api/superadmin/audit-log?modul=superadmin').get_json()
    assert 'shop_geaendert' in [e['aktion'] for e in entries]
    assert db.session.get(Shop, shop.id).pricing_plan == 'enterprise'
    assert superadmin.get('/api/superadmin/audit-log?modul=unbekannt').status_code == 400
