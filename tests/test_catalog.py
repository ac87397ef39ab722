"""Device catalog: global vs. shop entries, CSV import/export, error catalog."""
import io

import pytest

from app import db
from app.services import catalog_service

from conftest import login, make_shop, make_user


@pytest.fixture
def superadmin(app):
    make_user('support', 'superadmin')
    client = app.test_client()
    login(client, 'support')
    return client


@pytest.fixture
def global_catalog(app):
    catalog_service.seed_global_catalog()
    db.session.commit()


def test_seed_is_idempotent(app, global_catalog):
    assert catalog_service.seed_global_catalog() == []


def test_shop_sees_global_and_own_entries(client, global_catalog):
    response = client.post('/api/device-types', json={'name': 'Drohne'})
    assert response.status_code == 201
    assert response.get_json()['is_global'] is False

    names = [t['name'] for t in client.get('/api/device-types').get_json()]
    assert 'Smartphone' in names and 'Drohne' in names


def test_own_entries_are_invisible_for_other_shops(app, client, global_catalog):
    client.post('/api/device-types', json={'name': 'Drohne'})
    make_user('linz', 'owner', shop=make_shop('Handyshop Linz'))
    other = app.test_client()
    login(other, 'linz')
    names = [t['name'] for t in other.get('/api/device-types').get_json()]
    assert 'Drohne' not in names


def test_duplicate_device_type_conflicts(client):
    assert client.post('/api/device-types', json={'name': 'Drohne'}).status_code == 201
    assert client.post('/api/device-types', json={'name': 'drohne'}).status_code == 409


def test_shop_cannot_delete_global_entry(client, global_catalog):
    smartphone = next(t for t in client.get('/api/device-types').get_json() if t['name'] == 'Smartphone')
    assert client.delete(f'/api/device-types/{smartphone["id"]}').status_code == 404


def test_models_batch_skips_existing(client, global_catalog):
    brands = client.get('/api/brands').get_json()
    samsung = next(b for b in brands if b['name'] == 'Samsung' and b['device_type'] == 'Smartphone')

    response = client.post('/api/models/batch', json={
        'brand_id': samsung['id'], 'names': ['Galaxy S24', 'Galaxy S23', '  '],
    })
    assert response.status_code == 201
    data = response.get_json()
    assert [m['name'] for m in data['created']] == ['Galaxy S24']
    assert data['skipped'] == 2

    models = client.get(f'/api/models?brand_id={samsung["id"]}').get_json()
    assert 'Galaxy S24' in [m['name'] for m in models]


def test_delete_device_type_in_use_conflicts(client):
    type_id = client.post('/api/device-types', json={'name': 'Drohne'}).get_json()['id']
    client.post('/api/brands', json={'name': 'DJI', 'device_type_id': type_id})
    assert client.delete(f'/api/device-types/{type_id}').status_code == 409


def test_import_csv_into_shop_catalog(client, global_catalog):
    content = 'device_type;brand;model\nSmartphone;Apple;iPhone 13\nSmartphone;Fairphone;Fairphone 5\n;Nokia;3310\n'
    response = client.post('/api/catalog/import', data={
        'file': (io.BytesIO(content.encode('utf-8')), 'katalog.csv'),
    }, content_type='multipart/form-data')
    assert response.status_code == 200
    data = response.get_json()
    assert data['brands_created'] == 1
    assert data['models_created'] == 1
    assert data['skipped'] == 1
    assert len(data['errors']) == 1

    exported = client.get('/api/catalog/export.csv?own=1').get_data(as_text=True)
    lines = exported.lstrip('\ufeff').splitlines()
    assert lines == ['device_type;brand;model', 'Smartphone;Fairphone;Fairphone 5']


def test_import_requires_columns(client):
    response = client.post('/api/catalog/import', data=b'typ;marke\nTablet;Apple\n')
    assert response.status_code == 400


def test_import_comma_separated(app):
    result = catalog_service.import_csv('device_type,brand,model\nTablet,Lenovo,Tab P12\n')
    assert (result.device_types_created, result.brands_created, result.models_created) == (1, 1, 1)


def test_global_catalog_is_superadmin_only(client, superadmin):
    assert client.post('/api/superadmin/device-types', json={'name': 'Drohne'}).status_code == 403
    response = superadmin.post('/api/superadmin/device-types', json={'name': 'Drohne'})
    assert response.status_code == 201
    assert response.get_json()['is_global'] is True


def test_error_catalog_filter(client, global_catalog):
    texts = [e['error_text'] for e in client.get('/api/error-catalog?device_type=Smartphone').get_json()]
    assert 'Display gebrochen' in texts
    assert 'Tastatur defekt' not in texts

    response = client.post('/api/error-catalog', json={'error_text': 'Lautsprecher leise', 'for_laptop': False})
    assert response.status_code == 201
    laptop = [e['error_text'] for e in client.get('/api/error-catalog?device_type=Laptop').get_json()]
    assert 'Lautsprecher leise' not in laptop
    assert 'Tastatur defekt' in laptop
