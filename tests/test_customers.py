"""Customer CRUD, search, CSV export and tenant isolation."""
from conftest import login, make_shop, make_user


def test_create_and_get_customer(client, customer_id):
    response = client.get(f'/api/customers/{customer_id}')
    assert response.status_code == 200
    data = response.get_json()
    assert data['last_name'] == 'Huber'
    assert data['email'] == 'maria.huber@handyshop.at'


def test_create_customer_requires_name_and_phone(client):
    response = client.post('/api/customers', json={'first_name': 'Max'})
    assert response.status_code == 400
    assert response.get_json()['success'] is False


def test_create_customer_rejects_invalid_email(client):
    response = client.post('/api/customers', json={
        'first_name': 'Max', 'last_name': 'Muster', 'phone': '0664 111', 'email': 'kein-email',
    })
    assert response.status_code == 400


def test_search_customers(client, customer_id):
    client.post('/api/customers', json={'first_name': 'Karl', 'last_name': 'Berger', 'phone': '0699 222'})
    response = client.get('/api/customers?search=hub')
    names = [c['last_name'] for c in response.get_json()]
    assert names == ['Huber']


def test_update_customer(client, customer_id):
    response = client.patch(f'/api/customers/{customer_id}', json={'city': 'Graz', 'email': ''})
    assert response.status_code == 200
    data = response.get_json()
    assert data['city'] == 'Graz'
    assert data['email'] is None


def test_delete_customer_with_repairs_conflicts(client, customer_id, repair_id):
    response = client.delete(f'/api/customers/{customer_id}')
    assert response.status_code == 409


def test_delete_customer_with_cost_estimate_conflicts(client, customer_id):
    response = client.post('/api/cost-estimates', json={
        'customer_id': customer_id, 'device_type': 'Smartphone', 'brand': 'Samsung',
        'model': 'Galaxy S23', 'issue': 'Akku schwach',
    })
    assert response.status_code == 201

    response = client.delete(f'/api/customers/{customer_id}')
    assert response.status_code == 409
    assert client.get(f'/api/customers/{customer_id}').status_code == 200


def test_delete_customer(client, customer_id):
    assert client.delete(f'/api/customers/{customer_id}').status_code == 200
    assert client.get(f'/api/customers/{customer_id}').status_code == 404


def test_customer_repairs(client, customer_id, repair_id):
    response = client.get(f'/api/customers/{customer_id}/repairs')
    assert [r['id'] for r in response.get_json()] == [repair_id]


def test_export_csv(client, customer_id):
    response = client.get('/api/customers/export.csv')
    assert response.status_code == 200
    assert response.mimetype == 'text/csv'
    text = response.get_data(as_text=True)
    assert text.startswith('\ufeff')
    header, row = text.lstrip('\ufeff').splitlines()[:2]
    assert header.split(';')[:3] == ['ID', 'Vorname', 'Nachname']
    assert 'Huber' in row


def test_customers_of_other_shop_are_invisible(app, client, customer_id):
    other_shop = make_shop('Handyshop Linz')
    make_user('linz', 'owner', shop=other_shop)
    other = app.test_client()
    login(other, 'linz')

    assert other.get('/api/customers').get_json() == []
    assert other.get(f'/api/customers/{customer_id}').status_code == 404
    assert other.patch(f'/api/customers/{customer_id}', json={'city': 'Linz'}).status_code == 404


def test_foreign_shop_header_is_rejected(app, client):
    other_shop = make_shop('Handyshop Linz')
    response = client.get('/api/customers', headers={'X-Shop-Id': str(other_shop.id)})
    assert response.status_code == 403
