"""Employee and kiosk accounts of a shop."""
from app import db
from app.models import User

from conftest import login


def _create(client, username, rolle='employee'):
    return client.post('/api/employees', json={
        'username': username,
        'email': f'{username}@handyshop.at',
        'password': 'Reparatur2024',
        'first_name': username.capitalize(),
        'rolle': rolle,
    })


def test_create_employee(client, owner):
    response = _create(client, 'lukas')
    assert response.status_code == 201
    employee = db.session.get(User, response.get_json()['id'])
    assert employee.rolle == 'employee'
    assert employee.parent_user_id == owner.id
    assert employee.shop_id == owner.shop_id


def test_employee_limit(client):
    assert _create(client, 'lukas').status_code == 201
    assert _create(client, 'theke', rolle='kiosk').status_code == 201
    response = _create(client, 'anna')
    assert response.status_code == 409

    data = client.get('/api/employees').get_json()
    assert data['count'] == 2
    assert data['max_employees'] == 2


def test_raised_limit(client, shop):
    shop.business_settings.max_employees = 3
    db.session.commit()
    for name in ('lukas', 'anna', 'jonas'):
        assert _create(client, name).status_code == 201


def test_create_employee_validation(client):
    response = client.post('/api/employees', json={'username': 'lu', 'email': 'x', 'password': 'kurz'})
    assert response.status_code == 400
    assert _create(client, 'inhaber').status_code == 409


def test_employee_cannot_manage_employees(app, client):
    _create(client, 'lukas')
    employee = app.test_client()
    login(employee, 'lukas', 'Reparatur2024')
    assert employee.get('/api/employees').status_code == 403


def test_deactivate_blocks_login(app, client):
    employee_id = _create(client, 'lukas').get_json()['id']
    response = client.patch(f'/api/employees/{employee_id}', json={'is_active': False})
    assert response.get_json()['is_active'] is False

    response = app.test_client().post('/api/auth/login', json={'username': 'lukas', 'password': 'Reparatur2024'})
    assert response.status_code == 403


def test_delete_employee_keeps_records(app, client, customer_id):
    employee_id = _create(client, 'lukas').get_json()['id']
    employee = app.test_client()
    login(employee, 'lukas', 'Reparatur2024')
    repair = employee.post('/api/repairs', json={
        'customer_id': customer_id, 'device_type': 'Smartphone', 'brand': 'Samsung',
        'model': 'Galaxy S23', 'issue': 'Akku schwach',
    }).get_json()

    assert client.delete(f'/api/employees/{employee_id}').status_code == 200
    assert db.session.get(User, employee_id) is None
    data = client.get(f'/api/repairs/{repair["id"]}').get_json()
    assert data['model'] == 'Galaxy S23'


def test_owner_is_not_an_employee(client, owner):
    assert client.delete(f'/api/employees/{owner.id}').status_code == 404
