"""Login, session handling, password reset and kiosk PIN."""
from app import db
from app.models import Config, PasswordResetToken

from conftest import PASSWORD, login, make_user


def test_login_returns_user_with_accessible_shops(app, shop, owner):
    client = app.test_client()
    user = login(client, 'inhaber')
    assert user['username'] == 'inhaber'
    assert user['accessible_shop_ids'] == [shop.id]


def test_login_by_email(app, owner):
    client = app.test_client()
    user = login(client, 'INHABER@handyshop.at')
    assert user['id'] == owner.id


def test_login_wrong_password(app, owner):
    client = app.test_client()
    response = client.post('/api/auth/login', json={'username': 'inhaber', 'password': 'falsch123'})
    assert response.status_code == 401
    assert response.get_json()['success'] is False


def test_login_missing_fields(app):
    client = app.test_client()
    response = client.post('/api/auth/login', json={'username': 'inhaber'})
    assert response.status_code == 400


def test_deactivated_user_cannot_login(app, shop):
    user = make_user('gesperrt', 'employee', shop=shop)
    user.is_active = False
    db.session.commit()
    client = app.test_client()
    response = client.post('/api/auth/login', json={'username': 'gesperrt', 'password': PASSWORD})
    assert response.status_code == 403


def test_api_requires_login(app):
    client = app.test_client()
    response = client.get('/api/customers')
    assert response.status_code == 401
    assert response.get_json() == {'success': False, 'error': 'Nicht angemeldet'}


def test_logout_ends_session(client):
    assert client.post('/api/auth/logout').status_code == 200
    assert client.get('/api/auth/me').status_code == 401


def test_change_password(client):
    response = client.post('/api/auth/change-password', json={
        'current_password': PASSWORD, 'new_password': 'NeuesPasswort1',
    })
    assert response.status_code == 200
    client.post('/api/auth/logout')
    login(client, 'inhaber', 'NeuesPasswort1')


def test_change_password_rejects_short_password(client):
    response = client.post('/api/auth/change-password', json={
        'current_password': PASSWORD, 'new_password': 'kurz',
    })
    assert response.status_code == 400


def test_forgot_password_does_not_reveal_accounts(app, owner):
    client = app.test_client()
    unknown = client.post('/api/auth/forgot-password', json={'email': 'niemand@handyshop.at'})
    assert unknown.status_code == 200
    assert PasswordResetToken.query.count() == 0


def test_password_reset_flow(app, owner, outbox):
    Config.set_value('smtp_host', 'mail.handyshop.at')
    client = app.test_client()
    response = client.post('/api/auth/forgot-password', json={'email': 'inhaber@handyshop.at'})
    assert response.status_code == 200
    assert len(outbox) == 1
    assert PasswordResetToken.query.filter_by(user_id=owner.id).count() == 1

    # The plain token only exists in the email; create one directly for the reset
    entry, token = PasswordResetToken.create_for_user(owner.id)
    db.session.add(entry)
    db.session.commit()

    response = client.post('/api/auth/reset-password', json={'token': token, 'password': 'Zurueckgesetzt1'})
    assert response.status_code == 200
    login(client, 'inhaber', 'Zurueckgesetzt1')

    # Tokens are single use
    again = client.post('/api/auth/reset-password', json={'token': token, 'password': 'NochmalNeu1'})
    assert again.status_code == 400


def test_kiosk_pin(app, shop, owner):
    make_user('kiosk1', 'kiosk', shop=shop, parent=owner)
    client = app.test_client()
    login(client, 'kiosk1')
    assert client.post('/api/kiosk/verify-pin', json={'pin': '0000'}).status_code == 403
    response = client.post('/api/kiosk/verify-pin', json={'pin': '1234'})
    assert response.status_code == 200
    assert response.get_json()['valid'] is True
