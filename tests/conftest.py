"""Shared fixtures: app with in-memory database, shops, users and a fake SMTP server."""
import smtplib

import pytest
from flask import g
from flask.testing import FlaskClient

from app import create_app, db
from app.models import BusinessSettings, Rolle, Shop, User
from app.services import storage_service

PASSWORD = 'Werkstatt2024'


class SessionClient(FlaskClient):
    """Test client that loads the user from its own session cookie on every request.

    The app context of the fixture stays pushed, so Flask-Login would
    otherwise reuse the user cached on g by an earlier request.
    """

    def open(self, *args, **kwargs):
        g.pop('_login_user', None)
        return super().open(*args, **kwargs)


class FakeSMTP:
    """Records sent messages instead of talking to a mail server."""

    outbox = []

    def __init__(self, host, port, timeout=None):
        self.host = host
        self.port = port

    def starttls(self):
        pass

    def login(self, user, password):
        pass

    def send_message(self, msg):
        FakeSMTP.outbox.append(msg)

    def quit(self):
        pass


@pytest.fixture
def app(tmp_path, monkeypatch):
    app = create_app('testing')
    monkeypatch.setattr(storage_service, '_storage', None)
    app.test_client_class = SessionClient
    app.config['UPLOAD_DIR'] = tmp_path / 'uploads'
    app.config['UPLOAD_DIR'].mkdir()
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def outbox(monkeypatch):
    FakeSMTP.outbox = []
    monkeypatch.setattr(smtplib, 'SMTP', FakeSMTP)
    return FakeSMTP.outbox


def make_shop(name='Handyshop Wien', plan='basic', with_smtp=False):
    shop = Shop(name=name, pricing_plan=plan)
    db.session.add(shop)
    db.session.flush()
    settings = BusinessSettings(shop_id=shop.id, business_name=name, email='office@handyshop.at')
    if with_smtp:
        settings.smtp_host = 'mail.handyshop.at'
        settings.smtp_user = 'office@handyshop.at'
        settings.smtp_password = 'smtp-geheim'
        settings.smtp_port = 587
    db.session.add(settings)
    db.session.commit()
    return shop


def make_user(username, rolle, shop=None, email=None, parent=None, password=PASSWORD):
    user = User(
        username=username,
        email=email or f'{username}@handyshop.at',
        first_name=username.capitalize(),
        last_name='Test',
        rolle_id=Rolle.get_by_name(rolle).id,
        shop_id=shop.id if shop else None,
        parent_user_id=parent.id if parent else None,
        is_active=True,
    )
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    return user


def login(client, username, password=PASSWORD):
    response = client.post('/api/auth/login', json={'username': username, 'password': password})
    assert response.status_code == 200, response.get_json()
    return response.get_json()['user']


@pytest.fixture
def shop(app):
    return make_shop()


@pytest.fixture
def owner(shop):
    return make_user('inhaber', 'owner', shop=shop)


@pytest.fixture
def client(app, owner):
    """Test client logged in as the shop owner."""
    client = app.test_client()
    login(client, owner.username)
    return client


@pytest.fixture
def customer_id(client):
    response = client.post('/api/customers', json={
        'first_name': 'Maria',
        'last_name': 'Huber',
        'phone': '+43 660 1234567',
        'email': 'maria.huber@handyshop.at',
    })
    assert response.status_code == 201
    return response.get_json()['id']


@pytest.fixture
def repair_id(client, customer_id):
    response = client.post('/api/repairs', json={
        'customer_id': customer_id,
        'device_type': 'Smartphone',
        'brand': 'Apple',
        'model': 'iPhone 13',
        'issue': 'Display gebrochen',
    })
    assert response.status_code == 201
    return response.get_json()['id']
