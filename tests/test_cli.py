"""Flask CLI commands and database migrations."""
from datetime import datetime, timedelta
from pathlib import Path

import pytest
from flask_migrate import upgrade
from sqlalchemy import inspect, text

from app import create_app, db
from app.config import TestingConfig, config
from app.models import CostEstimate, DeviceType, EmailTemplate, Rolle, User
from app.services.schema_service import ensure_schema

MIGRATIONS_DIR = str(Path(__file__).resolve().parent.parent / 'migrations')
HEAD_REVISION = 'c9d84f3e6a17'


@pytest.fixture
def file_app(tmp_path, monkeypatch):
    """App bound to an empty SQLite file, as used by `flask db upgrade`."""
    class FileDatabaseConfig(TestingConfig):
        SQLALCHEMY_DATABASE_URI = f'sqlite:///{tmp_path / "handyshop.db"}'

    monkeypatch.setitem(config, 'file', FileDatabaseConfig)
    app = create_app('file')
    with app.app_context():
        yield app
        db.session.remove()
        db.engine.dispose()


def _alembic_version():
    with db.engine.connect() as connection:
        return connection.execute(text('SELECT version_num FROM alembic_version')).scalar()


def test_seed_is_repeatable(app, monkeypatch):
    monkeypatch.setenv('SUPERADMIN_USERNAME', 'admin')
    monkeypatch.setenv('SUPERADMIN_PASSWORD', 'Superadmin2024')
    runner = app.test_cli_runner()

    result = runner.invoke(args=['seed'])
    assert result.exit_code == 0, result.output
    assert 'Database seeded successfully!' in result.output
    assert Rolle.query.count() == 5
    assert EmailTemplate.get_by_key('reparatur_fertig') is not None
    assert DeviceType.query.filter_by(name='Smartphone').count() == 1
    assert User.query.filter_by(username='admin').one().is_superadmin

    result = runner.invoke(args=['seed'])
    assert 'Global catalog already exists' in result.output
    assert 'Superadmin already exists: admin' in result.output
    assert DeviceType.query.filter_by(name='Smartphone').count() == 1


def test_seed_demo(app):
    result = app.test_cli_runner().invoke(args=['seed-demo'])
    assert result.exit_code == 0, result.output
    msa = User.query.filter_by(username='demo_msa').one()
    assert msa.shop_access.count() == 2


def test_ensure_schema_command(app):
    result = app.test_cli_runner().invoke(args=['ensure-schema'])
    assert result.exit_code == 0
    assert 'Schema check complete!' in result.output


def test_expire_command(app, client, customer_id):
    estimate_id = client.post('/api/cost-estimates', json={
        'customer_id': customer_id, 'device_type': 'Tablet', 'brand': 'Apple',
        'model': 'iPad 9', 'issue': 'Akku',
    }).get_json()['id']
    estimate = db.session.get(CostEstimate, estimate_id)
    estimate.valid_until = datetime.utcnow() - timedelta(days=1)
    db.session.commit()

    result = app.test_cli_runner().invoke(args=['expire-support-access'])
    assert 'Expired 0 support session(s), 1 cost estimate(s)' in result.output
    db.session.refresh(estimate)
    assert estimate.status == 'abgelaufen'


def test_reset_db_needs_confirmation(app, monkeypatch):
    monkeypatch.delenv('DB_RESET', raising=False)
    result = app.test_cli_runner().invoke(args=['reset-db'])
    assert 'DB_RESET environment variable must be set' in result.output


def test_db_upgrade_twice(file_app):
    upgrade(directory=MIGRATIONS_DIR)
    upgrade(directory=MIGRATIONS_DIR)

    tables = set(inspect(db.engine).get_table_names())
    assert {'shops', 'users', 'repairs', 'spare_parts', 'cost_estimate_items',
            'support_access_logs', 'user_shop_access'} <= tables
    assert _alembic_version() == HEAD_REVISION


def test_db_upgrade_after_ensure_schema(file_app):
    ensure_schema()
    upgrade(directory=MIGRATIONS_DIR)

    assert _alembic_version() == HEAD_REVISION
    columns = {c['name'] for c in inspect(db.engine).get_columns('spare_parts')}
    assert 'archived' in columns
