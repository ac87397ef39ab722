"""Schema maintenance helpers."""
import pytest
from sqlalchemy import text

from app import db
from app.services.schema_service import (
    column_exists, ensure_column, ensure_schema, fix_shop_isolation, wait_for_database,
)


def test_ensure_schema_on_current_database(app):
    lines = ensure_schema()
    assert lines
    assert all(line.startswith('[INFO]') for line in lines)


def test_ensure_column_is_idempotent(app):
    db.session.commit()
    with db.engine.begin() as conn:
        conn.execute(text('CREATE TABLE altbestand (id INTEGER PRIMARY KEY)'))

    assert ensure_column('altbestand', 'notiz', 'TEXT').startswith('[OK]')
    assert column_exists('altbestand', 'notiz')
    assert ensure_column('altbestand', 'notiz', 'TEXT').startswith('[INFO]')


def test_ensure_column_skips_missing_table(app):
    assert ensure_column('gibt_es_nicht', 'notiz', 'TEXT').startswith('[INFO]')


def test_ensure_column_rejects_bad_identifiers(app):
    with pytest.raises(ValueError):
        ensure_column('users; DROP TABLE users', 'notiz', 'TEXT')


def test_wait_for_database(app):
    assert wait_for_database() == 1


def test_fix_shop_isolation_without_orphans(app, repair_id):
    fixed = fix_shop_isolation()
    assert fixed['customers'] == 0
    assert fixed['repairs'] == 0
