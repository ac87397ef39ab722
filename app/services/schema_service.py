"""Schema maintenance for databases created before the migrations existed.

All helpers check before they change anything and can run any number of
times. Each step returns log lines prefixed with [OK] (changed) or
[INFO] (nothing to do).
"""
import re
import time

from flask import current_app
from sqlalchemy import inspect, text
from sqlalchemy.exc import OperationalError

from app import db

_IDENTIFIER = re.compile(r'^[A-Za-z_][A-Za-z0-9_]*$')

# table, column, SQL type with default
LEGACY_COLUMNS = [
    ('users', 'first_name', 'VARCHAR(50)'),
    ('users', 'last_name', 'VARCHAR(50)'),
    ('users', 'parent_user_id', 'INTEGER REFERENCES users(id)'),
    ('users', 'can_assign_multi_shop_admins', 'BOOLEAN NOT NULL DEFAULT FALSE'),
    ('users', 'last_login_at', 'TIMESTAMP'),
    ('users', 'last_logout_at', 'TIMESTAMP'),
    ('customers', 'created_by', 'INTEGER'),
    ('repairs', 'created_by', 'INTEGER'),
    ('repairs', 'technician_note', 'TEXT'),
    ('repairs', 'creation_month', 'VARCHAR(7)'),
    ('repairs', 'status_updated_at', 'TIMESTAMP'),
    ('repairs', 'deposit_amount', 'NUMERIC(10, 2)'),
    ('spare_parts', 'archived', 'BOOLEAN NOT NULL DEFAULT FALSE'),
    ('business_settings', 'kiosk_pin', "VARCHAR(10) DEFAULT '1234'"),
    ('business_settings', 'max_employees', 'INTEGER NOT NULL DEFAULT 2'),
    ('business_settings', 'repair_terms', 'TEXT'),
    ('business_settings', 'label_format', "VARCHAR(20) DEFAULT 'portrait'"),
    ('business_settings', 'label_width', 'INTEGER DEFAULT 32'),
    ('business_settings', 'label_height', 'INTEGER DEFAULT 57'),
    ('business_settings', 'receipt_width', "VARCHAR(10) DEFAULT '80mm'"),
    ('cost_estimates', 'accepted_at', 'TIMESTAMP'),
]


def _check_identifier(name: str) -> str:
    if not _IDENTIFIER.match(name or ''):
        raise ValueError(f'Invalid identifier: {name!r}')
    return name


def table_exists(table: str) -> bool:
    """Check if a table exists in the connected database."""
    return inspect(db.engine).has_table(table)


def column_exists(table: str, column: str) -> bool:
    """Check if a column exists. False if the table itself is missing."""
    if not table_exists(table):
        return False
    return column in {c['name'] for c in inspect(db.engine).get_columns(table)}


def ensure_column(table: str, column: str, ddl_type: str) -> str:
    """Add a column if it is missing.

    Returns:
        Log line starting with [OK] or [INFO]
    """
    _check_identifier(table)
    _check_identifier(column)
    if not table_exists(table):
        return f'[INFO] Tabelle {table} fehlt, Spalte {column} übersprungen'
    if column_exists(table, column):
        return f'[INFO] {table}.{column} existiert bereits'
    with db.engine.begin() as conn:
        conn.execute(text(f'ALTER TABLE {table} ADD COLUMN {column} {ddl_type}'))
    return f'[OK] {table}.{column} hinzugefügt'


def ensure_table(model) -> str:
    """Create the table of a model if it is missing."""
    table = model.__table__
    if table_exists(table.name):
        return f'[INFO] Tabelle {table.name} existiert bereits'
    table.create(bind=db.engine, checkfirst=True)
    return f'[OK] Tabelle {table.name} angelegt'


def ensure_schema() -> list[str]:
    """Create missing tables and add the legacy columns."""
    # Import all models so the metadata is complete
    import app.models  # noqa: F401

    lines = []
    for table in db.metadata.sorted_tables:
        if table_exists(table.name):
            lines.append(f'[INFO] Tabelle {table.name} existiert bereits')
        else:
            table.create(bind=db.engine, checkfirst=True)
            lines.append(f'[OK] Tabelle {table.name} angelegt')
    for table, column, ddl_type in LEGACY_COLUMNS:
        lines.append(ensure_column(table, column, ddl_type))
    return lines


def wait_for_database(retries: int = None, delay: float = None, backoff: float = 2.0,
                      max_delay: float = 30.0) -> int:
    """Wait until the database accepts connections.

    Runs SELECT 1 until it succeeds. The delay grows by ``backoff`` after
    each failed attempt, capped at ``max_delay``.

    Returns:
        Number of attempts needed

    Raises:
        OperationalError: If the last attempt fails
    """
    retries = retries if retries is not None else current_app.config['DB_CONNECT_RETRIES']
    delay = delay if delay is not None else current_app.config['DB_CONNECT_DELAY']

    for attempt in range(1, retries + 1):
        try:
            with db.engine.connect() as conn:
                conn.execute(text('SELECT 1'))
            return attempt
        except OperationalError as e:
            if attempt == retries:
                current_app.logger.error(f'Datenbank nach {retries} Versuchen nicht erreichbar')
                raise
            current_app.logger.warning(
                f'Datenbank nicht erreichbar (Versuch {attempt}/{retries}): {e.orig}'
            )
            time.sleep(delay)
            delay = min(delay * backoff, max_delay)
    return retries


def fix_shop_isolation() -> dict:
    """Assign missing shop_id values from the owning user, customer or repair.

    Returns:
        Number of fixed rows per table
    """
    from app.models import (
        CostEstimate, Customer, EmailHistory, Feedback, Repair, SparePart, User,
    )

    fixed = {}

    count = 0
    for customer in Customer.query.filter(Customer.shop_id.is_(None)).all():
        creator = db.session.get(User, customer.created_by) if customer.created_by else None
        if creator and creator.shop_id:
            customer.shop_id = creator.shop_id
            count += 1
    fixed['customers'] = count
    db.session.flush()

    for model, parent_attr in ((Repair, 'customer'), (CostEstimate, 'customer'),
                               (SparePart, 'repair'), (EmailHistory, 'repair'),
                               (Feedback, 'repair')):
        count = 0
        for row in model.query.filter(model.shop_id.is_(None)).all():
            parent = getattr(row, parent_attr)
            if parent is not None and parent.shop_id:
                row.shop_id = parent.shop_id
                count += 1
        fixed[model.__tablename__] = count
        db.session.flush()

    return fixed
