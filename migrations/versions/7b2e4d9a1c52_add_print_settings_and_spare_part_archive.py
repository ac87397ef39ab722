"""Add receipt/label print settings, employee limit and spare part archive flag

Revision ID: 7b2e4d9a1c52
Revises: 3f1a2b7c9d01
Create Date: 2026-03-11 16:42:05.530117

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '7b2e4d9a1c52'
down_revision = '3f1a2b7c9d01'
branch_labels = None
depends_on = None


def _has_column(table, column):
    inspector = sa.inspect(op.get_bind())
    return column in {c['name'] for c in inspector.get_columns(table)}


def upgrade():
    with op.batch_alter_table('business_settings', schema=None) as batch_op:
        if not _has_column('business_settings', 'receipt_width'):
            batch_op.add_column(sa.Column('receipt_width', sa.String(length=10), nullable=True,
                                          server_default='80mm'))
        if not _has_column('business_settings', 'label_format'):
            batch_op.add_column(sa.Column('label_format', sa.String(length=20), nullable=True,
                                          server_default='portrait'))
        if not _has_column('business_settings', 'label_width'):
            batch_op.add_column(sa.Column('label_width', sa.Integer(), nullable=True,
                                          server_default='32'))
        if not _has_column('business_settings', 'label_height'):
            batch_op.add_column(sa.Column('label_height', sa.Integer(), nullable=True,
                                          server_default='57'))
        if not _has_column('business_settings', 'max_employees'):
            batch_op.add_column(sa.Column('max_employees', sa.Integer(), nullable=False,
                                          server_default='2'))

    # Delivered parts of finished repairs disappear from the open parts list
    if not _has_column('spare_parts', 'archived'):
        with op.batch_alter_table('spare_parts', schema=None) as batch_op:
            batch_op.add_column(sa.Column('archived', sa.Boolean(), nullable=False,
                                          server_default=sa.false()))


def downgrade():
    with op.batch_alter_table('spare_parts', schema=None) as batch_op:
        batch_op.drop_column('archived')

    with op.batch_alter_table('business_settings', schema=None) as batch_op:
        batch_op.drop_column('max_employees')
        batch_op.drop_column('label_height')
        batch_op.drop_column('label_width')
        batch_op.drop_column('label_format')
        batch_op.drop_column('receipt_width')
