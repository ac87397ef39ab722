"""Add multi-shop admin grants and DSGVO support access log

Revision ID: c9d84f3e6a17
Revises: 7b2e4d9a1c52
Create Date: 2026-04-22 10:05:48.902641

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'c9d84f3e6a17'
down_revision = '7b2e4d9a1c52'
branch_labels = None
depends_on = None


def _has_table(name):
    return sa.inspect(op.get_bind()).has_table(name)


def _has_column(table, column):
    inspector = sa.inspect(op.get_bind())
    return column in {c['name'] for c in inspector.get_columns(table)}


def upgrade():
    with op.batch_alter_table('users', schema=None) as batch_op:
        if not _has_column('users', 'parent_user_id'):
            batch_op.add_column(sa.Column('parent_user_id', sa.Integer(), nullable=True))
            batch_op.create_foreign_key('fk_users_parent_user_id', 'users', ['parent_user_id'], ['id'])
        if not _has_column('users', 'can_assign_multi_shop_admins'):
            batch_op.add_column(sa.Column('can_assign_multi_shop_admins', sa.Boolean(), nullable=False,
                                          server_default=sa.false()))

    if not _has_table('user_shop_access'):
        op.create_table('user_shop_access',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('user_id', sa.Integer(), nullable=False),
            sa.Column('shop_id', sa.Integer(), nullable=False),
            sa.Column('access_level', sa.String(length=20), nullable=False),
            sa.Column('granted_by', sa.Integer(), nullable=True),
            sa.Column('granted_at', sa.DateTime(), nullable=True),
            sa.Column('revoked_at', sa.DateTime(), nullable=True),
            sa.Column('is_active', sa.Boolean(), nullable=False),
            sa.ForeignKeyConstraint(['user_id'], ['users.id'], name='fk_user_shop_access_user_id'),
            sa.ForeignKeyConstraint(['shop_id'], ['shops.id'], name='fk_user_shop_access_shop_id'),
            sa.ForeignKeyConstraint(['granted_by'], ['users.id'], name='fk_user_shop_access_granted_by'),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('user_id', 'shop_id', name='uq_user_shop_access')
        )
        op.create_index('ix_user_shop_access_user_id', 'user_shop_access', ['user_id'], unique=False)
        op.create_index('ix_user_shop_access_shop_id', 'user_shop_access', ['shop_id'], unique=False)

    if not _has_table('multi_shop_permissions'):
        op.create_table('multi_shop_permissions',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('multi_shop_admin_id', sa.Integer(), nullable=False),
            sa.Column('shop_id', sa.Integer(), nullable=False),
            sa.Column('shop_owner_id', sa.Integer(), nullable=False),
            sa.Column('granted', sa.Boolean(), nullable=False),
            sa.Column('granted_at', sa.DateTime(), nullable=True),
            sa.Column('revoked_at', sa.DateTime(), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(['multi_shop_admin_id'], ['users.id'],
                                    name='fk_multi_shop_permissions_admin_id'),
            sa.ForeignKeyConstraint(['shop_id'], ['shops.id'], name='fk_multi_shop_permissions_shop_id'),
            sa.ForeignKeyConstraint(['shop_owner_id'], ['users.id'],
                                    name='fk_multi_shop_permissions_owner_id'),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index('ix_multi_shop_permissions_multi_shop_admin_id', 'multi_shop_permissions',
                        ['multi_shop_admin_id'], unique=False)
        op.create_index('ix_multi_shop_permissions_shop_id', 'multi_shop_permissions', ['shop_id'],
                        unique=False)

    if not _has_table('support_access_logs'):
        op.create_table('support_access_logs',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('shop_id', sa.Integer(), nullable=False),
            sa.Column('superadmin_id', sa.Integer(), nullable=False),
            sa.Column('reason', sa.Text(), nullable=False),
            sa.Column('access_type', sa.String(length=30), nullable=False),
            sa.Column('status', sa.String(length=20), nullable=False),
            sa.Column('is_active', sa.Boolean(), nullable=False),
            sa.Column('requested_at', sa.DateTime(), nullable=False),
            sa.Column('responded_at', sa.DateTime(), nullable=True),
            sa.Column('responding_user_id', sa.Integer(), nullable=True),
            sa.Column('started_at', sa.DateTime(), nullable=True),
            sa.Column('ended_at', sa.DateTime(), nullable=True),
            sa.Column('affected_entities', sa.Text(), nullable=True),
            sa.ForeignKeyConstraint(['shop_id'], ['shops.id'], name='fk_support_access_logs_shop_id'),
            sa.ForeignKeyConstraint(['superadmin_id'], ['users.id'],
                                    name='fk_support_access_logs_superadmin_id'),
            sa.ForeignKeyConstraint(['responding_user_id'], ['users.id'],
                                    name='fk_support_access_logs_responding_user_id'),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index('ix_support_access_logs_shop_id', 'support_access_logs', ['shop_id'],
                        unique=False)
        op.create_index('ix_support_access_logs_status', 'support_access_logs', ['status'],
                        unique=False)


def downgrade():
    op.drop_table('support_access_logs')
    op.drop_table('multi_shop_permissions')
    op.drop_table('user_shop_access')
    with op.batch_alter_table('users', schema=None) as batch_op:
        batch_op.drop_constraint('fk_users_parent_user_id', type_='foreignkey')
        batch_op.drop_column('can_assign_multi_shop_admins')
        batch_op.drop_column('parent_user_id')
