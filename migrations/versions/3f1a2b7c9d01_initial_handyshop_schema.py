"""Initial schema: shops, users, customers, repairs, spare parts, cost estimates

Revision ID: 3f1a2b7c9d01
Revises:
Create Date: 2026-02-02 09:14:27.118204

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3f1a2b7c9d01'
down_revision = None
branch_labels = None
depends_on = None


def _has_table(name):
    return sa.inspect(op.get_bind()).has_table(name)


def upgrade():
    # Databases created with `flask ensure-schema` already have these tables
    if not _has_table('shops'):
        op.create_table('shops',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('name', sa.String(length=100), nullable=False),
            sa.Column('status', sa.String(length=20), nullable=False),
            sa.Column('pricing_plan', sa.String(length=20), nullable=False),
            sa.Column('trial_ends_at', sa.DateTime(), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=True),
            sa.PrimaryKeyConstraint('id')
        )

    if not _has_table('config'):
        op.create_table('config',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('key', sa.String(length=50), nullable=False),
            sa.Column('value', sa.Text(), nullable=True),
            sa.Column('beschreibung', sa.String(length=255), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=True),
            sa.Column('updated_at', sa.DateTime(), nullable=True),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index('ix_config_key', 'config', ['key'], unique=True)

    if not _has_table('rolle'):
        op.create_table('rolle',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('name', sa.String(length=30), nullable=False),
            sa.Column('beschreibung', sa.String(length=100), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=True),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('name')
        )

    if not _has_table('users'):
        op.create_table('users',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('username', sa.String(length=80), nullable=False),
            sa.Column('email', sa.String(length=120), nullable=False),
            sa.Column('password_hash', sa.String(length=256), nullable=False),
            sa.Column('first_name', sa.String(length=50), nullable=True),
            sa.Column('last_name', sa.String(length=50), nullable=True),
            sa.Column('rolle_id', sa.Integer(), nullable=False),
            sa.Column('shop_id', sa.Integer(), nullable=True),
            sa.Column('is_active', sa.Boolean(), nullable=False),
            sa.Column('last_login_at', sa.DateTime(), nullable=True),
            sa.Column('last_logout_at', sa.DateTime(), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(['rolle_id'], ['rolle.id'], name='fk_users_rolle_id'),
            sa.ForeignKeyConstraint(['shop_id'], ['shops.id'], name='fk_users_shop_id'),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index('ix_users_username', 'users', ['username'], unique=True)
        op.create_index('ix_users_email', 'users', ['email'], unique=False)
        op.create_index('ix_users_shop_id', 'users', ['shop_id'], unique=False)

    if not _has_table('customers'):
        op.create_table('customers',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('shop_id', sa.Integer(), nullable=False),
            sa.Column('first_name', sa.String(length=100), nullable=False),
            sa.Column('last_name', sa.String(length=100), nullable=False),
            sa.Column('phone', sa.String(length=50), nullable=False),
            sa.Column('email', sa.String(length=120), nullable=True),
            sa.Column('address', sa.String(length=200), nullable=True),
            sa.Column('zip_code', sa.String(length=20), nullable=True),
            sa.Column('city', sa.String(length=100), nullable=True),
            sa.Column('notes', sa.Text(), nullable=True),
            sa.Column('created_by', sa.Integer(), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(['shop_id'], ['shops.id'], name='fk_customers_shop_id'),
            sa.ForeignKeyConstraint(['created_by'], ['users.id'], name='fk_customers_created_by'),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index('ix_customers_shop_id', 'customers', ['shop_id'], unique=False)

    if not _has_table('repairs'):
        op.create_table('repairs',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('shop_id', sa.Integer(), nullable=False),
            sa.Column('customer_id', sa.Integer(), nullable=False),
            sa.Column('order_code', sa.String(length=20), nullable=True),
            sa.Column('device_type', sa.String(length=50), nullable=False),
            sa.Column('brand', sa.String(length=100), nullable=False),
            sa.Column('model', sa.String(length=100), nullable=False),
            sa.Column('serial_number', sa.String(length=100), nullable=True),
            sa.Column('issue', sa.Text(), nullable=False),
            sa.Column('estimated_cost', sa.Numeric(precision=10, scale=2), nullable=True),
            sa.Column('deposit_amount', sa.Numeric(precision=10, scale=2), nullable=True),
            sa.Column('status', sa.String(length=30), nullable=False),
            sa.Column('notes', sa.Text(), nullable=True),
            sa.Column('technician_note', sa.Text(), nullable=True),
            sa.Column('creation_month', sa.String(length=7), nullable=True),
            sa.Column('status_updated_at', sa.DateTime(), nullable=True),
            sa.Column('created_by', sa.Integer(), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=True),
            sa.Column('updated_at', sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(['shop_id'], ['shops.id'], name='fk_repairs_shop_id'),
            sa.ForeignKeyConstraint(['customer_id'], ['customers.id'], name='fk_repairs_customer_id'),
            sa.ForeignKeyConstraint(['created_by'], ['users.id'], name='fk_repairs_created_by'),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index('ix_repairs_shop_id', 'repairs', ['shop_id'], unique=False)
        op.create_index('ix_repairs_order_code', 'repairs', ['order_code'], unique=True)
        op.create_index('ix_repairs_status', 'repairs', ['status'], unique=False)
        op.create_index('ix_repairs_creation_month', 'repairs', ['creation_month'], unique=False)

    if not _has_table('spare_parts'):
        op.create_table('spare_parts',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('shop_id', sa.Integer(), nullable=False),
            sa.Column('repair_id', sa.Integer(), nullable=False),
            sa.Column('part_name', sa.String(length=200), nullable=False),
            sa.Column('supplier', sa.String(length=200), nullable=True),
            sa.Column('cost', sa.Numeric(precision=10, scale=2), nullable=True),
            sa.Column('status', sa.String(length=20), nullable=False),
            sa.Column('order_date', sa.DateTime(), nullable=True),
            sa.Column('delivery_date', sa.DateTime(), nullable=True),
            sa.Column('notes', sa.Text(), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=True),
            sa.Column('updated_at', sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(['shop_id'], ['shops.id'], name='fk_spare_parts_shop_id'),
            sa.ForeignKeyConstraint(['repair_id'], ['repairs.id'], name='fk_spare_parts_repair_id',
                                    ondelete='CASCADE'),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index('ix_spare_parts_shop_id', 'spare_parts', ['shop_id'], unique=False)
        op.create_index('ix_spare_parts_repair_id', 'spare_parts', ['repair_id'], unique=False)

    if not _has_table('cost_estimates'):
        op.create_table('cost_estimates',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('shop_id', sa.Integer(), nullable=False),
            sa.Column('reference_number', sa.String(length=20), nullable=False),
            sa.Column('customer_id', sa.Integer(), nullable=False),
            sa.Column('title', sa.String(length=200), nullable=True),
            sa.Column('device_type', sa.String(length=50), nullable=False),
            sa.Column('brand', sa.String(length=100), nullable=False),
            sa.Column('model', sa.String(length=100), nullable=False),
            sa.Column('serial_number', sa.String(length=100), nullable=True),
            sa.Column('issue', sa.Text(), nullable=False),
            sa.Column('description', sa.Text(), nullable=True),
            sa.Column('subtotal', sa.Numeric(precision=10, scale=2), nullable=False),
            sa.Column('tax_rate', sa.Numeric(precision=5, scale=2), nullable=False),
            sa.Column('tax_amount', sa.Numeric(precision=10, scale=2), nullable=False),
            sa.Column('total', sa.Numeric(precision=10, scale=2), nullable=False),
            sa.Column('status', sa.String(length=20), nullable=False),
            sa.Column('valid_until', sa.DateTime(), nullable=True),
            sa.Column('accepted_at', sa.DateTime(), nullable=True),
            sa.Column('converted_to_repair', sa.Boolean(), nullable=False),
            sa.Column('repair_id', sa.Integer(), nullable=True),
            sa.Column('created_by', sa.Integer(), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=True),
            sa.Column('updated_at', sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(['shop_id'], ['shops.id'], name='fk_cost_estimates_shop_id'),
            sa.ForeignKeyConstraint(['customer_id'], ['customers.id'], name='fk_cost_estimates_customer_id'),
            sa.ForeignKeyConstraint(['repair_id'], ['repairs.id'], name='fk_cost_estimates_repair_id'),
            sa.ForeignKeyConstraint(['created_by'], ['users.id'], name='fk_cost_estimates_created_by'),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('shop_id', 'reference_number', name='uq_cost_estimate_reference')
        )
        op.create_index('ix_cost_estimates_shop_id', 'cost_estimates', ['shop_id'], unique=False)
        op.create_index('ix_cost_estimates_reference_number', 'cost_estimates', ['reference_number'],
                        unique=False)

    if not _has_table('cost_estimate_items'):
        op.create_table('cost_estimate_items',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('cost_estimate_id', sa.Integer(), nullable=False),
            sa.Column('position', sa.Integer(), nullable=False),
            sa.Column('description', sa.String(length=255), nullable=False),
            sa.Column('quantity', sa.Integer(), nullable=False),
            sa.Column('unit_price', sa.Numeric(precision=10, scale=2), nullable=False),
            sa.Column('total_price', sa.Numeric(precision=10, scale=2), nullable=False),
            sa.Column('created_at', sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(['cost_estimate_id'], ['cost_estimates.id'],
                                    name='fk_cost_estimate_items_estimate_id', ondelete='CASCADE'),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index('ix_cost_estimate_items_cost_estimate_id', 'cost_estimate_items',
                        ['cost_estimate_id'], unique=False)

    if not _has_table('business_settings'):
        op.create_table('business_settings',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('shop_id', sa.Integer(), nullable=False),
            sa.Column('business_name', sa.String(length=150), nullable=False),
            sa.Column('owner_first_name', sa.String(length=100), nullable=True),
            sa.Column('owner_last_name', sa.String(length=100), nullable=True),
            sa.Column('tax_id', sa.String(length=50), nullable=True),
            sa.Column('vat_number', sa.String(length=50), nullable=True),
            sa.Column('company_slogan', sa.String(length=200), nullable=True),
            sa.Column('street_address', sa.String(length=200), nullable=True),
            sa.Column('city', sa.String(length=100), nullable=True),
            sa.Column('zip_code', sa.String(length=20), nullable=True),
            sa.Column('country', sa.String(length=100), nullable=True),
            sa.Column('phone', sa.String(length=50), nullable=True),
            sa.Column('email', sa.String(length=120), nullable=True),
            sa.Column('website', sa.String(length=200), nullable=True),
            sa.Column('opening_hours', sa.Text(), nullable=True),
            sa.Column('review_link', sa.String(length=300), nullable=True),
            sa.Column('repair_terms', sa.Text(), nullable=True),
            sa.Column('logo_path', sa.String(length=255), nullable=True),
            sa.Column('color_theme', sa.String(length=20), nullable=True),
            sa.Column('smtp_sender_name', sa.String(length=100), nullable=True),
            sa.Column('smtp_host', sa.String(length=150), nullable=True),
            sa.Column('smtp_user', sa.String(length=150), nullable=True),
            sa.Column('smtp_password', sa.String(length=255), nullable=True),
            sa.Column('smtp_port', sa.Integer(), nullable=True),
            sa.Column('kiosk_pin', sa.String(length=10), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=True),
            sa.Column('updated_at', sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(['shop_id'], ['shops.id'], name='fk_business_settings_shop_id'),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('shop_id')
        )

    if not _has_table('email_templates'):
        op.create_table('email_templates',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('shop_id', sa.Integer(), nullable=True),
            sa.Column('schluessel', sa.String(length=50), nullable=False),
            sa.Column('name', sa.String(length=100), nullable=False),
            sa.Column('betreff', sa.String(length=200), nullable=False),
            sa.Column('body_html', sa.Text(), nullable=False),
            sa.Column('body_text', sa.Text(), nullable=True),
            sa.Column('kategorie', sa.String(length=20), nullable=False),
            sa.Column('aktiv', sa.Boolean(), nullable=False),
            sa.Column('erstellt_am', sa.DateTime(), nullable=True),
            sa.Column('aktualisiert_am', sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(['shop_id'], ['shops.id'], name='fk_email_templates_shop_id'),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('shop_id', 'schluessel', name='uq_email_template_shop_key')
        )
        op.create_index('ix_email_templates_shop_id', 'email_templates', ['shop_id'], unique=False)
        op.create_index('ix_email_templates_schluessel', 'email_templates', ['schluessel'], unique=False)

    if not _has_table('email_history'):
        op.create_table('email_history',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('shop_id', sa.Integer(), nullable=False),
            sa.Column('repair_id', sa.Integer(), nullable=True),
            sa.Column('email_template_id', sa.Integer(), nullable=True),
            sa.Column('recipient', sa.String(length=120), nullable=False),
            sa.Column('subject', sa.String(length=200), nullable=False),
            sa.Column('status', sa.String(length=20), nullable=False),
            sa.Column('error', sa.Text(), nullable=True),
            sa.Column('sent_at', sa.DateTime(), nullable=True),
            sa.Column('user_id', sa.Integer(), nullable=True),
            sa.ForeignKeyConstraint(['shop_id'], ['shops.id'], name='fk_email_history_shop_id'),
            sa.ForeignKeyConstraint(['repair_id'], ['repairs.id'], name='fk_email_history_repair_id',
                                    ondelete='CASCADE'),
            sa.ForeignKeyConstraint(['email_template_id'], ['email_templates.id'],
                                    name='fk_email_history_template_id'),
            sa.ForeignKeyConstraint(['user_id'], ['users.id'], name='fk_email_history_user_id'),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index('ix_email_history_shop_id', 'email_history', ['shop_id'], unique=False)
        op.create_index('ix_email_history_repair_id', 'email_history', ['repair_id'], unique=False)
        op.create_index('ix_email_history_sent_at', 'email_history', ['sent_at'], unique=False)

    if not _has_table('device_types'):
        op.create_table('device_types',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('name', sa.String(length=50), nullable=False),
            sa.Column('shop_id', sa.Integer(), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(['shop_id'], ['shops.id'], name='fk_device_types_shop_id'),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index('ix_device_types_shop_id', 'device_types', ['shop_id'], unique=False)

    if not _has_table('brands'):
        op.create_table('brands',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('name', sa.String(length=100), nullable=False),
            sa.Column('device_type_id', sa.Integer(), nullable=False),
            sa.Column('shop_id', sa.Integer(), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(['device_type_id'], ['device_types.id'],
                                    name='fk_brands_device_type_id'),
            sa.ForeignKeyConstraint(['shop_id'], ['shops.id'], name='fk_brands_shop_id'),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index('ix_brands_shop_id', 'brands', ['shop_id'], unique=False)

    if not _has_table('models'):
        op.create_table('models',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('name', sa.String(length=150), nullable=False),
            sa.Column('brand_id', sa.Integer(), nullable=False),
            sa.Column('device_type_id', sa.Integer(), nullable=True),
            sa.Column('shop_id', sa.Integer(), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(['brand_id'], ['brands.id'], name='fk_models_brand_id'),
            sa.ForeignKeyConstraint(['device_type_id'], ['device_types.id'],
                                    name='fk_models_device_type_id'),
            sa.ForeignKeyConstraint(['shop_id'], ['shops.id'], name='fk_models_shop_id'),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index('ix_models_brand_id', 'models', ['brand_id'], unique=False)
        op.create_index('ix_models_shop_id', 'models', ['shop_id'], unique=False)

    if not _has_table('error_catalog_entries'):
        op.create_table('error_catalog_entries',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('shop_id', sa.Integer(), nullable=True),
            sa.Column('error_text', sa.String(length=255), nullable=False),
            sa.Column('for_smartphone', sa.Boolean(), nullable=False),
            sa.Column('for_tablet', sa.Boolean(), nullable=False),
            sa.Column('for_laptop', sa.Boolean(), nullable=False),
            sa.Column('for_smartwatch', sa.Boolean(), nullable=False),
            sa.Column('for_gameconsole', sa.Boolean(), nullable=False),
            sa.Column('is_active', sa.Boolean(), nullable=False),
            sa.Column('created_at', sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(['shop_id'], ['shops.id'], name='fk_error_catalog_entries_shop_id'),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index('ix_error_catalog_entries_shop_id', 'error_catalog_entries', ['shop_id'],
                        unique=False)

    if not _has_table('feedbacks'):
        op.create_table('feedbacks',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('shop_id', sa.Integer(), nullable=False),
            sa.Column('repair_id', sa.Integer(), nullable=False),
            sa.Column('customer_id', sa.Integer(), nullable=False),
            sa.Column('feedback_token', sa.String(length=64), nullable=False),
            sa.Column('rating', sa.Integer(), nullable=True),
            sa.Column('comment', sa.Text(), nullable=True),
            sa.Column('submitted_at', sa.DateTime(), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(['shop_id'], ['shops.id'], name='fk_feedbacks_shop_id'),
            sa.ForeignKeyConstraint(['repair_id'], ['repairs.id'], name='fk_feedbacks_repair_id',
                                    ondelete='CASCADE'),
            sa.ForeignKeyConstraint(['customer_id'], ['customers.id'], name='fk_feedbacks_customer_id'),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index('ix_feedbacks_shop_id', 'feedbacks', ['shop_id'], unique=False)
        op.create_index('ix_feedbacks_feedback_token', 'feedbacks', ['feedback_token'], unique=True)

    if not _has_table('password_reset_tokens'):
        op.create_table('password_reset_tokens',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('user_id', sa.Integer(), nullable=False),
            sa.Column('token_hash', sa.String(length=64), nullable=False),
            sa.Column('expires_at', sa.DateTime(), nullable=False),
            sa.Column('used_at', sa.DateTime(), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(['user_id'], ['users.id'], name='fk_password_reset_tokens_user_id',
                                    ondelete='CASCADE'),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index('ix_password_reset_tokens_token_hash', 'password_reset_tokens', ['token_hash'],
                        unique=True)

    if not _has_table('audit_log'):
        op.create_table('audit_log',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('timestamp', sa.DateTime(), nullable=False),
            sa.Column('shop_id', sa.Integer(), nullable=True),
            sa.Column('user_id', sa.Integer(), nullable=True),
            sa.Column('modul', sa.String(length=30), nullable=False),
            sa.Column('aktion', sa.String(length=100), nullable=False),
            sa.Column('details', sa.Text(), nullable=True),
            sa.Column('wichtigkeit', sa.String(length=20), nullable=False),
            sa.Column('entity_type', sa.String(length=50), nullable=True),
            sa.Column('entity_id', sa.Integer(), nullable=True),
            sa.Column('ip_adresse', sa.String(length=45), nullable=True),
            sa.ForeignKeyConstraint(['shop_id'], ['shops.id'], name='fk_audit_log_shop_id'),
            sa.ForeignKeyConstraint(['user_id'], ['users.id'], name='fk_audit_log_user_id',
                                    ondelete='SET NULL'),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index('ix_audit_log_timestamp', 'audit_log', ['timestamp'], unique=False)
        op.create_index('ix_audit_log_shop_id', 'audit_log', ['shop_id'], unique=False)
        op.create_index('ix_audit_log_modul', 'audit_log', ['modul'], unique=False)
        op.create_index('ix_audit_log_aktion', 'audit_log', ['aktion'], unique=False)
        op.create_index('ix_audit_log_wichtigkeit', 'audit_log', ['wichtigkeit'], unique=False)


def downgrade():
    # Children first
    for table in ('audit_log', 'password_reset_tokens', 'feedbacks', 'error_catalog_entries',
                  'models', 'brands', 'device_types', 'email_history', 'email_templates',
                  'business_settings', 'cost_estimate_items', 'cost_estimates', 'spare_parts',
                  'repairs', 'customers', 'users', 'rolle', 'config', 'shops'):
        if _has_table(table):
            op.drop_table(table)
