"""Flask Application Factory."""
import os
from datetime import datetime

import click
import markdown
from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_login import LoginManager
from flask_sock import Sock
from flask_wtf.csrf import CSRFProtect

from app.config import config

db = SQLAlchemy()
migrate = Migrate(render_as_batch=True)
login_manager = LoginManager()
csrf = CSRFProtect()
sock = Sock()


def create_app(config_name=None):
    """Create and configure the Flask application."""
    if config_name is None:
        config_name = os.environ.get('FLASK_CONFIG', 'default')

    app = Flask(__name__)
    app.config.from_object(config[config_name])

    # Ensure instance folder exists
    try:
        os.makedirs(app.instance_path, exist_ok=True)
    except OSError:
        pass

    # Ensure data directories exist
    for dir_path in [
        app.config['UPLOAD_DIR'],
        app.config['EXPORTS_DIR'],
    ]:
        dir_path.mkdir(parents=True, exist_ok=True)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    csrf.init_app(app)
    sock.init_app(app)

    # User loader for Flask-Login
    from app.models import User

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'success': False, 'error': 'Nicht angemeldet'}), 401

    from app.errors import register_error_handlers
    register_error_handlers(app)

    # Register blueprints
    from app.routes import API_BLUEPRINTS
    for blueprint in API_BLUEPRINTS:
        app.register_blueprint(blueprint)
        # JSON API: session cookie + same-origin frontend
        csrf.exempt(blueprint)

    # Initialize Flask-Admin (under /db-admin, requires superadmin role)
    from app.admin import init_admin
    init_admin(app, db)

    # Register CLI commands
    register_cli_commands(app)

    # Register Jinja2 filters
    from app.utils import format_money

    @app.template_filter('money')
    def money_filter(value):
        """Format an amount as '1.234,50 €'."""
        return format_money(value)

    @app.template_filter('datum')
    def datum_filter(value, with_time=False):
        """Format a datetime as German date."""
        if not value:
            return ''
        return value.strftime('%d.%m.%Y %H:%M' if with_time else '%d.%m.%Y')

    @app.template_filter('nl2br')
    def nl2br_filter(text):
        """Convert newlines to <br> tags."""
        from markupsafe import Markup, escape
        if not text:
            return ''
        return Markup(escape(text).replace('\n', Markup('<br>')))

    @app.template_filter('markdown')
    def markdown_filter(text):
        """Convert Markdown text (repair terms) to HTML."""
        from markupsafe import Markup
        if not text:
            return ''
        html = markdown.markdown(text, extensions=['tables', 'nl2br'])
        return Markup(html)

    return app


def register_cli_commands(app):
    """Register CLI commands."""

    @app.cli.command('seed')
    def seed_command():
        """Seed roles, config defaults, email templates and the global catalog."""
        from app.models import Config as ConfigModel, Rolle, User
        from app.models.config import CONFIG_DEFAULTS
        from app.models.rolle import ROLLEN
        from app.services.catalog_service import seed_global_catalog
        from app.services.email_template_service import get_email_template_service

        for name, _ in ROLLEN:
            if not Rolle.query.filter_by(name=name).first():
                Rolle.get_by_name(name)
                click.echo(f'Created role: {name}')

        for key, value, beschreibung in CONFIG_DEFAULTS:
            if not ConfigModel.query.filter_by(key=key).first():
                db.session.add(ConfigModel(key=key, value=value, beschreibung=beschreibung))
                click.echo(f'Created config: {key}')

        for key in get_email_template_service().seed_defaults():
            click.echo(f'Created email template: {key}')

        created = seed_global_catalog()
        if created:
            click.echo(f'Created {len(created)} global catalog entries')
        else:
            click.echo('Global catalog already exists')

        # Superadmin from environment (SUPERADMIN_USERNAME/EMAIL/PASSWORD)
        username = os.environ.get('SUPERADMIN_USERNAME')
        password = os.environ.get('SUPERADMIN_PASSWORD')
        if username and password:
            if not User.query.filter_by(username=username).first():
                user = User(
                    username=username,
                    email=os.environ.get('SUPERADMIN_EMAIL', f'{username}@localhost'),
                    rolle_id=Rolle.get_by_name('superadmin').id,
                    is_active=True
                )
                user.set_password(password)
                db.session.add(user)
                click.echo(f'Created superadmin: {username}')
            else:
                click.echo(f'Superadmin already exists: {username}')

        db.session.commit()
        click.echo('Database seeded successfully!')

    @app.cli.command('seed-demo')
    @click.option('--password', default='demo1234', help='Password for all demo accounts')
    def seed_demo_command(password):
        """Create two demo shops with owners, an employee and a multi-shop admin."""
        from app.models import BusinessSettings, Customer, Rolle, Shop, User, UserShopAccess
        from app.services.repair_service import create_repair

        def get_or_create_user(username, rolle, shop=None, parent=None, **fields):
            user = User.query.filter_by(username=username).first()
            if user:
                click.echo(f'User already exists: {username}')
                return user
            user = User(
                username=username,
                email=fields.pop('email', f'{username}@demo.handyshop.at'),
                rolle_id=Rolle.get_by_name(rolle).id,
                shop_id=shop.id if shop else None,
                parent_user_id=parent.id if parent else None,
                **fields
            )
            user.set_password(password)
            db.session.add(user)
            db.session.flush()
            click.echo(f'Created user: {username} ({rolle})')
            return user

        shops = []
        for index, name in enumerate(['Handyshop Wien Mitte', 'Handyshop Graz'], start=1):
            shop = Shop.query.filter_by(name=name).first()
            if not shop:
                shop = Shop(name=name, pricing_plan='professional')
                db.session.add(shop)
                db.session.flush()
                db.session.add(BusinessSettings(shop_id=shop.id, business_name=name,
                                                city='Wien' if index == 1 else 'Graz'))
                click.echo(f'Created shop: {name}')
            owner = get_or_create_user(f'demo_owner{index}', 'owner', shop=shop,
                                       first_name='Demo', last_name=f'Inhaber {index}')
            shops.append((shop, owner))

            if not Customer.query.filter_by(shop_id=shop.id).first():
                customer = Customer(shop_id=shop.id, first_name='Max', last_name='Mustermann',
                                    phone='+43 660 1234567', email='max@example.org')
                db.session.add(customer)
                db.session.flush()
                create_repair(shop.id, {
                    'customer_id': customer.id,
                    'device_type': 'Smartphone',
                    'brand': 'Apple',
                    'model': 'iPhone 13',
                    'issue': 'Display gebrochen',
                    'estimated_cost': '189.00',
                }, owner)
                click.echo(f'Created demo customer and repair for {shop.name}')

        first_shop, first_owner = shops[0]
        get_or_create_user('demo_mitarbeiter', 'employee', shop=first_shop, parent=first_owner)

        msa = get_or_create_user('demo_msa', 'multi_shop_admin', first_name='Multi', last_name='Admin')
        for shop, owner in shops:
            if not UserShopAccess.query.filter_by(user_id=msa.id, shop_id=shop.id).first():
                db.session.add(UserShopAccess(user_id=msa.id, shop_id=shop.id, granted_by=owner.id))
                click.echo(f'Granted {msa.username} access to {shop.name}')

        db.session.commit()
        click.echo('Demo data created!')

    @app.cli.command('init-db')
    def init_db_command():
        """Initialize the database."""
        db.create_all()
        click.echo('Database initialized!')

    @app.cli.command('reset-db')
    def reset_db_command():
        """Drop all tables and recreate them. USE WITH CAUTION!

        Requires DB_RESET=true environment variable as safety measure.
        """
        if os.environ.get('DB_RESET', '').lower() != 'true':
            click.echo('ERROR: DB_RESET environment variable must be set to "true"')
            click.echo('This is a safety measure to prevent accidental data loss.')
            click.echo('')
            click.echo('Usage: DB_RESET=true flask reset-db')
            return

        click.echo('=' * 50)
        click.echo('WARNING: Dropping ALL tables...')
        click.echo('=' * 50)
        db.drop_all()
        click.echo('All tables dropped.')

        click.echo('Creating all tables...')
        db.create_all()
        click.echo('All tables created.')

        click.echo('')
        click.echo('Database reset complete!')
        click.echo('Run "flask seed" to populate data.')

    @app.cli.command('wait-for-db')
    @click.option('--retries', type=int, default=None, help='Number of attempts')
    @click.option('--delay', type=float, default=None, help='Initial delay in seconds')
    def wait_for_db_command(retries, delay):
        """Wait until the database accepts connections."""
        from sqlalchemy.exc import OperationalError
        from app.services.schema_service import wait_for_database

        try:
            attempts = wait_for_database(retries, delay)
        except OperationalError:
            click.echo('ERROR: Database not reachable')
            raise SystemExit(1)
        click.echo(f'Database ready after {attempts} attempt(s)')

    @app.cli.command('ensure-schema')
    def ensure_schema_command():
        """Create missing tables and columns of older installations."""
        from app.services.schema_service import ensure_schema

        for line in ensure_schema():
            click.echo(line)
        click.echo('Schema check complete!')

    @app.cli.command('expire-support-access')
    def expire_support_access_command():
        """End support sessions past their time window and expire old cost estimates."""
        from app.services.cost_estimate_service import expire_outdated
        from app.services.support_access_service import expire_stale_sessions

        sessions = expire_stale_sessions()
        estimates = expire_outdated()
        db.session.commit()
        click.echo(f'Expired {sessions} support session(s), {estimates} cost estimate(s)')

    @app.cli.command('fix-shop-isolation')
    def fix_shop_isolation_command():
        """Assign missing shop_id values from the owning records."""
        from app.services.schema_service import fix_shop_isolation

        fixed = fix_shop_isolation()
        db.session.commit()
        for table, count in fixed.items():
            prefix = '[OK]' if count else '[INFO]'
            click.echo(f'{prefix} {table}: {count} row(s) fixed')
        click.echo(f'Done at {datetime.utcnow():%Y-%m-%d %H:%M:%S} UTC')
