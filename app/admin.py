"""Flask-Admin configuration for superadmin database maintenance."""
from flask import abort
from flask_admin import Admin, AdminIndexView, expose
from flask_admin.contrib.sqla import ModelView
from flask_login import current_user
from markupsafe import Markup


def get_branding_extra_css():
    """Generate extra CSS for the system branding colors."""
    from app.services import BrandingService
    branding = BrandingService().get_branding()
    return Markup(f'''
    <style>
        .navbar-default {{
            background-color: {branding.primary_color} !important;
            border-color: {branding.primary_color} !important;
        }}
        .navbar-default .navbar-brand,
        .navbar-default .navbar-nav > li > a {{
            color: #fff !important;
        }}
        .navbar-default .navbar-nav > .active > a {{
            color: #fff !important;
            background-color: rgba(0,0,0,0.2) !important;
        }}
        .btn-primary {{
            background-color: {branding.primary_color} !important;
            border-color: {branding.primary_color} !important;
        }}
        .btn-primary:hover {{
            background-color: {branding.secondary_color} !important;
            border-color: {branding.secondary_color} !important;
        }}
        a {{ color: {branding.primary_color}; }}
    </style>
    ''')


def _is_superadmin():
    return current_user.is_authenticated and current_user.is_active and current_user.is_superadmin


class SecureModelView(ModelView):
    """ModelView that requires the superadmin role."""

    page_size = 50

    def is_accessible(self):
        return _is_superadmin()

    def inaccessible_callback(self, name, **kwargs):
        abort(403)

    def render(self, template, **kwargs):
        """Add branding and extra CSS to template context."""
        from app.services import BrandingService
        kwargs['branding'] = BrandingService().get_branding()
        kwargs['extra_css'] = get_branding_extra_css()
        return super().render(template, **kwargs)


class ReadOnlyModelView(SecureModelView):
    """Audit data can be inspected but never changed."""

    can_create = False
    can_edit = False
    can_delete = False
    column_default_sort = ('id', True)


class UserModelView(SecureModelView):
    column_list = ('id', 'username', 'email', 'rolle_obj', 'shop', 'is_active', 'last_login_at')
    column_searchable_list = ('username', 'email')
    # Password hashes are set through the API only
    form_excluded_columns = ('password_hash',)


class ShopModelView(SecureModelView):
    column_list = ('id', 'name', 'status', 'pricing_plan', 'trial_ends_at', 'created_at')
    column_searchable_list = ('name',)


class SecureAdminIndexView(AdminIndexView):
    """Admin index view that requires the superadmin role."""

    @expose('/')
    def index(self):
        if not _is_superadmin():
            abort(403)
        return super().index()

    def render(self, template, **kwargs):
        """Add branding and extra CSS to template context."""
        from app.services import BrandingService
        kwargs['branding'] = BrandingService().get_branding()
        kwargs['extra_css'] = get_branding_extra_css()
        return super().render(template, **kwargs)


def init_admin(app, db):
    """Initialize Flask-Admin with the model views."""
    from app.models import (
        AuditLog, Brand, Config, DeviceModel, DeviceType, EmailTemplate, ErrorCatalogEntry,
        Shop, SupportAccessLog, User,
    )

    admin = Admin(
        app,
        name='DB Admin',
        url='/db-admin',
        endpoint='dbadmin',
        index_view=SecureAdminIndexView(url='/db-admin', endpoint='dbadmin'),
    )

    admin.add_view(ShopModelView(Shop, db.session, name='Shops'))
    admin.add_view(UserModelView(User, db.session, name='Benutzer'))
    admin.add_view(SecureModelView(Config, db.session, name='Config'))
    admin.add_view(SecureModelView(DeviceType, db.session, name='Gerätetypen', category='Katalog'))
    admin.add_view(SecureModelView(Brand, db.session, name='Marken', category='Katalog'))
    admin.add_view(SecureModelView(DeviceModel, db.session, name='Modelle', category='Katalog'))
    admin.add_view(SecureModelView(ErrorCatalogEntry, db.session, name='Fehlerkatalog', category='Katalog'))
    admin.add_view(SecureModelView(EmailTemplate, db.session, name='E-Mail-Vorlagen'))
    admin.add_view(ReadOnlyModelView(SupportAccessLog, db.session, name='Support-Zugriffe', category='Protokolle'))
    admin.add_view(ReadOnlyModelView(AuditLog, db.session, name='Audit-Log', category='Protokolle'))

    return admin
