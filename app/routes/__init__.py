"""Flask routes."""
from app.routes.auth import auth_bp
from app.routes.customers import customers_bp
from app.routes.repairs import repairs_bp
from app.routes.spare_parts import spare_parts_bp
from app.routes.cost_estimates import cost_estimates_bp
from app.routes.catalog import catalog_bp
from app.routes.business_settings import business_settings_bp
from app.routes.email_templates import email_templates_bp
from app.routes.employees import employees_bp
from app.routes.multi_shop import multi_shop_bp
from app.routes.support_access import support_access_bp
from app.routes.superadmin import superadmin_bp
from app.routes.feedback import feedback_bp
from app.routes.stats import stats_bp
from app.routes.realtime import realtime_bp

API_BLUEPRINTS = [
    auth_bp,
    customers_bp,
    repairs_bp,
    spare_parts_bp,
    cost_estimates_bp,
    catalog_bp,
    business_settings_bp,
    email_templates_bp,
    employees_bp,
    multi_shop_bp,
    support_access_bp,
    superadmin_bp,
    feedback_bp,
    stats_bp,
    realtime_bp,
]

__all__ = [
    'auth_bp',
    'customers_bp',
    'repairs_bp',
    'spare_parts_bp',
    'cost_estimates_bp',
    'catalog_bp',
    'business_settings_bp',
    'email_templates_bp',
    'employees_bp',
    'multi_shop_bp',
    'support_access_bp',
    'superadmin_bp',
    'feedback_bp',
    'stats_bp',
    'realtime_bp',
    'API_BLUEPRINTS',
]
