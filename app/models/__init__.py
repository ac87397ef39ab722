"""Database models."""
from app.models.shop import Shop, ShopStatus, PricingPlan
from app.models.config import Config
from app.models.rolle import Rolle
from app.models.user import User
from app.models.customer import Customer
from app.models.repair import Repair, RepairStatus
from app.models.spare_part import SparePart, SparePartStatus
from app.models.cost_estimate import CostEstimate, CostEstimateItem, CostEstimateStatus
from app.models.business_settings import BusinessSettings

# Email Templates & History
from app.models.email_template import EmailTemplate, EmailHistory

# Device & Error Catalog
from app.models.device_catalog import DeviceType, Brand, DeviceModel
from app.models.error_catalog import ErrorCatalogEntry

# Cross-tenant access
from app.models.support_access import SupportAccessLog, SupportAccessStatus
from app.models.multi_shop import UserShopAccess, MultiShopPermission, AccessLevel

from app.models.feedback import Feedback
from app.models.password_token import PasswordResetToken

# Audit-Log System
from app.models.audit_log import AuditLog

__all__ = [
    'Shop', 'ShopStatus', 'PricingPlan', 'Config',
    'Rolle', 'User',
    'Customer',
    'Repair', 'RepairStatus',
    'SparePart', 'SparePartStatus',
    'CostEstimate', 'CostEstimateItem', 'CostEstimateStatus',
    'BusinessSettings',
    # Email Templates & History
    'EmailTemplate', 'EmailHistory',
    # Device & Error Catalog
    'DeviceType', 'Brand', 'DeviceModel', 'ErrorCatalogEntry',
    # Cross-tenant access
    'SupportAccessLog', 'SupportAccessStatus',
    'UserShopAccess', 'MultiShopPermission', 'AccessLevel',
    'Feedback', 'PasswordResetToken',
    # Audit-Log System
    'AuditLog',
]
