"""Service modules for handyshop-manager."""
from app.services.storage_service import StorageService, S3Storage, LocalStorage, S3Config, get_storage
from app.services.branding_service import BrandingService, BrandingConfig
from app.services.broadcast_service import ShopBroadcaster, get_broadcaster
from app.services.email_template_service import EmailTemplateService, get_email_template_service
from app.services.email_service import (
    EmailService, EmailResult, BrevoService, SmtpSettings, get_email_service,
)
from app.services.password_service import PasswordService, ResetRequestResult, get_password_service
from app.services.repair_service import StatusChangeResult
from app.services.catalog_service import CatalogImportResult
from app.services.xlsx_exporter import XlsxExporter, XlsxExportResult, generate_xlsx_filename

__all__ = [
    # Storage Service
    'StorageService', 'S3Storage', 'LocalStorage', 'S3Config', 'get_storage',
    # Branding Service
    'BrandingService', 'BrandingConfig',
    # Realtime
    'ShopBroadcaster', 'get_broadcaster',
    # E-Mail
    'EmailTemplateService', 'get_email_template_service',
    'EmailService', 'EmailResult', 'BrevoService', 'SmtpSettings', 'get_email_service',
    # Passwords
    'PasswordService', 'ResetRequestResult', 'get_password_service',
    # Repairs
    'StatusChangeResult',
    # Catalog
    'CatalogImportResult',
    # XLSX Exporter
    'XlsxExporter', 'XlsxExportResult', 'generate_xlsx_filename',
]
