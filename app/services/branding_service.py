"""Branding Service for loading the brand configuration of a shop."""
from dataclasses import dataclass
from typing import Optional

from app.models import BusinessSettings, Config


# color_theme -> (primary, secondary)
COLOR_THEMES = {
    'blue': ('#2563eb', '#1e40af'),
    'green': ('#16a34a', '#166534'),
    'red': ('#dc2626', '#991b1b'),
    'orange': ('#ea580c', '#9a3412'),
    'purple': ('#9333ea', '#6b21a8'),
    'gray': ('#4b5563', '#1f2937'),
}


@dataclass
class BrandingConfig:
    """Branding configuration values."""
    logo_url: Optional[str]
    primary_color: str
    secondary_color: str
    color_theme: str
    app_title: str
    business_name: str


class BrandingService:
    """Service for loading branding from the shop settings with system defaults."""

    DEFAULT_THEME = 'blue'
    DEFAULT_PRIMARY_COLOR = '#2563eb'
    DEFAULT_APP_TITLE = 'Handyshop Verwaltung'
    LOGO_URL = '/api/business-settings/logo'

    def get_branding(self, shop_id: int = None) -> BrandingConfig:
        """Load branding for a shop, falling back to the Config defaults."""
        settings = BusinessSettings.query.filter_by(shop_id=shop_id).first() if shop_id else None
        app_title = Config.get_value('brand_app_title', self.DEFAULT_APP_TITLE)

        theme = settings.color_theme if settings and settings.color_theme in COLOR_THEMES else None
        if theme:
            primary, secondary = COLOR_THEMES[theme]
        else:
            theme = self.DEFAULT_THEME
            primary = Config.get_value('brand_primary_color', self.DEFAULT_PRIMARY_COLOR)
            secondary = COLOR_THEMES[self.DEFAULT_THEME][1]

        if settings and settings.logo_path:
            logo_url = f'{self.LOGO_URL}?shop_id={shop_id}'
        else:
            default_logo = Config.get_value('brand_logo', '')
            logo_url = default_logo or None

        return BrandingConfig(
            logo_url=logo_url,
            primary_color=primary,
            secondary_color=secondary,
            color_theme=theme,
            app_title=app_title,
            business_name=settings.business_name if settings else app_title,
        )

    def get_branding_dict(self, shop_id: int = None) -> dict:
        """Get branding as dictionary for templates and the API."""
        branding = self.get_branding(shop_id)
        return {
            'logo_url': branding.logo_url,
            'primary_color': branding.primary_color,
            'secondary_color': branding.secondary_color,
            'color_theme': branding.color_theme,
            'app_title': branding.app_title,
            'business_name': branding.business_name,
        }
