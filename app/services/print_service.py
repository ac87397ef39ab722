"""Printable HTML documents (repair order, receipt, cost estimate)."""
from flask import render_template

from app.errors import ValidationError
from app.models import BusinessSettings, CostEstimate, Repair, RepairStatus
from app.services.branding_service import BrandingService

RECEIPT_WIDTHS = ('58mm', '80mm')


def _document_context(shop_id: int) -> dict:
    settings = BusinessSettings.query.filter_by(shop_id=shop_id).first()
    return {
        'settings': settings,
        'branding': BrandingService().get_branding(shop_id),
    }


def render_repair_order(repair: Repair) -> str:
    """A4 repair order with customer copy and repair terms."""
    return render_template(
        'print/repair_order.html',
        repair=repair,
        customer=repair.customer,
        status_label=RepairStatus.get_label(repair.status),
        **_document_context(repair.shop_id)
    )


def render_receipt(repair: Repair, width: str = None) -> str:
    """Thermal receipt (58 or 80 mm)."""
    context = _document_context(repair.shop_id)
    settings = context['settings']
    width = width or (settings.receipt_width if settings else None) or '80mm'
    if width not in RECEIPT_WIDTHS:
        raise ValidationError(f'Ungültige Bonbreite: {width}')
    return render_template(
        'print/receipt.html',
        repair=repair,
        customer=repair.customer,
        width=width,
        **context
    )


def render_cost_estimate(estimate: CostEstimate) -> str:
    """Cost estimate as A4 HTML page."""
    return render_template(
        'print/cost_estimate.html',
        estimate=estimate,
        customer=estimate.customer,
        items=list(estimate.items),
        **_document_context(estimate.shop_id)
    )
