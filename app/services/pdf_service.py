"""PDF documents built with reportlab: cost estimates and repair labels.

The cost estimate mirrors the HTML print layout. Header and totals are
placed on the canvas at fixed millimetre positions, the device data and the
item table flow in between.
"""
from io import BytesIO
from xml.sax.saxutils import escape

from reportlab.graphics import renderPDF
from reportlab.graphics.barcode.qr import QrCodeWidget
from reportlab.graphics.shapes import Drawing
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas
from reportlab.platypus import Flowable, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from app.models import BusinessSettings, CostEstimate, Repair
from app.services.branding_service import BrandingService
from app.services.storage_service import get_storage
from app.utils import format_money

COST_ESTIMATE_CONDITIONS = [
    'Der Kostenvoranschlag basiert auf einer ersten Diagnose und kann sich bei '
    'tatsächlicher Durchführung ändern.',
    'Sollte sich während der Reparatur ein erweiterter Schaden zeigen, wird der Kunde '
    'vorab kontaktiert.',
    'Die im Kostenvoranschlag genannten Preise verstehen sich inkl. MwSt., sofern nicht '
    'anders angegeben.',
    'Eine Bearbeitungsgebühr kann fällig werden, falls keine Reparatur beauftragt wird.',
]

PAGE_MARGIN = 15 * mm
# Height of the first-page header drawn on the canvas, below the top margin
HEADER_HEIGHT = 72 * mm


def _para(text) -> str:
    """Escape user text for a reportlab Paragraph."""
    return escape(str(text or '')).replace('\n', '<br/>')


def _logo(settings: BusinessSettings, max_width=50 * mm, max_height=20 * mm):
    """Shop logo as (ImageReader, width, height), or None if there is none."""
    if not settings or not settings.logo_path:
        return None
    data = get_storage().download(settings.logo_path)
    if not data:
        return None
    reader = ImageReader(BytesIO(data))
    image_width, image_height = reader.getSize()
    scale = min(max_width / image_width, max_height / image_height, 1)
    return reader, image_width * scale, image_height * scale


class CostEstimateHeader:
    """Draws logo, company data, customer block and title on the first page."""

    def __init__(self, estimate: CostEstimate, settings, business_name: str, primary, secondary):
        self.estimate = estimate
        self.settings = settings
        self.business_name = business_name
        self.primary = primary
        self.secondary = secondary

    def company_lines(self) -> list:
        lines = []
        if self.settings:
            lines.extend(self.settings.address_lines)
            for label, value in (('Tel.', self.settings.phone), ('E-Mail', self.settings.email),
                                 ('UID', self.settings.vat_number)):
                if value:
                    lines.append(f'{label}: {value}')
        return lines

    def __call__(self, pdf, doc):
        page_width, page_height = A4
        left = PAGE_MARGIN
        right = page_width - PAGE_MARGIN
        top = page_height - PAGE_MARGIN
        pdf.saveState()

        # Logo (or name) top left
        logo = _logo(self.settings)
        if logo:
            reader, width, height = logo
            pdf.drawImage(reader, left, top - height, width=width, height=height, mask='auto')
        else:
            pdf.setFont('Helvetica-Bold', 12)
            pdf.drawString(left, top - 5 * mm, self.business_name)

        # Company data top right
        y = top - 4 * mm
        pdf.setFont('Helvetica-Bold', 10)
        pdf.drawRightString(right, y, self.business_name)
        pdf.setFont('Helvetica', 8.5)
        pdf.setFillColor(self.secondary)
        for line in self.company_lines():
            y -= 4 * mm
            pdf.drawRightString(right, y, line)
        pdf.setFillColor(colors.black)

        # Customer block
        y = top - 38 * mm
        pdf.setFont('Helvetica-Bold', 10.5)
        pdf.setFillColor(self.primary)
        pdf.drawString(left, y, 'Kundeninformationen')
        pdf.setFillColor(colors.black)
        customer = self.estimate.customer
        if customer:
            y -= 5 * mm
            pdf.setFont('Helvetica-Bold', 9.5)
            pdf.drawString(left, y, customer.full_name)
            pdf.setFont('Helvetica', 9.5)
            city = ' '.join(p for p in (customer.zip_code, customer.city) if p)
            for line in (customer.address, city):
                if line:
                    y -= 4.5 * mm
                    pdf.drawString(left, y, line)

        # Title and reference number, centred
        center = page_width / 2
        pdf.setFont('Helvetica-Bold', 13)
        pdf.drawCentredString(center, top - 62 * mm, self.estimate.title or 'Kostenvoranschlag')
        pdf.setFont('Helvetica', 8.5)
        pdf.setFillColor(self.secondary)
        pdf.drawCentredString(center, top - 67 * mm,
                              f'Referenznummer: {self.estimate.reference_number}')
        pdf.restoreState()


class TotalsBlock(Flowable):
    """Net, tax and gross amounts right-aligned under the item table."""

    ROW_HEIGHT = 5 * mm

    def __init__(self, rows, width, line_color):
        super().__init__()
        self.rows = rows
        self.width = width
        self.height = len(rows) * self.ROW_HEIGHT + 2 * mm
        self.line_color = line_color

    def wrap(self, available_width, available_height):
        return self.width, self.height

    def draw(self):
        pdf = self.canv
        value_x = self.width - 2 * mm
        label_x = value_x - 32 * mm
        y = self.height - 4 * mm
        for index, (label, value) in enumerate(self.rows):
            last = index == len(self.rows) - 1
            if last:
                pdf.setStrokeColor(self.line_color)
                pdf.setLineWidth(0.8)
                pdf.line(label_x - 25 * mm, y + 3.8 * mm, self.width, y + 3.8 * mm)
            pdf.setFont('Helvetica-Bold' if last else 'Helvetica', 9)
            pdf.drawRightString(label_x, y, label)
            pdf.drawRightString(value_x, y, value)
            y -= self.ROW_HEIGHT


def build_cost_estimate_pdf(estimate: CostEstimate) -> bytes:
    """Render a cost estimate as vector PDF (A4)."""
    settings = BusinessSettings.query.filter_by(shop_id=estimate.shop_id).first()
    branding = BrandingService().get_branding(estimate.shop_id)
    primary = colors.HexColor(branding.primary_color)
    text_secondary = colors.HexColor('#555555')
    border_color = colors.HexColor('#e2e8f0')
    business_name = settings.business_name if settings else branding.business_name

    buffer = BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=A4,
                            leftMargin=PAGE_MARGIN, rightMargin=PAGE_MARGIN,
                            topMargin=PAGE_MARGIN, bottomMargin=PAGE_MARGIN,
                            title=f'Kostenvoranschlag {estimate.reference_number}')
    width = A4[0] - 2 * PAGE_MARGIN

    styles = getSampleStyleSheet()
    normal = ParagraphStyle('KvNormal', parent=styles['Normal'], fontSize=9.5, leading=13)
    small = ParagraphStyle('KvSmall', parent=normal, fontSize=8.5, leading=11, textColor=text_secondary)
    section = ParagraphStyle('KvSection', parent=normal, fontName='Helvetica-Bold', fontSize=10.5,
                             textColor=primary, spaceBefore=8, spaceAfter=4)

    story = [Spacer(1, HEADER_HEIGHT)]

    story.append(Paragraph('Geräteinformationen', section))
    device = (f'{_para(estimate.device_type)}, {_para(estimate.brand)} {_para(estimate.model)}')
    if estimate.serial_number:
        device += f', Seriennummer: {_para(estimate.serial_number)}'
    story.append(Paragraph(device, normal))
    story.append(Paragraph(f'<b>Fehlerbeschreibung:</b> {_para(estimate.issue)}', normal))
    if estimate.description:
        story.append(Paragraph(_para(estimate.description), small))

    story.append(Paragraph('Positionen', section))
    rows = [['Pos.', 'Beschreibung', 'Menge', 'Einzelpreis', 'Gesamtpreis']]
    for item in estimate.items:
        rows.append([
            str(item.position),
            Paragraph(_para(item.description), normal),
            str(item.quantity),
            format_money(item.unit_price),
            format_money(item.total_price),
        ])

    table = Table(rows, colWidths=[12 * mm, width - 87 * mm, 18 * mm, 27 * mm, 30 * mm], repeatRows=1)
    table_style = [
        ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, -1), 9),
        ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#f8fafc')),
        ('LINEBELOW', (0, 0), (-1, 0), 0.8, primary),
        ('ALIGN', (2, 0), (-1, -1), 'RIGHT'),
        ('VALIGN', (0, 0), (-1, -1), 'TOP'),
    ]
    if len(rows) > 1:
        table_style.append(('LINEBELOW', (0, 1), (-1, -1), 0.3, border_color))
    table.setStyle(TableStyle(table_style))
    story.append(table)

    rate = f'{estimate.tax_rate.normalize():f}' if estimate.tax_rate is not None else '0'
    story.append(TotalsBlock([
        ('Netto', format_money(estimate.subtotal)),
        (f'MwSt. ({rate} %)', format_money(estimate.tax_amount)),
        ('Gesamt', format_money(estimate.total)),
    ], width, colors.black))
    story.append(Spacer(1, 8 * mm))

    if estimate.valid_until:
        validity = f'gültig bis zum {estimate.valid_until:%d.%m.%Y}'
    else:
        validity = 'gültig für 14 Tage'
    story.append(Paragraph(f'Dieser Kostenvoranschlag ist unverbindlich und {validity}.', small))
    story.append(Spacer(1, 3 * mm))
    for index, condition in enumerate(COST_ESTIMATE_CONDITIONS, start=1):
        story.append(Paragraph(f'{index}. {condition}', small))
    story.append(Spacer(1, 10 * mm))
    story.append(Paragraph(f'Mit freundlichen Grüßen,<br/>{_para(business_name)}', normal))

    header = CostEstimateHeader(estimate, settings, business_name, primary, text_secondary)
    doc.build(story, onFirstPage=header)
    return buffer.getvalue()


def label_size(settings: BusinessSettings) -> tuple:
    """Label page size in points (width, height)."""
    width = (settings.label_width if settings and settings.label_width else 32) * mm
    height = (settings.label_height if settings and settings.label_height else 57) * mm
    if settings and settings.label_format == 'landscape':
        width, height = max(width, height), min(width, height)
    else:
        width, height = min(width, height), max(width, height)
    return width, height


def build_repair_label_pdf(repair: Repair, base_url: str) -> bytes:
    """Small device label: order code, customer, phone, QR code and device."""
    settings = BusinessSettings.query.filter_by(shop_id=repair.shop_id).first()
    width, height = label_size(settings)
    customer = repair.customer
    order_code = repair.order_code or f'#{repair.id}'

    buffer = BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=(width, height))
    pdf.setTitle(f'Etikett {order_code}')
    center = width / 2
    y = height - 5 * mm

    pdf.setFont('Helvetica-Bold', 9)
    pdf.drawCentredString(center, y, order_code)
    y -= 4 * mm
    if customer:
        pdf.setFont('Helvetica', 6.5)
        pdf.drawCentredString(center, y, customer.full_name[:28])
        y -= 3 * mm
        if customer.phone:
            pdf.drawCentredString(center, y, customer.phone)
            y -= 3 * mm

    qr_size = min(17 * mm, width - 4 * mm)
    widget = QrCodeWidget(f'{base_url.rstrip("/")}/repairs/{order_code}')
    x1, y1, x2, y2 = widget.getBounds()
    drawing = Drawing(qr_size, qr_size,
                      transform=[qr_size / (x2 - x1), 0, 0, qr_size / (y2 - y1), 0, 0])
    drawing.add(widget)
    y -= qr_size
    renderPDF.draw(drawing, pdf, center - qr_size / 2, y)
    y -= 3 * mm

    pdf.setFont('Helvetica-Bold', 6)
    pdf.drawCentredString(center, y, f'{repair.brand} {repair.model}'[:30])
    y -= 2.8 * mm
    pdf.setFont('Helvetica', 5.5)
    pdf.drawCentredString(center, y, (repair.issue or '')[:32])

    pdf.showPage()
    pdf.save()
    return buffer.getvalue()
