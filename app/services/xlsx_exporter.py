"""XLSX Exporter Service.

Exports the device catalog and the repair list of a shop to Excel format.
"""
import io
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from openpyxl import Workbook
from openpyxl.styles import Font, Alignment, PatternFill, Border, Side
from openpyxl.utils import get_column_letter

from app.models import Repair, RepairStatus
from app.services.catalog_service import catalog_rows


@dataclass
class XlsxExportResult:
    """Result of XLSX export."""
    success: bool
    data: Optional[bytes] = None
    filename: Optional[str] = None
    sheets_created: int = 0
    rows_written: int = 0
    errors: list = field(default_factory=list)


class XlsxExporter:
    """Exports shop data to XLSX format."""

    def __init__(self):
        self.header_font = Font(bold=True, color='FFFFFF')
        self.header_fill = PatternFill(start_color='2563EB', end_color='2563EB', fill_type='solid')
        self.header_alignment = Alignment(horizontal='center', vertical='center')
        self.border = Border(
            left=Side(style='thin'),
            right=Side(style='thin'),
            top=Side(style='thin'),
            bottom=Side(style='thin')
        )

    def _style_header_row(self, ws, num_columns: int) -> None:
        """Apply styling to header row."""
        for col in range(1, num_columns + 1):
            cell = ws.cell(row=1, column=col)
            cell.font = self.header_font
            cell.fill = self.header_fill
            cell.alignment = self.header_alignment
            cell.border = self.border

    def _auto_column_width(self, ws) -> None:
        """Auto-adjust column widths based on content."""
        for column in ws.columns:
            column_letter = get_column_letter(column[0].column)
            max_length = max((len(str(cell.value)) for cell in column if cell.value is not None),
                             default=0)
            # Set width with some padding, max 50 chars
            ws.column_dimensions[column_letter].width = max(min(max_length + 2, 50), 10)

    def _to_bytes(self, wb: Workbook) -> bytes:
        buffer = io.BytesIO()
        wb.save(buffer)
        return buffer.getvalue()

    def export_catalog(self, shop_id=None, include_global=True) -> XlsxExportResult:
        """Export device types, brands and models.

        Args:
            shop_id: Shop whose catalog is exported, None for the global catalog
            include_global: Include global entries in a shop export
        """
        result = XlsxExportResult(success=False)
        rows = catalog_rows(shop_id, include_global)

        wb = Workbook()
        ws = wb.active
        ws.title = 'Modelle'
        headers = ['Gerätetyp', 'Hersteller', 'Modell']
        ws.append(headers)
        self._style_header_row(ws, len(headers))
        for row in rows:
            ws.append([row['device_type'], row['brand'], row['model']])
        self._auto_column_width(ws)
        result.sheets_created += 1

        summary = wb.create_sheet('Zusammenfassung')
        summary['A1'] = 'Gerätekatalog'
        summary['A1'].font = Font(bold=True, size=14)
        summary['A3'] = 'Export-Datum:'
        summary['B3'] = datetime.now().strftime('%d.%m.%Y %H:%M')
        summary['A4'] = 'Gerätetypen:'
        summary['B4'] = len({r['device_type'] for r in rows})
        summary['A5'] = 'Hersteller:'
        summary['B5'] = len({(r['device_type'], r['brand']) for r in rows})
        summary['A6'] = 'Modelle:'
        summary['B6'] = len(rows)
        for row in range(3, 7):
            summary[f'A{row}'].font = Font(bold=True)
        self._auto_column_width(summary)
        result.sheets_created += 1

        result.data = self._to_bytes(wb)
        result.filename = generate_xlsx_filename('geraetekatalog')
        result.rows_written = len(rows)
        result.success = True
        return result

    def export_repairs(self, shop_id: int, status: str = None) -> XlsxExportResult:
        """Export the repairs of a shop, newest first."""
        result = XlsxExportResult(success=False)
        query = Repair.query.filter_by(shop_id=shop_id)
        if status:
            query = query.filter_by(status=status)
        repairs = query.order_by(Repair.created_at.desc()).all()

        wb = Workbook()
        ws = wb.active
        ws.title = 'Reparaturen'
        headers = ['Auftragsnummer', 'Datum', 'Kunde', 'Telefon', 'Gerätetyp', 'Hersteller',
                   'Modell', 'Fehler', 'Status', 'Kostenvoranschlag']
        ws.append(headers)
        self._style_header_row(ws, len(headers))
        for repair in repairs:
            customer = repair.customer
            ws.append([
                repair.order_code,
                repair.created_at.strftime('%d.%m.%Y') if repair.created_at else '',
                customer.full_name if customer else '',
                customer.phone if customer else '',
                repair.device_type,
                repair.brand,
                repair.model,
                repair.issue,
                RepairStatus.get_label(repair.status),
                float(repair.estimated_cost) if repair.estimated_cost is not None else None,
            ])
        self._auto_column_width(ws)

        result.sheets_created = 1
        result.rows_written = len(repairs)
        result.data = self._to_bytes(wb)
        result.filename = generate_xlsx_filename(f'reparaturen_shop{shop_id}')
        result.success = True
        return result


def generate_xlsx_filename(prefix: str) -> str:
    """
    Generate XLSX export filename.

    Args:
        prefix: Content prefix, e.g. 'geraetekatalog'

    Returns:
        Filename like 'geraetekatalog_20250103_143052.xlsx'
    """
    timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
    return f"{prefix}_{timestamp}.xlsx"
