"""Utility functions for handyshop-manager."""
from datetime import datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional

from app.errors import ValidationError

CENT = Decimal('0.01')


def round_money(value: Decimal) -> Decimal:
    """
    Round an amount to cents (kaufmännisch).

    Examples:
        >>> round_money(Decimal('10.005'))
        Decimal('10.01')
        >>> round_money(Decimal('99.994'))
        Decimal('99.99')
    """
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def parse_decimal(value, field: str, required: bool = False) -> Optional[Decimal]:
    """
    Parse an amount from JSON input.

    Accepts numbers and strings, also with German decimal comma.

    Examples:
        >>> parse_decimal('89,90', 'preis')
        Decimal('89.90')
        >>> parse_decimal(12, 'preis')
        Decimal('12')
        >>> parse_decimal('', 'preis') is None
        True
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        if required:
            raise ValidationError(f'{field} ist erforderlich')
        return None
    if isinstance(value, bool):
        raise ValidationError(f'{field} ist kein gültiger Betrag')
    text = str(value).strip().replace('€', '').strip()
    if ',' in text:
        text = text.replace('.', '').replace(',', '.')
    try:
        amount = Decimal(text)
    except InvalidOperation:
        raise ValidationError(f'{field} ist kein gültiger Betrag')
    if not amount.is_finite():
        raise ValidationError(f'{field} ist kein gültiger Betrag')
    return amount


def parse_int(value, field: str, default: Optional[int] = None) -> Optional[int]:
    """Parse an integer from JSON or query input."""
    if value is None or value == '':
        return default
    if isinstance(value, bool):
        raise ValidationError(f'{field} muss eine Zahl sein')
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{field} muss eine Zahl sein')


def parse_datetime(value, field: str) -> Optional[datetime]:
    """Parse an ISO date or datetime string."""
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value).replace('Z', '+00:00')).replace(tzinfo=None)
    except ValueError:
        raise ValidationError(f'{field} ist kein gültiges Datum')


def parse_bool(value) -> bool:
    """Interpret JSON/query flags ('true', '1', 1, True)."""
    if isinstance(value, str):
        return value.strip().lower() in ('1', 'true', 'yes', 'ja', 'on')
    return bool(value)


def require_fields(data: dict, fields) -> None:
    """Raise ValidationError listing missing or empty required fields."""
    missing = [f for f in fields if data.get(f) in (None, '') or
               (isinstance(data.get(f), str) and not data.get(f).strip())]
    if missing:
        raise ValidationError(f'Pflichtfelder fehlen: {", ".join(missing)}')


def format_money(value) -> str:
    """
    Format an amount the Austrian way.

    Examples:
        >>> format_money(Decimal('1234.5'))
        '1.234,50 €'
        >>> format_money(None)
        ''
    """
    if value is None or value == '':
        return ''
    amount = round_money(Decimal(str(value)))
    text = f'{amount:,.2f}'.replace(',', 'X').replace('.', ',').replace('X', '.')
    return f'{text} €'


def get_json_data() -> dict:
    """JSON object of the current request body ({} if empty)."""
    from flask import request
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError('JSON-Objekt erwartet')
    return data
