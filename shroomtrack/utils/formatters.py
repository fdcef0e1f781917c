"""
Formatting helpers for documents and JSON payloads.
Single fixed currency, two decimals, no locale handling.
"""
import enum
from decimal import Decimal
from datetime import date, datetime
from typing import Union

from shroomtrack.utils.number_format import to_money


def money(value: Union[int, float, Decimal, str, None], symbol: str = 'RM') -> str:
    """
    Format an amount with the currency symbol and two decimals.

    Examples:
        money(150) -> "RM 150.00"
        money(1234.5) -> "RM 1,234.50"
        money(None) -> "RM 0.00"
    """
    return f"{symbol} {to_money(value):,.2f}"


def qty(value) -> str:
    """Quantity without trailing decimals when whole."""
    if value is None:
        return "0"
    if value % 1 == 0:
        return str(int(value))
    return f"{value:.2f}".rstrip('0').rstrip('.')


def date_short(value: Union[date, datetime, None]) -> str:
    """Format a date as DD/MM/YYYY."""
    if value is None:
        return "-"
    return value.strftime('%d/%m/%Y')


def jsonable(value):
    """
    Recursively convert derived dashboard data for jsonify.

    Decimals become strings (exact), dates ISO strings, enums their value and
    ORM rows their to_dict(). Floats and ints pass through.
    """
    if isinstance(value, dict):
        return {key: jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [jsonable(item) for item in value]
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, enum.Enum):
        return value.value
    if hasattr(value, 'to_dict'):
        return value.to_dict()
    return value
