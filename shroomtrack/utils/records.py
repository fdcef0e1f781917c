"""Field access shared by code that accepts ORM rows, imported rows or dicts."""
import enum
from collections.abc import Mapping
from datetime import date, datetime

from shroomtrack.exceptions import ValidationError


def get_field(record, name, default=None):
    """Read `name` from a mapping or an attribute-bearing object."""
    if isinstance(record, Mapping):
        return record.get(name, default)
    return getattr(record, name, default)


def status_value(status) -> str:
    """Enum member or raw string -> upper-case status string."""
    if isinstance(status, enum.Enum):
        return str(status.value)
    if status is None:
        return ''
    return str(status).strip().upper()


def to_date(value):
    """
    Normalize a stored date to a date.

    Accepts date, datetime and ISO strings ("2024-05-01" or
    "2024-05-01T08:30:00Z"); anything else becomes None.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and len(value) >= 10:
        try:
            return date.fromisoformat(value[:10])
        except ValueError:
            return None
    return None


def require_mapping(value, what: str = 'Request body') -> Mapping:
    """A decoded JSON object; None reads as empty, anything else is a ValidationError."""
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ValidationError(f'{what} must be a JSON object')
    return value
