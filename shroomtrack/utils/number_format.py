"""Number coercion utilities for ledger amounts."""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

CENTS = Decimal('0.01')


def to_decimal(value) -> Decimal:
    """
    Coerce a raw numeric field to Decimal, never raising.

    Rules:
    - None, empty strings and unparseable values become 0
    - NaN and infinities become 0
    - floats go through str() so 0.1 stays 0.1

    Used by the aggregation code, which must render something even when a
    stored record has holes in it.
    """
    if value is None or value == '':
        return Decimal('0')

    if isinstance(value, bool):
        return Decimal(int(value))

    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError, TypeError):
            return Decimal('0')

    if not result.is_finite():
        return Decimal('0')
    return result


def to_money(value) -> Decimal:
    """Coerce to Decimal and round to cents (half up)."""
    return to_decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def parse_amount(value, field_name: str = 'amount', allow_zero: bool = True, quantum: Decimal = CENTS) -> Decimal:
    """
    Parse a user-supplied amount strictly.

    Unlike to_decimal, bad input is an error here: this is used on the
    write path (rates, budgets, prices) where silently storing 0 would be
    wrong. The result is rounded to `quantum` (cents unless given).

    Raises:
        ValueError: if the value is missing, not a number, or negative.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValueError(f'{field_name} is required')

    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError, TypeError):
        raise ValueError(f'{field_name} must be a number')

    if not amount.is_finite():
        raise ValueError(f'{field_name} must be a number')
    if amount < 0:
        raise ValueError(f'{field_name} cannot be negative')
    if not allow_zero and amount == 0:
        raise ValueError(f'{field_name} must be greater than 0')

    return amount.quantize(quantum, rounding=ROUND_HALF_UP)
