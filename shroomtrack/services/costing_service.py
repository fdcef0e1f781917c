"""Production cost entry - turns processing figures into cost buckets."""
from datetime import date
from decimal import Decimal

from shroomtrack.exceptions import ValidationError
from shroomtrack.utils.number_format import CENTS, parse_amount, to_decimal

KILOGRAMS = Decimal('0.001')


def _non_negative(value, field_name: str, quantum: Decimal = CENTS) -> Decimal:
    try:
        return parse_amount(value, field_name, quantum=quantum)
    except ValueError as e:
        raise ValidationError(str(e))


def build_cost_entry(entry_date: date, reference_id, rates: dict, weight_kg=0, hours=0,
                     packaging_cost=0, wastage_kg=0) -> dict:
    """
    Price one day's processing for a batch/activity.

    The rates are passed in explicitly (see ledger_store.get_rates):
    raw material and wastage are charged per kg at the raw-material rate,
    labor per hour at the labor rate.

    Returns:
        dict ready for ledger_store.add_cost_record, with total_cost equal to
        the sum of the four cost buckets.
    """
    if entry_date is None:
        raise ValidationError('Date is required')

    weight = _non_negative(weight_kg, 'weight_kg', KILOGRAMS)
    processing_hours = _non_negative(hours, 'hours')
    wastage = _non_negative(wastage_kg, 'wastage_kg', KILOGRAMS)
    packaging = _non_negative(packaging_cost, 'packaging_cost')

    raw_rate = to_decimal(rates.get('raw_material_rate'))
    labor_rate = to_decimal(rates.get('labor_rate'))

    raw_material_cost = (weight * raw_rate).quantize(CENTS)
    labor_cost = (processing_hours * labor_rate).quantize(CENTS)
    wastage_cost = (wastage * raw_rate).quantize(CENTS)

    return {
        'date': entry_date,
        'reference_id': (str(reference_id).strip() if reference_id else None) or None,
        'weight_processed': weight,
        'processing_hours': processing_hours,
        'raw_material_cost': raw_material_cost,
        'packaging_cost': packaging,
        'labor_cost': labor_cost,
        'wastage_cost': wastage_cost,
        'total_cost': raw_material_cost + packaging + labor_cost + wastage_cost,
    }
