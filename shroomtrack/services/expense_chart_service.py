"""
Expense distribution chart geometry.

Turns the four cost buckets into pie-chart wedges on the unit circle.
Recomputed on every render from the current totals.
"""
import math
from decimal import Decimal

from shroomtrack.utils.number_format import to_decimal, to_money

# Fixed bucket order and colors; the order also drives the angle accumulation
EXPENSE_BUCKETS = (
    ('Raw Materials', '#15803d'),
    ('Packaging', '#16a34a'),
    ('Labor', '#3b82f6'),
    ('Wastage', '#ef4444'),
)

FULL_CIRCLE_PCT = 99.9
FULL_CIRCLE_PATH = "M 1 0 A 1 1 0 1 1 -1 0 A 1 1 0 1 1 1 0"


def _point(fraction: float):
    angle = 2 * math.pi * fraction
    return round(math.cos(angle), 6), round(math.sin(angle), 6)


def _wedge_path(start_fraction: float, end_fraction: float) -> str:
    x1, y1 = _point(start_fraction)
    x2, y2 = _point(end_fraction)
    large_arc = 1 if end_fraction - start_fraction > 0.5 else 0
    return f"M 0 0 L {x1} {y1} A 1 1 0 {large_arc} 1 {x2} {y2} L 0 0"


def build_expense_slices(raw_material_cost, packaging_cost, labor_cost, wastage_cost) -> list:
    """
    Build the expense pie slices.

    Args:
        raw_material_cost, packaging_cost, labor_cost, wastage_cost:
            bucket totals (packaging is the procurement total)

    Returns:
        List of dicts (one per bucket with cost > 0, in bucket order):
            - index, label, color
            - cost: Decimal rounded to cents
            - percentage: float share of the four-bucket sum
            - start_angle, end_angle: degrees, clockwise from 3 o'clock
            - path: SVG path on the unit circle
        Empty list when every bucket is 0; the caller shows an empty state.
    """
    costs = [
        max(to_decimal(value), Decimal('0'))
        for value in (raw_material_cost, packaging_cost, labor_cost, wastage_cost)
    ]
    total = sum(costs, Decimal('0'))
    if total <= 0:
        return []

    slices = []
    cumulative = 0.0
    for (label, color), cost in zip(EXPENSE_BUCKETS, costs):
        if cost <= 0:
            continue

        percentage = float(cost / total * 100)
        start = cumulative
        end = cumulative + percentage / 100

        if percentage > FULL_CIRCLE_PCT:
            path = FULL_CIRCLE_PATH
            start_angle, end_angle = 0.0, 360.0
        else:
            path = _wedge_path(start, end)
            start_angle, end_angle = start * 360, end * 360

        slices.append({
            'index': len(slices),
            'label': label,
            'color': color,
            'cost': to_money(cost),
            'percentage': percentage,
            'start_angle': start_angle,
            'end_angle': end_angle,
            'path': path,
        })
        cumulative = end

    return slices


def build_expense_slices_from_rollup(rollup: dict) -> list:
    """Expense slices straight from compute_financial_rollup output."""
    return build_expense_slices(
        rollup['total_raw_material_cost'],
        rollup['total_procurement_cost'],
        rollup['total_labor_cost'],
        rollup['total_wastage_cost'],
    )
