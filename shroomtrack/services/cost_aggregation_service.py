"""
Cost record aggregation.

Merges raw daily cost entries that share a (date, reference) key into one
row per batch/activity for the production cost log and the dashboards.
"""
from datetime import date
from decimal import Decimal

from shroomtrack.utils.number_format import to_decimal
from shroomtrack.utils.records import get_field, to_date

SUMMED_FIELDS = (
    'weight_processed',
    'processing_hours',
    'raw_material_cost',
    'packaging_cost',
    'labor_cost',
    'wastage_cost',
)

COST_BUCKETS = ('raw_material_cost', 'packaging_cost', 'labor_cost', 'wastage_cost')


def _id_key(record_id):
    """Total order over ids that may be ints, strings or missing."""
    if record_id is None:
        return (2, '')
    if isinstance(record_id, (int, Decimal)) and not isinstance(record_id, bool):
        return (0, record_id)
    return (1, str(record_id))


def _canonical_key(record):
    record_date = to_date(get_field(record, 'date'))
    return (
        _id_key(get_field(record, 'id')),
        record_date or date.min,
        str(get_field(record, 'reference_id') or ''),
        tuple(to_decimal(get_field(record, name)) for name in SUMMED_FIELDS),
    )


def aggregate_cost_records(records) -> list:
    """
    Merge raw cost records into one aggregated metric per (date, reference_id).
    
    Args:
        records: iterable of DailyCostMetric rows or dicts with the same keys
    
    Returns:
        List of dicts, most recent date first, with keys:
            - id: id of the first record of the group (lowest id)
            - date, reference_id
            - weight_processed, processing_hours
            - raw_material_cost, packaging_cost, labor_cost, wastage_cost
            - total_cost: sum of the four cost buckets
            - source_ids: ids of the merged raw records
            - entry_count: number of merged raw records
    
    Records without a reference_id are never merged with each other. Missing
    or malformed numbers count as 0. The result does not depend on the
    order of the input.
    """
    ordered = sorted(records, key=_canonical_key)
    
    groups = {}
    for position, record in enumerate(ordered):
        record_date = to_date(get_field(record, 'date'))
        reference_id = get_field(record, 'reference_id') or None
        if reference_id is None:
            key = (record_date, None, position)
        else:
            key = (record_date, str(reference_id))
        
        metric = groups.get(key)
        if metric is None:
            metric = {
                'id': get_field(record, 'id'),
                'date': record_date,
                'reference_id': reference_id,
                'source_ids': [],
                'entry_count': 0,
            }
            for name in SUMMED_FIELDS:
                metric[name] = Decimal('0')
            groups[key] = metric
        
        for name in SUMMED_FIELDS:
            metric[name] += to_decimal(get_field(record, name))
        metric['source_ids'].append(get_field(record, 'id'))
        metric['entry_count'] += 1
    
    aggregated = list(groups.values())
    for metric in aggregated:
        metric['total_cost'] = sum((metric[name] for name in COST_BUCKETS), Decimal('0'))
    
    # Secondary order first, then the stable date sort on top of it
    aggregated.sort(key=lambda m: (str(m['reference_id'] or ''), _id_key(m['id'])))
    aggregated.sort(key=lambda m: m['date'] or date.min, reverse=True)
    return aggregated


def bucket_totals(metrics) -> dict:
    """Sum each cost bucket across aggregated (or raw) cost metrics."""
    totals = {name: Decimal('0') for name in COST_BUCKETS}
    totals['weight_processed'] = Decimal('0')
    for metric in metrics:
        for name in totals:
            totals[name] += to_decimal(get_field(metric, name))
    return totals
