"""
Financial rollup - revenue, cost, profit and budget progress.

Every function here is a pure derivation over snapshots fetched by the
caller; nothing is cached between calls.
"""
from datetime import date, timedelta
from decimal import Decimal

from shroomtrack.services.cost_aggregation_service import bucket_totals
from shroomtrack.utils.number_format import to_decimal, to_money
from shroomtrack.utils.records import get_field, status_value, to_date

REVENUE_STATUSES = frozenset({'PAID', 'DELIVERED'})
PROCUREMENT_STATUSES = frozenset({'RECEIVED', 'ORDERED'})
VIP_THRESHOLD = Decimal('1000')


def is_revenue(record) -> bool:
    """Only settled records (PAID, or legacy DELIVERED) count as revenue."""
    return status_value(get_field(record, 'status')) in REVENUE_STATUSES


def _progress_pct(actual: Decimal, target) -> float:
    target = to_decimal(target)
    if target <= 0:
        return 0.0
    return float(actual / target * 100)


def compute_financial_rollup(
    sales,
    purchase_orders,
    cost_metrics,
    finished_goods,
    budget=None,
    today: date = None,
    risk_day: int = 15,
    risk_pct: int = 50,
) -> dict:
    """
    Derive the headline financial figures for the dashboards.
    
    Args:
        sales: full sales ledger (SalesRecord rows or dicts)
        purchase_orders: full purchase-order ledger
        cost_metrics: aggregated cost metrics (see aggregate_cost_records)
        finished_goods: finished-goods stock rows, anything with `quantity`
        budget: the current month's Budget, or None
        today: evaluation date for the at-risk heuristic (defaults to today)
        risk_day / risk_pct: at-risk thresholds
    
    Returns:
        dict with Decimal amounts rounded to cents and float percentages:
            total_procurement_cost, total_raw_material_cost, total_labor_cost,
            total_wastage_cost, total_packaging_cost, total_overall_cost,
            total_revenue, net_profit, total_finished_units, avg_cost_per_unit,
            revenue_progress_pct, profit_progress_pct, is_revenue_at_risk
    """
    today = today or date.today()
    
    total_procurement = sum(
        (to_decimal(get_field(po, 'total_cost'))
         for po in purchase_orders
         if status_value(get_field(po, 'status')) in PROCUREMENT_STATUSES),
        Decimal('0')
    )
    
    buckets = bucket_totals(cost_metrics)
    total_raw_material = buckets['raw_material_cost']
    total_labor = buckets['labor_cost']
    total_wastage = buckets['wastage_cost']
    
    # Wastage feeds the expense chart only, never the headline total
    total_overall = total_procurement + total_raw_material + total_labor
    
    total_revenue = sum(
        (to_decimal(get_field(s, 'total_amount')) for s in sales if is_revenue(s)),
        Decimal('0')
    )
    net_profit = total_revenue - total_overall
    
    total_units = sum((to_decimal(get_field(g, 'quantity')) for g in finished_goods), Decimal('0'))
    avg_cost_per_unit = total_overall / total_units if total_units > 0 else Decimal('0')
    
    target_revenue = get_field(budget, 'target_revenue') if budget is not None else None
    target_profit = get_field(budget, 'target_profit') if budget is not None else None
    revenue_progress_pct = _progress_pct(total_revenue, target_revenue)
    profit_progress_pct = _progress_pct(net_profit, target_profit)
    
    return {
        'total_procurement_cost': to_money(total_procurement),
        'total_packaging_cost': to_money(total_procurement),
        'total_raw_material_cost': to_money(total_raw_material),
        'total_labor_cost': to_money(total_labor),
        'total_wastage_cost': to_money(total_wastage),
        'total_overall_cost': to_money(total_overall),
        'total_revenue': to_money(total_revenue),
        'net_profit': to_money(net_profit),
        'total_finished_units': total_units,
        'avg_cost_per_unit': to_money(avg_cost_per_unit),
        'revenue_progress_pct': revenue_progress_pct,
        'profit_progress_pct': profit_progress_pct,
        'is_revenue_at_risk': is_revenue_at_risk(revenue_progress_pct, today, risk_day, risk_pct),
    }


def is_revenue_at_risk(revenue_progress_pct: float, today: date, risk_day: int = 15, risk_pct: int = 50) -> bool:
    """Past mid-month and under half of the revenue target."""
    return today.day > risk_day and revenue_progress_pct < risk_pct


def get_weekly_revenue(sales, today: date = None, days: int = 7) -> dict:
    """
    Revenue per day for the trailing window ending today (oldest first).
    
    Returns:
        dict with keys:
            - series: list of {'date': date, 'amount': Decimal}
            - max_amount: largest daily amount, or 1 when every day is 0
    """
    today = today or date.today()
    window = [today - timedelta(days=offset) for offset in range(days - 1, -1, -1)]
    amounts = {day: Decimal('0') for day in window}
    
    for record in sales:
        if not is_revenue(record):
            continue
        created = to_date(get_field(record, 'date_created'))
        if created in amounts:
            amounts[created] += to_decimal(get_field(record, 'total_amount'))
    
    series = [{'date': day, 'amount': to_money(amounts[day])} for day in window]
    max_amount = max((item['amount'] for item in series), default=Decimal('0'))
    return {
        'series': series,
        'max_amount': max_amount if max_amount > 0 else Decimal('1'),
    }


def get_customer_stats(sales, customer_id) -> dict:
    """
    Purchase history for one customer.
    
    Returns:
        dict with keys: total_spent, order_count, last_order_date,
        sales_history (newest first), is_vip
    """
    history = [s for s in sales if get_field(s, 'customer_id') == customer_id]
    history.sort(key=lambda s: to_date(get_field(s, 'date_created')) or date.min, reverse=True)
    
    total_spent = to_money(sum(
        (to_decimal(get_field(s, 'total_amount')) for s in history if is_revenue(s)),
        Decimal('0')
    ))
    last_order = get_field(history[0], 'date_created') if history else None
    
    return {
        'total_spent': total_spent,
        'order_count': len(history),
        'last_order_date': last_order,
        'sales_history': history,
        'is_vip': total_spent > VIP_THRESHOLD,
    }


def get_low_stock_goods(finished_goods) -> list:
    """Finished goods whose quantity is below their reorder threshold."""
    return [
        g for g in finished_goods
        if to_decimal(get_field(g, 'quantity')) < to_decimal(get_field(g, 'threshold'))
    ]
