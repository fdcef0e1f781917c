"""
Dashboard service.
Fetches ledger snapshots through the store and runs the financial
derivations over them. Recomputed on every request.
"""
import logging
from datetime import date

from shroomtrack.services import ledger_store
from shroomtrack.services.cost_aggregation_service import aggregate_cost_records
from shroomtrack.services.expense_chart_service import build_expense_slices_from_rollup
from shroomtrack.services.rollup_service import (
    compute_financial_rollup, get_low_stock_goods, get_weekly_revenue
)

logger = logging.getLogger(__name__)


def get_dashboard_data(session, today: date = None, risk_day: int = 15, risk_pct: int = 50) -> dict:
    """
    Get all dashboard data as of `today`.

    Args:
        session: SQLAlchemy session
        today: evaluation date (defaults to today)
        risk_day / risk_pct: revenue-at-risk thresholds

    Returns:
        dict with keys:
            - month: current budget month (YYYY-MM)
            - budget: Budget or None
            - rollup: compute_financial_rollup output
            - expense_slices: list of pie slices
            - weekly_revenue: {'series', 'max_amount'}
            - cost_log: aggregated cost metrics, most recent first
            - low_stock_goods: FinishedGood rows below threshold
            - recent_sales: latest sales records
    """
    today = today or date.today()
    month = ledger_store.month_key(today)

    sales = ledger_store.list_sales(session)
    purchase_orders = ledger_store.list_purchase_orders(session)
    cost_log = aggregate_cost_records(ledger_store.list_cost_records(session))
    finished_goods = ledger_store.list_finished_goods(session)
    budget = ledger_store.get_budget(session, month)

    rollup = compute_financial_rollup(
        sales, purchase_orders, cost_log, finished_goods,
        budget=budget, today=today, risk_day=risk_day, risk_pct=risk_pct
    )

    if rollup['is_revenue_at_risk']:
        logger.warning(
            f"[DASHBOARD] Revenue at risk for {month}: "
            f"{rollup['revenue_progress_pct']:.1f}% of target on day {today.day}"
        )

    return {
        'month': month,
        'budget': budget,
        'rollup': rollup,
        'expense_slices': build_expense_slices_from_rollup(rollup),
        'weekly_revenue': get_weekly_revenue(sales, today),
        'cost_log': cost_log,
        'low_stock_goods': get_low_stock_goods(finished_goods),
        'recent_sales': sales[:5],
    }
