"""
Dashboard blueprint.
Financial overview, production cost log, monthly budgets and cost rates.
"""
from datetime import date

from flask import Blueprint, request, jsonify, current_app

from shroomtrack.database import get_session
from shroomtrack.exceptions import ValidationError
from shroomtrack.services import ledger_store
from shroomtrack.services.cost_aggregation_service import aggregate_cost_records
from shroomtrack.services.costing_service import build_cost_entry
from shroomtrack.services.dashboard_service import get_dashboard_data
from shroomtrack.utils.formatters import jsonable
from shroomtrack.utils.records import require_mapping, to_date


dashboard_bp = Blueprint('dashboard', __name__, url_prefix='/dashboard')


def _rate_defaults() -> dict:
    return {
        'LABOR_RATE': current_app.config.get('DEFAULT_LABOR_RATE', '12.50'),
        'RAW_MATERIAL_RATE': current_app.config.get('DEFAULT_RAW_MATERIAL_RATE', '8.00'),
    }


def _parse_day(value, field_name='date') -> date:
    if value in (None, ''):
        return date.today()
    day = to_date(value)
    if day is None:
        raise ValidationError(f'Invalid {field_name}: {value}. Use YYYY-MM-DD')
    return day


@dashboard_bp.route('/')
def index():
    """
    Dashboard data.

    Query params:
        date: evaluation date (YYYY-MM-DD), defaults to today

    Shows:
    - Revenue, costs and net profit
    - Budget progress and revenue-at-risk flag
    - Expense distribution slices
    - Revenue for the last 7 days
    - Low stock finished goods
    """
    db_session = get_session()
    today = _parse_day(request.args.get('date'))

    data = get_dashboard_data(
        db_session,
        today,
        risk_day=current_app.config.get('REVENUE_RISK_DAY', 15),
        risk_pct=current_app.config.get('REVENUE_RISK_PCT', 50),
    )
    data['recent_sales'] = [record.to_dict(include_items=False) for record in data['recent_sales']]
    return jsonify(jsonable(data))


@dashboard_bp.route('/costs', methods=['GET'])
def cost_log():
    """Production cost log, one row per (date, reference), most recent first."""
    db_session = get_session()
    metrics = aggregate_cost_records(ledger_store.list_cost_records(db_session))
    return jsonify({'costs': jsonable(metrics)})


@dashboard_bp.route('/costs', methods=['POST'])
def add_cost():
    """
    Record one day's processing for a batch/activity.

    Body: {"date", "reference_id", "weight_kg", "hours", "packaging_cost", "wastage_kg"}
    Costs are priced with the current rates.
    """
    db_session = get_session()
    payload = require_mapping(request.get_json(silent=True))

    rates = ledger_store.get_rates(db_session, _rate_defaults())
    entry = build_cost_entry(
        _parse_day(payload.get('date')),
        payload.get('reference_id'),
        rates,
        weight_kg=payload.get('weight_kg', 0),
        hours=payload.get('hours', 0),
        packaging_cost=payload.get('packaging_cost', 0),
        wastage_kg=payload.get('wastage_kg', 0),
    )
    record = ledger_store.add_cost_record(db_session, entry)

    current_app.logger.info(f"Cost entry {record.id} recorded for {record.date}")
    return jsonify({'id': record.id, 'entry': jsonable(entry)}), 201


@dashboard_bp.route('/costs/<int:cost_id>', methods=['PATCH'])
def edit_cost(cost_id):
    """Edit a raw cost entry; its total is recomputed."""
    db_session = get_session()
    payload = require_mapping(request.get_json(silent=True))
    if not payload:
        raise ValidationError('No fields to update')

    record = ledger_store.update_cost_record(db_session, cost_id, payload)
    return jsonify({
        'id': record.id,
        'date': record.date.isoformat(),
        'reference_id': record.reference_id,
        'total_cost': f"{record.total_cost:.2f}",
    })


@dashboard_bp.route('/budgets/<month>', methods=['GET'])
def get_budget(month):
    db_session = get_session()
    budget = ledger_store.get_budget(db_session, month)
    return jsonify({'budget': budget.to_dict() if budget else None})


@dashboard_bp.route('/budgets/<month>', methods=['PUT'])
def put_budget(month):
    """Create or replace the month's budget."""
    db_session = get_session()
    payload = require_mapping(request.get_json(silent=True))

    budget = ledger_store.upsert_budget(
        db_session,
        month,
        payload.get('target_revenue'),
        payload.get('target_profit'),
        payload.get('max_wastage_kg', 0),
    )
    current_app.logger.info(f"Budget saved for {month}")
    return jsonify({'budget': budget.to_dict()})


@dashboard_bp.route('/rates', methods=['GET'])
def get_rates():
    db_session = get_session()
    return jsonify(jsonable(ledger_store.get_rates(db_session, _rate_defaults())))


@dashboard_bp.route('/rates', methods=['PUT'])
def put_rates():
    """
    Update one or both cost rates.

    Body: {"labor_rate": "13.00", "raw_material_rate": "8.50"}
    """
    db_session = get_session()
    payload = require_mapping(request.get_json(silent=True))

    updates = {key: payload[key] for key in ('labor_rate', 'raw_material_rate') if key in payload}
    if not updates:
        raise ValidationError('Provide labor_rate and/or raw_material_rate')

    for key, value in updates.items():
        ledger_store.set_rate(db_session, key, value)

    return jsonify(jsonable(ledger_store.get_rates(db_session, _rate_defaults())))
