"""
Ledger store - persistence for sales, costs, stock, procurement, budgets
and rates.

Readers return ORM rows. Writers on the sales path only add/flush so that the
caller can run them inside one write_transaction(); standalone writers
(budgets, rates, cost entries) commit themselves. Every SQLAlchemy failure is
rolled back and surfaced as PersistenceError; no retries happen here.
"""
import logging
import re
from contextlib import contextmanager
from datetime import datetime, date
from decimal import Decimal
from functools import wraps

from sqlalchemy import and_, or_, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from shroomtrack.exceptions import (
    LedgerError, NotFoundError, PersistenceError, StaleRecordError, ValidationError
)
from shroomtrack.models import (
    Budget, Customer, DailyCostMetric, FinishedGood, PurchaseOrder, RateKey, RateSetting,
    SalesLineItem, SalesRecord, SalesStatus, normalize_payment_method
)
from shroomtrack.utils.number_format import parse_amount, to_decimal

logger = logging.getLogger(__name__)

MONTH_PATTERN = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")

EDITABLE_COST_FIELDS = (
    'date', 'reference_id', 'weight_processed', 'processing_hours',
    'raw_material_cost', 'packaging_cost', 'labor_cost', 'wastage_cost',
)


@contextmanager
def write_transaction(session, description: str, record_id=None):
    """
    Commit on success, roll back on any failure.

    Domain errors pass through untouched; a stale version becomes
    StaleRecordError and any other SQLAlchemy error becomes PersistenceError.
    """
    try:
        yield
        session.commit()
    except LedgerError:
        session.rollback()
        raise
    except StaleDataError:
        session.rollback()
        logger.warning(f"[STORE] Stale write rejected: {description} (record={record_id})")
        raise StaleRecordError(record_id)
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"[STORE] {description} failed: {e}")
        raise PersistenceError(f'{description} failed: {e}')
    except Exception:
        session.rollback()
        raise


def _reader(description: str):
    """Translate SQLAlchemy failures on read paths into PersistenceError."""
    def decorator(fn):
        @wraps(fn)
        def wrapper(session, *args, **kwargs):
            try:
                return fn(session, *args, **kwargs)
            except SQLAlchemyError as e:
                session.rollback()
                logger.error(f"[STORE] {description} failed: {e}")
                raise PersistenceError(f'{description} failed: {e}')
        return wrapper
    return decorator


# =====================================================
# SALES
# =====================================================

@_reader('List sales')
def list_sales(session) -> list:
    return session.query(SalesRecord).order_by(
        SalesRecord.date_created.desc(), SalesRecord.id.desc()
    ).all()


@_reader('Load sales record')
def get_sales_record(session, record_id: int, for_update: bool = False) -> SalesRecord:
    """
    Load one sales record; with for_update the row is locked until commit.

    A locked load always re-reads the row, replacing whatever copy the
    session already holds.
    """
    query = session.query(SalesRecord).filter(SalesRecord.id == record_id)
    if for_update:
        query = query.with_for_update().populate_existing()
    record = query.first()
    if not record:
        raise NotFoundError(f'Sales record {record_id} not found')
    return record


@_reader('Load customer')
def get_customer(session, customer_id) -> Customer:
    customer = session.query(Customer).filter(Customer.id == customer_id).first()
    if not customer:
        raise NotFoundError(f'Customer {customer_id} not found')
    return customer


def generate_invoice_id(session, now: datetime) -> str:
    """Allocate the next invoice number for the day: INV-YYYYMMDD-NNNN."""
    prefix = f"INV-{now.strftime('%Y%m%d')}-"
    count = session.query(func.count(SalesRecord.id)).filter(
        SalesRecord.invoice_id.like(f'{prefix}%')
    ).scalar() or 0
    return f"{prefix}{str(count + 1).zfill(4)}"


def create_sales_record(session, customer: Customer, lines: list, payment_method, status: SalesStatus,
                        now: datetime = None) -> SalesRecord:
    """
    Add a new sales record with its line items (flushed, not committed).

    The invoice number and total are fixed here, once, together with the
    initial status.
    """
    now = now or datetime.now()
    try:
        method = normalize_payment_method(payment_method)
    except ValueError as e:
        raise ValidationError(str(e))

    record = SalesRecord(
        invoice_id=generate_invoice_id(session, now),
        customer_id=customer.id,
        customer_name=customer.name,
        customer_email=customer.email,
        customer_phone=customer.phone,
        payment_method=method,
        status=status,
        date_created=now,
    )
    record.set_items([
        SalesLineItem(
            product_id=int(line['product_id']),
            product_label=line['product_label'],
            quantity=line['quantity'],
            unit_price=line['unit_price'],
        )
        for line in lines
    ])
    session.add(record)
    session.flush()
    return record


def set_sales_status(session, record: SalesRecord, status: SalesStatus) -> SalesRecord:
    """Write a new status (flushed, not committed); a stale version raises on flush."""
    record.status = status
    session.flush()
    return record


# =====================================================
# FINISHED GOODS
# =====================================================

@_reader('List finished goods')
def list_finished_goods(session) -> list:
    return session.query(FinishedGood).order_by(FinishedGood.id.asc()).all()


@_reader('List finished goods stock')
def list_finished_goods_stock(session) -> list:
    """Stock levels as [{'product_id', 'quantity'}]."""
    return [
        {'product_id': good.id, 'quantity': good.quantity or 0}
        for good in list_finished_goods(session)
    ]


def lock_product_stock(session, product_ids) -> dict:
    """
    Lock the finished-goods rows behind the given product ids.

    A product id names one finished-goods row; its stock is every row with the
    same recipe and packaging. Returns {product_id: [rows, oldest first]};
    unknown ids map to an empty list.
    """
    product_ids = sorted({int(pid) for pid in product_ids})
    if not product_ids:
        return {}

    anchors = session.query(FinishedGood).filter(FinishedGood.id.in_(product_ids)).all()
    anchor_keys = {good.id: (good.recipe_name, good.packaging_type) for good in anchors}
    if not anchor_keys:
        return {pid: [] for pid in product_ids}

    conditions = [
        and_(FinishedGood.recipe_name == recipe, FinishedGood.packaging_type == packaging)
        for recipe, packaging in set(anchor_keys.values())
    ]
    rows = session.query(FinishedGood).filter(or_(*conditions)).order_by(
        FinishedGood.id.asc()
    ).with_for_update().populate_existing().all()

    by_key = {}
    for row in rows:
        by_key.setdefault((row.recipe_name, row.packaging_type), []).append(row)

    return {pid: by_key.get(anchor_keys.get(pid), []) for pid in product_ids}


# =====================================================
# COSTS & PROCUREMENT
# =====================================================

@_reader('List cost records')
def list_cost_records(session) -> list:
    return session.query(DailyCostMetric).order_by(DailyCostMetric.id.asc()).all()


def add_cost_record(session, entry: dict) -> DailyCostMetric:
    """Persist one raw cost entry (see costing_service.build_cost_entry)."""
    record = DailyCostMetric(**entry)
    with write_transaction(session, 'Add cost record'):
        session.add(record)
    logger.info(f"[STORE] Cost record added: date={record.date}, ref={record.reference_id}, total={record.total_cost}")
    return record


def update_cost_record(session, record_id: int, fields: dict) -> DailyCostMetric:
    """Edit a raw cost entry; total_cost is recomputed from the four buckets."""
    unknown = set(fields) - set(EDITABLE_COST_FIELDS)
    if unknown:
        raise ValidationError(f"Cannot edit cost fields: {', '.join(sorted(unknown))}")

    with write_transaction(session, 'Update cost record', record_id):
        record = session.query(DailyCostMetric).filter(DailyCostMetric.id == record_id).with_for_update().first()
        if not record:
            raise NotFoundError(f'Cost record {record_id} not found')

        for name, value in fields.items():
            if name == 'date':
                if isinstance(value, str):
                    try:
                        value = date.fromisoformat(value[:10])
                    except ValueError:
                        raise ValidationError(f'Invalid date: {value}')
                record.date = value
            elif name == 'reference_id':
                record.reference_id = (value or '').strip() or None
            else:
                try:
                    setattr(record, name, parse_amount(value, name))
                except ValueError as e:
                    raise ValidationError(str(e))

        record.total_cost = sum(
            (to_decimal(getattr(record, name))
             for name in ('raw_material_cost', 'packaging_cost', 'labor_cost', 'wastage_cost')),
            Decimal('0')
        )
    return record


@_reader('List purchase orders')
def list_purchase_orders(session) -> list:
    return session.query(PurchaseOrder).order_by(PurchaseOrder.date_ordered.desc()).all()


# =====================================================
# BUDGETS
# =====================================================

def month_key(day: date) -> str:
    return day.strftime('%Y-%m')


def _validate_month(month: str) -> str:
    month = (month or '').strip()
    if not MONTH_PATTERN.match(month):
        raise ValidationError(f'Invalid month: {month!r}. Use YYYY-MM')
    return month


@_reader('Load budget')
def get_budget(session, month: str):
    """Budget for the month, or None."""
    return session.query(Budget).filter(Budget.id == _validate_month(month)).first()


def upsert_budget(session, month: str, target_revenue, target_profit, max_wastage_kg=0) -> Budget:
    """Create or replace the budget for a month (one row per month)."""
    month = _validate_month(month)
    try:
        revenue = parse_amount(target_revenue, 'target_revenue')
        profit = parse_amount(target_profit, 'target_profit')
        wastage = parse_amount(max_wastage_kg, 'max_wastage_kg')
    except ValueError as e:
        raise ValidationError(str(e))

    with write_transaction(session, 'Upsert budget'):
        budget = session.query(Budget).filter(Budget.id == month).with_for_update().first()
        if budget is None:
            budget = Budget(id=month, month=month)
            session.add(budget)
        budget.target_revenue = revenue
        budget.target_profit = profit
        budget.max_wastage_kg = wastage

    logger.info(f"[STORE] Budget upserted: month={month}, revenue={revenue}, profit={profit}")
    return budget


# =====================================================
# RATES
# =====================================================

def _rate_key(key) -> str:
    if isinstance(key, RateKey):
        return key.value
    normalized = str(key or '').strip().upper()
    if normalized not in RateKey.__members__:
        raise ValidationError(f"Unknown rate: {key}. Must be one of {', '.join(RateKey.__members__)}")
    return normalized


@_reader('Load rates')
def get_rates(session, defaults: dict = None) -> dict:
    """
    Current labor and raw-material rates.

    Args:
        defaults: {RateKey.value: amount} used for rates never set

    Returns:
        {'labor_rate': Decimal, 'raw_material_rate': Decimal}
    """
    defaults = defaults or {}
    stored = {row.key: row.value for row in session.query(RateSetting).all()}

    def _value(key: RateKey) -> Decimal:
        value = stored.get(key.value, defaults.get(key.value, 0))
        return to_decimal(value).quantize(Decimal('0.01'))

    return {
        'labor_rate': _value(RateKey.LABOR_RATE),
        'raw_material_rate': _value(RateKey.RAW_MATERIAL_RATE),
    }


def set_rate(session, key, value) -> RateSetting:
    key = _rate_key(key)
    try:
        amount = parse_amount(value, key.lower())
    except ValueError as e:
        raise ValidationError(str(e))

    with write_transaction(session, 'Set rate'):
        setting = session.query(RateSetting).filter(RateSetting.key == key).with_for_update().first()
        if setting is None:
            setting = RateSetting(key=key)
            session.add(setting)
        setting.value = amount

    logger.info(f"[STORE] Rate updated: {key}={amount}")
    return setting
