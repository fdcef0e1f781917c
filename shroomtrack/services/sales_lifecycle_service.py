"""
Sales order lifecycle - Multi-step state machine.

    QUOTATION -> INVOICED -> SHIPPED -> PAID
                     `---------------^

- Create: from a non-empty cart and a customer, directly as INVOICED or as
  QUOTATION. Invoice number and total are fixed at creation.
- Confirm & Invoice (QUOTATION -> INVOICED): reserves finished-goods stock
  for every line, all or nothing.
- Generate DO (INVOICED -> SHIPPED): no stock effect.
- Mark Paid (INVOICED or SHIPPED -> PAID): terminal.
- DELIVERED is a second terminal that only arrives through imported data.

A request for a status the record already has, or has already moved past,
is a no-op returning the record unchanged. Nothing here pushes dashboard
updates; callers refresh after a successful call.
"""
import logging
from datetime import datetime

from shroomtrack.exceptions import (
    InsufficientStockError, TransitionError, ValidationError
)
from shroomtrack.models import SalesStatus
from shroomtrack.services import ledger_store
from shroomtrack.services.cart_service import Cart

logger = logging.getLogger(__name__)

STATUS_RANK = {
    SalesStatus.QUOTATION: 0,
    SalesStatus.INVOICED: 1,
    SalesStatus.SHIPPED: 2,
    SalesStatus.PAID: 3,
    SalesStatus.DELIVERED: 3,
}

LEGAL_TRANSITIONS = {
    SalesStatus.QUOTATION: (SalesStatus.INVOICED,),
    SalesStatus.INVOICED: (SalesStatus.SHIPPED, SalesStatus.PAID),
    SalesStatus.SHIPPED: (SalesStatus.PAID,),
    SalesStatus.PAID: (),
    SalesStatus.DELIVERED: (),
}

TERMINAL_STATUSES = frozenset({SalesStatus.PAID, SalesStatus.DELIVERED})
INITIAL_STATUSES = frozenset({SalesStatus.QUOTATION, SalesStatus.INVOICED})

# Keyed by target status
ACTIONS = {
    SalesStatus.INVOICED: {
        'action': 'CONFIRM_INVOICE',
        'label': 'Confirm & Invoice',
        'requires_confirmation': True,
        'prompt': 'Convert Quotation to Official Invoice? Stock will be reserved.',
    },
    SalesStatus.SHIPPED: {
        'action': 'GENERATE_DO',
        'label': 'Generate DO',
        'requires_confirmation': True,
        'prompt': 'Generate Delivery Order?',
    },
    SalesStatus.PAID: {
        'action': 'MARK_PAID',
        'label': 'Mark Paid',
        'requires_confirmation': False,
        'prompt': None,
    },
}


def parse_status(value) -> SalesStatus:
    """String or enum -> SalesStatus, ValidationError when unknown."""
    if isinstance(value, SalesStatus):
        return value
    try:
        return SalesStatus(str(value or '').strip().upper())
    except ValueError:
        raise ValidationError(f'Unknown sales status: {value}')


def legal_actions(status) -> list:
    """Actions the record can take from its current status, in workflow order."""
    status = parse_status(status)
    return [
        dict(ACTIONS[target], target_status=target.value)
        for target in LEGAL_TRANSITIONS[status]
    ]


def resolve_transition(current, target) -> bool:
    """
    Decide what a transition request means for a record in `current`.

    Returns:
        True when the transition must be applied, False when it is a no-op
        (the record is already at or past the target).

    Raises:
        TransitionError: target unreachable (skips a step, goes backward,
        leaves a terminal status, or is not a transition target at all).
    """
    current = parse_status(current)
    target = parse_status(target)

    if target not in ACTIONS:
        if target == current:
            return False
        raise TransitionError(current.value, target.value)
    if target == current:
        return False
    if current in TERMINAL_STATUSES:
        raise TransitionError(current.value, target.value)
    if STATUS_RANK[current] > STATUS_RANK[target]:
        return False
    if target not in LEGAL_TRANSITIONS[current]:
        raise TransitionError(current.value, target.value)
    return True


def _required_quantities(items) -> dict:
    """Sum quantities per product id across the record's lines."""
    required = {}
    for item in items:
        pid = int(item.product_id)
        label, qty = required.get(pid, (item.product_label, 0))
        required[pid] = (label, qty + item.quantity)
    return required


def _stock_pools(required: dict, stock: dict) -> list:
    """
    Group the required quantities by the stock they draw from.

    Product ids of the same recipe and packaging share one pool of rows, so
    their quantities are summed and checked once against that pool.
    """
    pools = {}
    for pid, (label, qty) in required.items():
        rows = stock.get(pid, [])
        key = (rows[0].recipe_name, rows[0].packaging_type) if rows else pid
        pool = pools.get(key)
        if pool is None:
            pool = pools[key] = {
                'product_id': pid,
                'product_label': label,
                'requested': 0,
                'rows': rows,
            }
        pool['requested'] += qty
    return list(pools.values())


def reserve_stock(session, items) -> None:
    """
    Take the line quantities out of finished-goods stock.

    Every line is checked before any row is touched; when one falls short
    nothing is reserved and InsufficientStockError lists each shortfall.
    Runs inside the caller's transaction.
    """
    required = _required_quantities(items)
    stock = ledger_store.lock_product_stock(session, required.keys())
    pools = _stock_pools(required, stock)

    shortfalls = []
    for pool in pools:
        available = sum(max(row.quantity or 0, 0) for row in pool['rows'])
        if available < pool['requested']:
            shortfalls.append({
                'product_id': pool['product_id'],
                'product_label': pool['product_label'],
                'requested': pool['requested'],
                'available': available,
                'shortfall': pool['requested'] - available,
            })

    if shortfalls:
        raise InsufficientStockError(shortfalls)

    for pool in pools:
        remaining = pool['requested']
        for row in pool['rows']:
            if remaining <= 0:
                break
            take = min(max(row.quantity or 0, 0), remaining)
            row.quantity -= take
            remaining -= take
        logger.debug(f"[SALES] Reserved {pool['requested']} x {pool['product_label']} (product {pool['product_id']})")

    session.flush()


def create_sales_record(session, cart: Cart, customer_id, payment_method='CASH',
                        initial_status=SalesStatus.INVOICED, now: datetime = None):
    """
    Create a sales record from the cart in a single step.

    The record is written once with its final initial status; asking for
    INVOICED also reserves stock, exactly as Confirm & Invoice would.

    Raises:
        ValidationError: empty cart, no customer, bad initial status
        NotFoundError: unknown customer
        InsufficientStockError: INVOICED creation without enough stock
        PersistenceError: store failure (nothing is written)
    """
    if cart is None or cart.is_empty:
        raise ValidationError('Cart is empty')
    if customer_id is None or str(customer_id).strip() == '':
        raise ValidationError('Customer is required')

    status = parse_status(initial_status)
    if status not in INITIAL_STATUSES:
        raise ValidationError(f'A sales record cannot be created as {status.value}')

    lines = cart.lines()
    with ledger_store.write_transaction(session, 'Create sales record'):
        customer = ledger_store.get_customer(session, customer_id)
        record = ledger_store.create_sales_record(
            session, customer, lines, payment_method, status, now=now
        )
        if status == SalesStatus.INVOICED:
            reserve_stock(session, record.items)

    logger.info(
        f"[SALES] Created {record.invoice_id} (id={record.id}) as {status.value} "
        f"for customer {customer_id}: total={record.total_amount}"
    )
    return record


def advance_status(session, record_id, target_status, confirmed: bool = False):
    """
    Move a sales record to `target_status`.

    Args:
        confirmed: the user confirmed the action; required for
            Confirm & Invoice and Generate DO

    Returns:
        The updated SalesRecord (unchanged for a no-op request).

    Raises:
        TransitionError, ValidationError, InsufficientStockError,
        NotFoundError, StaleRecordError, PersistenceError.
        The record is left untouched on every failure.
    """
    target = parse_status(target_status)

    with ledger_store.write_transaction(session, f'Set status {target.value}', record_id):
        record = ledger_store.get_sales_record(session, record_id, for_update=True)
        current = record.status

        if not resolve_transition(current, target):
            logger.info(f"[SALES] {record.invoice_id}: {target.value} requested while {current.value}, nothing to do")
            return record

        if ACTIONS[target]['requires_confirmation'] and not confirmed:
            raise ValidationError(f"{ACTIONS[target]['label']} requires confirmation")

        if current == SalesStatus.QUOTATION and target == SalesStatus.INVOICED:
            reserve_stock(session, record.items)

        ledger_store.set_sales_status(session, record, target)

    logger.info(f"[SALES] {record.invoice_id}: {current.value} -> {target.value}")
    return record


def confirm_and_invoice(session, record_id):
    """QUOTATION -> INVOICED (the call itself is the user's confirmation)."""
    return advance_status(session, record_id, SalesStatus.INVOICED, confirmed=True)


def generate_delivery_order(session, record_id):
    """INVOICED -> SHIPPED."""
    return advance_status(session, record_id, SalesStatus.SHIPPED, confirmed=True)


def mark_paid(session, record_id):
    """INVOICED or SHIPPED -> PAID."""
    return advance_status(session, record_id, SalesStatus.PAID)
