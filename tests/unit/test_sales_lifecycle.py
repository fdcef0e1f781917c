"""
Unit tests for the sales order lifecycle.
"""

from datetime import datetime
from decimal import Decimal

import pytest
from sqlalchemy import update

from shroomtrack.exceptions import (
    InsufficientStockError, NotFoundError, StaleRecordError, TransitionError, ValidationError
)
from shroomtrack.models import FinishedGood, SalesRecord, SalesStatus
from shroomtrack.services import ledger_store
from shroomtrack.services import sales_lifecycle_service as lifecycle
from shroomtrack.services.cart_service import Cart
from shroomtrack.services.rollup_service import compute_financial_rollup


def _stock(session, product_id):
    return session.query(FinishedGood).filter(FinishedGood.id == product_id).one().quantity


class TestResolveTransition:
    """Tests for the transition table."""

    @pytest.mark.parametrize('current, target', [
        (SalesStatus.QUOTATION, SalesStatus.INVOICED),
        (SalesStatus.INVOICED, SalesStatus.SHIPPED),
        (SalesStatus.INVOICED, SalesStatus.PAID),
        (SalesStatus.SHIPPED, SalesStatus.PAID),
    ])
    def test_forward_steps_apply(self, current, target):
        assert lifecycle.resolve_transition(current, target) is True

    @pytest.mark.parametrize('current, target', [
        (SalesStatus.QUOTATION, SalesStatus.QUOTATION),
        (SalesStatus.INVOICED, SalesStatus.INVOICED),
        (SalesStatus.SHIPPED, SalesStatus.INVOICED),
        (SalesStatus.PAID, SalesStatus.PAID),
    ])
    def test_reached_or_passed_is_noop(self, current, target):
        assert lifecycle.resolve_transition(current, target) is False

    @pytest.mark.parametrize('current, target', [
        (SalesStatus.QUOTATION, SalesStatus.PAID),
        (SalesStatus.QUOTATION, SalesStatus.SHIPPED),
        (SalesStatus.INVOICED, SalesStatus.QUOTATION),
        (SalesStatus.PAID, SalesStatus.INVOICED),
        (SalesStatus.PAID, SalesStatus.SHIPPED),
        (SalesStatus.DELIVERED, SalesStatus.PAID),
        (SalesStatus.SHIPPED, SalesStatus.DELIVERED),
    ])
    def test_illegal_jumps_raise(self, current, target):
        with pytest.raises(TransitionError) as exc:
            lifecycle.resolve_transition(current, target)

        assert exc.value.current_status == current.value
        assert exc.value.requested_status == target.value

    def test_unknown_status(self):
        with pytest.raises(ValidationError):
            lifecycle.parse_status('ARCHIVED')


class TestLegalActions:
    """Tests for legal_actions."""

    def test_actions_per_status(self):
        assert [a['action'] for a in lifecycle.legal_actions(SalesStatus.QUOTATION)] == ['CONFIRM_INVOICE']
        assert [a['action'] for a in lifecycle.legal_actions('INVOICED')] == ['GENERATE_DO', 'MARK_PAID']
        assert [a['action'] for a in lifecycle.legal_actions(SalesStatus.SHIPPED)] == ['MARK_PAID']
        assert lifecycle.legal_actions(SalesStatus.PAID) == []
        assert lifecycle.legal_actions(SalesStatus.DELIVERED) == []

    def test_descriptor_shape(self):
        action = lifecycle.legal_actions(SalesStatus.QUOTATION)[0]

        assert action['target_status'] == 'INVOICED'
        assert action['label'] == 'Confirm & Invoice'
        assert action['requires_confirmation'] is True


class TestCreateSalesRecord:
    """Tests for create_sales_record."""

    def test_create_as_quotation(self, session, customer, shiitake, make_cart):
        """Test quotation creation: total fixed, no stock touched."""
        record = lifecycle.create_sales_record(
            session, make_cart(shiitake.id), customer.id, initial_status='QUOTATION',
            now=datetime(2024, 5, 20, 10, 30)
        )

        assert record.status == SalesStatus.QUOTATION
        assert record.total_amount == Decimal('150.00')
        assert record.invoice_id == 'INV-20240520-0001'
        assert record.customer_name == 'Acme Co'
        assert record.payment_method == 'CASH'
        assert _stock(session, shiitake.id) == 20

    def test_create_as_invoiced_reserves_stock(self, session, customer, shiitake, make_cart):
        record = lifecycle.create_sales_record(session, make_cart(shiitake.id, quantity=8), customer.id)

        assert record.status == SalesStatus.INVOICED
        assert _stock(session, shiitake.id) == 12

    def test_invoice_numbers_increment_per_day(self, session, customer, shiitake, make_cart):
        now = datetime(2024, 5, 20, 10, 30)
        first = lifecycle.create_sales_record(session, make_cart(shiitake.id, 1), customer.id, 'COD', 'QUOTATION', now)
        second = lifecycle.create_sales_record(session, make_cart(shiitake.id, 1), customer.id, 'COD', 'QUOTATION', now)

        assert first.invoice_id == 'INV-20240520-0001'
        assert second.invoice_id == 'INV-20240520-0002'
        assert second.payment_method == 'COD'

    def test_empty_cart_rejected(self, session, customer):
        with pytest.raises(ValidationError):
            lifecycle.create_sales_record(session, Cart(), customer.id)
        assert session.query(SalesRecord).count() == 0

    def test_customer_required(self, session, shiitake, make_cart):
        with pytest.raises(ValidationError):
            lifecycle.create_sales_record(session, make_cart(shiitake.id), None)

    def test_unknown_customer(self, session, shiitake, make_cart):
        with pytest.raises(NotFoundError):
            lifecycle.create_sales_record(session, make_cart(shiitake.id), 999)

    def test_cannot_create_as_paid(self, session, customer, shiitake, make_cart):
        with pytest.raises(ValidationError):
            lifecycle.create_sales_record(session, make_cart(shiitake.id), customer.id, initial_status='PAID')

    def test_bad_payment_method(self, session, customer, shiitake, make_cart):
        with pytest.raises(ValidationError):
            lifecycle.create_sales_record(session, make_cart(shiitake.id), customer.id, payment_method='BARTER')
        assert session.query(SalesRecord).count() == 0

    def test_invoiced_creation_without_stock_writes_nothing(self, session, customer, shiitake, make_cart):
        with pytest.raises(InsufficientStockError):
            lifecycle.create_sales_record(session, make_cart(shiitake.id, quantity=25), customer.id)

        assert session.query(SalesRecord).count() == 0
        assert _stock(session, shiitake.id) == 20


class TestWorkflow:
    """End-to-end workflow on a single record."""

    def _quotation(self, session, customer, product_id, make_cart, quantity=10):
        return lifecycle.create_sales_record(
            session, make_cart(product_id, quantity=quantity), customer.id, initial_status=SalesStatus.QUOTATION
        )

    def test_insufficient_stock_keeps_quotation(self, session, customer, make_cart):
        """Test 10 requested with 5 on hand: shortfall of 5, record unchanged."""
        good = FinishedGood(recipe_name='Dried Shiitake', packaging_type='100g', quantity=5)
        session.add(good)
        session.commit()
        record = self._quotation(session, customer, good.id, make_cart)
        record_id = record.id

        with pytest.raises(InsufficientStockError) as exc:
            lifecycle.confirm_and_invoice(session, record_id)

        shortfall = exc.value.shortfalls[0]
        assert shortfall['requested'] == 10
        assert shortfall['available'] == 5
        assert shortfall['shortfall'] == 5
        assert exc.value.to_dict()['shortfalls'][0]['product_label'] == 'Dried Shiitake (100g)'
        assert ledger_store.get_sales_record(session, record_id).status == SalesStatus.QUOTATION
        assert _stock(session, good.id) == 5

    def test_full_lifecycle(self, session, customer, shiitake, make_cart):
        """Test QUOTATION -> INVOICED -> SHIPPED -> PAID with 20 units on hand."""
        record = self._quotation(session, customer, shiitake.id, make_cart)
        record_id = record.id

        record = lifecycle.confirm_and_invoice(session, record_id)
        assert record.status == SalesStatus.INVOICED
        assert _stock(session, shiitake.id) == 10

        record = lifecycle.generate_delivery_order(session, record_id)
        assert record.status == SalesStatus.SHIPPED
        assert _stock(session, shiitake.id) == 10

        record = lifecycle.mark_paid(session, record_id)
        assert record.status == SalesStatus.PAID
        assert record.total_amount == Decimal('150.00')

        rollup = compute_financial_rollup(ledger_store.list_sales(session), [], [], [])
        assert rollup['total_revenue'] == Decimal('150.00')

    def test_duplicate_invoice_is_noop(self, session, customer, shiitake, make_cart):
        """Test a second Confirm & Invoice does not reserve twice."""
        record = self._quotation(session, customer, shiitake.id, make_cart)
        record_id = record.id

        lifecycle.confirm_and_invoice(session, record_id)
        again = lifecycle.confirm_and_invoice(session, record_id)

        assert again.status == SalesStatus.INVOICED
        assert _stock(session, shiitake.id) == 10

    def test_invoice_request_after_shipping_is_noop(self, session, customer, shiitake, make_cart):
        record = self._quotation(session, customer, shiitake.id, make_cart)
        record_id = record.id
        lifecycle.confirm_and_invoice(session, record_id)
        lifecycle.generate_delivery_order(session, record_id)

        record = lifecycle.advance_status(session, record_id, 'INVOICED', confirmed=True)

        assert record.status == SalesStatus.SHIPPED
        assert _stock(session, shiitake.id) == 10

    def test_invoiced_straight_to_paid(self, session, customer, shiitake, make_cart):
        record = lifecycle.create_sales_record(session, make_cart(shiitake.id), customer.id)

        record = lifecycle.mark_paid(session, record.id)

        assert record.status == SalesStatus.PAID

    def test_paid_is_terminal(self, session, customer, shiitake, make_cart):
        record = lifecycle.create_sales_record(session, make_cart(shiitake.id), customer.id)
        record_id = record.id
        lifecycle.mark_paid(session, record_id)

        with pytest.raises(TransitionError):
            lifecycle.advance_status(session, record_id, SalesStatus.SHIPPED, confirmed=True)
        assert lifecycle.mark_paid(session, record_id).status == SalesStatus.PAID

    def test_quotation_cannot_skip_to_paid(self, session, customer, shiitake, make_cart):
        record = self._quotation(session, customer, shiitake.id, make_cart)

        with pytest.raises(TransitionError):
            lifecycle.mark_paid(session, record.id)

    def test_confirmation_required(self, session, customer, shiitake, make_cart):
        record = self._quotation(session, customer, shiitake.id, make_cart)
        record_id = record.id

        with pytest.raises(ValidationError):
            lifecycle.advance_status(session, record_id, SalesStatus.INVOICED)

        assert ledger_store.get_sales_record(session, record_id).status == SalesStatus.QUOTATION
        assert _stock(session, shiitake.id) == 20

    def test_total_unchanged_by_transitions(self, session, customer, shiitake, make_cart):
        cart = make_cart(shiitake.id, quantity=3, unit_price='12.34')
        cart.add(shiitake.id, 'Dried Shiitake (100g)', 2, '12.34')
        record = lifecycle.create_sales_record(session, cart, customer.id)
        record_id = record.id

        for step in (lifecycle.generate_delivery_order, lifecycle.mark_paid):
            record = step(session, record_id)
            assert record.total_amount == sum(item.line_total for item in record.items)
            assert record.total_amount == Decimal('61.70')

    def test_reservation_spans_rows_of_same_product(self, session, customer, make_cart):
        """Test stock is taken from every row of the recipe/packaging, oldest first."""
        older = FinishedGood(recipe_name='Oyster Chips', packaging_type='50g', quantity=4)
        newer = FinishedGood(recipe_name='Oyster Chips', packaging_type='50g', quantity=6)
        session.add_all([older, newer])
        session.commit()
        older_id, newer_id = older.id, newer.id

        lifecycle.create_sales_record(session, make_cart(older_id, quantity=7, label='Oyster Chips (50g)'), customer.id)

        assert _stock(session, older_id) == 0
        assert _stock(session, newer_id) == 3

    def test_ids_of_same_product_share_one_pool(self, session, customer, make_cart):
        """Test two ids of one recipe/packaging are checked against their combined stock once."""
        first = FinishedGood(recipe_name='Oyster Chips', packaging_type='50g', quantity=3)
        second = FinishedGood(recipe_name='Oyster Chips', packaging_type='50g', quantity=4)
        session.add_all([first, second])
        session.commit()
        first_id, second_id = first.id, second.id

        cart = make_cart(first_id, quantity=5, label='Oyster Chips (50g)')
        cart.add(second_id, 'Oyster Chips (50g)', 5, '15.00')

        with pytest.raises(InsufficientStockError) as exc:
            lifecycle.create_sales_record(session, cart, customer.id)

        assert exc.value.shortfalls == [{
            'product_id': first_id,
            'product_label': 'Oyster Chips (50g)',
            'requested': 10,
            'available': 7,
            'shortfall': 3,
        }]
        assert session.query(SalesRecord).count() == 0
        assert _stock(session, first_id) == 3
        assert _stock(session, second_id) == 4

    def test_ids_of_same_product_reserve_from_shared_pool(self, session, customer, make_cart):
        first = FinishedGood(recipe_name='Oyster Chips', packaging_type='50g', quantity=3)
        second = FinishedGood(recipe_name='Oyster Chips', packaging_type='50g', quantity=4)
        session.add_all([first, second])
        session.commit()
        first_id, second_id = first.id, second.id

        cart = make_cart(first_id, quantity=2, label='Oyster Chips (50g)')
        cart.add(second_id, 'Oyster Chips (50g)', 4, '15.00')
        record = lifecycle.create_sales_record(session, cart, customer.id)

        assert record.status == SalesStatus.INVOICED
        assert _stock(session, first_id) == 0
        assert _stock(session, second_id) == 1

    def test_unknown_record(self, session):
        with pytest.raises(NotFoundError):
            lifecycle.mark_paid(session, 12345)


class TestOptimisticConcurrency:
    """Tests for stale writes."""

    def test_stale_version_rejected(self, session, customer, shiitake, make_cart):
        record = lifecycle.create_sales_record(session, make_cart(shiitake.id), customer.id)
        record_id = record.id
        record = ledger_store.get_sales_record(session, record_id)

        # Another writer bumps the row behind this session's back
        session.connection().execute(
            update(SalesRecord.__table__)
            .where(SalesRecord.__table__.c.id == record_id)
            .values(status=SalesStatus.SHIPPED, version=SalesRecord.__table__.c.version + 1)
        )

        with pytest.raises(StaleRecordError):
            with ledger_store.write_transaction(session, 'Set status PAID', record_id):
                ledger_store.set_sales_status(session, record, SalesStatus.PAID)

    def test_locked_load_sees_concurrent_invoice(self, session, customer, shiitake, make_cart):
        """Test a Confirm & Invoice that waited on another one's lock becomes a no-op."""
        record = lifecycle.create_sales_record(
            session, make_cart(shiitake.id), customer.id, initial_status=SalesStatus.QUOTATION
        )
        record_id = record.id
        preloaded = ledger_store.get_sales_record(session, record_id)
        assert preloaded.status == SalesStatus.QUOTATION

        # The other request committed its invoice while this one waited
        session.connection().execute(
            update(SalesRecord.__table__)
            .where(SalesRecord.__table__.c.id == record_id)
            .values(status=SalesStatus.INVOICED, version=SalesRecord.__table__.c.version + 1)
        )

        record = lifecycle.confirm_and_invoice(session, record_id)

        assert record is preloaded
        assert record.status == SalesStatus.INVOICED
        assert _stock(session, shiitake.id) == 20
