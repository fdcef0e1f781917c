"""
Unit tests for the ledger store (budgets, rates, cost records, stock).
"""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from shroomtrack.exceptions import NotFoundError, PersistenceError, ValidationError
from shroomtrack.models import Budget, DailyCostMetric
from shroomtrack.services import ledger_store
from shroomtrack.services.costing_service import build_cost_entry


class TestBudgets:
    """Tests for budget upsert and lookup."""

    def test_upsert_creates_then_replaces(self, session):
        ledger_store.upsert_budget(session, '2024-05', '1000', '400', '12.5')
        ledger_store.upsert_budget(session, '2024-05', '2000', '800')

        assert session.query(Budget).count() == 1
        budget = ledger_store.get_budget(session, '2024-05')
        assert budget.target_revenue == Decimal('2000.00')
        assert budget.target_profit == Decimal('800.00')

    def test_missing_budget_is_none(self, session):
        assert ledger_store.get_budget(session, '2024-06') is None

    @pytest.mark.parametrize('month', ['2024-13', '2024-5', 'May 2024', ''])
    def test_invalid_month(self, session, month):
        with pytest.raises(ValidationError):
            ledger_store.upsert_budget(session, month, '1000', '400')

    def test_negative_target_rejected(self, session):
        with pytest.raises(ValidationError):
            ledger_store.upsert_budget(session, '2024-05', '-1', '400')

    def test_month_key(self):
        assert ledger_store.month_key(date(2024, 5, 20)) == '2024-05'


class TestRates:
    """Tests for the rate store."""

    DEFAULTS = {'LABOR_RATE': '12.50', 'RAW_MATERIAL_RATE': '8.00'}

    def test_defaults_when_unset(self, session):
        rates = ledger_store.get_rates(session, self.DEFAULTS)

        assert rates == {'labor_rate': Decimal('12.50'), 'raw_material_rate': Decimal('8.00')}

    def test_set_rate_overrides_default(self, session):
        ledger_store.set_rate(session, 'labor_rate', '15')

        rates = ledger_store.get_rates(session, self.DEFAULTS)
        assert rates['labor_rate'] == Decimal('15.00')
        assert rates['raw_material_rate'] == Decimal('8.00')

    @pytest.mark.parametrize('key, value', [
        ('LABOR_RATE', '-1'),
        ('LABOR_RATE', 'abc'),
        ('ELECTRICITY', '1'),
    ])
    def test_invalid_rate(self, session, key, value):
        with pytest.raises(ValidationError):
            ledger_store.set_rate(session, key, value)


class TestCostRecords:
    """Tests for cost record writes."""

    def test_add_priced_entry(self, session):
        rates = ledger_store.get_rates(session, TestRates.DEFAULTS)
        entry = build_cost_entry(date(2024, 5, 10), 'B-1', rates, weight_kg=10, hours=2)

        record = ledger_store.add_cost_record(session, entry)

        assert record.id is not None
        assert record.total_cost == Decimal('105.00')

    def test_update_recomputes_total(self, session, cost_records):
        record_id = cost_records[0].id

        record = ledger_store.update_cost_record(session, record_id, {'labor_cost': '30', 'reference_id': 'B-2'})

        assert record.labor_cost == Decimal('30.00')
        assert record.reference_id == 'B-2'
        assert record.total_cost == Decimal('118.00')

    def test_update_rejects_unknown_field(self, session, cost_records):
        with pytest.raises(ValidationError):
            ledger_store.update_cost_record(session, cost_records[0].id, {'total_cost': '1'})

    def test_update_missing_record(self, session):
        with pytest.raises(NotFoundError):
            ledger_store.update_cost_record(session, 999, {'labor_cost': '1'})

    def test_list_cost_records(self, session, cost_records):
        assert [r.id for r in ledger_store.list_cost_records(session)] == [r.id for r in cost_records]


class TestStock:
    """Tests for stock listings."""

    def test_list_finished_goods_stock(self, session, shiitake):
        assert ledger_store.list_finished_goods_stock(session) == [{'product_id': shiitake.id, 'quantity': 20}]

    def test_lock_unknown_product(self, session):
        assert ledger_store.lock_product_stock(session, [404]) == {404: []}


class TestPersistenceFailures:
    """Tests for store failure translation."""

    def test_read_failure_becomes_persistence_error(self, session, monkeypatch):
        def broken_query(*args, **kwargs):
            raise OperationalError('SELECT', {}, Exception('database is locked'))

        monkeypatch.setattr(session, 'query', broken_query)

        with pytest.raises(PersistenceError) as exc:
            ledger_store.list_sales(session)

        assert exc.value.status_code == 503
        assert 'database is locked' in exc.value.message

    def test_write_failure_rolls_back(self, session):
        with pytest.raises(PersistenceError):
            with ledger_store.write_transaction(session, 'Add cost record'):
                session.add(DailyCostMetric(date=None, reference_id='B-1'))
                session.flush()

        assert session.query(DailyCostMetric).count() == 0
