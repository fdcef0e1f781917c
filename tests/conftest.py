import pytest
from datetime import datetime
from decimal import Decimal

from shroomtrack import create_app
from shroomtrack import database
from shroomtrack.database import get_session
from shroomtrack.models import (
    Customer, FinishedGood, PurchaseOrder, PurchaseOrderStatus, DailyCostMetric
)
from shroomtrack.services.cart_service import Cart


@pytest.fixture(scope='session')
def app():
    """Create application instance for testing (in-memory SQLite)."""
    app = create_app('config.TestingConfig')
    return app


@pytest.fixture(scope='function')
def client(app, session):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def session(app):
    """Fresh schema per test; yields the scoped session."""
    database.create_all()
    session = get_session()
    yield session
    session.rollback()
    session.remove()
    database.drop_all()


@pytest.fixture(scope='function')
def customer(session):
    """Create test customer."""
    customer = Customer(
        name='Acme Co',
        email='orders@acme.test',
        phone='+60 12-345 6789',
        customer_type='B2B'
    )
    session.add(customer)
    session.commit()
    return customer


@pytest.fixture(scope='function')
def shiitake(session):
    """Finished good with 20 units on hand."""
    good = FinishedGood(
        recipe_name='Dried Shiitake',
        packaging_type='100g',
        quantity=20,
        selling_price=Decimal('15.00'),
        threshold=5
    )
    session.add(good)
    session.commit()
    return good


@pytest.fixture(scope='function')
def make_cart():
    """Factory for carts with a single line."""
    def _make(product_id, quantity=10, unit_price='15.00', label='Dried Shiitake (100g)'):
        cart = Cart()
        cart.add(product_id, label, quantity, unit_price)
        return cart
    return _make


@pytest.fixture(scope='function')
def purchase_orders(session):
    """One received, one ordered and one cancelled purchase order."""
    orders = [
        PurchaseOrder(supplier_name='PackCo', item_name='Pouches', quantity=500,
                      total_cost=Decimal('200.00'), status=PurchaseOrderStatus.RECEIVED,
                      date_ordered=datetime(2024, 5, 2, 9, 0)),
        PurchaseOrder(supplier_name='PackCo', item_name='Labels', quantity=1000,
                      total_cost=Decimal('50.00'), status=PurchaseOrderStatus.ORDERED,
                      date_ordered=datetime(2024, 5, 3, 9, 0)),
        PurchaseOrder(supplier_name='BoxIt', item_name='Cartons', quantity=100,
                      total_cost=Decimal('999.00'), status=PurchaseOrderStatus.CANCELLED,
                      date_ordered=datetime(2024, 5, 4, 9, 0)),
    ]
    session.add_all(orders)
    session.commit()
    return orders


@pytest.fixture(scope='function')
def cost_records(session):
    """Two entries for batch B-1 on the same day and one without reference."""
    records = [
        DailyCostMetric(date=datetime(2024, 5, 10).date(), reference_id='B-1',
                        weight_processed=Decimal('10'), processing_hours=Decimal('2'),
                        raw_material_cost=Decimal('80.00'), packaging_cost=Decimal('0'),
                        labor_cost=Decimal('25.00'), wastage_cost=Decimal('8.00'),
                        total_cost=Decimal('113.00')),
        DailyCostMetric(date=datetime(2024, 5, 10).date(), reference_id='B-1',
                        weight_processed=Decimal('5'), processing_hours=Decimal('1'),
                        raw_material_cost=Decimal('40.00'), packaging_cost=Decimal('0'),
                        labor_cost=Decimal('12.50'), wastage_cost=Decimal('0'),
                        total_cost=Decimal('52.50')),
        DailyCostMetric(date=datetime(2024, 5, 11).date(), reference_id=None,
                        weight_processed=Decimal('1'), processing_hours=Decimal('0'),
                        raw_material_cost=Decimal('8.00'), packaging_cost=Decimal('0'),
                        labor_cost=Decimal('0'), wastage_cost=Decimal('0'),
                        total_cost=Decimal('8.00')),
    ]
    session.add_all(records)
    session.commit()
    return records
