"""Models package - exports all SQLAlchemy models."""
from shroomtrack.models.customer import Customer
from shroomtrack.models.finished_good import FinishedGood
from shroomtrack.models.sales_record import SalesRecord, SalesStatus, PaymentMethod, normalize_payment_method, compute_total
from shroomtrack.models.sales_line_item import SalesLineItem
from shroomtrack.models.daily_cost_metric import DailyCostMetric
from shroomtrack.models.purchase_order import PurchaseOrder, PurchaseOrderStatus
from shroomtrack.models.budget import Budget
from shroomtrack.models.rate_setting import RateSetting, RateKey

__all__ = [
    'Customer', 'FinishedGood',
    'SalesRecord', 'SalesStatus', 'PaymentMethod', 'normalize_payment_method', 'compute_total',
    'SalesLineItem',
    'DailyCostMetric',
    'PurchaseOrder', 'PurchaseOrderStatus',
    'Budget',
    'RateSetting', 'RateKey',
]
