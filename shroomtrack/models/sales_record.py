"""Sales record model (quotation through payment)."""
from decimal import Decimal
from sqlalchemy import Column, BigInteger, Integer, String, Numeric, DateTime, Enum, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from shroomtrack.database import Base, BigIntegerPK
import enum


class SalesStatus(enum.Enum):
    """Sales record status enum."""
    QUOTATION = "QUOTATION"
    INVOICED = "INVOICED"
    SHIPPED = "SHIPPED"
    PAID = "PAID"
    DELIVERED = "DELIVERED"  # legacy terminal, only present in imported data


class PaymentMethod(enum.Enum):
    """Payment method enum."""
    CASH = "CASH"
    COD = "COD"
    CREDIT_CARD = "CREDIT_CARD"


def normalize_payment_method(value) -> str:
    """
    Normalize payment method value to string for DB storage.
    
    Args:
        value: Can be None, PaymentMethod enum, or string
    
    Returns:
        str: 'CASH', 'COD' or 'CREDIT_CARD'
    
    Raises:
        ValueError: If value is invalid
    """
    if value is None:
        return PaymentMethod.CASH.value
    
    if isinstance(value, PaymentMethod):
        return value.value
    
    normalized = str(value).upper().strip()
    if normalized in PaymentMethod.__members__:
        return normalized
    
    raise ValueError(f"Invalid payment method: {value}. Must be one of {', '.join(PaymentMethod.__members__)}.")


class SalesRecord(Base):
    """
    Sales Record (one commercial transaction from quotation to payment).
    
    total_amount is derived from the line items and is only ever written
    through set_items(). The version column backs optimistic concurrency:
    a flush against a stale version raises StaleDataError.
    """
    
    __tablename__ = 'sales_record'
    
    id = Column(BigIntegerPK, primary_key=True, autoincrement=True)
    invoice_id = Column(String(32), nullable=False, unique=True)
    customer_id = Column(BigInteger, ForeignKey('customer.id'), nullable=False)
    
    # Denormalized at creation
    customer_name = Column(String(200), nullable=False)
    customer_email = Column(String(255), nullable=True)
    customer_phone = Column(String(50), nullable=True)
    
    total_amount = Column(Numeric(14, 2), nullable=False, default=Decimal('0.00'))
    payment_method = Column(String(20), nullable=False, default='CASH')
    status = Column(Enum(SalesStatus, name='sales_status'), nullable=False)
    date_created = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    version = Column(Integer, nullable=False)
    
    # Relationships
    customer = relationship('Customer', back_populates='sales')
    items = relationship(
        'SalesLineItem',
        back_populates='sales_record',
        cascade='all, delete-orphan',
        order_by='SalesLineItem.position'
    )
    
    __mapper_args__ = {'version_id_col': version}
    
    def set_items(self, items):
        """Replace the line items and recompute total_amount from them."""
        self.items = list(items)
        for position, item in enumerate(self.items):
            item.position = position
        self.total_amount = compute_total(self.items)
    
    def to_dict(self, include_items=True):
        """Convert to dictionary for JSON serialization."""
        data = {
            'id': self.id,
            'invoice_id': self.invoice_id,
            'customer_id': self.customer_id,
            'customer_name': self.customer_name,
            'customer_email': self.customer_email,
            'customer_phone': self.customer_phone,
            'total_amount': f"{self.total_amount:.2f}",
            'payment_method': self.payment_method,
            'status': self.status.value if self.status else None,
            'date_created': self.date_created.isoformat() if self.date_created else None,
        }
        if include_items:
            data['items'] = [item.to_dict() for item in self.items]
        return data
    
    def __repr__(self):
        status = self.status.value if self.status else None
        return f"<SalesRecord(id={self.id}, invoice='{self.invoice_id}', status={status}, total={self.total_amount})>"


def compute_total(items) -> Decimal:
    """Sum of quantity x unit price over the items, rounded to cents."""
    total = sum((item.line_total for item in items), Decimal('0.00'))
    return total.quantize(Decimal('0.01'))
