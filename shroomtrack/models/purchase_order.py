"""Purchase Order model."""
from sqlalchemy import Column, String, Integer, Numeric, DateTime, Enum
from sqlalchemy.sql import func
from shroomtrack.database import Base, BigIntegerPK
import enum


class PurchaseOrderStatus(enum.Enum):
    """Purchase order status enum."""
    ORDERED = "ORDERED"
    RECEIVED = "RECEIVED"
    COMPLAINT = "COMPLAINT"
    CANCELLED = "CANCELLED"


class PurchaseOrder(Base):
    """Purchase Order (packaging/consumables bought from a supplier)."""
    
    __tablename__ = 'purchase_order'
    
    id = Column(BigIntegerPK, primary_key=True, autoincrement=True)
    supplier_name = Column(String(200), nullable=False)
    item_name = Column(String(200), nullable=False)
    quantity = Column(Integer, nullable=False, default=0)
    total_cost = Column(Numeric(14, 2), nullable=False, default=0)
    status = Column(Enum(PurchaseOrderStatus, name='purchase_order_status'), nullable=False, default=PurchaseOrderStatus.ORDERED)
    date_ordered = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    
    def __repr__(self):
        return f"<PurchaseOrder(id={self.id}, item='{self.item_name}', status={self.status.value}, total={self.total_cost})>"
