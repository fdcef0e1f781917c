"""SalesLineItem model for sales record line items."""
from decimal import Decimal
from sqlalchemy import Column, BigInteger, Integer, String, Numeric, ForeignKey
from sqlalchemy.orm import relationship
from shroomtrack.database import Base, BigIntegerPK


class SalesLineItem(Base):
    """
    Sales Line Item.
    
    Stores a snapshot of the product label and price at the time the cart
    was turned into a sales record.
    """
    
    __tablename__ = 'sales_line_item'
    
    id = Column(BigIntegerPK, primary_key=True, autoincrement=True)
    sales_record_id = Column(BigInteger, ForeignKey('sales_record.id'), nullable=False)
    position = Column(Integer, nullable=False, default=0)
    product_id = Column(BigInteger, nullable=False)
    product_label = Column(String(300), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(14, 2), nullable=False)
    
    # Relationships
    sales_record = relationship('SalesRecord', back_populates='items')
    
    @property
    def line_total(self) -> Decimal:
        return Decimal(self.quantity) * Decimal(str(self.unit_price))
    
    def to_dict(self):
        return {
            'product_id': self.product_id,
            'product_label': self.product_label,
            'quantity': self.quantity,
            'unit_price': f"{self.unit_price:.2f}",
            'line_total': f"{self.line_total:.2f}",
        }
    
    def __repr__(self):
        return f"<SalesLineItem(id={self.id}, product='{self.product_label}', qty={self.quantity}, price={self.unit_price})>"
