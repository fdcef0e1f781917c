"""Finished goods stock model."""
from sqlalchemy import Column, String, Integer, Numeric, DateTime
from sqlalchemy.sql import func
from shroomtrack.database import Base, BigIntegerPK


class FinishedGood(Base):
    """
    Finished Good (packed product ready for sale).
    
    Several rows may describe the same sellable product (same recipe and
    packaging, different packing runs); stock for a product is the sum
    over its rows.
    """
    
    __tablename__ = 'finished_good'
    
    id = Column(BigIntegerPK, primary_key=True, autoincrement=True)
    recipe_name = Column(String(200), nullable=False)
    packaging_type = Column(String(100), nullable=False)
    quantity = Column(Integer, nullable=False, default=0)
    selling_price = Column(Numeric(14, 2), nullable=True)
    threshold = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())
    
    @property
    def product_key(self):
        """Grouping key shared by all rows of the same sellable product."""
        return f"{self.recipe_name}|{self.packaging_type}"
    
    @property
    def label(self):
        return f"{self.recipe_name} ({self.packaging_type})"
    
    def to_dict(self):
        return {
            'id': self.id,
            'recipe_name': self.recipe_name,
            'packaging_type': self.packaging_type,
            'label': self.label,
            'quantity': self.quantity,
            'selling_price': f"{self.selling_price:.2f}" if self.selling_price is not None else None,
            'threshold': self.threshold,
        }
    
    def __repr__(self):
        return f"<FinishedGood(id={self.id}, label='{self.label}', quantity={self.quantity})>"
