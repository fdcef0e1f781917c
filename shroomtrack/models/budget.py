"""Monthly budget model."""
from sqlalchemy import Column, String, Numeric, DateTime
from sqlalchemy.sql import func
from shroomtrack.database import Base


class Budget(Base):
    """Budget (monthly revenue/profit targets, keyed by YYYY-MM)."""
    
    __tablename__ = 'budget'
    
    id = Column(String(7), primary_key=True)
    month = Column(String(7), nullable=False, unique=True)
    target_revenue = Column(Numeric(14, 2), nullable=False, default=0)
    target_profit = Column(Numeric(14, 2), nullable=False, default=0)
    max_wastage_kg = Column(Numeric(12, 3), nullable=False, default=0)
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())
    
    def to_dict(self):
        """Convert to dictionary for JSON serialization."""
        return {
            'id': self.id,
            'month': self.month,
            'target_revenue': f"{self.target_revenue:.2f}",
            'target_profit': f"{self.target_profit:.2f}",
            'max_wastage_kg': str(self.max_wastage_kg),
        }
    
    def __repr__(self):
        return f"<Budget(month='{self.month}', target_revenue={self.target_revenue}, target_profit={self.target_profit})>"
