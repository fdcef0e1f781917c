"""Rate setting model (labor and raw-material rates)."""
import enum
from sqlalchemy import Column, String, Numeric, DateTime
from sqlalchemy.sql import func
from shroomtrack.database import Base


class RateKey(enum.Enum):
    """Known rate keys."""
    LABOR_RATE = "LABOR_RATE"  # per processing hour
    RAW_MATERIAL_RATE = "RAW_MATERIAL_RATE"  # per kg processed


class RateSetting(Base):
    """Key/value store for cost-entry rates."""
    
    __tablename__ = 'rate_setting'
    
    key = Column(String(32), primary_key=True)
    value = Column(Numeric(12, 2), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())
    
    def __repr__(self):
        return f"<RateSetting(key='{self.key}', value={self.value})>"
