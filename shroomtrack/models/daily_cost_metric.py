"""Daily production cost model."""
from sqlalchemy import Column, String, Date, Numeric, DateTime
from sqlalchemy.sql import func
from shroomtrack.database import Base, BigIntegerPK


class DailyCostMetric(Base):
    """
    Daily Cost Metric (one raw cost entry for a day and batch/activity).
    
    Several rows may share (date, reference_id); they are merged for
    display by the cost aggregation service.
    """
    
    __tablename__ = 'daily_cost_metric'
    
    id = Column(BigIntegerPK, primary_key=True, autoincrement=True)
    date = Column(Date, nullable=False)
    reference_id = Column(String(64), nullable=True)
    weight_processed = Column(Numeric(12, 3), nullable=False, default=0)
    processing_hours = Column(Numeric(8, 2), nullable=False, default=0)
    raw_material_cost = Column(Numeric(14, 2), nullable=False, default=0)
    packaging_cost = Column(Numeric(14, 2), nullable=False, default=0)
    labor_cost = Column(Numeric(14, 2), nullable=False, default=0)
    wastage_cost = Column(Numeric(14, 2), nullable=False, default=0)
    total_cost = Column(Numeric(14, 2), nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    
    def __repr__(self):
        return f"<DailyCostMetric(id={self.id}, date={self.date}, ref='{self.reference_id}', total={self.total_cost})>"
