"""Customer model."""
from sqlalchemy import Column, String, Text, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from shroomtrack.database import Base, BigIntegerPK


class Customer(Base):
    """Customer (B2B partner or individual buyer)."""
    
    __tablename__ = 'customer'
    
    id = Column(BigIntegerPK, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    address = Column(Text, nullable=True)
    customer_type = Column(String(3), nullable=False, default='B2C')  # B2B, B2C
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    
    # Relationships
    sales = relationship('SalesRecord', back_populates='customer')
    
    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'phone': self.phone,
            'customer_type': self.customer_type,
        }
    
    def __repr__(self):
        return f"<Customer(id={self.id}, name='{self.name}', type={self.customer_type})>"
