from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Numeric
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from stockroom.core.database import Base


class Product(Base):
    """
    Product model representing a stocked item.

    The image itself lives on disk; image_url is its public path
    (e.g. /uploads/products/product-<hex>.png). Each product owns its file
    exclusively - see services/image_lifecycle.py.
    """
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    description = Column(String, nullable=True)
    # SKU is unique - duplicates surface as a Conflict
    sku = Column(String, unique=True, index=True, nullable=False)
    # Fixed-point money column, never float
    price = Column(Numeric(10, 2), nullable=False, default=0)
    quantity = Column(Integer, nullable=False, default=0)
    min_stock = Column(Integer, nullable=False, default=0)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=False, index=True)
    image_url = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    category = relationship("Category", back_populates="products")

    @property
    def low_stock(self) -> bool:
        """True once quantity has fallen to the reorder threshold"""
        return (self.quantity or 0) <= (self.min_stock or 0)
