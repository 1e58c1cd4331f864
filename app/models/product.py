from sqlalchemy import Column, String, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship
from datetime import datetime
from app.database.connection import Base

# Catalog facts owned by the catalog service; the pricing engine only reads them.

class Product(Base):
    __tablename__ = "products"

    product_id = Column(String, primary_key=True, index=True)
    name = Column(String, nullable=False)
    # e.g. ["CAT_ELECTRONICS", "CAT_AUDIO"]
    category_ids = Column(JSON, default=list)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow)

    variants = relationship("ProductVariant", back_populates="product")


class ProductVariant(Base):
    __tablename__ = "product_variants"

    variant_id = Column(String, primary_key=True, index=True)
    product_id = Column(
        String, ForeignKey("products.product_id"), nullable=False, index=True
    )
    sku = Column(String, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)

    product = relationship("Product", back_populates="variants")
