from datetime import datetime
from sqlalchemy import (
    Column,
    Integer,
    String,
    Float,
    DateTime,
    ForeignKey,
    Enum,
)
from sqlalchemy.orm import relationship

from app.database.connection import Base
from app.enums.pricing import FlashSaleStatus


class FlashSale(Base):
    __tablename__ = "flash_sales"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False)
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)
    status = Column(
        Enum(FlashSaleStatus, native_enum=False, length=16),
        default=FlashSaleStatus.scheduled,
        nullable=False,
        index=True,
    )
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    items = relationship(
        "FlashSaleItem",
        back_populates="flash_sale",
        cascade="all, delete-orphan",
        order_by="FlashSaleItem.id",
    )


class FlashSaleItem(Base):
    __tablename__ = "flash_sale_items"

    id = Column(Integer, primary_key=True, index=True)
    flash_sale_id = Column(
        Integer, ForeignKey("flash_sales.id", ondelete="CASCADE"), nullable=False, index=True
    )
    product_id = Column(String, nullable=False, index=True)
    variant_id = Column(String, nullable=True, index=True)
    flash_price = Column(Float, nullable=False)
    stock_limit = Column(Integer, nullable=False)
    flash_sale = relationship("FlashSale", back_populates="items")
