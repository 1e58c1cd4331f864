from datetime import datetime
from sqlalchemy import (
    Column,
    Integer,
    String,
    Float,
    DateTime,
    ForeignKey,
    JSON,
)
from sqlalchemy.orm import relationship

from app.core.money import round2
from app.database.connection import Base


class Cart(Base):
    __tablename__ = "carts"

    id = Column(Integer, primary_key=True, index=True)
    session_id = Column(String, unique=True, index=True, nullable=False)
    user_id = Column(String, nullable=True, index=True)

    # discount state; all null/0 while no coupon is attached
    coupon_code = Column(String, nullable=True)
    discount = Column(Float, nullable=False, default=0.0)
    discount_details = Column(JSON, nullable=True)
    coupon_applied_at = Column(DateTime, nullable=True)

    # currency of every line; reset once the cart is emptied
    currency = Column(String(3), nullable=True)
    cart_total = Column(Float, nullable=False, default=0.0)
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    items = relationship(
        "CartItem",
        back_populates="cart",
        cascade="all, delete-orphan",
        order_by="CartItem.id",
    )

    # optimistic lock: a stale flush raises StaleDataError
    __mapper_args__ = {"version_id_col": version}

    @property
    def subtotal(self) -> float:
        return round2(
            sum(float(item.final_price) * int(item.quantity) for item in self.items)
        )


class CartItem(Base):
    __tablename__ = "cart_items"

    id = Column(Integer, primary_key=True, index=True)
    cart_id = Column(
        Integer, ForeignKey("carts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    product_id = Column(String, nullable=False, index=True)
    variant_id = Column(String, nullable=True)
    quantity = Column(Integer, nullable=False)
    price = Column(Float, nullable=False)  # base unit price
    final_price = Column(Float, nullable=False)  # resolved unit price
    added_at = Column(DateTime, default=datetime.utcnow)
    cart = relationship("Cart", back_populates="items")
