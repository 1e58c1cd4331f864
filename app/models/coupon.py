from datetime import datetime
from sqlalchemy import Column, Integer, String, Float, DateTime, Enum, JSON

from app.database.connection import Base
from app.enums.coupons import CouponType, CouponStatus


class Coupon(Base):
    __tablename__ = "coupons"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String, unique=True, index=True, nullable=False)  # e.g. SAVE20
    type = Column(Enum(CouponType, native_enum=False, length=16), nullable=False)
    value = Column(Float, nullable=False)
    # null or 0 means "not set" for the three limits below
    min_order_amount = Column(Float, nullable=True, default=0.0)
    max_discount = Column(Float, nullable=True, default=0.0)
    usage_limit = Column(Integer, nullable=True, default=0)
    used_count = Column(Integer, nullable=False, default=0)
    allowed_categories = Column(JSON, default=list)
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)
    status = Column(
        Enum(CouponStatus, native_enum=False, length=16),
        nullable=False,
        default=CouponStatus.inactive,
        index=True,
    )
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
