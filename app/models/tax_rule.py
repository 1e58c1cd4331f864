from datetime import datetime
from sqlalchemy import Column, Integer, String, Float, Boolean, DateTime, Enum, UniqueConstraint

from app.database.connection import Base
from app.enums.pricing import TaxType


class TaxRule(Base):
    __tablename__ = "tax_rules"
    __table_args__ = (
        UniqueConstraint("name", "country", "state", name="uq_tax_rule_scope"),
    )

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    type = Column(Enum(TaxType, native_enum=False, length=16), nullable=False)
    value = Column(Float, nullable=False)
    # null country + null state is the global default
    country = Column(String, nullable=True, index=True)
    state = Column(String, nullable=True, index=True)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
