import os

os.environ.setdefault("FLASH_SALE_SWEEP_ENABLED", "false")

from datetime import datetime, timedelta

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.database.connection import Base
from app.enums.coupons import CouponStatus, CouponType
from app.enums.pricing import DiscountType
from app.models import cart, currency_rate, flash_sale, tax_rule  # noqa: F401
from app.models.coupon import Coupon
from app.models.pricing import PricingRecord
from app.models.product import Product, ProductVariant

TEST_DB_URL = "sqlite:///:memory:"

engine = create_engine(
    TEST_DB_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


# pysqlite needs explicit BEGIN for SAVEPOINT-based test isolation
@event.listens_for(engine, "connect")
def _sqlite_connect(dbapi_connection, connection_record):
    dbapi_connection.isolation_level = None


@event.listens_for(engine, "begin")
def _sqlite_begin(conn):
    conn.exec_driver_sql("BEGIN")


TestingSessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    join_transaction_mode="create_savepoint",
)

@pytest.fixture(scope="session", autouse=True)
def create_test_database():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db():
    connection = engine.connect()
    trans = connection.begin()
    session = TestingSessionLocal(bind=connection)
    try:
        yield session
    finally:
        session.close()
        trans.rollback()
        connection.close()


@pytest.fixture()
def now():
    return datetime.utcnow()


@pytest.fixture()
def make_product(db):
    def _make(product_id, categories=None, variants=()):
        product = Product(
            product_id=product_id,
            name=f"Product {product_id}",
            category_ids=list(categories or []),
        )
        db.add(product)
        for variant_id in variants:
            db.add(ProductVariant(variant_id=variant_id, product_id=product_id))
        db.commit()
        return product

    return _make


@pytest.fixture()
def make_pricing(db):
    def _make(
        product_id,
        base_price,
        variant_id=None,
        discount_type=DiscountType.none,
        discount_value=0.0,
        currency="INR",
        active=True,
    ):
        record = PricingRecord(
            product_id=product_id,
            variant_id=variant_id,
            base_price=base_price,
            discount_type=discount_type,
            discount_value=discount_value,
            currency=currency,
            active=active,
        )
        db.add(record)
        db.commit()
        db.refresh(record)
        return record

    return _make


@pytest.fixture()
def make_coupon(db, now):
    def _make(code, type=CouponType.percent, value=10.0, **overrides):
        values = dict(
            code=code,
            type=type,
            value=value,
            min_order_amount=0.0,
            max_discount=0.0,
            usage_limit=0,
            used_count=0,
            allowed_categories=[],
            start_date=now - timedelta(days=1),
            end_date=now + timedelta(days=1),
            status=CouponStatus.active,
        )
        values.update(overrides)
        coupon = Coupon(**values)
        db.add(coupon)
        db.commit()
        db.refresh(coupon)
        return coupon

    return _make
