import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.core.errors import ConcurrentModificationError
from app.database.connection import Base
from app.enums.coupons import CouponErrorType, CouponStatus, CouponType
from app.models.coupon import Coupon
from app.models.pricing import PricingRecord
from app.models.product import Product
from app.schemas.cart import CartItemAdd
from app.services.cart_service import add_item, apply_coupon, get_cart


@pytest.fixture()
def session_factory(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'concurrency.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    db = factory()
    now = datetime.utcnow()
    db.add(Product(product_id="P_RACE", name="Race product", category_ids=["CAT_RACE"]))
    db.add(PricingRecord(product_id="P_RACE", base_price=500))
    db.add(
        Coupon(
            code="LIMITED",
            type=CouponType.percent,
            value=10,
            usage_limit=3,
            used_count=0,
            start_date=now - timedelta(days=1),
            end_date=now + timedelta(days=1),
            status=CouponStatus.active,
        )
    )
    db.commit()
    db.close()

    yield factory
    engine.dispose()


def _run_concurrently(count, fn):
    barrier = threading.Barrier(count)

    def worker(index):
        barrier.wait()
        return fn(index)

    with ThreadPoolExecutor(max_workers=count) as pool:
        return list(pool.map(worker, range(count)))


def _add(factory, session_id, quantity=1):
    db = factory()
    try:
        return add_item(
            db, CartItemAdd(session_id=session_id, product_id="P_RACE", quantity=quantity)
        )
    finally:
        db.close()


def test_coupon_never_redeemed_past_usage_limit(session_factory):
    carts = [f"race-{i}" for i in range(10)]
    for session_id in carts:
        _add(session_factory, session_id)

    def apply(index):
        db = session_factory()
        try:
            return apply_coupon(db, carts[index], "LIMITED")
        finally:
            db.close()

    results = _run_concurrently(len(carts), apply)

    succeeded = [r for r in results if r.success]
    rejected = [r for r in results if not r.success]
    assert len(succeeded) == 3
    assert {r.error_type for r in rejected} == {CouponErrorType.USAGE_LIMIT_REACHED}

    db = session_factory()
    try:
        coupon = db.query(Coupon).filter(Coupon.code == "LIMITED").one()
        assert coupon.used_count == 3
        with_coupon = [s for s in carts if get_cart(db, s).coupon_code == "LIMITED"]
        assert len(with_coupon) == 3
    finally:
        db.close()


def test_concurrent_adds_to_one_cart_are_not_lost(session_factory):
    results = _run_concurrently(8, lambda _: _add(session_factory, "shared-cart"))

    assert len(results) == 8
    db = session_factory()
    try:
        cart = get_cart(db, "shared-cart")
        assert len(cart.items) == 1
        assert cart.items[0].quantity == 8
        assert cart.version == 8
        assert cart.cart_total == 4000.0
    finally:
        db.close()


def test_stale_cart_write_is_rejected(session_factory):
    _add(session_factory, "stale-cart")

    stale_db = session_factory()
    try:
        stale_cart = get_cart(stale_db, "stale-cart")
        assert stale_cart.items[0].quantity == 1

        # another writer commits first
        _add(session_factory, "stale-cart")

        with pytest.raises(ConcurrentModificationError):
            add_item(
                stale_db,
                CartItemAdd(session_id="stale-cart", product_id="P_RACE", quantity=1),
            )
    finally:
        stale_db.close()

    db = session_factory()
    try:
        assert get_cart(db, "stale-cart").items[0].quantity == 2
    finally:
        db.close()
