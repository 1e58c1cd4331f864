from datetime import timedelta

import pytest

from app.core.errors import ValidationError
from app.enums.coupons import CouponType
from app.enums.pricing import DiscountType
from app.schemas.coupon import CouponCreate
from app.schemas.currency_rate import CurrencyRateUpsert
from app.schemas.pricing import PricingRecordUpsert, TierBandCreate
from app.services import coupon_service, currency_service
from app.services.pricing_service import pricing_service
from app.services.pricing_service.pricing_service import (
    create_tier_band,
    get_pricing_record,
    list_tier_bands,
    upsert_pricing_record,
)


def test_price_only_upsert_keeps_stored_currency(db, make_product, make_pricing):
    make_product("P_USD")
    make_pricing("P_USD", 100, discount_type=DiscountType.percent, discount_value=10, currency="USD")

    record = upsert_pricing_record(db, PricingRecordUpsert(product_id="P_USD", base_price=120))

    assert record.currency == "USD"
    assert record.discount_type == DiscountType.percent
    assert record.final_price == 108.0


def test_upsert_can_still_change_currency(db, make_product, make_pricing):
    make_product("P_USD")
    make_pricing("P_USD", 100, currency="USD")

    record = upsert_pricing_record(
        db, PricingRecordUpsert(product_id="P_USD", base_price=100, currency="eur")
    )

    assert record.currency == "EUR"


def test_new_record_without_currency_gets_default(db, make_product):
    make_product("P_NEW")

    upsert_pricing_record(db, PricingRecordUpsert(product_id="P_NEW", base_price=50))

    assert get_pricing_record(db, "P_NEW").currency == "INR"


def test_duplicate_product_level_tier_rejected(db, make_product):
    make_product("P_TIER")
    band = TierBandCreate(product_id="P_TIER", min_qty=1, max_qty=5, price=90)
    create_tier_band(db, band)

    with pytest.raises(ValidationError):
        create_tier_band(db, band)

    assert len(list_tier_bands(db, product_id="P_TIER")) == 1


def test_tier_unique_constraint_maps_to_validation_error(db, make_product, monkeypatch):
    make_product("P_TIER", variants=["V1"])
    band = TierBandCreate(product_id="P_TIER", variant_id="V1", min_qty=1, max_qty=5, price=90)
    create_tier_band(db, band)
    # simulate a concurrent writer slipping past the lookup
    monkeypatch.setattr(pricing_service, "find_matching_tier_band", lambda db, data: None)

    with pytest.raises(ValidationError):
        create_tier_band(db, band)

    assert len(list_tier_bands(db, product_id="P_TIER")) == 1


def test_duplicate_coupon_code_from_constraint(db, now, make_coupon, monkeypatch):
    make_coupon("DUP10")
    monkeypatch.setattr(coupon_service, "get_coupon_by_code", lambda db, code: None)

    with pytest.raises(ValidationError):
        coupon_service.create_coupon(
            db,
            CouponCreate(
                code="DUP10",
                type=CouponType.percent,
                value=10,
                start_date=now,
                end_date=now + timedelta(days=30),
            ),
        )


def test_currency_rate_upsert_updates_in_place(db):
    currency_service.upsert_rate(
        db, CurrencyRateUpsert(from_currency="INR", to_currency="USD", rate=0.012)
    )
    updated = currency_service.upsert_rate(
        db, CurrencyRateUpsert(from_currency="inr", to_currency="usd", rate=0.013)
    )

    assert updated.rate == 0.013
    assert len(currency_service.list_rates(db)) == 1
