from datetime import timedelta

import pytest

from app.core.errors import NotFoundError, ValidationError
from app.enums.pricing import DiscountType, FlashSaleStatus, TaxType
from app.models.currency_rate import CurrencyRate
from app.models.flash_sale import FlashSale, FlashSaleItem
from app.models.pricing import SpecialPriceWindow, TierPriceBand
from app.models.tax_rule import TaxRule
from app.services.pricing_service.calculate_price import resolve_price


def _add_flash_sale(db, now, product_id, flash_price, status=FlashSaleStatus.running, variant_id=None):
    sale = FlashSale(
        title="Midnight sale",
        start_date=now - timedelta(hours=1),
        end_date=now + timedelta(hours=1),
        status=status,
        items=[
            FlashSaleItem(
                product_id=product_id,
                variant_id=variant_id,
                flash_price=flash_price,
                stock_limit=10,
            )
        ],
    )
    db.add(sale)
    db.commit()
    return sale


def _add_special(db, now, product_id, special_price, variant_id=None):
    special = SpecialPriceWindow(
        product_id=product_id,
        variant_id=variant_id,
        special_price=special_price,
        start_date=now - timedelta(days=1),
        end_date=now + timedelta(days=1),
        active=True,
    )
    db.add(special)
    db.commit()
    return special


def _add_bands(db, product_id, *bands):
    for min_qty, max_qty, price in bands:
        db.add(TierPriceBand(product_id=product_id, min_qty=min_qty, max_qty=max_qty, price=price))
    db.commit()


@pytest.fixture()
def priced_product(make_product, make_pricing):
    make_product("P100")
    return make_pricing("P100", 1000, discount_type=DiscountType.percent, discount_value=10)


def test_base_price_is_the_derived_final_price(db, priced_product):
    breakdown = resolve_price(db, "P100")

    assert breakdown.base_price == 900.0
    assert breakdown.final_price == 900.0
    assert breakdown.currency == "INR"
    assert breakdown.qty == 1
    assert breakdown.applied.flash_sale is None
    assert breakdown.applied.tax is None


def test_tier_band_selected_by_quantity(db, priced_product):
    _add_bands(db, "P100", (1, 5, 100), (6, 10, 90))

    breakdown = resolve_price(db, "P100", qty=7)

    assert breakdown.final_price == 90.0
    assert breakdown.applied.tier.price == 90.0
    assert breakdown.applied.tier.range == [6, 10]


def test_overlapping_tier_bands_pick_highest_min_qty(db, priced_product):
    _add_bands(db, "P100", (1, 10, 95), (6, 20, 85))

    assert resolve_price(db, "P100", qty=7).final_price == 85.0
    assert resolve_price(db, "P100", qty=3).final_price == 95.0


def test_quantity_outside_every_band_keeps_base_price(db, priced_product):
    _add_bands(db, "P100", (10, 20, 80))

    breakdown = resolve_price(db, "P100", qty=2)

    assert breakdown.applied.tier is None
    assert breakdown.final_price == 900.0


def test_flash_sale_wins_over_special_price(db, now, priced_product):
    sale = _add_flash_sale(db, now, "P100", 499)
    _add_special(db, now, "P100", 450)

    breakdown = resolve_price(db, "P100")

    assert breakdown.final_price == 499.0
    assert breakdown.applied.flash_sale.sale_id == sale.id
    assert breakdown.applied.special is None


def test_special_price_applies_without_running_flash_sale(db, now, priced_product):
    _add_flash_sale(db, now, "P100", 499, status=FlashSaleStatus.scheduled)
    special = _add_special(db, now, "P100", 450)

    breakdown = resolve_price(db, "P100")

    assert breakdown.applied.flash_sale is None
    assert breakdown.applied.special.special_id == special.id
    assert breakdown.final_price == 450.0


def test_expired_window_is_ignored(db, now, priced_product):
    db.add(
        SpecialPriceWindow(
            product_id="P100",
            special_price=450,
            start_date=now - timedelta(days=3),
            end_date=now - timedelta(days=1),
        )
    )
    db.commit()

    assert resolve_price(db, "P100").final_price == 900.0


def test_tier_overrides_flash_sale_price(db, now, priced_product):
    _add_flash_sale(db, now, "P100", 499)
    _add_bands(db, "P100", (5, 10, 600))

    breakdown = resolve_price(db, "P100", qty=5)

    assert breakdown.applied.flash_sale is not None
    assert breakdown.applied.tier.price == 600.0
    assert breakdown.final_price == 600.0


def test_most_specific_tax_rule_applied(db, priced_product):
    db.add_all(
        [
            TaxRule(name="GST", type=TaxType.percentage, value=5, country="India"),
            TaxRule(name="GST MH", type=TaxType.percentage, value=18, country="India", state="Maharashtra"),
        ]
    )
    db.commit()

    breakdown = resolve_price(db, "P100", country="India", state="Maharashtra")

    assert breakdown.applied.tax.value == 18.0
    assert breakdown.applied.tax.amount == 162.0
    assert breakdown.final_price == 1062.0


def test_fixed_tax_and_tax_excluded(db, priced_product):
    db.add(TaxRule(name="Levy", type=TaxType.fixed, value=25.5))
    db.commit()

    assert resolve_price(db, "P100").final_price == 925.5
    assert resolve_price(db, "P100", include_tax=False).final_price == 900.0


def test_currency_conversion(db, make_product, make_pricing):
    make_product("P_USD")
    make_pricing("P_USD", 100, currency="USD")
    db.add(CurrencyRate(from_currency="USD", to_currency="INR", rate=83))
    db.commit()

    breakdown = resolve_price(db, "P_USD", currency="inr")

    assert breakdown.final_price == 8300.0
    assert breakdown.currency == "INR"
    assert breakdown.applied.currency_rate.from_currency == "USD"
    assert breakdown.applied.currency_rate.rate == 83.0


def test_currency_converted_after_tax(db, make_product, make_pricing):
    make_product("P_ORDER")
    make_pricing("P_ORDER", 10.01, currency="USD")
    db.add(TaxRule(name="VAT", type=TaxType.percentage, value=18))
    db.add(CurrencyRate(from_currency="USD", to_currency="INR", rate=83.3333))
    db.commit()

    breakdown = resolve_price(db, "P_ORDER", currency="INR")

    # 10.01 + 1.80 tax = 11.81, then x 83.3333
    assert breakdown.applied.tax.amount == 1.8
    assert breakdown.final_price == 984.17


def test_same_currency_skips_conversion(db, priced_product):
    breakdown = resolve_price(db, "P100", currency="INR")

    assert breakdown.applied.currency_rate is None
    assert breakdown.final_price == 900.0


def test_missing_rate_is_not_found(db, priced_product):
    with pytest.raises(NotFoundError):
        resolve_price(db, "P100", currency="EUR")


def test_reverse_rate_is_not_used(db, priced_product):
    db.add(CurrencyRate(from_currency="USD", to_currency="INR", rate=83))
    db.commit()

    with pytest.raises(NotFoundError):
        resolve_price(db, "P100", currency="USD")


def test_variant_specific_pricing(db, make_product, make_pricing):
    make_product("P_VAR", variants=["P_VAR_RED"])
    make_pricing("P_VAR", 500)
    make_pricing("P_VAR", 550, variant_id="P_VAR_RED")

    assert resolve_price(db, "P_VAR").final_price == 500.0
    assert resolve_price(db, "P_VAR", variant_id="P_VAR_RED").final_price == 550.0


def test_unknown_product_or_foreign_variant_is_not_found(db, make_product, priced_product):
    make_product("P_OTHER", variants=["P_OTHER_V1"])

    with pytest.raises(NotFoundError):
        resolve_price(db, "NOPE")
    with pytest.raises(NotFoundError):
        resolve_price(db, "P100", variant_id="P_OTHER_V1")


def test_missing_or_inactive_pricing_is_not_found(db, make_product, make_pricing):
    make_product("P_NOPRICE")
    make_product("P_INACTIVE")
    make_pricing("P_INACTIVE", 100, active=False)

    with pytest.raises(NotFoundError):
        resolve_price(db, "P_NOPRICE")
    with pytest.raises(NotFoundError):
        resolve_price(db, "P_INACTIVE")


def test_invalid_quantity_rejected(db, priced_product):
    with pytest.raises(ValidationError):
        resolve_price(db, "P100", qty=0)
