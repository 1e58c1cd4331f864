from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect

ROOT = Path(__file__).resolve().parents[1]


def test_upgrade_creates_full_schema(tmp_path):
    url = f"sqlite:///{tmp_path / 'migrated.db'}"
    cfg = Config(str(ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(ROOT / "migrations"))
    cfg.set_main_option("sqlalchemy.url", url)

    command.upgrade(cfg, "head")

    engine = create_engine(url)
    try:
        tables = set(inspect(engine).get_table_names())
        assert {
            "products",
            "product_variants",
            "pricing_records",
            "tier_price_bands",
            "special_price_windows",
            "flash_sales",
            "flash_sale_items",
            "tax_rules",
            "currency_rates",
            "coupons",
            "carts",
            "cart_items",
        } <= tables
        cart_columns = {c["name"] for c in inspect(engine).get_columns("carts")}
        assert {"version", "currency"} <= cart_columns
    finally:
        engine.dispose()

    command.downgrade(cfg, "base")
