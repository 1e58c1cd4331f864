"""initial pricing, coupon and cart schema

Revision ID: 3a1f0c9d2b7e
Revises:
Create Date: 2026-10-18 10:12:31.108245

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3a1f0c9d2b7e'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade():
    op.create_table(
        "products",
        sa.Column("product_id", sa.String(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("category_ids", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_products_product_id", "products", ["product_id"])

    op.create_table(
        "product_variants",
        sa.Column("variant_id", sa.String(), primary_key=True),
        sa.Column(
            "product_id", sa.String(), sa.ForeignKey("products.product_id"), nullable=False
        ),
        sa.Column("sku", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_product_variants_variant_id", "product_variants", ["variant_id"])
    op.create_index("ix_product_variants_product_id", "product_variants", ["product_id"])

    op.create_table(
        "pricing_records",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("product_id", sa.String(), nullable=False),
        sa.Column("variant_id", sa.String(), nullable=True),
        sa.Column("base_price", sa.Float(), nullable=False),
        sa.Column("discount_type", sa.String(length=16), nullable=False),
        sa.Column("discount_value", sa.Float(), nullable=False),
        sa.Column("final_price", sa.Float(), nullable=False),
        sa.Column("currency", sa.String(), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.UniqueConstraint("product_id", "variant_id", name="uq_pricing_product_variant"),
    )
    op.create_index("ix_pricing_records_id", "pricing_records", ["id"])
    op.create_index("ix_pricing_records_product_id", "pricing_records", ["product_id"])
    op.create_index("ix_pricing_records_variant_id", "pricing_records", ["variant_id"])

    op.create_table(
        "tier_price_bands",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("product_id", sa.String(), nullable=False),
        sa.Column("variant_id", sa.String(), nullable=True),
        sa.Column("min_qty", sa.Integer(), nullable=False),
        sa.Column("max_qty", sa.Integer(), nullable=False),
        sa.Column("price", sa.Float(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.UniqueConstraint(
            "product_id", "variant_id", "min_qty", "max_qty", name="uq_tier_band"
        ),
    )
    op.create_index("ix_tier_price_bands_id", "tier_price_bands", ["id"])
    op.create_index("ix_tier_price_bands_product_id", "tier_price_bands", ["product_id"])
    op.create_index("ix_tier_price_bands_variant_id", "tier_price_bands", ["variant_id"])

    op.create_table(
        "special_price_windows",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("product_id", sa.String(), nullable=False),
        sa.Column("variant_id", sa.String(), nullable=True),
        sa.Column("special_price", sa.Float(), nullable=False),
        sa.Column("start_date", sa.DateTime(), nullable=False),
        sa.Column("end_date", sa.DateTime(), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_special_price_windows_id", "special_price_windows", ["id"])
    op.create_index(
        "ix_special_price_windows_product_id", "special_price_windows", ["product_id"]
    )
    op.create_index(
        "ix_special_price_windows_variant_id", "special_price_windows", ["variant_id"]
    )

    op.create_table(
        "flash_sales",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("start_date", sa.DateTime(), nullable=False),
        sa.Column("end_date", sa.DateTime(), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_flash_sales_id", "flash_sales", ["id"])
    op.create_index("ix_flash_sales_status", "flash_sales", ["status"])

    op.create_table(
        "flash_sale_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "flash_sale_id",
            sa.Integer(),
            sa.ForeignKey("flash_sales.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("product_id", sa.String(), nullable=False),
        sa.Column("variant_id", sa.String(), nullable=True),
        sa.Column("flash_price", sa.Float(), nullable=False),
        sa.Column("stock_limit", sa.Integer(), nullable=False),
    )
    op.create_index("ix_flash_sale_items_id", "flash_sale_items", ["id"])
    op.create_index("ix_flash_sale_items_flash_sale_id", "flash_sale_items", ["flash_sale_id"])
    op.create_index("ix_flash_sale_items_product_id", "flash_sale_items", ["product_id"])
    op.create_index("ix_flash_sale_items_variant_id", "flash_sale_items", ["variant_id"])

    op.create_table(
        "tax_rules",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("type", sa.String(length=16), nullable=False),
        sa.Column("value", sa.Float(), nullable=False),
        sa.Column("country", sa.String(), nullable=True),
        sa.Column("state", sa.String(), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.UniqueConstraint("name", "country", "state", name="uq_tax_rule_scope"),
    )
    op.create_index("ix_tax_rules_id", "tax_rules", ["id"])
    op.create_index("ix_tax_rules_country", "tax_rules", ["country"])
    op.create_index("ix_tax_rules_state", "tax_rules", ["state"])

    op.create_table(
        "currency_rates",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("from_currency", sa.String(length=3), nullable=False),
        sa.Column("to_currency", sa.String(length=3), nullable=False),
        sa.Column("rate", sa.Float(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.UniqueConstraint("from_currency", "to_currency", name="uq_currency_pair"),
    )
    op.create_index("ix_currency_rates_id", "currency_rates", ["id"])
    op.create_index("ix_currency_rates_from_currency", "currency_rates", ["from_currency"])
    op.create_index("ix_currency_rates_to_currency", "currency_rates", ["to_currency"])

    op.create_table(
        "coupons",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("code", sa.String(), nullable=False),
        sa.Column("type", sa.String(length=16), nullable=False),
        sa.Column("value", sa.Float(), nullable=False),
        sa.Column("min_order_amount", sa.Float(), nullable=True),
        sa.Column("max_discount", sa.Float(), nullable=True),
        sa.Column("usage_limit", sa.Integer(), nullable=True),
        sa.Column("used_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("allowed_categories", sa.JSON(), nullable=True),
        sa.Column("start_date", sa.DateTime(), nullable=False),
        sa.Column("end_date", sa.DateTime(), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_coupons_id", "coupons", ["id"])
    op.create_index("ix_coupons_code", "coupons", ["code"], unique=True)
    op.create_index("ix_coupons_status", "coupons", ["status"])

    op.create_table(
        "carts",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("session_id", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=True),
        sa.Column("coupon_code", sa.String(), nullable=True),
        sa.Column("discount", sa.Float(), nullable=False),
        sa.Column("discount_details", sa.JSON(), nullable=True),
        sa.Column("coupon_applied_at", sa.DateTime(), nullable=True),
        sa.Column("cart_total", sa.Float(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_carts_id", "carts", ["id"])
    op.create_index("ix_carts_session_id", "carts", ["session_id"], unique=True)
    op.create_index("ix_carts_user_id", "carts", ["user_id"])

    op.create_table(
        "cart_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "cart_id",
            sa.Integer(),
            sa.ForeignKey("carts.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("product_id", sa.String(), nullable=False),
        sa.Column("variant_id", sa.String(), nullable=True),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("price", sa.Float(), nullable=False),
        sa.Column("final_price", sa.Float(), nullable=False),
        sa.Column("added_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_cart_items_id", "cart_items", ["id"])
    op.create_index("ix_cart_items_cart_id", "cart_items", ["cart_id"])
    op.create_index("ix_cart_items_product_id", "cart_items", ["product_id"])


def downgrade():
    op.drop_table("cart_items")
    op.drop_table("carts")
    op.drop_table("coupons")
    op.drop_table("currency_rates")
    op.drop_table("tax_rules")
    op.drop_table("flash_sale_items")
    op.drop_table("flash_sales")
    op.drop_table("special_price_windows")
    op.drop_table("tier_price_bands")
    op.drop_table("pricing_records")
    op.drop_table("product_variants")
    op.drop_table("products")
