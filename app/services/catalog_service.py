from typing import Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from app.core.errors import NotFoundError
from app.models.product import Product, ProductVariant


# --------------------------
# GET PRODUCT
# --------------------------
def get_product(db: Session, product_id: str) -> Optional[Product]:
    return db.query(Product).filter(Product.product_id == product_id).first()


# --------------------------
# GET VARIANT
# --------------------------
def get_variant(db: Session, variant_id: str) -> Optional[ProductVariant]:
    return (
        db.query(ProductVariant)
        .filter(ProductVariant.variant_id == variant_id)
        .first()
    )


def ensure_product_exists(
    db: Session, product_id: str, variant_id: Optional[str] = None
) -> Product:
    """Raise NotFoundError unless the product (and variant, if given) exist."""
    product = get_product(db, product_id)
    if not product:
        raise NotFoundError(f"Product {product_id} not found")

    if variant_id:
        variant = get_variant(db, variant_id)
        if not variant or variant.product_id != product_id:
            raise NotFoundError(
                f"Variant {variant_id} not found for product {product_id}"
            )
    return product


# --------------------------
# CATEGORY LOOKUP
# --------------------------
def get_category_ids(db: Session, product_ids: Iterable[str]) -> Dict[str, List[str]]:
    ids = set(product_ids)
    if not ids:
        return {}
    rows = (
        db.query(Product.product_id, Product.category_ids)
        .filter(Product.product_id.in_(ids))
        .all()
    )
    return {row.product_id: list(row.category_ids or []) for row in rows}
