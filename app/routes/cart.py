from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.errors import NotFoundError
from app.database.connection import get_db
from app.schemas.cart import (
    ApplyCouponRequest,
    CartItemAdd,
    CartItemUpdate,
    CartMutationResponse,
    CartResponse,
    CouponApplyResult,
    MergeCartRequest,
    RemoveCouponRequest,
)
from app.services.cart_service import (
    add_item,
    apply_coupon,
    clear_cart,
    get_cart,
    merge_cart,
    remove_coupon,
    remove_item,
    update_item_quantity,
)

router = APIRouter(prefix="/cart", tags=["Cart"])


# ---------- COUPONS ----------
# Eligibility rejections come back as 200 with success=false and an error_type.

@router.post(
    "/apply-coupon",
    response_model=CouponApplyResult,
    response_model_exclude_none=True,
)
def apply_coupon_route(body: ApplyCouponRequest, db: Session = Depends(get_db)):
    return apply_coupon(db, body.session_id, body.coupon_code)


@router.post(
    "/remove-coupon",
    response_model=CouponApplyResult,
    response_model_exclude_none=True,
)
def remove_coupon_route(body: RemoveCouponRequest, db: Session = Depends(get_db)):
    return remove_coupon(db, body.session_id)


# ---------- ITEMS ----------

@router.post("/items", response_model=CartMutationResponse)
def add_item_route(body: CartItemAdd, db: Session = Depends(get_db)):
    return add_item(db, body)


@router.put("/{session_id}/items/{item_id}", response_model=CartMutationResponse)
def update_item_route(
    session_id: str,
    item_id: int,
    body: CartItemUpdate,
    db: Session = Depends(get_db),
):
    return update_item_quantity(db, session_id, item_id, body.quantity)


@router.delete("/{session_id}/items/{item_id}", response_model=CartMutationResponse)
def remove_item_route(session_id: str, item_id: int, db: Session = Depends(get_db)):
    return remove_item(db, session_id, item_id)


# ---------- CART ----------

@router.get("/{session_id}", response_model=CartResponse)
def get_cart_route(session_id: str, db: Session = Depends(get_db)):
    cart = get_cart(db, session_id)
    if not cart:
        raise NotFoundError("Cart not found")
    return cart


@router.delete("/{session_id}", response_model=CartMutationResponse)
def clear_cart_route(session_id: str, db: Session = Depends(get_db)):
    return clear_cart(db, session_id)


@router.post("/{session_id}/merge", response_model=CartMutationResponse)
def merge_cart_route(
    session_id: str, body: MergeCartRequest, db: Session = Depends(get_db)
):
    return merge_cart(db, session_id, body.user_id)
