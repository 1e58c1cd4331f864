import logging
from contextlib import ExitStack, contextmanager
from datetime import datetime
from threading import Lock
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.core.errors import ConcurrentModificationError, NotFoundError, ValidationError
from app.core.money import round2
from app.enums.coupons import CouponErrorType, CouponType
from app.models.cart import Cart, CartItem
from app.models.coupon import Coupon
from app.schemas.cart import (
    CartItemAdd,
    CartMutationResponse,
    CartResponse,
    CouponApplyResult,
    CouponSummary,
    DiscountInfo,
)
from app.services.catalog_service import get_category_ids
from app.services.coupon_service import (
    find_redeemable_coupon,
    get_coupon_by_code,
    has_usage_left,
    normalize_code,
    redeem_coupon,
)
from app.services.pricing_service.calculate_price import resolve_price

logger = logging.getLogger(__name__)

# fixed pool of lock stripes; a cart's session id always maps to the same stripe
CART_LOCK_STRIPES = 64
_CART_LOCKS: List[Lock] = [Lock() for _ in range(CART_LOCK_STRIPES)]


def _stripe_index(session_id: str) -> int:
    return hash(session_id) % CART_LOCK_STRIPES


@contextmanager
def _cart_section(db: Session, *session_ids: str):
    """Exclusive section for one or more carts; stale optimistic writes become 409s."""
    # stripes are taken in index order so multi-cart sections cannot deadlock
    stripes = sorted({_stripe_index(session_id) for session_id in session_ids})
    with ExitStack() as stack:
        for index in stripes:
            stack.enter_context(_CART_LOCKS[index])
        try:
            yield
        except StaleDataError as exc:
            db.rollback()
            logger.warning("Concurrent modification of cart %s", ", ".join(session_ids))
            raise ConcurrentModificationError(
                "Cart was modified concurrently; please retry"
            ) from exc


def _touch(cart: Cart) -> None:
    # always dirty the cart row so its version is bumped
    cart.updated_at = datetime.utcnow()


def _reject(error_type: CouponErrorType, message: str, **context) -> CouponApplyResult:
    logger.info("Coupon rejected: %s", error_type.value)
    return CouponApplyResult(
        success=False, message=message, error_type=error_type, **context
    )


# ===================== CART LOOKUP =====================

def get_cart(db: Session, session_id: str) -> Optional[Cart]:
    return db.query(Cart).filter(Cart.session_id == session_id).first()


def _require_cart(db: Session, session_id: str) -> Cart:
    cart = get_cart(db, session_id)
    if not cart:
        raise NotFoundError("Cart not found")
    return cart


# ===================== DISCOUNT MATH =====================

def compute_coupon_discount(
    coupon: Coupon, subtotal: float
) -> Tuple[float, Dict[str, Any]]:
    """Discount for ``subtotal``, always clamped to [0, subtotal]."""
    coupon_type = CouponType(coupon.type)
    value = float(coupon.value)

    if coupon_type is CouponType.percent:
        raw = round2(subtotal * value / 100)
        max_discount = float(coupon.max_discount or 0)
        if max_discount and raw > max_discount:
            discount = max_discount
            details = {
                "type": "percentage",
                "value": value,
                "original_discount": raw,
                "capped": True,
                "max_discount": max_discount,
            }
        else:
            discount = raw
            details = {"type": "percentage", "value": value, "capped": False}
    elif coupon_type is CouponType.flat:
        discount = min(value, subtotal)
        details = {"type": "fixed", "value": value, "applied": discount}
    else:
        raise ValueError(f"Unsupported coupon type: {coupon.type}")

    discount = round2(max(0.0, min(discount, subtotal)))
    return discount, details


def _matches_allowed_categories(db: Session, cart: Cart, coupon: Coupon) -> bool:
    allowed = set(coupon.allowed_categories or [])
    categories = get_category_ids(db, (item.product_id for item in cart.items))
    return any(
        allowed.intersection(categories.get(item.product_id, []))
        for item in cart.items
    )


def _detach_coupon(cart: Cart, reason: str) -> None:
    code = cart.coupon_code
    cart.coupon_code = None
    cart.discount = 0.0
    cart.discount_details = None
    cart.coupon_applied_at = None
    cart.cart_total = cart.subtotal
    if code:
        logger.info("Coupon %s detached from cart %s: %s", code, cart.session_id, reason)


def recompute_cart_discount(db: Session, cart: Cart) -> Optional[str]:
    """
    Bring cart totals in line with the current items.

    With a coupon attached, only the subtotal and minimum-order checks are
    re-run; usage limit, expiry and category restrictions are not. Returns
    the reason the coupon was detached, or None if it stayed (or there was
    none).
    """
    subtotal = cart.subtotal
    if not cart.coupon_code:
        cart.discount = 0.0
        cart.cart_total = subtotal
        return None

    try:
        coupon = get_coupon_by_code(db, cart.coupon_code)
        if coupon is None:
            reason = CouponErrorType.COUPON_NOT_FOUND.value
        elif subtotal <= 0:
            reason = CouponErrorType.NO_VALID_ITEMS.value
        elif coupon.min_order_amount and subtotal < float(coupon.min_order_amount):
            reason = CouponErrorType.MIN_ORDER_VALUE_NOT_MET.value
        else:
            discount, details = compute_coupon_discount(coupon, subtotal)
            cart.discount = discount
            cart.discount_details = details
            cart.cart_total = round2(subtotal - discount)
            return None
    except (SQLAlchemyError, ValueError):
        logger.exception("Recomputing discount for cart %s failed", cart.session_id)
        reason = "RECOMPUTE_FAILED"

    _detach_coupon(cart, reason)
    return reason


# ===================== APPLY / REMOVE COUPON =====================

def apply_coupon(
    db: Session,
    session_id: str,
    coupon_code: Optional[str],
    now: Optional[datetime] = None,
) -> CouponApplyResult:
    if not isinstance(coupon_code, str) or not coupon_code.strip():
        return _reject(
            CouponErrorType.INVALID_COUPON_CODE, "Valid coupon code is required"
        )

    code = normalize_code(coupon_code)
    now = now or datetime.utcnow()

    with _cart_section(db, session_id):
        return _apply_coupon_locked(db, session_id, code, now)


def _apply_coupon_locked(
    db: Session, session_id: str, code: str, now: datetime
) -> CouponApplyResult:
    cart = get_cart(db, session_id)
    if not cart:
        return _reject(CouponErrorType.CART_NOT_FOUND, "Cart not found or expired")

    if not cart.items:
        return _reject(CouponErrorType.EMPTY_CART, "Cannot apply coupon to empty cart")

    if cart.coupon_code == code:
        return _reject(
            CouponErrorType.COUPON_ALREADY_APPLIED,
            "Coupon is already applied to this cart",
        )

    coupon = find_redeemable_coupon(db, code, now)
    if not coupon:
        return _reject(
            CouponErrorType.COUPON_NOT_FOUND,
            "Invalid, expired, or inactive coupon code",
        )

    if not has_usage_left(coupon):
        return _reject(
            CouponErrorType.USAGE_LIMIT_REACHED, "Coupon usage limit has been reached"
        )

    subtotal = cart.subtotal
    if subtotal <= 0:
        return _reject(
            CouponErrorType.NO_VALID_ITEMS,
            "Cannot apply coupon to cart with no valid items",
        )

    min_order = float(coupon.min_order_amount or 0)
    if min_order and subtotal < min_order:
        return _reject(
            CouponErrorType.MIN_ORDER_VALUE_NOT_MET,
            f"Minimum order value of {min_order:.2f} required for this coupon",
            required_amount=min_order,
            current_amount=subtotal,
        )

    if coupon.allowed_categories and not _matches_allowed_categories(db, cart, coupon):
        return _reject(
            CouponErrorType.CATEGORY_RESTRICTION,
            "This coupon is not applicable to products in your cart",
        )

    discount, details = compute_coupon_discount(coupon, subtotal)

    # limit check + increment in one statement, same transaction as the cart write
    if not redeem_coupon(db, coupon.id):
        db.rollback()
        return _reject(
            CouponErrorType.USAGE_LIMIT_REACHED, "Coupon usage limit has been reached"
        )

    total = round2(subtotal - discount)
    cart.coupon_code = code
    cart.discount = discount
    cart.discount_details = details
    cart.cart_total = total
    cart.coupon_applied_at = now
    _touch(cart)

    db.commit()
    db.refresh(cart)
    logger.info("Coupon %s applied to cart %s (discount=%.2f)", code, session_id, discount)

    return CouponApplyResult(
        success=True,
        message="Coupon applied successfully",
        cart=CartResponse.model_validate(cart),
        discount=DiscountInfo(
            amount=discount,
            type=coupon.type,
            coupon_code=code,
            details=details,
        ),
        summary=CouponSummary(
            subtotal=subtotal,
            discount=discount,
            total=total,
            savings=f"{discount / subtotal * 100:.1f}%",
            savings_amount=discount,
        ),
    )


def remove_coupon(db: Session, session_id: str) -> CouponApplyResult:
    """
    Detach the coupon and restore the raw subtotal.

    The coupon's redemption count is left as is.
    """
    with _cart_section(db, session_id):
        cart = _require_cart(db, session_id)
        if not cart.coupon_code:
            return _reject(
                CouponErrorType.NO_COUPON_APPLIED, "No coupon applied to this cart"
            )

        _detach_coupon(cart, "REMOVED_BY_USER")
        _touch(cart)
        db.commit()
        db.refresh(cart)

        return CouponApplyResult(
            success=True,
            message="Coupon removed successfully",
            cart=CartResponse.model_validate(cart),
        )


# ===================== ITEM MUTATIONS =====================

def _mutation_response(
    db: Session, cart: Cart, message: str, detached: Optional[str]
) -> CartMutationResponse:
    db.commit()
    db.refresh(cart)
    return CartMutationResponse(
        message=message,
        cart=CartResponse.model_validate(cart),
        coupon_auto_removed=detached is not None,
    )


def add_item(db: Session, data: CartItemAdd) -> CartMutationResponse:
    with _cart_section(db, data.session_id):
        cart = get_cart(db, data.session_id)
        existing = None
        if cart is not None:
            existing = next(
                (
                    item
                    for item in cart.items
                    if item.product_id == data.product_id
                    and (item.variant_id or None) == data.variant_id
                ),
                None,
            )

        quantity = data.quantity + (existing.quantity if existing else 0)
        # price first so a NotFound leaves nothing pending in the session
        breakdown = resolve_price(
            db,
            product_id=data.product_id,
            variant_id=data.variant_id,
            qty=quantity,
            include_tax=False,
        )
        if cart is not None and cart.items and cart.currency:
            if breakdown.currency != cart.currency:
                raise ValidationError(
                    f"Cart is priced in {cart.currency}; "
                    f"cannot add an item priced in {breakdown.currency}"
                )

        if cart is None:
            cart = Cart(session_id=data.session_id, user_id=data.user_id, items=[])
            db.add(cart)
        elif data.user_id and not cart.user_id:
            cart.user_id = data.user_id
        if not cart.items:
            cart.currency = breakdown.currency

        if existing is not None:
            existing.quantity = quantity
            existing.price = breakdown.base_price
            existing.final_price = breakdown.final_price
        else:
            cart.items.append(
                CartItem(
                    product_id=data.product_id,
                    variant_id=data.variant_id,
                    quantity=quantity,
                    price=breakdown.base_price,
                    final_price=breakdown.final_price,
                )
            )

        detached = recompute_cart_discount(db, cart)
        _touch(cart)
        return _mutation_response(db, cart, "Item added to cart", detached)


def update_item_quantity(
    db: Session, session_id: str, item_id: int, quantity: int
) -> CartMutationResponse:
    with _cart_section(db, session_id):
        cart = _require_cart(db, session_id)
        item = next((i for i in cart.items if i.id == item_id), None)
        if item is None:
            raise NotFoundError("Item not found in cart")

        breakdown = resolve_price(
            db,
            product_id=item.product_id,
            variant_id=item.variant_id,
            qty=quantity,
            include_tax=False,
        )
        item.quantity = quantity
        item.price = breakdown.base_price
        item.final_price = breakdown.final_price

        detached = recompute_cart_discount(db, cart)
        _touch(cart)
        return _mutation_response(db, cart, "Item quantity updated", detached)


def remove_item(db: Session, session_id: str, item_id: int) -> CartMutationResponse:
    with _cart_section(db, session_id):
        cart = _require_cart(db, session_id)
        item = next((i for i in cart.items if i.id == item_id), None)
        if item is None:
            return CartMutationResponse(
                message="Item not found in cart, nothing removed",
                cart=CartResponse.model_validate(cart),
            )

        cart.items.remove(item)
        if not cart.items:
            cart.currency = None
        detached = recompute_cart_discount(db, cart)
        _touch(cart)
        return _mutation_response(db, cart, "Item removed from cart", detached)


def clear_cart(db: Session, session_id: str) -> CartMutationResponse:
    with _cart_section(db, session_id):
        cart = _require_cart(db, session_id)
        had_coupon = bool(cart.coupon_code)
        cart.items.clear()
        cart.currency = None
        _detach_coupon(cart, "CART_CLEARED")
        cart.cart_total = 0.0
        _touch(cart)
        return _mutation_response(
            db, cart, "Cart cleared successfully", "CART_CLEARED" if had_coupon else None
        )


# ===================== MERGE =====================

def _find_user_cart(db: Session, user_id: str, exclude_session_id: str) -> Optional[Cart]:
    return (
        db.query(Cart)
        .filter(Cart.user_id == user_id, Cart.session_id != exclude_session_id)
        .order_by(Cart.id.asc())
        .first()
    )


def _find_guest_cart(db: Session, session_id: str) -> Optional[Cart]:
    cart = get_cart(db, session_id)
    if cart is None or (cart.user_id or "").strip():
        return None
    return cart


def merge_cart(db: Session, session_id: str, user_id: str) -> CartMutationResponse:
    """
    Fold the guest cart ``session_id`` into the cart owned by ``user_id``.

    Matching lines (same product, same variant or both without one) add up
    their quantities and are re-priced at the merged quantity. A coupon on
    the guest cart moves over without a new redemption and is re-checked
    like any other mutation. The guest cart is deleted afterwards. Without
    an existing user cart the guest cart simply becomes the user's.
    """
    user_cart = _find_user_cart(db, user_id, session_id)
    session_ids = [session_id] + ([user_cart.session_id] if user_cart else [])

    with _cart_section(db, *session_ids):
        guest = _find_guest_cart(db, session_id)
        if guest is None or not guest.items:
            raise NotFoundError("No guest cart found or cart is empty")

        user_cart = _find_user_cart(db, user_id, session_id)
        if user_cart is None:
            guest.user_id = user_id
            detached = recompute_cart_discount(db, guest)
            _touch(guest)
            logger.info("Guest cart %s claimed by user %s", session_id, user_id)
            return _mutation_response(db, guest, "Carts merged successfully", detached)

        if user_cart.items and user_cart.currency and guest.currency:
            if user_cart.currency != guest.currency:
                raise ValidationError(
                    f"Cannot merge a {guest.currency} cart into a {user_cart.currency} cart"
                )

        for guest_item in guest.items:
            variant_id = guest_item.variant_id or None
            line = next(
                (
                    item
                    for item in user_cart.items
                    if item.product_id == guest_item.product_id
                    and (item.variant_id or None) == variant_id
                ),
                None,
            )
            if line is None:
                line = CartItem(
                    product_id=guest_item.product_id, variant_id=variant_id, quantity=0
                )
                user_cart.items.append(line)
            line.quantity += guest_item.quantity

            breakdown = resolve_price(
                db,
                product_id=line.product_id,
                variant_id=variant_id,
                qty=line.quantity,
                include_tax=False,
            )
            line.price = breakdown.base_price
            line.final_price = breakdown.final_price

        user_cart.currency = user_cart.currency or guest.currency
        if guest.coupon_code:
            user_cart.coupon_code = guest.coupon_code
            user_cart.discount_details = guest.discount_details
            user_cart.coupon_applied_at = guest.coupon_applied_at

        detached = recompute_cart_discount(db, user_cart)
        db.delete(guest)
        _touch(user_cart)
        logger.info("Guest cart %s merged into cart %s", session_id, user_cart.session_id)
        return _mutation_response(db, user_cart, "Carts merged successfully", detached)
