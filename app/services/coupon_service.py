import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import and_, or_, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import ValidationError
from app.enums.coupons import CouponStatus
from app.models.coupon import Coupon
from app.schemas.coupon import CouponCreate, CouponUpdate

logger = logging.getLogger(__name__)


def normalize_code(code: str) -> str:
    return code.strip().upper()


# ---------- CRUD ----------

def create_coupon(db: Session, data: CouponCreate) -> Coupon:
    if get_coupon_by_code(db, data.code):
        raise ValidationError(f"Coupon code {data.code} already exists")

    coupon = Coupon(**data.model_dump(), used_count=0)
    db.add(coupon)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ValidationError(f"Coupon code {data.code} already exists") from exc
    db.refresh(coupon)
    return coupon


def get_coupon(db: Session, coupon_id: int) -> Optional[Coupon]:
    return db.query(Coupon).filter(Coupon.id == coupon_id).first()


def get_coupon_by_code(db: Session, code: str) -> Optional[Coupon]:
    return db.query(Coupon).filter(Coupon.code == normalize_code(code)).first()


def list_coupons(
    db: Session,
    status: Optional[CouponStatus] = None,
    search: Optional[str] = None,
) -> List[Coupon]:
    query = db.query(Coupon)
    if status:
        query = query.filter(Coupon.status == status)
    if search:
        query = query.filter(Coupon.code.ilike(f"%{search.strip()}%"))
    return query.order_by(Coupon.start_date.desc()).all()


def update_coupon(db: Session, coupon_id: int, data: CouponUpdate) -> Optional[Coupon]:
    coupon = get_coupon(db, coupon_id)
    if not coupon:
        return None

    changes = data.model_dump(exclude_unset=True, exclude_none=True)
    start_date = changes.get("start_date", coupon.start_date)
    end_date = changes.get("end_date", coupon.end_date)
    if start_date >= end_date:
        raise ValidationError("start_date must be before end_date")

    for key, value in changes.items():
        setattr(coupon, key, value)

    db.commit()
    db.refresh(coupon)
    return coupon


def delete_coupon(db: Session, coupon_id: int) -> bool:
    coupon = get_coupon(db, coupon_id)
    if not coupon:
        return False
    db.delete(coupon)
    db.commit()
    return True


# ---------- ELIGIBILITY / REDEMPTION ----------

def find_redeemable_coupon(
    db: Session, code: str, now: Optional[datetime] = None
) -> Optional[Coupon]:
    """Active coupon whose window contains ``now``."""
    now = now or datetime.utcnow()
    return (
        db.query(Coupon)
        .filter(
            Coupon.code == normalize_code(code),
            Coupon.status == CouponStatus.active,
            Coupon.start_date <= now,
            Coupon.end_date >= now,
        )
        .first()
    )


def has_usage_left(coupon: Coupon) -> bool:
    if not coupon.usage_limit:
        return True
    return int(coupon.used_count or 0) < int(coupon.usage_limit)


def redeem_coupon(db: Session, coupon_id: int) -> bool:
    """
    Atomically take one redemption slot.

    The limit check and the increment are a single conditional UPDATE, so
    concurrent redemptions can never push used_count past usage_limit.
    Does not commit; the caller commits together with its cart write.
    """
    upd = (
        update(Coupon)
        .where(
            and_(
                Coupon.id == coupon_id,
                or_(
                    Coupon.usage_limit.is_(None),
                    Coupon.usage_limit == 0,
                    Coupon.used_count < Coupon.usage_limit,
                ),
            )
        )
        .values(used_count=Coupon.used_count + 1)
        .execution_options(synchronize_session=False)
    )
    res = db.execute(upd)
    if res.rowcount != 1:
        logger.warning("Coupon %s has no redemptions left", coupon_id)
        return False
    return True
