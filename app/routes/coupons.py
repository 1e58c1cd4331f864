from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.errors import NotFoundError
from app.database.connection import get_db
from app.enums.coupons import CouponStatus
from app.schemas.coupon import CouponCreate, CouponUpdate, CouponResponse
from app.services.coupon_service import (
    create_coupon, get_coupon, list_coupons, update_coupon, delete_coupon
)


router = APIRouter(prefix="/coupons", tags=["Coupons"])

@router.post("/", response_model=CouponResponse)
def create_coupon_route(data: CouponCreate, db: Session = Depends(get_db)):
    return create_coupon(db, data)

@router.get("/", response_model=List[CouponResponse])
def list_coupons_route(
    status: Optional[CouponStatus] = None,
    search: Optional[str] = None,
    db: Session = Depends(get_db),
):
    return list_coupons(db, status=status, search=search)

@router.get("/{coupon_id}", response_model=CouponResponse)
def get_coupon_route(coupon_id: int, db: Session = Depends(get_db)):
    coupon = get_coupon(db, coupon_id)
    if not coupon:
        raise NotFoundError("Coupon not found")
    return coupon

@router.put("/{coupon_id}", response_model=CouponResponse)
def update_coupon_route(coupon_id: int, data: CouponUpdate, db: Session = Depends(get_db)):
    coupon = update_coupon(db, coupon_id, data)
    if not coupon:
        raise NotFoundError("Coupon not found")
    return coupon

@router.delete("/{coupon_id}")
def delete_coupon_route(coupon_id: int, db: Session = Depends(get_db)):
    if not delete_coupon(db, coupon_id):
        raise NotFoundError("Coupon not found")
    return {"message": "Coupon deleted"}
