from typing import List, Optional
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.errors import NotFoundError
from app.database.connection import get_db
from app.enums.pricing import FlashSaleStatus
from app.schemas.flash_sale import (
    FlashSaleCreate,
    FlashSaleResponse,
    FlashSaleUpdate,
)
from app.services.flash_sale import (
    create_flash_sale,
    list_flash_sales,
    get_flash_sale,
    update_flash_sale,
    delete_flash_sale,
)

router = APIRouter(prefix="/flash-sales", tags=["Flash Sales"])


# ---------- CREATE FLASH SALE ----------

@router.post("/", response_model=FlashSaleResponse)
def create_flash_sale_route(
    data: FlashSaleCreate,
    db: Session = Depends(get_db),
):
    return create_flash_sale(db, data)


# ---------- LIST FLASH SALES ----------

@router.get("/", response_model=List[FlashSaleResponse])
def list_flash_sales_route(
    status: Optional[FlashSaleStatus] = None,
    running_now: bool = False,
    db: Session = Depends(get_db),
):
    return list_flash_sales(db, status=status, running_now=running_now)


# ---------- GET SINGLE FLASH SALE ----------

@router.get("/{flash_sale_id}", response_model=FlashSaleResponse)
def get_flash_sale_route(
    flash_sale_id: int,
    db: Session = Depends(get_db),
):
    flash_sale = get_flash_sale(db, flash_sale_id)
    if not flash_sale:
        raise NotFoundError("Flash sale not found")
    return flash_sale


# ---------- UPDATE FLASH SALE ----------

@router.put("/{flash_sale_id}", response_model=FlashSaleResponse)
def update_flash_sale_route(
    flash_sale_id: int,
    data: FlashSaleUpdate,
    db: Session = Depends(get_db),
):
    flash_sale = update_flash_sale(db, flash_sale_id, data)
    if not flash_sale:
        raise NotFoundError("Flash sale not found")
    return flash_sale


# ---------- DELETE FLASH SALE ----------

@router.delete("/{flash_sale_id}")
def delete_flash_sale_route(
    flash_sale_id: int,
    db: Session = Depends(get_db),
):
    if not delete_flash_sale(db, flash_sale_id):
        raise NotFoundError("Flash sale not found")
    return {"message": "Flash sale deleted"}
