import logging
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from app.core.errors import ValidationError
from app.enums.pricing import FlashSaleStatus
from app.models.flash_sale import FlashSale, FlashSaleItem
from app.schemas.flash_sale import FlashSaleCreate, FlashSaleUpdate
from app.services.catalog_service import ensure_product_exists

logger = logging.getLogger(__name__)


# ---------- CREATE FLASH SALE ----------

def create_flash_sale(db: Session, data: FlashSaleCreate) -> FlashSale:
    for item in data.items:
        ensure_product_exists(db, item.product_id, item.variant_id)

    flash_sale = FlashSale(
        title=data.title,
        start_date=data.start_date,
        end_date=data.end_date,
        status=data.status,
        items=[FlashSaleItem(**item.model_dump()) for item in data.items],
    )
    db.add(flash_sale)

    db.commit()
    db.refresh(flash_sale)
    return flash_sale


# ---------- GET / LIST FLASH SALES ----------

def get_flash_sale(db: Session, flash_sale_id: int) -> Optional[FlashSale]:
    return db.query(FlashSale).filter(FlashSale.id == flash_sale_id).first()


def list_flash_sales(
    db: Session,
    status: Optional[FlashSaleStatus] = None,
    running_now: bool = False,
) -> List[FlashSale]:
    query = db.query(FlashSale)
    if status:
        query = query.filter(FlashSale.status == status)
    if running_now:
        now = datetime.utcnow()
        query = query.filter(
            FlashSale.status == FlashSaleStatus.running,
            FlashSale.start_date <= now,
            FlashSale.end_date >= now,
        )
    return query.order_by(FlashSale.start_date.desc()).all()


# ---------- UPDATE / DELETE ----------

def update_flash_sale(
    db: Session, flash_sale_id: int, data: FlashSaleUpdate
) -> Optional[FlashSale]:
    flash_sale = get_flash_sale(db, flash_sale_id)
    if not flash_sale:
        return None

    changes = data.model_dump(exclude_unset=True, exclude_none=True, exclude={"items"})
    start_date = changes.get("start_date", flash_sale.start_date)
    end_date = changes.get("end_date", flash_sale.end_date)
    if start_date >= end_date:
        raise ValidationError("start_date must be before end_date")

    if data.items is not None:
        for item in data.items:
            ensure_product_exists(db, item.product_id, item.variant_id)

    for key, value in changes.items():
        setattr(flash_sale, key, value)

    if data.items is not None:
        flash_sale.items = [FlashSaleItem(**item.model_dump()) for item in data.items]

    db.commit()
    db.refresh(flash_sale)
    return flash_sale


def delete_flash_sale(db: Session, flash_sale_id: int) -> bool:
    flash_sale = get_flash_sale(db, flash_sale_id)
    if not flash_sale:
        return False
    db.delete(flash_sale)
    db.commit()
    return True


# ---------- LOOKUP FOR PRICE RESOLUTION ----------

def find_running_flash_sale_item(
    db: Session,
    product_id: str,
    variant_id: Optional[str],
    now: datetime,
) -> Optional[Tuple[FlashSale, FlashSaleItem]]:
    """
    Return (sale, item) for a running sale covering this product, or None.

    A sale counts only when its status is ``running`` and ``now`` lies inside
    its window. Without a variant, any item of the product matches.
    """
    query = (
        db.query(FlashSale, FlashSaleItem)
        .join(FlashSaleItem, FlashSaleItem.flash_sale_id == FlashSale.id)
        .filter(
            FlashSale.status == FlashSaleStatus.running,
            FlashSale.start_date <= now,
            FlashSale.end_date >= now,
            FlashSaleItem.product_id == product_id,
        )
    )
    if variant_id:
        query = query.filter(FlashSaleItem.variant_id == variant_id)

    row = query.order_by(FlashSale.id.asc(), FlashSaleItem.id.asc()).first()
    if row is None:
        return None
    return row[0], row[1]


# ---------- STATE TRANSITIONS ----------

def sweep_flash_sale_statuses(db: Session, now: Optional[datetime] = None) -> dict:
    """
    Persist the time-based lifecycle:
    scheduled -> running inside the window, scheduled/running -> expired after it.
    """
    now = now or datetime.utcnow()
    started = 0
    expired = 0

    pending: List[FlashSale] = (
        db.query(FlashSale)
        .filter(FlashSale.status != FlashSaleStatus.expired)
        .all()
    )
    for sale in pending:
        if sale.end_date < now:
            sale.status = FlashSaleStatus.expired
            expired += 1
            logger.info("Flash sale %s expired", sale.id)
        elif sale.status == FlashSaleStatus.scheduled and sale.start_date <= now:
            sale.status = FlashSaleStatus.running
            started += 1
            logger.info("Flash sale %s is now running", sale.id)

    db.commit()
    return {"started": started, "expired": expired}
