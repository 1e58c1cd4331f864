import asyncio
import logging

from sqlalchemy.orm import Session

from app.core.config import settings
from app.database.connection import SessionLocal
from app.services.flash_sale import sweep_flash_sale_statuses

logger = logging.getLogger(__name__)


def get_db_session() -> Session:
    return SessionLocal()


# ---------- FLASH SALE SCHEDULER ----------

async def flash_sale_scheduler_loop():
    """
    Loop that runs flash_sale_scheduler every FLASH_SALE_SWEEP_SECONDS.
    """
    while True:
        try:
            await flash_sale_scheduler()
        except Exception:
            logger.exception("Flash sale status sweep failed")
        await asyncio.sleep(settings.FLASH_SALE_SWEEP_SECONDS)


async def flash_sale_scheduler():
    """
    Activates and expires flash sales based on their windows.

    The sweep is blocking database work, so it runs in a worker thread.
    """
    result = await asyncio.to_thread(_run_sweep)
    if result["started"] or result["expired"]:
        logger.info(
            "Flash sale sweep: %d started, %d expired",
            result["started"],
            result["expired"],
        )
    return result


def _run_sweep():
    db = get_db_session()
    try:
        return sweep_flash_sale_statuses(db)
    finally:
        db.close()
