import asyncio
import threading
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from app import main
from app.core.config import settings
from app.core.errors import NotFoundError, ValidationError
from app.enums.pricing import FlashSaleStatus
from app.schemas.flash_sale import FlashSaleCreate, FlashSaleItemCreate, FlashSaleUpdate
from app.services import scheduler_service
from app.services.flash_sale import (
    create_flash_sale,
    list_flash_sales,
    sweep_flash_sale_statuses,
    update_flash_sale,
)
from app.services.pricing_service.calculate_price import resolve_price


def _sale(db, now, product_id="P_FLASH", start=-1, end=1, status=FlashSaleStatus.scheduled):
    return create_flash_sale(
        db,
        FlashSaleCreate(
            title="Flash",
            start_date=now + timedelta(hours=start),
            end_date=now + timedelta(hours=end),
            status=status,
            items=[FlashSaleItemCreate(product_id=product_id, flash_price=99, stock_limit=3)],
        ),
    )


@pytest.fixture()
def flash_product(make_product, make_pricing):
    make_product("P_FLASH")
    make_pricing("P_FLASH", 150)


def test_sweep_starts_and_expires_sales(db, now, flash_product):
    current = _sale(db, now)
    future = _sale(db, now, start=2, end=3)
    over = _sale(db, now, start=-3, end=-2, status=FlashSaleStatus.running)

    result = sweep_flash_sale_statuses(db, now)

    assert result == {"started": 1, "expired": 1}
    for sale in (current, future, over):
        db.refresh(sale)
    assert current.status == FlashSaleStatus.running
    assert future.status == FlashSaleStatus.scheduled
    assert over.status == FlashSaleStatus.expired


def test_resolver_only_honours_swept_running_sales(db, now, flash_product):
    _sale(db, now)
    assert resolve_price(db, "P_FLASH").final_price == 150.0

    sweep_flash_sale_statuses(db, now)

    assert resolve_price(db, "P_FLASH").final_price == 99.0
    assert len(list_flash_sales(db, running_now=True)) == 1


def test_create_requires_known_products(db, now):
    with pytest.raises(NotFoundError):
        _sale(db, now, product_id="NOPE")


def test_update_rejects_inverted_window(db, now, flash_product):
    sale = _sale(db, now)

    with pytest.raises(ValidationError):
        update_flash_sale(db, sale.id, FlashSaleUpdate(end_date=now - timedelta(days=1)))


def test_update_replaces_items(db, now, flash_product, make_product):
    make_product("P_FLASH_2")
    sale = _sale(db, now)

    updated = update_flash_sale(
        db,
        sale.id,
        FlashSaleUpdate(items=[FlashSaleItemCreate(product_id="P_FLASH_2", flash_price=10, stock_limit=1)]),
    )

    assert [item.product_id for item in updated.items] == ["P_FLASH_2"]


def test_scheduler_runs_sweep_off_the_event_loop(db, now, flash_product, monkeypatch):
    _sale(db, now)
    threads = []

    def session_in_worker():
        threads.append(threading.current_thread())
        return db

    monkeypatch.setattr(scheduler_service, "get_db_session", session_in_worker)

    result = asyncio.run(scheduler_service.flash_sale_scheduler())

    assert result == {"started": 1, "expired": 0}
    assert threads and threads[0] is not threading.main_thread()
    assert len(list_flash_sales(db, running_now=True)) == 1


def test_sweeper_task_kept_and_cancelled_on_shutdown(monkeypatch):
    async def idle_loop():
        await asyncio.sleep(3600)

    monkeypatch.setattr(settings, "FLASH_SALE_SWEEP_ENABLED", True)
    monkeypatch.setattr(main, "flash_sale_scheduler_loop", idle_loop)

    with TestClient(main.app):
        sweeper = main.app.state.flash_sale_sweeper
        assert sweeper is not None
        assert not sweeper.done()

    assert sweeper.cancelled()
