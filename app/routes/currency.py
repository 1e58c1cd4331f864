from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.errors import NotFoundError
from app.database.connection import get_db
from app.schemas.currency_rate import CurrencyRateUpsert, CurrencyRateResponse
from app.services.currency_service import upsert_rate, get_rate, list_rates, delete_rate


router = APIRouter(prefix="/currency-rates", tags=["Currency Rates"])

@router.put("/", response_model=CurrencyRateResponse)
def upsert_currency_rate(data: CurrencyRateUpsert, db: Session = Depends(get_db)):
    return upsert_rate(db, data)

@router.get("/", response_model=List[CurrencyRateResponse])
def list_currency_rates(db: Session = Depends(get_db)):
    return list_rates(db)

@router.get("/{from_currency}/{to_currency}", response_model=CurrencyRateResponse)
def get_currency_rate(from_currency: str, to_currency: str, db: Session = Depends(get_db)):
    rate = get_rate(db, from_currency, to_currency)
    if not rate:
        raise NotFoundError(f"Conversion rate {from_currency.upper()}->{to_currency.upper()} not found")
    return rate

@router.delete("/{rate_id}")
def delete_currency_rate(rate_id: int, db: Session = Depends(get_db)):
    if not delete_rate(db, rate_id):
        raise NotFoundError("Currency rate not found")
    return {"message": "Currency rate deleted"}
