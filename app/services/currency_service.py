from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import ValidationError
from app.models.currency_rate import CurrencyRate
from app.schemas.currency_rate import CurrencyRateUpsert


def _code(value: str) -> str:
    return value.strip().upper()


def upsert_rate(db: Session, data: CurrencyRateUpsert) -> CurrencyRate:
    rate = get_rate(db, data.from_currency, data.to_currency)
    if rate is None:
        rate = CurrencyRate(**data.model_dump())
        db.add(rate)
    else:
        rate.rate = data.rate

    try:
        db.commit()
    except IntegrityError as exc:
        # a concurrent upsert created the pair first
        db.rollback()
        raise ValidationError(
            f"Conversion rate {data.from_currency}->{data.to_currency} already exists"
        ) from exc
    db.refresh(rate)
    return rate


def get_rate(db: Session, from_currency: str, to_currency: str) -> Optional[CurrencyRate]:
    """Directed lookup; a USD->INR rate says nothing about INR->USD."""
    return (
        db.query(CurrencyRate)
        .filter(
            CurrencyRate.from_currency == _code(from_currency),
            CurrencyRate.to_currency == _code(to_currency),
        )
        .first()
    )


def list_rates(db: Session) -> List[CurrencyRate]:
    return db.query(CurrencyRate).order_by(CurrencyRate.updated_at.desc()).all()


def delete_rate(db: Session, rate_id: int) -> bool:
    rate = db.query(CurrencyRate).filter(CurrencyRate.id == rate_id).first()
    if not rate:
        return False
    db.delete(rate)
    db.commit()
    return True
