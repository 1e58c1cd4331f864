from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CurrencyRateUpsert(BaseModel):
    from_currency: str = Field(min_length=3, max_length=3)
    to_currency: str = Field(min_length=3, max_length=3)
    rate: float = Field(gt=0)

    @field_validator("from_currency", "to_currency", mode="before")
    @classmethod
    def upper_code(cls, v):
        return v.strip().upper() if isinstance(v, str) else v


class CurrencyRateResponse(CurrencyRateUpsert):
    model_config = ConfigDict(from_attributes=True)

    id: int
    created_at: datetime
    updated_at: datetime
