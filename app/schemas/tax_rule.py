from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.enums.pricing import TaxType
from app.schemas.common import blank_to_none


class TaxRuleBase(BaseModel):
    name: str
    type: TaxType
    value: float = Field(ge=0)
    country: Optional[str] = None
    state: Optional[str] = None
    active: bool = True

    normalize_scope = field_validator("country", "state", mode="before")(blank_to_none)


class TaxRuleCreate(TaxRuleBase):
    pass


class TaxRuleUpdate(BaseModel):
    name: Optional[str] = None
    type: Optional[TaxType] = None
    value: Optional[float] = Field(default=None, ge=0)
    country: Optional[str] = None
    state: Optional[str] = None
    active: Optional[bool] = None

    normalize_scope = field_validator("country", "state", mode="before")(blank_to_none)


class TaxRuleResponse(TaxRuleBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    created_at: datetime
    updated_at: datetime
