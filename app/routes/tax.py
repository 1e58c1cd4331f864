from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.errors import NotFoundError
from app.database.connection import get_db
from app.schemas.tax_rule import TaxRuleCreate, TaxRuleUpdate, TaxRuleResponse
from app.services.tax_service import (
    create_tax_rule, get_tax_rule, list_tax_rules, update_tax_rule, delete_tax_rule
)


router = APIRouter(prefix="/tax-rules", tags=["Tax Rules"])

@router.post("/", response_model=TaxRuleResponse)
def create_rule(rule: TaxRuleCreate, db: Session = Depends(get_db)):
    return create_tax_rule(db, rule)

@router.get("/", response_model=List[TaxRuleResponse])
def list_rules(
    country: Optional[str] = None,
    state: Optional[str] = None,
    active: Optional[bool] = None,
    db: Session = Depends(get_db),
):
    return list_tax_rules(db, country=country, state=state, active=active)

@router.get("/{rule_id}", response_model=TaxRuleResponse)
def get_rule(rule_id: int, db: Session = Depends(get_db)):
    rule = get_tax_rule(db, rule_id)
    if not rule:
        raise NotFoundError("Tax rule not found")
    return rule

@router.put("/{rule_id}", response_model=TaxRuleResponse)
def update_rule(rule_id: int, rule: TaxRuleUpdate, db: Session = Depends(get_db)):
    updated = update_tax_rule(db, rule_id, rule)
    if not updated:
        raise NotFoundError("Tax rule not found")
    return updated

@router.delete("/{rule_id}")
def delete_rule(rule_id: int, db: Session = Depends(get_db)):
    if not delete_tax_rule(db, rule_id):
        raise NotFoundError("Tax rule not found")
    return {"message": "Tax rule deleted"}
