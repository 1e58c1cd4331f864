from typing import List, Optional

from sqlalchemy import and_, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import ValidationError
from app.models.tax_rule import TaxRule
from app.schemas.tax_rule import TaxRuleCreate, TaxRuleUpdate


def _is_blank(column):
    return or_(column.is_(None), column == "")


def _specificity(rule: TaxRule, country: Optional[str], state: Optional[str]) -> int:
    """
    2 = (country, state), 1 = (country, no state), 0 = global, -1 = no match.
    """
    if not rule.country and not rule.state:
        return 0
    if country and rule.country == country:
        if not rule.state:
            return 1
        if state and rule.state == state:
            return 2
    return -1


def find_tax_rule(
    db: Session, country: Optional[str] = None, state: Optional[str] = None
) -> Optional[TaxRule]:
    """
    Most specific active tax rule for a region, or None.

    Candidates from all three scopes are fetched in one query and ranked;
    the first match wins and rules are never blended. Duplicates within a
    scope resolve to the oldest rule.
    """
    country = country or None
    state = state or None

    scopes = [and_(_is_blank(TaxRule.country), _is_blank(TaxRule.state))]
    if country:
        scopes.append(and_(TaxRule.country == country, _is_blank(TaxRule.state)))
        if state:
            scopes.append(and_(TaxRule.country == country, TaxRule.state == state))

    candidates: List[TaxRule] = (
        db.query(TaxRule)
        .filter(TaxRule.active.is_(True), or_(*scopes))
        .order_by(TaxRule.id.asc())
        .all()
    )

    best = None
    best_score = -1
    for rule in candidates:
        score = _specificity(rule, country, state)
        if score > best_score:
            best, best_score = rule, score
    return best


# ===================== CRUD =====================

def _scope_filter(column, value: Optional[str]):
    if value:
        return column == value
    return _is_blank(column)


def find_same_scope_rule(
    db: Session,
    name: str,
    country: Optional[str],
    state: Optional[str],
    exclude_id: Optional[int] = None,
) -> Optional[TaxRule]:
    """Rule with this name and scope; a missing country or state matches NULL."""
    query = db.query(TaxRule).filter(
        TaxRule.name == name,
        _scope_filter(TaxRule.country, country),
        _scope_filter(TaxRule.state, state),
    )
    if exclude_id is not None:
        query = query.filter(TaxRule.id != exclude_id)
    return query.first()


def _commit_rule(db: Session) -> None:
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ValidationError("Tax rule already exists for this name and region") from exc


def create_tax_rule(db: Session, data: TaxRuleCreate) -> TaxRule:
    if find_same_scope_rule(db, data.name, data.country, data.state):
        raise ValidationError("Tax rule already exists for this name and region")

    rule = TaxRule(**data.model_dump())
    db.add(rule)
    _commit_rule(db)
    db.refresh(rule)
    return rule


def get_tax_rule(db: Session, rule_id: int) -> Optional[TaxRule]:
    return db.query(TaxRule).filter(TaxRule.id == rule_id).first()


def list_tax_rules(
    db: Session,
    country: Optional[str] = None,
    state: Optional[str] = None,
    active: Optional[bool] = None,
) -> List[TaxRule]:
    query = db.query(TaxRule)
    if country:
        query = query.filter(TaxRule.country == country)
    if state:
        query = query.filter(TaxRule.state == state)
    if active is not None:
        query = query.filter(TaxRule.active.is_(active))
    return query.order_by(TaxRule.name.asc()).all()


def update_tax_rule(db: Session, rule_id: int, data: TaxRuleUpdate) -> Optional[TaxRule]:
    rule = get_tax_rule(db, rule_id)
    if not rule:
        return None

    changes = {
        key: value
        for key, value in data.model_dump(exclude_unset=True).items()
        if value is not None or key in ("country", "state")
    }
    name = changes.get("name", rule.name)
    country = changes.get("country", rule.country)
    state = changes.get("state", rule.state)
    if find_same_scope_rule(db, name, country, state, exclude_id=rule.id):
        raise ValidationError("Tax rule already exists for this name and region")

    for key, value in changes.items():
        setattr(rule, key, value)

    _commit_rule(db)
    db.refresh(rule)
    return rule


def delete_tax_rule(db: Session, rule_id: int) -> bool:
    rule = get_tax_rule(db, rule_id)
    if not rule:
        return False
    db.delete(rule)
    db.commit()
    return True
