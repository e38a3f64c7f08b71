from __future__ import annotations

import re
from datetime import date
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import List, Optional, Tuple, Union

import structlog
from sqlalchemy import desc
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from database import Expense
from errors import ConflictError, InternalError, ValidationError

logger = structlog.get_logger(__name__)

DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
SORT_DATE_DESC = "date_desc"

_CENTS = Decimal(100)
# Largest value a signed 64-bit INTEGER column holds
MAX_MINOR_UNITS = 2**63 - 1


# ---------- Money ----------
def to_minor_units(value: Union[str, int, float, Decimal]) -> int:
    """Convert a major-unit amount (``"12.50"``) into cents (``1250``)."""
    if isinstance(value, bool):
        raise ValidationError("Invalid amount")
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError("Invalid amount")

    if not amount.is_finite() or amount <= 0:
        raise ValidationError("Invalid amount")

    try:
        minor = int((amount * _CENTS).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    except InvalidOperation:
        raise ValidationError("Invalid amount")
    if minor <= 0 or minor > MAX_MINOR_UNITS:
        raise ValidationError("Invalid amount")
    return minor


def to_major_units(minor: int) -> float:
    return float(Decimal(minor) / _CENTS)


def parse_expense_date(value: str) -> date:
    value = value.strip()
    if not DATE_PATTERN.match(value):
        raise ValidationError("Invalid date format. Use YYYY-MM-DD")
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise ValidationError("Invalid date format. Use YYYY-MM-DD")


# ---------- Expenses ----------
def _find_by_idempotency_key(db: Session, idempotency_key: str) -> Optional[Expense]:
    return db.query(Expense).filter(Expense.idempotency_key == idempotency_key).first()


def _replay(existing: Expense, user_id: int) -> Expense:
    # Keys are unique across all users, so a foreign match can't be returned
    if existing.user_id != user_id:
        raise ConflictError("Idempotency key already used")
    logger.info("expense_replayed", expense_id=existing.id, user_id=user_id)
    return existing


def create_expense(
    db: Session,
    user_id: int,
    amount,
    category: Optional[str],
    description: Optional[str],
    date_value: Optional[str],
    idempotency_key: Optional[str] = None,
) -> Tuple[Expense, bool]:
    """
    Validate and persist a new expense.

    Returns ``(expense, created)``. ``created`` is False when the
    idempotency key matched an earlier request and the stored row is
    returned instead of inserting a second one.
    """
    if amount is None or amount == "" or not category or not description or not date_value:
        raise ValidationError("Missing required fields")

    amount_minor = to_minor_units(amount)
    expense_date = parse_expense_date(date_value)

    category = category.strip()
    description = description.strip()
    if not category or not description:
        raise ValidationError("Category and description must not be empty")

    idempotency_key = (idempotency_key or "").strip() or None

    try:
        if idempotency_key:
            existing = _find_by_idempotency_key(db, idempotency_key)
            if existing is not None:
                return _replay(existing, user_id), False

        expense = Expense(
            user_id=user_id,
            amount=amount_minor,
            category=category,
            description=description,
            date=expense_date,
            idempotency_key=idempotency_key,
        )
        db.add(expense)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            if not idempotency_key:
                raise
            # A concurrent retry with the same key won the insert
            existing = _find_by_idempotency_key(db, idempotency_key)
            if existing is None:
                raise
            return _replay(existing, user_id), False

        db.refresh(expense)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("expense_create_failed", user_id=user_id)
        raise InternalError() from exc

    logger.info(
        "expense_created",
        expense_id=expense.id,
        user_id=user_id,
        category=category,
        amount=amount_minor,
    )
    return expense, True


def list_expenses(
    db: Session,
    user_id: int,
    category: Optional[str] = None,
    sort: Optional[str] = None,
) -> List[Expense]:
    q = db.query(Expense).filter(Expense.user_id == user_id)

    if category:
        q = q.filter(Expense.category == category)

    if sort == SORT_DATE_DESC:
        q = q.order_by(desc(Expense.date), desc(Expense.id))
    else:
        q = q.order_by(desc(Expense.id))

    try:
        return q.all()
    except SQLAlchemyError as exc:
        logger.exception("expense_list_failed", user_id=user_id)
        raise InternalError() from exc


def list_categories(db: Session, user_id: int) -> List[str]:
    try:
        rows = (
            db.query(Expense.category)
            .filter(Expense.user_id == user_id)
            .distinct()
            .order_by(Expense.category)
            .all()
        )
    except SQLAlchemyError as exc:
        logger.exception("category_list_failed", user_id=user_id)
        raise InternalError() from exc
    return [category for (category,) in rows]
