from typing import List, Optional

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

import crud
from auth import CurrentUser, get_current_user
from database import get_db
from schemas import ExpenseCreate, ExpenseOut


router = APIRouter()


@router.post(
    "/expenses", response_model=ExpenseOut, status_code=status.HTTP_201_CREATED
)
def create_expense(
    expense: ExpenseCreate,
    response: Response,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    db_expense, created = crud.create_expense(
        db,
        user_id=current_user.id,
        amount=expense.amount,
        category=expense.category,
        description=expense.description,
        date_value=expense.date,
        idempotency_key=expense.idempotency_key,
    )
    # Replayed requests get the stored row back with 200
    if not created:
        response.status_code = status.HTTP_200_OK
    return ExpenseOut.from_model(db_expense)


@router.get("/expenses", response_model=List[ExpenseOut])
def get_expenses(
    category: Optional[str] = None,
    sort: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    expenses = crud.list_expenses(db, current_user.id, category=category, sort=sort)
    return [ExpenseOut.from_model(e) for e in expenses]


@router.get("/categories", response_model=List[str])
def get_categories(
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    return crud.list_categories(db, current_user.id)
