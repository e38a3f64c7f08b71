# schemas.py
from datetime import date, datetime
from typing import Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    StrictBool,
    StrictFloat,
    StrictInt,
    StrictStr,
)

from crud import to_major_units


class UserCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    username: Optional[str] = None
    email: Optional[EmailStr] = None
    password: Optional[str] = None
    confirm_password: Optional[str] = Field(default=None, alias="confirmPassword")


class UserLogin(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: str


class AuthResponse(BaseModel):
    user: UserOut
    token: str


class ExpenseCreate(BaseModel):
    """Incoming expense; amount is in major units, e.g. ``"12.50"`` or ``12.5``."""

    model_config = ConfigDict(populate_by_name=True)

    # Strict so JSON booleans reach the amount check unconverted
    amount: Optional[Union[StrictStr, StrictInt, StrictFloat, StrictBool]] = None
    category: Optional[str] = None
    description: Optional[str] = None
    date: Optional[str] = None
    idempotency_key: Optional[str] = Field(default=None, alias="idempotencyKey")


class ExpenseOut(BaseModel):
    id: int
    amount: float
    category: str
    description: str
    date: date
    created_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, expense) -> "ExpenseOut":
        return cls(
            id=expense.id,
            amount=to_major_units(expense.amount),
            category=expense.category,
            description=expense.description,
            date=expense.date,
            created_at=expense.created_at,
        )
