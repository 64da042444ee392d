import datetime as dt
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from models import TransactionType


class AccountIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    type: str = Field(..., min_length=1, max_length=40)
    balance_cents: int = 0
    description: Optional[str] = None


class AccountPatch(BaseModel):
    # balance is owned by the balance maintainer and cannot be patched
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    type: Optional[str] = Field(default=None, min_length=1, max_length=40)
    description: Optional[str] = None


class AccountOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    type: str
    balance_cents: int = 0
    description: Optional[str] = None


class CategoryIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None


class CategoryPatch(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = None


class CategoryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str] = None


class TransactionIn(BaseModel):
    amount_cents: int
    description: str = Field(..., min_length=1, max_length=200)
    date: dt.date
    account_id: int
    type: TransactionType
    category_id: int


class TransactionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    amount_cents: int
    description: str
    date: dt.date
    account_id: int
    type: TransactionType
    category_id: int

    @property
    def delta_cents(self) -> int:
        """Signed effect of this transaction on its account balance."""
        if self.type == TransactionType.income:
            return self.amount_cents
        return -self.amount_cents


class TransactionPatch(BaseModel):
    """Partial update of a transaction; an absent field keeps its old value."""

    model_config = ConfigDict(extra="forbid")

    amount_cents: Optional[int] = None
    description: Optional[str] = Field(default=None, min_length=1, max_length=200)
    date: Optional[dt.date] = None
    account_id: Optional[int] = None
    type: Optional[TransactionType] = None
    category_id: Optional[int] = None

    def changes(self) -> dict[str, object]:
        return self.model_dump(exclude_unset=True, exclude_none=True)

    def apply_to(self, current: TransactionOut) -> TransactionOut:
        return current.model_copy(update=self.changes())


class TransactionDetailOut(TransactionOut):
    account_name: Optional[str] = None
    category_name: Optional[str] = None


class DateRange(BaseModel):
    start_date: dt.date
    end_date: dt.date


class PeriodQuery(BaseModel):
    period: str = "this-month"
    custom_range: Optional[DateRange] = None


class CategorySumOut(BaseModel):
    category_id: int
    category_name: Optional[str]
    sum_cents: int


class MonthlyTotalsOut(BaseModel):
    month: int = Field(..., ge=1, le=12)
    income_cents: int
    expense_cents: int
