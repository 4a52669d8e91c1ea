from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from models import TransactionType


class PeriodQuery(BaseModel):
    model_config = ConfigDict(extra="ignore")

    period: Optional[str] = "this_month"
    start: Optional[date] = None
    end: Optional[date] = None


class TransactionQuery(PeriodQuery):
    wallet_id: Optional[str] = Field(default=None, max_length=64)
    category_id: Optional[str] = Field(default=None, max_length=64)
    kind: Optional[TransactionType] = None
    limit: int = Field(default=100, ge=1, le=500)

    @field_validator("kind", mode="before")
    @classmethod
    def _accept_english_kind(cls, value: object) -> object:
        aliases = {"expense": "gasto", "income": "ingreso"}
        if isinstance(value, str):
            return aliases.get(value.strip().lower(), value.strip().lower())
        return value


class MonthQuery(BaseModel):
    month: str = Field(..., pattern=r"^\d{4}-(0[1-9]|1[0-2])$")


class TransactionOut(BaseModel):
    id: Optional[str] = None
    date: datetime
    kind: TransactionType
    amount: float
    wallet_id: Optional[str] = None
    wallet: str
    category_id: Optional[str] = None
    category: str


class BucketOut(BaseModel):
    key: Optional[str] = None
    label: str
    kind: Optional[TransactionType] = None
    total: float
    count: int = Field(..., ge=0)
    percentage: float
    income: float
    expense: float


class BudgetAlertOut(BaseModel):
    budget_id: Optional[str] = None
    category_id: Optional[str] = None
    category: str
    limit: float
    spent: float
    available: float
    percentage: float
    status: Literal["ok", "warning", "exceeded"]
