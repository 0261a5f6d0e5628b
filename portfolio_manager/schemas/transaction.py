from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from portfolio_manager.models.enums import TransactionStatus, TransactionType
from portfolio_manager.schemas.common import TICKER_PATTERN


class TransactionCreate(BaseModel):
    transaction_type: TransactionType
    amount: Decimal = Field(..., gt=0, decimal_places=2)
    ticker: Optional[str] = Field(None, pattern=TICKER_PATTERN)
    quantity: Optional[Decimal] = Field(None, gt=0, decimal_places=8)
    price: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    currency: Optional[str] = Field(None, pattern="^[A-Za-z]{3}$")
    description: Optional[str] = Field(None, max_length=500)
    transaction_date: Optional[datetime] = None

    @field_validator('transaction_type', mode='before')
    @classmethod
    def type_uppercase(cls, v):
        return v.strip().upper() if isinstance(v, str) else v


class TransactionResponse(BaseModel):
    transaction_id: str
    portfolio_id: str
    ticker: Optional[str] = None
    transaction_type: TransactionType
    quantity: Optional[Decimal] = None
    price: Optional[Decimal] = None
    amount: Decimal
    currency: str
    description: Optional[str] = None
    status: TransactionStatus
    transaction_date: datetime
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
