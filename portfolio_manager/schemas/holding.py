from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from portfolio_manager.models.enums import AssetCategory
from portfolio_manager.schemas.common import TICKER_PATTERN


class HoldingCreate(BaseModel):
    ticker: str = Field(..., pattern=TICKER_PATTERN, description="Ticker symbol")
    name: str = Field(..., min_length=1, max_length=200)
    category: AssetCategory
    quantity: Decimal = Field(..., gt=0, decimal_places=8)
    purchase_price: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    purchase_date: Optional[date] = None
    notes: Optional[str] = Field(None, max_length=1000)

    @field_validator('ticker')
    @classmethod
    def ticker_uppercase(cls, v: str) -> str:
        """Ensure ticker is uppercase"""
        return v.upper()

    @field_validator('category', mode='before')
    @classmethod
    def category_normalized(cls, v):
        if isinstance(v, str):
            return v.strip().upper().replace("-", "_")
        return v


class HoldingUpdate(BaseModel):
    """Partial update; omitted fields are left unchanged"""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    quantity: Optional[Decimal] = Field(None, gt=0, decimal_places=8)
    purchase_price: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    current_price: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    purchase_date: Optional[date] = None
    notes: Optional[str] = Field(None, max_length=1000)


class PriceRefreshResponse(BaseModel):
    holdings_updated: int
