from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from portfolio_manager.models.enums import AssetCategory


class PortfolioCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    base_currency: Optional[str] = Field(None, pattern="^[A-Za-z]{3}$", description="ISO 4217 code")
    cash_balance: Optional[Decimal] = Field(None, ge=0, decimal_places=2)

    @field_validator('base_currency')
    @classmethod
    def currency_uppercase(cls, v: Optional[str]) -> Optional[str]:
        return v.upper() if v else v


class PortfolioUpdate(BaseModel):
    """Partial update; omitted fields are left unchanged"""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    cash_balance: Optional[Decimal] = Field(None, ge=0, decimal_places=2)


class PortfolioResponse(BaseModel):
    portfolio_id: str
    name: str
    description: Optional[str] = None
    base_currency: str
    cash_balance: Decimal
    holdings_value: Decimal
    total_value: Decimal
    holding_count: int
    created_at: datetime
    updated_at: datetime


class AllocationResponse(BaseModel):
    label: str = Field(..., description="Asset category or CASH")
    value: Decimal
    percentage: Decimal


class HoldingSummaryResponse(BaseModel):
    """A holding with its valuation and share of the portfolio"""
    portfolio_id: str
    holding_id: Optional[str] = None
    ticker: str
    name: str
    category: AssetCategory
    quantity: Decimal
    purchase_price: Optional[Decimal] = None
    current_price: Optional[Decimal] = None
    purchase_date: Optional[str] = None
    notes: Optional[str] = None
    total_value: Decimal
    gain_loss: Decimal
    gain_loss_percent: Decimal
    allocation: Decimal


class PortfolioSummaryResponse(BaseModel):
    portfolio_id: str
    name: str
    base_currency: str
    total_value: Decimal
    cash_balance: Decimal
    holdings_value: Decimal
    total_cost_basis: Decimal
    total_gain: Decimal
    total_gain_percent: Decimal
    holding_count: int
    transaction_count: int
    top_holdings: List[HoldingSummaryResponse]
    allocation: List[AllocationResponse]
