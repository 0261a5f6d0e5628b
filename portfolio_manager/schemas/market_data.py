import datetime
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator, model_validator

from portfolio_manager.schemas.common import TICKER_PATTERN


class MarketPriceCreate(BaseModel):
    ticker: str = Field(..., pattern=TICKER_PATTERN)
    date: datetime.date
    open_price: Decimal = Field(..., ge=0)
    high_price: Decimal = Field(..., ge=0)
    low_price: Decimal = Field(..., ge=0)
    close_price: Decimal = Field(..., ge=0)
    volume: int = Field(0, ge=0)

    @field_validator('ticker')
    @classmethod
    def ticker_uppercase(cls, v: str) -> str:
        return v.upper()

    @model_validator(mode='after')
    def high_must_be_highest(self):
        """Validate that high_price is the highest price"""
        if self.high_price < self.low_price:
            raise ValueError('high_price must be >= low_price')
        return self


class MarketPriceResponse(BaseModel):
    ticker: str
    date: str = Field(..., description="Trading date in ISO format")
    open_price: Decimal
    high_price: Decimal
    low_price: Decimal
    close_price: Decimal
    volume: int
    change: Decimal = Field(..., description="Close minus open")
    change_percent: Decimal
