from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class StockQuoteResponse(BaseModel):
    symbol: str
    current_price: Decimal
    change: Decimal
    change_percent: Decimal
    high_price: Decimal
    low_price: Decimal
    open_price: Decimal
    previous_close: Decimal
    timestamp: datetime

    class Config:
        from_attributes = True


class CompanyProfileResponse(BaseModel):
    symbol: str
    name: str
    country: Optional[str] = None
    currency: Optional[str] = None
    exchange: Optional[str] = None
    industry: Optional[str] = None
    logo: Optional[str] = None
    market_cap: Optional[Decimal] = Field(None, description="Market capitalization in millions")
    weburl: Optional[str] = None

    class Config:
        from_attributes = True


class SymbolSearchResult(BaseModel):
    symbol: str
    description: Optional[str] = None
    display_symbol: Optional[str] = Field(None, alias="displaySymbol")
    type: Optional[str] = None
