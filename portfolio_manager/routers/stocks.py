from fastapi import APIRouter, Depends, Path, Query, status
from typing import Annotated

from portfolio_manager.core.dependencies import get_quote_service
from portfolio_manager.core.exceptions import ResourceNotFoundError
from portfolio_manager.routers.market_data import price_response
from portfolio_manager.schemas.common import ErrorResponse, TICKER_PATTERN
from portfolio_manager.schemas.market_data import MarketPriceResponse
from portfolio_manager.schemas.quote import CompanyProfileResponse, StockQuoteResponse, SymbolSearchResult
from portfolio_manager.services import market_data_service
from portfolio_manager.services.quote_service import FinnhubService

router = APIRouter(
    prefix="/stocks",
    tags=["Stocks"],
    responses={
        404: {"model": ErrorResponse, "description": "Not found"},
        429: {"model": ErrorResponse, "description": "Too many requests"},
        502: {"model": ErrorResponse, "description": "Quote provider error"},
        500: {"model": ErrorResponse, "description": "Internal server error"}
    }
)

Symbol = Annotated[str, Path(pattern=TICKER_PATTERN, description="Ticker symbol")]


@router.get(
    "/quotes",
    response_model=list[StockQuoteResponse],
    summary="Live quotes for several symbols",
)
async def get_quotes(
    symbols: list[str] = Query(..., min_length=1, max_length=50),
    quote_service: FinnhubService = Depends(get_quote_service),
):
    return [StockQuoteResponse.model_validate(q) for q in quote_service.get_quotes(symbols)]


@router.get(
    "/search",
    response_model=list[SymbolSearchResult],
    summary="Search symbols",
)
async def search_symbols(
    q: str = Query(..., min_length=1, max_length=50, description="Name or ticker fragment"),
    quote_service: FinnhubService = Depends(get_quote_service),
):
    return [SymbolSearchResult.model_validate(r) for r in quote_service.search(q)]


@router.get(
    "/{symbol}/quote",
    response_model=StockQuoteResponse,
    summary="Live quote",
)
async def get_quote(
    symbol: Symbol,
    quote_service: FinnhubService = Depends(get_quote_service),
):
    quote = quote_service.get_quote(symbol)
    if quote is None:
        raise ResourceNotFoundError("Quote", "symbol", symbol.upper())
    return StockQuoteResponse.model_validate(quote)


@router.get(
    "/{symbol}/profile",
    response_model=CompanyProfileResponse,
    summary="Company profile",
)
async def get_company_profile(
    symbol: Symbol,
    quote_service: FinnhubService = Depends(get_quote_service),
):
    profile = quote_service.get_company_profile(symbol)
    if profile is None:
        raise ResourceNotFoundError("Company profile", "symbol", symbol.upper())
    return CompanyProfileResponse.model_validate(profile)


@router.post(
    "/{symbol}/import",
    response_model=MarketPriceResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Import a live quote as market data",
    description="Store the current quote as today's price point so holdings can be priced from it",
)
async def import_quote(
    symbol: Symbol,
    quote_service: FinnhubService = Depends(get_quote_service),
):
    return price_response(market_data_service.import_quote(symbol, quote_service))
