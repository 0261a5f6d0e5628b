from datetime import date
from fastapi import APIRouter, Path, Query, Response, status
from typing import Annotated

from portfolio_manager.core.money import round_currency, round_percent
from portfolio_manager.core.pagination import PageCursor, PageLimit, decode_cursor, set_next_cursor
from portfolio_manager.schemas.common import ErrorResponse, TICKER_PATTERN
from portfolio_manager.schemas.market_data import MarketPriceCreate, MarketPriceResponse
from portfolio_manager.services import market_data_service
from portfolio_manager.services.market_data_service import PricePoint

router = APIRouter(
    prefix="/market-data",
    tags=["Market Data"],
    responses={
        404: {"model": ErrorResponse, "description": "Not found"},
        422: {"model": ErrorResponse, "description": "Validation error"},
        429: {"model": ErrorResponse, "description": "Too many requests"},
        500: {"model": ErrorResponse, "description": "Internal server error"}
    }
)

Ticker = Annotated[str, Path(pattern=TICKER_PATTERN, description="Ticker symbol")]


def price_response(point: PricePoint) -> MarketPriceResponse:
    return MarketPriceResponse(
        ticker=point.ticker,
        date=point.date,
        open_price=round_currency(point.open_price),
        high_price=round_currency(point.high_price),
        low_price=round_currency(point.low_price),
        close_price=round_currency(point.close_price),
        volume=point.volume,
        change=round_currency(point.change),
        change_percent=round_percent(point.change_percent),
    )


def _point_kwargs(payload: MarketPriceCreate) -> dict:
    return {
        "ticker": payload.ticker,
        "trading_date": payload.date,
        "open_price": payload.open_price,
        "high_price": payload.high_price,
        "low_price": payload.low_price,
        "close_price": payload.close_price,
        "volume": payload.volume,
    }


@router.post(
    "",
    response_model=MarketPriceResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record a price point",
    description="Store one daily price point; an existing point for the same day is returned unchanged",
)
async def create_market_price(payload: MarketPriceCreate):
    return price_response(market_data_service.save_market_price(**_point_kwargs(payload)))


@router.post(
    "/batch",
    response_model=list[MarketPriceResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Record several price points",
)
async def create_market_prices(payload: list[MarketPriceCreate]):
    points = market_data_service.save_market_prices([_point_kwargs(p) for p in payload])
    return [price_response(p) for p in points]


@router.get(
    "/tickers",
    response_model=list[str],
    summary="List tickers with market data",
)
async def list_tickers():
    return market_data_service.list_tickers()


@router.get(
    "/latest",
    response_model=list[MarketPriceResponse],
    summary="Latest prices for several tickers",
    description="Tickers without any recorded price are left out",
)
async def get_latest_prices(
    tickers: list[str] = Query(..., min_length=1, description="Ticker symbols"),
):
    return [price_response(p) for p in market_data_service.get_latest_prices(tickers)]


@router.get(
    "/{ticker}/latest",
    response_model=MarketPriceResponse,
    summary="Latest price for a ticker",
)
async def get_latest_price(ticker: Ticker):
    return price_response(market_data_service.get_latest_price(ticker))


@router.get(
    "/{ticker}/history",
    response_model=list[MarketPriceResponse],
    summary="Price history for a ticker",
    description="Daily points between two dates (inclusive), oldest first",
)
async def get_price_history(
    response: Response,
    ticker: Ticker,
    start: date = Query(..., description="Start date (YYYY-MM-DD)"),
    end: date = Query(..., description="End date (YYYY-MM-DD)"),
    limit: PageLimit = None,
    cursor: PageCursor = None,
):
    page = market_data_service.get_price_history(ticker, start, end, limit, decode_cursor(cursor))
    set_next_cursor(response, page)
    return [price_response(p) for p in page.items]
