from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import List, Optional, Sequence

from portfolio_manager.core.exceptions import ResourceNotFoundError, ValidationError
from portfolio_manager.core.logging_config import get_logger
from portfolio_manager.core.money import ZERO, percent_of, to_decimal
from portfolio_manager.core.pagination import LastEvaluatedKey, Page
from portfolio_manager.models.market_price import MarketPrice
from portfolio_manager.services import db_service

logger = get_logger(__name__)


@dataclass(frozen=True)
class PricePoint:
    """A stored price point with its intraday change."""
    ticker: str
    date: str
    open_price: Decimal
    high_price: Decimal
    low_price: Decimal
    close_price: Decimal
    volume: int
    change: Decimal
    change_percent: Decimal


def describe_price(point: MarketPrice) -> PricePoint:
    change = point.close_price - point.open_price
    return PricePoint(
        ticker=point.ticker,
        date=point.date,
        open_price=point.open_price,
        high_price=point.high_price,
        low_price=point.low_price,
        close_price=point.close_price,
        volume=int(point.volume or 0),
        change=change,
        change_percent=percent_of(change, point.open_price),
    )


def save_market_price(
    ticker: str,
    trading_date: date,
    open_price: Decimal,
    high_price: Decimal,
    low_price: Decimal,
    close_price: Decimal,
    volume: int = 0,
) -> PricePoint:
    """Store one price point. A point that already exists for the day is kept as is."""
    ticker = ticker.strip().upper()

    existing = db_service.get_market_price(ticker, trading_date)
    if existing is not None:
        logger.debug("Market data already exists", extra={'ticker': ticker, 'date': trading_date.isoformat()})
        return describe_price(existing)

    prices = [to_decimal(p) for p in (open_price, high_price, low_price, close_price)]
    if any(p is None or p < ZERO for p in prices):
        raise ValidationError(f"Prices for {ticker} must be present and non-negative")
    if volume < 0:
        raise ValidationError(f"Volume for {ticker} cannot be negative")

    point = MarketPrice(
        ticker=ticker,
        date=trading_date.isoformat(),
        open_price=prices[0],
        high_price=prices[1],
        low_price=prices[2],
        close_price=prices[3],
        volume=volume,
    )
    db_service.save_market_price(point)
    return describe_price(point)


def save_market_prices(points: Sequence[dict]) -> List[PricePoint]:
    return [save_market_price(**p) for p in points]


def get_latest_price(ticker: str) -> PricePoint:
    point = db_service.latest_price_for(ticker.upper())
    if point is None:
        raise ResourceNotFoundError("MarketPrice", "ticker", ticker.upper())
    return describe_price(point)


def get_latest_prices(tickers: Sequence[str]) -> List[PricePoint]:
    """Latest points for the given tickers; tickers without data are skipped."""
    results = []
    for ticker in dict.fromkeys(t.upper() for t in tickers):
        point = db_service.latest_price_for(ticker)
        if point is not None:
            results.append(describe_price(point))
    return results


def get_price_history(
    ticker: str,
    start: date,
    end: date,
    limit: Optional[int] = None,
    last_evaluated_key: Optional[LastEvaluatedKey] = None,
) -> Page[PricePoint]:
    if start > end:
        raise ValidationError("Start date must be on or before end date")
    page = db_service.price_history(ticker.upper(), start, end, limit, last_evaluated_key)
    return Page(items=[describe_price(p) for p in page.items], last_evaluated_key=page.last_evaluated_key)


def list_tickers() -> List[str]:
    return db_service.market_tickers()


def import_quote(symbol: str, quote_service) -> PricePoint:
    """Record a live quote as today's price point so holdings can resolve it."""
    quote = quote_service.get_quote(symbol)
    if quote is None:
        raise ResourceNotFoundError("Quote", "symbol", symbol.upper())

    today = datetime.now(timezone.utc).date()
    logger.info("Importing quote", extra={'ticker': quote.symbol, 'price': quote.current_price})
    return save_market_price(
        ticker=quote.symbol,
        trading_date=today,
        open_price=quote.open_price,
        high_price=quote.high_price,
        low_price=quote.low_price,
        close_price=quote.current_price,
    )
