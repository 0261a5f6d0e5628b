from datetime import date
from decimal import Decimal
from typing import Dict, Optional, Union

from portfolio_manager.core.exceptions import ValidationError
from portfolio_manager.core.logging_config import get_logger
from portfolio_manager.core.money import ZERO, to_decimal
from portfolio_manager.core.pagination import LastEvaluatedKey, Page
from portfolio_manager.models.enums import AssetCategory
from portfolio_manager.models.holding import Holding, new_holding_id
from portfolio_manager.services import db_service
from portfolio_manager.services.portfolio_service import (
    HoldingSummary,
    calculate_holdings_value,
    summarize_holding,
)
from portfolio_manager.services.price_service import (
    apply_price_fallback,
    refresh_prices,
    resolve_current_price,
    resolve_prices,
)
from portfolio_manager.services.valuation_service import valuate_holding

logger = get_logger(__name__)


def parse_category(value: Union[str, AssetCategory]) -> AssetCategory:
    if isinstance(value, AssetCategory):
        return value
    try:
        return AssetCategory(value.strip().upper().replace("-", "_"))
    except (ValueError, AttributeError):
        raise ValidationError(f"Invalid asset category: {value}")


def _positive_quantity(quantity) -> Decimal:
    quantity = to_decimal(quantity)
    if quantity is None or quantity <= ZERO:
        raise ValidationError("Quantity must be greater than zero")
    return quantity


def _optional_price(price) -> Optional[Decimal]:
    price = to_decimal(price)
    if price is not None and price < ZERO:
        raise ValidationError("Prices cannot be negative")
    return price


def create_holding(
    portfolio_id: str,
    ticker: str,
    name: str,
    category: Union[str, AssetCategory],
    quantity: Decimal,
    purchase_price: Optional[Decimal] = None,
    purchase_date: Optional[date] = None,
    notes: Optional[str] = None,
) -> Holding:
    ticker = ticker.strip().upper()
    logger.info("Creating holding", extra={'portfolio_id': portfolio_id, 'ticker': ticker})

    db_service.get_portfolio(portfolio_id)

    holding = Holding(
        portfolio_id=portfolio_id,
        ticker=ticker,
        holding_id=new_holding_id(),
        name=name,
        category=parse_category(category),
        quantity=_positive_quantity(quantity),
        purchase_price=_optional_price(purchase_price),
        purchase_date=purchase_date.isoformat() if purchase_date else None,
        notes=notes,
    )

    holding.current_price = resolve_current_price(ticker, db_service.latest_price_for)
    apply_price_fallback(holding)

    # raises DuplicateResourceError when the ticker is already held
    db_service.insert_holding(holding)
    logger.info(
        "Holding created",
        extra={'portfolio_id': portfolio_id, 'ticker': ticker, 'holding_id': holding.holding_id},
    )
    return holding


def update_holding(
    portfolio_id: str,
    ticker: str,
    name: Optional[str] = None,
    quantity: Optional[Decimal] = None,
    purchase_price: Optional[Decimal] = None,
    current_price: Optional[Decimal] = None,
    purchase_date: Optional[date] = None,
    notes: Optional[str] = None,
) -> Holding:
    """Partial update: only the fields that are given change."""
    holding = db_service.get_holding(portfolio_id, ticker.upper())

    if name is not None:
        holding.name = name
    if quantity is not None:
        holding.quantity = _positive_quantity(quantity)
    if purchase_price is not None:
        holding.purchase_price = _optional_price(purchase_price)
    if current_price is not None:
        holding.current_price = _optional_price(current_price)
    if purchase_date is not None:
        holding.purchase_date = purchase_date.isoformat()
    if notes is not None:
        holding.notes = notes

    db_service.save_holding(holding)
    logger.info("Holding updated", extra={'portfolio_id': portfolio_id, 'ticker': holding.ticker})
    return holding


def delete_holding(portfolio_id: str, ticker: str) -> None:
    holding = db_service.get_holding(portfolio_id, ticker.upper())
    db_service.delete_holding(holding)
    logger.info("Holding deleted", extra={'portfolio_id': portfolio_id, 'ticker': holding.ticker})


def _portfolio_total(portfolio, holdings) -> Decimal:
    return portfolio.cash_balance + calculate_holdings_value(valuate_holding(h) for h in holdings)


def get_holding(portfolio_id: str, ticker: str) -> HoldingSummary:
    portfolio = db_service.get_portfolio(portfolio_id)
    holdings = db_service.list_holdings(portfolio_id)
    holding = db_service.get_holding(portfolio_id, ticker.upper())
    return summarize_holding(holding, valuate_holding(holding), _portfolio_total(portfolio, holdings))


def _holding_key(holding: Holding) -> LastEvaluatedKey:
    return {"portfolio_id": {"S": holding.portfolio_id}, "ticker": {"S": holding.ticker}}


def list_holdings(
    portfolio_id: str,
    category: Optional[str] = None,
    limit: Optional[int] = None,
    last_evaluated_key: Optional[LastEvaluatedKey] = None,
) -> Page[HoldingSummary]:
    """
    Holdings of a portfolio with their allocation, optionally for one category.

    All holdings are read anyway for the portfolio total, so pages are cut
    from that ticker-ordered read. Page keys have the holdings table key shape.
    """
    portfolio = db_service.get_portfolio(portfolio_id)
    holdings = db_service.list_holdings(portfolio_id)
    total = _portfolio_total(portfolio, holdings)

    wanted = parse_category(category) if category is not None else None
    matching = [h for h in holdings if wanted is None or h.category == wanted]
    if last_evaluated_key is not None:
        after = last_evaluated_key.get("ticker", {}).get("S", "")
        matching = [h for h in matching if h.ticker > after]

    next_key = None
    if limit is not None and len(matching) > limit:
        matching = matching[:limit]
        next_key = _holding_key(matching[-1])

    return Page(
        items=[summarize_holding(h, valuate_holding(h), total) for h in matching],
        last_evaluated_key=next_key,
    )


def list_holdings_by_category(
    category: Union[str, AssetCategory],
    limit: Optional[int] = None,
    last_evaluated_key: Optional[LastEvaluatedKey] = None,
) -> Page[HoldingSummary]:
    """Holdings of one category across every portfolio.

    A holding's allocation is its share of its own portfolio's total.
    """
    wanted = parse_category(category)
    page = db_service.holdings_in_category(wanted, limit, last_evaluated_key)

    totals: Dict[str, Decimal] = {}
    summaries = []
    for holding in page.items:
        if holding.portfolio_id not in totals:
            portfolio = db_service.get_portfolio(holding.portfolio_id)
            owned = db_service.list_holdings(holding.portfolio_id)
            totals[holding.portfolio_id] = _portfolio_total(portfolio, owned)
        summaries.append(summarize_holding(holding, valuate_holding(holding), totals[holding.portfolio_id]))

    logger.debug(
        "Listed holdings by category",
        extra={'category': wanted.value, 'holdings': len(summaries), 'portfolios': len(totals)},
    )
    return Page(items=summaries, last_evaluated_key=page.last_evaluated_key)

def refresh_all_prices() -> int:
    """Bring every holding up to the latest recorded close for its ticker.

    Holdings are read in one scan and each distinct ticker is resolved once.
    Each ticker group is written in a single DynamoDB transaction.
    """
    logger.info("Updating holding prices from market data...")

    groups = db_service.holdings_by_ticker()
    prices = resolve_prices(groups.keys(), db_service.latest_price_for)
    updated = refresh_prices(groups, prices.get, save=db_service.save_holdings)

    logger.info(
        "Holding price update completed",
        extra={'tickers': len(groups), 'priced_tickers': len(prices), 'holdings_updated': updated},
    )
    return updated
