"""
DynamoDB access for portfolios, holdings, market prices and transactions.

Service functions read snapshots through this module and hand them to the
pure valuation code; nothing here does any financial arithmetic.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from pynamodb.connection import Connection
from pynamodb.exceptions import DoesNotExist, PutError, TransactWriteError
from pynamodb.transactions import TransactWrite

from portfolio_manager.core.config import settings
from portfolio_manager.core.exceptions import ConcurrentUpdateError, DuplicateResourceError, ResourceNotFoundError
from portfolio_manager.core.logging_config import get_logger
from portfolio_manager.core.pagination import LastEvaluatedKey, Page, page_of
from portfolio_manager.models.enums import AssetCategory
from portfolio_manager.models.holding import Holding
from portfolio_manager.models.market_price import MarketPrice
from portfolio_manager.models.portfolio import Portfolio
from portfolio_manager.models.transaction import Transaction, as_utc

logger = get_logger(__name__)

# DynamoDB limit on items per TransactWriteItems call
MAX_TRANSACT_ITEMS = 100


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _connection() -> Connection:
    return Connection(region=settings.AWS_REGION, host=settings.DYNAMODB_ENDPOINT)


# --- Portfolios ---


def get_portfolio(portfolio_id: str) -> Portfolio:
    try:
        return Portfolio.get(portfolio_id)
    except DoesNotExist:
        raise ResourceNotFoundError("Portfolio", "portfolio_id", portfolio_id)


def list_portfolios() -> List[Portfolio]:
    """All portfolios, newest first."""
    return sorted(Portfolio.scan(), key=lambda p: p.created_at, reverse=True)


def portfolio_page(
    limit: Optional[int] = None,
    last_evaluated_key: Optional[LastEvaluatedKey] = None,
) -> Page[Portfolio]:
    """One page of portfolios in table order."""
    return page_of(Portfolio.scan(limit=limit, last_evaluated_key=last_evaluated_key))


def save_portfolio(portfolio: Portfolio) -> Portfolio:
    portfolio.updated_at = _now()
    portfolio.save()
    return portfolio


def delete_portfolio_cascade(portfolio: Portfolio) -> None:
    """Delete a portfolio together with the holdings and transactions it owns."""
    holdings = list(Holding.query(portfolio.portfolio_id))
    transactions = list(Transaction.query(portfolio.portfolio_id))

    with Holding.batch_write() as batch:
        for holding in holdings:
            batch.delete(holding)
    with Transaction.batch_write() as batch:
        for transaction in transactions:
            batch.delete(transaction)

    portfolio.delete()
    logger.info(
        "Deleted portfolio with owned records",
        extra={
            'portfolio_id': portfolio.portfolio_id,
            'holdings': len(holdings),
            'transactions': len(transactions),
        },
    )


# --- Holdings ---


def list_holdings(portfolio_id: str) -> List[Holding]:
    return list(Holding.query(portfolio_id))


def get_holding(portfolio_id: str, ticker: str) -> Holding:
    try:
        return Holding.get(portfolio_id, ticker)
    except DoesNotExist:
        raise ResourceNotFoundError("Holding", "ticker", f"{ticker} in portfolio {portfolio_id}")


def insert_holding(holding: Holding) -> Holding:
    """Write a new holding, refusing to overwrite one with the same ticker.

    Raises:
        DuplicateResourceError: The portfolio already holds the ticker.
    """
    holding.updated_at = _now()
    try:
        holding.save(condition=Holding.ticker.does_not_exist())
    except PutError as e:
        if e.cause_response_code == "ConditionalCheckFailedException":
            raise DuplicateResourceError(
                "Holding", "ticker", f"{holding.ticker} in portfolio {holding.portfolio_id}"
            ) from e
        raise
    return holding


def save_holding(holding: Holding) -> Holding:
    holding.updated_at = _now()
    holding.save()
    return holding


def save_holdings(holdings: Iterable[Holding]) -> int:
    """Write a group of holdings in DynamoDB transactions.

    Groups of up to MAX_TRANSACT_ITEMS holdings are written all-or-nothing.
    """
    holdings = list(holdings)
    now = _now()
    for start in range(0, len(holdings), MAX_TRANSACT_ITEMS):
        chunk = holdings[start:start + MAX_TRANSACT_ITEMS]
        with TransactWrite(connection=_connection()) as transaction:
            for holding in chunk:
                holding.updated_at = now
                transaction.save(holding)
    return len(holdings)


def delete_holding(holding: Holding) -> None:
    holding.delete()


def holdings_by_ticker() -> Dict[str, List[Holding]]:
    """Every holding grouped by ticker, read in a single scan."""
    groups: Dict[str, List[Holding]] = {}
    for holding in Holding.scan():
        groups.setdefault(holding.ticker, []).append(holding)
    return groups


def holdings_in_category(
    category: AssetCategory,
    limit: Optional[int] = None,
    last_evaluated_key: Optional[LastEvaluatedKey] = None,
) -> Page[Holding]:
    """One page of holdings of a category across all portfolios, in table order."""
    return page_of(Holding.scan(
        Holding.category == category,
        limit=limit,
        last_evaluated_key=last_evaluated_key,
    ))


# --- Market prices ---


def latest_price_for(ticker: str) -> Optional[MarketPrice]:
    """The price point with the most recent date, if any."""
    for point in MarketPrice.query(ticker, scan_index_forward=False, limit=1):
        return point
    return None


def get_market_price(ticker: str, trading_date: date) -> Optional[MarketPrice]:
    try:
        return MarketPrice.get(ticker, trading_date.isoformat())
    except DoesNotExist:
        return None


def save_market_price(point: MarketPrice) -> MarketPrice:
    point.save()
    return point


def price_history(
    ticker: str,
    start: date,
    end: date,
    limit: Optional[int] = None,
    last_evaluated_key: Optional[LastEvaluatedKey] = None,
) -> Page[MarketPrice]:
    """Price points between two dates (inclusive), oldest first."""
    return page_of(MarketPrice.query(
        ticker,
        MarketPrice.date.between(start.isoformat(), end.isoformat()),
        limit=limit,
        last_evaluated_key=last_evaluated_key,
    ))


def market_tickers() -> List[str]:
    return sorted({p.ticker for p in MarketPrice.scan(attributes_to_get=["ticker"])})


# --- Transactions ---


def count_transactions(portfolio_id: str) -> int:
    return Transaction.count(portfolio_id)


def list_transactions(
    portfolio_id: str,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    limit: Optional[int] = None,
    last_evaluated_key: Optional[LastEvaluatedKey] = None,
) -> Page[Transaction]:
    """A portfolio's transactions, newest first, optionally within a time range."""
    range_condition = None
    if start is not None and end is not None:
        # "~" sorts after "#", so the upper bound includes every id at ``end``
        range_condition = Transaction.transaction_key.between(
            as_utc(start).isoformat(), f"{as_utc(end).isoformat()}~"
        )
    return page_of(Transaction.query(
        portfolio_id,
        range_condition,
        scan_index_forward=False,
        limit=limit,
        last_evaluated_key=last_evaluated_key,
    ))


def get_transaction(portfolio_id: str, transaction_id: str) -> Transaction:
    for transaction in Transaction.query(
        portfolio_id,
        filter_condition=Transaction.transaction_id == transaction_id,
    ):
        return transaction
    raise ResourceNotFoundError("Transaction", "transaction_id", transaction_id)


def save_transaction(transaction: Transaction, portfolio: Portfolio, previous_cash: Decimal) -> Transaction:
    """Write a ledger entry together with the portfolio's new cash balance.

    Both items go in one DynamoDB transaction. The portfolio write is
    conditional on the stored balance still being ``previous_cash``, so two
    debits racing on the same balance cannot both land.

    Raises:
        ConcurrentUpdateError: The balance changed since it was read.
    """
    now = _now()
    transaction.updated_at = now
    portfolio.updated_at = now
    try:
        with TransactWrite(connection=_connection()) as write:
            write.save(transaction, condition=Transaction.transaction_key.does_not_exist())
            write.save(portfolio, condition=Portfolio.cash_balance == previous_cash)
    except TransactWriteError as e:
        if e.cause_response_code == "TransactionCanceledException":
            raise ConcurrentUpdateError("Portfolio", portfolio.portfolio_id) from e
        raise
    return transaction


def delete_transaction(transaction: Transaction) -> None:
    transaction.delete()
