"""
Transaction ledger for portfolios.

Recording a cash-moving transaction adjusts the portfolio's cash balance; the
ledger entry and the new balance are committed together.
Holdings are not derived from the ledger; positions are maintained through
the holding operations.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, Union

from portfolio_manager.core.exceptions import ValidationError
from portfolio_manager.core.logging_config import get_logger
from portfolio_manager.core.money import ZERO, to_decimal
from portfolio_manager.core.pagination import LastEvaluatedKey, Page
from portfolio_manager.models.enums import TransactionStatus, TransactionType
from portfolio_manager.models.transaction import Transaction, as_utc, new_transaction_id, transaction_key
from portfolio_manager.services import db_service

logger = get_logger(__name__)

# Types that add to / take from the cash balance
CASH_CREDITS = {TransactionType.DEPOSIT, TransactionType.SELL, TransactionType.DIVIDEND}
CASH_DEBITS = {TransactionType.WITHDRAWAL, TransactionType.FEE, TransactionType.BUY}


def parse_transaction_type(value: Union[str, TransactionType]) -> TransactionType:
    if isinstance(value, TransactionType):
        return value
    try:
        return TransactionType(value.strip().upper())
    except (ValueError, AttributeError):
        raise ValidationError(f"Invalid transaction type: {value}")


def cash_effect(transaction_type: TransactionType, amount: Decimal) -> Decimal:
    """Signed change to the cash balance for a transaction of this type."""
    if transaction_type in CASH_CREDITS:
        return amount
    if transaction_type in CASH_DEBITS:
        return -amount
    return ZERO


def record_transaction(
    portfolio_id: str,
    transaction_type: Union[str, TransactionType],
    amount: Decimal,
    ticker: Optional[str] = None,
    quantity: Optional[Decimal] = None,
    price: Optional[Decimal] = None,
    currency: Optional[str] = None,
    description: Optional[str] = None,
    transaction_date: Optional[datetime] = None,
) -> Transaction:
    """
    Record a transaction and apply its cash effect to the portfolio.

    Raises:
        ValidationError: Non-positive amount, unknown type, or a debit larger
            than the available cash.
        ResourceNotFoundError: The portfolio does not exist.
        ConcurrentUpdateError: The cash balance changed while recording.
    """
    portfolio = db_service.get_portfolio(portfolio_id)
    txn_type = parse_transaction_type(transaction_type)

    amount = to_decimal(amount)
    if amount is None or amount <= ZERO:
        raise ValidationError("Transaction amount must be greater than zero")

    quantity = to_decimal(quantity)
    if quantity is not None and quantity <= ZERO:
        raise ValidationError("Transaction quantity must be greater than zero")
    price = to_decimal(price)
    if price is not None and price < ZERO:
        raise ValidationError("Transaction price cannot be negative")

    new_cash = portfolio.cash_balance + cash_effect(txn_type, amount)
    if new_cash < ZERO:
        raise ValidationError(
            f"Insufficient cash for {txn_type.value}: balance {portfolio.cash_balance}, amount {amount}"
        )

    transaction_id = new_transaction_id()
    when = transaction_date or datetime.now(timezone.utc)
    transaction = Transaction(
        portfolio_id=portfolio_id,
        transaction_key=transaction_key(when, transaction_id),
        transaction_id=transaction_id,
        ticker=ticker.strip().upper() if ticker else None,
        transaction_type=txn_type,
        quantity=quantity,
        price=price,
        amount=amount,
        currency=(currency or portfolio.base_currency).upper(),
        description=description,
        status=TransactionStatus.COMPLETED,
        transaction_date=when,
    )

    previous_cash = portfolio.cash_balance
    portfolio.cash_balance = new_cash
    try:
        db_service.save_transaction(transaction, portfolio, previous_cash)
    except Exception:
        portfolio.cash_balance = previous_cash
        raise

    logger.info(
        "Transaction recorded",
        extra={
            'portfolio_id': portfolio_id,
            'transaction_id': transaction_id,
            'transaction_type': txn_type.value,
            'amount': amount,
            'cash_balance': new_cash,
        },
    )
    return transaction


def list_transactions(
    portfolio_id: str,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    limit: Optional[int] = None,
    last_evaluated_key: Optional[LastEvaluatedKey] = None,
) -> Page[Transaction]:
    """A portfolio's ledger, newest first. A range needs both ends."""
    db_service.get_portfolio(portfolio_id)
    if (start is None) != (end is None):
        raise ValidationError("Both start and end are required for a date range")
    if start is not None and as_utc(start) > as_utc(end):
        raise ValidationError("Start must be on or before end")
    return db_service.list_transactions(portfolio_id, start, end, limit, last_evaluated_key)


def get_transaction(portfolio_id: str, transaction_id: str) -> Transaction:
    return db_service.get_transaction(portfolio_id, transaction_id)


def delete_transaction(portfolio_id: str, transaction_id: str) -> None:
    """Remove a ledger entry. The cash balance is left as it is."""
    transaction = db_service.get_transaction(portfolio_id, transaction_id)
    db_service.delete_transaction(transaction)
    logger.info("Transaction deleted", extra={'portfolio_id': portfolio_id, 'transaction_id': transaction_id})
