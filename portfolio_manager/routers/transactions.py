from datetime import datetime
from fastapi import APIRouter, Path, Query, Response, status
from typing import Annotated, Optional

from portfolio_manager.core.money import round_currency, round_quantity
from portfolio_manager.core.pagination import PageCursor, PageLimit, decode_cursor, set_next_cursor
from portfolio_manager.models.transaction import Transaction
from portfolio_manager.routers.portfolios import PortfolioId
from portfolio_manager.schemas.common import ErrorResponse
from portfolio_manager.schemas.transaction import TransactionCreate, TransactionResponse
from portfolio_manager.services import transaction_service

TransactionId = Annotated[str, Path(min_length=1, max_length=40, description="Transaction identifier")]

router = APIRouter(
    prefix="/portfolios/{portfolio_id}/transactions",
    tags=["Transactions"],
    responses={
        404: {"model": ErrorResponse, "description": "Not found"},
        422: {"model": ErrorResponse, "description": "Validation error"},
        429: {"model": ErrorResponse, "description": "Too many requests"},
        500: {"model": ErrorResponse, "description": "Internal server error"}
    }
)


def transaction_response(transaction: Transaction) -> TransactionResponse:
    return TransactionResponse(
        transaction_id=transaction.transaction_id,
        portfolio_id=transaction.portfolio_id,
        ticker=transaction.ticker,
        transaction_type=transaction.transaction_type,
        quantity=round_quantity(transaction.quantity),
        price=round_currency(transaction.price),
        amount=round_currency(transaction.amount),
        currency=transaction.currency,
        description=transaction.description,
        status=transaction.status,
        transaction_date=transaction.transaction_date,
        created_at=transaction.created_at,
        updated_at=transaction.updated_at,
    )


@router.post(
    "",
    response_model=TransactionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record a transaction",
    description="Record a transaction and apply its effect to the cash balance",
)
async def create_transaction(payload: TransactionCreate, portfolio_id: PortfolioId):
    transaction = transaction_service.record_transaction(
        portfolio_id,
        transaction_type=payload.transaction_type,
        amount=payload.amount,
        ticker=payload.ticker,
        quantity=payload.quantity,
        price=payload.price,
        currency=payload.currency,
        description=payload.description,
        transaction_date=payload.transaction_date,
    )
    return transaction_response(transaction)


@router.get(
    "",
    response_model=list[TransactionResponse],
    summary="List transactions",
    description="Transactions of a portfolio, newest first, optionally within a time range",
)
async def list_transactions(
    response: Response,
    portfolio_id: PortfolioId,
    start: Optional[datetime] = Query(None, description="Range start (inclusive)"),
    end: Optional[datetime] = Query(None, description="Range end (inclusive)"),
    limit: PageLimit = None,
    cursor: PageCursor = None,
):
    page = transaction_service.list_transactions(portfolio_id, start, end, limit, decode_cursor(cursor))
    set_next_cursor(response, page)
    return [transaction_response(t) for t in page.items]


@router.get(
    "/{transaction_id}",
    response_model=TransactionResponse,
    summary="Get a transaction",
)
async def get_transaction(
    portfolio_id: PortfolioId,
    transaction_id: TransactionId,
):
    return transaction_response(transaction_service.get_transaction(portfolio_id, transaction_id))


@router.delete(
    "/{transaction_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a transaction",
)
async def delete_transaction(
    portfolio_id: PortfolioId,
    transaction_id: TransactionId,
):
    transaction_service.delete_transaction(portfolio_id, transaction_id)
