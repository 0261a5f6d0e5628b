from fastapi import APIRouter, Path, Query, Response, status
from typing import Annotated

from portfolio_manager.core.money import round_currency, round_percent, round_quantity
from portfolio_manager.core.pagination import PageCursor, PageLimit, decode_cursor, set_next_cursor
from portfolio_manager.schemas.common import ErrorResponse
from portfolio_manager.schemas.portfolio import (
    AllocationResponse,
    HoldingSummaryResponse,
    PortfolioCreate,
    PortfolioResponse,
    PortfolioSummaryResponse,
    PortfolioUpdate,
)
from portfolio_manager.services import portfolio_service
from portfolio_manager.services.portfolio_service import HoldingSummary, PortfolioOverview

router = APIRouter(
    prefix="/portfolios",
    tags=["Portfolios"],
    responses={
        404: {"model": ErrorResponse, "description": "Not found"},
        422: {"model": ErrorResponse, "description": "Validation error"},
        429: {"model": ErrorResponse, "description": "Too many requests"},
        500: {"model": ErrorResponse, "description": "Internal server error"}
    }
)

PortfolioId = Annotated[str, Path(min_length=1, max_length=40, description="Portfolio identifier")]


def portfolio_response(overview: PortfolioOverview) -> PortfolioResponse:
    portfolio = overview.portfolio
    return PortfolioResponse(
        portfolio_id=portfolio.portfolio_id,
        name=portfolio.name,
        description=portfolio.description,
        base_currency=portfolio.base_currency,
        cash_balance=round_currency(portfolio.cash_balance),
        holdings_value=round_currency(overview.holdings_value),
        total_value=round_currency(overview.total_value),
        holding_count=overview.holding_count,
        created_at=portfolio.created_at,
        updated_at=portfolio.updated_at,
    )


def holding_summary_response(summary: HoldingSummary) -> HoldingSummaryResponse:
    return HoldingSummaryResponse(
        portfolio_id=summary.portfolio_id,
        holding_id=summary.holding_id,
        ticker=summary.ticker,
        name=summary.name,
        category=summary.category,
        quantity=round_quantity(summary.quantity),
        purchase_price=round_currency(summary.purchase_price),
        current_price=round_currency(summary.current_price),
        purchase_date=summary.purchase_date,
        notes=summary.notes,
        total_value=round_currency(summary.total_value),
        gain_loss=round_currency(summary.gain_loss),
        gain_loss_percent=round_percent(summary.gain_loss_percent),
        allocation=round_percent(summary.allocation),
    )


@router.post(
    "",
    response_model=PortfolioResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a portfolio",
)
async def create_portfolio(payload: PortfolioCreate):
    portfolio = portfolio_service.create_portfolio(
        name=payload.name,
        description=payload.description,
        base_currency=payload.base_currency,
        cash_balance=payload.cash_balance,
    )
    return portfolio_response(portfolio_service.portfolio_overview(portfolio))


@router.get(
    "",
    response_model=list[PortfolioResponse],
    summary="List all portfolios",
    description="Retrieve all portfolios newest first. With limit or cursor, one page in table order",
)
async def list_portfolios(
    response: Response,
    limit: PageLimit = None,
    cursor: PageCursor = None,
):
    page = portfolio_service.list_portfolios(limit, decode_cursor(cursor))
    set_next_cursor(response, page)
    return [portfolio_response(portfolio_service.portfolio_overview(p)) for p in page.items]


@router.get(
    "/search",
    response_model=list[PortfolioResponse],
    summary="Search portfolios by name",
)
async def search_portfolios(
    name: str = Query(..., min_length=1, max_length=100, description="Case-insensitive name fragment"),
):
    return [
        portfolio_response(portfolio_service.portfolio_overview(p))
        for p in portfolio_service.search_portfolios(name)
    ]


@router.get(
    "/{portfolio_id}",
    response_model=PortfolioResponse,
    summary="Get a portfolio",
)
async def get_portfolio(portfolio_id: PortfolioId):
    portfolio = portfolio_service.get_portfolio(portfolio_id)
    return portfolio_response(portfolio_service.portfolio_overview(portfolio))


@router.put(
    "/{portfolio_id}",
    response_model=PortfolioResponse,
    summary="Update a portfolio",
    description="Update name, description or cash balance; omitted fields are unchanged",
)
async def update_portfolio(payload: PortfolioUpdate, portfolio_id: PortfolioId):
    portfolio = portfolio_service.update_portfolio(
        portfolio_id,
        name=payload.name,
        description=payload.description,
        cash_balance=payload.cash_balance,
    )
    return portfolio_response(portfolio_service.portfolio_overview(portfolio))


@router.delete(
    "/{portfolio_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a portfolio",
    description="Delete a portfolio together with its holdings and transactions",
)
async def delete_portfolio(portfolio_id: PortfolioId):
    portfolio_service.delete_portfolio(portfolio_id)


@router.get(
    "/{portfolio_id}/summary",
    response_model=PortfolioSummaryResponse,
    summary="Get portfolio summary",
    description="Valuation, gain and allocation across holdings and cash",
)
async def get_portfolio_summary(portfolio_id: PortfolioId):
    """
    Get the portfolio-level valuation.

    **Returns:**
        PortfolioSummaryResponse: Totals, the five largest holdings and the
        allocation by asset category plus cash. Currency values carry two
        decimals and percentages four.
    """
    summary = portfolio_service.get_portfolio_summary(portfolio_id)
    return PortfolioSummaryResponse(
        portfolio_id=summary.portfolio_id,
        name=summary.name,
        base_currency=summary.base_currency,
        total_value=round_currency(summary.total_value),
        cash_balance=round_currency(summary.cash_balance),
        holdings_value=round_currency(summary.holdings_value),
        total_cost_basis=round_currency(summary.total_cost_basis),
        total_gain=round_currency(summary.total_gain),
        total_gain_percent=round_percent(summary.total_gain_percent),
        holding_count=summary.holding_count,
        transaction_count=summary.transaction_count,
        top_holdings=[holding_summary_response(h) for h in summary.top_holdings],
        allocation=[
            AllocationResponse(
                label=s.label,
                value=round_currency(s.value),
                percentage=round_percent(s.percentage),
            )
            for s in summary.allocation
        ],
    )
