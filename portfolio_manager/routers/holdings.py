from fastapi import APIRouter, Path, Query, Response, status
from typing import Annotated, Optional

from portfolio_manager.core.pagination import PageCursor, PageLimit, decode_cursor, set_next_cursor
from portfolio_manager.models.enums import AssetCategory
from portfolio_manager.routers.portfolios import PortfolioId, holding_summary_response
from portfolio_manager.schemas.common import ErrorResponse, TICKER_PATTERN
from portfolio_manager.schemas.holding import HoldingCreate, HoldingUpdate, PriceRefreshResponse
from portfolio_manager.schemas.portfolio import HoldingSummaryResponse
from portfolio_manager.services import holding_service

router = APIRouter(
    tags=["Holdings"],
    responses={
        404: {"model": ErrorResponse, "description": "Not found"},
        409: {"model": ErrorResponse, "description": "Ticker already held"},
        422: {"model": ErrorResponse, "description": "Validation error"},
        429: {"model": ErrorResponse, "description": "Too many requests"},
        500: {"model": ErrorResponse, "description": "Internal server error"}
    }
)

Ticker = Annotated[str, Path(pattern=TICKER_PATTERN, description="Ticker symbol")]


@router.post(
    "/portfolios/{portfolio_id}/holdings",
    response_model=HoldingSummaryResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a holding",
    description="Add a position; its current price comes from the latest market data",
)
async def create_holding(payload: HoldingCreate, portfolio_id: PortfolioId):
    holding = holding_service.create_holding(
        portfolio_id=portfolio_id,
        ticker=payload.ticker,
        name=payload.name,
        category=payload.category,
        quantity=payload.quantity,
        purchase_price=payload.purchase_price,
        purchase_date=payload.purchase_date,
        notes=payload.notes,
    )
    return holding_summary_response(holding_service.get_holding(portfolio_id, holding.ticker))


@router.get(
    "/portfolios/{portfolio_id}/holdings",
    response_model=list[HoldingSummaryResponse],
    summary="List holdings",
)
async def list_holdings(
    response: Response,
    portfolio_id: PortfolioId,
    category: Optional[AssetCategory] = Query(None, description="Only holdings of this category"),
    limit: PageLimit = None,
    cursor: PageCursor = None,
):
    page = holding_service.list_holdings(portfolio_id, category, limit, decode_cursor(cursor))
    set_next_cursor(response, page)
    return [holding_summary_response(h) for h in page.items]


@router.get(
    "/holdings",
    response_model=list[HoldingSummaryResponse],
    summary="List holdings of a category",
    description="Holdings of one category across all portfolios; allocation is within each holding's own portfolio",
)
async def list_holdings_by_category(
    response: Response,
    category: AssetCategory = Query(..., description="Asset category"),
    limit: PageLimit = None,
    cursor: PageCursor = None,
):
    page = holding_service.list_holdings_by_category(category, limit, decode_cursor(cursor))
    set_next_cursor(response, page)
    return [holding_summary_response(h) for h in page.items]


@router.get(
    "/portfolios/{portfolio_id}/holdings/{ticker}",
    response_model=HoldingSummaryResponse,
    summary="Get a holding",
)
async def get_holding(portfolio_id: PortfolioId, ticker: Ticker):
    return holding_summary_response(holding_service.get_holding(portfolio_id, ticker))


@router.put(
    "/portfolios/{portfolio_id}/holdings/{ticker}",
    response_model=HoldingSummaryResponse,
    summary="Update a holding",
)
async def update_holding(payload: HoldingUpdate, portfolio_id: PortfolioId, ticker: Ticker):
    holding = holding_service.update_holding(
        portfolio_id,
        ticker,
        name=payload.name,
        quantity=payload.quantity,
        purchase_price=payload.purchase_price,
        current_price=payload.current_price,
        purchase_date=payload.purchase_date,
        notes=payload.notes,
    )
    return holding_summary_response(holding_service.get_holding(portfolio_id, holding.ticker))


@router.delete(
    "/portfolios/{portfolio_id}/holdings/{ticker}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove a holding",
)
async def delete_holding(portfolio_id: PortfolioId, ticker: Ticker):
    holding_service.delete_holding(portfolio_id, ticker)


@router.post(
    "/holdings/refresh-prices",
    response_model=PriceRefreshResponse,
    summary="Refresh holding prices",
    description="Set every holding's current price to the latest recorded close for its ticker",
)
async def refresh_prices():
    return PriceRefreshResponse(holdings_updated=holding_service.refresh_all_prices())
