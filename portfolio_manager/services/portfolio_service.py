from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, List, Optional, Sequence, Tuple

from portfolio_manager.core.config import settings
from portfolio_manager.core.exceptions import ValidationError
from portfolio_manager.core.logging_config import get_logger
from portfolio_manager.core.money import ZERO, percent_of, to_decimal
from portfolio_manager.core.pagination import LastEvaluatedKey, Page
from portfolio_manager.models.enums import AssetCategory
from portfolio_manager.models.portfolio import Portfolio, new_portfolio_id
from portfolio_manager.services import db_service
from portfolio_manager.services.allocation_service import (
    AllocationSlice,
    allocation_percent,
    build_allocation,
    group_by_category,
)
from portfolio_manager.services.valuation_service import HoldingValuation, valuate_holding

logger = get_logger(__name__)

TOP_HOLDINGS_LIMIT = 5


@dataclass(frozen=True)
class HoldingSummary:
    """A holding re-expressed with its valuation and share of the portfolio."""
    portfolio_id: str
    holding_id: Optional[str]
    ticker: str
    name: str
    category: AssetCategory
    quantity: Decimal
    purchase_price: Optional[Decimal]
    current_price: Optional[Decimal]
    purchase_date: Optional[str]
    notes: Optional[str]
    total_value: Decimal
    gain_loss: Decimal
    gain_loss_percent: Decimal
    allocation: Decimal


@dataclass(frozen=True)
class PortfolioSummary:
    portfolio_id: str
    name: str
    base_currency: str
    total_value: Decimal
    cash_balance: Decimal
    holdings_value: Decimal
    total_cost_basis: Decimal
    total_gain: Decimal
    total_gain_percent: Decimal
    holding_count: int
    transaction_count: int
    top_holdings: Tuple[HoldingSummary, ...]
    allocation: Tuple[AllocationSlice, ...]


@dataclass(frozen=True)
class PortfolioOverview:
    portfolio: Portfolio
    holdings_value: Decimal
    total_value: Decimal
    holding_count: int


def calculate_holdings_value(valuations: Iterable[HoldingValuation]) -> Decimal:
    """Sum up current value across holdings"""
    return sum((v.total_value for v in valuations), ZERO)


def calculate_cost_basis(holdings: Iterable) -> Decimal:
    """Quantity x purchase price, counting only holdings with a known purchase price"""
    return sum(
        (h.quantity * h.purchase_price for h in holdings if h.purchase_price is not None),
        ZERO,
    )


def summarize_holding(holding, valuation: HoldingValuation, portfolio_total: Decimal) -> HoldingSummary:
    return HoldingSummary(
        portfolio_id=holding.portfolio_id,
        holding_id=getattr(holding, "holding_id", None),
        ticker=holding.ticker,
        name=holding.name,
        category=holding.category,
        quantity=holding.quantity,
        purchase_price=holding.purchase_price,
        current_price=holding.current_price,
        purchase_date=getattr(holding, "purchase_date", None),
        notes=getattr(holding, "notes", None),
        total_value=valuation.total_value,
        gain_loss=valuation.gain_loss,
        gain_loss_percent=valuation.gain_loss_percent,
        allocation=allocation_percent(valuation.total_value, portfolio_total),
    )


def summarize_portfolio(portfolio, holdings: Sequence, transaction_count: int) -> PortfolioSummary:
    """Value every holding and assemble the portfolio-level summary.

    Works on an already-loaded snapshot and never modifies it. Holdings without
    a purchase price still count towards holdings value but add nothing to the
    cost basis, so gain is measured only against known cost.
    """
    valued = [(h, valuate_holding(h)) for h in holdings]

    cash_balance = portfolio.cash_balance if portfolio.cash_balance is not None else ZERO
    holdings_value = calculate_holdings_value(v for _, v in valued)
    total_value = cash_balance + holdings_value

    total_cost_basis = calculate_cost_basis(holdings)
    total_gain = holdings_value - total_cost_basis
    total_gain_percent = percent_of(total_gain, total_cost_basis)

    # sorted() is stable, so equal values keep their input order
    ranked = sorted(valued, key=lambda pair: pair[1].total_value, reverse=True)
    top_holdings = tuple(
        summarize_holding(h, v, total_value) for h, v in ranked[:TOP_HOLDINGS_LIMIT]
    )

    allocation = build_allocation(group_by_category(valued), cash_balance, total_value)

    return PortfolioSummary(
        portfolio_id=portfolio.portfolio_id,
        name=portfolio.name,
        base_currency=portfolio.base_currency,
        total_value=total_value,
        cash_balance=cash_balance,
        holdings_value=holdings_value,
        total_cost_basis=total_cost_basis,
        total_gain=total_gain,
        total_gain_percent=total_gain_percent,
        holding_count=len(valued),
        transaction_count=transaction_count,
        top_holdings=top_holdings,
        allocation=tuple(allocation),
    )


def get_portfolio_summary(portfolio_id: str) -> PortfolioSummary:
    portfolio = db_service.get_portfolio(portfolio_id)
    holdings = db_service.list_holdings(portfolio_id)
    transaction_count = db_service.count_transactions(portfolio_id)
    return summarize_portfolio(portfolio, holdings, transaction_count)


def portfolio_overview(portfolio: Portfolio) -> PortfolioOverview:
    holdings = db_service.list_holdings(portfolio.portfolio_id)
    holdings_value = calculate_holdings_value(valuate_holding(h) for h in holdings)
    return PortfolioOverview(
        portfolio=portfolio,
        holdings_value=holdings_value,
        total_value=portfolio.cash_balance + holdings_value,
        holding_count=len(holdings),
    )


def _validated_cash(cash_balance) -> Decimal:
    cash = to_decimal(cash_balance)
    if cash < ZERO:
        raise ValidationError("Cash balance cannot be negative")
    return cash


def create_portfolio(
    name: str,
    description: Optional[str] = None,
    base_currency: Optional[str] = None,
    cash_balance: Optional[Decimal] = None,
) -> Portfolio:
    logger.info("Creating portfolio", extra={'portfolio_name': name})

    portfolio = Portfolio(
        portfolio_id=new_portfolio_id(),
        name=name,
        description=description,
        base_currency=(base_currency or settings.DEFAULT_BASE_CURRENCY).upper(),
        cash_balance=_validated_cash(cash_balance) if cash_balance is not None else ZERO,
    )
    db_service.save_portfolio(portfolio)

    logger.info("Portfolio created", extra={'portfolio_id': portfolio.portfolio_id})
    return portfolio


def update_portfolio(
    portfolio_id: str,
    name: Optional[str] = None,
    description: Optional[str] = None,
    cash_balance: Optional[Decimal] = None,
) -> Portfolio:
    """Partial update: only the fields that are given change."""
    portfolio = db_service.get_portfolio(portfolio_id)

    if name is not None:
        portfolio.name = name
    if description is not None:
        portfolio.description = description
    if cash_balance is not None:
        portfolio.cash_balance = _validated_cash(cash_balance)

    db_service.save_portfolio(portfolio)
    logger.info("Portfolio updated", extra={'portfolio_id': portfolio_id})
    return portfolio


def delete_portfolio(portfolio_id: str) -> None:
    portfolio = db_service.get_portfolio(portfolio_id)
    db_service.delete_portfolio_cascade(portfolio)


def get_portfolio(portfolio_id: str) -> Portfolio:
    return db_service.get_portfolio(portfolio_id)


def list_portfolios(
    limit: Optional[int] = None,
    last_evaluated_key: Optional[LastEvaluatedKey] = None,
) -> Page[Portfolio]:
    """
    Every portfolio newest first, or one page of them in table order.

    A scan cannot be ordered, so sorting only applies when nothing is paged.
    """
    if limit is None and last_evaluated_key is None:
        return Page(items=db_service.list_portfolios())
    return db_service.portfolio_page(limit, last_evaluated_key)


def search_portfolios(name: str) -> List[Portfolio]:
    """Case-insensitive substring match on portfolio name."""
    needle = name.strip().lower()
    return [p for p in db_service.list_portfolios() if needle in p.name.lower()]
