from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, List, Tuple

from portfolio_manager.core.money import ZERO, percent_of
from portfolio_manager.models.enums import AssetCategory
from portfolio_manager.services.valuation_service import HoldingValuation


CASH_LABEL = "CASH"


@dataclass(frozen=True)
class AllocationSlice:
    label: str  # AssetCategory value or "CASH"
    value: Decimal
    percentage: Decimal


def allocation_percent(item_value: Decimal, portfolio_total: Decimal) -> Decimal:
    """Share of the portfolio total held in one item, zero for an empty portfolio."""
    return percent_of(item_value, portfolio_total)


def group_by_category(
    valued_holdings: Iterable[Tuple[object, HoldingValuation]],
) -> List[Tuple[AssetCategory, Decimal]]:
    """Sum holding values per category.

    Categories are listed in the order they first appear in the input.
    """
    totals: Dict[AssetCategory, Decimal] = {}
    for holding, valuation in valued_holdings:
        totals[holding.category] = totals.get(holding.category, ZERO) + valuation.total_value
    return list(totals.items())


def build_allocation(
    category_values: Iterable[Tuple[AssetCategory, Decimal]],
    cash_balance: Decimal,
    total_value: Decimal,
) -> List[AllocationSlice]:
    """One slice per category, plus a CASH slice when there is cash on hand."""
    slices = [
        AllocationSlice(
            label=category.value,
            value=value,
            percentage=allocation_percent(value, total_value),
        )
        for category, value in category_values
    ]

    if cash_balance > ZERO:
        slices.append(AllocationSlice(
            label=CASH_LABEL,
            value=cash_balance,
            percentage=allocation_percent(cash_balance, total_value),
        ))

    return slices
