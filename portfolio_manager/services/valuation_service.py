from dataclasses import dataclass
from decimal import Decimal

from portfolio_manager.core.exceptions import ValidationError
from portfolio_manager.core.money import HUNDRED, ZERO, round_percent
from portfolio_manager.models.enums import AssetCategory


@dataclass(frozen=True)
class HoldingValuation:
    total_value: Decimal
    gain_loss: Decimal
    gain_loss_percent: Decimal


def validate_holding(holding) -> None:
    """Reject holdings that break the quantity or category invariants."""
    quantity = holding.quantity
    if quantity is None or quantity <= ZERO:
        raise ValidationError(
            f"Holding {holding.ticker} must have a positive quantity, got {quantity}"
        )
    if not isinstance(holding.category, AssetCategory):
        raise ValidationError(
            f"Holding {holding.ticker} has an unrecognized category: {holding.category!r}"
        )


def gain_loss_percent(current: Decimal, purchase: Decimal) -> Decimal:
    """(current - purchase) / purchase x 100, or zero for a zero or negative purchase price."""
    if purchase <= ZERO:
        return round_percent(ZERO)
    return round_percent((current - purchase) / purchase * HUNDRED)


def valuate_holding(holding) -> HoldingValuation:
    """Value a single holding.

    Missing prices never fail: an unpriced holding is worth zero, and gain/loss
    is zero unless both the purchase and the current price are known.
    """
    validate_holding(holding)

    quantity = holding.quantity
    current = holding.current_price
    purchase = holding.purchase_price

    total_value = quantity * current if current is not None else ZERO

    if current is None or purchase is None:
        return HoldingValuation(
            total_value=total_value,
            gain_loss=ZERO,
            gain_loss_percent=round_percent(ZERO),
        )

    return HoldingValuation(
        total_value=total_value,
        gain_loss=quantity * (current - purchase),
        gain_loss_percent=gain_loss_percent(current, purchase),
    )
