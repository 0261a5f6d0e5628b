"""
Current-price resolution for holdings.

A holding's current price is the close of the latest recorded market price
point for its ticker. When no price point exists, a holding that has a
purchase price falls back to it, so a freshly added position still values.
"""

from decimal import Decimal
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from portfolio_manager.core.logging_config import get_logger

logger = get_logger(__name__)

# ticker -> latest price point (anything with a ``close_price``) or None
LatestPriceLookup = Callable[[str], Optional[object]]
# ticker -> resolved close price or None
PriceLookup = Callable[[str], Optional[Decimal]]


def resolve_current_price(ticker: str, latest_price_for: LatestPriceLookup) -> Optional[Decimal]:
    point = latest_price_for(ticker)
    if point is None:
        return None
    return point.close_price


def resolve_prices(tickers: Iterable[str], latest_price_for: LatestPriceLookup) -> Dict[str, Decimal]:
    """Resolve each distinct ticker once; unpriced tickers are left out."""
    prices: Dict[str, Decimal] = {}
    for ticker in dict.fromkeys(tickers):
        price = resolve_current_price(ticker, latest_price_for)
        if price is not None:
            prices[ticker] = price
    return prices


def apply_price_fallback(holding) -> bool:
    """Use the purchase price as current price when nothing else is known."""
    if holding.current_price is None and holding.purchase_price is not None:
        holding.current_price = holding.purchase_price
        return True
    return False


def _planned_prices(holdings: Sequence, price: Optional[Decimal]) -> List[tuple]:
    """(holding, new price) for every holding in a ticker group the sweep writes."""
    if price is not None:
        return [(holding, price) for holding in holdings]

    changes = []
    for holding in holdings:
        if holding.current_price is None and holding.purchase_price is not None:
            changes.append((holding, holding.purchase_price))
    return changes


def refresh_prices(
    holdings_by_ticker: Mapping[str, Sequence],
    price_lookup: PriceLookup,
    save: Optional[Callable[[List], object]] = None,
) -> int:
    """
    Sweep every ticker group to its resolved price.

    For each ticker the new prices are worked out for the whole group before
    anything is touched, then applied and handed to ``save`` as one group, so
    a ticker is either fully updated or not at all. A missing price applies
    the purchase-price fallback to holdings that have no current price.

    Returns:
        Number of holdings written.
    """
    updated = 0
    for ticker, holdings in holdings_by_ticker.items():
        price = price_lookup(ticker)
        changes = _planned_prices(holdings, price)
        if not changes:
            continue

        previous = [(holding, holding.current_price) for holding, _ in changes]
        for holding, new_price in changes:
            holding.current_price = new_price

        if save is not None:
            try:
                save([holding for holding, _ in changes])
            except Exception:
                for holding, old_price in previous:
                    holding.current_price = old_price
                raise

        updated += len(changes)
        logger.debug(
            "Updated price for %d holdings with ticker %s", len(changes), ticker,
            extra={'ticker': ticker, 'price': price},
        )

    return updated
