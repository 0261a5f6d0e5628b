import time
import requests
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

from portfolio_manager.core.config import settings
from portfolio_manager.core.exceptions import QuoteProviderError
from portfolio_manager.core.logging_config import get_logger
from portfolio_manager.core.money import ZERO, to_decimal

logger = get_logger(__name__)


@dataclass(frozen=True)
class StockQuote:
    symbol: str
    current_price: Decimal
    change: Decimal
    change_percent: Decimal
    high_price: Decimal
    low_price: Decimal
    open_price: Decimal
    previous_close: Decimal
    timestamp: datetime


@dataclass(frozen=True)
class CompanyProfile:
    symbol: str
    name: str
    country: Optional[str] = None
    currency: Optional[str] = None
    exchange: Optional[str] = None
    industry: Optional[str] = None
    logo: Optional[str] = None
    market_cap: Optional[Decimal] = None
    weburl: Optional[str] = None


def _decimal_or_zero(value) -> Decimal:
    value = to_decimal(value)
    return value if value is not None else ZERO


class FinnhubService:
    """
    Finnhub API client for live quotes, company profiles and symbol search.

    Numbers from the provider are converted to Decimal through their string
    form, so a quote never carries binary-float artifacts.
    """

    BASE_BACKOFF = 1.0
    MAX_BACKOFF = 30.0

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        max_retries: Optional[int] = None,
        timeout: Optional[int] = None,
    ):
        self.api_key = api_key
        if not self.api_key:
            raise ValueError("Finnhub API key required. Set FINNHUB_API_KEY environment variable.")

        self.base_url = (base_url or settings.FINNHUB_BASE_URL).rstrip("/")
        self.max_retries = max_retries if max_retries is not None else settings.FINNHUB_MAX_RETRIES
        self.timeout = timeout if timeout is not None else settings.FINNHUB_TIMEOUT

    @classmethod
    def from_settings(cls) -> "FinnhubService":
        return cls(
            api_key=settings.FINNHUB_API_KEY,
            base_url=settings.FINNHUB_BASE_URL,
            max_retries=settings.FINNHUB_MAX_RETRIES,
            timeout=settings.FINNHUB_TIMEOUT,
        )

    def _backoff(self, attempt: int) -> float:
        return min(self.BASE_BACKOFF * (2 ** attempt), self.MAX_BACKOFF)

    def _make_request(self, endpoint: str, params: Dict[str, str]) -> Optional[Any]:
        """Make an API request with retry logic.

        Returns None when the provider refuses the symbol (403).

        Raises:
            QuoteProviderError: Retries exhausted or the provider reported an error.
        """
        params = dict(params, token=self.api_key)
        url = f"{self.base_url}/{endpoint}"

        last_error = None
        for attempt in range(self.max_retries):
            try:
                response = requests.get(url, params=params, timeout=self.timeout)

                # Symbol not available on this plan, don't retry
                if response.status_code == 403:
                    return None

                if response.status_code == 429:
                    last_error = "rate limited (429)"
                    if attempt + 1 >= self.max_retries:
                        logger.warning("Rate limited (429). Max retries reached.")
                        break
                    wait_time = self._backoff(attempt)
                    logger.warning(
                        "Rate limited (429). Waiting %.1fs (retry %d/%d)",
                        wait_time, attempt + 1, self.max_retries
                    )
                    time.sleep(wait_time)
                    continue

                response.raise_for_status()
                data = response.json()

                if isinstance(data, dict) and data.get("error"):
                    raise QuoteProviderError(f"API error: {data['error']}")

                return data

            except requests.exceptions.RequestException as e:
                last_error = e
                if attempt + 1 >= self.max_retries:
                    logger.warning("Request error: %s. Max retries reached.", e)
                    break
                wait_time = self._backoff(attempt)
                logger.warning(
                    "Request error: %s. Waiting %.1fs (retry %d/%d)",
                    e, wait_time, attempt + 1, self.max_retries
                )
                time.sleep(wait_time)

        raise QuoteProviderError(f"Max retries exceeded: {last_error}")

    def get_quote(self, symbol: str) -> Optional[StockQuote]:
        """
        Get the current quote for a symbol.
        Returns None when the symbol is unknown to the provider.
        """
        symbol = symbol.strip().upper()
        data = self._make_request("quote", {"symbol": symbol})

        # Finnhub answers unknown symbols with c=0
        if not data or not data.get("c"):
            return None

        # c=current, d=change, dp=percent change, h=high, l=low, o=open, pc=previous close
        return StockQuote(
            symbol=symbol,
            current_price=_decimal_or_zero(data.get("c")),
            change=_decimal_or_zero(data.get("d")),
            change_percent=_decimal_or_zero(data.get("dp")),
            high_price=_decimal_or_zero(data.get("h")),
            low_price=_decimal_or_zero(data.get("l")),
            open_price=_decimal_or_zero(data.get("o")),
            previous_close=_decimal_or_zero(data.get("pc")),
            timestamp=datetime.now(timezone.utc),
        )

    def get_quotes(self, symbols: List[str]) -> List[StockQuote]:
        """Quotes for several symbols; unknown symbols are skipped."""
        quotes = []
        for symbol in dict.fromkeys(s.strip().upper() for s in symbols):
            quote = self.get_quote(symbol)
            if quote is not None:
                quotes.append(quote)
        return quotes

    def get_company_profile(self, symbol: str) -> Optional[CompanyProfile]:
        symbol = symbol.strip().upper()
        data = self._make_request("stock/profile2", {"symbol": symbol})

        if not data or not data.get("name"):
            return None

        return CompanyProfile(
            symbol=symbol,
            name=data["name"],
            country=data.get("country"),
            currency=data.get("currency"),
            exchange=data.get("exchange"),
            industry=data.get("finnhubIndustry"),
            logo=data.get("logo"),
            market_cap=to_decimal(data.get("marketCapitalization")),
            weburl=data.get("weburl"),
        )

    def search(self, query: str) -> List[Dict[str, Any]]:
        """
        Search symbols by name or ticker.

        Returns:
            Provider result entries (description, displaySymbol, symbol, type)
        """
        data = self._make_request("search", {"q": query})
        if not data:
            return []
        return data.get("result") or []
