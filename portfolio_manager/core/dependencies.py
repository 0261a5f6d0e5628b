from portfolio_manager.core.config import settings
from portfolio_manager.core.exceptions import QuoteProviderError
from portfolio_manager.services.quote_service import FinnhubService


def get_quote_service() -> FinnhubService:
    """
    Dependency providing the quote provider client.

    Raises:
        QuoteProviderError: If no Finnhub API key is configured
    """
    if not settings.FINNHUB_API_KEY:
        raise QuoteProviderError("Quote provider is not configured")
    return FinnhubService.from_settings()
