from pynamodb.models import Model
from pynamodb.attributes import UnicodeAttribute, NumberAttribute, UTCDateTimeAttribute
from datetime import datetime, timezone

from portfolio_manager.core.config import settings
from portfolio_manager.core.money import CURRENCY_SCALE
from portfolio_manager.models.attributes import DecimalAttribute


class MarketPrice(Model):
    """
    Daily price point for a ticker.
    Composite key: ticker (hash key) + date (range key), one point per trading day.
    """
    class Meta:
        table_name = "market_prices"
        region = settings.AWS_REGION
        host = settings.DYNAMODB_ENDPOINT

    ticker = UnicodeAttribute(hash_key=True)
    date = UnicodeAttribute(range_key=True)  # ISO format so the range key sorts by date

    open_price = DecimalAttribute(scale=CURRENCY_SCALE)
    high_price = DecimalAttribute(scale=CURRENCY_SCALE)
    low_price = DecimalAttribute(scale=CURRENCY_SCALE)
    close_price = DecimalAttribute(scale=CURRENCY_SCALE)
    volume = NumberAttribute(default=0)

    created_at = UTCDateTimeAttribute(default=lambda: datetime.now(timezone.utc))

    def __repr__(self):
        return f"<MarketPrice(ticker='{self.ticker}', date='{self.date}', close={self.close_price})>"
