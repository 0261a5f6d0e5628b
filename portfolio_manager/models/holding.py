from pynamodb.models import Model
from pynamodb.attributes import UnicodeAttribute, UTCDateTimeAttribute
from datetime import datetime, timezone
from uuid import uuid4

from portfolio_manager.core.config import settings
from portfolio_manager.core.money import CURRENCY_SCALE, QUANTITY_SCALE
from portfolio_manager.models.attributes import DecimalAttribute, EnumAttribute
from portfolio_manager.models.enums import AssetCategory


def new_holding_id() -> str:
    return f"HOLD-{uuid4().hex[:12].upper()}"


class Holding(Model):
    """
    A position in one instrument within one portfolio.
    The (portfolio_id, ticker) key keeps tickers unique per portfolio.
    """
    class Meta:
        table_name = "holdings"
        region = settings.AWS_REGION
        host = settings.DYNAMODB_ENDPOINT

    portfolio_id = UnicodeAttribute(hash_key=True)
    ticker = UnicodeAttribute(range_key=True)

    holding_id = UnicodeAttribute(default_for_new=new_holding_id)
    name = UnicodeAttribute()
    category = EnumAttribute(AssetCategory)
    quantity = DecimalAttribute(scale=QUANTITY_SCALE)
    purchase_price = DecimalAttribute(scale=CURRENCY_SCALE, null=True)
    current_price = DecimalAttribute(scale=CURRENCY_SCALE, null=True)
    purchase_date = UnicodeAttribute(null=True)  # ISO date
    notes = UnicodeAttribute(null=True)

    created_at = UTCDateTimeAttribute(default=lambda: datetime.now(timezone.utc))
    updated_at = UTCDateTimeAttribute(default=lambda: datetime.now(timezone.utc))

    def __repr__(self):
        return f"<Holding(portfolio_id='{self.portfolio_id}', ticker='{self.ticker}', quantity={self.quantity})>"
