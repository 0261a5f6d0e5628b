from pynamodb.models import Model
from pynamodb.attributes import UnicodeAttribute, UTCDateTimeAttribute
from datetime import datetime, timezone
from uuid import uuid4

from portfolio_manager.core.config import settings
from portfolio_manager.core.money import CURRENCY_SCALE, ZERO
from portfolio_manager.models.attributes import DecimalAttribute


def new_portfolio_id() -> str:
    return f"PORT-{uuid4().hex[:12].upper()}"


class Portfolio(Model):
    """
    Portfolio model for DynamoDB.
    Total value is derived from cash + holdings and never stored.
    """
    class Meta:
        table_name = "portfolios"
        region = settings.AWS_REGION
        host = settings.DYNAMODB_ENDPOINT

    portfolio_id = UnicodeAttribute(hash_key=True)
    name = UnicodeAttribute()
    description = UnicodeAttribute(null=True)
    base_currency = UnicodeAttribute(default=settings.DEFAULT_BASE_CURRENCY)
    cash_balance = DecimalAttribute(scale=CURRENCY_SCALE, default=lambda: ZERO)
    created_at = UTCDateTimeAttribute(default=lambda: datetime.now(timezone.utc))
    updated_at = UTCDateTimeAttribute(default=lambda: datetime.now(timezone.utc))

    def __repr__(self):
        return f"<Portfolio(portfolio_id='{self.portfolio_id}', name='{self.name}')>"
