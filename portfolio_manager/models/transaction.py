from pynamodb.models import Model
from pynamodb.attributes import UnicodeAttribute, UTCDateTimeAttribute
from datetime import datetime, timezone
from uuid import uuid4

from portfolio_manager.core.config import settings
from portfolio_manager.core.money import CURRENCY_SCALE, QUANTITY_SCALE
from portfolio_manager.models.attributes import DecimalAttribute, EnumAttribute
from portfolio_manager.models.enums import TransactionStatus, TransactionType


def new_transaction_id() -> str:
    return f"TXN-{uuid4().hex[:12].upper()}"


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def transaction_key(transaction_date: datetime, transaction_id: str) -> str:
    """Range key that sorts a portfolio's ledger chronologically."""
    return f"{as_utc(transaction_date).isoformat()}#{transaction_id}"


class Transaction(Model):
    class Meta:
        table_name = "transactions"
        region = settings.AWS_REGION
        host = settings.DYNAMODB_ENDPOINT

    portfolio_id = UnicodeAttribute(hash_key=True)
    transaction_key = UnicodeAttribute(range_key=True)  # {ISO timestamp}#{TXN id}

    transaction_id = UnicodeAttribute()
    ticker = UnicodeAttribute(null=True)
    transaction_type = EnumAttribute(TransactionType)
    quantity = DecimalAttribute(scale=QUANTITY_SCALE, null=True)
    price = DecimalAttribute(scale=CURRENCY_SCALE, null=True)
    amount = DecimalAttribute(scale=CURRENCY_SCALE)
    currency = UnicodeAttribute(default=settings.DEFAULT_BASE_CURRENCY)
    description = UnicodeAttribute(null=True)
    status = EnumAttribute(TransactionStatus, default=TransactionStatus.COMPLETED)
    transaction_date = UTCDateTimeAttribute()

    created_at = UTCDateTimeAttribute(default=lambda: datetime.now(timezone.utc))
    updated_at = UTCDateTimeAttribute(default=lambda: datetime.now(timezone.utc))
