from enum import Enum


class AssetCategory(str, Enum):
    """Closed set of holding categories used for grouping and validation."""

    EQUITY = "EQUITY"
    BOND = "BOND"
    FUND = "FUND"
    CASH_EQUIVALENT = "CASH_EQUIVALENT"
    OTHER = "OTHER"


class TransactionType(str, Enum):
    BUY = "BUY"
    SELL = "SELL"
    DEPOSIT = "DEPOSIT"
    WITHDRAWAL = "WITHDRAWAL"
    DIVIDEND = "DIVIDEND"
    FEE = "FEE"


class TransactionStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
