"""Shared test fixtures for portfolio manager tests."""

import os
import pytest
from decimal import Decimal

# Set test environment variables before any imports that use them
os.environ.setdefault("AWS_DEFAULT_REGION", "us-east-1")
os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")
os.environ.setdefault("AWS_SECURITY_TOKEN", "testing")
os.environ.setdefault("AWS_SESSION_TOKEN", "testing")
os.environ.setdefault("AWS_REGION", "us-east-1")
os.environ.pop("DYNAMODB_ENDPOINT", None)
os.environ.pop("SECRETS_NAME", None)

from moto import mock_aws

from portfolio_manager.models.enums import AssetCategory
from portfolio_manager.models.holding import Holding
from portfolio_manager.models.portfolio import Portfolio


@pytest.fixture
def aws_credentials():
    """Mock AWS credentials for moto."""
    os.environ["AWS_ACCESS_KEY_ID"] = "testing"
    os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
    os.environ["AWS_SECURITY_TOKEN"] = "testing"
    os.environ["AWS_SESSION_TOKEN"] = "testing"
    os.environ["AWS_DEFAULT_REGION"] = "us-east-1"


def _create_table(dynamodb, name, hash_key, range_key=None):
    key_schema = [{"AttributeName": hash_key, "KeyType": "HASH"}]
    attributes = [{"AttributeName": hash_key, "AttributeType": "S"}]
    if range_key:
        key_schema.append({"AttributeName": range_key, "KeyType": "RANGE"})
        attributes.append({"AttributeName": range_key, "AttributeType": "S"})

    table = dynamodb.create_table(
        TableName=name,
        KeySchema=key_schema,
        AttributeDefinitions=attributes,
        BillingMode="PAY_PER_REQUEST",
    )
    table.wait_until_exists()
    return table


@pytest.fixture
def dynamodb_tables(aws_credentials):
    """Create mocked tables matching the PynamoDB model schemas."""
    with mock_aws():
        import boto3
        dynamodb = boto3.resource("dynamodb", region_name="us-east-1")

        _create_table(dynamodb, "portfolios", "portfolio_id")
        _create_table(dynamodb, "holdings", "portfolio_id", "ticker")
        _create_table(dynamodb, "market_prices", "ticker", "date")
        _create_table(dynamodb, "transactions", "portfolio_id", "transaction_key")

        yield dynamodb


def make_portfolio(portfolio_id="PORT-TEST", name="Growth", cash="0", currency="USD"):
    return Portfolio(
        portfolio_id=portfolio_id,
        name=name,
        base_currency=currency,
        cash_balance=Decimal(cash),
    )


def make_holding(
    ticker="AAPL",
    quantity="100",
    purchase_price=None,
    current_price=None,
    category=AssetCategory.EQUITY,
    portfolio_id="PORT-TEST",
    name=None,
):
    return Holding(
        portfolio_id=portfolio_id,
        ticker=ticker,
        holding_id=f"HOLD-{ticker}",
        name=name or ticker,
        category=category,
        quantity=Decimal(quantity),
        purchase_price=Decimal(purchase_price) if purchase_price is not None else None,
        current_price=Decimal(current_price) if current_price is not None else None,
    )
