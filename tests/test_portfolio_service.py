import pytest
from decimal import Decimal
from unittest.mock import patch

from portfolio_manager.core.exceptions import ResourceNotFoundError, ValidationError
from portfolio_manager.models.enums import AssetCategory
from portfolio_manager.services.allocation_service import CASH_LABEL
from portfolio_manager.services.portfolio_service import (
    TOP_HOLDINGS_LIMIT,
    create_portfolio,
    get_portfolio_summary,
    list_portfolios,
    search_portfolios,
    summarize_portfolio,
    update_portfolio,
)

from conftest import make_holding, make_portfolio


class TestSummarizePortfolio:

    def test_cash_and_one_holding(self):
        portfolio = make_portfolio(cash="15000.00")
        holding = make_holding("AAPL", "100", purchase_price="150.00", current_price="175.50")

        summary = summarize_portfolio(portfolio, [holding], transaction_count=3)

        assert summary.total_value == Decimal("32550.00")
        assert summary.holdings_value == Decimal("17550.00")
        assert summary.total_cost_basis == Decimal("15000.00")
        assert summary.total_gain == Decimal("2550.00")
        assert summary.total_gain_percent == Decimal("17.0000")
        assert summary.transaction_count == 3
        assert summary.top_holdings[0].allocation == Decimal("53.9170")
        assert [(s.label, s.percentage) for s in summary.allocation] == [
            ("EQUITY", Decimal("53.9170")),
            (CASH_LABEL, Decimal("46.0830")),
        ]

    def test_empty_portfolio(self):
        summary = summarize_portfolio(make_portfolio(cash="0"), [], transaction_count=0)

        assert summary.total_value == 0
        assert summary.total_gain == 0
        assert summary.total_gain_percent == 0
        assert summary.allocation == ()
        assert summary.top_holdings == ()
        assert summary.holding_count == 0

    def test_cash_only_portfolio_is_all_cash(self):
        summary = summarize_portfolio(make_portfolio(cash="250.00"), [], transaction_count=0)

        assert [(s.label, s.percentage) for s in summary.allocation] == [(CASH_LABEL, Decimal("100.0000"))]

    def test_same_snapshot_gives_same_summary(self):
        portfolio = make_portfolio(cash="1000.00")
        holdings = [
            make_holding("AAPL", "3", purchase_price="100.00", current_price="120.00"),
            make_holding("BND", "7", purchase_price="80.00", current_price="75.00", category=AssetCategory.BOND),
        ]

        first = summarize_portfolio(portfolio, holdings, 2)
        second = summarize_portfolio(portfolio, holdings, 2)

        assert first == second
        assert holdings[0].current_price == Decimal("120.00")
        assert portfolio.cash_balance == Decimal("1000.00")

    def test_allocation_sums_to_about_one_hundred(self):
        portfolio = make_portfolio(cash="333.33")
        holdings = [
            make_holding("AAPL", "1", current_price="333.33"),
            make_holding("BND", "1", current_price="333.34", category=AssetCategory.BOND),
            make_holding("VTI", "3", current_price="17.01", category=AssetCategory.FUND),
        ]

        summary = summarize_portfolio(portfolio, holdings, 0)

        total = sum(s.percentage for s in summary.allocation)
        assert abs(total - Decimal("100")) <= Decimal("0.001") * len(summary.allocation)

    def test_top_holdings_by_value_with_ties_in_input_order(self):
        holdings = [
            make_holding("AAA", "1", current_price="10.00"),
            make_holding("BBB", "1", current_price="50.00"),
            make_holding("CCC", "1", current_price="30.00"),
            make_holding("DDD", "1", current_price="30.00"),
            make_holding("EEE", "1", current_price="5.00"),
            make_holding("FFF", "1", current_price="40.00"),
            make_holding("GGG", "1", current_price="30.00"),
        ]

        summary = summarize_portfolio(make_portfolio(), holdings, 0)

        assert len(summary.top_holdings) == TOP_HOLDINGS_LIMIT
        assert [h.ticker for h in summary.top_holdings] == ["BBB", "FFF", "CCC", "DDD", "GGG"]
        assert summary.holding_count == 7

    def test_cost_basis_skips_holdings_without_purchase_price(self):
        holdings = [
            make_holding("AAPL", "10", purchase_price="100.00", current_price="110.00"),
            make_holding("GIFT", "10", current_price="50.00"),
        ]

        summary = summarize_portfolio(make_portfolio(), holdings, 0)

        assert summary.holdings_value == Decimal("1600.00")
        assert summary.total_cost_basis == Decimal("1000.00")
        # the unpriced-cost holding still counts towards value, and so towards gain
        assert summary.total_gain == Decimal("600.00")
        assert summary.total_gain_percent == Decimal("60.0000")

    def test_invalid_holding_is_rejected(self):
        with pytest.raises(ValidationError):
            summarize_portfolio(make_portfolio(), [make_holding("AAPL", "0", current_price="1.00")], 0)


@patch("portfolio_manager.services.portfolio_service.db_service")
def test_summary_loads_snapshot_through_storage(mock_db):
    mock_db.get_portfolio.return_value = make_portfolio(cash="15000.00")
    mock_db.list_holdings.return_value = [
        make_holding("AAPL", "100", purchase_price="150.00", current_price="175.50")
    ]
    mock_db.count_transactions.return_value = 4

    summary = get_portfolio_summary("PORT-TEST")

    assert summary.total_value == Decimal("32550.00")
    assert summary.transaction_count == 4
    mock_db.list_holdings.assert_called_once_with("PORT-TEST")


@patch("portfolio_manager.services.portfolio_service.db_service")
def test_summary_of_missing_portfolio(mock_db):
    mock_db.get_portfolio.side_effect = ResourceNotFoundError("Portfolio", "portfolio_id", "PORT-NOPE")

    with pytest.raises(ResourceNotFoundError):
        get_portfolio_summary("PORT-NOPE")


@patch("portfolio_manager.services.portfolio_service.db_service")
def test_create_portfolio_defaults(mock_db):
    portfolio = create_portfolio("Retirement")

    assert portfolio.portfolio_id.startswith("PORT-")
    assert portfolio.base_currency == "USD"
    assert portfolio.cash_balance == 0
    mock_db.save_portfolio.assert_called_once_with(portfolio)


@patch("portfolio_manager.services.portfolio_service.db_service")
def test_create_portfolio_rejects_negative_cash(mock_db):
    with pytest.raises(ValidationError):
        create_portfolio("Broke", cash_balance=Decimal("-1"))
    mock_db.save_portfolio.assert_not_called()


@patch("portfolio_manager.services.portfolio_service.db_service")
def test_update_portfolio_only_changes_given_fields(mock_db):
    portfolio = make_portfolio(name="Old", cash="10.00")
    portfolio.description = "keep me"
    mock_db.get_portfolio.return_value = portfolio

    update_portfolio("PORT-TEST", cash_balance=Decimal("25.50"))

    assert portfolio.name == "Old"
    assert portfolio.description == "keep me"
    assert portfolio.cash_balance == Decimal("25.50")
    mock_db.save_portfolio.assert_called_once_with(portfolio)


@patch("portfolio_manager.services.portfolio_service.db_service")
def test_search_is_case_insensitive(mock_db):
    mock_db.list_portfolios.return_value = [
        make_portfolio("PORT-1", name="Growth Fund"),
        make_portfolio("PORT-2", name="Income"),
    ]

    assert [p.portfolio_id for p in search_portfolios("  growth ")] == ["PORT-1"]


@patch("portfolio_manager.services.portfolio_service.db_service")
def test_unpaged_listing_is_the_sorted_full_list(mock_db):
    mock_db.list_portfolios.return_value = [make_portfolio("PORT-2"), make_portfolio("PORT-1")]

    page = list_portfolios()

    assert [p.portfolio_id for p in page.items] == ["PORT-2", "PORT-1"]
    assert page.last_evaluated_key is None
    mock_db.portfolio_page.assert_not_called()


@patch("portfolio_manager.services.portfolio_service.db_service")
def test_paged_listing_reads_one_page(mock_db):
    key = {"portfolio_id": {"S": "PORT-1"}}

    list_portfolios(limit=5, last_evaluated_key=key)

    mock_db.portfolio_page.assert_called_once_with(5, key)
    mock_db.list_portfolios.assert_not_called()
