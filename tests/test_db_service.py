"""Storage tests against mocked DynamoDB tables."""

import pytest
from datetime import date, datetime, timezone
from decimal import Decimal
from unittest.mock import patch

from portfolio_manager.core.exceptions import ConcurrentUpdateError, DuplicateResourceError, ResourceNotFoundError
from portfolio_manager.models.enums import AssetCategory, TransactionType
from portfolio_manager.models.holding import Holding
from portfolio_manager.models.portfolio import Portfolio
from portfolio_manager.services import db_service, holding_service, market_data_service, transaction_service
from portfolio_manager.services.portfolio_service import (
    create_portfolio,
    delete_portfolio,
    get_portfolio_summary,
)


def _add_price(ticker, day, close):
    close = Decimal(close)
    market_data_service.save_market_price(ticker, day, close, close, close, close, volume=100)


class TestPortfolioStorage:

    def test_missing_portfolio(self, dynamodb_tables):
        with pytest.raises(ResourceNotFoundError):
            db_service.get_portfolio("PORT-MISSING")

    def test_decimal_round_trip(self, dynamodb_tables):
        portfolio = create_portfolio("Exact", cash_balance=Decimal("0.10"))

        stored = db_service.get_portfolio(portfolio.portfolio_id)

        assert stored.cash_balance == Decimal("0.10")
        assert isinstance(stored.cash_balance, Decimal)

    def test_summary_from_storage(self, dynamodb_tables):
        portfolio = create_portfolio("Growth", cash_balance=Decimal("15000.00"))
        _add_price("AAPL", date(2024, 5, 1), "175.50")
        holding_service.create_holding(
            portfolio.portfolio_id, "AAPL", "Apple", AssetCategory.EQUITY, Decimal("100"),
            purchase_price=Decimal("150.00"),
        )

        summary = get_portfolio_summary(portfolio.portfolio_id)

        assert summary.total_value == Decimal("32550.00")
        assert summary.top_holdings[0].allocation == Decimal("53.9170")
        assert [s.percentage for s in summary.allocation] == [Decimal("53.9170"), Decimal("46.0830")]

    def test_delete_removes_owned_records(self, dynamodb_tables):
        portfolio = create_portfolio("Short lived", cash_balance=Decimal("100.00"))
        pid = portfolio.portfolio_id
        holding_service.create_holding(pid, "MSFT", "Microsoft", "EQUITY", Decimal("1"),
                                       purchase_price=Decimal("300.00"))
        transaction_service.record_transaction(pid, "DEPOSIT", Decimal("50.00"))

        delete_portfolio(pid)

        with pytest.raises(ResourceNotFoundError):
            db_service.get_portfolio(pid)
        assert db_service.list_holdings(pid) == []
        assert db_service.count_transactions(pid) == 0


class TestPriceSweep:

    def test_sweep_updates_ticker_across_portfolios(self, dynamodb_tables):
        first = create_portfolio("First")
        second = create_portfolio("Second")
        for portfolio in (first, second):
            holding_service.create_holding(portfolio.portfolio_id, "AAPL", "Apple", "EQUITY", Decimal("10"),
                                           purchase_price=Decimal("150.00"))
        # (portfolio, ticker) is unique, so the third AAPL holding needs its own portfolio
        third = create_portfolio("Third")
        holding_service.create_holding(third.portfolio_id, "AAPL", "Apple", "EQUITY", Decimal("1"))
        holding_service.create_holding(first.portfolio_id, "MSFT", "Microsoft", "EQUITY", Decimal("2"),
                                       purchase_price=Decimal("300.00"))

        _add_price("AAPL", date(2024, 5, 1), "170.00")
        _add_price("AAPL", date(2024, 5, 2), "181.25")

        updated = holding_service.refresh_all_prices()

        assert updated == 3
        for portfolio in (first, second, third):
            assert Holding.get(portfolio.portfolio_id, "AAPL").current_price == Decimal("181.25")
        assert Holding.get(first.portfolio_id, "MSFT").current_price == Decimal("300.00")

    def test_sweep_with_two_portfolios(self, dynamodb_tables):
        first = create_portfolio("First")
        second = create_portfolio("Second")
        holding_service.create_holding(first.portfolio_id, "AAPL", "Apple", "EQUITY", Decimal("10"))
        holding_service.create_holding(second.portfolio_id, "AAPL", "Apple", "EQUITY", Decimal("5"),
                                       purchase_price=Decimal("140.00"))
        holding_service.create_holding(second.portfolio_id, "BND", "Bonds", "BOND", Decimal("3"),
                                       purchase_price=Decimal("72.00"))
        _add_price("AAPL", date(2024, 5, 2), "181.25")

        holding_service.refresh_all_prices()

        assert Holding.get(first.portfolio_id, "AAPL").current_price == Decimal("181.25")
        assert Holding.get(second.portfolio_id, "AAPL").current_price == Decimal("181.25")
        assert Holding.get(second.portfolio_id, "BND").current_price == Decimal("72.00")


class TestMarketPrices:

    def test_latest_and_history(self, dynamodb_tables):
        _add_price("VTI", date(2024, 5, 3), "250.00")
        _add_price("VTI", date(2024, 5, 1), "245.00")
        _add_price("VTI", date(2024, 5, 2), "248.00")

        assert db_service.latest_price_for("VTI").close_price == Decimal("250.00")
        history = market_data_service.get_price_history("VTI", date(2024, 5, 1), date(2024, 5, 2)).items
        assert [p.date for p in history] == ["2024-05-01", "2024-05-02"]
        assert market_data_service.list_tickers() == ["VTI"]

    def test_unknown_ticker_has_no_latest_price(self, dynamodb_tables):
        assert db_service.latest_price_for("NOPE") is None


class TestTransactions:

    def test_ledger_is_newest_first_and_filterable(self, dynamodb_tables):
        portfolio = create_portfolio("Ledger")
        pid = portfolio.portfolio_id
        for day, amount in ((1, "100.00"), (3, "300.00"), (2, "200.00")):
            transaction_service.record_transaction(
                pid, TransactionType.DEPOSIT, Decimal(amount),
                transaction_date=datetime(2024, 5, day, 12, 0, tzinfo=timezone.utc),
            )

        ledger = transaction_service.list_transactions(pid).items
        assert [t.amount for t in ledger] == [Decimal("300.00"), Decimal("200.00"), Decimal("100.00")]
        assert db_service.get_portfolio(pid).cash_balance == Decimal("600.00")

        window = transaction_service.list_transactions(
            pid,
            start=datetime(2024, 5, 2, tzinfo=timezone.utc),
            end=datetime(2024, 5, 3, 12, 0, tzinfo=timezone.utc),
        ).items
        assert [t.amount for t in window] == [Decimal("300.00"), Decimal("200.00")]

    def test_get_and_delete_transaction(self, dynamodb_tables):
        portfolio = create_portfolio("Ledger", cash_balance=Decimal("10.00"))
        recorded = transaction_service.record_transaction(portfolio.portfolio_id, "FEE", Decimal("2.50"))

        fetched = transaction_service.get_transaction(portfolio.portfolio_id, recorded.transaction_id)
        assert fetched.transaction_type == TransactionType.FEE

        transaction_service.delete_transaction(portfolio.portfolio_id, recorded.transaction_id)
        with pytest.raises(ResourceNotFoundError):
            transaction_service.get_transaction(portfolio.portfolio_id, recorded.transaction_id)
        assert db_service.get_portfolio(portfolio.portfolio_id).cash_balance == Decimal("7.50")


class TestPortfolioDefaults:

    def test_new_portfolio_starts_with_zero_cash(self, dynamodb_tables):
        Portfolio(portfolio_id="PORT-DEFAULTS", name="Defaults").save()

        stored = db_service.get_portfolio("PORT-DEFAULTS")

        assert stored.cash_balance == Decimal("0.00")
        assert stored.base_currency == "USD"


class TestHoldingWrites:

    def test_second_insert_of_ticker_is_refused(self, dynamodb_tables):
        portfolio = create_portfolio("Dupes")
        pid = portfolio.portfolio_id
        holding_service.create_holding(pid, "AAPL", "Apple", "EQUITY", Decimal("10"),
                                       purchase_price=Decimal("150.00"))

        with pytest.raises(DuplicateResourceError):
            holding_service.create_holding(pid, "AAPL", "Apple", "EQUITY", Decimal("99"),
                                           purchase_price=Decimal("1.00"))

        assert db_service.get_holding(pid, "AAPL").quantity == Decimal("10")

    def test_insert_does_not_overwrite_a_racing_writer(self, dynamodb_tables):
        portfolio = create_portfolio("Race")
        first = Holding(portfolio_id=portfolio.portfolio_id, ticker="MSFT", holding_id="HOLD-1",
                        name="Microsoft", category=AssetCategory.EQUITY, quantity=Decimal("1"))
        second = Holding(portfolio_id=portfolio.portfolio_id, ticker="MSFT", holding_id="HOLD-2",
                         name="Microsoft", category=AssetCategory.EQUITY, quantity=Decimal("2"))

        db_service.insert_holding(first)
        with pytest.raises(DuplicateResourceError):
            db_service.insert_holding(second)

        assert db_service.get_holding(portfolio.portfolio_id, "MSFT").holding_id == "HOLD-1"


class TestLedgerAtomicity:

    def test_balance_changed_underneath_leaves_no_entry(self, dynamodb_tables):
        pid = create_portfolio("Contended", cash_balance=Decimal("100.00")).portfolio_id
        read_portfolio = db_service.get_portfolio

        def read_then_spend_elsewhere(portfolio_id):
            snapshot = read_portfolio(portfolio_id)
            other = read_portfolio(portfolio_id)
            other.cash_balance = Decimal("50.00")
            db_service.save_portfolio(other)
            return snapshot

        with patch.object(db_service, "get_portfolio", side_effect=read_then_spend_elsewhere):
            with pytest.raises(ConcurrentUpdateError):
                transaction_service.record_transaction(pid, "WITHDRAWAL", Decimal("60.00"))

        assert db_service.count_transactions(pid) == 0
        assert db_service.get_portfolio(pid).cash_balance == Decimal("50.00")

    def test_entry_and_balance_land_together(self, dynamodb_tables):
        pid = create_portfolio("Ledger", cash_balance=Decimal("100.00")).portfolio_id

        transaction_service.record_transaction(pid, "WITHDRAWAL", Decimal("60.00"))

        assert db_service.count_transactions(pid) == 1
        assert db_service.get_portfolio(pid).cash_balance == Decimal("40.00")


class TestPaging:

    @staticmethod
    def _drain(fetch, limit):
        """Follow last_evaluated_key until the listing is exhausted."""
        items, key = [], None
        for _ in range(10):
            page = fetch(limit=limit, last_evaluated_key=key)
            assert len(page.items) <= limit
            items.extend(page.items)
            key = page.last_evaluated_key
            if key is None:
                return items
        raise AssertionError("paging did not terminate")

    def test_portfolio_pages_cover_every_portfolio_once(self, dynamodb_tables):
        created = {create_portfolio(f"P{i}").portfolio_id for i in range(3)}

        first = db_service.portfolio_page(limit=2)
        assert len(first.items) == 2
        assert first.last_evaluated_key is not None

        listed = self._drain(db_service.portfolio_page, limit=2)
        assert sorted(p.portfolio_id for p in listed) == sorted(created)

    def test_holdings_of_category_across_portfolios(self, dynamodb_tables):
        first = create_portfolio("First", cash_balance=Decimal("1000.00"))
        second = create_portfolio("Second")
        for portfolio, ticker in ((first, "BND"), (first, "AGG"), (second, "BND")):
            holding_service.create_holding(portfolio.portfolio_id, ticker, ticker, "BOND", Decimal("10"),
                                           purchase_price=Decimal("100.00"))
        holding_service.create_holding(second.portfolio_id, "AAPL", "Apple", "EQUITY", Decimal("1"),
                                       purchase_price=Decimal("150.00"))

        bonds = self._drain(
            lambda limit, last_evaluated_key: holding_service.list_holdings_by_category(
                "bond", limit, last_evaluated_key),
            limit=2,
        )

        assert sorted((h.portfolio_id, h.ticker) for h in bonds) == sorted([
            (first.portfolio_id, "AGG"), (first.portfolio_id, "BND"), (second.portfolio_id, "BND"),
        ])
        in_first = [h for h in bonds if h.portfolio_id == first.portfolio_id]
        # 1000 value each against 1000 cash + 2000 holdings
        assert all(h.allocation == Decimal("33.3330") for h in in_first)

    def test_ledger_pages_stay_newest_first(self, dynamodb_tables):
        pid = create_portfolio("Paged ledger").portfolio_id
        for day in range(1, 6):
            transaction_service.record_transaction(
                pid, "DEPOSIT", Decimal(day),
                transaction_date=datetime(2024, 6, day, tzinfo=timezone.utc),
            )

        ledger = self._drain(
            lambda limit, last_evaluated_key: transaction_service.list_transactions(
                pid, limit=limit, last_evaluated_key=last_evaluated_key),
            limit=2,
        )

        assert [t.amount for t in ledger] == [Decimal(day) for day in (5, 4, 3, 2, 1)]

    def test_price_history_pages(self, dynamodb_tables):
        for day in range(1, 5):
            _add_price("SPY", date(2024, 7, day), f"{500 + day}.00")

        history = self._drain(
            lambda limit, last_evaluated_key: market_data_service.get_price_history(
                "SPY", date(2024, 7, 1), date(2024, 7, 31), limit, last_evaluated_key),
            limit=3,
        )

        assert [p.date for p in history] == ["2024-07-01", "2024-07-02", "2024-07-03", "2024-07-04"]
