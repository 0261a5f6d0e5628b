import pytest
from decimal import Decimal

from portfolio_manager.core.exceptions import ValidationError
from portfolio_manager.services.valuation_service import valuate_holding

from conftest import make_holding


def test_priced_holding_with_gain():
    valuation = valuate_holding(make_holding(quantity="100", purchase_price="150.00", current_price="175.50"))

    assert valuation.total_value == Decimal("17550.00")
    assert valuation.gain_loss == Decimal("2550.00")
    assert valuation.gain_loss_percent == Decimal("17.0000")


def test_holding_without_purchase_price():
    valuation = valuate_holding(make_holding(quantity="50", current_price="320.50"))

    assert valuation.total_value == Decimal("16025.00")
    assert valuation.gain_loss == 0
    assert valuation.gain_loss_percent == 0


def test_holding_without_current_price_is_worth_zero():
    valuation = valuate_holding(make_holding(quantity="10", purchase_price="99.00"))

    assert valuation.total_value == 0
    assert valuation.gain_loss == 0
    assert valuation.gain_loss_percent == 0


def test_zero_purchase_price_keeps_gain_but_no_percent():
    valuation = valuate_holding(make_holding(quantity="10", purchase_price="0", current_price="5.00"))

    assert valuation.total_value == Decimal("50.00")
    assert valuation.gain_loss == Decimal("50.00")
    assert valuation.gain_loss_percent == 0


def test_loss_is_negative():
    valuation = valuate_holding(make_holding(quantity="4", purchase_price="200.00", current_price="150.00"))

    assert valuation.gain_loss == Decimal("-200.00")
    assert valuation.gain_loss_percent == Decimal("-25.0000")


def test_fractional_quantity_keeps_full_precision():
    valuation = valuate_holding(make_holding(quantity="0.12345678", current_price="100.00"))

    assert valuation.total_value == Decimal("12.3456780000")


@pytest.mark.parametrize("quantity", ["0", "-1"])
def test_non_positive_quantity_is_rejected(quantity):
    with pytest.raises(ValidationError):
        valuate_holding(make_holding(quantity=quantity, current_price="10.00"))


def test_unknown_category_is_rejected():
    holding = make_holding(current_price="10.00")
    holding.category = "CRYPTO"

    with pytest.raises(ValidationError):
        valuate_holding(holding)


def test_non_terminating_gain_percent_rounds_once():
    # 1/3 of the cost basis: 33.3333..., not a ratio rounded before scaling
    valuation = valuate_holding(make_holding(quantity="3", purchase_price="3.00", current_price="4.00"))

    assert valuation.gain_loss == Decimal("3.00")
    assert valuation.gain_loss_percent == Decimal("33.3333")


def test_two_thirds_loss_rounds_half_up():
    valuation = valuate_holding(make_holding(quantity="1", purchase_price="3.00", current_price="1.00"))

    assert valuation.gain_loss_percent == Decimal("-66.6667")


def test_negative_purchase_price_gives_zero_percent():
    valuation = valuate_holding(make_holding(quantity="2", purchase_price="-5.00", current_price="10.00"))

    assert valuation.total_value == Decimal("20.00")
    assert valuation.gain_loss == Decimal("30.00")
    assert valuation.gain_loss_percent == 0
