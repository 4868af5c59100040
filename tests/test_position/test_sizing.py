"""Tests for PositionSizer.

Verifies:
- Risk-based notional vs. leverage cap, smaller wins
- Stop distance floor at 1%
- Dynamic leverage tiers including both sides of each boundary
- Pyramid (ADD) sizing at 1% of balance
"""

from decimal import Decimal

import pytest

from trader.config import TradingSettings
from trader.position.sizing import PositionSizer


@pytest.fixture
def sizer() -> PositionSizer:
    return PositionSizer(TradingSettings())


class TestDynamicLeverage:
    @pytest.mark.parametrize(
        "ratio, expected",
        [
            ("0.003", 20),
            ("0.007", 10),
            ("0.02", 5),
            ("0.0049", 20),
            ("0.005", 10),
            ("0.0099", 10),
            ("0.01", 5),
        ],
    )
    def test_tiers(self, sizer: PositionSizer, ratio: str, expected: int) -> None:
        price = Decimal("10000")
        atr = price * Decimal(ratio)
        assert sizer.dynamic_leverage(atr, price) == expected

    def test_unknown_price_is_max_volatility(self, sizer: PositionSizer) -> None:
        assert sizer.dynamic_leverage(Decimal("10"), Decimal("0")) == 5


class TestEntrySize:
    def test_risk_based_notional_wins(self, sizer: PositionSizer) -> None:
        price = Decimal("50000")
        result = sizer.calculate_entry_size(
            balance=Decimal("1000"),
            price=price,
            stop_loss=Decimal("49500"),  # 1% away
            risk_per_trade=Decimal("0.02"),
            atr=price * Decimal("0.003"),  # 20x tier
        )
        assert result.leverage == 20
        assert result.risk_notional == Decimal("2000")
        assert result.leverage_cap_notional == Decimal("20000")
        assert result.notional == Decimal("2000")
        assert result.size == Decimal("2000") / price

    def test_leverage_cap_wins(self, sizer: PositionSizer) -> None:
        price = Decimal("100")
        result = sizer.calculate_entry_size(
            balance=Decimal("1000"),
            price=price,
            stop_loss=Decimal("99"),  # 1% -> risk notional 1000*0.1/0.01 = 10000
            risk_per_trade=Decimal("0.1"),
            atr=Decimal("5"),  # 5% -> 5x -> cap 5000
        )
        assert result.leverage == 5
        assert result.notional == Decimal("5000")
        assert result.size == Decimal("50")

    def test_stop_distance_floor(self, sizer: PositionSizer) -> None:
        result = sizer.calculate_entry_size(
            balance=Decimal("1000"),
            price=Decimal("100"),
            stop_loss=Decimal("99.9"),  # 0.1%, floored to 1%
            risk_per_trade=Decimal("0.02"),
            atr=Decimal("0.1"),
        )
        assert result.sl_distance_pct == Decimal("0.01")
        assert result.notional == Decimal("2000")

    def test_missing_stop_hits_floor(self, sizer: PositionSizer) -> None:
        result = sizer.calculate_entry_size(
            balance=Decimal("1000"),
            price=Decimal("100"),
            stop_loss=Decimal("0"),
            risk_per_trade=Decimal("0.02"),
            atr=Decimal("0.1"),
        )
        # |100 - 0| / 100 = 100% distance
        assert result.sl_distance_pct == Decimal("1")
        assert result.notional == Decimal("20")

    def test_default_risk_when_missing(self, sizer: PositionSizer) -> None:
        result = sizer.calculate_entry_size(
            balance=Decimal("1000"),
            price=Decimal("100"),
            stop_loss=Decimal("99"),
            risk_per_trade=Decimal("0"),
            atr=Decimal("0.1"),
        )
        assert result.risk_notional == Decimal("2000")

    def test_non_positive_price_raises(self, sizer: PositionSizer) -> None:
        with pytest.raises(ValueError):
            sizer.calculate_entry_size(
                Decimal("1000"), Decimal("0"), Decimal("1"), Decimal("0.02"), Decimal("1")
            )


class TestAddSize:
    def test_one_percent_of_balance(self, sizer: PositionSizer) -> None:
        assert sizer.calculate_add_size(Decimal("1000"), Decimal("50000")) == Decimal("0.0002")

    def test_non_positive_price_raises(self, sizer: PositionSizer) -> None:
        with pytest.raises(ValueError):
            sizer.calculate_add_size(Decimal("1000"), Decimal("0"))
