"""Tests for PnLCalculator.

Verifies:
- Gross PnL sign per side (LONG 100->110 = +10, SHORT 100->90 = +10)
- Losing trades invert the sign
- Round-trip fees at 0.04% per side and net = gross - fees
- Leveraged ROE percent
"""

from decimal import Decimal

import pytest

from trader.models import PositionSide
from trader.pnl.calculator import PnLCalculator


@pytest.fixture
def calc() -> PnLCalculator:
    return PnLCalculator(Decimal("0.0004"))


class TestGrossPnL:
    def test_long_winner(self, calc: PnLCalculator) -> None:
        assert calc.gross_pnl(PositionSide.LONG, Decimal("100"), Decimal("110"), Decimal("1")) == Decimal("10")

    def test_short_winner(self, calc: PnLCalculator) -> None:
        assert calc.gross_pnl(PositionSide.SHORT, Decimal("100"), Decimal("90"), Decimal("1")) == Decimal("10")

    def test_long_loser(self, calc: PnLCalculator) -> None:
        assert calc.gross_pnl(PositionSide.LONG, Decimal("100"), Decimal("90"), Decimal("1")) == Decimal("-10")

    def test_short_loser(self, calc: PnLCalculator) -> None:
        assert calc.gross_pnl(PositionSide.SHORT, Decimal("100"), Decimal("110"), Decimal("1")) == Decimal("-10")

    def test_scales_with_size(self, calc: PnLCalculator) -> None:
        assert calc.gross_pnl(PositionSide.LONG, Decimal("100"), Decimal("110"), Decimal("0.5")) == Decimal("5")


class TestFees:
    def test_round_trip_fee(self, calc: PnLCalculator) -> None:
        # 100*1*0.0004 + 110*1*0.0004
        assert calc.round_trip_fee(Decimal("100"), Decimal("110"), Decimal("1")) == Decimal("0.084")

    def test_realized_net(self, calc: PnLCalculator) -> None:
        result = calc.realized(PositionSide.LONG, Decimal("100"), Decimal("110"), Decimal("1"))
        assert result.gross == Decimal("10")
        assert result.fees == Decimal("0.084")
        assert result.net == Decimal("9.916")

    def test_fees_make_flat_trade_a_loss(self, calc: PnLCalculator) -> None:
        result = calc.realized(PositionSide.SHORT, Decimal("50000"), Decimal("50000"), Decimal("0.1"))
        assert result.gross == Decimal("0")
        assert result.net == Decimal("-4")

    def test_fee_rate_property(self) -> None:
        assert PnLCalculator(Decimal("0.001")).fee_rate == Decimal("0.001")


class TestRoe:
    def test_long_roe(self) -> None:
        roe = PnLCalculator.roe_percent(PositionSide.LONG, Decimal("100"), Decimal("101"), 10)
        assert roe == Decimal("10")

    def test_short_roe(self) -> None:
        roe = PnLCalculator.roe_percent(PositionSide.SHORT, Decimal("100"), Decimal("101"), 10)
        assert roe == Decimal("-10")

    def test_zero_entry(self) -> None:
        assert PnLCalculator.roe_percent(PositionSide.LONG, Decimal("0"), Decimal("1"), 5) == Decimal("0")
