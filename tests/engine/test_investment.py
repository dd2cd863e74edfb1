from decimal import Decimal

import pytest

from stoneverse.engine.irr import equity_multiple, irr, npv
from stoneverse.exceptions import InvalidInput, NoSolution
from stoneverse.models.results import NO_VALUE


def _cf(*values) -> list[Decimal]:
    return [Decimal(str(v)) for v in values]


class TestNPV:
    def test_discounting(self):
        assert npv(_cf(-1000, 1100), Decimal("0.10")) == Decimal("0")

    def test_zero_rate_is_plain_sum(self):
        assert npv(_cf(-1000, 300, 300, 500), Decimal("0")) == Decimal("100")

    def test_first_flow_not_discounted(self):
        assert npv(_cf(-1000), Decimal("0.5")) == Decimal("-1000")

    def test_rate_at_minus_one(self):
        with pytest.raises(InvalidInput) as exc:
            npv(_cf(-1000, 1100), Decimal("-1"))
        assert exc.value.field == "rate"


class TestIRR:
    def test_simple(self):
        assert abs(irr(_cf(-1000, 1100)) - Decimal("0.1")) < Decimal("1e-9")

    @pytest.mark.parametrize(
        "flows",
        [
            (-100000, 8000, 8000, 8000, 8000, 120000),
            (-1000, 500, 400),
            (-120000, 30000, 30000, 30000, 30000, 30000),
            (-50000, -10000, 20000, 25000, 40000),
        ],
    )
    def test_npv_at_irr_is_zero(self, flows):
        cf = _cf(*flows)
        rate = irr(cf)
        assert abs(npv(cf, rate)) < Decimal("0.001")

    def test_negative_irr(self):
        assert irr(_cf(-1000, 500, 400)) < 0

    def test_multiple_roots_picks_closest_to_ten_percent(self):
        """-100, 230, -132 has roots at 10% and 20%."""
        assert abs(irr(_cf(-100, 230, -132)) - Decimal("0.1")) < Decimal("1e-6")

    def test_no_sign_change(self):
        with pytest.raises(NoSolution):
            irr(_cf(1000, 200, 300))
        with pytest.raises(NoSolution):
            irr(_cf(-1000, -200))

    def test_root_outside_bracket(self):
        """A 9,900% return lies beyond the default upper bound."""
        with pytest.raises(NoSolution):
            irr(_cf(-1, 100))

    def test_empty(self):
        with pytest.raises(InvalidInput):
            irr([])

    def test_deterministic(self):
        cf = _cf(-100000, 8000, 8000, 8000, 8000, 120000)
        assert irr(cf) == irr(cf)

    def test_large_flows_converge(self):
        """A 400M, 20-year monthly series solves without hitting the residual check."""
        cf = [Decimal("-4e8")] + [Decimal("3e6")] * 239 + [Decimal("4.5e8")]
        rate = irr(cf)
        assert Decimal("0") < rate < Decimal("0.1")
        assert abs(npv(cf, rate)) < Decimal("1")


class TestEquityMultiple:
    def test_basic(self):
        assert equity_multiple(_cf(-1000, 500, 800)) == Decimal("1.3000")

    def test_no_outflows(self):
        assert equity_multiple(_cf(100, 200)) is NO_VALUE
