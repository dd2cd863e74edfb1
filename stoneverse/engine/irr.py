"""NPV (VAN) and IRR (TRI) over periodic cash flows.

IRR scans a wide rate bracket for a sign change of NPV, solves the
sub-bracket with Brent's method, then polishes with Newton when the
derivative is well-behaved. Every step has an iteration cap, so a call
either converges or raises NoSolution.

Pure functions. No I/O.
"""

import logging
from decimal import Decimal

from scipy.optimize import brentq, newton

from stoneverse.config import settings
from stoneverse.exceptions import InvalidInput, NoSolution
from stoneverse.models.results import NO_VALUE, NoValue

logger = logging.getLogger(__name__)

FOUR_PLACES = Decimal("0.0001")
DEFAULT_GUESS = 0.1


def npv(cash_flows: list[Decimal], rate: Decimal) -> Decimal:
    """NPV = sum(cf[t] / (1 + rate)^t), t starting at 0.

    cash_flows[0] is the initial investment, typically negative.
    """
    rate = Decimal(str(rate))
    if rate <= -1:
        raise InvalidInput(f"Discount rate must be greater than -1, got {rate}", field="rate")
    factor = 1 + rate
    return sum((Decimal(cf) / factor ** t for t, cf in enumerate(cash_flows)), Decimal("0"))


def _npv_float(cf_float: list[float], rate: float) -> float:
    return sum(cf / (1 + rate) ** t for t, cf in enumerate(cf_float))


def _npv_derivative(cf_float: list[float], rate: float) -> float:
    return sum(-t * cf / (1 + rate) ** (t + 1) for t, cf in enumerate(cf_float))


def _safe_npv(cf_float: list[float], rate: float) -> float | None:
    """NPV, or None where the float evaluation overflows."""
    try:
        value = _npv_float(cf_float, rate)
    except (OverflowError, ZeroDivisionError):
        return None
    if value != value or value in (float("inf"), float("-inf")):
        return None
    return value


def _sign_change_brackets(
    cf_float: list[float], lower: float, upper: float, steps: int
) -> list[tuple[float, float]]:
    step = (upper - lower) / steps
    grid = [lower + i * step for i in range(steps + 1)]

    brackets: list[tuple[float, float]] = []
    prev_rate, prev_value = None, None
    for rate in grid:
        value = _safe_npv(cf_float, rate)
        if value is None:
            prev_rate, prev_value = None, None
            continue
        if value == 0:
            brackets.append((rate, rate))
        elif prev_value is not None and (prev_value < 0) != (value < 0):
            brackets.append((prev_rate, rate))
        prev_rate, prev_value = rate, value
    return brackets


def irr(
    cash_flows: list[Decimal],
    lower: float | None = None,
    upper: float | None = None,
    tolerance: float | None = None,
    max_iterations: int | None = None,
) -> Decimal:
    """Rate at which NPV is zero.

    When NPV changes sign more than once in the bracket, the root closest
    to a 10% guess is returned. The NPV residual at the root must be below
    tolerance times the largest absolute cash flow.

    Raises:
        InvalidInput: empty cash flow series
        NoSolution: no sign change, no root in the bracket, or no convergence
    """
    if not cash_flows:
        raise InvalidInput("At least one cash flow is required", field="cash_flows")

    lower = settings.irr_lower_bound if lower is None else lower
    upper = settings.irr_upper_bound if upper is None else upper
    tolerance = settings.irr_tolerance if tolerance is None else tolerance
    max_iterations = settings.irr_max_iterations if max_iterations is None else max_iterations

    cf_float = [float(cf) for cf in cash_flows]
    if not any(cf > 0 for cf in cf_float) or not any(cf < 0 for cf in cf_float):
        raise NoSolution("Cash flows have no sign change", field="cash_flows")

    brackets = _sign_change_brackets(cf_float, lower, upper, settings.irr_bracket_steps)
    if not brackets:
        raise NoSolution(f"No IRR between {lower:.2%} and {upper:.2%}", field="cash_flows")
    a, b = min(brackets, key=lambda ab: abs((ab[0] + ab[1]) / 2 - DEFAULT_GUESS))

    def f(rate: float) -> float:
        return _npv_float(cf_float, rate)

    if a == b:
        root = a
    else:
        try:
            root = brentq(f, a, b, xtol=1e-14, maxiter=max_iterations)
        except (ValueError, RuntimeError) as e:
            raise NoSolution(f"IRR did not converge: {e}", field="cash_flows") from e

    # Newton polish when the slope is usable
    slope = _npv_derivative(cf_float, root)
    if abs(slope) > 1e-12:
        try:
            polished = newton(
                f,
                root,
                fprime=lambda r: _npv_derivative(cf_float, r),
                tol=1e-15,
                maxiter=max_iterations,
            )
            if a <= polished <= b and abs(f(polished)) < abs(f(root)):
                root = polished
        except (RuntimeError, OverflowError, ZeroDivisionError):
            logger.debug("Newton polish skipped at %s", root)

    # Residual tolerance is relative to the largest flow
    scaled_tolerance = tolerance * max(1.0, max(abs(cf) for cf in cf_float))
    residual = abs(f(root))
    if residual >= scaled_tolerance:
        raise NoSolution(
            f"IRR residual {residual:.3e} above tolerance {scaled_tolerance:.1e}", field="cash_flows"
        )

    logger.debug("IRR %s in [%s, %s], residual %.3e", root, a, b, residual)
    return Decimal(repr(float(root)))


def equity_multiple(cash_flows: list[Decimal]) -> Decimal | NoValue:
    """Equity multiple = total cash returned / total cash invested."""
    inflows = sum((cf for cf in cash_flows if cf > 0), Decimal("0"))
    outflows = -sum((cf for cf in cash_flows if cf < 0), Decimal("0"))
    if outflows == 0:
        return NO_VALUE
    return (inflows / outflows).quantize(FOUR_PLACES)
