"""Portfolio financial health: LTV, DSCR and related roll-ups.

Ratios with a zero denominator are reported as NO_VALUE, not 0 and not an
error, so aggregation always completes.

Pure functions. No I/O.
"""

from datetime import date
from decimal import Decimal, ROUND_HALF_UP

from stoneverse.config import settings
from stoneverse.engine.cashflow import income_total, operating_expenses
from stoneverse.engine.debt import debt_service_between, loan_schedule, outstanding_balance
from stoneverse.exceptions import InvalidInput
from stoneverse.models.portfolio import Entity, Property
from stoneverse.models.results import (
    NO_VALUE,
    FiscalYearResult,
    MetricAlerts,
    NoValue,
    PortfolioMetrics,
)

FOUR_PLACES = Decimal("0.0001")


def ratio(numerator: Decimal, denominator: Decimal) -> Decimal | NoValue:
    if denominator == 0:
        return NO_VALUE
    return (numerator / denominator).quantize(FOUR_PLACES, ROUND_HALF_UP)


def loan_to_value(total_debt: Decimal, total_value: Decimal) -> Decimal | NoValue:
    """LTV = total debt / total market value."""
    if total_debt < 0:
        raise InvalidInput(f"Total debt cannot be negative, got {total_debt}", field="total_debt")
    if total_value < 0:
        raise InvalidInput(f"Total value cannot be negative, got {total_value}", field="total_value")
    return ratio(total_debt, total_value)


def operating_cash_flow(
    rental_income: Decimal, operating_expense_total: Decimal, tax_due: Decimal
) -> Decimal:
    """Cash generated by operations. Depreciation is non-cash and excluded."""
    return rental_income - operating_expense_total - tax_due


def debt_service_coverage(cash_flow: Decimal, debt_service: Decimal) -> Decimal | NoValue:
    """DSCR = operating cash flow / scheduled debt service."""
    if debt_service < 0:
        raise InvalidInput(f"Debt service cannot be negative, got {debt_service}", field="debt_service")
    return ratio(cash_flow, debt_service)


def validate_property_values(prop: Property) -> None:
    for name in ("acquisition_price", "current_value", "furnishing_value", "works_value"):
        value = getattr(prop, name)
        if value < 0:
            raise InvalidInput(f"{name} of {prop.id} cannot be negative, got {value}", field=name)


def portfolio_metrics(
    entities: list[Entity],
    results: dict[str, FiscalYearResult],
    fiscal_year: int,
    as_of: date,
) -> PortfolioMetrics:
    """Roll up value, debt and coverage across the given entities.

    Args:
        entities: Entities to include (normally those whose tax result succeeded)
        results: Fiscal year results keyed by entity id, for tax due
        fiscal_year: Year whose income, expenses and debt service are used
        as_of: Date at which loan balances (CRD) are read
    """
    year_start = date(fiscal_year, 1, 1)
    year_end = date(fiscal_year, 12, 31)

    total_value = Decimal("0")
    total_debt = Decimal("0")
    weighted_rate = Decimal("0")
    debt_service = Decimal("0")
    income = Decimal("0")
    expenses = Decimal("0")

    for entity in entities:
        for prop in entity.properties:
            validate_property_values(prop)
            total_value += prop.current_value
            income += income_total(prop.transactions, fiscal_year)
            expenses += operating_expenses(prop.transactions, fiscal_year)

            loan = prop.loan
            if loan is None:
                continue
            schedule = loan_schedule(loan)
            debt_service += debt_service_between(schedule, year_start, year_end)
            # A loan not yet drawn carries no debt
            if as_of >= loan.start_date:
                balance = outstanding_balance(loan, as_of)
                total_debt += balance
                weighted_rate += balance * loan.annual_rate

    tax_due = sum(
        (results[e.id].tax_due for e in entities if e.id in results),
        Decimal("0"),
    )
    cash_flow = operating_cash_flow(income, expenses, tax_due)

    return PortfolioMetrics(
        total_value=total_value,
        total_debt=total_debt,
        net_worth=total_value - total_debt,
        debt_service=debt_service,
        operating_cash_flow=cash_flow,
        ltv=loan_to_value(total_debt, total_value),
        dscr=debt_service_coverage(cash_flow, debt_service),
        weighted_average_rate=ratio(weighted_rate, total_debt),
        gross_rental_yield=ratio(income, total_value),
    )


def metric_alerts(
    metrics: PortfolioMetrics,
    ltv_threshold: Decimal | None = None,
    dscr_threshold: Decimal | None = None,
) -> MetricAlerts:
    """Flag LTV >= threshold and DSCR < threshold. Values are left untouched."""
    ltv_threshold = settings.ltv_alert_threshold if ltv_threshold is None else ltv_threshold
    dscr_threshold = settings.dscr_alert_threshold if dscr_threshold is None else dscr_threshold
    return MetricAlerts(
        ltv_high=metrics.ltv is not NO_VALUE and metrics.ltv >= ltv_threshold,
        dscr_low=metrics.dscr is not NO_VALUE and metrics.dscr < dscr_threshold,
    )
