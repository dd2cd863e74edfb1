"""Investment projection: yearly cash flows of one property over a hold,
ending with its sale, and the returns on the equity invested.

Each year: income - operating expenses - capex - scheduled debt service -
tax due, where tax comes from the entity-type rules with the deficit
threaded year to year. Recorded LOAN_PAYMENT transactions are ignored; the
amortization schedule is the source of debt service. The last year adds
the net cash to seller at 31 December.

Pure computation. No I/O. Property in, InvestmentProjection out.
"""

import logging
from datetime import date
from decimal import Decimal, ROUND_HALF_UP

from stoneverse.engine.cashflow import cash_flow_by_category, income_total, operating_expenses
from stoneverse.engine.debt import debt_service_between, loan_schedule
from stoneverse.engine.depreciation import property_components, total_depreciation_taken
from stoneverse.engine.disposition import capital_gains_tax, net_cash_to_seller
from stoneverse.engine.irr import equity_multiple, irr, npv
from stoneverse.engine.tax import parse_entity_type, project_fiscal_years
from stoneverse.exceptions import InvalidInput
from stoneverse.models.fiscal import DeficitCarryforward, FiscalSettings
from stoneverse.models.portfolio import Entity, EntityType, Property
from stoneverse.models.results import InvestmentProjection, InvestmentReturns, YearlyCashFlow

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal("0.01")


def investment_cash_flows(
    prop: Property,
    entity_type: EntityType | str,
    first_year: int,
    hold_years: int,
    exit_value: Decimal,
    equity_invested: Decimal | None = None,
    transaction_fee_rate: Decimal = Decimal("0"),
    opening_deficit: DeficitCarryforward | Decimal | None = None,
    fiscal_settings: FiscalSettings | None = None,
) -> InvestmentProjection:
    """Project a property held from `first_year` for `hold_years`, then sold.

    Args:
        prop: Property with its loan, transactions and components
        entity_type: Regime the property is held under
        first_year: First fiscal year of the projection
        hold_years: Number of fiscal years held, the sale closing the last one
        exit_value: Sale price at the end of the hold
        equity_invested: t0 outflow; acquisition price less loan principal if omitted
        transaction_fee_rate: Sale fees as a fraction of the exit value
        opening_deficit: Carryforward entering the first year
        fiscal_settings: Rate overrides for the entity type
    """
    entity_type = parse_entity_type(entity_type)
    if hold_years < 1:
        raise InvalidInput(f"Hold must last at least one year, got {hold_years}", field="hold_years")
    if exit_value < 0:
        raise InvalidInput(f"Exit value cannot be negative, got {exit_value}", field="exit_value")
    if equity_invested is None:
        principal = prop.loan.principal if prop.loan is not None else Decimal("0")
        equity_invested = prop.acquisition_price - principal
    if equity_invested < 0:
        raise InvalidInput(
            f"Equity invested cannot be negative, got {equity_invested}", field="equity_invested"
        )

    entity = Entity(
        id=f"projection-{prop.id}",
        name=prop.address or prop.id,
        entity_type=entity_type,
        properties=(prop,),
    )
    years = range(first_year, first_year + hold_years)
    results = project_fiscal_years(entity, years, opening_deficit, fiscal_settings)
    schedule = loan_schedule(prop.loan) if prop.loan is not None else None

    yearly: list[YearlyCashFlow] = []
    for year, result in zip(years, results):
        debt_service = Decimal("0")
        if schedule is not None:
            debt_service = debt_service_between(schedule, date(year, 1, 1), date(year, 12, 31))
        yearly.append(YearlyCashFlow(
            year=year,
            income=income_total(prop.transactions, year),
            operating_expenses=operating_expenses(prop.transactions, year),
            capex=cash_flow_by_category(prop.transactions, year)["capex"],
            debt_service=debt_service,
            tax_due=result.tax_due,
        ))

    last_year = years[-1]
    sale_date = date(last_year, 12, 31)
    sale_costs = (exit_value * transaction_fee_rate).quantize(TWO_PLACES, ROUND_HALF_UP)
    gains = capital_gains_tax(
        entity_type=entity_type,
        acquisition_price=prop.acquisition_price,
        acquisition_date=prop.acquisition_date,
        sale_price=exit_value,
        sale_date=sale_date,
        sale_costs=sale_costs,
        depreciation_taken=total_depreciation_taken(property_components(prop), last_year),
        fiscal_settings=fiscal_settings,
    )
    sale = net_cash_to_seller(
        sale_price=exit_value,
        sale_date=sale_date,
        loan=prop.loan,
        transaction_fee_rate=transaction_fee_rate,
        capital_gains_tax=gains.total_tax,
    )

    logger.debug(
        "Projection %s as %s %d-%d: equity %s, sale net %s",
        prop.id, entity_type.value, first_year, last_year, equity_invested, sale.net_cash_to_seller,
    )

    return InvestmentProjection(
        property_id=prop.id,
        entity_type=entity_type,
        equity_invested=equity_invested,
        years=tuple(yearly),
        fiscal_results=tuple(results),
        capital_gains=gains,
        sale=sale,
    )


def investment_returns(projection: InvestmentProjection, discount_rate: Decimal) -> InvestmentReturns:
    """NPV at `discount_rate`, IRR and equity multiple of the projected flows."""
    flows = projection.cash_flows
    return InvestmentReturns(
        npv=npv(flows, discount_rate).quantize(TWO_PLACES, ROUND_HALF_UP),
        irr=irr(flows),
        equity_multiple=equity_multiple(flows),
    )
