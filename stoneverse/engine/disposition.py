"""Property disposition (sale): net cash to seller and capital gains tax.

Private capital gains (personal, LMNP) with holding-period allowances and
surcharge; corporate gains (SCI IS) on book value net of depreciation.

Pure functions. No I/O.
"""

from datetime import date
from decimal import Decimal, ROUND_HALF_UP

from dateutil.relativedelta import relativedelta

from stoneverse.engine.debt import balance_at, early_repayment_penalty
from stoneverse.engine.tax import (
    corporate_tax,
    parse_entity_type,
    resolve_fiscal_settings,
    validate_fiscal_settings,
)
from stoneverse.exceptions import DateOutOfRange, InvalidInput
from stoneverse.models.fiscal import FiscalSettings
from stoneverse.models.portfolio import EntityType, Loan, PenaltyRule
from stoneverse.models.results import CapitalGainsResult, SaleProceeds

TWO_PLACES = Decimal("0.01")
FOUR_PLACES = Decimal("0.0001")

# Private gains: flat income tax on the gain (plus social charges)
PRIVATE_GAINS_INCOME_TAX_RATE = Decimal("0.19")

# Surcharge on large private gains: (gain above, rate), highest tier applies
SURCHARGE_TIERS = [
    (Decimal("50000"), Decimal("0.02")),
    (Decimal("100000"), Decimal("0.03")),
    (Decimal("150000"), Decimal("0.04")),
    (Decimal("200000"), Decimal("0.05")),
    (Decimal("250000"), Decimal("0.06")),
]


def net_cash_to_seller(
    sale_price: Decimal,
    sale_date: date,
    loan: Loan | None = None,
    transaction_fee_rate: Decimal = Decimal("0"),
    capital_gains_tax: Decimal = Decimal("0"),
    penalty_rule: PenaltyRule | None = None,
) -> SaleProceeds:
    """sale_price * (1 - fee rate) - CRD - IRA - capital gains tax.

    Args:
        sale_price: Gross sale price
        sale_date: Date the loan is repaid out of the proceeds
        loan: Loan secured on the property, if any
        transaction_fee_rate: Agency and sale fees as a fraction of the price
        capital_gains_tax: Tax on the gain, computed by the caller
        penalty_rule: Overrides the loan's own indemnity terms
    """
    if sale_price < 0:
        raise InvalidInput(f"Sale price cannot be negative, got {sale_price}", field="sale_price")
    if not Decimal("0") <= transaction_fee_rate <= Decimal("1"):
        raise InvalidInput(
            f"Fee rate must lie in [0, 1], got {transaction_fee_rate}", field="transaction_fee_rate"
        )
    if capital_gains_tax < 0:
        raise InvalidInput(
            f"Capital gains tax cannot be negative, got {capital_gains_tax}", field="capital_gains_tax"
        )

    fees = (sale_price * transaction_fee_rate).quantize(TWO_PLACES, ROUND_HALF_UP)
    payoff = Decimal("0")
    penalty = Decimal("0")
    if loan is not None:
        payoff = balance_at(loan, sale_date)
        penalty = early_repayment_penalty(loan, sale_date, penalty_rule)

    return SaleProceeds(
        sale_price=sale_price,
        transaction_fees=fees,
        loan_payoff=payoff,
        early_repayment_penalty=penalty,
        capital_gains_tax=capital_gains_tax,
        net_cash_to_seller=sale_price - fees - payoff - penalty - capital_gains_tax,
    )


def income_tax_allowance(years_held: int) -> Decimal:
    """6% per year held from the 6th to the 21st, 4% for the 22nd: exempt after 22."""
    if years_held < 6:
        return Decimal("0")
    if years_held <= 21:
        return Decimal("0.06") * (years_held - 5)
    return Decimal("1")


def social_charges_allowance(years_held: int) -> Decimal:
    """1.65% per year from the 6th to the 21st, 1.60% for the 22nd, 9% per
    year from the 23rd: exempt after 30."""
    if years_held < 6:
        return Decimal("0")
    if years_held <= 21:
        return Decimal("0.0165") * (years_held - 5)
    if years_held == 22:
        return Decimal("0.28")
    return min(Decimal("1"), Decimal("0.28") + Decimal("0.09") * (years_held - 22))


def surcharge(taxable_gain: Decimal) -> Decimal:
    rate = Decimal("0")
    for threshold, tier_rate in SURCHARGE_TIERS:
        if taxable_gain > threshold:
            rate = tier_rate
    return (taxable_gain * rate).quantize(TWO_PLACES, ROUND_HALF_UP)


def capital_gains_tax(
    entity_type: EntityType | str,
    acquisition_price: Decimal,
    acquisition_date: date,
    sale_price: Decimal,
    sale_date: date,
    acquisition_costs: Decimal = Decimal("0"),
    sale_costs: Decimal = Decimal("0"),
    depreciation_taken: Decimal = Decimal("0"),
    fiscal_settings: FiscalSettings | None = None,
) -> CapitalGainsResult:
    """Tax on the gain realised by a sale, by entity type.

    personal / lmnp: private gains regime, depreciation not recaptured.
    sci_is: gain on book value (cost less depreciation taken) at IS rates.
    """
    entity_type = parse_entity_type(entity_type)
    if sale_date < acquisition_date:
        raise DateOutOfRange(
            f"Sale on {sale_date.isoformat()} precedes acquisition on {acquisition_date.isoformat()}",
            field="sale_date",
        )
    for name, value in (
        ("acquisition_price", acquisition_price),
        ("sale_price", sale_price),
        ("acquisition_costs", acquisition_costs),
        ("sale_costs", sale_costs),
        ("depreciation_taken", depreciation_taken),
    ):
        if value < 0:
            raise InvalidInput(f"{name} cannot be negative, got {value}", field=name)

    fiscal_settings = resolve_fiscal_settings(entity_type, fiscal_settings)
    validate_fiscal_settings(fiscal_settings)
    years_held = relativedelta(sale_date, acquisition_date).years

    if entity_type == EntityType.SCI_IS:
        book_value = acquisition_price + acquisition_costs - depreciation_taken
        gain = sale_price - sale_costs - book_value
        tax = corporate_tax(gain, fiscal_settings)
        return CapitalGainsResult(
            entity_type=entity_type,
            years_held=years_held,
            gross_gain=gain,
            corporate_tax=tax,
            total_tax=tax,
        )

    gain = sale_price - sale_costs - acquisition_price - acquisition_costs
    if gain <= 0:
        return CapitalGainsResult(entity_type=entity_type, years_held=years_held, gross_gain=gain)

    it_allowance = income_tax_allowance(years_held)
    sc_allowance = social_charges_allowance(years_held)
    income_tax_base = gain * (1 - it_allowance)
    social_base = gain * (1 - sc_allowance)

    income_tax = (income_tax_base * PRIVATE_GAINS_INCOME_TAX_RATE).quantize(TWO_PLACES, ROUND_HALF_UP)
    social = (social_base * fiscal_settings.social_charges_rate).quantize(TWO_PLACES, ROUND_HALF_UP)
    extra = surcharge(income_tax_base)

    return CapitalGainsResult(
        entity_type=entity_type,
        years_held=years_held,
        gross_gain=gain,
        income_tax_allowance=it_allowance.quantize(FOUR_PLACES),
        social_charges_allowance=sc_allowance.quantize(FOUR_PLACES),
        income_tax=income_tax,
        social_charges=social,
        surcharge=extra,
        total_tax=income_tax + social + extra,
    )
