"""Entity tax: taxable result and tax due per entity type and fiscal year.

- personal: rental income - deductible expenses (depreciation not deductible),
  taxed at income tax + social charges.
- lmnp: income - expenses - depreciation, taxed at income tax + social charges.
- sci_is: income - expenses - depreciation, bracketed corporate tax (IS).

A loss never reduces other income. It is carried forward and consumed
oldest-first by later results of the same entity. The caller threads the
carryforward from one year into the next; nothing is retained here.

Pure functions: dataclasses in, dataclasses out. No I/O.
"""

import logging
from collections.abc import Callable
from dataclasses import fields, replace
from decimal import Decimal, ROUND_HALF_UP

from stoneverse.config import settings
from stoneverse.engine.cashflow import deductible_expenses, income_total, validate_transactions
from stoneverse.engine.debt import interest_paid_in_year, loan_schedule
from stoneverse.engine.depreciation import property_components, yearly_depreciation
from stoneverse.exceptions import InvalidFiscalSettings, InvalidInput, UnknownEntityType
from stoneverse.models.fiscal import DeficitCarryforward, FiscalSettings
from stoneverse.models.portfolio import Entity, EntityType
from stoneverse.models.results import DividendTaxResult, FiscalYearResult

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal("0.01")


def parse_entity_type(tag: EntityType | str) -> EntityType:
    if isinstance(tag, EntityType):
        return tag
    try:
        return EntityType(tag)
    except ValueError:
        raise UnknownEntityType(tag) from None


def default_fiscal_settings(entity_type: EntityType | str) -> FiscalSettings:
    """Configured default rate table for an entity type.

    Every rate is filled so a partial override merged on top stays complete.
    """
    parse_entity_type(entity_type)
    return FiscalSettings(
        income_tax_rate=settings.income_tax_rate,
        social_charges_rate=settings.social_charges_rate,
        corporate_reduced_rate=settings.corporate_reduced_rate,
        corporate_standard_rate=settings.corporate_standard_rate,
        corporate_reduced_threshold=settings.corporate_reduced_threshold,
        dividend_tax_rate=settings.dividend_tax_rate,
        dividend_social_charges_rate=settings.dividend_social_charges_rate,
    )


def resolve_fiscal_settings(
    entity_type: EntityType | str,
    overrides: FiscalSettings | None = None,
) -> FiscalSettings:
    """Defaults for the entity type with every field set in `overrides` on top."""
    defaults = default_fiscal_settings(entity_type)
    if overrides is None:
        return defaults
    changes = {
        f.name: getattr(overrides, f.name)
        for f in fields(overrides)
        if getattr(overrides, f.name) is not None
    }
    return replace(defaults, **changes)


def validate_fiscal_settings(fiscal_settings: FiscalSettings) -> None:
    for name in (
        "income_tax_rate",
        "social_charges_rate",
        "corporate_reduced_rate",
        "corporate_standard_rate",
        "corporate_reduced_threshold",
        "dividend_tax_rate",
        "dividend_social_charges_rate",
    ):
        value = getattr(fiscal_settings, name)
        if value is None:
            raise InvalidFiscalSettings(f"{name} is not set", field=name)
        if value < 0:
            raise InvalidFiscalSettings(f"{name} cannot be negative, got {value}", field=name)
    years = fiscal_settings.deficit_carryforward_years
    if years is not None and years < 0:
        raise InvalidFiscalSettings(
            f"deficit_carryforward_years cannot be negative, got {years}",
            field="deficit_carryforward_years",
        )


# ---- Per-entity-type rules ----

def _result_before_depreciation(income: Decimal, expenses: Decimal, depreciation: Decimal) -> Decimal:
    return income - expenses


def _result_after_depreciation(income: Decimal, expenses: Decimal, depreciation: Decimal) -> Decimal:
    return income - expenses - depreciation


def income_tax(base: Decimal, fiscal_settings: FiscalSettings) -> Decimal:
    """Flat marginal income tax + social charges (personal and LMNP)."""
    if base <= 0:
        return Decimal("0")
    return (base * fiscal_settings.personal_rate).quantize(TWO_PLACES, ROUND_HALF_UP)


def corporate_tax(base: Decimal, fiscal_settings: FiscalSettings) -> Decimal:
    """IS: reduced rate up to the threshold, standard rate above it."""
    if base <= 0:
        return Decimal("0")
    threshold = fiscal_settings.corporate_reduced_threshold
    reduced = min(base, threshold) * fiscal_settings.corporate_reduced_rate
    standard = max(Decimal("0"), base - threshold) * fiscal_settings.corporate_standard_rate
    return (reduced + standard).quantize(TWO_PLACES, ROUND_HALF_UP)


_ResultRule = Callable[[Decimal, Decimal, Decimal], Decimal]
_TaxRule = Callable[[Decimal, FiscalSettings], Decimal]

_TAX_RULES: dict[EntityType, tuple[_ResultRule, _TaxRule]] = {
    EntityType.PERSONAL: (_result_before_depreciation, income_tax),
    EntityType.LMNP: (_result_after_depreciation, income_tax),
    EntityType.SCI_IS: (_result_after_depreciation, corporate_tax),
}

_missing_rules = set(EntityType) - set(_TAX_RULES)
if _missing_rules:
    raise RuntimeError(f"No tax rules for entity types: {sorted(t.value for t in _missing_rules)}")


def _as_carryforward(
    prior_deficit: DeficitCarryforward | Decimal | None, fiscal_year: int
) -> DeficitCarryforward:
    if prior_deficit is None:
        return DeficitCarryforward()
    if isinstance(prior_deficit, DeficitCarryforward):
        return prior_deficit
    return DeficitCarryforward.opening(Decimal(prior_deficit), fiscal_year - 1)


def compute_fiscal_year(
    entity_type: EntityType | str,
    fiscal_year: int,
    rental_income: Decimal,
    expenses: Decimal,
    depreciation: Decimal,
    prior_deficit: DeficitCarryforward | Decimal | None = None,
    fiscal_settings: FiscalSettings | None = None,
) -> FiscalYearResult:
    """Taxable result and tax due for one entity and one fiscal year.

    Args:
        entity_type: personal, lmnp or sci_is
        fiscal_year: Calendar year being declared
        rental_income: Gross income of the year
        expenses: Deductible expenses of the year (positive)
        depreciation: Depreciation of the year (reported for personal, not deducted)
        prior_deficit: Carryforward returned by the previous year's result
        fiscal_settings: Rate overrides; unset fields take the configured defaults
    """
    entity_type = parse_entity_type(entity_type)
    for name, value in (
        ("rental_income", rental_income),
        ("expenses", expenses),
        ("depreciation", depreciation),
    ):
        if value < 0:
            raise InvalidInput(f"{name} cannot be negative, got {value}", field=name)

    fiscal_settings = resolve_fiscal_settings(entity_type, fiscal_settings)
    validate_fiscal_settings(fiscal_settings)

    carryforward = _as_carryforward(prior_deficit, fiscal_year).expire(
        fiscal_year, fiscal_settings.deficit_carryforward_years
    )
    result_rule, tax_rule = _TAX_RULES[entity_type]
    taxable = result_rule(rental_income, expenses, depreciation)

    if taxable < 0:
        deficit_used = Decimal("0")
        base = Decimal("0")
        carryforward = carryforward.add(fiscal_year, -taxable)
    else:
        deficit_used, carryforward = carryforward.consume(taxable)
        base = taxable - deficit_used

    tax_due = tax_rule(base, fiscal_settings)

    logger.debug(
        "%s %d: taxable %s, deficit used %s, tax %s, carried forward %s",
        entity_type.value, fiscal_year, taxable, deficit_used, tax_due, carryforward.total,
    )

    return FiscalYearResult(
        entity_type=entity_type,
        fiscal_year=fiscal_year,
        rental_income_total=rental_income,
        expense_total=expenses,
        depreciation_total=depreciation,
        taxable_result=taxable,
        deficit_used=deficit_used,
        taxable_base=base,
        tax_due=tax_due,
        carried_forward_deficit=carryforward,
    )


def dividend_tax(
    after_tax_result: Decimal,
    distributed: Decimal,
    fiscal_settings: FiscalSettings | None = None,
) -> DividendTaxResult:
    """Flat tax on the distributed share of an SCI IS after-tax result.

    A separate pass: never part of the company's own tax due.
    """
    fiscal_settings = resolve_fiscal_settings(EntityType.SCI_IS, fiscal_settings)
    validate_fiscal_settings(fiscal_settings)
    if distributed < 0:
        raise InvalidInput(f"Distributed amount cannot be negative, got {distributed}", field="distributed")
    if distributed > max(after_tax_result, Decimal("0")):
        raise InvalidInput(
            f"Cannot distribute {distributed} out of an after-tax result of {after_tax_result}",
            field="distributed",
        )

    flat_tax = (distributed * fiscal_settings.dividend_tax_rate).quantize(TWO_PLACES, ROUND_HALF_UP)
    social = (distributed * fiscal_settings.dividend_social_charges_rate).quantize(
        TWO_PLACES, ROUND_HALF_UP
    )
    total = flat_tax + social
    return DividendTaxResult(
        after_tax_result=after_tax_result,
        distributed=distributed,
        retained=after_tax_result - distributed,
        dividend_tax=flat_tax,
        social_charges=social,
        total_tax=total,
        net_to_partners=distributed - total,
    )


def entity_year_totals(
    entity: Entity,
    fiscal_year: int,
    deduct_loan_interest: bool = True,
) -> tuple[Decimal, Decimal, Decimal]:
    """(income, deductible expenses, depreciation) summed over the entity's properties.

    Loan interest due in the year is a deductible expense; principal is not.
    """
    income = Decimal("0")
    expenses = Decimal("0")
    depreciation = Decimal("0")
    for prop in entity.properties:
        validate_transactions(prop)
        income += income_total(prop.transactions, fiscal_year)
        expenses += deductible_expenses(prop.transactions, fiscal_year)
        if deduct_loan_interest and prop.loan is not None:
            expenses += interest_paid_in_year(loan_schedule(prop.loan), fiscal_year)
        depreciation += yearly_depreciation(property_components(prop), fiscal_year).total
    return income, expenses, depreciation


def compute_entity_fiscal_year(
    entity: Entity,
    fiscal_year: int,
    prior_deficit: DeficitCarryforward | Decimal | None = None,
    fiscal_settings: FiscalSettings | None = None,
    deduct_loan_interest: bool = True,
) -> FiscalYearResult:
    """Gather an entity's facts for the year and compute its tax result."""
    entity_type = parse_entity_type(entity.entity_type)
    income, expenses, depreciation = entity_year_totals(entity, fiscal_year, deduct_loan_interest)
    return compute_fiscal_year(
        entity_type=entity_type,
        fiscal_year=fiscal_year,
        rental_income=income,
        expenses=expenses,
        depreciation=depreciation,
        prior_deficit=prior_deficit,
        fiscal_settings=fiscal_settings,
    )


def project_fiscal_years(
    entity: Entity,
    years: list[int] | range,
    opening_deficit: DeficitCarryforward | Decimal | None = None,
    fiscal_settings: FiscalSettings | None = None,
) -> list[FiscalYearResult]:
    """Results for consecutive years, each fed the previous carryforward."""
    results: list[FiscalYearResult] = []
    carryforward = opening_deficit
    for year in years:
        result = compute_entity_fiscal_year(entity, year, carryforward, fiscal_settings)
        results.append(result)
        carryforward = result.carried_forward_deficit
    return results
