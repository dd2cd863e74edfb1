"""Fiscal summary: composes per-entity tax results and portfolio metrics.

Each entity is computed independently. An entity that fails validation is
reported in `failures` while the others still produce results; totals and
metrics cover the successful entities only.

Pure computation. No I/O. Entities in, PortfolioSummary out.
"""

import logging
from collections.abc import Iterable
from datetime import date
from decimal import Decimal

from stoneverse.engine.debt import loan_schedule, outstanding_balance
from stoneverse.engine.portfolio import metric_alerts, portfolio_metrics, validate_property_values
from stoneverse.engine.tax import compute_entity_fiscal_year, parse_entity_type
from stoneverse.exceptions import InvalidInput, StoneverseError
from stoneverse.models.fiscal import DeficitCarryforward, FiscalSettings
from stoneverse.models.portfolio import Entity, EntityType
from stoneverse.models.results import (
    AggregatedResults,
    EntityFailure,
    FiscalYearResult,
    PortfolioSummary,
)

logger = logging.getLogger(__name__)


def aggregate_results(results: Iterable[FiscalYearResult]) -> AggregatedResults:
    totals = {
        "total_rental_income": Decimal("0"),
        "total_expenses": Decimal("0"),
        "total_depreciation": Decimal("0"),
        "total_taxable_result": Decimal("0"),
        "total_tax_due": Decimal("0"),
    }
    for r in results:
        totals["total_rental_income"] += r.rental_income_total
        totals["total_expenses"] += r.expense_total
        totals["total_depreciation"] += r.depreciation_total
        totals["total_taxable_result"] += r.taxable_result
        totals["total_tax_due"] += r.tax_due
    return AggregatedResults(**totals)


def _check_entity(entity: Entity, as_of: date) -> None:
    """Surface the metric inputs that can fail while the failure can still be pinned to the entity."""
    for prop in entity.properties:
        validate_property_values(prop)
    for loan in entity.loans:
        loan_schedule(loan)
        if as_of >= loan.start_date:
            outstanding_balance(loan, as_of)


def compute_portfolio_summary(
    entities: list[Entity],
    fiscal_year: int,
    as_of: date,
    prior_deficits: dict[str, DeficitCarryforward | Decimal] | None = None,
    fiscal_settings: dict[EntityType, FiscalSettings] | None = None,
    ltv_threshold: Decimal | None = None,
    dscr_threshold: Decimal | None = None,
) -> PortfolioSummary:
    """Portfolio-level summary for one fiscal year.

    Args:
        entities: Holding entities with their properties, loans and transactions
        fiscal_year: Year being declared
        as_of: Date at which loan balances are read (never the wall clock)
        prior_deficits: Carryforward per entity id from the previous year
        fiscal_settings: Rate table overrides per entity type
        ltv_threshold, dscr_threshold: Alert policy, defaults from settings
    """
    ids = [e.id for e in entities]
    if len(ids) != len(set(ids)):
        raise InvalidInput("Entity ids must be unique within a portfolio", field="entities")

    prior_deficits = prior_deficits or {}
    fiscal_settings = fiscal_settings or {}

    results: dict[str, FiscalYearResult] = {}
    failures: dict[str, EntityFailure] = {}
    for entity in entities:
        try:
            entity_type = parse_entity_type(entity.entity_type)
            _check_entity(entity, as_of)
            results[entity.id] = compute_entity_fiscal_year(
                entity,
                fiscal_year,
                prior_deficit=prior_deficits.get(entity.id),
                fiscal_settings=fiscal_settings.get(entity_type),
            )
        except StoneverseError as e:
            logger.warning("Fiscal calculation failed for entity %s: %s", entity.id, e)
            failures[entity.id] = EntityFailure(
                entity_id=entity.id,
                code=e.code,
                message=e.message,
                field=e.field,
            )

    succeeded = [e for e in entities if e.id in results]
    metrics = portfolio_metrics(succeeded, results, fiscal_year, as_of)

    logger.info(
        "Fiscal summary %d: %d entities computed, %d failed",
        fiscal_year, len(results), len(failures),
    )

    return PortfolioSummary(
        fiscal_year=fiscal_year,
        entity_results=results,
        failures=failures,
        aggregated=aggregate_results(results.values()),
        metrics=metrics,
        alerts=metric_alerts(metrics, ltv_threshold, dscr_threshold),
    )
