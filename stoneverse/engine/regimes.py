"""Regime comparison: the same properties taxed as personal, LMNP and SCI IS.

Pure functions. No I/O.
"""

import logging
from collections.abc import Iterable
from decimal import Decimal

from stoneverse.engine.tax import compute_entity_fiscal_year
from stoneverse.exceptions import InvalidInput
from stoneverse.models.fiscal import DeficitCarryforward, FiscalSettings
from stoneverse.models.portfolio import Entity, EntityType, Property
from stoneverse.models.results import RegimeComparison

logger = logging.getLogger(__name__)


def compare_regimes(
    properties: Iterable[Property],
    fiscal_year: int,
    prior_deficit: DeficitCarryforward | Decimal | None = None,
    fiscal_settings: dict[EntityType, FiscalSettings] | None = None,
) -> list[RegimeComparison]:
    """Tax result of one fiscal year under every entity type, lowest tax first.

    Ties keep EntityType declaration order.

    Args:
        properties: Properties to hold under each regime
        fiscal_year: Year being compared
        prior_deficit: Opening carryforward applied under every regime
        fiscal_settings: Rate overrides per entity type
    """
    properties = tuple(properties)
    if not properties:
        raise InvalidInput("At least one property is required", field="properties")
    fiscal_settings = fiscal_settings or {}

    comparisons = []
    for entity_type in EntityType:
        entity = Entity(
            id=f"compare-{entity_type.value}",
            name=f"{entity_type.value} comparison",
            entity_type=entity_type,
            properties=properties,
        )
        result = compute_entity_fiscal_year(
            entity,
            fiscal_year,
            prior_deficit=prior_deficit,
            fiscal_settings=fiscal_settings.get(entity_type),
        )
        comparisons.append(RegimeComparison(entity_type=entity_type, result=result))

    comparisons.sort(key=lambda c: c.tax_due)
    logger.debug(
        "Regimes for %d: %s",
        fiscal_year,
        ", ".join(f"{c.entity_type.value}={c.tax_due}" for c in comparisons),
    )
    return comparisons


def regime_savings(comparisons: list[RegimeComparison], current: EntityType) -> Decimal:
    """Tax saved per year by moving from `current` to the cheapest regime."""
    by_type = {c.entity_type: c for c in comparisons}
    if current not in by_type:
        raise InvalidInput(f"No comparison for {current.value}", field="entity_type")
    return by_type[current].tax_due - min(c.tax_due for c in comparisons)
