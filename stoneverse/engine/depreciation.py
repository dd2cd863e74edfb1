"""Component-based straight-line depreciation.

Each component depreciates base / useful_life per year, the first year
pro-rated by days held. Cumulative depreciation is capped at the base and
the final year absorbs the rounding remainder, so a full schedule sums to
the base exactly.

Pure functions. No I/O. Applies no tax rule.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal, ROUND_HALF_UP

from stoneverse.exceptions import InvalidInput
from stoneverse.models.portfolio import DepreciationComponent, Property

TWO_PLACES = Decimal("0.01")

# Default split when a property carries no explicit components
DEFAULT_LAND_PCT = Decimal("0.10")  # Land is not depreciable
BUILDING_LIFE_YEARS = 40
FURNITURE_LIFE_YEARS = 10
EQUIPMENT_LIFE_YEARS = 5
WORKS_LIFE_YEARS = 10
FURNITURE_SHARE = Decimal("0.80")  # Rest of the furnishing value is equipment


@dataclass(frozen=True)
class ComponentDepreciation:
    """Depreciation for one component in one year."""
    name: str
    year: int
    amount: Decimal
    cumulative: Decimal
    remaining_base: Decimal


@dataclass(frozen=True)
class YearlyDepreciation:
    year: int
    components: tuple[ComponentDepreciation, ...]
    total: Decimal


def validate_component(component: DepreciationComponent) -> None:
    if component.useful_life_years <= 0:
        raise InvalidInput(
            f"Useful life of {component.name!r} must be positive, got {component.useful_life_years}",
            field=f"{component.name}.useful_life_years",
        )
    if component.base < 0:
        raise InvalidInput(
            f"Depreciable base of {component.name!r} cannot be negative, got {component.base}",
            field=f"{component.name}.base",
        )


def first_year_fraction(start: date) -> Decimal:
    """Share of the start year held, from start to 31 December inclusive."""
    year_start = date(start.year, 1, 1)
    year_end = date(start.year, 12, 31)
    days_in_year = (year_end - year_start).days + 1
    days_held = (year_end - start).days + 1
    return Decimal(days_held) / Decimal(days_in_year)


def depreciation_schedule(component: DepreciationComponent) -> list[ComponentDepreciation]:
    """Year-by-year schedule until the component is fully written off."""
    validate_component(component)

    annual = component.base / Decimal(component.useful_life_years)
    fraction = first_year_fraction(component.start_date)
    first_year = component.start_date.year
    # A partial first year pushes the last slice into one extra calendar year
    final_year = first_year + component.useful_life_years - (1 if fraction == 1 else 0)

    rows: list[ComponentDepreciation] = []
    cumulative = Decimal("0")
    for year in range(first_year, final_year + 1):
        if cumulative >= component.base:
            break
        remaining = component.base - cumulative
        if year == final_year:
            amount = remaining
        else:
            nominal = annual * fraction if year == first_year else annual
            amount = min(nominal.quantize(TWO_PLACES, ROUND_HALF_UP), remaining)
        cumulative += amount
        rows.append(ComponentDepreciation(
            name=component.name,
            year=year,
            amount=amount,
            cumulative=cumulative,
            remaining_base=component.base - cumulative,
        ))
    return rows


def component_depreciation(component: DepreciationComponent, year: int) -> ComponentDepreciation:
    """Depreciation of one component for one fiscal year (0 outside its life)."""
    schedule = depreciation_schedule(component)
    for row in schedule:
        if row.year == year:
            return row

    if schedule and year > schedule[-1].year:
        cumulative = schedule[-1].cumulative
    else:
        cumulative = Decimal("0")
    return ComponentDepreciation(
        name=component.name,
        year=year,
        amount=Decimal("0"),
        cumulative=cumulative,
        remaining_base=component.base - cumulative,
    )


def yearly_depreciation(
    components: list[DepreciationComponent] | tuple[DepreciationComponent, ...],
    year: int,
) -> YearlyDepreciation:
    """Total depreciation for a fiscal year across all components."""
    detail = tuple(component_depreciation(c, year) for c in components)
    total = sum((d.amount for d in detail), Decimal("0"))
    return YearlyDepreciation(year=year, components=detail, total=total)


def total_depreciation_taken(
    components: list[DepreciationComponent] | tuple[DepreciationComponent, ...],
    through_year: int,
) -> Decimal:
    """Sum of all depreciation claimed up to and including through_year."""
    return sum(
        (component_depreciation(c, through_year).cumulative for c in components),
        Decimal("0"),
    )


def default_components(prop: Property) -> tuple[DepreciationComponent, ...]:
    """Split a property into building, works, furniture and equipment components.

    Land is excluded: building_value when given, otherwise acquisition price
    less land (land_value, or 10% of the price), works and furnishing.
    """
    furnishing = prop.furnishing_value
    works = prop.works_value
    if prop.building_value is not None:
        building = prop.building_value
    else:
        land = prop.land_value if prop.land_value is not None else (
            prop.acquisition_price * DEFAULT_LAND_PCT
        ).quantize(TWO_PLACES, ROUND_HALF_UP)
        building = max(Decimal("0"), prop.acquisition_price - land - works - furnishing)

    components = [DepreciationComponent(
        name="building",
        base=building,
        useful_life_years=BUILDING_LIFE_YEARS,
        start_date=prop.acquisition_date,
    )]
    if works > 0:
        components.append(DepreciationComponent(
            name="works",
            base=works,
            useful_life_years=WORKS_LIFE_YEARS,
            start_date=prop.acquisition_date,
        ))
    if furnishing > 0:
        furniture = (furnishing * FURNITURE_SHARE).quantize(TWO_PLACES, ROUND_HALF_UP)
        components.append(DepreciationComponent(
            name="furniture",
            base=furniture,
            useful_life_years=FURNITURE_LIFE_YEARS,
            start_date=prop.acquisition_date,
        ))
        components.append(DepreciationComponent(
            name="equipment",
            base=furnishing - furniture,
            useful_life_years=EQUIPMENT_LIFE_YEARS,
            start_date=prop.acquisition_date,
        ))
    return tuple(components)


def property_components(prop: Property) -> tuple[DepreciationComponent, ...]:
    """Components of a property, validated against its acquisition price."""
    components = prop.components or default_components(prop)
    for c in components:
        validate_component(c)
    total_base = sum((c.base for c in components), Decimal("0"))
    if total_base > prop.acquisition_price:
        raise InvalidInput(
            f"Depreciable bases ({total_base}) exceed acquisition price "
            f"({prop.acquisition_price}) of property {prop.id}",
            field="components",
        )
    return components
