from datetime import date
from decimal import Decimal

import pytest

from stoneverse.engine.depreciation import (
    component_depreciation,
    default_components,
    depreciation_schedule,
    first_year_fraction,
    property_components,
    total_depreciation_taken,
    yearly_depreciation,
)
from stoneverse.exceptions import InvalidInput
from stoneverse.models.portfolio import DepreciationComponent, Property


def _component(base="100000", life=10, start=date(2023, 6, 15), name="building"):
    return DepreciationComponent(
        name=name, base=Decimal(base), useful_life_years=life, start_date=start,
    )


class TestFirstYearFraction:
    def test_first_of_january_is_full_year(self):
        assert first_year_fraction(date(2024, 1, 1)) == Decimal("1")

    def test_last_day_of_year(self):
        assert first_year_fraction(date(2023, 12, 31)) == Decimal(1) / Decimal(365)

    def test_leap_year(self):
        assert first_year_fraction(date(2024, 7, 1)) == Decimal(184) / Decimal(366)


class TestDepreciationSchedule:
    def test_pro_rated_first_year(self):
        """15 June start: 200 of 365 days held."""
        rows = depreciation_schedule(_component())
        assert rows[0].year == 2023
        assert rows[0].amount == Decimal("5479.45")

    def test_full_years_after_first(self):
        rows = depreciation_schedule(_component())
        assert all(r.amount == Decimal("10000.00") for r in rows[1:-1])

    def test_partial_start_spills_into_extra_year(self):
        rows = depreciation_schedule(_component())
        assert len(rows) == 11
        assert rows[-1].year == 2033

    def test_january_start_has_exact_life(self):
        rows = depreciation_schedule(_component(start=date(2024, 1, 1)))
        assert len(rows) == 10
        assert rows[-1].year == 2033

    def test_total_equals_base_exactly(self):
        for base, life, start in [
            ("100000", 10, date(2023, 6, 15)),
            ("333333.33", 7, date(2021, 3, 3)),
            ("1000", 3, date(2024, 12, 31)),
        ]:
            rows = depreciation_schedule(_component(base, life, start))
            assert sum(r.amount for r in rows) == Decimal(base)
            assert rows[-1].remaining_base == Decimal("0")

    def test_cumulative_never_exceeds_base(self):
        rows = depreciation_schedule(_component("333333.33", 7, date(2021, 3, 3)))
        for r in rows:
            assert r.cumulative <= Decimal("333333.33")
            assert r.amount >= 0

    def test_zero_base(self):
        assert depreciation_schedule(_component(base="0")) == []


class TestComponentDepreciation:
    def test_before_start_year(self):
        row = component_depreciation(_component(), 2022)
        assert row.amount == Decimal("0")
        assert row.cumulative == Decimal("0")

    def test_after_full_write_off(self):
        row = component_depreciation(_component(), 2040)
        assert row.amount == Decimal("0")
        assert row.cumulative == Decimal("100000")
        assert row.remaining_base == Decimal("0")

    def test_zero_useful_life(self):
        with pytest.raises(InvalidInput) as exc:
            component_depreciation(_component(life=0), 2024)
        assert exc.value.field == "building.useful_life_years"

    def test_negative_base(self):
        with pytest.raises(InvalidInput) as exc:
            component_depreciation(_component(base="-1", name="works"), 2024)
        assert exc.value.field == "works.base"


class TestYearlyDepreciation:
    def test_sum_across_components(self):
        components = [
            _component("360000", 30, date(2020, 1, 1)),
            _component("15000", 5, date(2020, 1, 1), name="furniture"),
        ]
        year = yearly_depreciation(components, 2024)
        assert year.total == Decimal("15000.00")
        assert [c.name for c in year.components] == ["building", "furniture"]

    def test_component_dropping_out(self):
        components = [
            _component("360000", 30, date(2020, 1, 1)),
            _component("15000", 5, date(2020, 1, 1), name="furniture"),
        ]
        assert yearly_depreciation(components, 2025).total == Decimal("12000.00")

    def test_total_taken(self):
        components = [_component("360000", 30, date(2020, 1, 1))]
        assert total_depreciation_taken(components, 2024) == Decimal("60000.00")


class TestPropertyComponents:
    def test_default_split(self):
        prop = Property(
            id="p",
            acquisition_price=Decimal("500000"),
            current_value=Decimal("500000"),
            acquisition_date=date(2024, 1, 1),
            furnishing_value=Decimal("20000"),
        )
        components = {c.name: c for c in default_components(prop)}
        assert components["building"].base == Decimal("430000.00")
        assert components["building"].useful_life_years == 40
        assert components["furniture"].base == Decimal("16000.00")
        assert components["equipment"].base == Decimal("4000.00")
        assert "works" not in components

    def test_works_component(self):
        """Capitalised works come out of the building base and run over 10 years."""
        prop = Property(
            id="p",
            acquisition_price=Decimal("500000"),
            current_value=Decimal("500000"),
            acquisition_date=date(2024, 1, 1),
            furnishing_value=Decimal("20000"),
            works_value=Decimal("30000"),
        )
        components = default_components(prop)
        by_name = {c.name: c for c in components}
        # 500,000 - 50,000 land - 30,000 works - 20,000 furnishing
        assert by_name["building"].base == Decimal("400000.00")
        assert by_name["works"].base == Decimal("30000")
        assert by_name["works"].useful_life_years == 10

        year = yearly_depreciation(components, 2024)
        assert year.total == Decimal("15400.00")  # 10,000 + 3,000 + 1,600 + 800
        assert component_depreciation(by_name["works"], 2033).cumulative == Decimal("30000")
        assert component_depreciation(by_name["works"], 2034).amount == Decimal("0")

    def test_explicit_land_value(self, personal_property):
        components = default_components(personal_property)
        assert len(components) == 1
        assert components[0].base == Decimal("400000")

    def test_explicit_components_win(self, lmnp_property):
        assert property_components(lmnp_property) == lmnp_property.components

    def test_bases_above_price(self):
        prop = Property(
            id="p",
            acquisition_price=Decimal("100000"),
            current_value=Decimal("100000"),
            acquisition_date=date(2024, 1, 1),
            components=(_component("90000", 20), _component("20000", 5, name="works")),
        )
        with pytest.raises(InvalidInput) as exc:
            property_components(prop)
        assert exc.value.field == "components"
