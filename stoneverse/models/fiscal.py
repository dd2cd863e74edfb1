from dataclasses import dataclass
from decimal import Decimal

from stoneverse.exceptions import InvalidInput


@dataclass(frozen=True)
class FiscalSettings:
    """Rate table for one entity type and one fiscal year.

    A field left as None takes the configured default for the entity type
    (see engine.tax.resolve_fiscal_settings), so a partial override never
    zeroes the rates it does not mention.
    """
    income_tax_rate: Decimal | None = None
    social_charges_rate: Decimal | None = None
    corporate_reduced_rate: Decimal | None = None
    corporate_standard_rate: Decimal | None = None
    corporate_reduced_threshold: Decimal | None = None
    dividend_tax_rate: Decimal | None = None
    dividend_social_charges_rate: Decimal | None = None
    deficit_carryforward_years: int | None = None  # None = unlimited

    @property
    def personal_rate(self) -> Decimal:
        return self.income_tax_rate + self.social_charges_rate

    @property
    def dividend_rate(self) -> Decimal:
        return self.dividend_tax_rate + self.dividend_social_charges_rate


@dataclass(frozen=True)
class DeficitVintage:
    year: int  # Fiscal year the loss arose in
    amount: Decimal  # Positive, still available


@dataclass(frozen=True)
class DeficitCarryforward:
    """Losses carried forward to offset future results of the same entity.

    Immutable: every operation returns a new value so the caller threads it
    from one fiscal year into the next.
    """
    vintages: tuple[DeficitVintage, ...] = ()

    @classmethod
    def opening(cls, amount: Decimal, year: int) -> "DeficitCarryforward":
        """Wrap a single opening balance, e.g. migrated from a prior system."""
        if amount < 0:
            raise InvalidInput("Carried-forward deficit cannot be negative", field="prior_deficit")
        if amount == 0:
            return cls()
        return cls((DeficitVintage(year=year, amount=amount),))

    @property
    def total(self) -> Decimal:
        return sum((v.amount for v in self.vintages), Decimal("0"))

    def add(self, year: int, amount: Decimal) -> "DeficitCarryforward":
        if amount <= 0:
            return self
        merged = [v for v in self.vintages if v.year != year]
        existing = sum((v.amount for v in self.vintages if v.year == year), Decimal("0"))
        merged.append(DeficitVintage(year=year, amount=existing + amount))
        return DeficitCarryforward(tuple(sorted(merged, key=lambda v: v.year)))

    def expire(self, fiscal_year: int, max_years: int | None) -> "DeficitCarryforward":
        """Drop vintages no longer usable in `fiscal_year`."""
        if max_years is None:
            return self
        return DeficitCarryforward(
            tuple(v for v in self.vintages if fiscal_year - v.year <= max_years)
        )

    def consume(self, amount: Decimal) -> tuple[Decimal, "DeficitCarryforward"]:
        """Offset up to `amount`, oldest vintage first.

        Returns (amount used, remaining carryforward).
        """
        remaining_need = max(amount, Decimal("0"))
        used = Decimal("0")
        kept: list[DeficitVintage] = []
        for v in sorted(self.vintages, key=lambda v: v.year):
            take = min(v.amount, remaining_need)
            used += take
            remaining_need -= take
            if v.amount - take > 0:
                kept.append(DeficitVintage(year=v.year, amount=v.amount - take))
        return used, DeficitCarryforward(tuple(kept))
