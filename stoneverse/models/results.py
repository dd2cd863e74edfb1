from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum

from stoneverse.models.fiscal import DeficitCarryforward
from stoneverse.models.portfolio import EntityType


class NoValue(Enum):
    """A ratio whose denominator is legitimately zero. Not an error."""
    UNDEFINED = "undefined"


NO_VALUE = NoValue.UNDEFINED


@dataclass(frozen=True)
class FiscalYearResult:
    entity_type: EntityType
    fiscal_year: int
    rental_income_total: Decimal
    expense_total: Decimal
    depreciation_total: Decimal
    taxable_result: Decimal  # Before deficit offset; negative = loss
    deficit_used: Decimal
    taxable_base: Decimal  # After deficit offset, what the rates apply to
    tax_due: Decimal
    carried_forward_deficit: DeficitCarryforward

    @property
    def after_tax_result(self) -> Decimal:
        return self.taxable_base - self.tax_due

    @property
    def effective_tax_rate(self) -> Decimal:
        if self.taxable_result <= 0:
            return Decimal("0")
        return (self.tax_due / self.taxable_result).quantize(Decimal("0.0001"))


@dataclass(frozen=True)
class DividendTaxResult:
    after_tax_result: Decimal
    distributed: Decimal
    retained: Decimal
    dividend_tax: Decimal
    social_charges: Decimal
    total_tax: Decimal
    net_to_partners: Decimal


@dataclass(frozen=True)
class AggregatedResults:
    total_rental_income: Decimal = Decimal("0")
    total_expenses: Decimal = Decimal("0")
    total_depreciation: Decimal = Decimal("0")
    total_taxable_result: Decimal = Decimal("0")
    total_tax_due: Decimal = Decimal("0")


@dataclass(frozen=True)
class PortfolioMetrics:
    total_value: Decimal
    total_debt: Decimal
    net_worth: Decimal
    debt_service: Decimal
    operating_cash_flow: Decimal
    ltv: Decimal | NoValue
    dscr: Decimal | NoValue
    weighted_average_rate: Decimal | NoValue
    gross_rental_yield: Decimal | NoValue


@dataclass(frozen=True)
class MetricAlerts:
    ltv_high: bool = False
    dscr_low: bool = False

    @property
    def any(self) -> bool:
        return self.ltv_high or self.dscr_low


@dataclass(frozen=True)
class EntityFailure:
    entity_id: str
    code: str
    message: str
    field: str | None = None


@dataclass(frozen=True)
class PortfolioSummary:
    fiscal_year: int
    entity_results: dict[str, FiscalYearResult] = field(default_factory=dict)
    failures: dict[str, EntityFailure] = field(default_factory=dict)
    aggregated: AggregatedResults = field(default_factory=AggregatedResults)
    metrics: PortfolioMetrics | None = None
    alerts: MetricAlerts = field(default_factory=MetricAlerts)


@dataclass(frozen=True)
class SaleProceeds:
    sale_price: Decimal
    transaction_fees: Decimal
    loan_payoff: Decimal  # CRD at the sale date
    early_repayment_penalty: Decimal
    capital_gains_tax: Decimal
    net_cash_to_seller: Decimal


@dataclass(frozen=True)
class CapitalGainsResult:
    entity_type: EntityType
    years_held: int
    gross_gain: Decimal
    income_tax_allowance: Decimal = Decimal("0")  # Fraction of the gain exempted
    social_charges_allowance: Decimal = Decimal("0")
    income_tax: Decimal = Decimal("0")
    social_charges: Decimal = Decimal("0")
    surcharge: Decimal = Decimal("0")
    corporate_tax: Decimal = Decimal("0")
    total_tax: Decimal = Decimal("0")


@dataclass(frozen=True)
class RegimeComparison:
    """The same properties and year computed under one entity type."""
    entity_type: EntityType
    result: FiscalYearResult

    @property
    def tax_due(self) -> Decimal:
        return self.result.tax_due

    @property
    def tax_burden_rate(self) -> Decimal:
        """Tax due over gross rental income."""
        if self.result.rental_income_total <= 0:
            return Decimal("0")
        return (self.result.tax_due / self.result.rental_income_total).quantize(Decimal("0.0001"))


@dataclass(frozen=True)
class YearlyCashFlow:
    year: int
    income: Decimal
    operating_expenses: Decimal  # Deductible or not
    capex: Decimal
    debt_service: Decimal  # Scheduled payments due in the year
    tax_due: Decimal

    @property
    def net_cash_flow(self) -> Decimal:
        return self.income - self.operating_expenses - self.capex - self.debt_service - self.tax_due


@dataclass(frozen=True)
class InvestmentProjection:
    property_id: str
    entity_type: EntityType
    equity_invested: Decimal
    years: tuple[YearlyCashFlow, ...]
    fiscal_results: tuple[FiscalYearResult, ...]
    capital_gains: CapitalGainsResult
    sale: SaleProceeds

    @property
    def cash_flows(self) -> list[Decimal]:
        """t0 equity outflow, one flow per year, sale proceeds added to the last."""
        flows = [-self.equity_invested] + [y.net_cash_flow for y in self.years]
        flows[-1] += self.sale.net_cash_to_seller
        return flows


@dataclass(frozen=True)
class InvestmentReturns:
    npv: Decimal
    irr: Decimal
    equity_multiple: Decimal | NoValue
