"""Pydantic schemas for API request/response models."""

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, Field

from stoneverse.models.fiscal import DeficitCarryforward, DeficitVintage, FiscalSettings
from stoneverse.models.portfolio import (
    DepreciationComponent,
    Entity,
    Loan,
    PenaltyRule,
    Property,
    Transaction,
    TransactionType,
)


# ---- Request schemas ----

class PenaltyRuleSchema(BaseModel):
    interest_months: int = 6
    balance_pct: Decimal = Decimal("0.03")
    fixed_amount: Decimal | None = None
    window_months: int | None = None

    def to_domain(self) -> PenaltyRule:
        return PenaltyRule(**self.model_dump())


class LoanSchema(BaseModel):
    id: str
    principal: Decimal
    annual_rate: Decimal = Field(..., description="Fraction, e.g. 0.035")
    term_months: int
    start_date: date
    current_balance: Decimal | None = Field(None, description="Lender-reported CRD override")
    penalty_rule: PenaltyRuleSchema | None = None
    lender: str = ""

    def to_domain(self) -> Loan:
        return Loan(
            id=self.id,
            principal=self.principal,
            annual_rate=self.annual_rate,
            term_months=self.term_months,
            start_date=self.start_date,
            current_balance=self.current_balance,
            penalty_rule=self.penalty_rule.to_domain() if self.penalty_rule else None,
            lender=self.lender,
        )


class TransactionSchema(BaseModel):
    property_id: str
    transaction_type: TransactionType
    amount: Decimal
    date: date
    tax_deductible: bool = True
    description: str = ""


class ComponentSchema(BaseModel):
    name: str
    base: Decimal
    useful_life_years: int
    start_date: date


class PropertySchema(BaseModel):
    id: str
    acquisition_price: Decimal
    current_value: Decimal
    acquisition_date: date
    land_value: Decimal | None = None
    building_value: Decimal | None = None
    furnishing_value: Decimal = Decimal("0")
    works_value: Decimal = Decimal("0")
    loan: LoanSchema | None = None
    transactions: list[TransactionSchema] = []
    components: list[ComponentSchema] = []
    address: str = ""

    def to_domain(self) -> Property:
        return Property(
            id=self.id,
            acquisition_price=self.acquisition_price,
            current_value=self.current_value,
            acquisition_date=self.acquisition_date,
            land_value=self.land_value,
            building_value=self.building_value,
            furnishing_value=self.furnishing_value,
            works_value=self.works_value,
            loan=self.loan.to_domain() if self.loan else None,
            transactions=tuple(Transaction(**t.model_dump()) for t in self.transactions),
            components=tuple(DepreciationComponent(**c.model_dump()) for c in self.components),
            address=self.address,
        )


class EntitySchema(BaseModel):
    id: str
    name: str
    # Kept as a raw tag so an unknown type fails that entity only
    entity_type: str = Field(..., description="personal, lmnp or sci_is")
    properties: list[PropertySchema] = []

    def to_domain(self) -> Entity:
        return Entity(
            id=self.id,
            name=self.name,
            entity_type=self.entity_type,
            properties=tuple(p.to_domain() for p in self.properties),
        )


class FiscalSettingsSchema(BaseModel):
    """Partial rate overrides; omitted fields take the defaults for the entity type."""
    income_tax_rate: Decimal | None = None
    social_charges_rate: Decimal | None = None
    corporate_reduced_rate: Decimal | None = None
    corporate_standard_rate: Decimal | None = None
    corporate_reduced_threshold: Decimal | None = None
    dividend_tax_rate: Decimal | None = None
    dividend_social_charges_rate: Decimal | None = None
    deficit_carryforward_years: int | None = None

    def to_domain(self) -> FiscalSettings:
        return FiscalSettings(**self.model_dump())


class DeficitVintageSchema(BaseModel):
    year: int
    amount: Decimal


def to_carryforward(
    prior: Decimal | list[DeficitVintageSchema] | None,
) -> DeficitCarryforward | Decimal | None:
    if prior is None or isinstance(prior, Decimal):
        return prior
    return DeficitCarryforward(
        tuple(sorted((DeficitVintage(v.year, v.amount) for v in prior), key=lambda v: v.year))
    )


class EntityFiscalYearRequest(BaseModel):
    entity: EntitySchema
    fiscal_year: int
    prior_deficit: Decimal | list[DeficitVintageSchema] | None = None
    fiscal_settings: FiscalSettingsSchema | None = None


class PortfolioSummaryRequest(BaseModel):
    entities: list[EntitySchema]
    fiscal_year: int
    as_of: date = Field(..., description="Date at which loan balances are read")
    prior_deficits: dict[str, Decimal | list[DeficitVintageSchema]] = {}
    fiscal_settings: dict[str, FiscalSettingsSchema] = Field(
        {}, description="Rate overrides keyed by entity type"
    )
    ltv_threshold: Decimal | None = None
    dscr_threshold: Decimal | None = None


class DividendRequest(BaseModel):
    after_tax_result: Decimal
    distributed: Decimal
    fiscal_settings: FiscalSettingsSchema | None = None


class ScheduleRequest(BaseModel):
    principal: Decimal
    annual_rate: Decimal
    term_months: int
    start_date: date


class LoanAtDateRequest(BaseModel):
    loan: LoanSchema
    as_of: date


class NpvRequest(BaseModel):
    cash_flows: list[Decimal]
    rate: Decimal


class IrrRequest(BaseModel):
    cash_flows: list[Decimal]


class SaleRequest(BaseModel):
    sale_price: Decimal
    sale_date: date
    loan: LoanSchema | None = None
    transaction_fee_rate: Decimal = Decimal("0")
    capital_gains_tax: Decimal = Decimal("0")
    penalty_rule: PenaltyRuleSchema | None = None


class CapitalGainsRequest(BaseModel):
    entity_type: str
    acquisition_price: Decimal
    acquisition_date: date
    sale_price: Decimal
    sale_date: date
    acquisition_costs: Decimal = Decimal("0")
    sale_costs: Decimal = Decimal("0")
    depreciation_taken: Decimal = Decimal("0")
    fiscal_settings: FiscalSettingsSchema | None = None


class RegimeComparisonRequest(BaseModel):
    properties: list[PropertySchema]
    fiscal_year: int
    prior_deficit: Decimal | list[DeficitVintageSchema] | None = None
    fiscal_settings: dict[str, FiscalSettingsSchema] = Field(
        {}, description="Rate overrides keyed by entity type"
    )
    current_entity_type: str | None = Field(None, description="Regime the properties are held under today")


class ProjectionRequest(BaseModel):
    property: PropertySchema
    entity_type: str
    first_year: int
    hold_years: int
    exit_value: Decimal
    equity_invested: Decimal | None = None
    transaction_fee_rate: Decimal = Decimal("0")
    discount_rate: Decimal = Decimal("0.05")
    opening_deficit: Decimal | list[DeficitVintageSchema] | None = None
    fiscal_settings: FiscalSettingsSchema | None = None


# ---- Response schemas ----

class ErrorResponse(BaseModel):
    code: str
    field: str | None = None
    message: str


class FiscalYearResponse(BaseModel):
    entity_type: str
    fiscal_year: int
    rental_income_total: Decimal
    expense_total: Decimal
    depreciation_total: Decimal
    taxable_result: Decimal
    deficit_used: Decimal
    taxable_base: Decimal
    tax_due: Decimal
    after_tax_result: Decimal
    carried_forward_deficit: Decimal
    deficit_vintages: list[DeficitVintageSchema]


class EntityFailureResponse(BaseModel):
    entity_id: str
    code: str
    message: str
    field: str | None = None


class AggregatedResponse(BaseModel):
    total_rental_income: Decimal
    total_expenses: Decimal
    total_depreciation: Decimal
    total_taxable_result: Decimal
    total_tax_due: Decimal


class MetricsResponse(BaseModel):
    """Undefined ratios (zero denominator) are null."""
    total_value: Decimal
    total_debt: Decimal
    net_worth: Decimal
    debt_service: Decimal
    operating_cash_flow: Decimal
    ltv: Decimal | None
    dscr: Decimal | None
    weighted_average_rate: Decimal | None
    gross_rental_yield: Decimal | None


class AlertsResponse(BaseModel):
    ltv_high: bool
    dscr_low: bool


class PortfolioSummaryResponse(BaseModel):
    fiscal_year: int
    entity_results: dict[str, FiscalYearResponse]
    failures: dict[str, EntityFailureResponse]
    aggregated: AggregatedResponse
    metrics: MetricsResponse | None
    alerts: AlertsResponse


class DividendResponse(BaseModel):
    after_tax_result: Decimal
    distributed: Decimal
    retained: Decimal
    dividend_tax: Decimal
    social_charges: Decimal
    total_tax: Decimal
    net_to_partners: Decimal


class PaymentResponse(BaseModel):
    period: int
    due_date: date
    payment: Decimal
    principal: Decimal
    interest: Decimal
    balance: Decimal


class YearlyDebtResponse(BaseModel):
    year: int
    principal: Decimal
    interest: Decimal
    debt_service: Decimal
    ending_balance: Decimal


class ScheduleResponse(BaseModel):
    monthly_payment: Decimal
    total_interest: Decimal
    total_cost: Decimal
    maturity_date: date
    payments: list[PaymentResponse]
    yearly: list[YearlyDebtResponse]


class LoanAtDateResponse(BaseModel):
    balance: Decimal
    early_repayment_penalty: Decimal


class NpvResponse(BaseModel):
    npv: Decimal


class IrrResponse(BaseModel):
    irr: Decimal
    equity_multiple: Decimal | None


class SaleResponse(BaseModel):
    sale_price: Decimal
    transaction_fees: Decimal
    loan_payoff: Decimal
    early_repayment_penalty: Decimal
    capital_gains_tax: Decimal
    net_cash_to_seller: Decimal


class CapitalGainsResponse(BaseModel):
    entity_type: str
    years_held: int
    gross_gain: Decimal
    income_tax_allowance: Decimal
    social_charges_allowance: Decimal
    income_tax: Decimal
    social_charges: Decimal
    surcharge: Decimal
    corporate_tax: Decimal
    total_tax: Decimal


class RegimeComparisonResponse(BaseModel):
    entity_type: str
    tax_due: Decimal
    tax_burden_rate: Decimal
    result: FiscalYearResponse


class RegimeComparisonsResponse(BaseModel):
    comparisons: list[RegimeComparisonResponse]
    best_entity_type: str
    savings: Decimal | None = Field(None, description="Saved by moving from current_entity_type")


class YearlyCashFlowResponse(BaseModel):
    year: int
    income: Decimal
    operating_expenses: Decimal
    capex: Decimal
    debt_service: Decimal
    tax_due: Decimal
    net_cash_flow: Decimal


class ProjectionResponse(BaseModel):
    property_id: str
    entity_type: str
    equity_invested: Decimal
    years: list[YearlyCashFlowResponse]
    sale: SaleResponse
    capital_gains: CapitalGainsResponse
    cash_flows: list[Decimal]
    npv: Decimal
    irr: Decimal
    equity_multiple: Decimal | None
