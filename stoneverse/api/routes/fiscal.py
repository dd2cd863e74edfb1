"""Fiscal routes: per-entity tax result, regime comparison and the portfolio summary."""

from fastapi import APIRouter

from stoneverse.api.schemas import (
    AggregatedResponse,
    AlertsResponse,
    DeficitVintageSchema,
    DividendRequest,
    DividendResponse,
    EntityFailureResponse,
    EntityFiscalYearRequest,
    FiscalYearResponse,
    MetricsResponse,
    PortfolioSummaryRequest,
    PortfolioSummaryResponse,
    RegimeComparisonRequest,
    RegimeComparisonResponse,
    RegimeComparisonsResponse,
    to_carryforward,
)
from stoneverse.engine.regimes import compare_regimes, regime_savings
from stoneverse.engine.summary import compute_portfolio_summary
from stoneverse.engine.tax import compute_entity_fiscal_year, dividend_tax, parse_entity_type
from stoneverse.models.results import NO_VALUE, FiscalYearResult, PortfolioMetrics

router = APIRouter(prefix="/api/v1/fiscal", tags=["fiscal"])


def _nullable(value):
    return None if value is NO_VALUE else value


def _result_to_response(r: FiscalYearResult) -> FiscalYearResponse:
    return FiscalYearResponse(
        entity_type=r.entity_type.value,
        fiscal_year=r.fiscal_year,
        rental_income_total=r.rental_income_total,
        expense_total=r.expense_total,
        depreciation_total=r.depreciation_total,
        taxable_result=r.taxable_result,
        deficit_used=r.deficit_used,
        taxable_base=r.taxable_base,
        tax_due=r.tax_due,
        after_tax_result=r.after_tax_result,
        carried_forward_deficit=r.carried_forward_deficit.total,
        deficit_vintages=[
            DeficitVintageSchema(year=v.year, amount=v.amount)
            for v in r.carried_forward_deficit.vintages
        ],
    )


def _metrics_to_response(m: PortfolioMetrics) -> MetricsResponse:
    return MetricsResponse(
        total_value=m.total_value,
        total_debt=m.total_debt,
        net_worth=m.net_worth,
        debt_service=m.debt_service,
        operating_cash_flow=m.operating_cash_flow,
        ltv=_nullable(m.ltv),
        dscr=_nullable(m.dscr),
        weighted_average_rate=_nullable(m.weighted_average_rate),
        gross_rental_yield=_nullable(m.gross_rental_yield),
    )


@router.post("/entity", response_model=FiscalYearResponse)
async def entity_fiscal_year(req: EntityFiscalYearRequest):
    """One entity, one fiscal year. Errors fail the whole request."""
    result = compute_entity_fiscal_year(
        req.entity.to_domain(),
        req.fiscal_year,
        prior_deficit=to_carryforward(req.prior_deficit),
        fiscal_settings=req.fiscal_settings.to_domain() if req.fiscal_settings else None,
    )
    return _result_to_response(result)


@router.post("/compare", response_model=RegimeComparisonsResponse)
async def regime_comparison(req: RegimeComparisonRequest):
    """The same properties and year under every entity type, lowest tax first."""
    comparisons = compare_regimes(
        [p.to_domain() for p in req.properties],
        req.fiscal_year,
        prior_deficit=to_carryforward(req.prior_deficit),
        fiscal_settings={
            parse_entity_type(tag): fs.to_domain() for tag, fs in req.fiscal_settings.items()
        },
    )
    savings = None
    if req.current_entity_type is not None:
        savings = regime_savings(comparisons, parse_entity_type(req.current_entity_type))
    return RegimeComparisonsResponse(
        comparisons=[
            RegimeComparisonResponse(
                entity_type=c.entity_type.value,
                tax_due=c.tax_due,
                tax_burden_rate=c.tax_burden_rate,
                result=_result_to_response(c.result),
            )
            for c in comparisons
        ],
        best_entity_type=comparisons[0].entity_type.value,
        savings=savings,
    )


@router.post("/summary", response_model=PortfolioSummaryResponse)
async def portfolio_summary(req: PortfolioSummaryRequest):
    """All entities for one fiscal year. A failing entity is reported, not fatal."""
    summary = compute_portfolio_summary(
        [e.to_domain() for e in req.entities],
        req.fiscal_year,
        req.as_of,
        prior_deficits={k: to_carryforward(v) for k, v in req.prior_deficits.items()},
        fiscal_settings={
            parse_entity_type(tag): fs.to_domain() for tag, fs in req.fiscal_settings.items()
        },
        ltv_threshold=req.ltv_threshold,
        dscr_threshold=req.dscr_threshold,
    )

    a = summary.aggregated
    return PortfolioSummaryResponse(
        fiscal_year=summary.fiscal_year,
        entity_results={k: _result_to_response(r) for k, r in summary.entity_results.items()},
        failures={
            k: EntityFailureResponse(
                entity_id=f.entity_id, code=f.code, message=f.message, field=f.field
            )
            for k, f in summary.failures.items()
        },
        aggregated=AggregatedResponse(
            total_rental_income=a.total_rental_income,
            total_expenses=a.total_expenses,
            total_depreciation=a.total_depreciation,
            total_taxable_result=a.total_taxable_result,
            total_tax_due=a.total_tax_due,
        ),
        metrics=_metrics_to_response(summary.metrics) if summary.metrics else None,
        alerts=AlertsResponse(
            ltv_high=summary.alerts.ltv_high,
            dscr_low=summary.alerts.dscr_low,
        ),
    )


@router.post("/dividends", response_model=DividendResponse)
async def dividends(req: DividendRequest):
    """Flat tax on an SCI IS distribution."""
    d = dividend_tax(
        req.after_tax_result,
        req.distributed,
        req.fiscal_settings.to_domain() if req.fiscal_settings else None,
    )
    return DividendResponse(
        after_tax_result=d.after_tax_result,
        distributed=d.distributed,
        retained=d.retained,
        dividend_tax=d.dividend_tax,
        social_charges=d.social_charges,
        total_tax=d.total_tax,
        net_to_partners=d.net_to_partners,
    )
