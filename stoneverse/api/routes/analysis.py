"""Investment analysis routes: VAN, TRI, sale proceeds and hold projections."""

from fastapi import APIRouter

from stoneverse.api.schemas import (
    CapitalGainsRequest,
    CapitalGainsResponse,
    IrrRequest,
    IrrResponse,
    NpvRequest,
    NpvResponse,
    ProjectionRequest,
    ProjectionResponse,
    SaleRequest,
    SaleResponse,
    YearlyCashFlowResponse,
    to_carryforward,
)
from stoneverse.engine.disposition import capital_gains_tax, net_cash_to_seller
from stoneverse.engine.irr import equity_multiple, irr, npv
from stoneverse.engine.projection import investment_cash_flows, investment_returns
from stoneverse.models.results import NO_VALUE, CapitalGainsResult, SaleProceeds

router = APIRouter(prefix="/api/v1/analysis", tags=["analysis"])


def _sale_to_response(p: SaleProceeds) -> SaleResponse:
    return SaleResponse(
        sale_price=p.sale_price,
        transaction_fees=p.transaction_fees,
        loan_payoff=p.loan_payoff,
        early_repayment_penalty=p.early_repayment_penalty,
        capital_gains_tax=p.capital_gains_tax,
        net_cash_to_seller=p.net_cash_to_seller,
    )


def _gains_to_response(g: CapitalGainsResult) -> CapitalGainsResponse:
    return CapitalGainsResponse(
        entity_type=g.entity_type.value,
        years_held=g.years_held,
        gross_gain=g.gross_gain,
        income_tax_allowance=g.income_tax_allowance,
        social_charges_allowance=g.social_charges_allowance,
        income_tax=g.income_tax,
        social_charges=g.social_charges,
        surcharge=g.surcharge,
        corporate_tax=g.corporate_tax,
        total_tax=g.total_tax,
    )


@router.post("/npv", response_model=NpvResponse)
async def net_present_value(req: NpvRequest):
    return NpvResponse(npv=npv(req.cash_flows, req.rate))


@router.post("/irr", response_model=IrrResponse)
async def internal_rate_of_return(req: IrrRequest):
    multiple = equity_multiple(req.cash_flows)
    return IrrResponse(
        irr=irr(req.cash_flows),
        equity_multiple=None if multiple is NO_VALUE else multiple,
    )


@router.post("/sale", response_model=SaleResponse)
async def sale(req: SaleRequest):
    """Net cash to seller after fees, loan payoff, indemnity and tax."""
    p = net_cash_to_seller(
        sale_price=req.sale_price,
        sale_date=req.sale_date,
        loan=req.loan.to_domain() if req.loan else None,
        transaction_fee_rate=req.transaction_fee_rate,
        capital_gains_tax=req.capital_gains_tax,
        penalty_rule=req.penalty_rule.to_domain() if req.penalty_rule else None,
    )
    return _sale_to_response(p)


@router.post("/capital-gains", response_model=CapitalGainsResponse)
async def capital_gains(req: CapitalGainsRequest):
    g = capital_gains_tax(
        entity_type=req.entity_type,
        acquisition_price=req.acquisition_price,
        acquisition_date=req.acquisition_date,
        sale_price=req.sale_price,
        sale_date=req.sale_date,
        acquisition_costs=req.acquisition_costs,
        sale_costs=req.sale_costs,
        depreciation_taken=req.depreciation_taken,
        fiscal_settings=req.fiscal_settings.to_domain() if req.fiscal_settings else None,
    )
    return _gains_to_response(g)


@router.post("/projection", response_model=ProjectionResponse)
async def projection(req: ProjectionRequest):
    """Yearly cash flows over a hold ending in a sale, with NPV, IRR and multiple."""
    p = investment_cash_flows(
        req.property.to_domain(),
        req.entity_type,
        req.first_year,
        req.hold_years,
        req.exit_value,
        equity_invested=req.equity_invested,
        transaction_fee_rate=req.transaction_fee_rate,
        opening_deficit=to_carryforward(req.opening_deficit),
        fiscal_settings=req.fiscal_settings.to_domain() if req.fiscal_settings else None,
    )
    returns = investment_returns(p, req.discount_rate)
    return ProjectionResponse(
        property_id=p.property_id,
        entity_type=p.entity_type.value,
        equity_invested=p.equity_invested,
        years=[
            YearlyCashFlowResponse(
                year=y.year,
                income=y.income,
                operating_expenses=y.operating_expenses,
                capex=y.capex,
                debt_service=y.debt_service,
                tax_due=y.tax_due,
                net_cash_flow=y.net_cash_flow,
            )
            for y in p.years
        ],
        sale=_sale_to_response(p.sale),
        capital_gains=_gains_to_response(p.capital_gains),
        cash_flows=p.cash_flows,
        npv=returns.npv,
        irr=returns.irr,
        equity_multiple=None if returns.equity_multiple is NO_VALUE else returns.equity_multiple,
    )
