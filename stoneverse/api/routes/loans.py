"""Loan routes: amortization schedule, CRD and early repayment indemnity."""

from fastapi import APIRouter

from stoneverse.api.schemas import (
    LoanAtDateRequest,
    LoanAtDateResponse,
    PaymentResponse,
    ScheduleRequest,
    ScheduleResponse,
    YearlyDebtResponse,
)
from stoneverse.engine.debt import (
    amortization_schedule,
    early_repayment_penalty,
    outstanding_balance,
    yearly_debt_summary,
)

router = APIRouter(prefix="/api/v1/loans", tags=["loans"])


@router.post("/schedule", response_model=ScheduleResponse)
async def schedule(req: ScheduleRequest):
    s = amortization_schedule(req.principal, req.annual_rate, req.term_months, req.start_date)
    return ScheduleResponse(
        monthly_payment=s.monthly_payment,
        total_interest=s.total_interest,
        total_cost=s.total_cost,
        maturity_date=s.maturity_date,
        payments=[
            PaymentResponse(
                period=p.period,
                due_date=p.due_date,
                payment=p.payment,
                principal=p.principal,
                interest=p.interest,
                balance=p.balance,
            )
            for p in s.payments
        ],
        yearly=[
            YearlyDebtResponse(
                year=row.year,
                principal=row.principal,
                interest=row.interest,
                debt_service=row.debt_service,
                ending_balance=row.ending_balance,
            )
            for row in yearly_debt_summary(s)
        ],
    )


@router.post("/balance", response_model=LoanAtDateResponse)
async def balance(req: LoanAtDateRequest):
    """CRD at a date and the indemnity owed if repaid that day."""
    loan = req.loan.to_domain()
    return LoanAtDateResponse(
        balance=outstanding_balance(loan, req.as_of),
        early_repayment_penalty=early_repayment_penalty(loan, req.as_of),
    )
