"""Loan amortization: monthly payment, schedule, remaining principal (CRD)
and early repayment indemnity (IRA).

Pure functions: Decimal in, dataclass out. No I/O.
"""

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from itertools import groupby

from dateutil.relativedelta import relativedelta

from stoneverse.config import settings
from stoneverse.exceptions import DateOutOfRange, InvalidInput
from stoneverse.models.portfolio import Loan, PenaltyRule

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal("0.01")


@dataclass(frozen=True)
class AmortizationPayment:
    period: int
    due_date: date
    payment: Decimal
    principal: Decimal
    interest: Decimal
    balance: Decimal  # Remaining principal after this payment


@dataclass(frozen=True)
class AmortizationSchedule:
    principal: Decimal
    annual_rate: Decimal
    term_months: int
    start_date: date
    payments: tuple[AmortizationPayment, ...]
    monthly_payment: Decimal
    total_interest: Decimal
    total_principal: Decimal

    @property
    def maturity_date(self) -> date:
        return self.start_date + relativedelta(months=self.term_months)

    @property
    def total_cost(self) -> Decimal:
        return self.total_principal + self.total_interest


@dataclass(frozen=True)
class YearlyDebt:
    """Payments of one calendar year."""
    year: int
    principal: Decimal
    interest: Decimal
    debt_service: Decimal
    ending_balance: Decimal  # Remaining principal after the year's last payment


def validate_terms(principal: Decimal, annual_rate: Decimal, term_months: int) -> None:
    if term_months <= 0:
        raise InvalidInput(f"Loan term must be positive, got {term_months}", field="term_months")
    if principal < 0:
        raise InvalidInput(f"Loan principal cannot be negative, got {principal}", field="principal")
    if annual_rate < 0:
        raise InvalidInput(f"Interest rate cannot be negative, got {annual_rate}", field="annual_rate")


def monthly_payment(principal: Decimal, annual_rate: Decimal, term_months: int) -> Decimal:
    """Fixed monthly payment: P * r / (1 - (1+r)^-n), r = annual_rate / 12."""
    validate_terms(principal, annual_rate, term_months)
    if principal == 0:
        return Decimal("0")
    if annual_rate == 0:
        return (principal / term_months).quantize(TWO_PLACES, ROUND_HALF_UP)

    r = annual_rate / 12
    factor = (1 + r) ** term_months
    payment = principal * r * factor / (factor - 1)
    return payment.quantize(TWO_PLACES, ROUND_HALF_UP)


def amortization_schedule(
    principal: Decimal,
    annual_rate: Decimal,
    term_months: int,
    start_date: date,
) -> AmortizationSchedule:
    """Generate the full schedule.

    Payment k falls due k months after start_date. The final payment
    absorbs the rounding residue so the balance at maturity is exactly 0.
    """
    pmt = monthly_payment(principal, annual_rate, term_months)
    r = annual_rate / 12

    payments: list[AmortizationPayment] = []
    balance = principal
    total_interest = Decimal("0")
    total_principal = Decimal("0")

    for period in range(1, term_months + 1):
        if balance == 0:
            break
        interest = (balance * r).quantize(TWO_PLACES, ROUND_HALF_UP)
        principal_paid = pmt - interest

        # Final payment adjustment
        if period == term_months or principal_paid >= balance:
            principal_paid = balance
            actual_payment = interest + principal_paid
        else:
            actual_payment = pmt

        balance -= principal_paid
        total_interest += interest
        total_principal += principal_paid

        payments.append(AmortizationPayment(
            period=period,
            due_date=start_date + relativedelta(months=period),
            payment=actual_payment,
            principal=principal_paid,
            interest=interest,
            balance=balance,
        ))

    logger.debug(
        "Built %d-period schedule for %s at %s (payment %s)",
        len(payments), principal, annual_rate, pmt,
    )

    return AmortizationSchedule(
        principal=principal,
        annual_rate=annual_rate,
        term_months=term_months,
        start_date=start_date,
        payments=tuple(payments),
        monthly_payment=pmt,
        total_interest=total_interest,
        total_principal=total_principal,
    )


def loan_schedule(loan: Loan) -> AmortizationSchedule:
    return amortization_schedule(
        principal=loan.principal,
        annual_rate=loan.annual_rate,
        term_months=loan.term_months,
        start_date=loan.start_date,
    )


def _as_schedule(loan_or_schedule: Loan | AmortizationSchedule) -> AmortizationSchedule:
    if isinstance(loan_or_schedule, AmortizationSchedule):
        return loan_or_schedule
    return loan_schedule(loan_or_schedule)


def balance_at(loan_or_schedule: Loan | AmortizationSchedule, as_of: date) -> Decimal:
    """Remaining principal (CRD) after every payment due on or before as_of."""
    schedule = _as_schedule(loan_or_schedule)
    if as_of < schedule.start_date:
        raise DateOutOfRange(
            f"{as_of.isoformat()} precedes loan start {schedule.start_date.isoformat()}",
            field="date",
        )

    balance = schedule.principal
    for p in schedule.payments:
        if p.due_date > as_of:
            break
        balance = p.balance
    return balance


def outstanding_balance(loan: Loan, as_of: date) -> Decimal:
    """Debt owed on a loan, preferring the lender-reported balance when set."""
    if loan.current_balance is None:
        return balance_at(loan, as_of)
    if loan.current_balance < 0 or loan.current_balance > loan.principal:
        raise InvalidInput(
            f"Current balance {loan.current_balance} outside [0, {loan.principal}]",
            field="current_balance",
        )
    return loan.current_balance


def default_penalty_rule() -> PenaltyRule:
    return PenaltyRule(
        interest_months=settings.penalty_interest_months,
        balance_pct=settings.penalty_balance_pct,
    )


def early_repayment_penalty(
    loan_or_schedule: Loan | AmortizationSchedule,
    as_of: date,
    rule: PenaltyRule | None = None,
) -> Decimal:
    """Indemnity for paying the loan off on as_of.

    Default: min(N months of interest on the balance, pct of the balance).
    A rule on the loan applies when no rule is passed explicitly.
    """
    if rule is None and isinstance(loan_or_schedule, Loan):
        rule = loan_or_schedule.penalty_rule
    if rule is None:
        rule = default_penalty_rule()
    if rule.interest_months < 0:
        raise InvalidInput("Penalty months cannot be negative", field="interest_months")
    if rule.balance_pct < 0:
        raise InvalidInput("Penalty percentage cannot be negative", field="balance_pct")

    schedule = _as_schedule(loan_or_schedule)
    balance = balance_at(schedule, as_of)
    if balance == 0:
        return Decimal("0")

    if rule.window_months is not None:
        if as_of >= schedule.start_date + relativedelta(months=rule.window_months):
            return Decimal("0")

    if rule.fixed_amount is not None:
        if rule.fixed_amount < 0:
            raise InvalidInput("Fixed penalty cannot be negative", field="fixed_amount")
        return rule.fixed_amount.quantize(TWO_PLACES, ROUND_HALF_UP)

    interest_cap = balance * schedule.annual_rate / 12 * rule.interest_months
    balance_cap = balance * rule.balance_pct
    return min(interest_cap, balance_cap).quantize(TWO_PLACES, ROUND_HALF_UP)


def debt_service_between(schedule: AmortizationSchedule, start: date, end: date) -> Decimal:
    """Total scheduled payments (principal + interest) due in [start, end]."""
    return sum(
        (p.payment for p in schedule.payments if start <= p.due_date <= end),
        Decimal("0"),
    )


def interest_paid_in_year(schedule: AmortizationSchedule, year: int) -> Decimal:
    return sum(
        (p.interest for p in schedule.payments if p.due_date.year == year),
        Decimal("0"),
    )


def yearly_debt_summary(schedule: AmortizationSchedule) -> list[YearlyDebt]:
    """Aggregate the schedule by calendar year, in due-date order."""
    yearly: list[YearlyDebt] = []
    for year, group in groupby(schedule.payments, key=lambda p: p.due_date.year):
        payments = list(group)
        yearly.append(YearlyDebt(
            year=year,
            principal=sum((p.principal for p in payments), Decimal("0")),
            interest=sum((p.interest for p in payments), Decimal("0")),
            debt_service=sum((p.payment for p in payments), Decimal("0")),
            ending_balance=payments[-1].balance,
        ))
    return yearly
