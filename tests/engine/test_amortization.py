from datetime import date
from decimal import Decimal

import pytest
from dateutil.relativedelta import relativedelta

from stoneverse.engine.debt import (
    amortization_schedule,
    balance_at,
    debt_service_between,
    early_repayment_penalty,
    interest_paid_in_year,
    loan_schedule,
    monthly_payment,
    outstanding_balance,
    yearly_debt_summary,
)
from stoneverse.exceptions import DateOutOfRange, InvalidInput
from stoneverse.models.portfolio import Loan, PenaltyRule


class TestMonthlyPayment:
    def test_standard_mortgage(self):
        """400K at 7% over 360 months."""
        pmt = monthly_payment(Decimal("400000"), Decimal("0.07"), 360)
        assert pmt == Decimal("2661.21")

    def test_demo_loan_matches_annuity_formula(self):
        pmt = monthly_payment(Decimal("400000"), Decimal("0.035"), 240)
        r = 0.035 / 12
        expected = 400000 * r / (1 - (1 + r) ** -240)
        assert abs(float(pmt) - expected) < 0.01

    def test_zero_rate(self):
        pmt = monthly_payment(Decimal("360000"), Decimal("0"), 360)
        assert pmt == Decimal("1000.00")

    def test_zero_principal(self):
        assert monthly_payment(Decimal("0"), Decimal("0.07"), 360) == Decimal("0")

    @pytest.mark.parametrize(
        "principal, rate, term, field",
        [
            ("400000", "0.035", 0, "term_months"),
            ("400000", "0.035", -12, "term_months"),
            ("-1", "0.035", 240, "principal"),
            ("400000", "-0.01", 240, "annual_rate"),
        ],
    )
    def test_invalid_terms(self, principal, rate, term, field):
        with pytest.raises(InvalidInput) as exc:
            monthly_payment(Decimal(principal), Decimal(rate), term)
        assert exc.value.field == field


class TestAmortizationSchedule:
    def test_payment_count(self, demo_loan):
        schedule = loan_schedule(demo_loan)
        assert len(schedule.payments) == 240

    def test_first_payment_mostly_interest(self, demo_loan):
        first = loan_schedule(demo_loan).payments[0]
        # 400000 * 0.035 / 12 = 1166.67
        assert first.interest == Decimal("1166.67")
        assert first.due_date == date(2023, 7, 15)

    def test_balance_strictly_decreasing(self, demo_loan):
        payments = loan_schedule(demo_loan).payments
        for i in range(1, len(payments)):
            assert payments[i].balance < payments[i - 1].balance

    def test_principal_portions_sum_to_principal(self, demo_loan):
        schedule = loan_schedule(demo_loan)
        assert sum(p.principal for p in schedule.payments) == demo_loan.principal
        assert schedule.total_principal == demo_loan.principal

    def test_final_payment_absorbs_residue(self):
        schedule = amortization_schedule(Decimal("1000"), Decimal("0.05"), 7, date(2024, 1, 31))
        assert schedule.payments[-1].balance == Decimal("0")
        assert sum(p.principal for p in schedule.payments) == Decimal("1000")

    def test_month_end_start_clamps_due_dates(self):
        schedule = amortization_schedule(Decimal("1200"), Decimal("0"), 3, date(2024, 1, 31))
        assert [p.due_date for p in schedule.payments] == [
            date(2024, 2, 29), date(2024, 3, 31), date(2024, 4, 30),
        ]

    def test_total_cost(self, demo_loan):
        schedule = loan_schedule(demo_loan)
        assert schedule.total_cost == schedule.total_principal + schedule.total_interest
        assert schedule.maturity_date == date(2043, 6, 15)

    def test_zero_principal_has_no_payments(self):
        schedule = amortization_schedule(Decimal("0"), Decimal("0.035"), 240, date(2024, 1, 1))
        assert schedule.payments == ()


class TestBalanceAt:
    def test_balance_at_start_is_principal(self, demo_loan):
        assert balance_at(demo_loan, demo_loan.start_date) == Decimal("400000")

    def test_balance_at_maturity_is_zero(self, demo_loan):
        maturity = demo_loan.start_date + relativedelta(months=demo_loan.term_months)
        assert balance_at(demo_loan, maturity) == Decimal("0")
        assert balance_at(demo_loan, maturity + relativedelta(years=5)) == Decimal("0")

    def test_balance_changes_on_due_date(self, demo_loan):
        schedule = loan_schedule(demo_loan)
        assert balance_at(schedule, date(2023, 7, 14)) == Decimal("400000")
        assert balance_at(schedule, date(2023, 7, 15)) == schedule.payments[0].balance

    def test_date_before_start(self, demo_loan):
        with pytest.raises(DateOutOfRange) as exc:
            balance_at(demo_loan, date(2023, 6, 14))
        assert exc.value.field == "date"
        assert isinstance(exc.value, InvalidInput)

    def test_outstanding_balance_prefers_override(self, demo_loan):
        loan = Loan(
            id="l", principal=demo_loan.principal, annual_rate=demo_loan.annual_rate,
            term_months=240, start_date=demo_loan.start_date, current_balance=Decimal("350000"),
        )
        assert outstanding_balance(loan, date(2024, 12, 31)) == Decimal("350000")

    def test_override_above_principal(self, demo_loan):
        loan = Loan(
            id="l", principal=Decimal("400000"), annual_rate=Decimal("0.035"),
            term_months=240, start_date=demo_loan.start_date, current_balance=Decimal("400001"),
        )
        with pytest.raises(InvalidInput) as exc:
            outstanding_balance(loan, date(2024, 12, 31))
        assert exc.value.field == "current_balance"


class TestEarlyRepaymentPenalty:
    def test_six_months_interest_cap(self, demo_loan):
        """400K at 3.5%: 6 months of interest (7,000) below 3% (12,000)."""
        assert early_repayment_penalty(demo_loan, demo_loan.start_date) == Decimal("7000.00")

    def test_three_percent_cap(self):
        loan = Loan(
            id="l", principal=Decimal("100000"), annual_rate=Decimal("0.08"),
            term_months=120, start_date=date(2024, 1, 1),
        )
        # 6 months at 8% = 4,000 > 3% of 100,000 = 3,000
        assert early_repayment_penalty(loan, date(2024, 1, 1)) == Decimal("3000.00")

    def test_zero_balance_means_no_penalty(self, demo_loan):
        assert early_repayment_penalty(demo_loan, date(2043, 6, 15)) == Decimal("0")

    def test_fixed_amount_rule(self, demo_loan):
        rule = PenaltyRule(fixed_amount=Decimal("1500"))
        assert early_repayment_penalty(demo_loan, date(2025, 1, 1), rule) == Decimal("1500.00")

    def test_window_expired(self, demo_loan):
        rule = PenaltyRule(window_months=24)
        assert early_repayment_penalty(demo_loan, date(2025, 6, 14), rule) > 0
        assert early_repayment_penalty(demo_loan, date(2025, 6, 15), rule) == Decimal("0")

    def test_loan_rule_applies_by_default(self):
        loan = Loan(
            id="l", principal=Decimal("100000"), annual_rate=Decimal("0.03"),
            term_months=120, start_date=date(2024, 1, 1),
            penalty_rule=PenaltyRule(fixed_amount=Decimal("250")),
        )
        assert early_repayment_penalty(loan, date(2024, 6, 1)) == Decimal("250.00")

    def test_before_start(self, demo_loan):
        with pytest.raises(DateOutOfRange):
            early_repayment_penalty(demo_loan, date(2020, 1, 1))


class TestDebtService:
    def test_full_year_is_twelve_payments(self, demo_loan):
        schedule = loan_schedule(demo_loan)
        service = debt_service_between(schedule, date(2024, 1, 1), date(2024, 12, 31))
        assert service == schedule.monthly_payment * 12

    def test_first_year_interest(self, demo_loan):
        schedule = loan_schedule(demo_loan)
        # Payments due July to December 2023
        expected = sum(p.interest for p in schedule.payments[:6])
        assert interest_paid_in_year(schedule, 2023) == expected

    def test_yearly_totals_match(self, demo_loan):
        schedule = loan_schedule(demo_loan)
        yearly = yearly_debt_summary(schedule)
        assert sum(y.interest for y in yearly) == schedule.total_interest
        assert sum(y.principal for y in yearly) == schedule.total_principal
        assert yearly[-1].ending_balance == Decimal("0")
        assert [y.year for y in yearly] == list(range(2023, 2044))

    def test_yearly_rows_are_typed(self, demo_loan):
        first = yearly_debt_summary(loan_schedule(demo_loan))[0]
        assert isinstance(first.year, int)
        assert first.year == 2023
        # July to December 2023
        assert first.debt_service == loan_schedule(demo_loan).monthly_payment * 6
