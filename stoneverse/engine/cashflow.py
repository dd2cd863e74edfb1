"""Transaction classification: income, operating expenses, capex, financing.

Pure functions: transactions in, Decimal out. No I/O.
"""

from decimal import Decimal

from stoneverse.exceptions import InvalidInput
from stoneverse.models.portfolio import Property, Transaction, TransactionType

INCOME_TYPES = frozenset({
    TransactionType.RENTAL_INCOME,
    TransactionType.OTHER_INCOME,
})

OPERATING_EXPENSE_TYPES = frozenset({
    TransactionType.OPERATING_EXPENSE,
    TransactionType.TAX_PAYMENT,
    TransactionType.INSURANCE_PAYMENT,
    TransactionType.MANAGEMENT_FEE,
    TransactionType.REPAIR_MAINTENANCE,
    TransactionType.UTILITY_PAYMENT,
    TransactionType.OTHER_EXPENSE,
})

# CAPEX is capitalised and written off through depreciation components.
# LOAN_PAYMENT is financing; debt service comes from the amortization schedule.


def in_year(transactions: list[Transaction] | tuple[Transaction, ...], year: int) -> list[Transaction]:
    return [t for t in transactions if t.date.year == year]


def validate_transactions(prop: Property) -> None:
    """Every transaction belongs to the property and follows its acquisition."""
    for t in prop.transactions:
        if t.property_id != prop.id:
            raise InvalidInput(
                f"Transaction for {t.property_id} attached to property {prop.id}",
                field="property_id",
            )
        if t.date < prop.acquisition_date:
            raise InvalidInput(
                f"Transaction dated {t.date.isoformat()} precedes acquisition of "
                f"{prop.id} on {prop.acquisition_date.isoformat()}",
                field="date",
            )


def income_total(transactions: list[Transaction] | tuple[Transaction, ...], year: int) -> Decimal:
    """Rental and other property income for the year.

    The type tag classifies a transaction; the sign of its amount is not
    relied on, so both signed and unsigned feeds give the same total.
    """
    return sum(
        (abs(t.amount) for t in in_year(transactions, year) if t.transaction_type in INCOME_TYPES),
        Decimal("0"),
    )


def operating_expenses(transactions: list[Transaction] | tuple[Transaction, ...], year: int) -> Decimal:
    """All operating expenses paid in the year, deductible or not."""
    return sum(
        (
            abs(t.amount)
            for t in in_year(transactions, year)
            if t.transaction_type in OPERATING_EXPENSE_TYPES
        ),
        Decimal("0"),
    )


def deductible_expenses(transactions: list[Transaction] | tuple[Transaction, ...], year: int) -> Decimal:
    """Operating expenses flagged tax-deductible."""
    return sum(
        (
            abs(t.amount)
            for t in in_year(transactions, year)
            if t.transaction_type in OPERATING_EXPENSE_TYPES and t.tax_deductible
        ),
        Decimal("0"),
    )


def cash_flow_by_category(
    transactions: list[Transaction] | tuple[Transaction, ...], year: int
) -> dict[str, Decimal]:
    """Cash movements of the year grouped by category."""
    flows = {
        "rental_income": Decimal("0"),
        "operating_expenses": Decimal("0"),
        "capex": Decimal("0"),
        "loan_payments": Decimal("0"),
    }
    for t in in_year(transactions, year):
        amount = abs(t.amount)
        if t.transaction_type in INCOME_TYPES:
            flows["rental_income"] += amount
        elif t.transaction_type in OPERATING_EXPENSE_TYPES:
            flows["operating_expenses"] += amount
        elif t.transaction_type == TransactionType.CAPEX:
            flows["capex"] += amount
        elif t.transaction_type == TransactionType.LOAN_PAYMENT:
            flows["loan_payments"] += amount
    flows["net"] = (
        flows["rental_income"] - flows["operating_expenses"]
        - flows["capex"] - flows["loan_payments"]
    )
    return flows
