from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum


class EntityType(Enum):
    PERSONAL = "personal"
    LMNP = "lmnp"      # Loueur en Meuble Non Professionnel
    SCI_IS = "sci_is"  # Property company under corporate income tax


class TransactionType(Enum):
    RENTAL_INCOME = "rental_income"
    OTHER_INCOME = "other_income"
    OPERATING_EXPENSE = "operating_expense"
    CAPEX = "capex"
    LOAN_PAYMENT = "loan_payment"
    TAX_PAYMENT = "tax_payment"
    INSURANCE_PAYMENT = "insurance_payment"
    MANAGEMENT_FEE = "management_fee"
    REPAIR_MAINTENANCE = "repair_maintenance"
    UTILITY_PAYMENT = "utility_payment"
    OTHER_EXPENSE = "other_expense"


@dataclass(frozen=True)
class Transaction:
    property_id: str
    transaction_type: TransactionType
    amount: Decimal  # Income positive, expense negative
    date: date
    tax_deductible: bool = True
    description: str = ""


@dataclass(frozen=True)
class PenaltyRule:
    """Early repayment indemnity terms (IRA).

    Default French cap: the lesser of 6 months of interest and 3% of the
    outstanding balance.
    """
    interest_months: int = 6
    balance_pct: Decimal = Decimal("0.03")
    fixed_amount: Decimal | None = None  # Replaces the formula when set
    window_months: int | None = None  # No indemnity after this many months


@dataclass(frozen=True)
class Loan:
    id: str
    principal: Decimal
    annual_rate: Decimal  # e.g. Decimal("0.035")
    term_months: int
    start_date: date
    current_balance: Decimal | None = None  # Lender-reported balance override
    penalty_rule: PenaltyRule | None = None
    lender: str = ""


@dataclass(frozen=True)
class DepreciationComponent:
    """Depreciable slice of a property (structure, works, furniture...)."""
    name: str
    base: Decimal
    useful_life_years: int
    start_date: date


@dataclass(frozen=True)
class Property:
    id: str
    acquisition_price: Decimal
    current_value: Decimal
    acquisition_date: date
    land_value: Decimal | None = None
    building_value: Decimal | None = None
    furnishing_value: Decimal = Decimal("0")
    works_value: Decimal = Decimal("0")  # Renovation works capitalised at purchase
    loan: Loan | None = None
    transactions: tuple[Transaction, ...] = ()
    components: tuple[DepreciationComponent, ...] = ()
    address: str = ""


@dataclass(frozen=True)
class Entity:
    id: str
    name: str
    entity_type: EntityType
    properties: tuple[Property, ...] = ()

    @property
    def loans(self) -> list[Loan]:
        return [p.loan for p in self.properties if p.loan is not None]
