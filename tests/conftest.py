"""Demo portfolio fixtures used across engine and API tests.

Personal entity: 500K apartment (value 520K), 400K loan at 3.5% over 240
months from 2023-06-15. 2024: rent 21,600, deductible expenses 6,200.
LMNP entity: furnished flat, 2024 rent 28,800, expenses 8,500, depreciation 12,000.
SCI IS entity: 2024 rent 36,000, expenses 6,000, depreciation 12,000.
"""

from datetime import date
from decimal import Decimal

import pytest

from stoneverse.models.portfolio import (
    DepreciationComponent,
    Entity,
    EntityType,
    Loan,
    Property,
    Transaction,
    TransactionType,
)


def monthly_rent(property_id: str, amount: Decimal, year: int) -> tuple[Transaction, ...]:
    return tuple(
        Transaction(
            property_id=property_id,
            transaction_type=TransactionType.RENTAL_INCOME,
            amount=amount,
            date=date(year, month, 5),
        )
        for month in range(1, 13)
    )


def expense(property_id: str, kind: TransactionType, amount: str, when: date, **kwargs) -> Transaction:
    return Transaction(
        property_id=property_id,
        transaction_type=kind,
        amount=-Decimal(amount),
        date=when,
        **kwargs,
    )


@pytest.fixture
def demo_loan() -> Loan:
    """400K at 3.5% over 240 months, drawn 2023-06-15."""
    return Loan(
        id="loan-paris",
        principal=Decimal("400000"),
        annual_rate=Decimal("0.035"),
        term_months=240,
        start_date=date(2023, 6, 15),
        lender="Crédit Agricole",
    )


@pytest.fixture
def personal_property(demo_loan) -> Property:
    pid = "prop-paris"
    return Property(
        id=pid,
        acquisition_price=Decimal("500000"),
        current_value=Decimal("520000"),
        acquisition_date=date(2023, 6, 15),
        land_value=Decimal("100000"),
        loan=demo_loan,
        transactions=monthly_rent(pid, Decimal("1800"), 2024) + (
            expense(pid, TransactionType.TAX_PAYMENT, "1800", date(2024, 10, 15)),
            expense(pid, TransactionType.INSURANCE_PAYMENT, "400", date(2024, 1, 20)),
            expense(pid, TransactionType.MANAGEMENT_FEE, "2000", date(2024, 12, 31)),
            expense(pid, TransactionType.REPAIR_MAINTENANCE, "2000", date(2024, 4, 2)),
            expense(
                pid, TransactionType.OTHER_EXPENSE, "300", date(2024, 7, 1),
                tax_deductible=False, description="Fines",
            ),
            expense(pid, TransactionType.LOAN_PAYMENT, "27839.04", date(2024, 12, 31)),
        ),
        address="12 rue de Rivoli, Paris",
    )


@pytest.fixture
def lmnp_property() -> Property:
    pid = "prop-lyon"
    return Property(
        id=pid,
        acquisition_price=Decimal("400000"),
        current_value=Decimal("430000"),
        acquisition_date=date(2020, 1, 1),
        transactions=monthly_rent(pid, Decimal("2400"), 2024) + (
            expense(pid, TransactionType.TAX_PAYMENT, "2100", date(2024, 10, 15)),
            expense(pid, TransactionType.INSURANCE_PAYMENT, "600", date(2024, 1, 20)),
            expense(pid, TransactionType.MANAGEMENT_FEE, "2800", date(2024, 12, 31)),
            expense(pid, TransactionType.REPAIR_MAINTENANCE, "3000", date(2024, 5, 10)),
            expense(pid, TransactionType.CAPEX, "9000", date(2024, 3, 1)),
        ),
        components=(
            # 360,000 / 30 = 12,000 a year from a 1 January start
            DepreciationComponent(
                name="building",
                base=Decimal("360000"),
                useful_life_years=30,
                start_date=date(2020, 1, 1),
            ),
        ),
        address="3 quai Saint-Antoine, Lyon",
    )


@pytest.fixture
def sci_property() -> Property:
    pid = "prop-nantes"
    return Property(
        id=pid,
        acquisition_price=Decimal("330000"),
        current_value=Decimal("350000"),
        acquisition_date=date(2021, 1, 1),
        transactions=monthly_rent(pid, Decimal("3000"), 2024) + (
            expense(pid, TransactionType.TAX_PAYMENT, "2500", date(2024, 10, 15)),
            expense(pid, TransactionType.INSURANCE_PAYMENT, "900", date(2024, 1, 20)),
            expense(pid, TransactionType.MANAGEMENT_FEE, "2600", date(2024, 12, 31)),
        ),
        components=(
            DepreciationComponent(
                name="building",
                base=Decimal("300000"),
                useful_life_years=25,
                start_date=date(2021, 1, 1),
            ),
        ),
        address="8 allée Duguay-Trouin, Nantes",
    )


@pytest.fixture
def personal_entity(personal_property) -> Entity:
    return Entity(
        id="ent-personal",
        name="Foyer Martin",
        entity_type=EntityType.PERSONAL,
        properties=(personal_property,),
    )


@pytest.fixture
def lmnp_entity(lmnp_property) -> Entity:
    return Entity(
        id="ent-lmnp",
        name="LMNP Martin",
        entity_type=EntityType.LMNP,
        properties=(lmnp_property,),
    )


@pytest.fixture
def sci_entity(sci_property) -> Entity:
    return Entity(
        id="ent-sci",
        name="SCI Les Tilleuls",
        entity_type=EntityType.SCI_IS,
        properties=(sci_property,),
    )


@pytest.fixture
def demo_portfolio(personal_entity, lmnp_entity, sci_entity) -> list[Entity]:
    return [personal_entity, lmnp_entity, sci_entity]
