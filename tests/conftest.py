"""Pytest configuration and fixtures."""

import pytest

from owner_statement import Owner, Period, Property, Transaction


@pytest.fixture
def owned_property() -> Property:
    """Property with an external owner."""
    return Property(id=101, name="Casa do Mar", is_admin_owned=False, owner=Owner(name="Maria Silva"))


@pytest.fixture
def admin_property() -> Property:
    """Property owned by the management company."""
    return Property(id=102, name="Alfama Loft", is_admin_owned=True)


@pytest.fixture
def period() -> Period:
    """September 2025 reporting period."""
    return Period(start_date="2025-09-01", end_date="2025-09-30")


@pytest.fixture
def two_invoices() -> list[Transaction]:
    """Invoices of 100 and 200."""
    return [
        Transaction(id="inv-1", name="Reservation 1", value=100, date="2025-09-05", series="FT2025"),
        Transaction(id="inv-2", name="Reservation 2", value="200", date="2025-09-12", series="FT2025"),
    ]
