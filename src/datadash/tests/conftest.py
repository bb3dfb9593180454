"""Shared fixtures for DataDash tests."""
import pytest
from loguru import logger

from datadash.data.analyzer import analyze_sheet


@pytest.fixture
def orders_rows():
    return [
        {'id': 1, 'cust': 'A', 'amt': 100},
        {'id': 2, 'cust': 'B', 'amt': 50},
    ]


@pytest.fixture
def customers_rows():
    return [{'cust': 'A', 'tier': 'gold'}]


@pytest.fixture
def tables(orders_rows, customers_rows):
    return {
        'Orders': analyze_sheet(orders_rows, 'Orders'),
        'Customers': analyze_sheet(customers_rows, 'Customers'),
    }


@pytest.fixture(autouse=True)
def _reset_loguru():
    """Drop handlers added by the CLI so they do not outlive captured streams."""
    yield
    logger.remove()
