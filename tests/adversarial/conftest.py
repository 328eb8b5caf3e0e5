"""
Shared fixtures for adversarial tests.

Every test starts from empty ledger tables.
"""

from collections.abc import Generator

import pytest


@pytest.fixture(autouse=True)
def _clean(clean_database: None) -> Generator[None, None, None]:
    """Apply the shared clean_database fixture to every test in this package."""
    yield
