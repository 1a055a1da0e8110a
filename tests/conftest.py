"""
Pytest configuration and fixtures for tablediff tests.
Provides shared schemas, rows and environment defaults.
"""

import os
from pathlib import Path

import pytest

from tablediff.schema import ColumnKind, ColumnSpec, TableSchema


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: mark test as unit test")
    config.addinivalue_line("markers", "property: mark test as property-based test")
    config.addinivalue_line("markers", "integration: mark test as needing a real database")
    config.addinivalue_line("markers", "slow: mark test as slow running")


@pytest.fixture(scope="session")
def project_root() -> Path:
    """Get project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def people_schema() -> TableSchema:
    """Two-column table keyed on id: (id NUMERIC, name TEXT)."""
    return TableSchema(
        name="people",
        columns=(
            ColumnSpec("id", ColumnKind.NUMERIC, nullable=False, ordinal_position=1,
                       is_key_component=True),
            ColumnSpec("name", ColumnKind.TEXT, nullable=True, ordinal_position=2),
        ),
    )


@pytest.fixture
def customers_schema() -> TableSchema:
    """Wider table with every hashable kind and a change-tracking column."""
    return TableSchema.from_descriptor(
        "dbo.customers",
        [
            {"name": "customer_id", "declared_type": "int", "nullable": False,
             "is_key_component": True},
            {"name": "email", "declared_type": "nvarchar(255)"},
            {"name": "active", "declared_type": "bit"},
            {"name": "balance", "declared_type": "decimal(12,2)"},
            {"name": "updated_at", "declared_type": "datetime2"},
            {"name": "row_ver", "declared_type": "rowversion"},
        ],
    )


@pytest.fixture
def left_people() -> list[dict]:
    return [{"id": 1, "name": "Alice"}, {"id": 2, "name": "Bob"}]


@pytest.fixture
def right_people() -> list[dict]:
    return [{"id": 1, "name": "Alice"}, {"id": 2, "name": "Bobby"}, {"id": 3, "name": "Cara"}]


@pytest.fixture(autouse=True)
def set_test_env_vars() -> None:
    """Set default test environment variables if not already set."""
    defaults = {
        "SQLSERVER_HOST": "localhost",
        "SQLSERVER_DATABASE": "warehouse_source",
        "SQLSERVER_USER": "sa",
        "SQLSERVER_PASSWORD": "YourStrong!Passw0rd",
        "POSTGRES_HOST": "localhost",
        "POSTGRES_PORT": "5432",
        "POSTGRES_DB": "warehouse_target",
        "POSTGRES_USER": "postgres",
        "POSTGRES_PASSWORD": "postgres_secure_password",
    }

    for key, value in defaults.items():
        if key not in os.environ:
            os.environ[key] = value
