"""Shared pytest fixtures for coarecon tests."""

import io
import logging
import os
import tempfile
import pytest
from openpyxl import Workbook

from coarecon.config import Settings
from coarecon.database.factories import create_sqlite_database
from coarecon.domain.chart_import import ImportExecutor
from coarecon.domain.chart_of_account import ChartOfAccountService
from coarecon.domain.mapping import MappingResolver
from coarecon.domain.matching import MatchingEngine
from coarecon.domain.staging import StagingService
from coarecon.domain.statistics import ReconciliationStatisticsService

PROGRAM_ID = 1
SHOP_ID = 7


def make_workbook(sheets: dict[str, list[list]]) -> bytes:
    """Build an .xlsx file in memory, one sheet per entry, rows as given."""
    workbook = Workbook()
    workbook.remove(workbook.active)
    for name, rows in sheets.items():
        sheet = workbook.create_sheet(name)
        for row in rows:
            sheet.append(row)
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Drop handlers attached by the CLI; they hold CliRunner's closed streams."""
    logger = logging.getLogger("coarecon")
    level = logger.level
    yield
    logger.handlers = []
    logger.setLevel(level)


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    db = create_sqlite_database(database_path=db_path)
    # Store the path for tests that need it
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    # Cleanup
    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def settings():
    """Default settings with a small worker pool."""
    return Settings(match_workers=2)


@pytest.fixture
def account_service(temp_db):
    """Create a ChartOfAccountService with a temporary database."""
    return ChartOfAccountService(temp_db)


@pytest.fixture
def staging_service(temp_db, settings):
    """Create a StagingService with a temporary database."""
    return StagingService(temp_db, settings)


@pytest.fixture
def mapping_resolver(staging_service):
    """Create a MappingResolver over the staging service."""
    return MappingResolver(staging_service)


@pytest.fixture
def import_executor(temp_db, settings, staging_service):
    """Create an ImportExecutor sharing the staging service."""
    return ImportExecutor(temp_db, settings, staging_service=staging_service)


@pytest.fixture
def matching_engine(temp_db, settings):
    """Create a MatchingEngine with a temporary database."""
    return MatchingEngine(temp_db, settings)


@pytest.fixture
def statistics_service(temp_db, settings):
    """Create a ReconciliationStatisticsService with a temporary database."""
    return ReconciliationStatisticsService(temp_db, settings)


@pytest.fixture
def master_chart(account_service):
    """Create the master chart of program 1, keyed by account number."""
    accounts = {
        "4000": "Parts Sales",
        "5000": "Labor Income",
        "6100": "Supplies Expense",
        "6200": "Office Expense",
    }
    return {
        number: account_service.create_account(PROGRAM_ID, number, name)
        for number, name in accounts.items()
    }


@pytest.fixture
def shop_account(account_service):
    """Factory creating shop 7 accounts in program 1."""

    def create(number: str, name: str, **fields) -> int:
        return account_service.create_account(
            PROGRAM_ID, number, name, shop_id=SHOP_ID, **fields
        )

    return create


@pytest.fixture
def chart_workbook():
    """A shop chart of accounts workbook with a notes sheet."""
    return make_workbook(
        {
            "Accounts": [
                ["Account Number", "Acct Name", "Description", "Type"],
                [4000, "Parts Sales", "Counter and wholesale", "Revenue"],
                [5000, "Labor Income", None, "Revenue"],
                [6100, "Supplies Expense", "Shop supplies", "Expense"],
            ],
            "Notes": [["Note"], ["Imported from legacy DMS"]],
        }
    )


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()
