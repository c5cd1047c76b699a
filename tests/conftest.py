import sqlite3
from collections.abc import Callable
from functools import partial
from pathlib import Path

import pytest

from src.adapters.dev_email import DevEmailAdapter
from src.adapters.jinja_templates import JinjaTemplateRenderer
from src.adapters.sqlite.migrator import SQLiteMigrator
from src.adapters.sqlite_db import SQLiteSubscriptionRepo, SQLiteUnitOfWork
from src.components.subscriptions import SubscriptionConfig

PROJECT_ROOT = Path(__file__).resolve().parents[1]
MIGRATIONS_DIR = str(PROJECT_ROOT / "migrations")
TEMPLATES_DIR = PROJECT_ROOT / "templates"


@pytest.fixture
def db_path(tmp_path) -> str:
    """Temporary SQLite database with the real migrations applied."""
    path = str(tmp_path / "newsletter.db")
    SQLiteMigrator(path, MIGRATIONS_DIR).run_migrations()
    return path


@pytest.fixture
def repo(db_path: str) -> SQLiteSubscriptionRepo:
    return SQLiteSubscriptionRepo(db_path)


@pytest.fixture
def uow_factory(db_path: str) -> Callable[[], SQLiteUnitOfWork]:
    return partial(SQLiteUnitOfWork, db_path)


@pytest.fixture
def email_adapter() -> DevEmailAdapter:
    return DevEmailAdapter()


@pytest.fixture
def renderer() -> JinjaTemplateRenderer:
    return JinjaTemplateRenderer(TEMPLATES_DIR)


@pytest.fixture
def subscription_config() -> SubscriptionConfig:
    return SubscriptionConfig(base_url="http://test.local")


@pytest.fixture
def count_rows(db_path: str) -> Callable[[str], int]:
    """Count rows in a table of the test database."""

    def _count(table: str) -> int:
        conn = sqlite3.connect(db_path)
        try:
            return conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
        finally:
            conn.close()

    return _count
