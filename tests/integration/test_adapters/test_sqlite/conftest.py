from collections.abc import Generator
from pathlib import Path

import pytest

from sqlrecord.adapters.sqlite import SqliteConfig, SqliteDriver

SCHEMA = """
CREATE TABLE user (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    email TEXT UNIQUE,
    token TEXT NOT NULL
)
"""


@pytest.fixture
def sqlite_config(tmp_path: Path) -> Generator[SqliteConfig, None, None]:
    """File-backed database so that separate threads see each other's writes."""
    config = SqliteConfig(pool_config={"database": str(tmp_path / "records.db"), "timeout": 0.1})
    with config.provide_session() as driver:
        driver.execute(SCHEMA)
    yield config
    config.close_pool()


@pytest.fixture
def sqlite_session(sqlite_config: SqliteConfig) -> Generator[SqliteDriver, None, None]:
    with sqlite_config.provide_session() as driver:
        yield driver
