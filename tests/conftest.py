from collections.abc import Generator
from pathlib import Path

import pytest

from sqlrecord.mapping import clear_registry
from sqlrecord.parameters import clear_translation_cache

here = Path(__file__).parent
root_path = here.parent
pytest_plugins = ["pytest_databases.docker.postgres"]


@pytest.fixture(autouse=True)
def reset_process_caches() -> Generator[None, None, None]:
    """Start every test with an empty descriptor registry and translation cache."""
    yield
    clear_registry()
    clear_translation_cache()
