from typing import Generator

import pytest
from _pytest.fixtures import SubRequest
from sqlalchemy.engine import Engine, create_engine


@pytest.fixture()
def engine(request: SubRequest) -> Generator[Engine, None, None]:
    """Fresh engine per test, an in-memory SQLite database does not outlive it."""
    engine = create_engine(request.config.getoption("--sqlalchemy-url"))
    yield engine
    engine.dispose()
