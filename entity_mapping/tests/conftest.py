import itertools
import typing

import pytest
from _pytest.config.argparsing import Parser

from entity_mapping import EntityMapper
from entity_mapping.client import DatabaseClient, Params, Row


def pytest_addoption(parser: Parser) -> None:
    parser.addoption("--sqlalchemy-url", action="store", default="sqlite://")


class RecordingClient(DatabaseClient):
    def __init__(self) -> None:
        self.result_sets: typing.List[typing.List[Row]] = []
        self.queries: typing.List[typing.Tuple[str, typing.List[typing.Any]]] = []
        self.executions: typing.List[typing.Tuple[str, typing.List[typing.Any]]] = []
        self.inserts: typing.List[typing.Tuple[str, typing.List[str], typing.List[typing.Any], str]] = []
        self._keys = itertools.count(1)

    def query(self, statement: str, params: Params = ()) -> typing.List[Row]:
        self.queries.append((statement, list(params)))
        return self.result_sets.pop(0) if self.result_sets else []

    def execute(self, statement: str, params: Params = ()) -> int:
        self.executions.append((statement, list(params)))
        return 1

    def insert_returning_key(
        self, table: str, columns: typing.Sequence[str], params: Params, key_column: str
    ) -> typing.Any:
        self.inserts.append((table, list(columns), list(params), key_column))
        return next(self._keys)


@pytest.fixture()
def client() -> RecordingClient:
    return RecordingClient()


@pytest.fixture()
def mapper() -> EntityMapper:
    return EntityMapper()
