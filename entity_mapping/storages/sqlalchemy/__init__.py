import itertools
import re
import typing

import sqlalchemy as sa
from sqlalchemy.engine import Connection, CursorResult
from sqlalchemy.exc import SQLAlchemyError

from entity_mapping import sql
from entity_mapping.client import DatabaseClient, Params, Row
from entity_mapping.errors import PersistenceIOError


_TOKENS = re.compile(rf"'(?:[^']|'')*'|\"(?:[^\"]|\"\")*\"|{re.escape(sql.PLACEHOLDER)}|:")


def _bind(statement: str, params: Params) -> sa.TextClause:
    """Rewrites ``?`` placeholders into named parameters, their SQL types are inferred from the values.

    Placeholders inside quoted literals or identifiers are left alone, colons are escaped so ``text()``
    never mistakes them for parameters.
    """
    counter = itertools.count()

    def rewrite(match: typing.Match) -> str:
        token = match.group()
        if token == sql.PLACEHOLDER:
            return f":p{next(counter)}"
        return token.replace(":", "\\:")

    text = _TOKENS.sub(rewrite, statement)
    return sa.text(text).bindparams(*(sa.bindparam(f"p{index}", value) for index, value in enumerate(params)))


class SqlAlchemyClient(DatabaseClient):
    def __init__(self, connection: Connection) -> None:
        self._connection = connection

    def query(self, statement: str, params: Params = ()) -> typing.List[Row]:
        return [row._mapping for row in self._run(statement, params)]

    def execute(self, statement: str, params: Params = ()) -> int:
        return self._run(statement, params).rowcount

    def insert_returning_key(
        self, table: str, columns: typing.Sequence[str], params: Params, key_column: str
    ) -> typing.Any:
        statement = sql.insert(table, columns)
        if self._connection.dialect.insert_returning:
            return self._run(f"{statement} RETURNING {key_column}", params).scalar_one()
        return self._run(statement, params).lastrowid

    def _run(self, statement: str, params: Params) -> CursorResult:
        try:
            return self._connection.execute(_bind(statement, params))
        except SQLAlchemyError as e:
            raise PersistenceIOError(str(e)) from e
