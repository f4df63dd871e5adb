import abc
import typing


Row = typing.Mapping[str, typing.Any]
Params = typing.Sequence[typing.Any]


class DatabaseClient(abc.ABC):
    """What the mapper needs from a driver. SQL uses ``?`` positional placeholders."""

    @abc.abstractmethod
    def query(self, statement: str, params: Params = ()) -> typing.List[Row]:
        pass

    @abc.abstractmethod
    def execute(self, statement: str, params: Params = ()) -> int:
        pass

    @abc.abstractmethod
    def insert_returning_key(
        self, table: str, columns: typing.Sequence[str], params: Params, key_column: str
    ) -> typing.Any:
        pass
