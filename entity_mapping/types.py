import enum
import types
import typing
from datetime import date, datetime
from decimal import Decimal
from functools import singledispatch

from entity_mapping.descriptors import ColumnMapping, Handler, SemanticType
from entity_mapping.errors import NoHandlerError


WriteTransform = typing.Callable[[ColumnMapping, typing.Any, bool], typing.Any]

_UNION_ORIGINS = (typing.Union, types.UnionType)


def _is_generic(field_type: typing.Any) -> bool:
    return typing.get_origin(field_type) is not None


def _is_field_nullable(field_type: typing.Any) -> bool:
    return typing.get_origin(field_type) in _UNION_ORIGINS and type(None) in typing.get_args(field_type)


def _get_wrapped_type(field_type: typing.Any) -> typing.Any:
    wrapped = [arg for arg in typing.get_args(field_type) if arg is not type(None)]
    return wrapped[0] if len(wrapped) == 1 else field_type


def unwrap(field_type: typing.Any) -> typing.Tuple[typing.Any, bool]:
    """Returns the underlying type of a field annotation and whether it is Optional."""
    if _is_generic(field_type) and _is_field_nullable(field_type):
        return _get_wrapped_type(field_type), True
    return field_type, False


# exact lookup, ``datetime`` is a ``date`` subclass but they map to different columns
_native_to_semantic = {
    str: SemanticType.TEXT,
    int: SemanticType.INTEGER,
    float: SemanticType.DOUBLE,
    Decimal: SemanticType.DECIMAL,
    bool: SemanticType.BOOLEAN,
    bytes: SemanticType.BINARY,
    datetime: SemanticType.TIMESTAMP,
    date: SemanticType.DATE,
}


def semantic_type_of(python_type: typing.Any) -> typing.Any:
    try:
        return _native_to_semantic[python_type]
    except (KeyError, TypeError):
        pass
    if isinstance(python_type, type) and issubclass(python_type, enum.Enum):
        return SemanticType.ENUM
    return python_type


@singledispatch
def to_storage(argument: typing.Any) -> typing.Any:
    return argument


@to_storage.register(enum.Enum)
def _(argument: enum.Enum) -> str:
    return argument.name


@to_storage.register(bytearray)
@to_storage.register(memoryview)
def _(argument: typing.Union[bytearray, memoryview]) -> bytes:
    return bytes(argument)


def _reading(convert: typing.Callable[[typing.Any], typing.Any]) -> typing.Callable:
    def read(row: typing.Mapping[str, typing.Any], column: str) -> typing.Any:
        value = row[column]
        if value is None:
            return None
        return convert(value)

    return read


def _to_decimal(value: typing.Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _to_timestamp(value: typing.Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    return datetime.fromisoformat(str(value))


def _to_date(value: typing.Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    # drivers without a native date type hand back "YYYY-MM-DD[ HH:MM:SS]"
    return date.fromisoformat(str(value)[:10])


def _enum_handler(enum_type: typing.Type[enum.Enum]) -> Handler:
    def by_name(name: typing.Any) -> enum.Enum:
        try:
            return enum_type[name]
        except KeyError:
            raise ValueError(f"{name!r} is not a member of {enum_type.__name__}") from None

    return Handler(reader=_reading(by_name), writer=to_storage)


_builtin_handlers = {
    SemanticType.TEXT: Handler(reader=_reading(str), writer=to_storage),
    SemanticType.INTEGER: Handler(reader=_reading(int), writer=to_storage),
    SemanticType.LONG: Handler(reader=_reading(int), writer=to_storage),
    SemanticType.FLOAT: Handler(reader=_reading(float), writer=to_storage),
    SemanticType.DOUBLE: Handler(reader=_reading(float), writer=to_storage),
    SemanticType.DECIMAL: Handler(reader=_reading(_to_decimal), writer=to_storage),
    SemanticType.BOOLEAN: Handler(reader=_reading(bool), writer=to_storage),
    SemanticType.BINARY: Handler(reader=_reading(bytes), writer=to_storage),
    SemanticType.TIMESTAMP: Handler(reader=_reading(_to_timestamp), writer=to_storage),
    SemanticType.DATE: Handler(reader=_reading(_to_date), writer=to_storage),
}


class TypeCoercionRegistry:
    def __init__(self) -> None:
        self._field_handlers: typing.Dict[typing.Tuple[typing.Type, str], Handler] = {}
        self._type_handlers: typing.Dict[typing.Any, Handler] = {}
        self._write_transforms: typing.List[WriteTransform] = []

    def register_field(self, entity_type: typing.Type, field_name: str, handler: Handler) -> None:
        self._field_handlers[(entity_type, field_name)] = handler

    def register_type(self, python_type: typing.Any, handler: Handler) -> None:
        self._type_handlers[python_type] = handler

    def add_write_transform(self, transform: WriteTransform) -> None:
        self._write_transforms.append(transform)

    def extension_handler(
        self, entity_type: typing.Type, column: ColumnMapping
    ) -> typing.Optional[Handler]:
        """Subclasses can implement specific type handling here, it is consulted before the built-ins."""
        handler = self._field_handlers.get((entity_type, column.field_name))
        if handler is None:
            handler = self._type_handlers.get(column.python_type)
        return handler

    def handler_for(self, entity_type: typing.Type, column: ColumnMapping) -> Handler:
        handler = self.extension_handler(entity_type, column)
        if handler is not None:
            return handler
        if column.semantic_type is SemanticType.ENUM:
            return _enum_handler(column.python_type)
        try:
            return _builtin_handlers[column.semantic_type]
        except (KeyError, TypeError):
            raise NoHandlerError(entity_type, column.field_name, column.semantic_type) from None

    def persistence_value(self, column: ColumnMapping, value: typing.Any, for_processing: bool = True) -> typing.Any:
        """Converts a field value into the parameter sent to the database.

        ``for_processing`` is False when the value is only compared against the pending state.
        """
        if value is not None:
            value = to_storage(column.handler.writer(value))
        for transform in self._write_transforms:
            value = transform(column, value, for_processing)
        return value
