import typing
import uuid
from datetime import datetime, timezone

from entity_mapping.descriptors import ColumnMapping, Handler
from entity_mapping.types import TypeCoercionRegistry


def _read_uuid(row: typing.Mapping[str, typing.Any], column: str) -> typing.Optional[uuid.UUID]:
    value = row[column]
    if value is None or isinstance(value, uuid.UUID):
        return value
    return uuid.UUID(str(value))


uuid_handler = Handler(reader=_read_uuid, writer=str)


class UuidCoercionRegistry(TypeCoercionRegistry):
    """Stores ``uuid.UUID`` fields in text columns."""

    def extension_handler(self, entity_type: typing.Type, column: ColumnMapping) -> typing.Optional[Handler]:
        handler = super().extension_handler(entity_type, column)
        if handler is None and column.python_type is uuid.UUID:
            return uuid_handler
        return handler


def naive_utc(column: ColumnMapping, value: typing.Any, for_processing: bool) -> typing.Any:
    """Write transform for databases storing timestamps without a zone."""
    if isinstance(value, datetime) and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value
