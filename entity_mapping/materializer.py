import functools
import logging
import typing

from entity_mapping.descriptors import ColumnMapping, EntityDescriptor
from entity_mapping.errors import MaterializationError


logger = logging.getLogger(__name__)

Row = typing.Mapping[str, typing.Any]


class RowMaterializer:
    def mapping_order(self, columns: typing.Sequence[ColumnMapping]) -> typing.Sequence[ColumnMapping]:
        """Subclasses can reorder assignments when one setter depends on another."""
        return columns

    def materialize(self, descriptor: EntityDescriptor, row: Row) -> typing.Any:
        try:
            instance = descriptor.entity_type()
        except Exception as e:
            raise MaterializationError(descriptor.entity_type, None, e) from e

        for column in self.mapping_order(descriptor.columns):
            try:
                self._assign(instance, column, row)
            except Exception as e:
                logger.debug("Failed reading %s.%s", descriptor.name, column.column_name, exc_info=True)
                raise MaterializationError(descriptor.entity_type, column.column_name, e) from e
        return instance

    def materializer_for(self, descriptor: EntityDescriptor) -> typing.Callable[[Row], typing.Any]:
        return functools.partial(self.materialize, descriptor)

    @staticmethod
    def _assign(instance: typing.Any, column: ColumnMapping, row: Row) -> None:
        value = column.read(row)
        if row[column.column_name] is None:
            # a non-nullable primitive keeps whatever its default was
            if column.accepts_null:
                column.setter(instance, None)
            return
        column.setter(instance, value)
