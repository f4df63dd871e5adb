import logging
import typing

from entity_mapping import sql
from entity_mapping.descriptors import ColumnMapping, EntityDescriptor

if typing.TYPE_CHECKING:
    from entity_mapping.session import Session


logger = logging.getLogger(__name__)


def _null_safe_equals(first: typing.Any, second: typing.Any) -> bool:
    if first is None and second is None:
        return True
    if first is None or second is None:
        return False
    return first == second


class CRUDExecutor:
    def __init__(self, session: "Session") -> None:
        self._session = session

    def insert(self, instance: typing.Any) -> None:
        descriptor = self._session.describe(type(instance))
        columns = [
            column for column in descriptor.columns if not (column.primary_key and descriptor.id_is_generated)
        ]
        names = [column.column_name for column in columns]
        values = [self._value(column, instance) for column in columns]

        if descriptor.id_is_generated:
            id_column = descriptor.id_column
            key = self._session.write_client.insert_returning_key(
                descriptor.table_name, names, values, id_column.column_name
            )
            logger.debug("Generated %s.%s = %r", descriptor.table_name, id_column.column_name, key)
            id_column.setter(instance, id_column.read({id_column.column_name: key}))
        else:
            self._session.execute(sql.insert(descriptor.table_name, names), values)

        if descriptor.id_column is not None:
            self._remember(descriptor, instance)

    def update(self, instance: typing.Any) -> None:
        descriptor = self._session.describe(type(instance))
        id_column = descriptor.require_id()
        columns = [column for column in descriptor.columns if not column.primary_key]
        if columns:
            query = sql.update(descriptor.table_name, [column.column_name for column in columns], id_column.column_name)
            values = [self._value(column, instance) for column in columns]
            self._session.execute(query, values + [self._session.identity_param(instance)])
        self._remember(descriptor, instance)

    def cautious_update(self, instance: typing.Any) -> None:
        """Writes only the columns differing from the currently persisted row."""
        descriptor = self._session.describe(type(instance))
        id_column = descriptor.require_id()
        existing = self._session.get(descriptor.entity_type, id_column.getter(instance), use_cache=False)

        changed: typing.List[ColumnMapping] = []
        values: typing.List[typing.Any] = []
        for column in descriptor.columns:
            if column.primary_key:
                continue
            existing_value = self._value(column, existing, for_processing=False)
            value = self._value(column, instance)
            if _null_safe_equals(value, existing_value):
                continue
            changed.append(column)
            values.append(value)

        if changed:
            query = sql.update(descriptor.table_name, [column.column_name for column in changed], id_column.column_name)
            self._session.execute(query, values + [self._session.identity_param(instance)])
        else:
            logger.debug("%s %r is unchanged, not updating", descriptor.name, id_column.getter(instance))
        self._remember(descriptor, instance)

    def delete(self, instance: typing.Any) -> None:
        descriptor = self._session.describe(type(instance))
        id_column = descriptor.require_id()
        self._session.execute(
            sql.delete(descriptor.table_name, [id_column.column_name]), [self._session.identity_param(instance)]
        )
        self._session.cache.evict(descriptor.entity_type, id_column.getter(instance))

    def insert_or_update(self, instance: typing.Any) -> None:
        """Inserts when the id is absent (None, or 0 for numeric ids) and updates otherwise."""
        descriptor = self._session.describe(type(instance))
        id_column = descriptor.require_id()
        if id_column.is_absent(id_column.getter(instance)):
            self.insert(instance)
        else:
            self.update(instance)

    def _value(self, column: ColumnMapping, instance: typing.Any, for_processing: bool = True) -> typing.Any:
        return self._session.coercion.persistence_value(column, column.getter(instance), for_processing)

    def _remember(self, descriptor: EntityDescriptor, instance: typing.Any) -> None:
        identity = descriptor.identity_of(instance)
        if descriptor.id_column.is_absent(identity):
            return
        cache = self._session.cache
        if cache.get(descriptor.entity_type, identity) is not instance:
            cache.set(descriptor.entity_type, identity, instance)
