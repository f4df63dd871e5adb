import logging
import typing

from entity_mapping import sql
from entity_mapping.client import DatabaseClient, Params, Row
from entity_mapping.crud import CRUDExecutor
from entity_mapping.descriptors import EntityDescriptor
from entity_mapping.errors import EntityNotFound, MaterializationError, MultipleEntitiesFound, ScopeTerminatedError
from entity_mapping.identity_cache import IdentityCache
from entity_mapping.relationships import RelationshipResolver
from entity_mapping.types import TypeCoercionRegistry

if typing.TYPE_CHECKING:
    from entity_mapping.mapper import EntityMapper


logger = logging.getLogger(__name__)

T = typing.TypeVar("T")


class Session:
    """A unit of work: database clients plus an identity cache owned by nobody else.

    Use it as a context manager, leaving the block terminates the cache.
    """

    def __init__(
        self,
        mapper: "EntityMapper",
        client: DatabaseClient,
        write_client: typing.Optional[DatabaseClient] = None,
        cache: typing.Optional[IdentityCache] = None,
    ) -> None:
        self.mapper = mapper
        self.read_client = client
        self.write_client = write_client or client
        self._cache = cache if cache is not None else IdentityCache.create()
        self._resolver = RelationshipResolver(self)
        self._crud = CRUDExecutor(self)

    def __enter__(self) -> "Session":
        return self

    def __exit__(self, *exc_info: typing.Any) -> None:
        self.close()

    def close(self) -> None:
        self._cache.terminate()

    @property
    def closed(self) -> bool:
        return self._cache.terminated

    @property
    def cache(self) -> IdentityCache:
        self._ensure_open()
        return self._cache

    @property
    def coercion(self) -> TypeCoercionRegistry:
        return self.mapper.coercion

    def describe(self, entity_type: typing.Type) -> EntityDescriptor:
        return self.mapper.describe(entity_type)

    def identity_param(self, instance: typing.Any) -> typing.Any:
        id_column = self.describe(type(instance)).require_id()
        return self.coercion.persistence_value(id_column, id_column.getter(instance))

    def query_rows(self, query: str, params: Params = ()) -> typing.List[Row]:
        self._ensure_open()
        logger.debug("Querying %s with %r", query, params)
        return self.read_client.query(query, params)

    def execute(self, statement: str, params: Params = ()) -> int:
        self._ensure_open()
        logger.debug("Executing %s with %r", statement, params)
        return self.write_client.execute(statement, params)

    def load(self, descriptor: EntityDescriptor, query: str, params: Params = ()) -> typing.List[typing.Any]:
        return [self._load_row(descriptor, row) for row in self.query_rows(query, params)]

    def get(self, entity_type: typing.Type[T], identity: typing.Any, use_cache: bool = True) -> T:
        descriptor = self.describe(entity_type)
        id_column = descriptor.require_id()
        # cache keys are ids as the column reader produces them, whatever form the caller passed
        identity = id_column.read({id_column.column_name: identity})
        if use_cache:
            cached = self.cache.get(entity_type, identity)
            if cached is not None:
                return cached

        rows = self.query_rows(
            sql.select(descriptor.table_name, [id_column.column_name]),
            [self.coercion.persistence_value(id_column, identity)],
        )
        if not rows:
            raise EntityNotFound(f"No {descriptor.name} with {id_column.column_name} = {identity!r}")
        if len(rows) > 1:
            raise MultipleEntitiesFound(f"{len(rows)} rows of {descriptor.table_name} have id {identity!r}")

        instance = self.mapper.materializer.materialize(descriptor, rows[0])
        if use_cache:
            self.cache.set(entity_type, identity, instance)
        return instance

    def get_all(self, entity_type: typing.Type[T]) -> typing.List[T]:
        descriptor = self.describe(entity_type)
        return self.load(descriptor, sql.select(descriptor.table_name))

    def query(self, entity_type: typing.Type[T], query: str, *params: typing.Any) -> typing.List[T]:
        return self.load(self.describe(entity_type), query, params)

    def query_for(self, entity_type: typing.Type[T], *constraints: typing.Any) -> typing.List[T]:
        return self._resolver.query_for(entity_type, *constraints)

    def resolve(self, source: typing.Any, name: str) -> typing.Any:
        relationship = self.describe(type(source)).relationship(name)
        return self._resolver.resolve(relationship, source)

    def get_many_to_one(
        self, source: typing.Any, target_type: typing.Type[T], name: typing.Optional[str] = None
    ) -> typing.Optional[T]:
        return self._resolver.many_to_one(source, target_type, name)

    def get_one_to_many(
        self, source: typing.Any, target_type: typing.Type[T], mapped_by: typing.Optional[str] = None
    ) -> typing.List[T]:
        return self._resolver.one_to_many(source, target_type, mapped_by)

    def get_many_to_many(
        self, source: typing.Any, target_type: typing.Type[T], name: typing.Optional[str] = None
    ) -> typing.List[T]:
        return self._resolver.many_to_many(source, target_type, name)

    def add_many_to_many(self, source: typing.Any, target: typing.Any, name: typing.Optional[str] = None) -> None:
        self._resolver.add_link(source, target, name)

    def remove_many_to_many(self, source: typing.Any, target: typing.Any, name: typing.Optional[str] = None) -> None:
        self._resolver.remove_link(source, target, name)

    def insert(self, instance: typing.Any) -> None:
        self._crud.insert(instance)

    def update(self, instance: typing.Any) -> None:
        self._crud.update(instance)

    def cautious_update(self, instance: typing.Any) -> None:
        self._crud.cautious_update(instance)

    def insert_or_update(self, instance: typing.Any) -> None:
        self._crud.insert_or_update(instance)

    def delete(self, instance: typing.Any) -> None:
        self._crud.delete(instance)

    def _load_row(self, descriptor: EntityDescriptor, row: Row) -> typing.Any:
        identity = self._identity_in(descriptor, row)
        if identity is not None:
            cached = self.cache.get(descriptor.entity_type, identity)
            if cached is not None:
                return cached

        instance = self.mapper.materializer.materialize(descriptor, row)
        if identity is not None:
            self.cache.set(descriptor.entity_type, identity, instance)
        return instance

    @staticmethod
    def _identity_in(descriptor: EntityDescriptor, row: Row) -> typing.Any:
        id_column = descriptor.id_column
        if id_column is None:
            return None
        try:
            return id_column.read(row)
        except Exception as e:
            raise MaterializationError(descriptor.entity_type, id_column.column_name, e) from e

    def _ensure_open(self) -> None:
        if self._cache.terminated:
            raise ScopeTerminatedError("Session is closed")
