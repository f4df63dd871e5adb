import functools
import typing

from entity_mapping import sql
from entity_mapping.descriptors import EntityDescriptor, ManyToMany, ManyToOne, OneToMany, RelationshipDescriptor
from entity_mapping.errors import AmbiguousRelationshipError, RelationshipResolutionError

if typing.TYPE_CHECKING:
    from entity_mapping.session import Session


_KIND_LABELS = {ManyToOne: "many-to-one", OneToMany: "one-to-many", ManyToMany: "many-to-many"}


def select_relationship(
    descriptor: EntityDescriptor, kind: typing.Type, target_type: typing.Type, name: typing.Optional[str] = None
) -> RelationshipDescriptor:
    """Picks the single ``kind`` relationship of ``descriptor`` to ``target_type``, never guesses."""
    candidates = descriptor.relationships_of(kind, target_type)
    if name is not None:
        candidates = [candidate for candidate in candidates if candidate.name == name]
    label = _KIND_LABELS[kind]
    if not candidates:
        named = f" named {name!r}" if name is not None else ""
        raise RelationshipResolutionError(
            f"{descriptor.name} does not define a {label} relationship{named} to {target_type.__name__}"
        )
    if len(candidates) > 1:
        names = ", ".join(candidate.name for candidate in candidates)
        raise AmbiguousRelationshipError(
            f"{descriptor.name} defines several {label} relationships to {target_type.__name__} ({names}), "
            "pass the name of the one to use"
        )
    return candidates[0]


class RelationshipResolver:
    def __init__(self, session: "Session") -> None:
        self._session = session

    @functools.singledispatchmethod
    def resolve(self, relationship: typing.Any, source: typing.Any) -> typing.Any:
        raise RelationshipResolutionError(f"Unsupported relationship {relationship!r}")

    @resolve.register
    def _(self, relationship: ManyToOne, source: typing.Any) -> typing.Optional[typing.Any]:
        foreign_key = relationship.column.getter(source)
        if relationship.column.is_absent(foreign_key):
            return None
        return self._session.get(relationship.target_type, foreign_key)

    @resolve.register
    def _(self, relationship: OneToMany, source: typing.Any) -> typing.List[typing.Any]:
        source_type = type(source)
        target = self._session.describe(relationship.target_type)
        back_reference = select_relationship(target, ManyToOne, source_type, relationship.mapped_by)
        query = sql.select(target.table_name, [back_reference.column.column_name])
        return self._session.load(target, query, [self._session.identity_param(source)])

    @resolve.register
    def _(self, relationship: ManyToMany, source: typing.Any) -> typing.List[typing.Any]:
        self.inverse_of(relationship, type(source))
        target = self._session.describe(relationship.target_type)
        query = sql.select_joined(
            target.table_name,
            target.require_id().column_name,
            relationship.join_table,
            relationship.target_join_column,
            relationship.source_join_column,
        )
        return self._session.load(target, query, [self._session.identity_param(source)])

    def inverse_of(self, relationship: ManyToMany, source_type: typing.Type) -> ManyToMany:
        target = self._session.describe(relationship.target_type)
        source_name = source_type.__name__
        candidates = target.relationships_of(ManyToMany, source_type)
        if not candidates:
            raise RelationshipResolutionError(
                f"Both {source_name} and {target.name} must specify many to many details, but {target.name} does not"
            )
        for candidate in candidates:
            if candidate.is_inverse_of(relationship):
                return candidate
        raise RelationshipResolutionError(
            f"No many-to-many relationship on {target.name} mirrors {source_name}.{relationship.name} "
            f"({relationship.join_table}: {relationship.source_join_column}, {relationship.target_join_column})"
        )

    def many_to_one(
        self, source: typing.Any, target_type: typing.Type, name: typing.Optional[str] = None
    ) -> typing.Optional[typing.Any]:
        descriptor = self._session.describe(type(source))
        return self.resolve(select_relationship(descriptor, ManyToOne, target_type, name), source)

    def one_to_many(
        self, source: typing.Any, target_type: typing.Type, mapped_by: typing.Optional[str] = None
    ) -> typing.List[typing.Any]:
        self._session.describe(type(source)).require_id()
        return self.resolve(OneToMany(mapped_by or target_type.__name__, target_type, mapped_by), source)

    def many_to_many(
        self, source: typing.Any, target_type: typing.Type, name: typing.Optional[str] = None
    ) -> typing.List[typing.Any]:
        descriptor = self._session.describe(type(source))
        return self.resolve(select_relationship(descriptor, ManyToMany, target_type, name), source)

    def query_for(self, target_type: typing.Type, *constraints: typing.Any) -> typing.List[typing.Any]:
        """Finds every ``target_type`` holding foreign keys to all of ``constraints``."""
        target = self._session.describe(target_type)
        columns: typing.List[str] = []
        params: typing.List[typing.Any] = []
        for constraint in constraints:
            relationship = select_relationship(target, ManyToOne, type(constraint))
            columns.append(relationship.column.column_name)
            params.append(self._session.identity_param(constraint))
        return self._session.load(target, sql.select(target.table_name, columns), params)

    def add_link(self, source: typing.Any, target: typing.Any, name: typing.Optional[str] = None) -> None:
        relationship = self._linking(source, target, name)
        query = sql.insert(relationship.join_table, [relationship.source_join_column, relationship.target_join_column])
        self._session.execute(query, [self._session.identity_param(source), self._session.identity_param(target)])

    def remove_link(self, source: typing.Any, target: typing.Any, name: typing.Optional[str] = None) -> None:
        relationship = self._linking(source, target, name)
        query = sql.delete(relationship.join_table, [relationship.target_join_column, relationship.source_join_column])
        self._session.execute(query, [self._session.identity_param(target), self._session.identity_param(source)])

    def _linking(self, source: typing.Any, target: typing.Any, name: typing.Optional[str]) -> ManyToMany:
        descriptor = self._session.describe(type(source))
        relationship = select_relationship(descriptor, ManyToMany, type(target), name)
        self.inverse_of(relationship, type(source))
        return relationship
