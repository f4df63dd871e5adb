import logging
import operator
import threading
import typing

import attr
import inflection

from entity_mapping.declarations import (
    COLUMN,
    ColumnDeclaration,
    ManyToManyDeclaration,
    OneToManyDeclaration,
    Target,
    declared_relationships,
)
from entity_mapping.descriptors import (
    ColumnMapping,
    EntityDescriptor,
    ManyToMany,
    ManyToOne,
    OneToMany,
    RelationshipDescriptor,
)
from entity_mapping.errors import ConfigurationError
from entity_mapping.types import TypeCoercionRegistry, semantic_type_of, unwrap


logger = logging.getLogger(__name__)


def _resolve_target(target: Target) -> typing.Type:
    if isinstance(target, type):
        return target
    return target()


def _table_name(entity_type: typing.Type) -> str:
    # the nearest class declaring either a table or an entity name wins
    for klass in entity_type.__mro__:
        name = vars(klass).get("__table_name__") or vars(klass).get("__entity_name__")
        if name:
            return name
    raise ConfigurationError(f"No table name specified for {entity_type.__name__}")


def _join_column(entity_type: typing.Type) -> str:
    return f"{inflection.underscore(entity_type.__name__)}_id"


def _base_columns(entity_type: typing.Type) -> typing.Dict[str, typing.Type]:
    """Persisted field names of the attrs bases, mapped to the base class first declaring them."""
    declared: typing.Dict[str, typing.Type] = {}
    for klass in reversed(entity_type.__mro__[1:]):
        if not attr.has(klass):
            continue
        for field in attr.fields(klass):
            if COLUMN in field.metadata:
                declared.setdefault(field.name, klass)
    return declared


def _setter_for(entity_type: typing.Type, field: attr.Attribute) -> typing.Optional[typing.Callable]:
    if _is_frozen(entity_type, field):
        return None
    name = field.name

    def setter(instance: typing.Any, value: typing.Any) -> None:
        setattr(instance, name, value)

    return setter


def _is_frozen(entity_type: typing.Type, field: attr.Attribute) -> bool:
    if field.on_setattr is attr.setters.frozen:
        return True
    # attr.s(frozen=True) replaces __setattr__ with one raising FrozenInstanceError
    return getattr(entity_type.__setattr__, "__name__", None) == "_frozen_setattrs"


@attr.s(auto_attribs=True)
class MetadataRegistry:
    coercion: TypeCoercionRegistry = attr.Factory(TypeCoercionRegistry)
    entities_descriptors: typing.Dict[typing.Type, EntityDescriptor] = attr.Factory(dict)
    _lock: threading.Lock = attr.ib(factory=threading.Lock, repr=False, eq=False)

    def describe(self, entity_type: typing.Type) -> EntityDescriptor:
        try:
            return self.entities_descriptors[entity_type]
        except KeyError:
            pass

        descriptor = self._build(entity_type)
        with self._lock:
            # a concurrent build of the same type may have been published first
            return self.entities_descriptors.setdefault(entity_type, descriptor)

    def _build(self, entity_type: typing.Type) -> EntityDescriptor:
        if not attr.has(entity_type):
            raise ConfigurationError(f"{entity_type!r} is not an attrs class")
        try:
            attr.resolve_types(entity_type)
        except NameError as e:
            raise ConfigurationError(f"Unresolvable annotation on {entity_type.__name__}: {e}") from e

        table_name = _table_name(entity_type)
        columns: typing.List[ColumnMapping] = []
        relationships: typing.List[RelationshipDescriptor] = []
        id_column: typing.Optional[ColumnMapping] = None
        id_is_generated = False
        fields_by_column: typing.Dict[str, str] = {}

        base_columns = _base_columns(entity_type)

        for field in attr.fields(entity_type):
            if not field.inherited and field.name in base_columns:
                raise ConfigurationError(
                    f"{entity_type.__name__}.{field.name} redeclares the persisted field of "
                    f"{base_columns[field.name].__name__}"
                )
            declaration: typing.Optional[ColumnDeclaration] = field.metadata.get(COLUMN)
            if declaration is None:
                continue

            column_name = declaration.name or field.name
            if column_name in fields_by_column:
                raise ConfigurationError(
                    f"{entity_type.__name__}.{field.name} and {entity_type.__name__}.{fields_by_column[column_name]} "
                    f"both map to column {column_name!r}"
                )

            setter = declaration.setter or _setter_for(entity_type, field)
            if setter is None:
                if declaration.primary_key:
                    raise ConfigurationError(f"{entity_type.__name__}'s id field {field.name} is not settable")
                logger.warning("Skipping %s.%s, it has no usable setter", entity_type.__name__, field.name)
                continue
            fields_by_column[column_name] = field.name

            python_type, nullable = unwrap(field.type)
            column = ColumnMapping(
                field_name=field.name,
                column_name=column_name,
                semantic_type=declaration.semantic_type or semantic_type_of(python_type),
                python_type=python_type,
                getter=declaration.getter or operator.attrgetter(field.name),
                setter=setter,
                nullable=nullable if declaration.nullable is None else declaration.nullable,
                primary_key=declaration.primary_key,
            )
            column = attr.evolve(column, handler=self.coercion.handler_for(entity_type, column))
            columns.append(column)

            if declaration.primary_key:
                if id_column is not None:
                    raise ConfigurationError(
                        f"{entity_type.__name__} declares more than one id field: {id_column.field_name}, {field.name}"
                    )
                id_column = column
                id_is_generated = declaration.generated

            if declaration.references is not None:
                relationships.append(ManyToOne(field.name, column, _resolve_target(declaration.references)))

        for name, relationship in declared_relationships(entity_type).items():
            relationships.append(self._relationship(entity_type, name, relationship))

        descriptor = EntityDescriptor(
            entity_type=entity_type,
            table_name=table_name,
            columns=tuple(columns),
            id_column=id_column,
            id_is_generated=id_is_generated,
            relationships=tuple(relationships),
        )
        logger.debug("Built descriptor for %s: table %s, %d columns", entity_type.__name__, table_name, len(columns))
        return descriptor

    @staticmethod
    def _relationship(
        entity_type: typing.Type, name: str, declaration: typing.Union[OneToManyDeclaration, ManyToManyDeclaration]
    ) -> RelationshipDescriptor:
        target_type = _resolve_target(declaration.target)
        if isinstance(declaration, OneToManyDeclaration):
            return OneToMany(name, target_type, declaration.mapped_by)
        return ManyToMany(
            name=name,
            target_type=target_type,
            join_table=declaration.join_table,
            source_join_column=declaration.join_column or _join_column(entity_type),
            target_join_column=declaration.inverse_join_column or _join_column(target_type),
        )
