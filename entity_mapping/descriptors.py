import enum
import typing

import attr

from entity_mapping.errors import ConfigurationError, RelationshipResolutionError


class SemanticType(enum.Enum):
    TEXT = "text"
    INTEGER = "integer"
    LONG = "long"
    FLOAT = "float"
    DOUBLE = "double"
    DECIMAL = "decimal"
    BOOLEAN = "boolean"
    BINARY = "binary"
    TIMESTAMP = "timestamp"
    DATE = "date"
    ENUM = "enum"


PRIMITIVE_TYPES = frozenset(
    {
        SemanticType.INTEGER,
        SemanticType.LONG,
        SemanticType.FLOAT,
        SemanticType.DOUBLE,
        SemanticType.BOOLEAN,
    }
)
NUMERIC_TYPES = frozenset(
    {SemanticType.INTEGER, SemanticType.LONG, SemanticType.FLOAT, SemanticType.DOUBLE, SemanticType.DECIMAL}
)

Reader = typing.Callable[[typing.Mapping[str, typing.Any], str], typing.Any]
Writer = typing.Callable[[typing.Any], typing.Any]


@attr.s(auto_attribs=True, frozen=True)
class Handler:
    reader: Reader
    writer: Writer


@attr.s(auto_attribs=True, frozen=True)
class ColumnMapping:
    field_name: str
    column_name: str
    semantic_type: typing.Any
    python_type: typing.Any
    getter: typing.Callable[[typing.Any], typing.Any]
    setter: typing.Callable[[typing.Any, typing.Any], None]
    nullable: bool = False
    primary_key: bool = False
    handler: typing.Optional[Handler] = None

    @property
    def accepts_null(self) -> bool:
        return self.nullable or self.semantic_type not in PRIMITIVE_TYPES

    def read(self, row: typing.Mapping[str, typing.Any]) -> typing.Any:
        return self.handler.reader(row, self.column_name)

    def is_absent(self, value: typing.Any) -> bool:
        """None, or zero for numeric columns, means "no value yet" (e.g. a not yet generated key)."""
        if value is None:
            return True
        return self.semantic_type in NUMERIC_TYPES and value == 0


@attr.s(auto_attribs=True, frozen=True)
class ManyToOne:
    name: str
    column: ColumnMapping
    target_type: typing.Type


@attr.s(auto_attribs=True, frozen=True)
class OneToMany:
    name: str
    target_type: typing.Type
    mapped_by: typing.Optional[str] = None


@attr.s(auto_attribs=True, frozen=True)
class ManyToMany:
    name: str
    target_type: typing.Type
    join_table: str
    source_join_column: str
    target_join_column: str

    def is_inverse_of(self, other: "ManyToMany") -> bool:
        return (
            self.join_table == other.join_table
            and self.source_join_column == other.target_join_column
            and self.target_join_column == other.source_join_column
        )


RelationshipDescriptor = typing.Union[ManyToOne, OneToMany, ManyToMany]


@attr.s(auto_attribs=True, frozen=True)
class EntityDescriptor:
    entity_type: typing.Type
    table_name: str
    columns: typing.Tuple[ColumnMapping, ...]
    id_column: typing.Optional[ColumnMapping] = None
    id_is_generated: bool = False
    relationships: typing.Tuple[RelationshipDescriptor, ...] = ()

    @property
    def name(self) -> str:
        return self.entity_type.__name__

    def require_id(self) -> ColumnMapping:
        if self.id_column is None:
            raise ConfigurationError(f"{self.name} does not specify an id field")
        return self.id_column

    def column(self, column_name: str) -> ColumnMapping:
        for mapping in self.columns:
            if mapping.column_name == column_name:
                return mapping
        raise KeyError(column_name)

    def relationship(self, name: str) -> RelationshipDescriptor:
        for relationship in self.relationships:
            if relationship.name == name:
                return relationship
        raise RelationshipResolutionError(f"{self.name} does not declare a relationship named {name!r}")

    def relationships_of(
        self, kind: typing.Type, target_type: typing.Type
    ) -> typing.List[RelationshipDescriptor]:
        return [
            relationship
            for relationship in self.relationships
            if isinstance(relationship, kind) and relationship.target_type is target_type
        ]

    def identity_of(self, instance: typing.Any) -> typing.Any:
        return self.require_id().getter(instance)
