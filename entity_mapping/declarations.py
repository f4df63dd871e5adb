import abc
import typing

import attr


COLUMN = "entity_mapping.column"

Target = typing.Union[typing.Type, typing.Callable[[], typing.Type]]


@attr.s(auto_attribs=True, frozen=True)
class ColumnDeclaration:
    name: typing.Optional[str] = None
    semantic_type: typing.Any = None
    primary_key: bool = False
    generated: bool = False
    nullable: typing.Optional[bool] = None
    getter: typing.Optional[typing.Callable[[typing.Any], typing.Any]] = None
    setter: typing.Optional[typing.Callable[[typing.Any, typing.Any], None]] = None
    references: typing.Optional[Target] = None


@attr.s(auto_attribs=True, frozen=True)
class OneToManyDeclaration:
    target: Target
    mapped_by: typing.Optional[str] = None


@attr.s(auto_attribs=True, frozen=True)
class ManyToManyDeclaration:
    target: Target
    join_table: str
    join_column: typing.Optional[str] = None
    inverse_join_column: typing.Optional[str] = None


RelationshipDeclaration = typing.Union[OneToManyDeclaration, ManyToManyDeclaration]


def column(
    name: typing.Optional[str] = None,
    *,
    semantic_type: typing.Any = None,
    primary_key: bool = False,
    generated: bool = False,
    nullable: typing.Optional[bool] = None,
    getter: typing.Optional[typing.Callable[[typing.Any], typing.Any]] = None,
    setter: typing.Optional[typing.Callable[[typing.Any, typing.Any], None]] = None,
    references: typing.Optional[Target] = None,
    default: typing.Any = attr.NOTHING,
    factory: typing.Optional[typing.Callable[[], typing.Any]] = None,
    **kwargs: typing.Any,
) -> typing.Any:
    declaration = ColumnDeclaration(
        name=name,
        semantic_type=semantic_type,
        primary_key=primary_key,
        generated=generated,
        nullable=nullable,
        getter=getter,
        setter=setter,
        references=references,
    )
    metadata = dict(kwargs.pop("metadata", None) or {})
    metadata[COLUMN] = declaration
    return attr.ib(default=default, factory=factory, metadata=metadata, **kwargs)


def many_to_one(target: Target, name: typing.Optional[str] = None, **kwargs: typing.Any) -> typing.Any:
    """Foreign key column pointing at ``target``'s primary key."""
    return column(name, references=target, **kwargs)


def one_to_many(target: Target, mapped_by: typing.Optional[str] = None) -> OneToManyDeclaration:
    return OneToManyDeclaration(target, mapped_by)


def many_to_many(
    target: Target,
    join_table: str,
    join_column: typing.Optional[str] = None,
    inverse_join_column: typing.Optional[str] = None,
) -> ManyToManyDeclaration:
    """``join_column`` references the declaring class, ``inverse_join_column`` references ``target``.

    Both default to the underscored class name suffixed with ``_id``, the target must declare the inverse.
    """
    return ManyToManyDeclaration(target, join_table, join_column, inverse_join_column)


def declared_relationships(entity_type: typing.Type) -> typing.Dict[str, RelationshipDeclaration]:
    return dict(getattr(entity_type, "__relationships__", {}))


class EntityMeta(abc.ABCMeta):
    def __new__(
        mcs,
        name: str,
        bases: tuple,
        namespace: dict,
        table: typing.Optional[str] = None,
        entity_name: typing.Optional[str] = None,
    ):
        relationships = {
            key: value
            for key, value in namespace.items()
            if isinstance(value, (OneToManyDeclaration, ManyToManyDeclaration))
        }
        namespace = {key: value for key, value in namespace.items() if key not in relationships}
        cls = super().__new__(mcs, name, bases, namespace)
        if table is not None:
            cls.__table_name__ = table
        if entity_name is not None:
            cls.__entity_name__ = entity_name
        cls.__relationships__ = {**declared_relationships(cls), **relationships}
        if name == "Entity" and not bases:
            return cls
        return attr.s(auto_attribs=True)(cls)

    def __init__(cls, name: str, bases: tuple, namespace: dict, **kwargs: typing.Any) -> None:
        super().__init__(name, bases, namespace)


class Entity(metaclass=EntityMeta):
    pass
