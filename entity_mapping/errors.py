import typing


class ConfigurationError(TypeError):
    pass


class NoHandlerError(ConfigurationError):
    def __init__(self, entity_type: typing.Type, field_name: str, semantic_type: typing.Any) -> None:
        super().__init__(f"No handler found for type {semantic_type!r} ({entity_type.__name__}.{field_name})")
        self.entity_type = entity_type
        self.field_name = field_name
        self.semantic_type = semantic_type


class RelationshipResolutionError(ConfigurationError):
    pass


class AmbiguousRelationshipError(RelationshipResolutionError):
    pass


class MaterializationError(ValueError):
    def __init__(self, entity_type: typing.Type, column_name: typing.Optional[str], cause: BaseException) -> None:
        where = entity_type.__name__ if column_name is None else f"{entity_type.__name__}.{column_name}"
        super().__init__(f"Could not materialize {where}: {cause!r}")
        self.entity_type = entity_type
        self.column_name = column_name
        self.cause = cause


class PersistenceIOError(IOError):
    pass


class EntityNotFound(LookupError):
    pass


class MultipleEntitiesFound(LookupError):
    pass


class ScopeTerminatedError(RuntimeError):
    pass
