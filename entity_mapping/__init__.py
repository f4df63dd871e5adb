from entity_mapping.declarations import Entity, column, many_to_many, many_to_one, one_to_many
from entity_mapping.descriptors import EntityDescriptor, ColumnMapping, Handler, SemanticType
from entity_mapping.errors import (
    AmbiguousRelationshipError,
    ConfigurationError,
    EntityNotFound,
    MaterializationError,
    MultipleEntitiesFound,
    NoHandlerError,
    PersistenceIOError,
    RelationshipResolutionError,
    ScopeTerminatedError,
)
from entity_mapping.identity_cache import IdentityCache, identity_scope
from entity_mapping.mapper import EntityMapper
from entity_mapping.session import Session
from entity_mapping.types import TypeCoercionRegistry
