import typing

from entity_mapping.client import DatabaseClient, Row
from entity_mapping.descriptors import EntityDescriptor
from entity_mapping.materializer import RowMaterializer
from entity_mapping.registry import MetadataRegistry
from entity_mapping.session import Session
from entity_mapping.types import TypeCoercionRegistry


class EntityMapper:
    """Process wide: descriptors and coercion handlers are built once and shared by every session."""

    def __init__(
        self,
        coercion: typing.Optional[TypeCoercionRegistry] = None,
        metadata: typing.Optional[MetadataRegistry] = None,
        materializer: typing.Optional[RowMaterializer] = None,
    ) -> None:
        if metadata is None:
            metadata = MetadataRegistry(coercion or TypeCoercionRegistry())
        self.metadata = metadata
        self.coercion = metadata.coercion
        self.materializer = materializer or RowMaterializer()

    def describe(self, entity_type: typing.Type) -> EntityDescriptor:
        return self.metadata.describe(entity_type)

    def materializer_for(self, entity_type: typing.Type) -> typing.Callable[[Row], typing.Any]:
        return self.materializer.materializer_for(self.describe(entity_type))

    def session(self, client: DatabaseClient, write_client: typing.Optional[DatabaseClient] = None) -> Session:
        return Session(self, client, write_client)
