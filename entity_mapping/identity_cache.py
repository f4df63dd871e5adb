import contextlib
import typing

from entity_mapping.errors import ScopeTerminatedError


class IdentityCache:
    """One materialized instance per (type, primary key) within a unit of work.

    Never invalidated by writes made outside of the owning unit of work.
    """

    def __init__(self) -> None:
        self._entries: typing.Dict[typing.Type, typing.Dict[typing.Any, typing.Any]] = {}
        self._terminated = False

    @classmethod
    def create(cls) -> "IdentityCache":
        return cls()

    @property
    def terminated(self) -> bool:
        return self._terminated

    def terminate(self) -> None:
        self._entries.clear()
        self._terminated = True

    def get(self, entity_type: typing.Type, identity: typing.Any) -> typing.Optional[typing.Any]:
        self._ensure_alive()
        return self._entries.get(entity_type, {}).get(identity)

    def set(self, entity_type: typing.Type, identity: typing.Any, instance: typing.Any) -> None:
        self._ensure_alive()
        self._entries.setdefault(entity_type, {})[identity] = instance

    def evict(self, entity_type: typing.Type, identity: typing.Any) -> None:
        self._ensure_alive()
        self._entries.get(entity_type, {}).pop(identity, None)

    def __len__(self) -> int:
        return sum(len(instances) for instances in self._entries.values())

    def _ensure_alive(self) -> None:
        if self._terminated:
            raise ScopeTerminatedError("Identity cache was terminated")


@contextlib.contextmanager
def identity_scope() -> typing.Generator[IdentityCache, None, None]:
    cache = IdentityCache.create()
    try:
        yield cache
    finally:
        cache.terminate()
