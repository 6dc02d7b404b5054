"""Layered descriptor cache: memory, then disk, then the database."""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Mapping

from .codecs import Codec, PickleCodec
from .config import CacheConfig
from .connectors import DescriptorSource
from .errors import ResolutionError
from .models import ConnectionProfile, Descriptor, TypeKind
from .singleflight import SingleFlight
from .store import PersistentStore

LOG = logging.getLogger(__name__)


class DescriptorCache:
    """Resolves struct and array descriptors through three tiers.

    A memory hit returns the cached object as is, still bound to the
    connection it was first resolved with. A disk hit is rebound to the
    caller's connection. A miss asks the source and writes the result to
    disk before caching it in memory.

    Concurrent resolutions of the same key share one disk/source round trip.
    """

    def __init__(
        self,
        store: PersistentStore,
        source: DescriptorSource,
        *,
        file_prefix: str | None = None,
        codec: Codec | None = None,
    ) -> None:
        self._store = store
        self._source = source
        self._file_prefix = file_prefix
        self._codec = codec or PickleCodec()
        self._values: dict[TypeKind, dict[str, Descriptor]] = {kind: {} for kind in TypeKind}
        self._flights = SingleFlight()

    @classmethod
    def from_config(cls, config: CacheConfig, source: DescriptorSource) -> DescriptorCache:
        return cls(
            PersistentStore(config.descriptor_folder()),
            source,
            file_prefix=config.file_prefix,
        )

    def struct_descriptor(self, type_name: str, connection: ConnectionProfile) -> Descriptor:
        return self.resolve(type_name, connection, TypeKind.STRUCT)

    def array_descriptor(self, type_name: str, connection: ConnectionProfile) -> Descriptor:
        return self.resolve(type_name, connection, TypeKind.ARRAY)

    def resolve(self, type_name: str, connection: ConnectionProfile, kind: TypeKind) -> Descriptor:
        """Return the descriptor for ``type_name``, populating faster tiers on a miss."""

        if not type_name:
            raise ValueError("type_name must be a non-empty string")
        kind = TypeKind(kind)
        values = self._values[kind]
        cached = values.get(type_name)
        if cached is not None:
            LOG.debug("Reusing cached %s descriptor %s", kind.value, type_name)
            return cached

        with self._flights.hold((kind, type_name)):
            cached = values.get(type_name)
            if cached is not None:
                return cached
            try:
                descriptor = self._load(type_name, connection, kind)
            except Exception as exc:
                raise ResolutionError(type_name, kind) from exc
            values[type_name] = descriptor
            return descriptor

    def cached(self, kind: TypeKind) -> Mapping[str, Descriptor]:
        """Read-only view of the memory tier for ``kind``."""

        return MappingProxyType(self._values[kind])

    def file_name(self, type_name: str) -> str:
        """Deterministic on-disk name for ``type_name``."""

        name = f"{type_name}{self._codec.extension}"
        if self._file_prefix and self._file_prefix.strip():
            return f"{self._file_prefix}-{name}"
        return name

    def _load(self, type_name: str, connection: ConnectionProfile, kind: TypeKind) -> Descriptor:
        key = self.file_name(type_name)
        if self._store.exists(key):
            LOG.info("Reading %s %s descriptor from file", kind.value, type_name)
            descriptor = self._codec.decode(self._store.read(key))
            if not isinstance(descriptor, Descriptor):
                raise TypeError(f"{key} holds {type(descriptor).__name__}, not a descriptor")
            if descriptor.kind is not kind or descriptor.type_name != type_name:
                raise TypeError(
                    f"{key} holds {descriptor.kind.value} descriptor {descriptor.type_name}"
                )
            descriptor.rebind(connection)
            return descriptor

        LOG.info("Reading %s %s descriptor from database", kind.value, type_name)
        descriptor = self._source.create_descriptor(type_name, connection, kind)
        self._store.write(key, self._codec.encode(descriptor))
        return descriptor


__all__ = ["DescriptorCache"]
