"""Accumulates mapping metadata per package, backed by JSON files."""

from __future__ import annotations

import logging
from typing import Iterable

from .codecs import ModelCodec
from .collector import MetadataCollector
from .config import CacheConfig
from .errors import MetadataError
from .models import MappingMetadata
from .store import PersistentStore

LOG = logging.getLogger(__name__)

FILE_PREFIX = "metadata-"


class MetadataAggregator:
    """Merges per-package metadata into a caller-owned aggregate.

    Each package's own structs are stored in ``metadata-<package>.json``.
    There is no memory tier: calling ``accumulate`` twice for the same
    package appends its structs twice, while ``package_names`` stays unique.
    Failures are not rolled back, so the aggregate may be partially updated
    when ``MetadataError`` is raised.
    """

    def __init__(self, store: PersistentStore, collector: MetadataCollector) -> None:
        self._store = store
        self._collector = collector
        self._codec: ModelCodec[MappingMetadata] = ModelCodec(MappingMetadata)

    @classmethod
    def from_config(cls, config: CacheConfig, collector: MetadataCollector) -> MetadataAggregator:
        return cls(PersistentStore(config.metadata_root()), collector)

    def accumulate(self, aggregate: MappingMetadata, group_name: str) -> None:
        """Merge the metadata of ``group_name`` into ``aggregate``."""

        if not group_name:
            raise ValueError("group_name must be a non-empty string")
        key = self.file_name(group_name)
        try:
            cached = self._store.exists(key)
        except Exception as exc:
            raise MetadataError(group_name, f"Can not check metadata file for {group_name}") from exc
        if cached:
            self._read(aggregate, group_name, key)
        else:
            self._collect(aggregate, group_name, key)

    def collect(self, group_names: Iterable[str]) -> MappingMetadata:
        """Build a fresh aggregate from ``group_names`` in order."""

        aggregate = MappingMetadata()
        for group_name in group_names:
            self.accumulate(aggregate, group_name)
        return aggregate

    def file_name(self, group_name: str) -> str:
        return f"{FILE_PREFIX}{group_name.replace('.', '-')}{self._codec.extension}"

    def _read(self, aggregate: MappingMetadata, group_name: str, key: str) -> None:
        LOG.info("Reading metadata for %s from file", group_name)
        try:
            loaded = self._codec.decode(self._store.read(key))
            aggregate.merge(group_name, loaded)
        except Exception as exc:
            raise MetadataError(group_name, f"Can not read metadata for {group_name} from file") from exc

    def _collect(self, aggregate: MappingMetadata, group_name: str, key: str) -> None:
        LOG.info("Reading metadata for %s from database", group_name)
        delta = MappingMetadata()
        try:
            self._collector.collect_metadata(delta, group_name)
        except Exception as exc:
            raise MetadataError(group_name, f"Can not collect metadata for {group_name}") from exc
        aggregate.merge(group_name, delta)
        try:
            self._store.write(key, self._codec.encode(delta))
        except Exception as exc:
            raise MetadataError(group_name, f"Error writing metadata for {group_name}") from exc


__all__ = ["FILE_PREFIX", "MetadataAggregator"]
