"""Layered caches for PostgreSQL composite and array type descriptors."""

from __future__ import annotations

__version__ = "0.1.0"

from .aggregator import MetadataAggregator
from .codecs import Codec, ModelCodec, PickleCodec
from .collector import MetadataCollector, PackageMetadataCollector
from .config import CacheConfig, ConnectionProfileConfig, load_config, save_config
from .connectors import AsyncpgDescriptorSource, DescriptorSource, StaticDescriptorSource
from .descriptors import DescriptorCache
from .errors import (
    ConfigurationError,
    MetadataError,
    ResolutionError,
    SourceLookupError,
    TypeCacheError,
)
from .mapping import array_mapping, attribute, struct_mapping
from .models import (
    AttributeDefinition,
    ConnectionProfile,
    Descriptor,
    FieldMetadata,
    MappingMetadata,
    StructMetadata,
    TypeKind,
)
from .store import PersistentStore

__all__ = [
    "AsyncpgDescriptorSource",
    "AttributeDefinition",
    "CacheConfig",
    "Codec",
    "ConfigurationError",
    "ConnectionProfile",
    "ConnectionProfileConfig",
    "Descriptor",
    "DescriptorCache",
    "DescriptorSource",
    "FieldMetadata",
    "MappingMetadata",
    "MetadataAggregator",
    "MetadataCollector",
    "MetadataError",
    "ModelCodec",
    "PackageMetadataCollector",
    "PersistentStore",
    "PickleCodec",
    "ResolutionError",
    "SourceLookupError",
    "StaticDescriptorSource",
    "StructMetadata",
    "TypeCacheError",
    "TypeKind",
    "array_mapping",
    "attribute",
    "load_config",
    "save_config",
    "struct_mapping",
]
