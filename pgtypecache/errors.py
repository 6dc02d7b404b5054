"""Exceptions raised by the descriptor and metadata caches."""

from __future__ import annotations

from .models import TypeKind


class TypeCacheError(RuntimeError):
    """Base class for every error raised by pgtypecache."""


class ConfigurationError(TypeCacheError):
    """Raised when a cache folder cannot be created or read."""


class SourceLookupError(TypeCacheError):
    """Raised when the database cannot describe a type."""


class ResolutionError(TypeCacheError):
    """Raised when a descriptor cannot be resolved through any tier."""

    def __init__(self, type_name: str, kind: TypeKind, message: str | None = None) -> None:
        self.type_name = type_name
        self.kind = kind
        super().__init__(message or f"Error reading {kind.value} descriptor {type_name}")


class MetadataError(TypeCacheError):
    """Raised when mapping metadata cannot be read, collected, or written."""

    def __init__(self, group_name: str, message: str | None = None) -> None:
        self.group_name = group_name
        super().__init__(message or f"Error resolving metadata for {group_name}")


__all__ = [
    "ConfigurationError",
    "MetadataError",
    "ResolutionError",
    "SourceLookupError",
    "TypeCacheError",
]
