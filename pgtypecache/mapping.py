"""Class decorators that map Python classes onto database types."""

from __future__ import annotations

import dataclasses
import inspect
from dataclasses import dataclass
from types import ModuleType
from typing import Any, Callable, Iterator, TypeVar

from .models import TypeKind

T = TypeVar("T", bound=type)

MAPPING_ATTR = "__pgtypecache_mapping__"
ATTRIBUTE_KEY = "pg_attribute"


@dataclass(frozen=True, slots=True)
class TypeMapping:
    """Database type a class is mapped onto."""

    type_name: str
    kind: TypeKind


def struct_mapping(type_name: str) -> Callable[[T], T]:
    """Map the decorated class onto the composite type ``type_name``."""

    return _mark(type_name, TypeKind.STRUCT)


def array_mapping(type_name: str) -> Callable[[T], T]:
    """Map the decorated class onto the array type ``type_name``."""

    return _mark(type_name, TypeKind.ARRAY)


def attribute(name: str, **kwargs: Any) -> Any:
    """Dataclass field bound to the composite attribute ``name``."""

    metadata = dict(kwargs.pop("metadata", None) or {})
    metadata[ATTRIBUTE_KEY] = name
    return dataclasses.field(metadata=metadata, **kwargs)


def mapping_of(cls: type) -> TypeMapping | None:
    # vars() so subclasses of a mapped class are not picked up twice
    value = vars(cls).get(MAPPING_ATTR)
    return value if isinstance(value, TypeMapping) else None


def mapped_fields(cls: type) -> list[tuple[str, str]]:
    """Return ``(field name, attribute name)`` pairs in declaration order."""

    if dataclasses.is_dataclass(cls):
        return [
            (item.name, str(item.metadata.get(ATTRIBUTE_KEY, item.name)))
            for item in dataclasses.fields(cls)
        ]
    annotations = inspect.get_annotations(cls)
    return [(name, name) for name in annotations if not name.startswith("_")]


def iter_mapped_classes(module: ModuleType) -> Iterator[tuple[type, TypeMapping]]:
    """Yield mapped classes defined in ``module`` (imports are skipped)."""

    for _, obj in inspect.getmembers(module, inspect.isclass):
        if obj.__module__ != module.__name__:
            continue
        mapping = mapping_of(obj)
        if mapping is not None:
            yield obj, mapping


def _mark(type_name: str, kind: TypeKind) -> Callable[[T], T]:
    if not type_name:
        raise ValueError("type_name must be a non-empty string")

    def _decorate(cls: T) -> T:
        setattr(cls, MAPPING_ATTR, TypeMapping(type_name=type_name, kind=kind))
        return cls

    return _decorate


__all__ = [
    "TypeMapping",
    "array_mapping",
    "attribute",
    "iter_mapped_classes",
    "mapped_fields",
    "mapping_of",
    "struct_mapping",
]
