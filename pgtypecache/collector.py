"""Collect struct metadata for the mapped classes of a Python package."""

from __future__ import annotations

import importlib
import logging
import pkgutil
from types import ModuleType
from typing import Iterator, Protocol

from .descriptors import DescriptorCache
from .errors import MetadataError
from .mapping import TypeMapping, iter_mapped_classes, mapped_fields
from .models import (
    ConnectionProfile,
    Descriptor,
    FieldMetadata,
    MappingMetadata,
    StructMetadata,
    TypeKind,
)

LOG = logging.getLogger(__name__)


class MetadataCollector(Protocol):
    """Authoritative collector of mapping metadata for a group."""

    def collect_metadata(self, into: MappingMetadata, group_name: str) -> None:
        """Populate ``into`` with the struct definitions of ``group_name``."""


class PackageMetadataCollector:
    """Scans a package for mapped classes and describes them via the database."""

    def __init__(self, descriptors: DescriptorCache, connection: ConnectionProfile) -> None:
        self._descriptors = descriptors
        self._connection = connection

    def collect_metadata(self, into: MappingMetadata, group_name: str) -> None:
        LOG.info("Collecting metadata for package %s", group_name)
        into.package_names.add(group_name)
        for module in _walk_package(group_name):
            for cls, mapping in iter_mapped_classes(module):
                into.structs.append(self._describe_class(group_name, cls, mapping))

    def _describe_class(self, group_name: str, cls: type, mapping: TypeMapping) -> StructMetadata:
        descriptor = self._descriptors.resolve(mapping.type_name, self._connection, mapping.kind)
        return StructMetadata(
            type_name=mapping.type_name,
            class_name=cls.__qualname__,
            module=cls.__module__,
            kind=mapping.kind,
            element_type=descriptor.element_type,
            fields=_field_metadata(group_name, cls, descriptor) if mapping.kind is TypeKind.STRUCT else [],
        )


def _field_metadata(group_name: str, cls: type, descriptor: Descriptor) -> list[FieldMetadata]:
    result: list[FieldMetadata] = []
    for name, attribute_name in mapped_fields(cls):
        attribute = descriptor.attribute(attribute_name)
        if attribute is None:
            raise MetadataError(
                group_name,
                f"{cls.__qualname__}.{name} maps to unknown attribute "
                f"'{attribute_name}' of {descriptor.type_name}",
            )
        result.append(
            FieldMetadata(
                name=name,
                attribute=attribute.name,
                type_name=attribute.type_name,
                position=attribute.position,
            )
        )
    return result


def _walk_package(group_name: str) -> Iterator[ModuleType]:
    package = importlib.import_module(group_name)
    yield package
    search_path = getattr(package, "__path__", None)
    if search_path is None:
        return
    for info in pkgutil.walk_packages(search_path, prefix=f"{group_name}."):
        yield importlib.import_module(info.name)


__all__ = ["MetadataCollector", "PackageMetadataCollector"]
