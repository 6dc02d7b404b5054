"""Shared models for descriptors, connection profiles, and mapping metadata."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class TypeKind(str, Enum):
    """Kinds of catalog types that can be described."""

    STRUCT = "struct"
    ARRAY = "array"


@dataclass(frozen=True, slots=True)
class ConnectionProfile:
    """Runtime representation of a connection profile."""

    name: str
    dsn: str | None = None
    host: str | None = None
    port: int | None = None
    database: str | None = None
    user: str | None = None


@dataclass(frozen=True, slots=True)
class AttributeDefinition:
    """Single attribute of a composite type."""

    name: str
    type_name: str
    position: int


@dataclass
class Descriptor:
    """Structural definition of a composite or array type.

    A descriptor is bound to the connection profile it was resolved with.
    The binding is not part of the pickled form: a descriptor loaded from
    disk is unbound until ``rebind`` is called.
    """

    type_name: str
    kind: TypeKind
    schema: str | None = None
    oid: int | None = None
    attributes: tuple[AttributeDefinition, ...] = ()
    element_type: str | None = None
    connection: ConnectionProfile | None = field(default=None, compare=False, repr=False)

    def rebind(self, connection: ConnectionProfile | None) -> None:
        """Bind the descriptor to another connection profile."""

        self.connection = connection

    def attribute(self, name: str) -> AttributeDefinition | None:
        """Look up an attribute by name, ignoring case."""

        wanted = name.lower()
        for attribute in self.attributes:
            if attribute.name.lower() == wanted:
                return attribute
        return None

    def __getstate__(self) -> dict[str, Any]:
        state = {item.name: getattr(self, item.name) for item in fields(self)}
        state["connection"] = None
        return state

    def __setstate__(self, state: dict[str, Any]) -> None:
        self.__dict__.update(state)
        self.connection = None


class FieldMetadata(BaseModel):
    """Mapping between a class field and a composite type attribute."""

    name: str
    attribute: str
    type_name: str
    position: int


class StructMetadata(BaseModel):
    """Structural definition discovered for one mapped class."""

    type_name: str
    class_name: str
    module: str
    kind: TypeKind = TypeKind.STRUCT
    element_type: str | None = None
    fields: list[FieldMetadata] = Field(default_factory=list)


class MappingMetadata(BaseModel):
    """Aggregate of struct definitions discovered across several packages."""

    package_names: set[str] = Field(default_factory=set)
    structs: list[StructMetadata] = Field(default_factory=list)

    def merge(self, group_name: str, other: MappingMetadata) -> None:
        """Record ``group_name`` and append every struct from ``other``."""

        self.package_names.add(group_name)
        for struct in other.structs:
            self.structs.append(struct)

    def structs_for(self, type_name: str) -> list[StructMetadata]:
        """Return every struct record mapped to ``type_name``."""

        return [struct for struct in self.structs if struct.type_name == type_name]


__all__ = [
    "AttributeDefinition",
    "ConnectionProfile",
    "Descriptor",
    "FieldMetadata",
    "MappingMetadata",
    "StructMetadata",
    "TypeKind",
]
