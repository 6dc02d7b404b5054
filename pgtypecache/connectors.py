"""Descriptor sources that describe composite and array types."""

from __future__ import annotations

import asyncio
from dataclasses import replace
import threading
from typing import Any, Coroutine, Iterable, Mapping, Protocol, runtime_checkable

import asyncpg

from .errors import SourceLookupError
from .models import AttributeDefinition, ConnectionProfile, Descriptor, TypeKind


@runtime_checkable
class DescriptorSource(Protocol):
    """Authoritative, possibly slow, lookup of type descriptors."""

    def create_descriptor(
        self, type_name: str, connection: ConnectionProfile, kind: TypeKind
    ) -> Descriptor:
        """Describe ``type_name`` using ``connection``."""


class AsyncpgDescriptorSource:
    """Descriptor source that introspects the PostgreSQL catalog via asyncpg."""

    _TYPE_QUERY = """
        SELECT t.oid, t.typname, n.nspname,
               t.typtype::text AS typtype,
               t.typcategory::text AS typcategory,
               t.typrelid,
               CASE WHEN t.typelem <> 0 THEN format_type(t.typelem, NULL) END AS element_type
        FROM pg_catalog.pg_type t
        JOIN pg_catalog.pg_namespace n ON n.oid = t.typnamespace
        WHERE t.oid = to_regtype($1)
    """

    _ATTRIBUTE_QUERY = """
        SELECT a.attname, format_type(a.atttypid, a.atttypmod) AS type_name, a.attnum
        FROM pg_catalog.pg_attribute a
        WHERE a.attrelid = $1 AND a.attnum > 0 AND NOT a.attisdropped
        ORDER BY a.attnum
    """

    def __init__(self, *, connect_timeout: float = 3.0) -> None:
        self._connect_timeout = connect_timeout
        self._loop = asyncio.new_event_loop()
        self._loop_thread = threading.Thread(
            target=self._loop.run_forever,
            name="pgtypecache-asyncpg-source",
            daemon=True,
        )
        self._loop_thread.start()

    def create_descriptor(
        self, type_name: str, connection: ConnectionProfile, kind: TypeKind
    ) -> Descriptor:
        descriptor = self._run(self._describe(type_name, connection, kind))
        descriptor.rebind(connection)
        return descriptor

    def shutdown(self) -> None:
        """Stop the background event loop (testing helper)."""

        if not self._loop.is_running():  # pragma: no cover - defensive
            return
        self._loop.call_soon_threadsafe(self._loop.stop)
        self._loop_thread.join(timeout=1)

    def __del__(self) -> None:  # pragma: no cover - best effort cleanup
        try:
            self.shutdown()
        except Exception:
            pass

    def _run(self, coro: Coroutine[Any, Any, Descriptor]) -> Descriptor:
        future = asyncio.run_coroutine_threadsafe(coro, self._loop)
        return future.result()

    async def _describe(
        self, type_name: str, profile: ConnectionProfile, kind: TypeKind
    ) -> Descriptor:
        conn = await self._connect_profile(profile)
        try:
            row = await conn.fetchrow(self._TYPE_QUERY, type_name)
            if row is None:
                raise SourceLookupError(f"Type '{type_name}' does not exist in '{profile.name}'")
            _ensure_kind(type_name, kind, str(row["typtype"]), str(row["typcategory"]))
            attributes: tuple[AttributeDefinition, ...] = ()
            if kind is TypeKind.STRUCT:
                rows = await conn.fetch(self._ATTRIBUTE_QUERY, row["typrelid"])
                attributes = tuple(
                    AttributeDefinition(
                        name=str(attr["attname"]),
                        type_name=str(attr["type_name"]),
                        position=int(attr["attnum"]),
                    )
                    for attr in rows
                )
        except SourceLookupError:
            raise
        except Exception as exc:
            raise SourceLookupError(f"Failed to describe type '{type_name}': {exc}") from exc
        finally:
            try:
                await conn.close()
            except Exception:  # pragma: no cover - best effort
                pass
        return Descriptor(
            type_name=type_name,
            kind=kind,
            schema=str(row["nspname"]),
            oid=int(row["oid"]),
            attributes=attributes,
            element_type=row["element_type"] if kind is TypeKind.ARRAY else None,
        )

    async def _connect_profile(self, profile: ConnectionProfile):
        kwargs: dict[str, object] = {}
        if profile.dsn:
            kwargs["dsn"] = profile.dsn
        else:
            kwargs["host"] = profile.host or "localhost"
            if profile.port is not None:
                kwargs["port"] = profile.port
            if profile.user:
                kwargs["user"] = profile.user
            if profile.database:
                kwargs["database"] = profile.database
        kwargs.setdefault("timeout", self._connect_timeout)
        try:
            return await asyncpg.connect(**kwargs)
        except Exception as exc:
            raise SourceLookupError(f"Failed to connect to profile '{profile.name}': {exc}") from exc


def _ensure_kind(type_name: str, kind: TypeKind, typtype: str, typcategory: str) -> None:
    if kind is TypeKind.STRUCT and typtype != "c":
        raise SourceLookupError(f"Type '{type_name}' is not a composite type")
    if kind is TypeKind.ARRAY and typcategory != "A":
        raise SourceLookupError(f"Type '{type_name}' is not an array type")


DEMO_TYPES: Mapping[str, Descriptor] = {
    "EMP_REC": Descriptor(
        type_name="EMP_REC",
        kind=TypeKind.STRUCT,
        schema="public",
        oid=16390,
        attributes=(
            AttributeDefinition("id", "integer", 1),
            AttributeDefinition("name", "text", 2),
            AttributeDefinition("salary", "numeric(10,2)", 3),
        ),
    ),
    "DEPT_REC": Descriptor(
        type_name="DEPT_REC",
        kind=TypeKind.STRUCT,
        schema="public",
        oid=16394,
        attributes=(
            AttributeDefinition("id", "integer", 1),
            AttributeDefinition("title", "text", 2),
        ),
    ),
    "EMP_REC_LIST": Descriptor(
        type_name="EMP_REC_LIST",
        kind=TypeKind.ARRAY,
        schema="public",
        oid=16389,
        element_type="emp_rec",
    ),
}


class StaticDescriptorSource:
    """In-memory descriptor source for demos and tests."""

    def __init__(self, descriptors: Mapping[str, Descriptor] | Iterable[Descriptor] | None = None) -> None:
        if descriptors is None:
            descriptors = DEMO_TYPES
        if isinstance(descriptors, Mapping):
            entries = dict(descriptors)
        else:
            entries = {descriptor.type_name: descriptor for descriptor in descriptors}
        self._descriptors = entries
        self.calls: list[tuple[str, TypeKind]] = []

    def create_descriptor(
        self, type_name: str, connection: ConnectionProfile, kind: TypeKind
    ) -> Descriptor:
        self.calls.append((type_name, kind))
        template = self._descriptors.get(type_name)
        if template is None:
            raise SourceLookupError(f"Type '{type_name}' does not exist in '{connection.name}'")
        if template.kind is not kind:
            raise SourceLookupError(f"Type '{type_name}' is not a {kind.value} type")
        return replace(template, connection=connection)

    def call_count(self, type_name: str) -> int:
        return sum(1 for name, _ in self.calls if name == type_name)


__all__ = [
    "AsyncpgDescriptorSource",
    "DEMO_TYPES",
    "DescriptorSource",
    "StaticDescriptorSource",
]
