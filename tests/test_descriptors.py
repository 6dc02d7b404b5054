"""Tests for the layered descriptor cache."""

from __future__ import annotations

from pathlib import Path
import threading
import time

import pytest

from pgtypecache.codecs import PickleCodec
from pgtypecache.config import CacheConfig
from pgtypecache.connectors import StaticDescriptorSource
from pgtypecache.descriptors import DescriptorCache
from pgtypecache.errors import ConfigurationError, ResolutionError, SourceLookupError
from pgtypecache.models import ConnectionProfile, Descriptor, TypeKind
from pgtypecache.store import PersistentStore

PRIMARY = ConnectionProfile(name="Primary", host="localhost", database="hr")
REPLICA = ConnectionProfile(name="Replica", host="replica", database="hr")


def _cache(folder: Path, source: StaticDescriptorSource | None = None, **kwargs) -> DescriptorCache:  # type: ignore[no-untyped-def]
    return DescriptorCache(PersistentStore(folder), source or StaticDescriptorSource(), **kwargs)


def test_first_resolution_hits_database_and_writes_file(tmp_path: Path) -> None:
    source = StaticDescriptorSource()
    cache = _cache(tmp_path, source)

    descriptor = cache.resolve("EMP_REC", PRIMARY, TypeKind.STRUCT)

    assert source.calls == [("EMP_REC", TypeKind.STRUCT)]
    assert (tmp_path / "EMP_REC.ser").is_file()
    assert list(cache.cached(TypeKind.STRUCT)) == ["EMP_REC"]
    assert descriptor.connection == PRIMARY
    assert [attr.name for attr in descriptor.attributes] == ["id", "name", "salary"]


def test_fresh_instance_reads_file_and_rebinds(tmp_path: Path) -> None:
    first = _cache(tmp_path).resolve("EMP_REC", PRIMARY, TypeKind.STRUCT)
    source = StaticDescriptorSource()
    cache = _cache(tmp_path, source)

    descriptor = cache.resolve("EMP_REC", REPLICA, TypeKind.STRUCT)

    assert source.calls == []
    assert descriptor.connection == REPLICA
    assert descriptor == first
    assert descriptor is not first


def test_memory_hit_returns_same_object_without_rebinding(tmp_path: Path) -> None:
    source = StaticDescriptorSource()
    cache = _cache(tmp_path, source)

    first = cache.resolve("EMP_REC", PRIMARY, TypeKind.STRUCT)
    (tmp_path / "EMP_REC.ser").unlink()
    second = cache.resolve("EMP_REC", REPLICA, TypeKind.STRUCT)

    assert second is first
    assert second.connection == PRIMARY
    assert source.call_count("EMP_REC") == 1
    assert not (tmp_path / "EMP_REC.ser").exists()


def test_struct_and_array_helpers_use_separate_tables(tmp_path: Path) -> None:
    cache = _cache(tmp_path)

    struct = cache.struct_descriptor("EMP_REC", PRIMARY)
    array = cache.array_descriptor("EMP_REC_LIST", PRIMARY)

    assert struct.kind is TypeKind.STRUCT
    assert array.kind is TypeKind.ARRAY
    assert array.element_type == "emp_rec"
    assert list(cache.cached(TypeKind.STRUCT)) == ["EMP_REC"]
    assert list(cache.cached(TypeKind.ARRAY)) == ["EMP_REC_LIST"]


def test_file_prefix_is_applied(tmp_path: Path) -> None:
    cache = _cache(tmp_path, file_prefix="hr")

    cache.resolve("DEPT_REC", PRIMARY, TypeKind.STRUCT)

    assert (tmp_path / "hr-DEPT_REC.ser").is_file()
    assert cache.file_name("X") == "hr-X.ser"


def test_blank_prefix_is_ignored(tmp_path: Path) -> None:
    cache = _cache(tmp_path, file_prefix="  ")

    assert cache.file_name("EMP_REC") == "EMP_REC.ser"


def test_from_config_uses_root_folder_and_prefix(tmp_path: Path) -> None:
    config = CacheConfig(root_folder=tmp_path / "types", file_prefix="app")
    cache = DescriptorCache.from_config(config, StaticDescriptorSource())

    cache.resolve("EMP_REC", PRIMARY, TypeKind.STRUCT)

    assert (tmp_path / "types" / "app-EMP_REC.ser").is_file()


def test_source_failure_is_wrapped_and_not_cached(tmp_path: Path) -> None:
    cache = _cache(tmp_path)

    with pytest.raises(ResolutionError) as excinfo:
        cache.resolve("MISSING_REC", PRIMARY, TypeKind.STRUCT)

    assert excinfo.value.type_name == "MISSING_REC"
    assert excinfo.value.kind is TypeKind.STRUCT
    assert isinstance(excinfo.value.__cause__, SourceLookupError)
    assert dict(cache.cached(TypeKind.STRUCT)) == {}
    assert list(tmp_path.iterdir()) == []


def test_stored_kind_mismatch_raises(tmp_path: Path) -> None:
    _cache(tmp_path).resolve("EMP_REC", PRIMARY, TypeKind.STRUCT)
    cache = _cache(tmp_path)

    with pytest.raises(ResolutionError) as excinfo:
        cache.resolve("EMP_REC", PRIMARY, TypeKind.ARRAY)

    assert isinstance(excinfo.value.__cause__, TypeError)
    assert dict(cache.cached(TypeKind.ARRAY)) == {}


def test_corrupt_file_raises_resolution_error(tmp_path: Path) -> None:
    (tmp_path / "EMP_REC.ser").write_bytes(b"not a pickle")
    source = StaticDescriptorSource()
    cache = _cache(tmp_path, source)

    with pytest.raises(ResolutionError):
        cache.resolve("EMP_REC", PRIMARY, TypeKind.STRUCT)

    assert source.calls == []


def test_non_descriptor_payload_is_rejected(tmp_path: Path) -> None:
    (tmp_path / "EMP_REC.ser").write_bytes(PickleCodec().encode({"type_name": "EMP_REC"}))

    with pytest.raises(ResolutionError):
        _cache(tmp_path).resolve("EMP_REC", PRIMARY, TypeKind.STRUCT)


def test_empty_type_name_is_rejected(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        _cache(tmp_path).resolve("", PRIMARY, TypeKind.STRUCT)


def test_pickled_descriptor_drops_connection() -> None:
    codec = PickleCodec()
    descriptor = Descriptor(type_name="EMP_REC", kind=TypeKind.STRUCT, connection=PRIMARY)

    restored = codec.decode(codec.encode(descriptor))

    assert restored.type_name == "EMP_REC"
    assert restored.kind is TypeKind.STRUCT
    assert restored.connection is None
    assert descriptor.connection == PRIMARY


class _SlowSource(StaticDescriptorSource):
    def __init__(self) -> None:
        super().__init__()
        self._lock = threading.Lock()

    def create_descriptor(self, type_name, connection, kind):  # type: ignore[no-untyped-def]
        time.sleep(0.05)
        with self._lock:
            return super().create_descriptor(type_name, connection, kind)


def test_concurrent_resolutions_share_one_round_trip(tmp_path: Path) -> None:
    source = _SlowSource()
    cache = _cache(tmp_path, source)
    barrier = threading.Barrier(8)
    results: list[Descriptor] = []
    results_lock = threading.Lock()

    def _worker() -> None:
        barrier.wait()
        descriptor = cache.resolve("EMP_REC", PRIMARY, TypeKind.STRUCT)
        with results_lock:
            results.append(descriptor)

    threads = [threading.Thread(target=_worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=5)

    assert len(results) == 8
    assert source.call_count("EMP_REC") == 1
    assert all(result is results[0] for result in results)


def test_uncreatable_folder_fails_before_any_resolution(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("")

    with pytest.raises(ConfigurationError):
        DescriptorCache.from_config(CacheConfig(root_folder=blocker / "types"), StaticDescriptorSource())


class _ReadOnlyStore(PersistentStore):
    def write(self, key: str, data: bytes) -> None:
        raise OSError(28, "No space left on device")


def test_write_failure_is_wrapped_and_not_cached(tmp_path: Path) -> None:
    source = StaticDescriptorSource()
    cache = DescriptorCache(_ReadOnlyStore(tmp_path), source)

    with pytest.raises(ResolutionError) as excinfo:
        cache.resolve("EMP_REC", PRIMARY, TypeKind.STRUCT)

    assert isinstance(excinfo.value.__cause__, OSError)
    assert source.call_count("EMP_REC") == 1
    assert dict(cache.cached(TypeKind.STRUCT)) == {}


def test_plain_string_kind_is_accepted(tmp_path: Path) -> None:
    cache = _cache(tmp_path)

    descriptor = cache.resolve("EMP_REC", PRIMARY, "struct")  # type: ignore[arg-type]

    assert descriptor.kind is TypeKind.STRUCT
    assert list(cache.cached(TypeKind.STRUCT)) == ["EMP_REC"]
    assert cache.resolve("EMP_REC", REPLICA, TypeKind.STRUCT) is descriptor


def test_plain_string_kind_failure_reports_resolution_error(tmp_path: Path) -> None:
    cache = _cache(tmp_path)

    with pytest.raises(ResolutionError) as excinfo:
        cache.resolve("MISSING_REC", PRIMARY, "struct")  # type: ignore[arg-type]

    assert excinfo.value.kind is TypeKind.STRUCT
