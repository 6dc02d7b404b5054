"""Serialization codecs used to persist cached values."""

from __future__ import annotations

import pickle
from typing import Any, Generic, Protocol, TypeVar

from pydantic import BaseModel

ModelT = TypeVar("ModelT", bound=BaseModel)


class Codec(Protocol):
    """Converts cached values to bytes and back."""

    extension: str

    def encode(self, value: Any) -> bytes: ...

    def decode(self, data: bytes) -> Any: ...


class PickleCodec:
    """Binary object graph codec used for descriptors."""

    extension = ".ser"

    def __init__(self, *, protocol: int = pickle.HIGHEST_PROTOCOL) -> None:
        self._protocol = protocol

    def encode(self, value: Any) -> bytes:
        return pickle.dumps(value, protocol=self._protocol)

    def decode(self, data: bytes) -> Any:
        return pickle.loads(data)


class ModelCodec(Generic[ModelT]):
    """Structured text codec backed by a pydantic model."""

    extension = ".json"

    def __init__(self, model_type: type[ModelT], *, indent: int | None = 2) -> None:
        self._model_type = model_type
        self._indent = indent

    def encode(self, value: ModelT) -> bytes:
        return value.model_dump_json(indent=self._indent).encode("utf-8")

    def decode(self, data: bytes) -> ModelT:
        return self._model_type.model_validate_json(data)


__all__ = ["Codec", "ModelCodec", "PickleCodec"]
