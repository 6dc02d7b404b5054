"""File-system backed key/blob store shared by both caches."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from .errors import ConfigurationError

LOG = logging.getLogger(__name__)


class PersistentStore:
    """Stores one file per key under a single root folder.

    The folder is created on construction when missing. Construction fails
    with ``ConfigurationError`` if it cannot be created or read, so a store
    that exists is always usable.
    """

    def __init__(self, root_folder: Path | str) -> None:
        self._root = Path(root_folder).expanduser()
        try:
            self._root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ConfigurationError(f"Can not create cache folder {self._root.absolute()}") from exc
        if not self._root.is_dir() or not os.access(self._root, os.R_OK):
            raise ConfigurationError(f"Can not read cache folder {self._root.absolute()}")
        LOG.debug("Using cache folder %s", self._root)

    @property
    def root(self) -> Path:
        return self._root

    def path_for(self, key: str) -> Path:
        """Return the file backing ``key``."""

        if not key or "/" in key or "\\" in key or key in {".", ".."}:
            raise ValueError(f"Invalid store key: {key!r}")
        return self._root / key

    def exists(self, key: str) -> bool:
        return self.path_for(key).is_file()

    def read(self, key: str) -> bytes:
        with self.path_for(key).open("rb") as handle:
            return handle.read()

    def write(self, key: str, data: bytes) -> None:
        path = self.path_for(key)
        with path.open("wb") as handle:
            handle.write(data)
        LOG.debug("Wrote %d bytes to %s", len(data), path)


__all__ = ["PersistentStore"]
