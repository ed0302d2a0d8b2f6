"""
Disk Storage for Rendered Audio.

The cache directory is flat: every entry is one file named
``<fingerprint><extension>`` directly under the output directory.

    output/
        4fb17d8895bee64a574ff14bf44ad1fb.mp3
        9e107d9d372bb6826bd81d3542a419d6.mp3

Features:
    - Existence check, count, enumeration, read, delete
    - Atomic writes (temp file + rename), so a crash never leaves a
      half-written entry under a valid key
    - Only files shaped like ``<32 hex><extension>`` count as entries;
      temp files and anything else in the directory are ignored

No eviction happens here. The capacity guard lives in the service and
refuses new writes once count() reaches the configured maximum.

Backends:
    AudioStore is the capability set the service depends on. FileCacheStore
    is the filesystem implementation; another backend only has to provide
    the same methods.

Usage:
    store = FileCacheStore("output", extension=".mp3")
    store.ensure_dir()

    if not store.exists(key):
        store.write(key, audio_bytes)
    data = store.read(key)
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, List

from tts_gateway.core.config import Defaults
from tts_gateway.core.logging import get_logger, info, verbose, warn
from tts_gateway.tts.fingerprint import is_fingerprint
from tts_gateway.utils.timeit import timeit

_LOG = get_logger("tts-gateway.storage")

_TMP_SUFFIX = ".tmp"


class StorageError(Exception):
    """Base class for storage failures."""


class EntryNotFound(StorageError):
    """Raised when a key has no stored entry."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"No audio stored under key {key}")


class StorageIOError(StorageError):
    """Raised when the filesystem refuses an operation (permissions, locks, ...)."""


class AudioStore:
    """
    Storage capability set used by Text2SpeechService.

    Implementations must not raise from exists() for a well-formed key,
    and must raise EntryNotFound from read()/delete() for missing keys.
    """

    def exists(self, key: str) -> bool:
        raise NotImplementedError

    def count(self) -> int:
        raise NotImplementedError

    def write(self, key: str, data: bytes) -> None:
        raise NotImplementedError

    def read(self, key: str) -> bytes:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError

    def list_keys(self) -> List[str]:
        raise NotImplementedError

    def ensure_dir(self) -> None:
        """Prepare the backend for use. No-op by default."""

    def info(self) -> Dict[str, Any]:
        return {"entries": self.count()}


class FileCacheStore(AudioStore):
    """
    Flat-directory audio store.

    Attributes:
        base_dir: Directory holding the audio files.
        extension: File extension appended to every key (e.g. ".mp3").
    """

    def __init__(self, base_dir: str, extension: str = Defaults.STORAGE_FILE_EXTENSION):
        self.base_dir = Path(base_dir)
        self.extension = extension

    def _path(self, key: str) -> Path:
        return self.base_dir / f"{key}{self.extension}"

    def _key_of(self, name: str) -> str | None:
        """Return the key for a directory entry name, or None if it is not an entry."""
        if not name.endswith(self.extension):
            return None
        stem = name[: -len(self.extension)]
        return stem if is_fingerprint(stem) else None

    def ensure_dir(self) -> None:
        """Create the output directory if it does not exist."""
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def exists(self, key: str) -> bool:
        """
        Check whether an entry exists.

        Any lookup failure (missing directory, permission error) counts as
        "not present".
        """
        try:
            return self._path(key).is_file()
        except OSError:
            return False

    def _scan(self) -> List[os.DirEntry]:
        try:
            with os.scandir(self.base_dir) as it:
                return [e for e in it if e.is_file() and self._key_of(e.name) is not None]
        except FileNotFoundError:
            return []
        except OSError as e:
            warn(_LOG, "storage_scan_error", dir=str(self.base_dir), error=str(e))
            raise StorageIOError(f"Cannot read cache directory {self.base_dir}: {e}") from e

    def count(self) -> int:
        """Number of stored entries."""
        return len(self._scan())

    def list_keys(self) -> List[str]:
        """All stored keys, in filesystem enumeration order."""
        return [self._key_of(e.name) for e in self._scan()]

    def write(self, key: str, data: bytes) -> None:
        """
        Persist audio under key.

        Writes to a temp file and renames it into place so readers never
        observe a partial file.

        Raises:
            StorageIOError: If the file cannot be written.
        """
        p = self._path(key)
        tmp = p.with_name(p.name + _TMP_SUFFIX)

        try:
            self.ensure_dir()
            with timeit("storage_write") as t:
                tmp.write_bytes(data)
                tmp.replace(p)
        except OSError as e:
            warn(_LOG, "storage_write_error", key=key[:8], error=str(e))
            try:
                tmp.unlink(missing_ok=True)
            except OSError:
                pass
            raise StorageIOError(f"Cannot write audio for key {key}: {e}") from e

        info(_LOG, "saved", key=key[:8], bytes=len(data), seconds=t.rounded)

    def read(self, key: str) -> bytes:
        """
        Return the stored audio for key.

        Raises:
            EntryNotFound: If no entry exists.
            StorageIOError: If the file exists but cannot be read.
        """
        p = self._path(key)
        try:
            with timeit("storage_read") as t:
                data = p.read_bytes()
        except FileNotFoundError:
            raise EntryNotFound(key)
        except OSError as e:
            warn(_LOG, "storage_read_error", key=key[:8], error=str(e))
            raise StorageIOError(f"Cannot read audio for key {key}: {e}") from e

        verbose(_LOG, "read", key=key[:8], bytes=len(data), seconds=t.rounded)
        return data

    def delete(self, key: str) -> None:
        """
        Remove the entry for key.

        Raises:
            EntryNotFound: If no entry exists.
            StorageIOError: If the file cannot be removed.
        """
        try:
            self._path(key).unlink()
        except FileNotFoundError:
            raise EntryNotFound(key)
        except OSError as e:
            warn(_LOG, "storage_delete_error", key=key[:8], error=str(e))
            raise StorageIOError(f"Cannot delete audio for key {key}: {e}") from e

        info(_LOG, "deleted", key=key[:8])

    def info(self) -> Dict[str, Any]:
        """Entry count and total size, for the health endpoint."""
        entries = self._scan()
        total_bytes = 0
        for e in entries:
            try:
                total_bytes += e.stat().st_size
            except OSError:
                continue  # removed between scan and stat
        return {
            "dir": str(self.base_dir),
            "entries": len(entries),
            "total_bytes": total_bytes,
        }
