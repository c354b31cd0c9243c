from __future__ import annotations

import json
import logging
import os
import sqlite3
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Generic, Protocol, TypeVar

from reslocal.core.errors import StateStoreError
from reslocal.core.files import write_text_atomic
from reslocal.core.naming import STATE_DB_NAME, STATE_FILE_NAME
from reslocal.domain.models.state import StateSnapshot
from reslocal.infrastructure.db.repos.collection_repo import SqliteMap, SqliteSet
from reslocal.infrastructure.db.sqlite import get_connection

logger = logging.getLogger(__name__)

T = TypeVar("T", str, int)


class KeyValueCollection(Protocol):
    def contains_key(self, key: str) -> bool: ...

    def contains_value(self, value: str) -> bool: ...

    def get(self, key: str) -> str | None: ...

    def get_by_value(self, value: str) -> str | None: ...

    def put(self, key: str, value: str) -> None: ...

    def discard_value(self, value: str) -> None: ...

    def __len__(self) -> int: ...


class ValueSet(Protocol):
    def contains(self, value: str | int) -> bool: ...

    def add(self, value: str | int) -> None: ...

    def __len__(self) -> int: ...


class StateStore(ABC):
    """The four collections a resolver persists for one base location.

    Every mutation is durable once the call returns.
    """

    converted: KeyValueCollection
    file_hashes: KeyValueCollection
    failed: ValueSet
    error_codes: ValueSet

    def __init__(self, location: Path) -> None:
        self.location = location

    @abstractmethod
    def close(self) -> None: ...

    def counts(self) -> dict[str, int]:
        return {
            "converted": len(self.converted),
            "fileHashes": len(self.file_hashes),
            "failed": len(self.failed),
            "errorCodes": len(self.error_codes),
        }

    def __enter__(self) -> "StateStore":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class SqliteStateStore(StateStore):
    def __init__(self, db_path: Path) -> None:
        super().__init__(db_path)
        try:
            self.conn = get_connection(db_path)
        except sqlite3.Error as exc:
            raise StateStoreError(f"Unable to open/create database '{db_path}': {exc}") from exc
        self.converted = SqliteMap(self.conn, "converted")
        self.file_hashes = SqliteMap(self.conn, "file_hashes")
        self.failed = SqliteSet(self.conn, "fails")
        self.error_codes = SqliteSet(self.conn, "err_codes")

    def import_snapshot(self, snapshot: StateSnapshot) -> None:
        for url, local in snapshot.converted.items():
            self.converted.put(url, local)
        for digest, local in snapshot.url_file_hashes.items():
            self.file_hashes.put(digest, local)
        for url in snapshot.failed:
            self.failed.add(url)
        for code in snapshot.err_codes_images:
            self.error_codes.add(code)

    def close(self) -> None:
        try:
            self.conn.close()
        except sqlite3.Error as exc:
            logger.error("Unable to close database %s: %s", self.location, exc)


class _SnapshotMap:
    def __init__(self, data: dict[str, str], flush: Callable[[], None]) -> None:
        self._data = data
        self._flush = flush

    def contains_key(self, key: str) -> bool:
        return key in self._data

    def contains_value(self, value: str) -> bool:
        return value in self._data.values()

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def get_by_value(self, value: str) -> str | None:
        for key, candidate in self._data.items():
            if candidate == value:
                return key
        return None

    def put(self, key: str, value: str) -> None:
        if self._data.get(key) == value:
            return
        self._data[key] = value
        self._flush()

    def discard_value(self, value: str) -> None:
        stale = [key for key, candidate in self._data.items() if candidate == value]
        if not stale:
            return
        for key in stale:
            del self._data[key]
        self._flush()

    def __len__(self) -> int:
        return len(self._data)


class _SnapshotSet(Generic[T]):
    def __init__(self, data: list[T], convert: Callable[[str | int], T], flush: Callable[[], None]) -> None:
        self._data = data
        self._convert = convert
        self._flush = flush

    def contains(self, value: str | int) -> bool:
        return self._convert(value) in self._data

    def add(self, value: str | int) -> None:
        item = self._convert(value)
        if item in self._data:
            return
        self._data.append(item)
        self._flush()

    def __len__(self) -> int:
        return len(self._data)


class SnapshotStateStore(StateStore):
    """Flat JSON backend; rewrites the whole snapshot file on every mutation."""

    def __init__(self, path: Path, snapshot: StateSnapshot | None = None, *, writable: bool = True) -> None:
        super().__init__(path)
        self.snapshot = snapshot if snapshot is not None else StateSnapshot()
        self.writable = writable
        self.converted = _SnapshotMap(self.snapshot.converted, self.flush)
        self.file_hashes = _SnapshotMap(self.snapshot.url_file_hashes, self.flush)
        self.failed = _SnapshotSet(self.snapshot.failed, str, self.flush)
        self.error_codes = _SnapshotSet(self.snapshot.err_codes_images, int, self.flush)

    def flush(self) -> None:
        if not self.writable:
            return
        payload = json.dumps(self.snapshot.to_json(), indent=2, ensure_ascii=False)
        try:
            write_text_atomic(self.location, payload)
        except OSError as exc:
            raise StateStoreError(f"Unable to save state file '{self.location}': {exc}") from exc

    def close(self) -> None:
        return None


def load_snapshot(path: Path) -> StateSnapshot:
    """Read a snapshot file; unreadable or malformed files load as empty state."""
    if not path.exists():
        return StateSnapshot()
    try:
        snapshot = StateSnapshot.from_json(json.loads(path.read_text(encoding="utf-8")))
    except (OSError, ValueError, TypeError) as exc:
        logger.warning("Unable to load state file %s: %s", path, exc)
        return StateSnapshot()
    logger.info("State file %s loaded", path)
    return snapshot


def open_state_store(base_location: Path, backend: str = "sqlite", *, writable: bool = True) -> StateStore:
    """Open the state for a base location, importing a legacy snapshot once.

    With ``writable`` false nothing is created or migrated on disk; a location
    without a database is read from its snapshot file, if any.
    """
    db_path = base_location / STATE_DB_NAME
    snapshot_path = base_location / STATE_FILE_NAME

    if backend == "json":
        return SnapshotStateStore(snapshot_path, load_snapshot(snapshot_path), writable=writable)

    if not db_path.exists():
        if not writable:
            return SnapshotStateStore(snapshot_path, load_snapshot(snapshot_path), writable=False)
        if snapshot_path.exists():
            _migrate_snapshot(snapshot_path, db_path)
    return SqliteStateStore(db_path)


def _migrate_snapshot(snapshot_path: Path, db_path: Path) -> None:
    snapshot = load_snapshot(snapshot_path)
    staging_path = db_path.with_name(f"{db_path.name}.migrating")
    for leftover in (staging_path, Path(f"{staging_path}-wal"), Path(f"{staging_path}-shm")):
        if leftover.exists():
            leftover.unlink()

    staging = SqliteStateStore(staging_path)
    try:
        staging.import_snapshot(snapshot)
    finally:
        staging.close()
    try:
        os.replace(staging_path, db_path)
    except OSError as exc:
        raise StateStoreError(f"Unable to move migrated state into place at '{db_path}': {exc}") from exc
    logger.info(
        "Imported %d conversions and %d failures from %s into %s",
        len(snapshot.converted),
        len(snapshot.failed),
        snapshot_path,
        db_path,
    )
