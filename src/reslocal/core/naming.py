from __future__ import annotations

import re
from pathlib import Path

RESOURCES_DIR_NAME = "resources"
STATE_FILE_NAME = "state.json"
STATE_DB_NAME = "state.sqlite3"
TEMP_FILE_NAME = "temp.dat"
ERROR_ASSET_PREFIX = "err"
DOWNLOADED_SUFFIX = "_dl"

# Anything outside latin letters, digits, Cyrillic and % _ . - \ / becomes "_".
_UNSAFE_PATH_CHARS_RE = re.compile(r"[^A-Za-z0-9\u0400-\u04ff%_.\-\\/]")
_PARENT_SEGMENT_RE = re.compile(r"(?<![^/\\])\.\.(?![^/\\])")
_ERROR_ASSET_RE = re.compile(rf"{RESOURCES_DIR_NAME}/{ERROR_ASSET_PREFIX}(?:\d+|NO_RESP)\.png")


def base_location_for(document_location: str | Path) -> Path:
    return Path(document_location).parent / RESOURCES_DIR_NAME


def sanitize_path(path: str) -> str:
    cleaned = _UNSAFE_PATH_CHARS_RE.sub("_", path)
    return _PARENT_SEGMENT_RE.sub("__", cleaned)


def resource_subpath(host: str | None, path: str | None) -> str:
    """Local sub-path for a remote resource, relative to the base location."""
    host = host or ""
    tail = sanitize_path(path or "").lstrip("/\\")
    if host and tail:
        return f"{host}_{tail}"
    return host or tail


def local_reference(subpath: str) -> str:
    return f"{RESOURCES_DIR_NAME}/{subpath}"


def error_asset_name(code: int) -> str:
    return f"{ERROR_ASSET_PREFIX}{code if code > 0 else 'NO_RESP'}.png"


def error_asset_label(code: int) -> str:
    return f"ERR {code if code > 0 else 'NO RESP'}"


def is_error_asset_reference(reference: str) -> bool:
    return _ERROR_ASSET_RE.fullmatch(reference) is not None


def is_downloaded_name(path: Path) -> bool:
    return path.stem.endswith(DOWNLOADED_SUFFIX)


def download_path_for(path: Path) -> Path:
    return path.with_name(f"{path.stem}{DOWNLOADED_SUFFIX}.html")


def original_path_for(path: Path) -> Path:
    if not is_downloaded_name(path):
        return path
    stem = path.stem[: path.stem.rfind(DOWNLOADED_SUFFIX)]
    return path.with_name(f"{stem}.html")
