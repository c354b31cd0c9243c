from __future__ import annotations

from pathlib import Path

from reslocal.core.files import ensure_directory, replace_file, write_bytes_atomic
from reslocal.core.naming import TEMP_FILE_NAME, error_asset_name, local_reference


class ResourceArchive:
    """Files of one base location: downloaded resources, placeholders and the fetch buffer."""

    def __init__(self, base_dir: Path) -> None:
        self.base_dir = base_dir

    @property
    def temp_path(self) -> Path:
        return self.base_dir / TEMP_FILE_NAME

    def ensure_layout(self) -> None:
        ensure_directory(self.base_dir)

    def abspath_for_subpath(self, subpath: str) -> Path:
        return self.base_dir / subpath

    def store_temp_file(self, subpath: str) -> str:
        """Move the fetch buffer to its final place and return the local reference."""
        dst = self.abspath_for_subpath(subpath)
        ensure_directory(dst.parent)
        replace_file(self.temp_path, dst)
        return local_reference(subpath)

    def store_error_asset(self, code: int, image: bytes) -> str:
        name = error_asset_name(code)
        write_bytes_atomic(self.base_dir / name, image)
        return local_reference(name)
