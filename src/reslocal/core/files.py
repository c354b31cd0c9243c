from __future__ import annotations

import os
import shutil
from pathlib import Path


def ensure_directory(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def replace_file(src: Path, dst: Path) -> None:
    """Move src over dst, overwriting dst if it exists."""
    try:
        os.replace(src, dst)
    except OSError:
        # os.replace cannot cross filesystems.
        shutil.move(str(src), str(dst))


def write_bytes_atomic(dst: Path, data: bytes) -> None:
    ensure_directory(dst.parent)
    temp_path = dst.parent / f".{dst.name}.tmp"
    temp_path.write_bytes(data)
    os.replace(temp_path, dst)


def write_text_atomic(dst: Path, text: str, encoding: str = "utf-8") -> None:
    write_bytes_atomic(dst, text.encode(encoding))
