from __future__ import annotations

import base64
import hashlib
from pathlib import Path


def compute_file_digest(path: Path, alg: str = "md5", chunk_size: int = 1024 * 1024) -> str:
    """Return the base64-encoded digest of a file, read in chunks."""
    h = hashlib.new(alg)
    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(chunk_size), b""):
            h.update(chunk)
    return base64.b64encode(h.digest()).decode("ascii")
