from __future__ import annotations

from pathlib import Path
from typing import Protocol


class Transport(Protocol):
    """Fetches one URL into a temp buffer and reports a status code.

    Positive results are protocol statuses; negative ones are the sentinels
    defined in ``reslocal.domain.models.fetch``.
    """

    def download(self, url: str, temp_path: Path, destination: Path) -> int: ...

    def close(self) -> None: ...
