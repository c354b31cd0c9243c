from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(slots=True)
class StateSnapshot:
    """In-memory form of the flat ``state.json`` document."""

    converted: dict[str, str] = field(default_factory=dict)
    failed: list[str] = field(default_factory=list)
    url_file_hashes: dict[str, str] = field(default_factory=dict)
    err_codes_images: list[int] = field(default_factory=list)

    @classmethod
    def from_json(cls, payload: Any) -> "StateSnapshot":
        if not isinstance(payload, dict):
            raise ValueError("State snapshot must be a JSON object")
        converted = payload.get("converted") or {}
        failed = payload.get("failed") or []
        hashes = payload.get("urlFileHashes") or {}
        codes = payload.get("errCodesImages") or []
        if not isinstance(converted, dict) or not isinstance(hashes, dict):
            raise ValueError("'converted' and 'urlFileHashes' must be objects")
        if not isinstance(failed, list) or not isinstance(codes, list):
            raise ValueError("'failed' and 'errCodesImages' must be arrays")
        return cls(
            converted={str(k): str(v) for k, v in converted.items()},
            failed=[str(item) for item in failed],
            url_file_hashes={str(k): str(v) for k, v in hashes.items()},
            err_codes_images=[int(item) for item in codes],
        )

    def to_json(self) -> dict[str, Any]:
        return {
            "converted": self.converted,
            "failed": self.failed,
            "urlFileHashes": self.url_file_hashes,
            "errCodesImages": self.err_codes_images,
        }
