from __future__ import annotations

from dataclasses import dataclass

HTTP_OK = 200
NO_RESPONSE = -1
CONNECTION_CLOSED = -2

# Markers printed by wget on stderr, checked in order.
WGET_STATUS_MARKERS: tuple[tuple[str, int], ...] = (
    ("404: Not Found", 404),
    ("403: Forbidden", 403),
    ("503: Service Temporarily Unavailable", 503),
    ("451: Unavailable For Legal Reasons", 451),
)
WGET_OK_MARKER = "200 OK"


def is_success(status: int) -> bool:
    return status == HTTP_OK


def is_definite(status: int) -> bool:
    """A protocol status that will not change by asking again."""
    return status > 0


def asset_code(status: int) -> int:
    """Key under which a placeholder for this status is shared."""
    return status if status > 0 else NO_RESPONSE


@dataclass(slots=True, frozen=True)
class ExecResult:
    stdout: bytes
    stderr: bytes
    exit_status: int
    closed: bool = False

    @property
    def stdout_text(self) -> str:
        return self.stdout.decode("utf-8", errors="replace")

    @property
    def stderr_text(self) -> str:
        return self.stderr.decode("utf-8", errors="replace")


SSH_CLOSED_RESULT = ExecResult(stdout=b"", stderr=b"", exit_status=-1, closed=True)
