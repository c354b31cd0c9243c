from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from reslocal.core.errors import ConfigurationError

DEFAULT_TRIES = 3
DEFAULT_TIMEOUT_SECONDS = 60.0
DEFAULT_SSH_PORT = 22
DEFAULT_RECONNECT_ATTEMPTS = 10
DEFAULT_RECONNECT_DELAY_SECONDS = 1.0
STATE_BACKENDS = ("sqlite", "json")


@dataclass(frozen=True)
class RemoteHost:
    hostname: str
    username: str
    port: int = DEFAULT_SSH_PORT
    password: str | None = None
    key_file: Path | None = None

    @property
    def connection_string(self) -> str:
        return f"{self.username}@{self.hostname}:{self.port}"


@dataclass(frozen=True)
class RunConfig:
    tries: int = DEFAULT_TRIES
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    reverse: bool = False
    remote: RemoteHost | None = None
    state_backend: str = "sqlite"
    reconnect_attempts: int = DEFAULT_RECONNECT_ATTEMPTS
    reconnect_delay_seconds: float = DEFAULT_RECONNECT_DELAY_SECONDS

    def validate(self) -> "RunConfig":
        if self.tries < 1:
            raise ConfigurationError(f"tries must be at least 1, got {self.tries}")
        if self.timeout_seconds <= 0:
            raise ConfigurationError(f"timeout must be positive, got {self.timeout_seconds}")
        if self.state_backend not in STATE_BACKENDS:
            raise ConfigurationError(
                f"Unknown state backend '{self.state_backend}', expected one of: {', '.join(STATE_BACKENDS)}"
            )
        if self.reconnect_attempts < 1:
            raise ConfigurationError(f"reconnect attempts must be at least 1, got {self.reconnect_attempts}")
        if self.remote is not None:
            if not self.remote.username:
                raise ConfigurationError("Remote host requires a user name")
            if self.remote.key_file is not None and not self.remote.key_file.is_file():
                raise ConfigurationError(f"SSH key file not found: {self.remote.key_file}")
        return self


def parse_host_spec(spec: str) -> tuple[str, int]:
    """Split ``hostname[:port]`` into its parts, defaulting the port to 22."""
    raw = (spec or "").strip()
    host, sep, port_raw = raw.rpartition(":")
    if not sep:
        host, port_raw = raw, ""
    if not host:
        raise ConfigurationError(f"Invalid remote host specification: '{spec}'")
    if not port_raw:
        return host, DEFAULT_SSH_PORT
    try:
        port = int(port_raw)
    except ValueError as exc:
        raise ConfigurationError(f"Invalid port in remote host specification: '{spec}'") from exc
    if not 0 < port < 65536:
        raise ConfigurationError(f"Port out of range in remote host specification: '{spec}'")
    return host, port


def build_remote_host(
    spec: str | None,
    username: str | None,
    *,
    password: str | None = None,
    key_file: Path | None = None,
) -> RemoteHost | None:
    """Remote host settings, or None when host or user is missing."""
    if not spec or not username:
        return None
    hostname, port = parse_host_spec(spec)
    return RemoteHost(
        hostname=hostname,
        username=username,
        port=port,
        password=password if password is not None else os.getenv("RESLOCAL_SSH_PASSWORD"),
        key_file=key_file.expanduser() if key_file is not None else None,
    )


def read_float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    return value if value > 0 else default


def read_int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value > 0 else default


def default_tries() -> int:
    return read_int_env("RESLOCAL_TRIES", DEFAULT_TRIES)


def default_timeout_seconds() -> float:
    return read_float_env("RESLOCAL_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS)
