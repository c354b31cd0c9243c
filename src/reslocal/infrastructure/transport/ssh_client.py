from __future__ import annotations

import logging
import shlex
import shutil
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

import paramiko

from reslocal.core.config import RemoteHost
from reslocal.core.errors import TransportError
from reslocal.domain.models.fetch import (
    CONNECTION_CLOSED,
    HTTP_OK,
    NO_RESPONSE,
    SSH_CLOSED_RESULT,
    WGET_OK_MARKER,
    WGET_STATUS_MARKERS,
    ExecResult,
)

logger = logging.getLogger(__name__)

MKTEMP_COMMAND = "mktemp -p /tmp resdownloader_XXXXXXXXXXXXX"
POLL_INTERVAL_SECONDS = 0.05
RECV_CHUNK_SIZE = 65536
_SESSION_ERRORS = (paramiko.SSHException, OSError, EOFError)


@dataclass(frozen=True)
class ReconnectPolicy:
    """Bounded reconnect loop; the delay grows by ``delay_seconds`` per failed attempt."""

    max_attempts: int = 10
    delay_seconds: float = 1.0

    def delay_for(self, failures: int) -> float:
        return failures * self.delay_seconds


def classify_wget_output(exit_status: int, stderr: str) -> int:
    if exit_status == 0 and WGET_OK_MARKER in stderr:
        return HTTP_OK
    for marker, code in WGET_STATUS_MARKERS:
        if marker in stderr:
            return code
    return NO_RESPONSE


class SshWgetClient:
    """Remote-shell transport: runs wget on a remote host over one long-lived SSH session."""

    def __init__(
        self,
        remote: RemoteHost,
        timeout_seconds: float,
        *,
        ignore_ssl: bool = True,
        policy: ReconnectPolicy | None = None,
        client_factory: Callable[[], Any] = paramiko.SSHClient,
        cancel_event: threading.Event | None = None,
        poll_interval: float = POLL_INTERVAL_SECONDS,
    ) -> None:
        self.remote = remote
        self.timeout_seconds = timeout_seconds
        self.ignore_ssl = ignore_ssl
        self.policy = policy or ReconnectPolicy()
        self.poll_interval = poll_interval
        self.closed = False
        self._client_factory = client_factory
        self._cancel = cancel_event or threading.Event()
        self._client: Any = None

        logger.info("Using SSH client for downloading, host: %s", remote.connection_string)
        if not self._connect():
            raise TransportError(f"Unable to use external SSH downloader host {remote.connection_string}")

    def cancel(self) -> None:
        """Stop any reconnect wait or command poll in progress and close the session."""
        self._cancel.set()

    def _disconnect(self) -> None:
        if self._client is None:
            return
        logger.info("Disconnecting from %s", self.remote.connection_string)
        try:
            self._client.close()
        except Exception as exc:  # paramiko may raise anything while tearing down a dead transport
            logger.warning("Unable to disconnect from %s: %s", self.remote.connection_string, exc)
        self._client = None

    def _connect(self) -> bool:
        self._disconnect()
        failures = 0
        while not self.closed and failures < self.policy.max_attempts:
            delay = self.policy.delay_for(failures)
            cancelled = self._cancel.wait(delay) if delay > 0 else self._cancel.is_set()
            if cancelled:
                logger.error("Connecting to %s cancelled", self.remote.connection_string)
                self.close()
                return False
            logger.info("Connecting to %s (try %d)", self.remote.connection_string, failures + 1)
            client = self._client_factory()
            client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
            try:
                client.connect(
                    self.remote.hostname,
                    port=self.remote.port,
                    username=self.remote.username,
                    password=self.remote.password if self.remote.key_file is None else None,
                    key_filename=str(self.remote.key_file) if self.remote.key_file is not None else None,
                    passphrase=self.remote.password if self.remote.key_file is not None else None,
                    timeout=self.timeout_seconds,
                    allow_agent=False,
                    look_for_keys=False,
                )
            except _SESSION_ERRORS as exc:
                logger.error("Unable to connect to %s: %s", self.remote.connection_string, exc)
                client.close()
                failures += 1
                continue
            self._client = client
            logger.info("Connected to %s", self.remote.connection_string)
            return True

        if not self.closed:
            logger.error("Giving up on %s after %d attempts", self.remote.connection_string, failures)
            self.close()
        return False

    def execute_command(self, command: str) -> ExecResult:
        while not self.closed:
            channel = None
            try:
                transport = self._client.get_transport() if self._client is not None else None
                if transport is None or not transport.is_active():
                    raise paramiko.SSHException("SSH session is not active")
                channel = transport.open_session()
                channel.exec_command(command)
                return self._collect(channel)
            except _SESSION_ERRORS as exc:
                logger.error("Unable to execute command \"%s\" on %s: %s", command, self.remote.connection_string, exc)
                if not self._connect():
                    break
            finally:
                if channel is not None:
                    channel.close()
        return SSH_CLOSED_RESULT

    def _collect(self, channel: Any) -> ExecResult:
        stdout = bytearray()
        stderr = bytearray()
        try:
            while True:
                if self._read_available(channel, stdout, stderr):
                    continue
                if channel.exit_status_ready():
                    # Output may land together with the exit status.
                    while self._read_available(channel, stdout, stderr):
                        pass
                    break
                if self._cancel.wait(self.poll_interval):
                    logger.warning("Command cancelled on %s", self.remote.connection_string)
                    self.close()
                    return SSH_CLOSED_RESULT
        except KeyboardInterrupt:
            logger.warning("Interrupt signal while waiting for %s", self.remote.connection_string)
            self.close()
            return SSH_CLOSED_RESULT
        return ExecResult(stdout=bytes(stdout), stderr=bytes(stderr), exit_status=channel.recv_exit_status())

    @staticmethod
    def _read_available(channel: Any, stdout: bytearray, stderr: bytearray) -> bool:
        """Read whatever is buffered on both streams; False once nothing new arrived."""
        received = False
        if channel.recv_ready():
            chunk = channel.recv(RECV_CHUNK_SIZE)
            stdout.extend(chunk)
            received = bool(chunk)
        if channel.recv_stderr_ready():
            chunk = channel.recv_stderr(RECV_CHUNK_SIZE)
            stderr.extend(chunk)
            received = received or bool(chunk)
        return received

    def _wget_command(self, remote_path: str, url: str) -> str:
        parts = [
            "wget",
            "-O",
            shlex.quote(remote_path),
            f"--timeout={int(self.timeout_seconds)}",
            "--tries=1",
        ]
        if self.ignore_ssl:
            parts.append("--no-check-certificate")
        parts.append(shlex.quote(url))
        return " ".join(parts)

    def download(self, url: str, temp_path: Path, destination: Path) -> int:
        logger.info("Querying %s", url)
        mktemp = self.execute_command(MKTEMP_COMMAND)
        if mktemp.closed:
            return CONNECTION_CLOSED
        if mktemp.stderr:
            logger.warning(mktemp.stderr_text.strip())
        remote_path = mktemp.stdout_text.strip()
        if mktemp.exit_status != 0 or not remote_path:
            logger.error("\"%s\" exited with code %d", MKTEMP_COMMAND, mktemp.exit_status)
            return NO_RESPONSE

        wget = self.execute_command(self._wget_command(remote_path, url))
        if wget.closed:
            return CONNECTION_CLOSED
        logger.debug(wget.stderr_text)

        quoted = shlex.quote(remote_path)
        cat = self.execute_command(f"cat -- {quoted}")
        rm = self.execute_command(f"rm -f -- {quoted}")
        if cat.closed or rm.closed:
            return CONNECTION_CLOSED
        if rm.exit_status != 0:
            logger.warning("Unable to remove remote temp file %s: %s", remote_path, rm.stderr_text.strip())
        if cat.exit_status != 0:
            logger.warning("Unable to read remote temp file %s: %s", remote_path, cat.stderr_text.strip())
            return NO_RESPONSE

        status = classify_wget_output(wget.exit_status, wget.stderr_text)
        if status != HTTP_OK:
            logger.warning("Remote fetch of %s finished with %d", url, status)
            return status

        try:
            if destination.is_file() and destination.stat().st_size == len(cat.stdout):
                logger.info("File already exists, size match: %s", destination)
                shutil.copyfile(destination, temp_path)
            else:
                temp_path.write_bytes(cat.stdout)
        except OSError as exc:
            logger.warning("Unable to write %s: %s", temp_path, exc)
            return NO_RESPONSE
        return HTTP_OK

    def close(self) -> None:
        self.closed = True
        self._cancel.set()
        self._disconnect()
