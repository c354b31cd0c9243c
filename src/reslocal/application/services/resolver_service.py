from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable
from urllib.parse import SplitResult, urlsplit

from requests.cookies import RequestsCookieJar

from reslocal.core.config import RunConfig
from reslocal.core.errors import DocumentError, LocalizerError
from reslocal.core.hashing import compute_file_digest
from reslocal.core.naming import (
    base_location_for,
    error_asset_label,
    error_asset_name,
    is_error_asset_reference,
    local_reference,
    resource_subpath,
)
from reslocal.domain.models.fetch import (
    CONNECTION_CLOSED,
    NO_RESPONSE,
    asset_code,
    is_definite,
    is_success,
)
from reslocal.infrastructure.archive.store import ResourceArchive
from reslocal.infrastructure.images.placeholder import PlaceholderImageGenerator
from reslocal.infrastructure.state.store import StateStore, open_state_store
from reslocal.infrastructure.transport.base import Transport
from reslocal.infrastructure.transport.http_client import HttpCookieClient
from reslocal.infrastructure.transport.ssh_client import ReconnectPolicy, SshWgetClient

logger = logging.getLogger(__name__)

_REMOTE_SCHEMES = ("http", "https")


@dataclass(slots=True)
class ResolverStats:
    cached: int = 0
    fetched: int = 0
    deduplicated: int = 0
    placeholders: int = 0
    failed: int = 0
    reversed: int = 0


def parse_remote_url(url: str) -> SplitResult | None:
    """Split an absolute or protocol-relative http(s) URL, or return None."""
    if not url or any(ch.isspace() or not ch.isprintable() for ch in url):
        return None
    try:
        parts = urlsplit(url)
        if parts.port == 0:
            return None
    except ValueError:
        return None
    if not parts.hostname:
        return None
    if parts.scheme and parts.scheme.lower() not in _REMOTE_SCHEMES:
        return None
    if not parts.scheme and not url.startswith("//"):
        return None
    return parts


class ResourceResolver:
    """Maps remote resource URLs of one base location to local copies and back."""

    def __init__(
        self,
        base_location: Path,
        store: StateStore,
        *,
        tries: int,
        transport: Transport | None,
        images: PlaceholderImageGenerator | None = None,
    ) -> None:
        if tries < 1:
            raise ValueError(f"tries must be at least 1, got {tries}")
        self.base_location = base_location
        self.archive = ResourceArchive(base_location)
        self.store = store
        self.tries = tries
        self.transport = transport
        self.images = images or PlaceholderImageGenerator()
        self.stats = ResolverStats()

    def resolve(self, url: str, reverse_mode: bool = False) -> str | None:
        if reverse_mode:
            return self._resolve_reverse(url)
        return self._resolve_forward(url)

    def _resolve_forward(self, url: str) -> str | None:
        known = self.store.converted.get(url)
        if known is not None:
            self.stats.cached += 1
            return known
        if self.store.failed.contains(url):
            return None

        parts = parse_remote_url(url)
        if parts is None:
            logger.warning("Unable to parse url %s", url)
            self._record_failure(url)
            return None

        subpath = resource_subpath(parts.hostname, parts.path)
        fetch_url = url if parts.scheme else f"https:{url}"
        status = self._download(fetch_url, self.archive.abspath_for_subpath(subpath))
        if not is_success(status):
            return self._use_error_asset(url, status)
        return self._store_fetched(url, subpath)

    def _download(self, url: str, destination: Path) -> int:
        if self.transport is None:
            raise LocalizerError(f"Resolver for {self.base_location} was opened without a transport")
        status = NO_RESPONSE
        for attempt in range(1, self.tries + 1):
            status = self.transport.download(url, self.archive.temp_path, destination)
            if is_definite(status) or status == CONNECTION_CLOSED:
                break
            logger.info("No response for %s (attempt %d of %d)", url, attempt, self.tries)
        return status

    def _use_error_asset(self, url: str, status: int) -> str | None:
        code = asset_code(status)
        if self.store.error_codes.contains(code):
            reference = local_reference(error_asset_name(code))
            self.store.converted.put(url, reference)
            self.stats.placeholders += 1
            return reference

        logger.warning("Generating error placeholder %s for %s", error_asset_name(code), url)
        try:
            reference = self.archive.store_error_asset(code, self.images.render(error_asset_label(code)))
        except (OSError, ValueError) as exc:
            logger.warning("Unable to generate error placeholder for %s: %s", url, exc)
            self._record_failure(url)
            return None
        self.store.converted.put(url, reference)
        self.store.error_codes.add(code)
        self.stats.placeholders += 1
        return reference

    def _store_fetched(self, url: str, subpath: str) -> str | None:
        try:
            digest: str | None = compute_file_digest(self.archive.temp_path)
        except OSError as exc:
            logger.warning("Unable to hash fetched content of %s: %s", url, exc)
            digest = None

        if digest is not None:
            existing = self.store.file_hashes.get(digest)
            if existing is not None:
                logger.info("Content of %s already stored as %s", url, existing)
                self.store.converted.put(url, existing)
                self.stats.deduplicated += 1
                return existing

        try:
            reference = self.archive.store_temp_file(subpath)
        except OSError as exc:
            logger.error(
                "Unable to store %s at %s: %s", url, self.archive.abspath_for_subpath(subpath), exc
            )
            self._record_failure(url)
            return None
        self.store.converted.put(url, reference)
        # The file may have replaced other content stored under the same path.
        self.store.file_hashes.discard_value(reference)
        if digest is not None:
            self.store.file_hashes.put(digest, reference)
        self.stats.fetched += 1
        return reference

    def _resolve_reverse(self, reference: str) -> str:
        if is_error_asset_reference(reference):
            return reference
        original = self.store.converted.get_by_value(reference)
        if original is None:
            return reference
        self.stats.reversed += 1
        return original

    def _record_failure(self, url: str) -> None:
        self.store.failed.add(url)
        self.stats.failed += 1

    def close(self) -> None:
        self.store.close()

    def __enter__(self) -> "ResourceResolver":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def build_transport(config: RunConfig, cookies: RequestsCookieJar) -> Transport:
    """The remote-shell transport when a remote host is configured, else direct HTTP."""
    if config.remote is not None:
        return SshWgetClient(
            config.remote,
            config.timeout_seconds,
            policy=ReconnectPolicy(
                max_attempts=config.reconnect_attempts,
                delay_seconds=config.reconnect_delay_seconds,
            ),
        )
    return HttpCookieClient(config.timeout_seconds, cookies=cookies)


class ResolverRegistry:
    """Owns one resolver per base location and the transport they share for a run."""

    def __init__(
        self,
        config: RunConfig,
        *,
        transport_factory: Callable[[RunConfig, RequestsCookieJar], Transport] | None = None,
        store_opener: Callable[..., StateStore] | None = None,
        images: PlaceholderImageGenerator | None = None,
    ) -> None:
        self.config = config
        self.cookies = RequestsCookieJar()
        self.images = images or PlaceholderImageGenerator()
        self._transport_factory = transport_factory or build_transport
        self._store_opener = store_opener or open_state_store
        self._transport: Transport | None = None
        self._resolvers: dict[Path, ResourceResolver] = {}

    @property
    def transport(self) -> Transport:
        if self._transport is None:
            self._transport = self._transport_factory(self.config, self.cookies)
        return self._transport

    def for_document(self, document_location: str | Path) -> ResourceResolver:
        base = base_location_for(Path(document_location).expanduser().resolve())
        resolver = self._resolvers.get(base)
        if resolver is None:
            resolver = self._open(base)
            self._resolvers[base] = resolver
        return resolver

    def _open(self, base: Path) -> ResourceResolver:
        reverse = self.config.reverse
        archive = ResourceArchive(base)
        if not reverse:
            try:
                archive.ensure_layout()
            except OSError as exc:
                raise DocumentError(f"Unable to create directory {base}: {exc}") from exc
        store = self._store_opener(base, self.config.state_backend, writable=not reverse)
        try:
            transport = None if reverse else self.transport
        except LocalizerError:
            store.close()
            raise
        return ResourceResolver(
            base,
            store,
            tries=self.config.tries,
            transport=transport,
            images=self.images,
        )

    def resolvers(self) -> list[ResourceResolver]:
        return list(self._resolvers.values())

    def close(self) -> None:
        for base, resolver in self._resolvers.items():
            try:
                resolver.close()
            except LocalizerError as exc:
                logger.error("Unable to close state for %s: %s", base, exc)
        self._resolvers.clear()
        if self._transport is not None:
            self._transport.close()
            self._transport = None

    def __enter__(self) -> "ResolverRegistry":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
