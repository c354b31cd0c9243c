from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from reslocal.application.services.resolver_service import ResolverRegistry
from reslocal.core.errors import ConfigurationError, LocalizerError
from reslocal.core.naming import download_path_for, is_downloaded_name, original_path_for
from reslocal.infrastructure.html.reader import read_html_document, write_html_document
from reslocal.infrastructure.html.rewriter import rewrite_document

logger = logging.getLogger(__name__)

HTML_SUFFIXES = (".html", ".htm")


@dataclass(slots=True)
class DocumentResult:
    source: Path
    status: str
    output: Path | None = None
    rewritten: int = 0
    message: str = ""


def discover_documents(paths: Iterable[Path], *, reverse: bool) -> list[Path]:
    """Expand files and directories into the HTML documents to process, in order."""
    found: list[Path] = []
    seen: set[Path] = set()
    for raw in paths:
        path = raw.expanduser()
        if path.is_dir():
            candidates = sorted(p for p in path.iterdir() if p.is_file() and p.suffix.lower() in HTML_SUFFIXES)
        elif path.is_file():
            candidates = [path]
        else:
            raise ConfigurationError(f"Input path not found: {path}")

        for candidate in candidates:
            if is_downloaded_name(candidate) != reverse:
                logger.info("Skipping %s", candidate)
                continue
            key = candidate.resolve()
            if key in seen:
                continue
            seen.add(key)
            found.append(candidate)
    return found


class LocalizationService:
    def __init__(self, registry: ResolverRegistry) -> None:
        self.registry = registry

    @property
    def reverse(self) -> bool:
        return self.registry.config.reverse

    def process_document(self, path: Path) -> DocumentResult:
        document = read_html_document(path)
        logger.info("Processing %s", document.location)
        resolver = self.registry.for_document(document.location)
        reverse = self.reverse

        rewritten = rewrite_document(document.soup, lambda url: resolver.resolve(url, reverse))

        output = original_path_for(document.location) if reverse else download_path_for(document.location)
        write_html_document(document, output)
        logger.info("Saved %s", output)
        return DocumentResult(
            source=path,
            status="restored" if reverse else "localized",
            output=output,
            rewritten=rewritten,
        )

    def run(self, paths: Iterable[Path]) -> list[DocumentResult]:
        results: list[DocumentResult] = []
        for path in paths:
            try:
                results.append(self.process_document(path))
            except LocalizerError as exc:
                logger.error("Unable to process %s: %s", path, exc)
                results.append(DocumentResult(source=path, status="error", message=str(exc)))
        return results
