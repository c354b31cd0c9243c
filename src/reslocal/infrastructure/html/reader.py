from __future__ import annotations

import codecs
import logging
from dataclasses import dataclass
from pathlib import Path

import chardet
from bs4 import BeautifulSoup

from reslocal.core.errors import DocumentError
from reslocal.core.files import write_bytes_atomic

logger = logging.getLogger(__name__)

SNIFF_BYTES = 4096
DEFAULT_CHARSET = "utf-8"


@dataclass(slots=True)
class HtmlDocument:
    location: Path
    charset: str
    soup: BeautifulSoup


def detect_charset(data: bytes) -> str:
    detected = chardet.detect(data[:SNIFF_BYTES]).get("encoding") or ""
    if not detected or detected.lower() in ("ascii", "us-ascii"):
        return DEFAULT_CHARSET
    try:
        return codecs.lookup(detected).name
    except LookupError:
        return DEFAULT_CHARSET


def read_html_document(path: Path) -> HtmlDocument:
    location = path.expanduser().resolve()
    try:
        raw = location.read_bytes()
    except OSError as exc:
        raise DocumentError(f"Unable to read file {location}: {exc}") from exc
    if not raw:
        raise DocumentError(f"File {location} is empty")

    charset = detect_charset(raw)
    try:
        text = raw.decode(charset)
    except UnicodeDecodeError:
        logger.warning("File %s is not valid %s, falling back to %s", location.name, charset, DEFAULT_CHARSET)
        charset = DEFAULT_CHARSET
        text = raw.decode(charset, errors="replace")
    logger.info("File: %s, detected charset: %s", location.name, charset)
    return HtmlDocument(location=location, charset=charset, soup=BeautifulSoup(text, "html.parser"))


def write_html_document(document: HtmlDocument, path: Path) -> None:
    data = str(document.soup).encode(document.charset, errors="xmlcharrefreplace")
    try:
        write_bytes_atomic(path, data)
    except OSError as exc:
        raise DocumentError(f"Unable to save output file {path}: {exc}") from exc
