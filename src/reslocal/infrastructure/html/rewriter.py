from __future__ import annotations

import re
from typing import Callable

from bs4 import BeautifulSoup, Tag
from bs4.element import Stylesheet

Replacer = Callable[[str], str | None]

CSS_URL_RE = re.compile(r"url\(\s*([\"']?)([^)\"']+)\1\s*\)", re.IGNORECASE)
CSS_IMPORT_RE = re.compile(r"@import\s+([\"'])([^\"']+)\1", re.IGNORECASE)


def _should_consult(value: str) -> bool:
    stripped = value.strip()
    return bool(stripped) and not stripped.lower().startswith("data:")


def _replacement(value: str, replace: Replacer) -> str | None:
    if not _should_consult(value):
        return None
    local = replace(value.strip())
    if local is None or local == value.strip():
        return None
    return local


def rewrite_css(css: str, replace: Replacer) -> tuple[str, int]:
    """Rewrite url(...) and @import references inside a CSS fragment."""
    count = 0

    def _url(match: re.Match[str]) -> str:
        nonlocal count
        local = _replacement(match.group(2), replace)
        if local is None:
            return match.group(0)
        count += 1
        quote = match.group(1)
        return f"url({quote}{local}{quote})"

    def _import(match: re.Match[str]) -> str:
        nonlocal count
        local = _replacement(match.group(2), replace)
        if local is None:
            return match.group(0)
        count += 1
        quote = match.group(1)
        return f"@import {quote}{local}{quote}"

    css = CSS_URL_RE.sub(_url, css)
    css = CSS_IMPORT_RE.sub(_import, css)
    return css, count


def _rewrite_attr(tag: Tag, attr: str, replace: Replacer) -> int:
    value = tag.get(attr)
    if not isinstance(value, str):
        return 0
    local = _replacement(value, replace)
    if local is None:
        return 0
    tag[attr] = local
    return 1


def _is_stylesheet(tag: Tag) -> bool:
    rel = tag.get("rel") or []
    if isinstance(rel, str):
        rel = rel.split()
    return any(item.lower() == "stylesheet" for item in rel)


def rewrite_document(soup: BeautifulSoup, replace: Replacer) -> int:
    """Point every resource reference of a parsed document at ``replace(url)``.

    ``replace`` returning None leaves the reference untouched. Returns the number
    of references changed.
    """
    count = 0
    for tag in soup.find_all("img"):
        count += _rewrite_attr(tag, "src", replace)
    for tag in soup.find_all("script", src=True):
        count += _rewrite_attr(tag, "src", replace)
    for tag in soup.find_all("link", href=True):
        if _is_stylesheet(tag):
            count += _rewrite_attr(tag, "href", replace)
    for tag in soup.find_all("style"):
        if tag.string is None:
            continue
        css, changed = rewrite_css(str(tag.string), replace)
        if changed:
            tag.string = Stylesheet(css)
            count += changed
    for tag in soup.find_all(style=True):
        css, changed = rewrite_css(tag["style"], replace)
        if changed:
            tag["style"] = css
            count += changed
    return count
