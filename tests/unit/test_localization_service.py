from pathlib import Path

import pytest

from reslocal.application.services.localization_service import LocalizationService, discover_documents
from reslocal.application.services.resolver_service import ResolverRegistry
from reslocal.core.config import RunConfig
from reslocal.core.errors import ConfigurationError
from reslocal.domain.models.fetch import HTTP_OK


class StaticTransport:
    def __init__(self, bodies: dict[str, bytes]) -> None:
        self.bodies = bodies
        self.calls: list[str] = []
        self.closed = False

    def download(self, url: str, temp_path: Path, destination: Path) -> int:
        self.calls.append(url)
        if url not in self.bodies:
            return 404
        temp_path.write_bytes(self.bodies[url])
        return HTTP_OK

    def close(self) -> None:
        self.closed = True


def _registry(config: RunConfig, transport: StaticTransport) -> ResolverRegistry:
    return ResolverRegistry(config, transport_factory=lambda _config, _cookies: transport)


def _write_page(path: Path, body: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(f"<html><head><title>t</title></head><body>{body}</body></html>", encoding="utf-8")
    return path


def test_discover_documents_filters_by_mode(tmp_path: Path) -> None:
    page = _write_page(tmp_path / "page.html", "")
    downloaded = _write_page(tmp_path / "page_dl.html", "")
    _write_page(tmp_path / "other.HTM", "")
    (tmp_path / "notes.txt").write_text("x", encoding="utf-8")

    forward = discover_documents([tmp_path, page], reverse=False)
    reverse = discover_documents([tmp_path], reverse=True)

    assert [p.name for p in forward] == ["other.HTM", "page.html"]
    assert reverse == [downloaded]


def test_discover_documents_rejects_missing_path(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError):
        discover_documents([tmp_path / "missing.html"], reverse=False)


def test_localize_then_restore_round_trip(tmp_path: Path) -> None:
    page = _write_page(
        tmp_path / "site" / "page.html",
        '<img src="https://example.com/a.png"><img src="http://example.com/missing.png">'
        '<img src="data:image/gif;base64,R0lG">',
    )
    transport = StaticTransport({"https://example.com/a.png": b"\x89PNG A"})

    with _registry(RunConfig(tries=2), transport) as registry:
        results = LocalizationService(registry).run([page])
        stats = registry.resolvers()[0].stats

    assert transport.closed is True
    assert [r.status for r in results] == ["localized"]
    output = tmp_path / "site" / "page_dl.html"
    assert results[0].output == output.resolve()
    assert results[0].rewritten == 2
    html = output.read_text(encoding="utf-8")
    assert 'src="resources/example.com_a.png"' in html
    assert 'src="resources/err404.png"' in html
    assert 'src="data:image/gif;base64,R0lG"' in html
    assert (tmp_path / "site" / "resources" / "example.com_a.png").read_bytes() == b"\x89PNG A"
    assert (tmp_path / "site" / "resources" / "err404.png").is_file()
    assert stats.fetched == 1
    assert stats.placeholders == 1

    page.unlink()
    reverse_transport = StaticTransport({})
    with _registry(RunConfig(reverse=True), reverse_transport) as registry:
        restored = LocalizationService(registry).run([output])

    assert reverse_transport.calls == []
    assert [r.status for r in restored] == ["restored"]
    html = page.read_text(encoding="utf-8")
    assert 'src="https://example.com/a.png"' in html
    assert 'src="resources/err404.png"' in html


def test_second_document_in_same_directory_reuses_downloads(tmp_path: Path) -> None:
    first = _write_page(tmp_path / "one.html", '<img src="https://example.com/a.png">')
    second = _write_page(tmp_path / "two.html", '<img src="https://example.com/a.png">')
    transport = StaticTransport({"https://example.com/a.png": b"A"})

    with _registry(RunConfig(), transport) as registry:
        results = LocalizationService(registry).run([first, second])
        assert len(registry.resolvers()) == 1

    assert [r.status for r in results] == ["localized", "localized"]
    assert transport.calls == ["https://example.com/a.png"]


def test_unreadable_document_is_reported_and_run_continues(tmp_path: Path) -> None:
    empty = tmp_path / "empty.html"
    empty.write_bytes(b"")
    page = _write_page(tmp_path / "page.html", "<p>no resources</p>")

    with _registry(RunConfig(), StaticTransport({})) as registry:
        results = LocalizationService(registry).run([empty, page])

    assert [r.status for r in results] == ["error", "localized"]
    assert "empty" in results[0].message
    assert results[1].rewritten == 0


def test_document_charset_is_preserved(tmp_path: Path) -> None:
    page = tmp_path / "page.html"
    text = "<html><body><p>" + "Привет мир, это проверка кодировки. " * 20 + '</p><img src="https://example.com/a.png"></body></html>'
    page.write_bytes(text.encode("cp1251"))

    with _registry(RunConfig(), StaticTransport({"https://example.com/a.png": b"A"})) as registry:
        LocalizationService(registry).run([page])

    output = (tmp_path / "page_dl.html").read_bytes().decode("cp1251")
    assert "Привет мир" in output
    assert "resources/example.com_a.png" in output
