from pathlib import Path

import pytest

from reslocal.application.services import resolver_service
from reslocal.cli.main import build_parser, main
from reslocal.domain.models.fetch import HTTP_OK


class FakeTransport:
    def __init__(self) -> None:
        self.calls: list[str] = []
        self.closed = False

    def download(self, url: str, temp_path: Path, destination: Path) -> int:
        self.calls.append(url)
        temp_path.write_bytes(url.encode("utf-8"))
        return HTTP_OK

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_transport(monkeypatch: pytest.MonkeyPatch) -> FakeTransport:
    transport = FakeTransport()
    monkeypatch.setattr(resolver_service, "build_transport", lambda config, cookies: transport)
    return transport


def test_parser_builds_localize_options() -> None:
    args = build_parser().parse_args(
        ["-vv", "localize", "page.html", "--tries", "5", "--timeout", "2.5", "--state-backend", "json"]
    )
    assert args.verbose == 2
    assert args.command == "localize"
    assert args.paths == ["page.html"]
    assert args.tries == 5
    assert args.timeout == 2.5
    assert args.state_backend == "json"
    assert args.ssh_host is None


def test_parser_requires_a_command() -> None:
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_localize_restore_and_state_commands(tmp_path: Path, fake_transport: FakeTransport, capsys) -> None:
    page = tmp_path / "page.html"
    page.write_text('<html><body><img src="https://example.com/a.png"></body></html>', encoding="utf-8")

    assert main(["localize", str(tmp_path)]) == 0
    assert fake_transport.calls == ["https://example.com/a.png"]
    assert fake_transport.closed is True
    downloaded = tmp_path / "page_dl.html"
    assert "resources/example.com_a.png" in downloaded.read_text(encoding="utf-8")
    assert "fetched=1" in capsys.readouterr().out

    assert main(["state", str(page)]) == 0
    out = capsys.readouterr().out
    assert "converted" in out
    assert "fileHashes" in out

    page.unlink()
    assert main(["restore", str(downloaded)]) == 0
    assert "restored=1" in capsys.readouterr().out
    assert "https://example.com/a.png" in page.read_text(encoding="utf-8")
    assert fake_transport.calls == ["https://example.com/a.png"]


def test_localize_reports_errors_with_exit_code(tmp_path: Path, fake_transport: FakeTransport) -> None:
    empty = tmp_path / "empty.html"
    empty.write_bytes(b"")
    assert main(["localize", str(empty)]) == 1


def test_missing_input_path_fails_cleanly(tmp_path: Path) -> None:
    assert main(["localize", str(tmp_path / "missing.html")]) == 1


def test_invalid_ssh_port_is_rejected(tmp_path: Path) -> None:
    page = tmp_path / "page.html"
    page.write_text("<p>x</p>", encoding="utf-8")
    assert main(["localize", str(page), "--ssh-host", "fetcher:99999", "--ssh-user", "robot"]) == 1
    assert not (tmp_path / "page_dl.html").exists()


def test_state_for_unprocessed_document(tmp_path: Path, capsys) -> None:
    page = tmp_path / "page.html"
    page.write_text("<p>x</p>", encoding="utf-8")

    assert main(["state", str(page)]) == 0
    assert "No resources stored yet" in capsys.readouterr().out
    assert not (tmp_path / "resources").exists()
