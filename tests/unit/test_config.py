from pathlib import Path

import pytest

from reslocal.core.config import (
    RunConfig,
    build_remote_host,
    default_tries,
    parse_host_spec,
)
from reslocal.core.errors import ConfigurationError


@pytest.mark.parametrize(
    "spec, expected",
    [
        ("fetcher.example.net", ("fetcher.example.net", 22)),
        ("fetcher.example.net:2222", ("fetcher.example.net", 2222)),
        ("10.0.0.5:22", ("10.0.0.5", 22)),
    ],
)
def test_parse_host_spec(spec: str, expected: tuple[str, int]) -> None:
    assert parse_host_spec(spec) == expected


@pytest.mark.parametrize("spec", ["", ":22", "host:abc", "host:70000"])
def test_parse_host_spec_rejects_invalid(spec: str) -> None:
    with pytest.raises(ConfigurationError):
        parse_host_spec(spec)


def test_remote_host_requires_host_and_user(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RESLOCAL_SSH_PASSWORD", "from-env")
    assert build_remote_host(None, "user") is None
    assert build_remote_host("host", None) is None

    remote = build_remote_host("host:2200", "user")
    assert remote is not None
    assert remote.port == 2200
    assert remote.password == "from-env"
    assert remote.connection_string == "user@host:2200"


def test_validate_rejects_bad_values(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError):
        RunConfig(tries=0).validate()
    with pytest.raises(ConfigurationError):
        RunConfig(timeout_seconds=0).validate()
    with pytest.raises(ConfigurationError):
        RunConfig(state_backend="redis").validate()
    with pytest.raises(ConfigurationError):
        RunConfig(remote=build_remote_host("host", "user", key_file=tmp_path / "missing")).validate()
    assert RunConfig().validate().tries == 3


def test_env_defaults_ignore_invalid_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RESLOCAL_TRIES", "5")
    assert default_tries() == 5
    monkeypatch.setenv("RESLOCAL_TRIES", "-2")
    assert default_tries() == 3
    monkeypatch.setenv("RESLOCAL_TRIES", "many")
    assert default_tries() == 3
