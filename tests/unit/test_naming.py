from pathlib import Path

import pytest

from reslocal.core.naming import (
    base_location_for,
    download_path_for,
    error_asset_label,
    error_asset_name,
    is_downloaded_name,
    is_error_asset_reference,
    original_path_for,
    resource_subpath,
    sanitize_path,
)


@pytest.mark.parametrize(
    "host, path, expected",
    [
        ("example.com", "/a.png", "example.com_a.png"),
        ("example.com", "/img/logo.png", "example.com_img/logo.png"),
        ("example.com", "", "example.com"),
        ("example.com", "/", "example.com"),
        ("example.com", "/a b+c.png", "example.com_a_b_c.png"),
        ("example.ru", "/картинки/кот.jpg", "example.ru_картинки/кот.jpg"),
        ("example.com", "/x/../../etc/passwd", "example.com_x/__/__/etc/passwd"),
    ],
)
def test_resource_subpath(host: str, path: str, expected: str) -> None:
    assert resource_subpath(host, path) == expected


def test_sanitize_keeps_allowed_characters() -> None:
    assert sanitize_path("/a%20b_c.d-e\\f/g") == "/a%20b_c.d-e\\f/g"
    assert sanitize_path("/a:b*c?d") == "/a_b_c_d"
    assert sanitize_path("/v1..2/file..name") == "/v1..2/file..name"


def test_base_location_is_sibling_resources_dir() -> None:
    assert base_location_for("/docs/site/index.html") == Path("/docs/site/resources")


def test_error_asset_names_and_labels() -> None:
    assert error_asset_name(404) == "err404.png"
    assert error_asset_name(-1) == "errNO_RESP.png"
    assert error_asset_label(503) == "ERR 503"
    assert error_asset_label(-2) == "ERR NO RESP"


def test_error_asset_reference_detection() -> None:
    assert is_error_asset_reference("resources/err404.png")
    assert is_error_asset_reference("resources/errNO_RESP.png")
    assert not is_error_asset_reference("resources/errors.example.com_x.png")
    assert not is_error_asset_reference("https://example.com/err404.png")


def test_download_naming_round_trip() -> None:
    source = Path("/docs/page.html")
    downloaded = download_path_for(source)
    assert downloaded == Path("/docs/page_dl.html")
    assert is_downloaded_name(downloaded)
    assert not is_downloaded_name(source)
    assert original_path_for(downloaded) == source
    assert original_path_for(source) == source
