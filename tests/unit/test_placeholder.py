from __future__ import annotations

import io

import pytest
from PIL import Image

from reslocal.infrastructure.images.placeholder import BACKGROUND, FOREGROUND, PlaceholderImageGenerator


def _open(data: bytes) -> Image.Image:
    image = Image.open(io.BytesIO(data))
    image.load()
    return image.convert("RGB")


def test_render_produces_png_with_red_text_on_white() -> None:
    data = PlaceholderImageGenerator().render("ERR 404")

    assert data.startswith(b"\x89PNG\r\n\x1a\n")
    image = _open(data)
    assert image.width > image.height > 0
    assert image.getpixel((0, 0)) == BACKGROUND
    assert FOREGROUND in set(image.getdata())


def test_render_is_deterministic() -> None:
    generator = PlaceholderImageGenerator()
    assert generator.render("ERR NO RESP") == generator.render("ERR NO RESP")


def test_longer_label_gives_wider_image() -> None:
    generator = PlaceholderImageGenerator()
    short = _open(generator.render("ERR 1"))
    long = _open(generator.render("ERR NO RESP"))
    assert long.width > short.width


def test_empty_label_is_rejected() -> None:
    with pytest.raises(ValueError):
        PlaceholderImageGenerator().render("")
