from __future__ import annotations

import io

from PIL import Image, ImageDraw, ImageFont

FONT_SIZE = 24
BACKGROUND = (255, 255, 255)
FOREGROUND = (255, 0, 0)


class PlaceholderImageGenerator:
    """Renders a single line of red text on white, cropped to the text."""

    def __init__(self, font_size: int = FONT_SIZE) -> None:
        self.font_size = font_size
        self._font: ImageFont.FreeTypeFont | ImageFont.ImageFont | None = None

    @property
    def font(self) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
        if self._font is None:
            self._font = ImageFont.load_default(size=self.font_size)
        return self._font

    def render(self, label: str) -> bytes:
        if not label:
            raise ValueError("Placeholder label must not be empty")
        probe = ImageDraw.Draw(Image.new("RGB", (1, 1)))
        left, top, right, bottom = probe.textbbox((0, 0), label, font=self.font)
        width = max(1, right - min(left, 0))
        height = max(1, bottom - min(top, 0))

        image = Image.new("RGB", (width, height), BACKGROUND)
        draw = ImageDraw.Draw(image)
        draw.fontmode = "L"
        draw.text((-min(left, 0), -min(top, 0)), label, font=self.font, fill=FOREGROUND)

        out = io.BytesIO()
        image.save(out, format="PNG", optimize=False)
        return out.getvalue()
