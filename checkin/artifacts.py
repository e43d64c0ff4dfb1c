"""
QR code check-in artifacts.
"""

import asyncio
import re
from dataclasses import dataclass
from io import BytesIO
from typing import Any, Optional, Tuple
from urllib.parse import quote

import qrcode
from PIL import Image, ImageDraw, ImageFont

from .entries import EntryStore
from .errors import EntryNotFound

# Characters that would break a quoted header parameter or a file path
_HEADER_UNSAFE = re.compile(r'[\x00-\x1f\x7f"\\/;]')
_ASCII_UNSAFE = re.compile(r"[^A-Za-z0-9._-]+")

_DEFAULT_FONTS = ("DejaVuSans-Bold.ttf", "Arial Bold.ttf", "arialbd.ttf")


@dataclass(frozen=True)
class QRArtifact:
    """A rendered check-in QR code for one entry."""

    entry_id: int
    url: str
    png: bytes
    filename: str
    content_disposition: str


def scan_url(base_origin: str, entry_id: int) -> str:
    """
    Build the URL a scanner should open for an entry.

    @param base_origin: Scheme and host the client used, e.g. "https://board.example"
    @param entry_id: Entry id
    @return: "{base_origin}/scan/{entry_id}"
    """
    return f"{base_origin.rstrip('/')}/scan/{entry_id}"


def content_disposition_for(name: str) -> Tuple[str, str]:
    """
    Build a download filename and Content-Disposition header for an entry name.

    @param name: Entry display name
    @return: Tuple of (ASCII filename, header value)
    """
    cleaned = _HEADER_UNSAFE.sub("", name).strip() or "entry"
    ascii_name = _ASCII_UNSAFE.sub("_", cleaned).strip("_") or "entry"

    filename = f"qr-{ascii_name}.png"
    utf8_filename = quote(f"qr-{cleaned}.png", safe="")
    header = f"inline; filename=\"{filename}\"; filename*=UTF-8''{utf8_filename}"
    return filename, header


class QRArtifactGenerator:
    """Renders PNG QR codes pointing at an entry's scan URL."""

    def __init__(
        self,
        entries: EntryStore,
        config: Any,
    ) -> None:
        self.entries = entries
        self.qr_size = config.get("artifact", "qr_size")
        self.margin = config.get("artifact", "margin")
        self.name_height = config.get("artifact", "name_height")
        self.padding = config.get("artifact", "padding")
        self.show_name = config.get("artifact", "show_name") is True
        self.font_path = config.get("artifact", "font_path") or ""
        self.font_size = config.get("artifact", "font_size")
        self._font: Optional[Any] = None

    def _load_font(self) -> Any:
        if self._font is not None:
            return self._font

        candidates = (self.font_path,) if self.font_path else _DEFAULT_FONTS
        for candidate in candidates:
            try:
                self._font = ImageFont.truetype(candidate, self.font_size)
                return self._font
            except OSError:
                continue

        if self.font_path:
            print(f"Could not load font {self.font_path}, using Pillow default")
        self._font = ImageFont.load_default(size=self.font_size)
        return self._font

    def _render_qr(self, url: str) -> Image.Image:
        qr = qrcode.QRCode(
            error_correction=qrcode.constants.ERROR_CORRECT_M,
            box_size=10,
            border=self.margin,
        )
        qr.add_data(url)
        qr.make(fit=True)

        buf = BytesIO()
        qr.make_image(fill_color="black", back_color="white").save(buf)
        buf.seek(0)

        with Image.open(buf) as img:
            return img.convert("RGB").resize(
                (self.qr_size, self.qr_size), Image.Resampling.NEAREST
            )

    def _fit_text(self, draw: ImageDraw.ImageDraw, text: str, font: Any) -> str:
        max_width = self.qr_size - 2 * self.padding
        fitted = text

        while fitted:
            left, _, right, _ = draw.textbbox((0, 0), fitted, font=font)
            if right - left <= max_width:
                return fitted
            fitted = fitted[:-2] + "…" if len(fitted) > 2 else fitted[:-1]
        return fitted

    def render_png(self, url: str, name: Optional[str] = None) -> bytes:
        """
        Render a QR code for a URL, optionally with a name caption.

        @param url: URL to encode
        @param name: Caption drawn beneath the code, None for code only
        @return: PNG bytes
        """
        qr_image = self._render_qr(url)

        if name is None or not self.show_name:
            canvas = qr_image
        else:
            total_height = self.qr_size + self.name_height + self.padding
            canvas = Image.new("RGB", (self.qr_size, total_height), "#ffffff")
            canvas.paste(qr_image, (0, 0))

            draw = ImageDraw.Draw(canvas)
            font = self._load_font()
            caption = self._fit_text(draw, name, font)

            left, top, right, bottom = draw.textbbox((0, 0), caption, font=font)
            x = (self.qr_size - (right - left)) / 2 - left
            y = (
                self.qr_size
                + self.padding / 2
                + (self.name_height - (bottom - top)) / 2
                - top
            )
            draw.text((x, y), caption, fill="#000000", font=font)

        out = BytesIO()
        canvas.save(out, format="PNG")
        return out.getvalue()

    async def generate(
        self,
        entry_id: int,
        base_origin: str,
    ) -> QRArtifact:
        """
        Generate the check-in QR code for an entry.

        @param entry_id: Entry id
        @param base_origin: Scheme and host taken from the inbound request
        @return: Rendered artifact with its URL and suggested filename
        """
        entry = await self.entries.get_by_id(entry_id)
        if entry is None:
            raise EntryNotFound(entry_id)

        url = scan_url(base_origin, entry.id)
        png = await asyncio.to_thread(self.render_png, url, entry.name)
        filename, disposition = content_disposition_for(entry.name)

        return QRArtifact(
            entry_id=entry.id,
            url=url,
            png=png,
            filename=filename,
            content_disposition=disposition,
        )
