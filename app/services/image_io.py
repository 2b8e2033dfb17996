"""Image helpers used when accepting user photos."""

from __future__ import annotations

import io
from typing import Optional

from aiogram import Bot
from PIL import Image, UnidentifiedImageError


def detect_image_type(data: bytes) -> Optional[str]:
    """Return the MIME type of an image payload, or ``None`` if it is not one.

    Only the header is parsed; pixel data is never decoded.
    """

    if not data:
        return None
    try:
        with Image.open(io.BytesIO(data)) as image:
            format_hint = (image.format or "").upper()
    except (UnidentifiedImageError, OSError, ValueError):
        return None
    if not format_hint:
        return None
    return Image.MIME.get(format_hint) or f"image/{format_hint.lower()}"


def image_dimensions(data: bytes) -> Optional[tuple[int, int]]:
    """Return (width, height) of the payload when it can be parsed."""

    try:
        with Image.open(io.BytesIO(data)) as image:
            return image.size
    except (UnidentifiedImageError, OSError, ValueError):
        return None


async def download_telegram_file(bot: Bot, file_id: str) -> bytes:
    """Download a Telegram file into memory."""

    buffer = io.BytesIO()
    await bot.download(file_id, destination=buffer)
    return buffer.getvalue()


__all__ = ["detect_image_type", "image_dimensions", "download_telegram_file"]
