"""Load screenshots from disk as base64 inline attachments."""

from __future__ import annotations

import asyncio
import base64
import mimetypes
import sys
from pathlib import Path

from sightline.models import EncodedImage


def encode_image(path: str) -> EncodedImage:
    p = Path(path)
    mime = mimetypes.guess_type(str(p))[0] or "image/png"
    data = base64.b64encode(p.read_bytes()).decode("ascii")
    return EncodedImage(path=str(p), mime_type=mime, data=data)


def _try_encode(path: str) -> EncodedImage | None:
    try:
        return encode_image(path)
    except OSError as exc:
        print(f"Skipping unreadable screenshot {path}: {exc}", file=sys.stderr)
        return None


async def load_images(paths: list[str]) -> list[EncodedImage]:
    """Read and encode every path in worker threads, keeping input order.

    Unreadable or empty files are skipped with a warning.
    """
    results = await asyncio.gather(*(asyncio.to_thread(_try_encode, p) for p in paths))
    images = []
    for image in results:
        if image is None:
            continue
        if not image.data:
            print(f"Skipping empty screenshot {image.path}", file=sys.stderr)
            continue
        images.append(image)
    return images
