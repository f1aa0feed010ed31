"""
Input photo handling.

Photos arrive either inline (base64, optionally as a ``data:`` URL) or as a
reference to an already uploaded file. Both forms are reduced to raw bytes
for moderation plus a reference the generation provider can fetch.
"""

import base64
import binascii
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from io import BytesIO
from urllib.parse import urlparse

import httpx
from PIL import Image

from core.exceptions import ValidationError

logger = logging.getLogger(__name__)


@dataclass
class ImageInput:
    """Validated input photo."""

    data: bytes
    mime_type: str
    reference: str  # URL or data URL handed to the provider


def sniff_mime_type(data: bytes) -> str:
    """
    Identify the image format from its bytes.

    Raises:
        ValidationError: If the bytes are not a readable image
    """
    try:
        with Image.open(BytesIO(data)) as img:
            fmt = img.format
    except (OSError, Image.DecompressionBombError):
        raise ValidationError(message="Uploaded file is not a valid image")

    mime_type = Image.MIME.get(fmt or "")
    if not mime_type:
        raise ValidationError(message=f"Unsupported image format: {fmt}")
    return mime_type


def decode_inline_image(value: str, max_bytes: int) -> ImageInput:
    """
    Decode a base64 photo, with or without a ``data:<mime>;base64,`` header.

    Raises:
        ValidationError: If the payload is empty, not base64, too large or
            not an image
    """
    payload = value.strip()
    if payload.startswith("data:"):
        _, _, payload = payload.partition(",")
    payload = "".join(payload.split())

    if not payload:
        raise ValidationError(message="Image data is empty")
    # Cheap upper bound before decoding
    if len(payload) * 3 // 4 > max_bytes + 3:
        raise ValidationError(
            message="Image is too large",
            details={"max_bytes": max_bytes},
        )

    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        raise ValidationError(message="Image data is not valid base64")

    if len(data) > max_bytes:
        raise ValidationError(message="Image is too large", details={"max_bytes": max_bytes})

    mime_type = sniff_mime_type(data)
    encoded = base64.b64encode(data).decode("ascii")
    return ImageInput(data=data, mime_type=mime_type, reference=f"data:{mime_type};base64,{encoded}")


def is_allowed_host(host: str | None, allowed_hosts: Sequence[str]) -> bool:
    """Exact match, or a subdomain of an entry written as ``.example.com``."""
    if not host:
        return False
    host = host.lower().rstrip(".")
    for allowed in allowed_hosts:
        allowed = allowed.lower().rstrip(".")
        if allowed.startswith("."):
            if host.endswith(allowed):
                return True
        elif host == allowed:
            return True
    return False


async def fetch_remote_image(
    url: str,
    max_bytes: int,
    allowed_hosts: Sequence[str] = (),
    timeout: float = 20.0,
    transport: httpx.AsyncBaseTransport | None = None,
) -> ImageInput:
    """
    Download a pre-uploaded photo once so it can be moderated.

    Only hosts in ``allowed_hosts`` are contacted and redirects are not
    followed, so a client cannot point the server at internal addresses.
    The body is streamed and abandoned as soon as it exceeds ``max_bytes``.
    The provider receives the original URL, not the downloaded bytes.

    Raises:
        ValidationError: If the URL is unusable, not allowed, unreachable,
            too large or not an image
    """
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValidationError(message="imageUrl must be an http(s) URL")
    if not is_allowed_host(parsed.hostname, allowed_hosts):
        logger.warning(f"Rejected imageUrl on unlisted host: {parsed.hostname}")
        raise ValidationError(
            message="imageUrl must point to the upload storage host",
            details={"host": parsed.hostname},
        )

    too_large = ValidationError(message="Image is too large", details={"max_bytes": max_bytes})
    buffer = bytearray()
    try:
        async with httpx.AsyncClient(
            timeout=timeout, follow_redirects=False, transport=transport
        ) as client:
            async with client.stream("GET", url) as response:
                if response.is_redirect:
                    raise ValidationError(message="imageUrl must not redirect")
                response.raise_for_status()

                declared = response.headers.get("Content-Length")
                if declared and declared.isdigit() and int(declared) > max_bytes:
                    raise too_large

                async for chunk in response.aiter_bytes():
                    buffer.extend(chunk)
                    if len(buffer) > max_bytes:
                        raise too_large
    except httpx.HTTPError as e:
        logger.warning(f"Failed to download input image {url}: {e}")
        raise ValidationError(message="Could not download imageUrl")

    data = bytes(buffer)
    if not data:
        raise ValidationError(message="Downloaded image is empty")

    return ImageInput(data=data, mime_type=sniff_mime_type(data), reference=url)
