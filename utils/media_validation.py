"""Validation helpers for uploaded and stored leaf images."""

import base64
import re

from fastapi import HTTPException, UploadFile

from models.analysis_record import ImagePayload
from models.errors import ParseError

ALLOWED_IMAGE_TYPES = {
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/webp",
    "image/gif",
    "image/heic",
    "image/heif",
}

_DATA_URL_PATTERN = re.compile(r"^data:(image/.*?);base64,(.*)$", re.DOTALL)
_BASE64_PATTERN = re.compile(r"^[A-Za-z0-9+/]+={0,2}$")


def is_base64_text(text: str) -> bool:
    """Return True if ``text`` only contains base64 alphabet characters."""
    return bool(_BASE64_PATTERN.match(text))


def ensure_base64_image(raw: bytes) -> str:
    """Return the upload as a base64 string, encoding binary input when necessary."""
    try:
        text = raw.decode("ascii").strip()
    except UnicodeDecodeError:
        return base64.b64encode(raw).decode("ascii")
    if is_base64_text(text):
        return text
    return base64.b64encode(raw).decode("ascii")


def validate_image_file(image_file: UploadFile) -> str:
    """Return the normalized content type of an uploaded image.

    Raises:
        HTTPException: 415 when the content type is not a supported image type.
    """
    content_type = (image_file.content_type or "").lower().split(";", 1)[0].strip()
    if content_type not in ALLOWED_IMAGE_TYPES:
        raise HTTPException(
            status_code=415, detail=f"Unsupported image content type: {image_file.content_type}"
        )
    return "image/jpeg" if content_type == "image/jpg" else content_type


async def read_image_payload(image_file: UploadFile) -> ImagePayload:
    """Read a validated upload into an ImagePayload, rejecting empty files."""
    mime_type = validate_image_file(image_file)
    raw = await image_file.read()
    if not raw:
        raise HTTPException(status_code=400, detail="Uploaded image is empty.")
    return ImagePayload(mime_type=mime_type, base64=ensure_base64_image(raw))


def parse_image_data_url(data_url: str) -> ImagePayload:
    """Split a stored ``data:image/...;base64,...`` URL into an ImagePayload.

    Raises:
        ParseError: If the URL is not an image data URL or the payload is not base64 text.
    """
    match = _DATA_URL_PATTERN.match(data_url or "")
    if not match or not is_base64_text(match.group(2)):
        raise ParseError("Could not parse image data from history for translation.")
    return ImagePayload(mime_type=match.group(1), base64=match.group(2))


def decode_image(image: ImagePayload) -> bytes:
    """Return the raw image bytes for redisplay.

    Raises:
        ParseError: If the payload does not decode as base64.
    """
    padded = image.base64 + "=" * (-len(image.base64) % 4)
    try:
        return base64.b64decode(padded)
    except ValueError as exc:
        raise ParseError("Stored image data is not valid base64.") from exc
