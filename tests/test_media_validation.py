import base64
import io

import pytest
from fastapi import HTTPException, UploadFile
from starlette.datastructures import Headers

from models.analysis_record import ImagePayload
from models.errors import ParseError
from utils.media_validation import (
    decode_image,
    ensure_base64_image,
    parse_image_data_url,
    read_image_payload,
)

PNG_BYTES = b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR"


def make_upload(content: bytes, content_type: str) -> UploadFile:
    return UploadFile(
        file=io.BytesIO(content),
        filename="leaf.png",
        headers=Headers({"content-type": content_type}),
    )


def test_parse_data_url_splits_mime_and_payload():
    assert parse_image_data_url("data:image/png;base64,AAA") == ImagePayload(mime_type="image/png", base64="AAA")


@pytest.mark.parametrize(
    "data_url",
    [
        "",
        "https://example.com/leaf.png",
        "data:text/plain;base64,AAAA",
        "data:image/png,AAAA",
        "data:image/png;base64,",
        "data:image/png;base64,not base64!",
    ],
)
def test_parse_data_url_rejects_malformed(data_url):
    with pytest.raises(ParseError):
        parse_image_data_url(data_url)


def test_ensure_base64_encodes_binary_uploads():
    assert ensure_base64_image(PNG_BYTES) == base64.b64encode(PNG_BYTES).decode("ascii")


def test_ensure_base64_keeps_base64_text():
    encoded = base64.b64encode(PNG_BYTES)
    assert ensure_base64_image(encoded + b"\n") == encoded.decode("ascii")


def test_decode_image_returns_original_bytes():
    image = ImagePayload(mime_type="image/png", base64=base64.b64encode(PNG_BYTES).decode("ascii"))
    assert decode_image(image) == PNG_BYTES


async def test_read_image_payload_accepts_png_upload():
    payload = await read_image_payload(make_upload(PNG_BYTES, "image/png"))

    assert payload.mime_type == "image/png"
    assert base64.b64decode(payload.base64) == PNG_BYTES


async def test_read_image_payload_normalizes_jpg_type():
    payload = await read_image_payload(make_upload(PNG_BYTES, "image/jpg"))
    assert payload.mime_type == "image/jpeg"


async def test_read_image_payload_rejects_non_image():
    with pytest.raises(HTTPException) as excinfo:
        await read_image_payload(make_upload(b"hello", "text/plain"))
    assert excinfo.value.status_code == 415


async def test_read_image_payload_rejects_empty_file():
    with pytest.raises(HTTPException) as excinfo:
        await read_image_payload(make_upload(b"", "image/png"))
    assert excinfo.value.status_code == 400
