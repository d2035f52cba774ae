from __future__ import annotations

import base64
import binascii
import io
import re
from dataclasses import dataclass
from typing import Optional

from fastapi import UploadFile
from PIL import Image, UnidentifiedImageError

from skintrack.errors import InvalidImagePayload


SUPPORTED_IMAGE_MIME = {"image/jpeg", "image/png", "image/webp"}

_PIL_FORMAT_TO_MIME = {
    "JPEG": "image/jpeg",
    "PNG": "image/png",
    "WEBP": "image/webp",
}

_DATA_URI_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?P<params>(;[^,;]*)*?);base64,(?P<data>.*)$", re.DOTALL)


@dataclass(frozen=True)
class ImagePayload:
    """Oracle-ready image: MIME type plus raw bytes. Never resized or re-encoded."""
    mime_type: str
    data: bytes

    @property
    def base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")

    def to_data_uri(self) -> str:
        return f"data:{self.mime_type};base64,{self.base64}"


def _mb_to_bytes(mb: int) -> int:
    return mb * 1024 * 1024


def _sniff_mime(data: bytes) -> str:
    """
    Decode-check the bytes with PIL and return the MIME type of the detected format.
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            fmt = img.format
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError):
        raise InvalidImagePayload("unprocessable_input", "Invalid or corrupted image")

    mime = _PIL_FORMAT_TO_MIME.get(fmt or "")
    if mime is None:
        raise InvalidImagePayload("unsupported_file_type", f"Unsupported image format={fmt}")
    return mime


def validate_image_bytes(data: bytes, *, mime_type: Optional[str] = None, max_mb: int = 10) -> ImagePayload:
    """
    Validate raw image bytes:
    - non-empty and under the size limit
    - decodable as an image (PIL verify, no pixel processing)
    - declared MIME type supported; sniffed when not declared
    """
    if not data:
        raise InvalidImagePayload("unprocessable_input", "Empty image payload")

    if len(data) > _mb_to_bytes(max_mb):
        raise InvalidImagePayload("payload_too_large", f"Image exceeds max size of {max_mb}MB")

    if mime_type is not None:
        mime_type = mime_type.strip().lower()
        if mime_type not in SUPPORTED_IMAGE_MIME:
            raise InvalidImagePayload("unsupported_file_type", f"Unsupported content_type={mime_type}")

    sniffed = _sniff_mime(data)
    return ImagePayload(mime_type=mime_type or sniffed, data=data)


def parse_image_payload(image: str, *, max_mb: int = 10) -> ImagePayload:
    """
    Accepts a data URI (data:image/png;base64,....) or a bare base64 string.
    The header is stripped; the MIME type comes from it or is sniffed from the bytes.
    """
    text = (image or "").strip()
    mime_type: Optional[str] = None

    m = _DATA_URI_RE.match(text)
    if m:
        mime_type = m.group("mime")
        text = m.group("data")
    elif text.startswith("data:"):
        raise InvalidImagePayload("unprocessable_input", "Malformed data URI (expected ;base64, payload)")

    try:
        data = base64.b64decode("".join(text.split()), validate=True)
    except (binascii.Error, ValueError):
        raise InvalidImagePayload("unprocessable_input", "Image payload is not valid base64")

    return validate_image_bytes(data, mime_type=mime_type, max_mb=max_mb)


async def load_upload_payload(file: UploadFile, *, max_mb: int = 10) -> ImagePayload:
    """
    Read an uploaded image into an ImagePayload.
    The header content_type is only trusted when it names a supported image type.
    """
    content_type = (file.content_type or "").lower() or None
    if content_type is not None and content_type not in SUPPORTED_IMAGE_MIME:
        if content_type != "application/octet-stream":
            raise InvalidImagePayload("unsupported_file_type", f"Unsupported content_type={content_type}")
        content_type = None

    data = await file.read()
    return validate_image_bytes(data, mime_type=content_type, max_mb=max_mb)
