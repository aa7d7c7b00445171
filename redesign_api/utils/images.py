"""
Inline image handling: data-URL codec and upload validation.

No pixels are transformed here; Pillow is only used to confirm that uploaded
bytes are a readable PNG/JPEG/WEBP image and to recover its mime type.
"""
import base64
import binascii
import io
import logging
from dataclasses import dataclass
from typing import Optional

from PIL import Image, UnidentifiedImageError

from redesign_api.core.errors import invalid_request_error

logger = logging.getLogger(__name__)

# Pillow format name -> mime type
FORMAT_MIME_TYPES = {
    "PNG": "image/png",
    "JPEG": "image/jpeg",
    "WEBP": "image/webp",
}

DEFAULT_MIME_TYPE = "image/png"


@dataclass(frozen=True)
class InlineImage:
    """Binary image data together with its encoding"""

    data: bytes
    mime_type: str = DEFAULT_MIME_TYPE

    def to_base64(self) -> str:
        return base64.b64encode(self.data).decode("utf-8")

    def to_data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.to_base64()}"

    @classmethod
    def from_data_url(cls, value: str) -> "InlineImage":
        """
        Decode a ``data:<mime>;base64,<payload>`` URL or a bare base64 string.

        A bare payload has its mime type sniffed from the bytes.
        """
        if not value:
            raise invalid_request_error("image data is required")

        mime_type: Optional[str] = None
        payload = value.strip()
        if payload.startswith("data:"):
            header, _, payload = payload.partition(",")
            mime_type = header[len("data:") :].split(";")[0] or None

        try:
            data = base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as e:
            raise invalid_request_error(f"image data is not valid base64: {e}")

        if not data:
            raise invalid_request_error("image data is empty")

        return cls(data=data, mime_type=mime_type or sniff_mime_type(data) or DEFAULT_MIME_TYPE)

    def __repr__(self) -> str:
        return f"InlineImage(mime_type={self.mime_type!r}, size={len(self.data)})"


def sniff_mime_type(data: bytes) -> Optional[str]:
    """Recognise PNG/JPEG/WEBP magic bytes"""
    if data.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if data.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    return None


def load_uploaded_image(data: bytes, max_size: int, allowed_types: list) -> InlineImage:
    """Validate an uploaded room photo and wrap it as an InlineImage"""
    if not data:
        raise invalid_request_error("Uploaded file is empty")
    if len(data) > max_size:
        raise invalid_request_error(f"Uploaded file exceeds the {max_size // (1024 * 1024)}MB limit")

    try:
        with Image.open(io.BytesIO(data)) as image:
            image_format = image.format
            image.verify()
    except (UnidentifiedImageError, OSError, SyntaxError) as e:
        logger.warning(f"Rejected upload that Pillow could not read: {e}")
        raise invalid_request_error("File must be a PNG, JPEG or WEBP image")

    mime_type = FORMAT_MIME_TYPES.get(image_format or "")
    if mime_type is None or mime_type not in allowed_types:
        raise invalid_request_error(f"Unsupported image type: {image_format}")

    return InlineImage(data=data, mime_type=mime_type)
