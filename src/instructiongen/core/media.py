"""Image encoding for model service requests.

The model service accepts images as inline parts: the raw bytes in a
text-safe encoding plus a mime type.  :func:`encode_image` produces that
:class:`EncodedPart` from an :class:`~instructiongen.core.session.UploadedImage`.
A fresh part is produced for every gateway call and never stored.

Uploads are checked with Pillow before they enter a session
(:func:`inspect_image`).  Only the header and structure are verified; no
pixel data is decoded or modified.
"""

import asyncio
import base64
import binascii
import io
import logging
import mimetypes
from dataclasses import dataclass
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from .session import UploadedImage

logger = logging.getLogger(__name__)

# Declared types that carry no information about the actual format.
_GENERIC_MIME_TYPES = {"", "application/octet-stream", "image/*"}


class EncodingError(Exception):
    """Raised when image bytes cannot be read or encoded."""


@dataclass(frozen=True)
class EncodedPart:
    """An image ready to be sent to the model service.

    Attributes
    ----------
    data : str
        Base64-encoded image bytes
    mime_type : str
        Image mime type
    """

    data: str
    mime_type: str

    def to_bytes(self) -> bytes:
        """Decode the payload back to raw bytes."""
        try:
            return base64.b64decode(self.data, validate=True)
        except (binascii.Error, ValueError) as e:
            raise EncodingError(f"Corrupt image payload: {e}") from e


def encode_image(image: UploadedImage) -> EncodedPart:
    """Encode an uploaded image for a model request.

    Args:
        image: Image held by the session

    Returns:
        EncodedPart with base64 data and the image's mime type

    Raises:
        EncodingError: If the image has no data or a non-image mime type
    """
    if not image.data:
        raise EncodingError(f"Image '{image.filename or image.id}' is empty")
    if not image.mime_type.startswith("image/"):
        raise EncodingError(
            f"Image '{image.filename or image.id}' has unsupported type {image.mime_type!r}"
        )
    return EncodedPart(
        data=base64.b64encode(image.data).decode("ascii"),
        mime_type=image.mime_type,
    )


def inspect_image(data: bytes, declared_mime: str | None = None) -> str:
    """Verify that bytes hold a readable image and resolve its mime type.

    The type Pillow detects from the bytes wins.  The declared type is only
    used when Pillow has no mime type for the detected format and the
    declaration is a concrete ``image/*`` type.

    Args:
        data: Raw bytes of the upload
        declared_mime: Mime type reported by the client, if any

    Returns:
        Resolved mime type

    Raises:
        EncodingError: If the bytes are empty or not a readable image
    """
    if not data:
        raise EncodingError("The uploaded file is empty")

    try:
        with Image.open(io.BytesIO(data)) as img:
            detected_format = img.format
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as e:
        raise EncodingError(f"The uploaded file is not a readable image: {e}") from e

    detected = Image.MIME.get(detected_format or "")
    if not detected:
        declared = (declared_mime or "").strip().lower()
        if declared not in _GENERIC_MIME_TYPES and declared.startswith("image/"):
            return declared
        raise EncodingError(f"Unsupported image format: {detected_format}")

    logger.debug(f"Resolved mime type {detected} (declared: {declared_mime!r})")
    return detected


def _read_file(path: Path) -> tuple[bytes, str | None]:
    guessed, _ = mimetypes.guess_type(path.name)
    return path.read_bytes(), guessed


async def read_image_file(path: str | Path) -> tuple[bytes, str]:
    """Read an image file from disk without blocking the event loop.

    Args:
        path: Path to the image file

    Returns:
        Tuple of (raw bytes, resolved mime type)

    Raises:
        EncodingError: If the file cannot be read or is not an image
    """
    path = Path(path)
    try:
        data, guessed = await asyncio.to_thread(_read_file, path)
    except OSError as e:
        raise EncodingError(f"Cannot read image file {path.name}: {e}") from e
    return data, inspect_image(data, guessed)
