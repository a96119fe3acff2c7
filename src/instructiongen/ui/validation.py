"""Validation utilities for InstructionGen inputs."""

import logging

from instructiongen.core.config import InstructionGenConfig
from instructiongen.core.media import EncodingError, inspect_image
from instructiongen.core.session import AnalysisSession

logger = logging.getLogger(__name__)


class ValidationError(Exception):
    """User-friendly validation error.

    This exception is raised when user input fails validation.
    The message is intended to be displayed directly to the user.
    """

    pass


def validate_image_upload(
    data: bytes,
    declared_mime: str | None,
    filename: str,
    config: InstructionGenConfig,
) -> str:
    """Validate an uploaded image and resolve its mime type.

    Args:
        data: Raw bytes of the upload
        declared_mime: Mime type reported by the client, if any
        filename: Name of the uploaded file (for messages)
        config: Configuration holding the upload limits

    Returns:
        Resolved mime type

    Raises:
        ValidationError: If the file is too large, unreadable, or of a type
            the model service does not accept
    """
    name = filename or "upload"

    if len(data) > config.max_upload_bytes:
        raise ValidationError(
            f"{name} is too large ({len(data) / (1024 * 1024):.1f} MB). "
            f"Maximum is {config.max_upload_mb} MB."
        )

    try:
        mime_type = inspect_image(data, declared_mime)
    except EncodingError as e:
        raise ValidationError(f"{name}: {e}") from e

    if mime_type not in config.allowed_mime_types:
        logger.warning(f"Rejected upload {name} with type {mime_type}")
        raise ValidationError(
            f"{name} has unsupported type {mime_type}. "
            f"Supported types: {', '.join(config.allowed_mime_types)}"
        )

    return mime_type


def validate_can_add_edition(session: AnalysisSession, config: InstructionGenConfig) -> None:
    """Check that another edition may be added to the session.

    Raises:
        ValidationError: If there is no original image yet or the edition
            limit is reached
    """
    if session.original is None:
        raise ValidationError("Please upload the original photo first to enable edition uploads.")

    if len(session.editions) >= config.max_editions:
        raise ValidationError(
            f"A session can hold at most {config.max_editions} editions. "
            f"Remove one before adding another."
        )
