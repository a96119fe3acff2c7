"""Gemini model gateway.

This module provides :class:`ModelGateway`, the only place that talks to the
external vision-language model.  It exposes the two calls an analysis needs:

- :meth:`ModelGateway.generate_caption` describes the original image.  Any
  failure is raised as :class:`ServiceError` (or
  :class:`~instructiongen.core.media.EncodingError` for unreadable images)
  because a missing caption aborts the whole run.
- :meth:`ModelGateway.generate_diff_instructions` describes one edition
  relative to the original.  It never raises: on any failure it logs the
  error and returns :data:`DIFF_FAILURE_TEXT`, so one bad edition never
  affects the others.

Client Lifecycle
----------------
The ``google-genai`` client is created lazily on the first call, from the
API key in :class:`~instructiongen.core.config.InstructionGenConfig`.  A
missing or invalid key therefore surfaces as a :class:`ServiceError` during
that first call rather than at import or startup time.

Timeouts and Retries
--------------------
Each call performs one request by default, bounded only by the transport's
own timeout.  ``config.request_timeout`` wraps every attempt in
``asyncio.wait_for`` and ``config.max_retries`` adds further attempts.
Exhausting either is reported exactly like any other service failure.

Usage
-----
::

    from instructiongen.core.config import config
    from instructiongen.core.gateway import ModelGateway

    gateway = ModelGateway(config)
    caption = await gateway.generate_caption(session.original)
    text = await gateway.generate_diff_instructions(session.original, edition, 1)
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from google import genai
from google.genai import errors, types

from .config import InstructionGenConfig
from .media import EncodedPart, EncodingError, encode_image
from .prompts import (
    EDITION_IMAGE_LABEL,
    ORIGINAL_IMAGE_LABEL,
    caption_prompt,
    diff_instruction_prompt,
)
from .session import UploadedImage

logger = logging.getLogger(__name__)

EMPTY_CAPTION_TEXT = "No description generated."
EMPTY_DIFF_TEXT = "No instructions generated."
DIFF_FAILURE_TEXT = "Failed to generate instructions for this edition."


class ServiceError(Exception):
    """Raised when the model service call fails.

    Attributes:
        message: Human-readable description of the failure
        code: HTTP status code reported by the service, if any
    """

    def __init__(self, message: str, code: int | None = None):
        super().__init__(message)
        self.message = message
        self.code = code


def _to_part(part: EncodedPart) -> types.Part:
    return types.Part.from_bytes(data=part.to_bytes(), mime_type=part.mime_type)


class ModelGateway:
    """Sends image analysis requests to Gemini.

    Attributes:
        _config (InstructionGenConfig):
            Model id, API key, timeout and retry settings.
        _client:
            ``genai.Client`` instance, created on first use unless injected.
    """

    def __init__(self, config: InstructionGenConfig, client: Any | None = None) -> None:
        """Initialise the gateway.

        Args:
            config: Application configuration
            client: Pre-built ``genai.Client`` (mainly for tests).  When
                omitted, one is created from ``config.gemini_api_key`` on
                the first call.
        """
        self._config = config
        self._client = client

    @property
    def model_id(self) -> str:
        return self._config.model_id

    # -- Public interface ---------------------------------------------------

    async def generate_caption(self, image: UploadedImage) -> str:
        """Generate a neutral description of the original image.

        Args:
            image: The original image

        Returns:
            Generated description text

        Raises:
            ServiceError: If the model call fails
            EncodingError: If the image cannot be encoded
        """
        contents = [_to_part(encode_image(image)), caption_prompt()]

        logger.info(f"Requesting caption for {image.filename or image.id}")
        text = await self._generate(contents)
        return text or EMPTY_CAPTION_TEXT

    async def generate_diff_instructions(
        self, original: UploadedImage, edition: UploadedImage, position: int
    ) -> str:
        """Generate imperative edit instructions for one edition.

        This call contains its own failures: whatever goes wrong, the result
        is a string.

        Args:
            original: The original image
            edition: The edition to describe
            position: 1-based position of the edition

        Returns:
            Generated instructions, or DIFF_FAILURE_TEXT on failure
        """
        try:
            contents = [
                _to_part(encode_image(original)),
                ORIGINAL_IMAGE_LABEL,
                _to_part(encode_image(edition)),
                EDITION_IMAGE_LABEL,
                diff_instruction_prompt(position),
            ]
            logger.info(f"Requesting instructions for edition {position} ({edition.id})")
            text = await self._generate(contents)
        except (ServiceError, EncodingError) as e:
            logger.error(f"Error analyzing edition {position}: {e}")
            return DIFF_FAILURE_TEXT
        except Exception as e:
            logger.error(f"Unexpected error analyzing edition {position}: {e}", exc_info=True)
            return DIFF_FAILURE_TEXT

        return text or EMPTY_DIFF_TEXT

    # -- Internals ----------------------------------------------------------

    def _get_client(self) -> Any:
        """Return the Gemini client, creating it on first use.

        Raises:
            ServiceError: If no API key is configured or the client cannot
                be created
        """
        if self._client is not None:
            return self._client

        if not self._config.gemini_api_key:
            raise ServiceError("Gemini API key not configured")

        try:
            self._client = genai.Client(api_key=self._config.gemini_api_key)
        except Exception as e:
            raise ServiceError(f"Failed to initialize Gemini client: {e}") from e

        logger.info(f"Gemini client initialised for model {self._config.model_id}")
        return self._client

    async def _generate(self, contents: list) -> str:
        """Run one generate_content request, honouring timeout and retries.

        Returns:
            Response text (empty string if the model returned none)

        Raises:
            ServiceError: If every attempt fails
        """
        client = self._get_client()
        attempts = self._config.max_retries + 1
        last_error: ServiceError | None = None

        for attempt in range(1, attempts + 1):
            try:
                request = client.aio.models.generate_content(
                    model=self._config.model_id,
                    contents=contents,
                )
                if self._config.request_timeout is not None:
                    response = await asyncio.wait_for(request, timeout=self._config.request_timeout)
                else:
                    response = await request
                return (response.text or "").strip()
            except asyncio.TimeoutError:
                last_error = ServiceError(
                    f"Model call timed out after {self._config.request_timeout}s"
                )
            except errors.APIError as e:
                last_error = ServiceError(f"{e.status or 'APIError'}: {e.message}", code=e.code)
            except Exception as e:
                last_error = ServiceError(f"{type(e).__name__}: {e}")

            if attempt < attempts:
                logger.warning(
                    f"Model call failed (attempt {attempt}/{attempts}): {last_error.message}"
                )

        raise last_error
