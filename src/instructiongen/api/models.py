"""Pydantic response models for the InstructionGen API.

These models define the JSON schema of the session endpoints.  FastAPI uses
them for serialisation and OpenAPI documentation generation.

Uploads arrive as multipart form data (``UploadFile``), so there are no
request-body models.

Models
------
ImageInfo
    Metadata of one uploaded image, including the URL its bytes are served
    from.
SessionResponse
    Full view of a session: images, analysis status, and results.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from instructiongen.core.session import AnalysisSession, AnalysisStatus, UploadedImage


class ImageInfo(BaseModel):
    """Metadata for an uploaded image.

    Attributes:
        id: ``"original"`` or the edition id.
        filename: Name of the uploaded file.
        mime_type: Resolved image mime type.
        size: Size of the image in bytes.
        url: Path the raw image is served from (preview).
        position: 1-based edition position; ``None`` for the original.
    """

    id: str
    filename: str = ""
    mime_type: str
    size: int
    url: str
    position: int | None = None

    @classmethod
    def from_image(
        cls, session_id: str, image: UploadedImage, position: int | None = None
    ) -> ImageInfo:
        return cls(
            id=image.id,
            filename=image.filename,
            mime_type=image.mime_type,
            size=image.size,
            url=f"/api/sessions/{session_id}/images/{image.id}",
            position=position,
        )


class SessionResponse(BaseModel):
    """View of a session returned by every session endpoint.

    Attributes:
        id: Session identifier.
        status: Current analysis status.
        can_analyze: Whether an analysis could be started now.
        original: The original image, if uploaded.
        editions: Editions in upload order.
        original_description: Caption from the last successful run.
        edition_results: Generated instructions keyed by edition id.
        error_message: Message of the last failed run.
    """

    id: str
    status: AnalysisStatus
    can_analyze: bool
    original: ImageInfo | None = None
    editions: list[ImageInfo] = Field(default_factory=list)
    original_description: str = ""
    edition_results: dict[str, str] = Field(default_factory=dict)
    error_message: str = ""

    @classmethod
    def from_session(cls, session: AnalysisSession) -> SessionResponse:
        return cls(
            id=session.id,
            status=session.status,
            can_analyze=session.can_analyze,
            original=(
                ImageInfo.from_image(session.id, session.original) if session.original else None
            ),
            editions=[
                ImageInfo.from_image(session.id, edition, position)
                for position, edition in enumerate(session.editions, start=1)
            ],
            original_description=session.original_description,
            edition_results=dict(session.edition_results),
            error_message=session.error_message,
        )
