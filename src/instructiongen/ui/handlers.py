"""Event handlers for Gradio UI components.

Every handler takes the user's :class:`AnalysisSession` (held in
``gr.State``) as its last input and returns the refreshed view followed by
the session, in the order of :data:`VIEW_OUTPUTS`.
"""

import io
import logging
from pathlib import Path

import gradio as gr
from PIL import Image

from instructiongen.core.config import config
from instructiongen.core.gateway import ModelGateway
from instructiongen.core.media import EncodingError, read_image_file
from instructiongen.core.orchestrator import AnalysisOrchestrator
from instructiongen.core.report import build_report, edition_label
from instructiongen.core.session import AnalysisSession, AnalysisStatus, SessionError

from .validation import ValidationError, validate_can_add_edition, validate_image_upload

logger = logging.getLogger(__name__)

# Order of the values every handler returns
VIEW_OUTPUTS = ("gallery", "edition_selector", "status", "results", "analyze_button", "session")

_orchestrator: AnalysisOrchestrator | None = None


def get_orchestrator() -> AnalysisOrchestrator:
    """Return the shared orchestrator, creating it on first use."""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = AnalysisOrchestrator(ModelGateway(config))
    return _orchestrator


def _preview(data: bytes) -> Image.Image:
    image = Image.open(io.BytesIO(data))
    image.load()
    return image


def gallery_items(session: AnalysisSession) -> list[tuple[Image.Image, str]]:
    """Build (image, caption) pairs for the gallery, original first."""
    items = []
    if session.original is not None:
        items.append((_preview(session.original.data), "Original"))
    for position, edition in enumerate(session.editions, start=1):
        items.append((_preview(edition.data), edition_label(position)))
    return items


def edition_choices(session: AnalysisSession) -> list[str]:
    return [edition_label(position) for position in range(1, len(session.editions) + 1)]


def status_text(session: AnalysisSession) -> str:
    """Short markdown line describing what the user can do next."""
    if session.status == AnalysisStatus.ANALYZING:
        return "⏳ Analyzing images..."
    if session.status == AnalysisStatus.COMPLETE:
        return "✅ Analysis complete."
    if session.status == AnalysisStatus.ERROR:
        return "❌ Analysis failed."
    if session.original is None:
        return "Upload the original photo to get started."
    if not session.editions:
        return "Add at least one edition to generate instructions."
    return f"Ready to analyze {len(session.editions)} edition(s)."


def render(session: AnalysisSession, message: str | None = None) -> tuple:
    """Render the full view of a session.

    Args:
        session: Session to render
        message: Replaces the status line when given (e.g. validation errors)

    Returns:
        Values in the order of VIEW_OUTPUTS
    """
    choices = edition_choices(session)
    return (
        gallery_items(session),
        gr.update(choices=choices, value=None),
        message if message is not None else status_text(session),
        build_report(session),
        gr.update(interactive=session.can_analyze),
        session,
    )


def _error_message(e: Exception | str) -> str:
    return f"❌ **Validation Error**\n\n{str(e)}"


async def _load_upload(path: str) -> tuple[bytes, str, str]:
    """Read and validate an uploaded file.

    Returns:
        Tuple of (raw bytes, mime type, filename)
    """
    filename = Path(path).name
    try:
        data, mime_type = await read_image_file(path)
    except EncodingError as e:
        raise ValidationError(f"{filename}: {e}") from e
    mime_type = validate_image_upload(data, mime_type, filename, config)
    return data, mime_type, filename


async def upload_original(path: str | None, session: AnalysisSession) -> tuple:
    """Set or replace the original image from an uploaded file.

    Args:
        path: Temp file path from the image upload component (None when cleared)
        session: User session

    Returns:
        Values in the order of VIEW_OUTPUTS
    """
    if not path:
        return render(session)

    try:
        data, mime_type, filename = await _load_upload(path)
        session.set_original(data, mime_type, filename)
    except (ValidationError, SessionError) as e:
        logger.warning(f"Original upload rejected: {e}")
        return render(session, _error_message(e))

    logger.info(f"Original image set: {filename} ({mime_type})")
    return render(session)


def remove_original(session: AnalysisSession) -> tuple:
    """Remove the original image; editions are kept."""
    try:
        session.remove_original()
    except SessionError as e:
        return render(session, _error_message(e))
    return render(session)


async def add_editions(paths: list[str] | None, session: AnalysisSession) -> tuple:
    """Add one edition per uploaded file.

    Files are processed in order.  A file that fails validation is skipped
    and reported; the others are still added.

    Args:
        paths: Temp file paths from the multi-file upload component
        session: User session

    Returns:
        Values in the order of VIEW_OUTPUTS
    """
    if not paths:
        return render(session)

    errors = []
    for path in paths:
        try:
            validate_can_add_edition(session, config)
        except ValidationError as e:
            errors.append(str(e))
            break

        try:
            data, mime_type, filename = await _load_upload(path)
            session.add_edition(data, mime_type, filename)
        except SessionError as e:
            errors.append(str(e))
            break
        except ValidationError as e:
            errors.append(str(e))

    logger.info(f"Session {session.id}: {len(session.editions)} edition(s) after upload")

    if errors:
        logger.warning(f"Edition upload issues: {errors}")
        return render(session, _error_message("\n\n".join(errors)))
    return render(session)


def remove_edition(label: str | None, session: AnalysisSession) -> tuple:
    """Remove the edition shown under the given label (e.g. "Edition 2")."""
    choices = edition_choices(session)
    if not label or label not in choices:
        return render(session, "Select an edition to remove.")

    edition = session.editions[choices.index(label)]
    session.remove_edition(edition.id)
    logger.info(f"Removed {label} ({edition.id})")
    return render(session)


async def analyze(session: AnalysisSession):
    """Run the analysis, showing progress while it is in flight.

    Yields:
        Values in the order of VIEW_OUTPUTS: once when the run starts and
        once when it settles
    """
    if session.is_analyzing:
        yield render(session, "⏳ An analysis is already running for this session.")
        return
    if not session.can_analyze:
        yield render(session, _error_message("Upload an original photo and at least one edition."))
        return

    gallery, selector, _, _, _, _ = render(session)
    yield gallery, selector, "⏳ Analyzing images...", "", gr.update(interactive=False), session

    try:
        await get_orchestrator().analyze(session)
    except SessionError as e:
        yield render(session, _error_message(e))
        return

    yield render(session)


def reset_all(session: AnalysisSession) -> tuple:
    """Clear all images and results.

    Returns:
        Cleared values for the original and edition upload components,
        followed by the values in the order of VIEW_OUTPUTS
    """
    get_orchestrator().reset(session)
    logger.info(f"Session {session.id} reset")
    return (None, None, *render(session))
