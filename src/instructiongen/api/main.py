"""InstructionGen — FastAPI Application.

This module defines the FastAPI ``app`` instance, all REST API routes, and
the ``main()`` CLI function that launches the uvicorn server.

Architecture
------------
- **Sessions** live in an in-memory
  :class:`~instructiongen.api.session_store.SessionRegistry` created at
  startup.  A client creates a session, uploads the original image and one or
  more editions, then requests an analysis.
- **Analysis** is performed by
  :class:`~instructiongen.core.orchestrator.AnalysisOrchestrator`, which calls
  Gemini through :class:`~instructiongen.core.gateway.ModelGateway`.
- **Image previews** are served straight from session memory.

A failed analysis is not an HTTP error: the analyze endpoint returns the
session with ``status="ERROR"`` and an ``error_message``, exactly as the
session itself records it.

Endpoints
---------
========  ========================================  ===============================
Method    Path                                      Purpose
========  ========================================  ===============================
GET       ``/api/config``                           Version, model, upload limits
POST      ``/api/sessions``                         Create a session
GET       ``/api/sessions/{sid}``                   Session view
DELETE    ``/api/sessions/{sid}``                   Drop a session
PUT       ``/api/sessions/{sid}/original``          Upload or replace the original
DELETE    ``/api/sessions/{sid}/original``          Remove the original
POST      ``/api/sessions/{sid}/editions``          Add an edition
DELETE    ``/api/sessions/{sid}/editions/{eid}``    Remove an edition
GET       ``/api/sessions/{sid}/images/{id}``       Raw image bytes
POST      ``/api/sessions/{sid}/analyze``           Run the analysis
POST      ``/api/sessions/{sid}/reset``             Clear images and results
GET       ``/api/sessions/{sid}/report``            Results as markdown
========  ========================================  ===============================

Usage
-----
CLI (installed entry point)::

    instructiongen

Direct invocation::

    python -m instructiongen.api.main
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, File, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse, Response

from instructiongen import __version__
from instructiongen.api.models import ImageInfo, SessionResponse
from instructiongen.api.session_store import SessionNotFoundError, SessionRegistry
from instructiongen.core.config import config
from instructiongen.core.gateway import ModelGateway
from instructiongen.core.orchestrator import AnalysisOrchestrator
from instructiongen.core.report import build_report
from instructiongen.core.session import AnalysisSession, SessionError
from instructiongen.ui.validation import (
    ValidationError,
    validate_can_add_edition,
    validate_image_upload,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Application lifecycle — session registry and orchestrator setup.
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application startup and shutdown lifecycle.

    On startup:
        Creates the session registry and an orchestrator bound to a
        :class:`ModelGateway`.  The Gemini client itself is created lazily
        on the first model call.

    On shutdown:
        Clears all sessions, releasing the image bytes they hold.

    Args:
        app: The FastAPI application instance.

    Yields:
        Control back to the application for the duration of its lifetime.
    """
    app.state.sessions = SessionRegistry(max_sessions=config.max_sessions)
    app.state.orchestrator = AnalysisOrchestrator(ModelGateway(config))
    logger.info(f"InstructionGen API ready (model={config.model_id}).")

    yield

    app.state.sessions.clear()
    logger.info("Session registry cleared on shutdown.")


app = FastAPI(
    title="InstructionGen",
    description="Image descriptions and edit instructions from a vision-language model.",
    version=__version__,
    lifespan=lifespan,
)

# Allow cross-origin requests so a frontend can be served from a different
# port during development.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Request helpers.
# ---------------------------------------------------------------------------


def _get_session(request: Request, session_id: str) -> AnalysisSession:
    """Resolve a session id or fail with 404."""
    registry: SessionRegistry = request.app.state.sessions
    try:
        return registry.get(session_id)
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail="Session not found") from None


async def _read_upload(file: UploadFile) -> tuple[bytes, str]:
    """Read and validate an uploaded image.

    Returns:
        Tuple of (raw bytes, resolved mime type)

    Raises:
        HTTPException: 400 if the upload is not an acceptable image.
    """
    data = await file.read()
    try:
        mime_type = validate_image_upload(data, file.content_type, file.filename or "", config)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return data, mime_type


# ---------------------------------------------------------------------------
# Routes.
# ---------------------------------------------------------------------------


@app.get("/api/config")
async def get_config() -> dict:
    """Return the settings a frontend needs to render upload controls.

    Returns:
        Dictionary with ``version``, ``model_id``, ``max_upload_mb``,
        ``allowed_mime_types``, and ``max_editions``.
    """
    return {
        "version": __version__,
        "model_id": config.model_id,
        "max_upload_mb": config.max_upload_mb,
        "allowed_mime_types": config.allowed_mime_types,
        "max_editions": config.max_editions,
    }


@app.post("/api/sessions", status_code=201)
async def create_session(request: Request) -> SessionResponse:
    """Create an empty session."""
    session = request.app.state.sessions.create()
    return SessionResponse.from_session(session)


@app.get("/api/sessions/{session_id}")
async def get_session(request: Request, session_id: str) -> SessionResponse:
    """Return the current view of a session.

    Raises:
        HTTPException: 404 if the session is not found.
    """
    return SessionResponse.from_session(_get_session(request, session_id))


@app.delete("/api/sessions/{session_id}")
async def delete_session(request: Request, session_id: str) -> dict:
    """Drop a session and everything it holds.

    Raises:
        HTTPException: 404 if the session is not found.
    """
    try:
        request.app.state.sessions.delete(session_id)
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail="Session not found") from None
    return {"success": True, "deleted": session_id}


@app.put("/api/sessions/{session_id}/original")
async def upload_original(
    request: Request, session_id: str, file: UploadFile = File(...)
) -> SessionResponse:
    """Upload or replace the original image.

    Replacing the original clears the description, all edition results, and
    returns the session to ``IDLE``.

    Raises:
        HTTPException: 404 for an unknown session, 400 for an invalid image,
            409 while an analysis is running.
    """
    session = _get_session(request, session_id)
    data, mime_type = await _read_upload(file)
    try:
        session.set_original(data, mime_type, file.filename or "")
    except SessionError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    return SessionResponse.from_session(session)


@app.delete("/api/sessions/{session_id}/original")
async def remove_original(request: Request, session_id: str) -> SessionResponse:
    """Remove the original image; editions are kept.

    Raises:
        HTTPException: 404 for an unknown session or if there is no
            original image, 409 while an analysis is running.
    """
    session = _get_session(request, session_id)
    if session.original is None:
        raise HTTPException(status_code=404, detail="No original image")
    try:
        session.remove_original()
    except SessionError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    return SessionResponse.from_session(session)


@app.post("/api/sessions/{session_id}/editions", status_code=201)
async def add_edition(request: Request, session_id: str, file: UploadFile = File(...)) -> ImageInfo:
    """Add an edition to the session.

    Returns:
        Metadata of the new edition, including its id and position.

    Raises:
        HTTPException: 404 for an unknown session, 400 for an invalid image,
            a missing original, or too many editions, 409 while an analysis
            is running.
    """
    session = _get_session(request, session_id)
    try:
        validate_can_add_edition(session, config)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    data, mime_type = await _read_upload(file)
    try:
        edition = session.add_edition(data, mime_type, file.filename or "")
    except SessionError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    return ImageInfo.from_image(session.id, edition, session.edition_position(edition.id))


@app.delete("/api/sessions/{session_id}/editions/{edition_id}")
async def remove_edition(request: Request, session_id: str, edition_id: str) -> SessionResponse:
    """Remove an edition and its generated instructions.

    Raises:
        HTTPException: 404 if the session or edition is not found.
    """
    session = _get_session(request, session_id)
    if not session.remove_edition(edition_id):
        raise HTTPException(status_code=404, detail="Edition not found")
    return SessionResponse.from_session(session)


@app.get("/api/sessions/{session_id}/images/{image_id}")
async def get_image(request: Request, session_id: str, image_id: str) -> Response:
    """Serve the raw bytes of an uploaded image.

    Raises:
        HTTPException: 404 if the session or image is not found.
    """
    session = _get_session(request, session_id)
    image = session.get_image(image_id)
    if image is None:
        raise HTTPException(status_code=404, detail="Image not found")
    return Response(content=image.data, media_type=image.mime_type)


@app.post("/api/sessions/{session_id}/analyze")
async def analyze_session(request: Request, session_id: str) -> SessionResponse:
    """Caption the original and generate instructions for every edition.

    The request completes when the run has finished.  A failed caption call
    yields a 200 response with ``status="ERROR"``; a failed edition call only
    affects that edition's text.

    Raises:
        HTTPException: 404 for an unknown session, 409 if the session has no
            original, no editions, or is already analyzing.
    """
    session = _get_session(request, session_id)
    orchestrator: AnalysisOrchestrator = request.app.state.orchestrator
    try:
        await orchestrator.analyze(session)
    except SessionError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    return SessionResponse.from_session(session)


@app.post("/api/sessions/{session_id}/reset")
async def reset_session(request: Request, session_id: str) -> SessionResponse:
    """Clear all images and results.

    Raises:
        HTTPException: 404 if the session is not found.
    """
    session = _get_session(request, session_id)
    request.app.state.orchestrator.reset(session)
    return SessionResponse.from_session(session)


@app.get("/api/sessions/{session_id}/report", response_class=PlainTextResponse)
async def get_report(request: Request, session_id: str) -> PlainTextResponse:
    """Return the session's results as markdown, ready to copy.

    Raises:
        HTTPException: 404 if the session is not found.
    """
    session = _get_session(request, session_id)
    return PlainTextResponse(build_report(session), media_type="text/markdown")


# ---------------------------------------------------------------------------
# CLI entry point.
# ---------------------------------------------------------------------------


def main() -> None:
    """Launch the uvicorn ASGI server.

    Reads host and port from :data:`~instructiongen.core.config.config`
    (``INSTRUCTIONGEN_SERVER_HOST`` and ``INSTRUCTIONGEN_SERVER_PORT``).
    Defaults to ``0.0.0.0:7860``.

    This function is registered as the ``instructiongen`` console script in
    ``pyproject.toml``.
    """
    import uvicorn

    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    uvicorn.run(
        "instructiongen.api.main:app",
        host=config.server_host,
        port=config.server_port,
        reload=False,
    )


if __name__ == "__main__":
    main()
