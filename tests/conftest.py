"""Shared pytest fixtures for InstructionGen tests."""

import io
import shutil
import tempfile
from collections.abc import Callable, Generator
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from PIL import Image

from instructiongen.core.config import InstructionGenConfig
from instructiongen.core.gateway import ModelGateway
from instructiongen.core.orchestrator import AnalysisOrchestrator
from instructiongen.core.session import AnalysisSession


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files.

    Yields:
        Path to temporary directory

    Cleanup:
        Directory is removed after test completes
    """
    temp_path = Path(tempfile.mkdtemp())
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def test_config() -> InstructionGenConfig:
    """Create a test configuration that ignores any local .env file.

    Returns:
        InstructionGenConfig instance for testing
    """
    return InstructionGenConfig(
        _env_file=None,
        gemini_api_key="test-key",
        model_id="gemini-test",
        max_upload_mb=1,
        max_editions=3,
    )


@pytest.fixture
def make_image_bytes() -> Callable[..., bytes]:
    """Factory for small in-memory images.

    Returns:
        Function ``(fmt="PNG", color="red", size=(8, 8)) -> bytes``
    """

    def _make(fmt: str = "PNG", color: str = "red", size: tuple[int, int] = (8, 8)) -> bytes:
        buffer = io.BytesIO()
        Image.new("RGB", size, color).save(buffer, format=fmt)
        return buffer.getvalue()

    return _make


@pytest.fixture
def png_bytes(make_image_bytes) -> bytes:
    return make_image_bytes("PNG", "red")


@pytest.fixture
def jpeg_bytes(make_image_bytes) -> bytes:
    return make_image_bytes("JPEG", "blue")


@pytest.fixture
def session() -> AnalysisSession:
    """Create an empty session for testing."""
    return AnalysisSession()


@pytest.fixture
def ready_session(make_image_bytes) -> AnalysisSession:
    """Create a session with an original image and two editions.

    Returns:
        AnalysisSession in IDLE that can be analyzed
    """
    session = AnalysisSession()
    session.set_original(make_image_bytes("PNG", "white"), "image/png", "original.png")
    session.add_edition(make_image_bytes("PNG", "red"), "image/png", "edit1.png")
    session.add_edition(make_image_bytes("JPEG", "green"), "image/jpeg", "edit2.jpg")
    return session


@pytest.fixture
def fake_client() -> MagicMock:
    """Create a mock ``genai.Client`` whose async generate_content succeeds.

    The default response text is ``"Generated text"``; tests override
    ``fake_client.aio.models.generate_content`` as needed.
    """
    client = MagicMock()
    client.aio.models.generate_content = AsyncMock(
        return_value=SimpleNamespace(text="Generated text")
    )
    return client


@pytest.fixture
def gateway(test_config: InstructionGenConfig, fake_client: MagicMock) -> ModelGateway:
    """Create a ModelGateway bound to the mock client."""
    return ModelGateway(test_config, client=fake_client)


@pytest.fixture
def mock_gateway() -> MagicMock:
    """Create a mock gateway with scripted async results.

    ``generate_caption`` returns ``"A white square."``; each
    ``generate_diff_instructions`` call returns ``"Instructions for edition N"``.
    """
    gateway = MagicMock(spec=ModelGateway)
    gateway.generate_caption = AsyncMock(return_value="A white square.")
    gateway.generate_diff_instructions = AsyncMock(
        side_effect=lambda original, edition, position: f"Instructions for edition {position}"
    )
    return gateway


@pytest.fixture
def orchestrator(mock_gateway: MagicMock) -> AnalysisOrchestrator:
    return AnalysisOrchestrator(mock_gateway)


@pytest.fixture
def test_client(mock_gateway: MagicMock) -> Generator:
    """FastAPI TestClient whose orchestrator uses the mock gateway.

    Yields:
        TestClient with the application lifespan running
    """
    from fastapi.testclient import TestClient

    from instructiongen.api.main import app

    with TestClient(app) as client:
        app.state.orchestrator = AnalysisOrchestrator(mock_gateway)
        yield client
