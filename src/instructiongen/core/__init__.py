"""Core functionality for InstructionGen.

This package holds everything that does not depend on a particular surface:

- **config.py**: Environment-based configuration using Pydantic Settings
  (INSTRUCTIONGEN_ prefix)
- **session.py**: Per-user session state (images, status, results)
- **media.py**: Image inspection and encoding for model requests
- **prompts.py**: Caption and edit-instruction prompt templates
- **gateway.py**: Gemini calls (caption fails hard, edition calls degrade)
- **orchestrator.py**: The two-phase analysis state machine
- **report.py**: Markdown rendering of results

Usage Example
-------------
    from instructiongen.core import AnalysisOrchestrator, AnalysisSession, ModelGateway, config

    session = AnalysisSession()
    session.set_original(original_bytes, "image/jpeg", "beach.jpg")
    session.add_edition(edit_bytes, "image/jpeg", "beach_edit1.jpg")

    orchestrator = AnalysisOrchestrator(ModelGateway(config))
    status = await orchestrator.analyze(session)
"""

from instructiongen.core.config import InstructionGenConfig, config
from instructiongen.core.gateway import ModelGateway, ServiceError
from instructiongen.core.media import EncodedPart, EncodingError
from instructiongen.core.orchestrator import AnalysisOrchestrator
from instructiongen.core.session import (
    AnalysisPreconditionError,
    AnalysisSession,
    AnalysisStatus,
    SessionBusyError,
    SessionError,
    UploadedImage,
)

__all__ = [
    "AnalysisOrchestrator",
    "AnalysisPreconditionError",
    "AnalysisSession",
    "AnalysisStatus",
    "EncodedPart",
    "EncodingError",
    "InstructionGenConfig",
    "ModelGateway",
    "ServiceError",
    "SessionBusyError",
    "SessionError",
    "UploadedImage",
    "config",
]
