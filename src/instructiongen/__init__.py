"""InstructionGen - image descriptions and edit instructions from a vision-language model."""

__version__ = "0.1.0"

from instructiongen.core.config import InstructionGenConfig, config
from instructiongen.core.orchestrator import AnalysisOrchestrator
from instructiongen.core.session import AnalysisSession, AnalysisStatus

__all__ = [
    "AnalysisOrchestrator",
    "AnalysisSession",
    "AnalysisStatus",
    "InstructionGenConfig",
    "config",
]
