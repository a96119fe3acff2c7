"""Two-phase analysis of an original image and its editions.

:class:`AnalysisOrchestrator` drives an :class:`AnalysisSession` through one
analysis run::

    IDLE | COMPLETE | ERROR  --analyze-->  ANALYZING  -->  COMPLETE | ERROR
    any state                --reset---->  IDLE

Phase 1 captions the original image and must finish before phase 2 starts.
If it fails, the run ends in ERROR and phase 2 is never attempted.

Phase 2 requests instructions for every edition present when the run
started, all concurrently.  The gateway contains per-edition failures (the
edition gets the fallback text), so phase 2 cannot fail the run.  Results are
collected per edition id once every request has settled.
"""

import asyncio
import logging

from .gateway import ModelGateway
from .session import AnalysisSession, AnalysisStatus, UploadedImage

logger = logging.getLogger(__name__)

ANALYSIS_FAILED_MESSAGE = "Analysis failed. Please check your API key and try again."


class AnalysisOrchestrator:
    """Runs caption and edit-instruction generation for a session."""

    def __init__(self, gateway: ModelGateway) -> None:
        self._gateway = gateway

    async def analyze(self, session: AnalysisSession) -> AnalysisStatus:
        """Run a full analysis on the session.

        Args:
            session: Session holding the original image and editions

        Returns:
            The session status after the run: COMPLETE or ERROR, or IDLE
            if the session was reset while the run was in flight

        Raises:
            AnalysisPreconditionError: If the session has no original image,
                no editions, or is already analyzing.  The session is left
                untouched and no model call is made.
        """
        token = session.begin_analysis()
        original = session.original
        editions = list(session.editions)

        logger.info(f"Session {session.id}: analysis started with {len(editions)} edition(s)")

        try:
            description = await self._gateway.generate_caption(original)
            results = await self._generate_instructions(original, editions)
        except Exception as e:
            logger.error(f"Session {session.id}: analysis failed: {e}", exc_info=True)
            session.fail_analysis(token, ANALYSIS_FAILED_MESSAGE)
            return session.status

        session.complete_analysis(token, description, results)
        logger.info(f"Session {session.id}: analysis finished with status {session.status.value}")
        return session.status

    def reset(self, session: AnalysisSession) -> None:
        """Return the session to IDLE, clearing all images and results."""
        session.reset()

    async def _generate_instructions(
        self, original: UploadedImage, editions: list[UploadedImage]
    ) -> dict[str, str]:
        """Request instructions for all editions concurrently.

        Returns:
            Instructions keyed by edition id
        """
        tasks = {
            edition.id: asyncio.ensure_future(
                self._gateway.generate_diff_instructions(original, edition, position)
            )
            for position, edition in enumerate(editions, start=1)
        }
        await asyncio.gather(*tasks.values())
        return {edition_id: task.result() for edition_id, task in tasks.items()}
