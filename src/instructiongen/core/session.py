"""Session state for an InstructionGen analysis.

An :class:`AnalysisSession` owns everything one user works with: the
original image, the ordered list of editions, the analysis status and the
generated results.  Both the REST API and the Gradio UI hold one session per
user and only ever change it through the methods defined here, so the rules
below hold regardless of which surface is driving it:

- at most one original image exists at a time
- replacing or removing the original clears the description, the edition
  results and the status
- removing an edition removes its result entry
- a session that is ``ANALYZING`` refuses uploads and removal of the
  original (removing an edition and reset are always allowed)

Run Tokens
----------
Every call to :meth:`AnalysisSession.begin_analysis` hands out a token.  Any
change that invalidates a run in flight (reset, new original, original
removed) bumps the session's token, and :meth:`complete_analysis` /
:meth:`fail_analysis` ignore commits that carry a stale one.  Results of a
run therefore never land on a session that moved on without it.
"""

import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum

logger = logging.getLogger(__name__)

ORIGINAL_IMAGE_ID = "original"


class SessionError(Exception):
    """Base class for session rule violations."""


class AnalysisPreconditionError(SessionError):
    """Raised when an analysis is requested on a session that cannot run one."""


class SessionBusyError(SessionError):
    """Raised when a session is changed while an analysis is in flight."""


class AnalysisStatus(str, Enum):
    """Lifecycle of an analysis run."""

    IDLE = "IDLE"
    ANALYZING = "ANALYZING"
    COMPLETE = "COMPLETE"
    ERROR = "ERROR"


@dataclass
class UploadedImage:
    """An image uploaded into a session.

    Attributes
    ----------
    id : str
        ``"original"`` for the original image, a random hex id for editions
    data : bytes
        Raw image bytes as uploaded
    mime_type : str
        Image mime type (e.g. ``image/png``)
    filename : str
        Name of the uploaded file, for display only
    """

    id: str
    data: bytes = field(repr=False)
    mime_type: str
    filename: str = ""

    @property
    def is_original(self) -> bool:
        return self.id == ORIGINAL_IMAGE_ID

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class EditionResult:
    """Generated instructions for one edition."""

    edition_id: str
    instructions: str


@dataclass
class AnalysisSession:
    """Session state for one user.

    Attributes
    ----------
    id : str
        Session identifier
    original : UploadedImage | None
        The original image, if uploaded
    editions : list[UploadedImage]
        Editions in upload order; positions are 1-based in this order
    status : AnalysisStatus
        Current analysis status
    original_description : str
        Caption of the original from the last successful run
    edition_results : dict[str, str]
        Generated instructions keyed by edition id
    error_message : str
        User-facing message of the last failed run
    """

    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    original: UploadedImage | None = None
    editions: list[UploadedImage] = field(default_factory=list)
    status: AnalysisStatus = AnalysisStatus.IDLE
    original_description: str = ""
    edition_results: dict[str, str] = field(default_factory=dict)
    error_message: str = ""
    _run_token: int = field(default=0, repr=False)

    # -- Queries ------------------------------------------------------------

    @property
    def is_analyzing(self) -> bool:
        return self.status == AnalysisStatus.ANALYZING

    @property
    def can_analyze(self) -> bool:
        """True if an analysis could be started right now."""
        return self.original is not None and bool(self.editions) and not self.is_analyzing

    def get_image(self, image_id: str) -> UploadedImage | None:
        """Look up the original or an edition by id."""
        if image_id == ORIGINAL_IMAGE_ID:
            return self.original
        return next((e for e in self.editions if e.id == image_id), None)

    def edition_position(self, edition_id: str) -> int | None:
        """Return the 1-based position of an edition, or None if absent."""
        for position, edition in enumerate(self.editions, start=1):
            if edition.id == edition_id:
                return position
        return None

    def results(self) -> list[EditionResult]:
        """Edition results in edition order (editions without a result are skipped)."""
        return [
            EditionResult(edition.id, self.edition_results[edition.id])
            for edition in self.editions
            if edition.id in self.edition_results
        ]

    # -- Upload actions -----------------------------------------------------

    def set_original(self, data: bytes, mime_type: str, filename: str = "") -> UploadedImage:
        """Upload or replace the original image.

        All derived results are cleared and the status returns to IDLE.

        Raises:
            SessionBusyError: If an analysis is in flight
        """
        self._ensure_not_analyzing("replace the original image")
        self.original = UploadedImage(ORIGINAL_IMAGE_ID, data, mime_type, filename)
        self._clear_results()
        logger.info(f"Session {self.id}: original image set ({filename or mime_type})")
        return self.original

    def remove_original(self) -> None:
        """Remove the original image; editions are kept."""
        self._ensure_not_analyzing("remove the original image")
        self.original = None
        self._clear_results()
        logger.info(f"Session {self.id}: original image removed")

    def add_edition(self, data: bytes, mime_type: str, filename: str = "") -> UploadedImage:
        """Append an edition.

        Results from a previous run stay visible for the editions they belong
        to, but the session drops back to IDLE since the new edition has none.

        Raises:
            SessionBusyError: If an analysis is in flight
        """
        self._ensure_not_analyzing("add an edition")
        edition = UploadedImage(uuid.uuid4().hex, data, mime_type, filename)
        self.editions.append(edition)
        if self.status in (AnalysisStatus.COMPLETE, AnalysisStatus.ERROR):
            self.status = AnalysisStatus.IDLE
        logger.info(f"Session {self.id}: edition {edition.id} added ({len(self.editions)} total)")
        return edition

    def remove_edition(self, edition_id: str) -> bool:
        """Remove an edition and its result entry.

        Allowed in every state; a run in flight drops the result for this
        edition when it commits.

        Returns:
            True if the edition existed
        """
        before = len(self.editions)
        self.editions = [e for e in self.editions if e.id != edition_id]
        self.edition_results.pop(edition_id, None)
        removed = len(self.editions) != before
        if removed:
            logger.info(f"Session {self.id}: edition {edition_id} removed")
        return removed

    def reset(self) -> None:
        """Clear all images and results unconditionally."""
        self.original = None
        self.editions = []
        self._clear_results()
        logger.info(f"Session {self.id}: reset")

    # -- Analysis lifecycle -------------------------------------------------

    def begin_analysis(self) -> int:
        """Enter ANALYZING and return the token for this run.

        Raises:
            AnalysisPreconditionError: If there is no original image, no
                edition, or a run is already in flight
        """
        if self.is_analyzing:
            raise AnalysisPreconditionError("An analysis is already running for this session")
        if self.original is None:
            raise AnalysisPreconditionError("Please upload the original photo first")
        if not self.editions:
            raise AnalysisPreconditionError("Please add at least one edited version")

        self._run_token += 1
        self.status = AnalysisStatus.ANALYZING
        self.original_description = ""
        self.edition_results = {}
        self.error_message = ""
        return self._run_token

    def complete_analysis(self, token: int, description: str, results: dict[str, str]) -> bool:
        """Commit a successful run.

        Results for editions removed while the run was in flight are dropped.

        Returns:
            False if the run was superseded and nothing was committed
        """
        if not self._is_current(token):
            logger.info(f"Session {self.id}: discarding results of superseded run {token}")
            return False

        present = {edition.id for edition in self.editions}
        self.original_description = description
        self.edition_results = {eid: text for eid, text in results.items() if eid in present}
        self.status = AnalysisStatus.COMPLETE
        return True

    def fail_analysis(self, token: int, message: str) -> bool:
        """Commit a failed run, discarding any partial results.

        Returns:
            False if the run was superseded and nothing was committed
        """
        if not self._is_current(token):
            logger.info(f"Session {self.id}: ignoring failure of superseded run {token}")
            return False

        self.original_description = ""
        self.edition_results = {}
        self.error_message = message
        self.status = AnalysisStatus.ERROR
        return True

    # -- Internals ----------------------------------------------------------

    def _is_current(self, token: int) -> bool:
        return token == self._run_token and self.is_analyzing

    def _clear_results(self) -> None:
        self._run_token += 1
        self.original_description = ""
        self.edition_results = {}
        self.error_message = ""
        self.status = AnalysisStatus.IDLE

    def _ensure_not_analyzing(self, action: str) -> None:
        if self.is_analyzing:
            raise SessionBusyError(f"Cannot {action} while an analysis is running")

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"AnalysisSession(id={self.id}, status={self.status.value}, "
            f"original={self.original is not None}, editions={len(self.editions)}, "
            f"results={len(self.edition_results)})"
        )
