"""Markdown rendering of analysis results.

Both surfaces show the results the same way: the original's description
first, then one section per edition in upload order.  The rendered text is
also what users copy out, so it carries no UI-specific markup.
"""

from .session import AnalysisSession, AnalysisStatus

PENDING_TEXT = "Pending..."


def edition_label(position: int) -> str:
    return f"Edition {position}"


def build_report(session: AnalysisSession) -> str:
    """Render the session's results as markdown.

    Args:
        session: Session to render

    Returns:
        Markdown text; empty string if the session has no results to show
    """
    if session.status == AnalysisStatus.ERROR:
        return f"**An error occurred during analysis.**\n\n{session.error_message}"

    if not session.original_description:
        return ""

    sections = ["## Original Photo – Description", session.original_description]
    for position, edition in enumerate(session.editions, start=1):
        sections.append(f"## {edition_label(position)}")
        sections.append(session.edition_results.get(edition.id, PENDING_TEXT))

    return "\n\n".join(sections)
