"""Prompt templates for captioning and edit-instruction generation.

Two fixed prompts drive the whole analysis:

- **Caption prompt** (phase 1) asks for a neutral description of the original
  image: subjects, setting, lighting and notable details, written in a
  descriptive rather than imperative voice and without a preamble.
- **Diff-instruction prompt** (phase 2) asks for the edits that turn the
  original into one edition, written as imperative commands that cover only
  the change.

The diff request labels both images before the prompt, so the layout the
model sees is::

    [original image]
    This is the Original Image.
    [edition image]
    This is the Edition Image. Identify the modifications.
    [diff-instruction prompt]

Usage
-----
::

    prompt = diff_instruction_prompt(position=2)
"""

from __future__ import annotations

ORIGINAL_IMAGE_LABEL = "This is the Original Image."
EDITION_IMAGE_LABEL = "This is the Edition Image. Identify the modifications."

_CAPTION_PROMPT = """\
Analyze this image and provide a detailed visual description.

Rules:
- Write in a descriptive, neutral tone.
- Do not use command form (imperative).
- Focus on the main subjects, setting, lighting, and key details.
- Start directly with the description."""

_DIFF_PROMPT_TEMPLATE = """\
You are an expert image editor creating instructions for an AI.
Compare the Original Image and Edition {position}.

Your task is to describe ONLY the modifications made to the Original to create the Edition.

STRICT RULES:
- Tone: Imperative (Command) ONLY. Use verbs like "Add", "Remove", "Replace", "Change", "Translate".
- FOCUS ON THE CHANGE: Describe ONLY what is different. Do not describe the original image or parts that remained the same.
- NO META TALK: Do NOT write "I added...", "The image shows...", "The difference is...", or "In this edition...".
- NO UPPERCASE: Do not write instructions in uppercase.
- NO BULLETS: Provide the instructions as a concise, fluid paragraph of direct commands.
- DETAIL: Be specific about text content, fonts, colors, styles, and precise positions.

Example of Good Output:
"Change the background wall color from white to light peach. Add line art illustrations of coffee items scattered across the wall, with the text 'Coffee Time' in a script font in the center, and 'Espresso' in the top right.\""""


def caption_prompt() -> str:
    """Return the prompt for describing the original image."""
    return _CAPTION_PROMPT


def diff_instruction_prompt(position: int) -> str:
    """Return the prompt for describing the edits in one edition.

    Args:
        position: 1-based position of the edition in the session

    Returns:
        The instruction prompt text

    Raises:
        ValueError: If position is less than 1
    """
    if position < 1:
        raise ValueError(f"Edition position must be 1 or greater, got {position}")
    return _DIFF_PROMPT_TEMPLATE.format(position=position)
