"""Plain-text story export.

The text rendering is the only export format. Rich formats (pdf, epub, mobi)
are accepted for compatibility and downgraded to the same text.
"""

from __future__ import annotations

import logging
import re

from coauthor.models import Story

logger = logging.getLogger(__name__)

EXPORT_FORMATS = ("txt", "pdf", "epub", "mobi")
SEPARATOR = "-" * 32

SPEAKERS = {"model": "CoAuthor", "user": "You"}


def render_text(story: Story) -> str:
    parts = [
        f"Title: {story.title}\n",
        f"Setting: {story.setup.setting}\n",
        f"Vibe: {story.setup.vibe}\n",
        f"Protagonist: {story.setup.protagonist}\n\n",
        f"{SEPARATOR}\n\n",
    ]
    for msg in story.messages:
        parts.append(f"{SPEAKERS[msg.role]}:\n{msg.text}\n\n")
    return "".join(parts)


def export_filename(story: Story) -> str:
    return re.sub(r"[^a-z0-9]", "_", story.title, flags=re.IGNORECASE).lower() + ".txt"


def export_story(story: Story, fmt: str = "txt") -> tuple[str, str]:
    """Return (filename, text) for the requested format."""
    if fmt not in EXPORT_FORMATS:
        raise ValueError(f"Unknown export format: {fmt!r}")
    if fmt != "txt":
        logger.warning("Native .%s export is not supported, exporting as text", fmt)
    return export_filename(story), render_text(story)
