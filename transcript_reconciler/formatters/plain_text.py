"""Plain text transcript formatter.

WHY: The reconciled transcript is most useful as text the user can read,
edit and paste back in. Writing it in the same annotated form the
free-text ingestor reads closes the loop.

HOW: Delegates to render_text(). If the words already contain inline
tag pseudo-words (restored by the tag reconstructor), paragraph prefixes
are not generated a second time.

RULES:
- Paragraph prefix: "<timestamp> <Label>:" when known
- Blank line between paragraphs, trailing newline at end of file
- Output suffix: "-transcript.txt"
- Media type: "text/plain"
"""

from __future__ import annotations

from transcript_reconciler.core.ir import TranscriptVersion
from transcript_reconciler.core.tags import strip_tags
from transcript_reconciler.formatters.base import BaseFormatter, FormatterOutput
from transcript_reconciler.reconcile import render_text


class PlainTextFormatter(BaseFormatter):
    """Annotated plain text, readable back by the free-text ingestor."""

    @property
    def name(self) -> str:
        return "Plain Text"

    def format(self, version: TranscriptVersion) -> list[FormatterOutput]:
        _, inline_tags = strip_tags(version.words)
        text = render_text(version.words, annotate=not inline_tags)
        content = text + "\n" if text else ""
        return [FormatterOutput(
            suffix="-transcript.txt",
            content=content,
            media_type="text/plain",
        )]
