"""Registry of output formats.

WHY: The CLI and session callers need a single lookup to find the right
formatter by name. A central dict makes it trivial to add new formats:
create the formatter class, import it here, add one line.

HOW: FORMATTERS maps string keys to formatter *classes* (not instances).
Callers instantiate as needed: ``formatter = FORMATTERS["words_json"]()``.

RULES:
- Keys are snake_case identifiers (used in the CLI --formats flag)
- Values are BaseFormatter subclasses (not instances)
- Every formatter listed here must be importable without side effects
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from transcript_reconciler.formatters.plain_text import PlainTextFormatter
from transcript_reconciler.formatters.words_json import WordsJsonFormatter

if TYPE_CHECKING:
    from transcript_reconciler.formatters.base import BaseFormatter

FORMATTERS: dict[str, type[BaseFormatter]] = {
    "plain_text": PlainTextFormatter,
    "words_json": WordsJsonFormatter,
}
