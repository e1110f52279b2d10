"""Word-level JSON export with timing and speaker attribution.

WHY: Downstream tools (caption builders, click-to-seek players, QA
scripts) want the reconciled words with their times, not prose.

HOW: Every non-separator word becomes one object. The document is
validated against schemas/words.schema.json before it is returned.

RULES:
- Separator words are omitted; sequence numbers are renumbered densely
- Times are rounded to the millisecond; unknown times are null
- Schema version is "1.0.0"
- Output suffix: "-words.json"
- Validate output against the schema before returning; raise on failure
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

import jsonschema

from transcript_reconciler.core.ir import TranscriptVersion, Word
from transcript_reconciler.formatters.base import BaseFormatter, FormatterOutput
from transcript_reconciler.schemas import load_schema

WORDS_FORMAT_VERSION = "1.0.0"


def _round(value: Optional[float]) -> Optional[float]:
    return None if value is None else round(value, 3)


def _word_entry(number: int, word: Word) -> Dict[str, Any]:
    return {
        "sequence_number": number,
        "text": word.display_text,
        "start": _round(word.start_time),
        "end": _round(word.end_time),
        "speaker": word.speaker_label,
        "paragraph_start": word.is_paragraph_start,
    }


class WordsJsonFormatter(BaseFormatter):
    """JSON list of words with timing, validated with jsonschema."""

    @property
    def name(self) -> str:
        return "Words JSON"

    def build(self, version: TranscriptVersion) -> Dict[str, Any]:
        """Build and validate the export document.

        Raises:
            jsonschema.ValidationError: If the document does not conform
                to the words schema.
        """
        content_words = [word for word in version.words if not word.is_separator]
        entries: List[Dict[str, Any]] = [
            _word_entry(number, word) for number, word in enumerate(content_words, start=1)
        ]
        document = {
            "version": WORDS_FORMAT_VERSION,
            "name": version.name,
            "words": entries,
        }
        jsonschema.validate(instance=document, schema=load_schema("words"))
        return document

    def format(self, version: TranscriptVersion) -> list[FormatterOutput]:
        content = json.dumps(self.build(version), indent=2, ensure_ascii=False)
        return [FormatterOutput(
            suffix="-words.json",
            content=content,
            media_type="application/json",
        )]
