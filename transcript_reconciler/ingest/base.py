"""Abstract base ingestor, JSON decoding and schema validation.

WHY: Every timed-word import format (forced aligner, ASR engine) ends up
as the same ordered TimedWord sequence, but each tool nests its data
differently. This base class enforces a consistent interface so the
session, CLI and engine can work with any ingestor generically, and
keeps the fail-closed decoding rules in one place.

HOW: BaseTimedWordIngestor is an ABC with a ``name``, a ``schema_name``
and an ``_extract()`` hook that yields raw (text, start, end) triples.
``ingest()`` decodes the source, validates it with jsonschema, runs the
hook, then normalizes: whitespace-only tokens dropped, display text
trimmed, sequence numbers assigned, timing checked.

RULES:
- Sources may be bytes (UTF-8), str (JSON text) or already-decoded JSON
- Any decode or schema failure raises MalformedInput, never a raw
  json/jsonschema exception
- start_time < 0, end_time < start_time, or a start earlier than the
  previous word's start raises MalformedInput
- Confidence and other tool metadata are discarded
- Subclasses implement ``name``, ``schema_name`` and ``_extract()``
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Iterable, List, Tuple, Union

import jsonschema

from transcript_reconciler.core.ir import Word, make_word
from transcript_reconciler.errors import MalformedInput
from transcript_reconciler.schemas import load_schema

logger = logging.getLogger(__name__)

JsonSource = Union[bytes, str, dict, list]
RawTimedToken = Tuple[str, float, float]


def load_json(source: JsonSource) -> Any:
    """Decode a JSON source, passing already-decoded values through.

    Raises:
        MalformedInput: If bytes are not UTF-8 or the text is not JSON.
    """
    if isinstance(source, (dict, list)):
        return source
    if isinstance(source, bytes):
        try:
            source = source.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise MalformedInput("Input is not valid UTF-8: {}".format(e)) from e
    try:
        return json.loads(source)
    except json.JSONDecodeError as e:
        raise MalformedInput("Input is not valid JSON: {}".format(e)) from e


def validate(data: Any, schema_name: str) -> None:
    """Validate decoded JSON against a bundled schema.

    Raises:
        MalformedInput: Wrapping the first jsonschema.ValidationError.
    """
    try:
        jsonschema.validate(instance=data, schema=load_schema(schema_name))
    except jsonschema.ValidationError as e:
        location = "/".join(str(part) for part in e.absolute_path) or "<root>"
        raise MalformedInput(
            "Input does not match the {} format at {}: {}".format(schema_name, location, e.message)
        ) from e


class BaseTimedWordIngestor(ABC):
    """Abstract base for all timed-word ingestors.

    To add a new import format:
    1. Add ``schemas/<format>.schema.json``
    2. Create a module in ingest/ subclassing BaseTimedWordIngestor
    3. Implement name, schema_name and _extract()
    4. Register it in INGESTORS in ingest/__init__.py
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable format name, e.g. 'Forced-alignment JSON'."""

    @property
    @abstractmethod
    def schema_name(self) -> str:
        """Bundled schema used to validate the decoded input."""

    @abstractmethod
    def _extract(self, data: Any) -> Iterable[RawTimedToken]:
        """Yield (text, start, end) for every token in a validated document."""

    def _keep(self, text: str) -> bool:
        """Return False for tokens that are not words (whitespace by default)."""
        return bool(text)

    def ingest(self, source: JsonSource) -> List[Word]:
        """Convert a tool export into an ordered TimedWord sequence.

        Args:
            source: JSON bytes, JSON text or decoded JSON.

        Returns:
            Words with dense sequence numbers and both times set.

        Raises:
            MalformedInput: On undecodable input, schema violations or
                inconsistent timing.
        """
        data = load_json(source)
        validate(data, self.schema_name)

        words: List[Word] = []
        previous_start = 0.0
        for item_index, (raw_text, start, end) in enumerate(self._extract(data)):
            text = raw_text.strip()
            if not self._keep(text):
                continue
            if start < 0:
                raise MalformedInput(
                    "Token {} ({!r}) has a negative start time {}".format(item_index, text, start)
                )
            if end < start:
                raise MalformedInput(
                    "Token {} ({!r}) ends before it starts ({} < {})".format(
                        item_index, text, end, start,
                    )
                )
            if start < previous_start:
                raise MalformedInput(
                    "Token {} ({!r}) starts at {} before the previous word ({})".format(
                        item_index, text, start, previous_start,
                    )
                )
            previous_start = start
            words.append(make_word(
                len(words) + 1,
                text,
                start_time=float(start),
                end_time=float(end),
            ))

        logger.info("%s: ingested %d timed words", self.name, len(words))
        return words
