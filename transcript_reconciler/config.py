"""Configuration constants and .env loading.

WHY: Centralizes all tunable values so they are easy to find, update,
and override. Alignment thresholds, interpolation defaults and file
locations are plain data, not buried in the algorithms, so both humans
and coding agents can adjust them confidently.

HOW: python-dotenv loads the .env file on import. Constants are
module-level values with environment-variable overrides. The engine
functions read these only as defaults; every one of them can also be
passed explicitly.

RULES:
- Every default can be overridden via an environment variable
- Invalid numeric overrides fall back to the built-in default
- Nothing here is mutated at runtime
"""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv

# Load .env from the project root (where the script is run from)
load_dotenv()

logger = logging.getLogger(__name__)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r; using %d", name, raw, default)
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring non-numeric %s=%r; using %s", name, raw, default)
        return default


# ---------------------------------------------------------------------------
# Alignment
# ---------------------------------------------------------------------------

ALIGN_LOOKAHEAD_WINDOW = _env_int("TRANSCRIPT_ALIGN_WINDOW", 40)
"""Number of reference positions scanned ahead of the alignment cursor."""

ALIGN_CONFIRM_GAP = _env_int("TRANSCRIPT_ALIGN_CONFIRM_GAP", 8)
"""Matches that skip more reference words than this need confirmation (0 disables)."""

ALIGN_RESYNC_RUN = _env_int("TRANSCRIPT_ALIGN_RESYNC_RUN", 3)
"""Consecutive following matches that let a word jump past the window (0 disables)."""

# ---------------------------------------------------------------------------
# Interpolation
# ---------------------------------------------------------------------------

DEFAULT_WORDS_PER_SECOND = _env_float("TRANSCRIPT_DEFAULT_WPS", 2.5)
"""Speaking rate used for extrapolation when fewer than two anchors exist."""

# ---------------------------------------------------------------------------
# Ingestion
# ---------------------------------------------------------------------------

MFA_SILENCE_TOKENS: frozenset[str] = frozenset({"", "<eps>", "sil", "sp", "spn"})
"""Forced-alignment interval labels that mark silence or noise, not words."""

# ---------------------------------------------------------------------------
# CLI / persistence
# ---------------------------------------------------------------------------

DEFAULT_STATE_PATH = os.getenv("TRANSCRIPT_STATE_PATH", ".transcript-state.json")
LOG_LEVEL = os.getenv("TRANSCRIPT_LOG_LEVEL", "INFO").upper()
