"""JSON Schema documents for import formats and exports.

WHY: Tool-specific JSON shapes are duck-typed in the wild. Decoding each
one through a schema that fails closed keeps unknown shapes from being
silently coerced into half-empty transcripts.

HOW: One ``<name>.schema.json`` file per format lives next to this
module. load_schema() reads it once and caches the parsed document.

RULES:
- Schema files are JSON Schema draft 2020-12
- Import schemas require every timing field the engine relies on
- Callers must not mutate the returned dict
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict

_SCHEMA_DIR = Path(__file__).resolve().parent

_CACHED_SCHEMAS: Dict[str, Dict[str, Any]] = {}


def load_schema(name: str) -> Dict[str, Any]:
    """Return the parsed schema ``<name>.schema.json``, cached after first use."""
    if name not in _CACHED_SCHEMAS:
        path = _SCHEMA_DIR / "{}.schema.json".format(name)
        with open(path, encoding="utf-8") as f:
            _CACHED_SCHEMAS[name] = json.load(f)
    return _CACHED_SCHEMAS[name]
