"""Lexical scanner: fixed word/phrase lists and PII regexes.

The lists live in ``rules/lexicon.json`` (or ``LEXICON_PATH``) so moderation
policy can change without touching code. All checks are heuristics: the PII
shapes (``NNN-NNN-NNNN`` phones, ``NNN-NN-NNNN`` government ids, emails, a
number followed by one word and a street suffix) both over- and under-match,
and substring matching flags words inside longer words ("hate" in
"whatever"). That is accepted behaviour.
"""
from __future__ import annotations

import json
import os
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import List, Optional, Tuple

from ..models.moderation import ScanResult

_DEFAULT_PATH = os.path.join(os.path.dirname(os.path.dirname(__file__)), "rules", "lexicon.json")

# Transcription engines emit typographic apostrophes ("can’t go on")
_APOSTROPHES = str.maketrans({"’": "'", "‘": "'", "ʼ": "'"})


@dataclass(frozen=True)
class Lexicon:
    risky_terms: Tuple[str, ...]
    self_harm_phrases: Tuple[str, ...]
    pii_patterns: Tuple[Tuple[str, re.Pattern], ...]


def _normalize_terms(raw: List[str]) -> Tuple[str, ...]:
    return tuple(t.strip().lower().translate(_APOSTROPHES) for t in raw if t and t.strip())


@lru_cache(maxsize=8)
def load_lexicon(path: Optional[str] = None) -> Lexicon:
    """Load and compile the lexicon at ``path`` (bundled file when None).

    Raises on a missing or malformed file: an empty policy would publish
    everything, so callers must treat a load failure as a moderation error.
    """
    with open(path or _DEFAULT_PATH, "r", encoding="utf-8") as f:
        data = json.load(f)

    patterns: List[Tuple[str, re.Pattern]] = []
    for entry in data.get("pii_patterns") or []:
        flags = re.I if entry.get("ignore_case") else 0
        patterns.append((entry.get("name", "pii"), re.compile(entry["pattern"], flags)))

    return Lexicon(
        risky_terms=_normalize_terms(data.get("risky_terms") or []),
        self_harm_phrases=_normalize_terms(data.get("self_harm_phrases") or []),
        pii_patterns=tuple(patterns),
    )


def _contains_any(text: str, terms: Tuple[str, ...]) -> bool:
    return any(t in text for t in terms)


def find_pii(text: str, lexicon: Lexicon) -> List[str]:
    """Names of the PII patterns that match ``text``."""
    return [name for name, pat in lexicon.pii_patterns if pat.search(text)]


def scan(text: str, lexicon: Optional[Lexicon] = None) -> ScanResult:
    lex = lexicon or load_lexicon()
    raw = text or ""
    if not raw.strip():
        return ScanResult()
    lowered = raw.lower().translate(_APOSTROPHES)
    return ScanResult(
        has_risky=_contains_any(lowered, lex.risky_terms),
        has_pii=bool(find_pii(raw, lex)),
        has_self_harm=_contains_any(lowered, lex.self_harm_phrases),
    )
