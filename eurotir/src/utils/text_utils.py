"""
Eurotir Assist - Text Utilities
===============================
Helper functions for question cleaning, tokenisation and cache-key
normalisation.

These utilities are consumed by the ``QueryAnalyzer`` and the
``SupportAssistant`` and should remain stateless and side-effect-free.
"""

from __future__ import annotations

import re
import unicodedata

# ── Non-printable character pattern ────────────────────────────────────
# Matches control characters (C0/C1) including \n, \r, \t, plus BOM,
# zero-width characters, soft hyphens and directional marks.
_NON_PRINTABLE_RE = re.compile(r"[\x00-\x1f\x7f-\x9f\ufeff\u200b\u200c\u200d\u200e\u200f\u00ad\u2060\ufffe]")
_NON_WORD_RE = re.compile(r"[^\w\s]")
_WHITESPACE_RE = re.compile(r"\s+")

# Tokens this short carry no keyword signal ("to", "a", "is", ...)
_MIN_TOKEN_LENGTH = 3


# ── Public API ─────────────────────────────────────────────────────────

def clean_text(text: str) -> str:
    """
    Sanitise a raw customer question before analysis.

    Steps:
        1. Unicode NFC normalisation.
        2. Replace control / zero-width characters with a space.
        3. Collapse runs of whitespace into a single space and trim.

    Args:
        text: Raw question text as received from the caller.

    Returns:
        A single-line, normalised question.
    """
    text = unicodedata.normalize("NFC", text)
    text = _NON_PRINTABLE_RE.sub(" ", text)
    return _WHITESPACE_RE.sub(" ", text).strip()


def tokenize(text: str) -> list[str]:
    """
    Lower-case *text*, strip non-word characters, split on whitespace
    and drop tokens of two characters or fewer.

    Used only for keyword-boost matching, never for the embedding call.

    Examples::

        "How do I book a collection?" → ["how", "book", "collection"]
        "Don't panic" → ["dont", "panic"]
    """
    stripped = _NON_WORD_RE.sub("", text.casefold())
    return [token for token in stripped.split() if len(token) >= _MIN_TOKEN_LENGTH]


def normalize_cache_key(text: str) -> str:
    """Case-fold, trim and collapse whitespace so trivially different spellings share a cache slot."""
    return _WHITESPACE_RE.sub(" ", text.casefold()).strip()
