"""
Eurotir Assist - Query Analyzer
===============================
Derives cheap, deterministic signals from the raw question text:

``RuleSet``
    Ordered ``(label, regex)`` table evaluated first-match-wins.  Rule
    sets are plain values — swap or reorder them without touching the
    scoring engine.

``QueryAnalyzer``
    Produces a ``QueryAnalysis``: keyword tokens, detected intent,
    procedural flag and department (contact routing) tag.

The analyzer is pure: no I/O, no shared state, safe to call from any
number of concurrent requests.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable

from eurotir.config.query_rules import DEPARTMENT_RULES, INTENT_RULES, PROCEDURAL_ANSWER_RE, PROCEDURAL_QUERY_PATTERNS
from eurotir.src.utils.logger import get_logger
from eurotir.src.utils.text_utils import tokenize

logger = get_logger(__name__)


# ══════════════════════════════════════════════════════════════════════
#  RULE SET
# ══════════════════════════════════════════════════════════════════════


class RuleSet:
    """
    Ordered list of named regex rules; the first matching rule wins.

    Parameters
    ----------
    rules
        ``(label, pattern)`` pairs.  Patterns may be strings (compiled
        case-insensitively) or precompiled ``re.Pattern`` objects.
    """

    __slots__ = ("_rules",)

    def __init__(self, rules: Iterable[tuple[str, str | re.Pattern[str]]]) -> None:
        self._rules: tuple[tuple[str, re.Pattern[str]], ...] = tuple((label, re.compile(pattern, re.IGNORECASE) if isinstance(pattern, str) else pattern) for label, pattern in rules)


    def match(self, text: str) -> str | None:
        """Return the label of the first rule matching *text*, else ``None``."""
        for label, pattern in self._rules:
            if pattern.search(text):
                return label
        return None


    @property
    def labels(self) -> list[str]:
        return [label for label, _ in self._rules]


    def with_rule(self, label: str, pattern: str | re.Pattern[str], position: int | None = None) -> RuleSet:
        """Return a copy with an extra rule inserted at *position* (default: last)."""
        rules = list(self._rules)
        compiled = re.compile(pattern, re.IGNORECASE) if isinstance(pattern, str) else pattern
        rules.insert(len(rules) if position is None else position, (label, compiled))
        return RuleSet(rules)


    def reordered(self, labels: Iterable[str]) -> RuleSet:
        """
        Return a copy whose rules follow *labels* order.

        Labels not mentioned keep their relative order after the named ones.
        """
        wanted = list(labels)
        by_label = {label: (label, pattern) for label, pattern in self._rules}
        head = [by_label[label] for label in wanted if label in by_label]
        tail = [rule for rule in self._rules if rule[0] not in wanted]
        return RuleSet(head + tail)


    def __len__(self) -> int:
        return len(self._rules)


    def __repr__(self) -> str:
        return f"RuleSet({self.labels})"


DEFAULT_INTENT_RULES = RuleSet(INTENT_RULES)
DEFAULT_DEPARTMENT_RULES = RuleSet(DEPARTMENT_RULES)
_PROCEDURAL_QUERY_RES = tuple(re.compile(p, re.IGNORECASE) for p in PROCEDURAL_QUERY_PATTERNS)


def has_procedural_markers(text: str) -> bool:
    """True if *text* reads like a sequence of steps ("first… then…")."""
    return bool(PROCEDURAL_ANSWER_RE.search(text))


# ══════════════════════════════════════════════════════════════════════
#  ANALYZER
# ══════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class QueryAnalysis:
    """Signals derived from one question."""

    text: str
    tokens: tuple[str, ...]
    intent: str | None
    is_procedural: bool
    department: str | None


class QueryAnalyzer:
    """
    Stateless analyzer for customer questions.

    Parameters
    ----------
    intent_rules
        Ordered rule set for intent detection.
    department_rules
        Ordered rule set for department / contact routing.  The default
        table checks ``sales`` first.
    """

    __slots__ = ("_intent_rules", "_department_rules")

    def __init__(self, intent_rules: RuleSet | None = None, department_rules: RuleSet | None = None) -> None:
        self._intent_rules = intent_rules if intent_rules is not None else DEFAULT_INTENT_RULES
        self._department_rules = department_rules if department_rules is not None else DEFAULT_DEPARTMENT_RULES


    def analyze(self, text: str) -> QueryAnalysis:
        analysis = QueryAnalysis(text=text, tokens=tuple(tokenize(text)), intent=self.detect_intent(text), is_procedural=self.is_procedural(text), department=self.detect_department(text))
        logger.debug("[ANALYZE] intent=%s, procedural=%s, department=%s, tokens=%s", analysis.intent, analysis.is_procedural, analysis.department, list(analysis.tokens))
        return analysis


    def detect_intent(self, text: str) -> str | None:
        return self._intent_rules.match(text)


    def detect_department(self, text: str) -> str | None:
        return self._department_rules.match(text)


    @staticmethod
    def is_procedural(text: str) -> bool:
        """True for process-oriented questions ("how to…", "steps", "set up", …)."""
        return any(pattern.search(text) for pattern in _PROCEDURAL_QUERY_RES)
