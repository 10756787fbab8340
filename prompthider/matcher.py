"""
Rule-driven pattern matching over raw text.

The matcher compiles a list of (pattern, replacement) rules and returns the
non-overlapping matches found in a text. When two rules could match the same
span the rule with the longer pattern source wins; this is a deterministic
stand-in for "most specific rule wins" and a short but semantically precise
pattern will lose to a longer, looser one. Rules of equal pattern length keep
their rule-set order.
"""

from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Optional, Tuple, Union

import regex

from .errors import RuleCompilationError
from .logging_utils import get_logger
from .rules import Rule

# Seconds a single pattern may spend scanning one text before it is abandoned.
DEFAULT_TIMEOUT = 1.0

logger = get_logger("prompthider.matcher")

RuleLike = Union[Rule, Mapping[str, Any]]


@dataclass(frozen=True)
class Match:
    pattern: str
    matched_text: str
    start: int
    end: int
    replacement: str

    def to_dict(self) -> dict:
        return {
            "pattern": self.pattern,
            "matched_text": self.matched_text,
            "start": self.start,
            "end": self.end,
            "replacement": self.replacement,
        }


@dataclass(frozen=True)
class CompiledRule:
    pattern: str
    replacement: str
    compiled: Any


@dataclass(frozen=True)
class SkippedRule:
    pattern: str
    replacement: str
    reason: str


def compile_pattern(pattern: str) -> Any:
    """Compile a rule pattern, raising RuleCompilationError when it is invalid."""
    try:
        return regex.compile(pattern)
    except (regex.error, TypeError, ValueError, OverflowError) as exc:
        raise RuleCompilationError(pattern, str(exc)) from exc


def compile_rule(rule: RuleLike) -> Union[CompiledRule, SkippedRule]:
    pattern, replacement = _pattern_and_replacement(rule)
    try:
        return CompiledRule(pattern, replacement, compile_pattern(pattern))
    except RuleCompilationError as exc:
        return SkippedRule(pattern, replacement, exc.reason)


def _pattern_and_replacement(rule: RuleLike) -> Tuple[str, str]:
    if isinstance(rule, Rule):
        return rule.pattern, rule.replacement
    return str(rule.get("pattern") or ""), str(rule.get("replacement") or "")


class _IntervalSet:
    """Sorted, pairwise disjoint [start, end) intervals."""

    def __init__(self) -> None:
        self._starts: List[int] = []
        self._ends: List[int] = []

    def overlaps(self, start: int, end: int) -> bool:
        i = bisect_right(self._starts, start)
        if i > 0 and self._ends[i - 1] > start:
            return True
        return i < len(self._starts) and self._starts[i] < end

    def add(self, start: int, end: int) -> None:
        i = bisect_right(self._starts, start)
        self._starts.insert(i, start)
        self._ends.insert(i, end)


class PatternMatcher:
    def __init__(self, timeout: Optional[float] = DEFAULT_TIMEOUT):
        self.timeout = timeout
        self.rules: List[CompiledRule] = []
        self.skipped: List[SkippedRule] = []

    def build(self, rules: Iterable[RuleLike]) -> "PatternMatcher":
        """
        Compile the rule set, replacing whatever was built before.

        Rules whose pattern does not compile are skipped with a warning; the
        remaining rules stay usable.
        """
        self.rules = []
        self.skipped = []
        for rule in rules:
            outcome = compile_rule(rule)
            if isinstance(outcome, SkippedRule):
                logger.warning(
                    "skipping rule with invalid regex %r: %s",
                    outcome.pattern,
                    outcome.reason,
                )
                self.skipped.append(outcome)
            else:
                self.rules.append(outcome)
        return self

    def find_matches(self, text: str) -> List[Match]:
        """
        Find all non-overlapping matches in text, sorted by start offset.

        Rules are evaluated longest-pattern-first; a candidate match is
        accepted only if it does not overlap any match accepted so far.
        A pattern that errors or times out is abandoned for this text, and
        the other patterns are still evaluated.
        """
        accepted: List[Match] = []
        taken = _IntervalSet()
        ordered = sorted(self.rules, key=lambda r: len(r.pattern), reverse=True)

        for rule in ordered:
            try:
                for found in rule.compiled.finditer(text, timeout=self.timeout):
                    start, end = found.span()
                    if start == end or taken.overlaps(start, end):
                        continue
                    taken.add(start, end)
                    accepted.append(
                        Match(
                            pattern=rule.pattern,
                            matched_text=found.group(0),
                            start=start,
                            end=end,
                            replacement=rule.replacement,
                        )
                    )
            except Exception as exc:
                logger.error(
                    "matching aborted for pattern %r: %s",
                    rule.pattern,
                    type(exc).__name__,
                )

        accepted.sort(key=lambda m: m.start)
        return accepted
