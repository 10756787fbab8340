from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Protocol

from .errors import AnonymizationFailure
from .logging_utils import get_logger
from .matcher import DEFAULT_TIMEOUT, Match, PatternMatcher
from .roundtrip import de_anonymize, re_anonymize, round_trip
from .rules import Rule
from .tokens import TokenManager


class RuleProvider(Protocol):
    def load_rules(self) -> List[Rule]:
        ...


class StaticRules:
    """A fixed rule list, for callers that do not keep rules in a rulesheet."""

    def __init__(self, rules: Iterable[Rule]):
        self._rules = [rule.copy() for rule in rules]

    def load_rules(self) -> List[Rule]:
        return [rule.copy() for rule in self._rules if rule.enabled and not rule.is_empty()]


@dataclass
class AnonymizationStats:
    total_matches: int = 0
    per_pattern_counts: Dict[str, int] = field(default_factory=dict)


@dataclass
class AnonymizationResult:
    original: str
    anonymized: str
    mappings: Dict[str, str]
    stats: AnonymizationStats

    def to_dict(self) -> dict:
        return {
            "anonymized": self.anonymized,
            "mappings": dict(self.mappings),
            "stats": {
                "total_matches": self.stats.total_matches,
                "per_pattern_counts": dict(self.stats.per_pattern_counts),
            },
        }


class AnonymizationEngine:
    def __init__(
        self,
        rule_source: RuleProvider,
        token_manager: Optional[TokenManager] = None,
        regex_timeout: Optional[float] = DEFAULT_TIMEOUT,
    ):
        self.rule_source = rule_source
        self.token_manager = token_manager or TokenManager()
        self.regex_timeout = regex_timeout
        self._logger = get_logger("prompthider.engine")

    def _build_matcher(self) -> PatternMatcher:
        # Rebuilt on every call so rulesheet edits apply immediately.
        rules = self.rule_source.load_rules()
        return PatternMatcher(timeout=self.regex_timeout).build(rules)

    def detect_patterns(self, text: str) -> List[Match]:
        """
        Return the matches anonymize() would replace, without touching any
        token mapping or counter.
        """
        return self._build_matcher().find_matches(text)

    def anonymize(self, text: str) -> AnonymizationResult:
        """
        Replace every rule match in text with its stable token.

        Matches are spliced in descending start order so that replacing one
        span never shifts the offsets of spans still to be processed. Any
        failure raises AnonymizationFailure and no partially anonymized text
        is returned; the caller must not send the original text instead.
        """
        try:
            matches = self._build_matcher().find_matches(text)
            anonymized = text
            mappings: Dict[str, str] = {}
            stats = AnonymizationStats(total_matches=len(matches))

            for match in sorted(matches, key=lambda m: m.start, reverse=True):
                token = self.token_manager.issue_token(
                    match.replacement, match.matched_text
                )
                mappings[match.matched_text] = token
                anonymized = anonymized[: match.start] + token + anonymized[match.end :]
                stats.per_pattern_counts[match.pattern] = (
                    stats.per_pattern_counts.get(match.pattern, 0) + 1
                )
        except Exception as exc:
            self._logger.error("anonymization failed: %s", type(exc).__name__)
            raise AnonymizationFailure(
                f"Anonymization failed ({type(exc).__name__}); text was not anonymized."
            ) from exc

        self._logger.info(
            "anonymized text",
            extra={
                "total_matches": stats.total_matches,
                "distinct_literals": len(mappings),
            },
        )
        return AnonymizationResult(
            original=text, anonymized=anonymized, mappings=mappings, stats=stats
        )

    def de_anonymize(self, text: str) -> str:
        return de_anonymize(text, self.token_manager)

    def re_anonymize(self, text: str) -> str:
        return re_anonymize(text, self.token_manager)

    def round_trip(self, text: str, action: Callable[[str], str]) -> str:
        return round_trip(text, action, self.token_manager)
