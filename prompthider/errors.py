from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .validator import ValidationResult


class PromptHiderError(Exception):
    """Base exception for all PromptHider errors."""


class RulesheetError(PromptHiderError):
    """Raised when a rulesheet file cannot be parsed into a valid structure."""


class RuleCompilationError(PromptHiderError):
    """
    A single rule's pattern is not a valid regular expression.

    The matcher recovers from this locally by skipping the rule; the
    exception only surfaces when a caller compiles a rule on its own.
    """

    def __init__(self, pattern: str, reason: str):
        super().__init__(f"Invalid regex {pattern!r}: {reason}")
        self.pattern = pattern
        self.reason = reason


class RuleValidationError(PromptHiderError):
    """Raised when a rule set with blocking validation errors is saved."""

    def __init__(self, result: "ValidationResult"):
        super().__init__("; ".join(result.errors) or "Rule validation failed.")
        self.result = result


class AnonymizationFailure(PromptHiderError):
    """
    Anonymization could not complete.

    Callers must treat this as "do not send this text anywhere" and must
    never fall back to the original text.
    """


class RoundTripFailure(PromptHiderError):
    """
    The action run on de-anonymized text failed.

    The message names only the failing exception type; it never carries
    de-anonymized content.
    """
