"""
High-level exports for the PromptHider anonymization engine.
"""

from .config import RuleSource, Rulesheet, Settings, load_rulesheet
from .engine import AnonymizationEngine, AnonymizationResult, StaticRules
from .errors import (
    AnonymizationFailure,
    PromptHiderError,
    RoundTripFailure,
    RuleCompilationError,
    RuleValidationError,
    RulesheetError,
)
from .matcher import Match, PatternMatcher
from .roundtrip import de_anonymize, re_anonymize, round_trip
from .rules import Rule
from .tokens import MemoryStateStore, StateStore, TokenManager
from .validator import ValidationResult, validate_rules

__all__ = [
    "AnonymizationEngine",
    "AnonymizationFailure",
    "AnonymizationResult",
    "Match",
    "MemoryStateStore",
    "PatternMatcher",
    "PromptHiderError",
    "RoundTripFailure",
    "Rule",
    "RuleCompilationError",
    "RuleSource",
    "RuleValidationError",
    "Rulesheet",
    "RulesheetError",
    "Settings",
    "StateStore",
    "StaticRules",
    "TokenManager",
    "ValidationResult",
    "de_anonymize",
    "load_rulesheet",
    "re_anonymize",
    "round_trip",
    "validate_rules",
]
