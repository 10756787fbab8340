"""
Built-in rule library.

These rules are appended to a rulesheet's own rules when the rulesheet sets
``use_builtin_patterns``. Their replacement labels are type names, so tokens
are minted with the per-type naming schemes of the token manager
(``IP_1``, ``USER_A@domain.tld``, ``API_KEY_v1``, ...).
"""

from __future__ import annotations

from typing import List

from .rules import Rule

BUILTIN_RULES: List[Rule] = [
    Rule(
        id="builtin-ipv4",
        type="ip",
        pattern=r"\b(?:\d{1,3}\.){3}\d{1,3}\b",
        replacement="ip",
        description="IPv4 addresses",
    ),
    Rule(
        id="builtin-ipv6",
        type="ip",
        pattern=r"\b(?:[A-Fa-f0-9]{1,4}:){7}[A-Fa-f0-9]{1,4}\b",
        replacement="ip",
        description="Fully expanded IPv6 addresses",
    ),
    Rule(
        id="builtin-email",
        type="email",
        pattern=r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b",
        replacement="email",
        description="Email addresses",
    ),
    Rule(
        id="builtin-uuid",
        type="uuid",
        pattern=r"\b[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}\b",
        replacement="uuid",
        description="UUIDs",
    ),
    Rule(
        id="builtin-aws-access-key",
        type="api-key",
        pattern=r"\b(?:AKIA|ASIA)[0-9A-Z]{16}\b",
        replacement="api-key",
        description="AWS access key ids",
    ),
    Rule(
        id="builtin-github-token",
        type="api-key",
        pattern=r"\bgh[pousr]_[A-Za-z0-9]{36,}\b",
        replacement="api-key",
        description="GitHub tokens",
    ),
    Rule(
        id="builtin-openai-key",
        type="api-key",
        pattern=r"\bsk-[A-Za-z0-9_-]{20,}\b",
        replacement="api-key",
        description="OpenAI-style secret keys",
    ),
    Rule(
        id="builtin-jwt",
        type="jwt",
        pattern=r"\beyJ[A-Za-z0-9_-]+\.eyJ[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+",
        replacement="jwt",
        description="JSON web tokens",
    ),
    Rule(
        id="builtin-private-key",
        type="private-key",
        pattern=r"-----BEGIN (?:[A-Z]+ )?PRIVATE KEY-----[\s\S]+?-----END (?:[A-Z]+ )?PRIVATE KEY-----",
        replacement="private-key",
        description="PEM encoded private keys",
    ),
]


def builtin_rules() -> List[Rule]:
    """Return fresh copies so callers can never mutate the library."""
    return [rule.copy() for rule in BUILTIN_RULES]
