"""
Round-trip substitution.

Anonymized text is turned back into real values with de_anonymize() right
before an action that needs them, and whatever the action produces goes
through re_anonymize() before anyone untrusted sees it. round_trip() wraps
both steps around a callable.

Candidates are substituted longest-first so that a token which is a prefix
of another ('IP_1' and 'IP_10') cannot corrupt the longer one. Candidates are
matched as escaped literals in a single pass, so a value inserted by one
substitution is never rescanned by another.
"""

from __future__ import annotations

import re
from typing import Callable, Mapping

from .errors import RoundTripFailure
from .logging_utils import get_logger
from .tokens import TokenManager

logger = get_logger("prompthider.roundtrip")


def _substitute(text: str, table: Mapping[str, str]) -> str:
    if not text or not table:
        return text
    candidates = sorted((key for key in table if key), key=len, reverse=True)
    if not candidates:
        return text
    alternation = re.compile("|".join(re.escape(key) for key in candidates))
    return alternation.sub(lambda m: table[m.group(0)], text)


def de_anonymize(text: str, tokens: TokenManager) -> str:
    """Replace every known token in text with its literal."""
    return _substitute(text, tokens.reverse_snapshot())


def re_anonymize(text: str, tokens: TokenManager) -> str:
    """Replace every known literal in text with its token."""
    return _substitute(text, tokens.all_mappings())


def round_trip(text: str, action: Callable[[str], str], tokens: TokenManager) -> str:
    """
    Run action on the de-anonymized text and return its re-anonymized output.

    If the action raises, RoundTripFailure carries only the exception type.
    Exception text routinely quotes its arguments through repr(), which
    escapes literals past the reach of re_anonymize(), so it is dropped.
    """
    real = de_anonymize(text, tokens)
    try:
        output = action(real)
    except Exception as exc:
        reason = type(exc).__name__
        logger.warning("round-trip action failed: %s", reason)
        raise RoundTripFailure(f"Action failed ({reason}).") from None
    return re_anonymize(output or "", tokens)
