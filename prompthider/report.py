from __future__ import annotations

from typing import Iterable, List, Mapping

from tabulate import tabulate

from .engine import AnonymizationResult
from .matcher import Match
from .validator import ValidationResult


def stats_table(result: AnonymizationResult) -> str:
    if not result.stats.total_matches:
        return "No sensitive values detected."
    rows = [
        [pattern, count]
        for pattern, count in sorted(
            result.stats.per_pattern_counts.items(), key=lambda item: -item[1]
        )
    ]
    table = tabulate(rows, headers=["Pattern", "Matches"], tablefmt="github")
    return (
        f"{result.stats.total_matches} match(es), "
        f"{len(result.mappings)} distinct value(s) anonymized.\n\n{table}"
    )


def mappings_table(mappings: Mapping[str, str], reveal: bool = False) -> str:
    """
    Tabulate token mappings.

    Literals are only shown when reveal=True; by default the table lists
    tokens and the length of the value they stand for.
    """
    if not mappings:
        return "No token mappings."
    rows = []
    for literal, token in sorted(mappings.items(), key=lambda item: item[1]):
        rows.append([token, literal if reveal else f"<{len(literal)} chars>"])
    return tabulate(rows, headers=["Token", "Value"], tablefmt="github")


def matches_table(matches: Iterable[Match]) -> str:
    rows: List[list] = [
        [m.start, m.end, m.replacement, m.pattern] for m in matches
    ]
    if not rows:
        return "No sensitive values detected."
    return tabulate(
        rows, headers=["Start", "End", "Replacement", "Pattern"], tablefmt="github"
    )


def validation_report(result: ValidationResult) -> str:
    lines = ["Rules are valid." if result.valid else "Rules are INVALID."]
    for error in result.errors:
        lines.append(f"  error: {error}")
    for warning in result.warnings:
        lines.append(f"  warning: {warning}")
    return "\n".join(lines)
