from __future__ import annotations

import re
from dataclasses import asdict, dataclass, replace
from typing import Any, Dict, Optional

from .errors import RulesheetError

# Letters, digits and _ - : @ . / { }, starting with a letter. A label in
# this grammar can appear verbatim in generated text.
REPLACEMENT_LABEL = re.compile(r"^[A-Za-z][A-Za-z0-9_@:\-./{}]*$")


@dataclass
class Rule:
    pattern: str
    replacement: str
    id: str = ""
    enabled: bool = True
    description: Optional[str] = None
    type: Optional[str] = None

    @staticmethod
    def from_dict(raw: Dict[str, Any], index: int = 0) -> "Rule":
        enabled = raw.get("enabled", True)
        if not isinstance(enabled, bool):
            raise RulesheetError(f"Rule {index + 1}: 'enabled' must be a boolean.")
        return Rule(
            id=str(raw.get("id") or f"rule-{index + 1}"),
            pattern=str(raw.get("pattern") or ""),
            replacement=str(raw.get("replacement") or ""),
            enabled=enabled,
            description=raw.get("description"),
            type=raw.get("type"),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        return {key: value for key, value in data.items() if value is not None}

    def copy(self) -> "Rule":
        return replace(self)

    def is_empty(self) -> bool:
        return not self.pattern.strip() and not self.replacement.strip()
