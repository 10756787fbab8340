from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .errors import RuleValidationError, RulesheetError
from .logging_utils import get_logger
from .patterns import builtin_rules
from .rules import Rule
from .validator import validate_rules

DEFAULT_RULESHEET = ".prompthider.yaml"
RULESHEET_VERSION = "1"

_BOOL_FIELDS = (
    "enabled",
    "token_consistency",
    "auto_anonymize",
    "show_preview",
    "use_builtin_patterns",
)

logger = get_logger("prompthider.config")


@dataclass
class Rulesheet:
    """
    A rulesheet file's contents.

    auto_anonymize and show_preview are editor-integration preferences. The
    engine does not act on them; they are kept on save and reported by the
    web API so a client UI can honour them.
    """

    version: str = RULESHEET_VERSION
    enabled: bool = True
    rules: List[Rule] = field(default_factory=list)
    token_consistency: bool = True
    auto_anonymize: bool = False
    show_preview: bool = True
    use_builtin_patterns: bool = False

    @staticmethod
    def from_dict(raw: Dict[str, Any]) -> "Rulesheet":
        if not isinstance(raw, dict):
            raise RulesheetError("Rulesheet must be a mapping.")
        rules_raw = raw.get("rules") or []
        if not isinstance(rules_raw, list):
            raise RulesheetError("Rulesheet 'rules' must be a list.")
        for name in _BOOL_FIELDS:
            if name in raw and not isinstance(raw[name], bool):
                raise RulesheetError(f"Rulesheet field '{name}' must be a boolean.")

        rules = []
        for index, item in enumerate(rules_raw):
            if not isinstance(item, dict):
                raise RulesheetError(f"Rule {index + 1} must be a mapping.")
            rules.append(Rule.from_dict(item, index))

        defaults = Rulesheet()
        return Rulesheet(
            version=str(raw.get("version", RULESHEET_VERSION)),
            rules=rules,
            **{name: raw.get(name, getattr(defaults, name)) for name in _BOOL_FIELDS},
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"version": self.version}
        data.update({name: getattr(self, name) for name in _BOOL_FIELDS})
        data["rules"] = [rule.to_dict() for rule in self.rules]
        return data


@dataclass
class Settings:
    """Host settings read from the environment (and a .env file, via the hosts)."""

    rulesheet: str = DEFAULT_RULESHEET
    state_dir: str = ".prompthider/state"
    regex_timeout: Optional[float] = 1.0

    @staticmethod
    def from_env() -> "Settings":
        timeout = os.getenv("PROMPTHIDER_REGEX_TIMEOUT")
        return Settings(
            rulesheet=os.getenv("PROMPTHIDER_RULESHEET", DEFAULT_RULESHEET),
            state_dir=os.getenv("PROMPTHIDER_STATE_DIR", ".prompthider/state"),
            regex_timeout=float(timeout) if timeout else 1.0,
        )


def load_rulesheet(path: Optional[str]) -> Rulesheet:
    """
    Load a rulesheet from YAML or JSON.

    A missing path or file yields the default (empty) rulesheet. A file that
    exists but does not parse into the expected structure raises
    RulesheetError rather than silently returning no rules.
    """
    if not path or not Path(path).exists():
        return Rulesheet()
    try:
        data = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise RulesheetError(f"Cannot parse rulesheet {path}: {exc}") from exc
    if not data:
        return Rulesheet()
    return Rulesheet.from_dict(data)


def dump_rulesheet(sheet: Rulesheet, path: str) -> None:
    out_path = Path(path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    if out_path.suffix.lower() == ".json":
        out_path.write_text(json.dumps(sheet.to_dict(), indent=2), encoding="utf-8")
    else:
        out_path.write_text(
            yaml.safe_dump(sheet.to_dict(), sort_keys=False), encoding="utf-8"
        )


class RuleSource:
    """
    Rule-management collaborator backed by a rulesheet file.

    Rules are re-read from disk on every load_rules() call, so edits to the
    rulesheet take effect on the next anonymization without any explicit
    cache invalidation.
    """

    def __init__(self, path: str = DEFAULT_RULESHEET):
        self.path = path

    @property
    def name(self) -> str:
        filename = Path(self.path).name
        for suffix in (".prompthider.yaml", ".prompthider.yml", ".prompthider.json"):
            if filename.endswith(suffix) and filename != suffix:
                return filename[: -len(suffix)]
        return Path(self.path).stem.lstrip(".") or "default"

    def exists(self) -> bool:
        return Path(self.path).exists()

    def load(self) -> Rulesheet:
        return load_rulesheet(self.path)

    def load_rules(self) -> List[Rule]:
        sheet = self.load()
        rules = [rule for rule in sheet.rules if rule.enabled and not rule.is_empty()]
        if sheet.use_builtin_patterns:
            rules.extend(builtin_rules())
        return rules

    def save_rules(self, rules: List[Rule]) -> None:
        """
        Replace the rulesheet's rules, keeping its other settings.

        Blocking validation errors raise RuleValidationError and nothing is
        written; warnings are logged and do not block.
        """
        if not self.exists():
            raise RulesheetError(f"Rulesheet not found: {self.path}")
        result = validate_rules(rules)
        if not result.valid:
            raise RuleValidationError(result)
        for warning in result.warnings:
            logger.warning("rule warning: %s", warning)

        sheet = self.load()
        sheet.rules = [rule.copy() for rule in rules]
        dump_rulesheet(sheet, self.path)
        logger.info("saved %d rules to %s", len(rules), self.path)

    def initialize(self) -> bool:
        """Write a default rulesheet if none exists. Returns True when created."""
        if self.exists():
            return False
        dump_rulesheet(Rulesheet(), self.path)
        logger.info("initialized rulesheet %s", self.path)
        return True


IGNORE_FILES = (".gitignore", ".copilotignore")


def update_ignore_files(root: str, entries: List[str]) -> List[Path]:
    """
    Append entries to the ignore files that already exist under root.

    Rulesheets hold project-specific patterns and the state directory holds
    real literals; neither should be committed or shown to an assistant.
    Files are never created, and entries already listed are not repeated.
    Returns the files that were changed.
    """
    changed = []
    for name in IGNORE_FILES:
        ignore_path = Path(root) / name
        if not ignore_path.is_file():
            continue
        content = ignore_path.read_text(encoding="utf-8")
        present = {line.strip() for line in content.splitlines()}
        missing = [entry for entry in entries if entry not in present]
        if not missing:
            continue
        prefix = "" if not content or content.endswith("\n") else "\n"
        with ignore_path.open("a", encoding="utf-8") as handle:
            handle.write(prefix + "".join(f"{entry}\n" for entry in missing))
        changed.append(ignore_path)
        logger.info("added %d entries to %s", len(missing), ignore_path)
    return changed
