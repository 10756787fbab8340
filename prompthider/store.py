from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .tokens import StateStore


class YamlStateStore(StateStore):
    """
    Token state kept in one YAML file per rulesheet.

    Used by the CLI and web hosts so mappings survive between processes.
    The file holds real literals, so it is written owner-readable only.
    """

    def __init__(self, state_dir: str, rulesheet_name: str):
        self.path = Path(state_dir) / f"{rulesheet_name}.mappings.yaml"

    def load(self) -> Optional[Dict[str, Any]]:
        if not self.path.exists():
            return None
        return yaml.safe_load(self.path.read_text(encoding="utf-8")) or None

    def save(self, state: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(".tmp")
        tmp_path.write_text(yaml.safe_dump(state, sort_keys=True), encoding="utf-8")
        os.chmod(tmp_path, 0o600)
        os.replace(tmp_path, self.path)
