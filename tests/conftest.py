from __future__ import annotations

from pathlib import Path
from typing import Generator

import pytest
import yaml

from prompthider import AnonymizationEngine, RuleSource, TokenManager
from prompthider.tokens import MemoryStateStore

IP_PATTERN = r"\b(?:\d{1,3}\.){3}\d{1,3}\b"
EMAIL_PATTERN = r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b"


def write_rulesheet(path: Path, rules: list, **settings) -> Path:
    data = {"version": "1", "enabled": True, **settings, "rules": rules}
    path.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
    return path


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """
    Keep every test away from the developer's own rulesheet and state.
    """
    monkeypatch.setenv("PROMPTHIDER_RULESHEET", str(tmp_path / "test.prompthider.yaml"))
    monkeypatch.setenv("PROMPTHIDER_STATE_DIR", str(tmp_path / "state"))
    monkeypatch.delenv("PROMPTHIDER_REGEX_TIMEOUT", raising=False)


@pytest.fixture
def make_rulesheet(tmp_path: Path):
    """
    Factory writing a rulesheet into the test's temporary directory.
    """

    def _make(rules: list, name: str = "test.prompthider.yaml", **settings) -> Path:
        return write_rulesheet(tmp_path / name, rules, **settings)

    return _make


@pytest.fixture
def rulesheet(tmp_path: Path) -> Path:
    """
    A rulesheet with an IP rule, an email rule and a custom project name.
    """
    return write_rulesheet(
        tmp_path / "test.prompthider.yaml",
        [
            {"id": "ip", "pattern": IP_PATTERN, "replacement": "IP_{index}"},
            {"id": "email", "pattern": EMAIL_PATTERN, "replacement": "email"},
            {"id": "project", "pattern": r"\bacme-prod\b", "replacement": "PROJECT"},
        ],
    )


@pytest.fixture
def engine(rulesheet: Path) -> AnonymizationEngine:
    return AnonymizationEngine(
        RuleSource(str(rulesheet)), TokenManager(MemoryStateStore())
    )


@pytest.fixture
def app(engine: AnonymizationEngine) -> Generator:
    """
    Provide the Flask app wired to the test engine.
    """
    from web_app import app as flask_app

    flask_app.config["ENGINE"] = engine
    yield flask_app
    flask_app.config.pop("ENGINE", None)


@pytest.fixture
def client(app) -> Generator:
    """
    Provide a Flask test client.
    """
    with app.test_client() as client:
        yield client
