from __future__ import annotations

import pytest
from typer.testing import CliRunner

from cli import _ensure_local_path, app
from prompthider.engine import AnonymizationEngine
from prompthider.errors import AnonymizationFailure

runner = CliRunner()


def test_ensure_local_path_rejects_url() -> None:
    """
    The CLI should never accept remote URLs as rulesheet or input paths.
    """
    with pytest.raises(Exception):
        _ensure_local_path("http://example.com/rules.yaml")


def test_ensure_local_path_accepts_local() -> None:
    """
    Local file paths that do not look like URLs should be accepted.
    """
    _ensure_local_path("/tmp/rules.yaml")
    _ensure_local_path("relative.prompthider.yaml")


def test_anonymize_failure_prints_nothing_of_the_input(
    rulesheet, monkeypatch: pytest.MonkeyPatch
) -> None:
    """
    When anonymization fails the CLI must exit non-zero without echoing the
    original text as a fallback.
    """

    def _fail(self, text):
        raise AnonymizationFailure("Anonymization failed (RuntimeError); text was not anonymized.")

    monkeypatch.setattr(AnonymizationEngine, "anonymize", _fail)

    result = runner.invoke(app, ["anonymize", "--text", "db at 10.1.2.3"])

    assert result.exit_code == 2
    assert "10.1.2.3" not in result.output


def test_broken_rulesheet_blocks_anonymization(make_rulesheet) -> None:
    path = make_rulesheet([])
    path.write_text("rules: not-a-list\n")

    result = runner.invoke(app, ["anonymize", "--text", "db at 10.1.2.3"])

    assert result.exit_code == 2
    assert "10.1.2.3" not in result.output


def test_mappings_hide_real_values_by_default(rulesheet) -> None:
    runner.invoke(app, ["anonymize", "--text", "db at 10.1.2.3"])

    hidden = runner.invoke(app, ["mappings"])
    revealed = runner.invoke(app, ["mappings", "--reveal"])

    assert "IP_1" in hidden.output
    assert "10.1.2.3" not in hidden.output
    assert "10.1.2.3" in revealed.output
