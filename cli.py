from __future__ import annotations

import re
from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv

from prompthider import AnonymizationEngine, RuleSource, Settings, TokenManager
from prompthider.config import update_ignore_files
from prompthider.errors import AnonymizationFailure, RulesheetError
from prompthider.report import (
    mappings_table,
    matches_table,
    stats_table,
    validation_report,
)
from prompthider.store import YamlStateStore
from prompthider.tokens import MemoryStateStore
from prompthider.validator import validate_rules

app = typer.Typer(help="Anonymize sensitive literals before text leaves your machine")

_URL_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*://")

RulesheetOption = typer.Option(
    None, "--rulesheet", "-r", help="Rulesheet (YAML/JSON); defaults to $PROMPTHIDER_RULESHEET"
)
TextOption = typer.Option(None, "--text", "-t", help="Text to process")
InputOption = typer.Option(None, "--input", "-i", help="Read text from this file")


def _ensure_local_path(path: str) -> str:
    """Reject anything that looks like a URL; only local files are read."""
    if _URL_RE.match(path):
        raise typer.BadParameter(f"Only local paths are supported: {path}")
    return path


def _settings() -> Settings:
    # Load environment variables from a .env file if present.
    load_dotenv()
    return Settings.from_env()


def _rule_source(settings: Settings, rulesheet: Optional[str]) -> RuleSource:
    return RuleSource(_ensure_local_path(rulesheet or settings.rulesheet))


def _build_engine(rulesheet: Optional[str]) -> AnonymizationEngine:
    settings = _settings()
    source = _rule_source(settings, rulesheet)
    try:
        sheet = source.load()
    except RulesheetError as exc:
        typer.echo(f"Rulesheet error: {exc}", err=True)
        raise typer.Exit(code=2)
    if sheet.token_consistency:
        store = YamlStateStore(settings.state_dir, source.name)
    else:
        store = MemoryStateStore()
    return AnonymizationEngine(
        source, TokenManager(store), regex_timeout=settings.regex_timeout
    )


def _read_input(text: Optional[str], input: Optional[str]) -> str:
    if text is not None:
        return text
    if input:
        return Path(_ensure_local_path(input)).read_text(encoding="utf-8")
    return typer.get_text_stream("stdin").read()


def _ignore_entry(path: str, root: Path, directory: bool = False) -> Optional[str]:
    """Path relative to root in ignore-file form, or None when outside root."""
    try:
        relative = Path(path).resolve().relative_to(root.resolve())
    except ValueError:
        return None
    entry = relative.as_posix()
    if entry == ".":
        return None
    return f"{entry}/" if directory else entry


@app.command()
def init(rulesheet: Optional[str] = RulesheetOption) -> None:
    """Create a default rulesheet and keep it and the token state out of VCS."""
    settings = _settings()
    source = _rule_source(settings, rulesheet)
    if source.initialize():
        typer.echo(f"Rulesheet created at {source.path}")
    else:
        typer.echo(f"Rulesheet already exists at {source.path}")

    root = Path.cwd()
    entries = [
        entry
        for entry in (
            _ignore_entry(source.path, root),
            _ignore_entry(settings.state_dir, root, directory=True),
        )
        if entry
    ]
    for changed in update_ignore_files(str(root), entries):
        typer.echo(f"Updated {changed.name}")


@app.command()
def validate(rulesheet: Optional[str] = RulesheetOption) -> None:
    """Check the rulesheet's rules for errors and overlaps."""
    source = _rule_source(_settings(), rulesheet)
    try:
        sheet = source.load()
    except RulesheetError as exc:
        typer.echo(f"Rulesheet error: {exc}", err=True)
        raise typer.Exit(code=2)
    result = validate_rules(sheet.rules)
    typer.echo(validation_report(result))
    if not result.valid:
        raise typer.Exit(code=1)


@app.command()
def detect(
    text: Optional[str] = TextOption,
    input: Optional[str] = InputOption,
    rulesheet: Optional[str] = RulesheetOption,
) -> None:
    """Show what would be anonymized, without issuing any tokens."""
    engine = _build_engine(rulesheet)
    typer.echo(matches_table(engine.detect_patterns(_read_input(text, input))))


@app.command()
def anonymize(
    text: Optional[str] = TextOption,
    input: Optional[str] = InputOption,
    rulesheet: Optional[str] = RulesheetOption,
    stats: bool = typer.Option(False, "--stats", help="Print match statistics to stderr"),
) -> None:
    """Print the anonymized text. Nothing is printed if anonymization fails."""
    engine = _build_engine(rulesheet)
    try:
        result = engine.anonymize(_read_input(text, input))
    except AnonymizationFailure as exc:
        typer.echo(f"{exc} Nothing was output.", err=True)
        raise typer.Exit(code=2)
    typer.echo(result.anonymized)
    if stats:
        typer.echo(stats_table(result), err=True)


@app.command()
def deanonymize(
    text: Optional[str] = TextOption,
    input: Optional[str] = InputOption,
    rulesheet: Optional[str] = RulesheetOption,
) -> None:
    """Replace tokens with the real values they stand for."""
    engine = _build_engine(rulesheet)
    typer.echo(engine.de_anonymize(_read_input(text, input)))


@app.command()
def reanonymize(
    text: Optional[str] = TextOption,
    input: Optional[str] = InputOption,
    rulesheet: Optional[str] = RulesheetOption,
) -> None:
    """Replace known real values with their tokens."""
    engine = _build_engine(rulesheet)
    typer.echo(engine.re_anonymize(_read_input(text, input)))


@app.command()
def mappings(
    rulesheet: Optional[str] = RulesheetOption,
    reveal: bool = typer.Option(False, "--reveal", help="Show the real values"),
) -> None:
    """List the active token mappings."""
    engine = _build_engine(rulesheet)
    typer.echo(mappings_table(engine.token_manager.all_mappings(), reveal=reveal))


@app.command()
def clear(
    rulesheet: Optional[str] = RulesheetOption,
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
) -> None:
    """Forget all token mappings for the rulesheet."""
    if not yes:
        typer.confirm("Are you sure you want to clear all token mappings?", abort=True)
    engine = _build_engine(rulesheet)
    engine.token_manager.clear()
    typer.echo("Token mappings cleared")


if __name__ == "__main__":
    app()
