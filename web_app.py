from __future__ import annotations

import os
import threading

from dotenv import load_dotenv
from flask import Flask, abort, jsonify, request

from prompthider import AnonymizationEngine, RuleSource, Settings, TokenManager
from prompthider.errors import AnonymizationFailure, RuleValidationError, RulesheetError
from prompthider.rules import Rule
from prompthider.store import YamlStateStore
from prompthider.validator import validate_rules


load_dotenv()  # Load PROMPTHIDER_* settings from a .env file if present

app = Flask(__name__)
app.config["MAX_CONTENT_LENGTH"] = 5 * 1024 * 1024  # 5 MB request limit

_engine_lock = threading.Lock()


def get_engine() -> AnonymizationEngine:
    """
    Return the process-wide engine, creating it on first use.

    One engine (and so one token manager) serves every request, so the same
    literal keeps the same token across requests.
    """
    with _engine_lock:
        engine = app.config.get("ENGINE")
        if engine is None:
            settings = Settings.from_env()
            source = RuleSource(settings.rulesheet)
            engine = AnonymizationEngine(
                source,
                TokenManager(YamlStateStore(settings.state_dir, source.name)),
                regex_timeout=settings.regex_timeout,
            )
            app.config["ENGINE"] = engine
        return engine


def _request_text() -> str:
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict) or not isinstance(payload.get("text"), str):
        abort(400, description="JSON body with a 'text' string is required.")
    return payload["text"]


@app.after_request
def set_security_headers(response):
    """
    Set a small set of security-related HTTP headers on every response.
    """
    response.headers.setdefault("X-Frame-Options", "DENY")
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    response.headers.setdefault("Referrer-Policy", "no-referrer")
    response.headers.setdefault("Cache-Control", "no-store")
    response.headers.setdefault(
        "Content-Security-Policy", "default-src 'none'; frame-ancestors 'none'"
    )
    return response


@app.errorhandler(400)
def bad_request(error):
    return jsonify(error=getattr(error, "description", "Bad request")), 400


@app.route("/api/health")
def health():
    return jsonify(status="ok")


@app.route("/api/detect", methods=["POST"])
def detect():
    """
    Preview the spans that would be anonymized. No tokens are issued.
    """
    try:
        matches = get_engine().detect_patterns(_request_text())
    except RulesheetError:
        return jsonify(error="Rulesheet could not be loaded."), 500
    return jsonify(matches=[m.to_dict() for m in matches])


@app.route("/api/anonymize", methods=["POST"])
def anonymize():
    try:
        result = get_engine().anonymize(_request_text())
    except AnonymizationFailure:
        # Never echo the input back; the caller must not send it anywhere.
        return jsonify(error="Anonymization failed; request not sent."), 422
    return jsonify(result.to_dict())


@app.route("/api/validate", methods=["POST"])
def validate():
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict) or not isinstance(payload.get("rules"), list):
        abort(400, description="JSON body with a 'rules' list is required.")
    if not all(isinstance(item, dict) for item in payload["rules"]):
        abort(400, description="Each rule must be an object.")
    return jsonify(validate_rules(payload["rules"]).to_dict())


@app.route("/api/rules", methods=["GET", "PUT"])
def rules():
    source = get_engine().rule_source
    if not isinstance(source, RuleSource):
        abort(404)
    if request.method == "GET":
        try:
            sheet = source.load()
        except RulesheetError:
            return jsonify(error="Rulesheet could not be loaded."), 500
        preferences = {k: v for k, v in sheet.to_dict().items() if k != "rules"}
        return jsonify(rules=[rule.to_dict() for rule in sheet.rules], settings=preferences)

    payload = request.get_json(silent=True)
    if not isinstance(payload, dict) or not isinstance(payload.get("rules"), list):
        abort(400, description="JSON body with a 'rules' list is required.")
    if not all(isinstance(item, dict) for item in payload["rules"]):
        abort(400, description="Each rule must be an object.")
    try:
        new_rules = [Rule.from_dict(item, i) for i, item in enumerate(payload["rules"])]
    except RulesheetError as exc:
        abort(400, description=str(exc))
    try:
        source.save_rules(new_rules)
    except RuleValidationError as exc:
        return jsonify(exc.result.to_dict()), 400
    except RulesheetError as exc:
        return jsonify(error=str(exc)), 404
    return jsonify(saved=len(new_rules))


@app.route("/api/mappings")
def mappings():
    """
    List active tokens. Real values are never served over HTTP.
    """
    tokens = sorted(get_engine().token_manager.all_mappings().values())
    return jsonify(tokens=tokens, count=len(tokens))


@app.route("/api/mappings/clear", methods=["POST"])
def clear_mappings():
    get_engine().token_manager.clear()
    return jsonify(cleared=True)


if __name__ == "__main__":
    # Debug mode should only be enabled explicitly for local development by
    # setting FLASK_DEBUG=1 in the environment.
    debug = os.getenv("FLASK_DEBUG") == "1"
    app.run(debug=debug)
