from __future__ import annotations

from typing import Any, Dict, Optional

import pytest

from prompthider.tokens import MemoryStateStore, StateStore, TokenManager, format_token


class _FailingStore(StateStore):
    def load(self) -> Optional[Dict[str, Any]]:
        raise OSError("state unavailable")

    def save(self, state: Dict[str, Any]) -> None:
        raise OSError("disk full")


def test_issue_token_is_idempotent() -> None:
    """
    The same literal always gets the same token and the counter moves once.
    """
    tokens = TokenManager()

    first = tokens.issue_token("ip", "10.0.0.1")
    second = tokens.issue_token("ip", "10.0.0.1")

    assert first == second == "IP_1"
    assert tokens.counters() == {"ip": 1}


def test_new_literals_get_sequential_tokens() -> None:
    tokens = TokenManager()

    assert tokens.issue_token("ip", "10.0.0.1") == "IP_1"
    assert tokens.issue_token("ip", "10.0.0.2") == "IP_2"
    assert tokens.issue_token("IP_{index}", "10.0.0.3") == "IP_3"


@pytest.mark.parametrize(
    "token_type, expected",
    [
        ("ip", ["IP_1", "IP_2"]),
        ("email", ["USER_A@domain.tld", "USER_B@domain.tld"]),
        ("api-key", ["API_KEY_v1", "API_KEY_v2"]),
        ("private-key", ["PRIVATE_KEY_1", "PRIVATE_KEY_2"]),
        ("HOST_{index}.internal", ["HOST_1.internal", "HOST_2.internal"]),
        ("ACME_PROJECT", ["ACME_PROJECT", "ACME_PROJECT_2"]),
        ("PASSWORD", ["PASSWORD", "PASSWORD_2"]),
        ("Email", ["Email", "Email_2"]),
        ("password", ["PASSWORD_1", "PASSWORD_2"]),
    ],
)
def test_token_naming_schemes(token_type: str, expected: list) -> None:
    tokens = TokenManager()

    issued = [tokens.issue_token(token_type, f"literal-{i}") for i in range(2)]

    assert issued == expected


def test_email_letters_continue_past_z() -> None:
    assert format_token("email", 26) == "USER_Z@domain.tld"
    assert format_token("email", 27) == "USER_AA@domain.tld"


def test_minting_skips_tokens_already_bound_elsewhere() -> None:
    tokens = TokenManager()
    tokens.store_mapping("manual-value", "IP_1")

    assert tokens.issue_token("ip", "10.0.0.9") == "IP_2"
    assert tokens.resolve("IP_1") == "manual-value"
    assert tokens.resolve("IP_2") == "10.0.0.9"


def test_store_mapping_removes_stale_reverse_entry() -> None:
    tokens = TokenManager()

    tokens.store_mapping("db.internal", "HOST_A")
    tokens.store_mapping("db.internal", "HOST_B")

    assert tokens.resolve("HOST_A") is None
    assert tokens.resolve("HOST_B") == "db.internal"
    assert tokens.all_mappings() == {"db.internal": "HOST_B"}


def test_store_mapping_rebinding_a_token_drops_the_old_literal() -> None:
    tokens = TokenManager()

    tokens.store_mapping("first", "SHARED")
    tokens.store_mapping("second", "SHARED")

    assert tokens.token_for("first") is None
    assert tokens.resolve("SHARED") == "second"
    assert len(tokens) == 1


def test_all_mappings_is_a_defensive_copy() -> None:
    tokens = TokenManager()
    tokens.issue_token("ip", "10.0.0.1")

    snapshot = tokens.all_mappings()
    snapshot["10.0.0.1"] = "TAMPERED"
    snapshot["other"] = "X"

    assert tokens.all_mappings() == {"10.0.0.1": "IP_1"}


def test_reverse_mappings_is_read_only() -> None:
    tokens = TokenManager()
    tokens.issue_token("ip", "10.0.0.1")

    view = tokens.reverse_mappings()

    assert view["IP_1"] == "10.0.0.1"
    with pytest.raises(TypeError):
        view["IP_1"] = "other"  # type: ignore[index]


def test_clear_resets_mappings_and_counters() -> None:
    tokens = TokenManager()
    tokens.issue_token("ip", "10.0.0.1")
    tokens.issue_token("ip", "10.0.0.2")

    tokens.clear()

    assert tokens.all_mappings() == {}
    assert tokens.counters() == {}
    assert tokens.resolve("IP_1") is None
    assert tokens.issue_token("ip", "10.0.0.3") == "IP_1"


def test_state_is_persisted_and_resumed() -> None:
    store = MemoryStateStore()
    first = TokenManager(store)
    first.issue_token("ip", "10.0.0.1")

    resumed = TokenManager(store)

    assert resumed.resolve("IP_1") == "10.0.0.1"
    assert resumed.issue_token("ip", "10.0.0.2") == "IP_2"


def test_cleared_state_is_persisted() -> None:
    store = MemoryStateStore()
    tokens = TokenManager(store)
    tokens.issue_token("ip", "10.0.0.1")
    tokens.clear()

    assert TokenManager(store).all_mappings() == {}


def test_persistence_failures_are_not_fatal() -> None:
    tokens = TokenManager(_FailingStore())

    assert tokens.issue_token("secret", "hunter2") == "SECRET_1"
    assert tokens.resolve("SECRET_1") == "hunter2"


def test_loading_conflicting_state_keeps_the_bijection() -> None:
    store = MemoryStateStore({"mappings": {"a": "T", "b": "T"}, "counters": {"ip": 4}})

    tokens = TokenManager(store)

    assert tokens.all_mappings() == {"b": "T"}
    assert tokens.resolve("T") == "b"
    assert tokens.issue_token("ip", "10.0.0.1") == "IP_5"


def test_empty_literal_is_rejected() -> None:
    with pytest.raises(ValueError):
        TokenManager().issue_token("ip", "")


def test_custom_label_does_not_share_a_builtin_counter() -> None:
    tokens = TokenManager()
    tokens.issue_token("password", "hunter1")

    assert tokens.issue_token("PASSWORD", "hunter2") == "PASSWORD"
    assert tokens.counters() == {"password": 1, "PASSWORD": 1}


def test_malformed_counters_are_not_fatal() -> None:
    store = MemoryStateStore({"mappings": {"10.0.0.1": "IP_1"}, "counters": {"ip": None}})

    tokens = TokenManager(store)

    assert tokens.all_mappings() == {}
    assert tokens.issue_token("ip", "10.0.0.2") == "IP_1"


def test_reverse_snapshot_is_detached() -> None:
    tokens = TokenManager()
    tokens.issue_token("ip", "10.0.0.1")

    snapshot = tokens.reverse_snapshot()
    tokens.issue_token("ip", "10.0.0.2")

    assert snapshot == {"IP_1": "10.0.0.1"}
