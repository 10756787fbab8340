from __future__ import annotations

import copy
import threading
from abc import ABC, abstractmethod
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from .logging_utils import get_logger

GENERIC_TYPES = {
    "uuid",
    "secret",
    "path",
    "jwt",
    "private-key",
    "credential",
    "password",
    "token",
    "custom",
}
API_KEY_TYPES = {"api-key", "api_key", "apikey"}
INDEX_PLACEHOLDER = "{index}"

logger = get_logger("prompthider.tokens")


class StateStore(ABC):
    """
    Key-value persistence collaborator for the token manager.

    The state is a plain dict: {"mappings": {literal: token},
    "counters": {type: count}}.
    """

    @abstractmethod
    def load(self) -> Optional[Dict[str, Any]]:
        """Return the previously saved state, or None when there is none."""

    @abstractmethod
    def save(self, state: Dict[str, Any]) -> None:
        """Persist the full state."""


class MemoryStateStore(StateStore):
    def __init__(self, state: Optional[Dict[str, Any]] = None):
        self._state = copy.deepcopy(state) if state else None

    def load(self) -> Optional[Dict[str, Any]]:
        return copy.deepcopy(self._state)

    def save(self, state: Dict[str, Any]) -> None:
        self._state = copy.deepcopy(state)


def _letters(index: int) -> str:
    """1 -> A, 26 -> Z, 27 -> AA (spreadsheet column naming)."""
    letters = ""
    while index > 0:
        index, rem = divmod(index - 1, 26)
        letters = chr(ord("A") + rem) + letters
    return letters


# Built-in type names are matched exactly. Any other spelling, "PASSWORD" or
# "Email" included, is a custom label.
def _counter_key(token_type: str) -> str:
    if INDEX_PLACEHOLDER in token_type:
        return token_type
    if token_type in API_KEY_TYPES:
        return "api-key"
    return token_type


def format_token(token_type: str, index: int) -> str:
    """
    Format the index-th token of a type.

    - labels with an {index} placeholder: 'IP_{index}' -> 'IP_3'
    - 'ip' -> 'IP_3'
    - 'email' -> 'USER_C@domain.tld'
    - 'api-key' -> 'API_KEY_v3'
    - other built-in types -> '{TYPE}_3', e.g. 'PRIVATE_KEY_3'
    - any other label is a custom name: the label itself for the first
      literal, then 'LABEL_2', 'LABEL_3', ...
    """
    if INDEX_PLACEHOLDER in token_type:
        return token_type.replace(INDEX_PLACEHOLDER, str(index))
    key = _counter_key(token_type)
    if key == "ip":
        return f"IP_{index}"
    if key == "email":
        return f"USER_{_letters(index)}@domain.tld"
    if key == "api-key":
        return f"API_KEY_v{index}"
    if key in GENERIC_TYPES:
        return f"{key.upper().replace('-', '_')}_{index}"
    if index == 1:
        return token_type
    return f"{token_type}_{index}"


class TokenManager:
    """
    Owns the bidirectional literal <-> token mapping and per-type counters.

    The two maps always form a bijection: every literal has one token and
    every token resolves to exactly one current literal. The raw maps are
    never handed out; callers get copies or read-only views. All mutations
    hold a lock and are followed by a save to the state store; a failing
    store is logged and does not undo the in-memory change.
    """

    def __init__(self, store: Optional[StateStore] = None):
        self._store = store or MemoryStateStore()
        self._lock = threading.RLock()
        self._forward: Dict[str, str] = {}
        self._reverse: Dict[str, str] = {}
        self._counters: Dict[str, int] = {}
        self._load()

    def issue_token(self, token_type: str, literal: str) -> str:
        """
        Return the token for literal, minting one if it has none yet.

        Idempotent: a literal that already has a token gets the same token
        back and no counter moves.
        """
        if not literal:
            raise ValueError("Cannot issue a token for an empty literal.")
        if not token_type:
            raise ValueError("Token type is required.")
        with self._lock:
            existing = self._forward.get(literal)
            if existing is not None:
                return existing

            key = _counter_key(token_type)
            index = self._counters.get(key, 0)
            while True:
                index += 1
                token = format_token(token_type, index)
                if token not in self._reverse:
                    break
            self._counters[key] = index
            self._bind(literal, token)
            self._persist()
            logger.debug("issued token %s for type %s", token, token_type)
            return token

    def store_mapping(self, literal: str, token: str) -> None:
        """
        Bind literal to token, replacing any previous binding of either.

        The literal's old token stops resolving, and a literal previously
        bound to this token loses its forward entry.
        """
        if not literal or not token:
            raise ValueError("Literal and token are both required.")
        with self._lock:
            self._bind(literal, token)
            self._persist()

    def resolve(self, token: str) -> Optional[str]:
        with self._lock:
            return self._reverse.get(token)

    def token_for(self, literal: str) -> Optional[str]:
        with self._lock:
            return self._forward.get(literal)

    def all_mappings(self) -> Dict[str, str]:
        """Snapshot of literal -> token; changing it has no effect here."""
        with self._lock:
            return dict(self._forward)

    def reverse_mappings(self) -> Mapping[str, str]:
        """Read-only view of token -> literal."""
        return MappingProxyType(self._reverse)

    def reverse_snapshot(self) -> Dict[str, str]:
        """Snapshot of token -> literal, taken under the lock."""
        with self._lock:
            return dict(self._reverse)

    def counters(self) -> Dict[str, int]:
        with self._lock:
            return dict(self._counters)

    def clear(self) -> None:
        with self._lock:
            self._forward.clear()
            self._reverse.clear()
            self._counters.clear()
            self._persist()
        logger.info("token mappings cleared")

    def __len__(self) -> int:
        return len(self._forward)

    def _bind(self, literal: str, token: str) -> None:
        old_token = self._forward.get(literal)
        if old_token is not None and old_token != token:
            del self._reverse[old_token]
        old_literal = self._reverse.get(token)
        if old_literal is not None and old_literal != literal:
            del self._forward[old_literal]
        self._forward[literal] = token
        self._reverse[token] = literal

    def _state(self) -> Dict[str, Any]:
        return {"mappings": dict(self._forward), "counters": dict(self._counters)}

    def _persist(self) -> None:
        try:
            self._store.save(self._state())
        except Exception as exc:
            logger.warning("persisting token state failed: %s", exc)

    def _load(self) -> None:
        try:
            state = self._store.load()
        except Exception as exc:
            logger.warning("loading token state failed, starting empty: %s", exc)
            return
        if not state:
            return
        mappings = state.get("mappings") if isinstance(state, dict) else None
        counters = state.get("counters") if isinstance(state, dict) else None
        if (
            not isinstance(state, dict)
            or not isinstance(mappings or {}, dict)
            or not isinstance(counters or {}, dict)
        ):
            logger.warning("token state is malformed, starting empty")
            return
        try:
            parsed = {str(key): int(count) for key, count in (counters or {}).items()}
        except (TypeError, ValueError):
            logger.warning("token counters are malformed, starting empty")
            return
        for literal, token in (mappings or {}).items():
            if literal and token:
                self._bind(str(literal), str(token))
        self._counters.update(parsed)
        logger.info("resumed %d token mappings", len(self._forward))
