"""Tab-scoped session storage and the in-process registry of decision consoles."""

from __future__ import annotations

import json
import logging
import secrets
import string
import time
from typing import Any, Callable, Dict, Optional, Protocol

from .llm import GenerationClient
from .schemas import OnboardingRequest, UserContext
from .wizard import DecisionConsole

logger = logging.getLogger(__name__)

USER_SESSION_KEY = "user_session"
_SESSION_ID_ALPHABET = string.digits + string.ascii_lowercase


class SessionStorage(Protocol):
    """Key-value port the session layer persists identity through."""

    def read(self, key: str, default: Any = None) -> Any: ...

    def write(self, key: str, value: Any) -> None: ...

    def clear(self) -> None: ...


class InMemorySessionStorage:
    """Ephemeral store holding JSON-encoded values, one instance per session."""

    def __init__(self) -> None:
        self._items: Dict[str, str] = {}

    def read(self, key: str, default: Any = None) -> Any:
        raw = self._items.get(key)
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.error("Could not decode stored value for %r", key)
            return default

    def write(self, key: str, value: Any) -> None:
        self._items[key] = json.dumps(value)

    def clear(self) -> None:
        self._items.clear()


def new_session_id() -> str:
    """Return an opaque ``temp_<epoch-ms>_<suffix>`` identifier."""

    suffix = "".join(secrets.choice(_SESSION_ID_ALPHABET) for _ in range(7))
    return f"temp_{int(time.time() * 1000)}_{suffix}"


class SessionRegistry:
    """Track each session's storage and its decision console."""

    def __init__(self, storage_factory: Callable[[], SessionStorage] = InMemorySessionStorage) -> None:
        self._storage_factory = storage_factory
        self._storages: Dict[str, SessionStorage] = {}
        self._consoles: Dict[str, DecisionConsole] = {}

    def start(self, onboarding: OnboardingRequest, client: GenerationClient) -> UserContext:
        """Create a session from the onboarding answers."""

        user = UserContext(session_id=new_session_id(), **onboarding.model_dump())
        storage = self._storage_factory()
        storage.write(USER_SESSION_KEY, user.model_dump(mode="json"))
        self._storages[user.session_id] = storage
        self._consoles[user.session_id] = DecisionConsole(user, client)
        logger.info("Started session %s", user.session_id)
        return user

    def get_user(self, session_id: str) -> Optional[UserContext]:
        storage = self._storages.get(session_id)
        if storage is None:
            return None
        data = storage.read(USER_SESSION_KEY)
        if not data:
            return None
        return UserContext.model_validate(data)

    def get_console(self, session_id: str) -> Optional[DecisionConsole]:
        return self._consoles.get(session_id)

    def end(self, session_id: str) -> bool:
        """Clear the session's storage and drop its console."""

        storage = self._storages.pop(session_id, None)
        self._consoles.pop(session_id, None)
        if storage is None:
            return False
        storage.clear()
        logger.info("Ended session %s", session_id)
        return True
