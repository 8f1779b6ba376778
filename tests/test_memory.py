from __future__ import annotations

import logging
import re

import pytest

from decision_flow.memory import (
    USER_SESSION_KEY,
    InMemorySessionStorage,
    SessionRegistry,
    new_session_id,
)
from decision_flow.schemas import Goal, OnboardingRequest, Role, TimeHorizon, WizardStage


def test_storage_round_trips_json_values() -> None:
    storage = InMemorySessionStorage()

    storage.write("prefs", {"name": "Alex", "tags": ["a", "b"]})

    assert storage.read("prefs") == {"name": "Alex", "tags": ["a", "b"]}
    assert storage.read("missing", default="fallback") == "fallback"


def test_storage_clear_removes_everything() -> None:
    storage = InMemorySessionStorage()
    storage.write("a", 1)
    storage.write("b", 2)

    storage.clear()

    assert storage.read("a") is None
    assert storage.read("b") is None


def test_undecodable_value_falls_back_to_default(caplog: pytest.LogCaptureFixture) -> None:
    storage = InMemorySessionStorage()
    storage._items["broken"] = "{oops"

    with caplog.at_level(logging.ERROR, logger="decision_flow.memory"):
        assert storage.read("broken", default={}) == {}

    assert "broken" in caplog.text


def test_session_ids_are_opaque_and_unique() -> None:
    ids = {new_session_id() for _ in range(50)}

    assert len(ids) == 50
    assert all(re.fullmatch(r"temp_\d+_[0-9a-z]{7}", value) for value in ids)


def test_registry_start_persists_user_and_opens_console(generation_client) -> None:
    registry = SessionRegistry()

    user = registry.start(
        OnboardingRequest(name=" Alex ", role=Role.STUDENT, goal=Goal.LEARNING_FOCUS, time_horizon=TimeHorizon.LONG),
        generation_client,
    )

    assert user.name == "Alex"
    assert registry.get_user(user.session_id) == user
    console = registry.get_console(user.session_id)
    assert console is not None
    assert console.user == user
    assert console.state().stage is WizardStage.STRUCTURING


def test_registry_end_clears_storage(generation_client) -> None:
    storages = []

    def factory() -> InMemorySessionStorage:
        storage = InMemorySessionStorage()
        storages.append(storage)
        return storage

    registry = SessionRegistry(storage_factory=factory)
    user = registry.start(OnboardingRequest(name="Alex"), generation_client)
    assert storages[0].read(USER_SESSION_KEY)["session_id"] == user.session_id

    assert registry.end(user.session_id) is True

    assert storages[0].read(USER_SESSION_KEY) is None
    assert registry.get_user(user.session_id) is None
    assert registry.get_console(user.session_id) is None
    assert registry.end(user.session_id) is False
