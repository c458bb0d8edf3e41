"""Shared test fixtures for the polyglot-agent test suite."""

from __future__ import annotations

from pathlib import Path

import pytest

from polyglot_agent.context import Context
from polyglot_agent.effect_registry import EffectRegistry
from polyglot_agent.memory.store import SQLiteMemoryStore
from tests.support import InMemoryStore, ScriptedBackend, make_config


@pytest.fixture
def memory_store(tmp_path: Path) -> SQLiteMemoryStore:
    """Provide a fresh SQLiteMemoryStore backed by a temp database."""
    return SQLiteMemoryStore(db_path=str(tmp_path / "memory.db"))


@pytest.fixture
def in_memory_store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def scripted_context():
    """Build a Context around a ScriptedBackend and a private effect registry."""

    def build(responses, **config_overrides):  # noqa: ANN001, ANN202
        backend = ScriptedBackend(responses)
        config = make_config(**config_overrides)
        return Context(config, backend=backend, effects=EffectRegistry()), backend

    return build
