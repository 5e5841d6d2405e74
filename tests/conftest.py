"""
Shared test fixtures and configuration.
"""

import pytest
import os

# Set test environment variables before importing app modules
os.environ.setdefault("STORAGE_TYPE", "memory")
os.environ.setdefault("LOG_FILE_ENABLED", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("LLM_API_KEY", "")

from pawsitive.core.session_codes import build_session
from pawsitive.models import DogConfig, SessionCreate
from pawsitive.storage import InMemoryGateway, SessionStore, sanitize


def make_payload(**overrides) -> SessionCreate:
    data = {
        "sitter_name": "Sarah",
        "start_date": "2024-01-31",
        "total_days": 3,
        "dogs": [DogConfig(name="Biscuit", color="blue")],
    }
    data.update(overrides)
    return SessionCreate(**data)


def make_session(session_id: str = "SARAH-42", created_at: int = 1_700_000_000_000, **overrides):
    return build_session(session_id, make_payload(**overrides), created_at=created_at)


async def seed_session(gateway, session_id: str = "SARAH-42", **overrides):
    session = make_session(session_id, **overrides)
    await gateway.set(session.id, sanitize(session))
    return session


@pytest.fixture
def gateway():
    return InMemoryGateway()


@pytest.fixture
def store(gateway):
    return SessionStore(gateway)


@pytest.fixture
def session():
    return make_session(dogs=[DogConfig(name="Biscuit", color="blue"), DogConfig(name="Mochi", color="pink")])
