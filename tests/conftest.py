import pytest

from moderation_core.lib.config import Settings
from moderation_core.lib.memory_store import InMemoryStore
from moderation_core.services.wiring import build_services


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def services(store):
    return build_services(store=store, settings=Settings())
