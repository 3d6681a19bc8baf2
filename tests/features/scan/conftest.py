import pytest

from scan_fakes import FakeSessionManager, InMemoryScanStore


@pytest.fixture
def memory_store():
    return InMemoryScanStore()


@pytest.fixture
def session_manager():
    return FakeSessionManager()
