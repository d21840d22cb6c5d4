import pytest

from tokenstore.application.token_store import TokenStore
from tokenstore.infrastructure.memory.backend import InMemoryBackend
from tokenstore.infrastructure.security.token_hasher import BcryptTokenHasher
from tests.fakes import FakeClock, FakeHasher, RecordingBackend


@pytest.fixture()
def backend():
    return InMemoryBackend()


@pytest.fixture()
def recording_backend():
    return RecordingBackend()


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def fast_hasher():
    # lowest bcrypt cost passlib accepts; keeps the suite quick
    return BcryptTokenHasher(rounds=4)


@pytest.fixture()
def fake_hasher():
    return FakeHasher()


@pytest.fixture()
def store(backend, fast_hasher, clock):
    return TokenStore(backend, hasher=fast_hasher, clock=clock)
