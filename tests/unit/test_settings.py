import pytest
from pydantic import ValidationError

from tokenstore.settings import Settings, get_settings


@pytest.fixture(autouse=True)
def fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_get_settings_is_cached():
    s1 = get_settings()
    s2 = get_settings()
    assert s1 is s2  # lru_cache returns the same instance


def test_defaults(monkeypatch):
    for var in ("STORAGE_BACKEND", "TOKEN_NAMESPACE", "BCRYPT_ROUNDS"):
        monkeypatch.delenv(var, raising=False)
    s = Settings(_env_file=None)
    assert s.storage_backend == "memory"
    assert s.token_namespace == "passwordless-token"
    assert s.bcrypt_rounds == 10


def test_env_overrides_and_cache_clear(monkeypatch):
    monkeypatch.setenv("BCRYPT_ROUNDS", "6")
    monkeypatch.setenv("TOKEN_NAMESPACE", "login-links")
    s = get_settings()
    assert s.bcrypt_rounds == 6
    assert s.token_namespace == "login-links"

    monkeypatch.delenv("BCRYPT_ROUNDS", raising=False)
    get_settings.cache_clear()
    assert get_settings().bcrypt_rounds == 10


@pytest.mark.parametrize(
    "var, value",
    [("STORAGE_BACKEND", "mongo"), ("BCRYPT_ROUNDS", "3"), ("TOKEN_NAMESPACE", "")],
)
def test_invalid_values_are_rejected(monkeypatch, var, value):
    monkeypatch.setenv(var, value)
    with pytest.raises(ValidationError):
        Settings(_env_file=None)
