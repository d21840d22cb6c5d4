from __future__ import annotations

from passlib.context import CryptContext

from tokenstore.domain.errors import HashingError
from tokenstore.domain.ports.token_hasher import MAX_TOKEN_BYTES, TokenHasher
from tokenstore.settings import get_settings


def _check_token(token: object) -> None:
    if not isinstance(token, str):
        return  # passlib reports the type
    if len(token.encode("utf-8")) > MAX_TOKEN_BYTES:
        raise HashingError(f"token is longer than {MAX_TOKEN_BYTES} bytes")
    if "\x00" in token:
        raise HashingError("token contains a NUL byte")


class BcryptTokenHasher(TokenHasher):
    """
    bcrypt through passlib. The salt is random per call and embedded in the
    digest, so hashing the same token twice never yields the same string.

    bcrypt silently cuts its input at 72 bytes. Longer tokens are refused on
    both hash() and compare() so a shared prefix never verifies.
    """

    def __init__(self, *, rounds: int | None = None) -> None:
        if rounds is None:
            rounds = int(get_settings().bcrypt_rounds)
        self.rounds = rounds
        self._ctx = CryptContext(
            schemes=["bcrypt"], deprecated="auto", bcrypt__default_rounds=rounds
        )

    def hash(self, token: str) -> str:
        _check_token(token)
        try:
            return self._ctx.hash(token)
        except (ValueError, TypeError) as e:
            raise HashingError(f"could not hash token: {e}") from e

    def compare(self, token: str, hashed_token: str) -> bool:
        _check_token(token)
        try:
            return self._ctx.verify(token, hashed_token)
        except (ValueError, TypeError) as e:
            raise HashingError(f"could not verify token: {e}") from e
