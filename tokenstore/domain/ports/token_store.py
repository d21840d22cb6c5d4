from __future__ import annotations

from typing import NamedTuple, Protocol


class AuthenticationResult(NamedTuple):
    valid: bool
    origin_url: str | None = None


class TokenStorePort(Protocol):
    async def authenticate(self, token: str, uid: str) -> AuthenticationResult:
        """
        (True, origin_url or "") if `token` is the live token of `uid`,
        (False, None) otherwise. Unknown uid, expired and wrong token are
        indistinguishable.
        """

    async def store_or_update(
        self, token: str, uid: str, ms_to_live: int, origin_url: str | None = None
    ) -> None:
        """Store the token of `uid`, replacing any previous one."""

    async def invalidate_user(self, uid: str) -> None:
        """Remove the token of `uid`; no-op if there is none."""

    async def clear(self) -> None:
        """Remove every token."""

    async def length(self) -> int:
        """Number of stored records, expired or not."""
