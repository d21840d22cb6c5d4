from typing import Protocol

# bcrypt only reads this many bytes of input
MAX_TOKEN_BYTES = 72


class TokenHasher(Protocol):
    """
    Tokens longer than MAX_TOKEN_BYTES (UTF-8) or containing a NUL byte
    cannot be told apart by bcrypt; implementations raise HashingError for
    them instead of matching on a prefix.
    """

    def hash(self, token: str) -> str:
        """Salted one-way digest of `token`. Raises HashingError."""

    def compare(self, token: str, hashed_token: str) -> bool:
        """True if `token` matches the digest. Raises HashingError on a bad digest."""
