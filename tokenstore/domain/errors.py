class TokenStoreError(Exception):
    """Base class for all token store errors."""

    pass


class InvalidArgument(TokenStoreError, ValueError):
    """Caller supplied an empty, zero or missing required input."""

    pass


class HashingError(TokenStoreError):
    """The hashing primitive failed (bad digest, backend failure)."""

    pass


class StorageError(TokenStoreError):
    """The persistence backend failed (network, permission, quota)."""

    pass
