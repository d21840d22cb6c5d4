from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


@dataclass(frozen=True)
class RecordKey:
    namespace: str
    id: str

    def __post_init__(self):
        if not self.namespace:
            raise ValueError("namespace is required")
        if not self.id:
            raise ValueError("id is required")


@dataclass
class Document:
    """A query result: the identity key plus the stored fields.

    `data` is empty when the query asked for keys only.
    """

    key: RecordKey
    data: dict[str, Any] = field(default_factory=dict)


@dataclass
class TokenRecord:
    uid: str
    hashed_token: str
    ttl: int  # absolute expiry, ms since epoch
    origin_url: str | None = None

    def __post_init__(self):
        if not self.uid:
            raise ValueError("uid is required")
        if not self.hashed_token:
            raise ValueError("hashed_token is required")

    @property
    def expires_at(self) -> datetime:
        return datetime.fromtimestamp(self.ttl / 1000, tz=timezone.utc)

    def is_valid_at(self, now_ms: int) -> bool:
        return now_ms < self.ttl

    def to_document(self) -> dict[str, Any]:
        return {
            "uid": self.uid,
            "hashedToken": self.hashed_token,
            "ttl": self.ttl,
            "originUrl": self.origin_url,
        }

    @classmethod
    def from_document(cls, data: dict[str, Any]) -> "TokenRecord":
        return cls(
            uid=str(data["uid"]),
            hashed_token=str(data["hashedToken"]),
            ttl=int(data["ttl"]),
            origin_url=data.get("originUrl"),
        )
