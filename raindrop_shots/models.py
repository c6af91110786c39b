"""Data objects returned by the Raindrop.io client."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

_MB = 1024 * 1024

# Raindrop.io storage allowances used when /user reports no explicit size
PRO_QUOTA_BYTES = 10_000_000_000
FREE_QUOTA_BYTES = 104_857_600


@dataclass(frozen=True)
class UserProfile:
    """The authenticated Raindrop.io account."""

    id: int | None
    full_name: str
    email: str
    pro: bool = False
    raw: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_api(cls, user: dict[str, Any]) -> UserProfile:
        return cls(
            id=user.get("_id"),
            full_name=user.get("fullName", ""),
            email=user.get("email", ""),
            pro=bool(user.get("pro", False)),
            raw=user,
        )


@dataclass(frozen=True)
class Collection:
    """A Raindrop.io collection."""

    id: int
    title: str
    count: int = 0

    @classmethod
    def from_api(cls, item: dict[str, Any]) -> Collection:
        return cls(
            id=item["_id"],
            title=item.get("title", ""),
            count=int(item.get("count", 0)),
        )


@dataclass(frozen=True)
class UploadResult:
    """The raindrop created by a file upload."""

    id: int | None
    link: str
    title: str
    excerpt: str = ""
    collection_id: int | None = None

    @classmethod
    def from_api(cls, item: dict[str, Any]) -> UploadResult:
        collection = item.get("collection") or {}
        return cls(
            id=item.get("_id"),
            link=item.get("link", ""),
            title=item.get("title", ""),
            excerpt=item.get("excerpt", ""),
            collection_id=collection.get("$id"),
        )


@dataclass(frozen=True)
class QuotaSnapshot:
    """File storage usage of the account at one point in time."""

    used_bytes: int
    total_bytes: int
    is_pro: bool = False

    @property
    def remaining_bytes(self) -> int:
        return self.total_bytes - self.used_bytes

    @property
    def used_mb(self) -> float:
        return round(self.used_bytes / _MB, 2)

    @property
    def total_mb(self) -> float:
        return round(self.total_bytes / _MB, 2)

    @property
    def remaining_mb(self) -> float:
        return round(self.remaining_bytes / _MB, 2)

    @property
    def used_percent(self) -> int:
        if not self.total_bytes:
            return 100
        return round(self.used_bytes / self.total_bytes * 100)

    @classmethod
    def from_user(cls, user: dict[str, Any]) -> QuotaSnapshot | None:
        """Build a snapshot from a ``/user`` payload, or None if it has no file info."""
        files = user.get("files")
        if not files:
            return None
        is_pro = bool(user.get("pro", False))
        used = int(files.get("used") or 0)
        total = int(files.get("size") or (PRO_QUOTA_BYTES if is_pro else FREE_QUOTA_BYTES))
        return cls(used_bytes=used, total_bytes=total, is_pro=is_pro)
