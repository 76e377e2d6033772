"""Data models used throughout the transform pipeline."""

from __future__ import annotations

import enum
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


class AssetState(str, enum.Enum):
    UNRESOLVED = "unresolved"
    QUEUED = "queued"
    RESOLVED = "resolved"
    FAILED = "failed"


@dataclass
class DownloadedImage:
    """Raw image payload fetched from a remote origin and validated."""

    origin_url: str
    file_name: str
    extension: str
    content_type: str
    data: bytes


@dataclass
class StoredAsset:
    """Asset persisted in the host media library."""

    id: int
    url: str
    file_name: str = ""


@dataclass
class AssetReference:
    """Image reference discovered while rendering a fragment.

    Until the reference is resolved, ``url`` points at the remote origin so
    rendered content stays citable.
    """

    origin_url: str
    alt_text: str = ""
    local_id: Optional[int] = None
    local_url: Optional[str] = None
    state: AssetState = AssetState.UNRESOLVED

    @property
    def url(self) -> str:
        return self.local_url or self.origin_url

    @property
    def id(self) -> int:
        return self.local_id or 0

    def resolve(self, asset: StoredAsset) -> None:
        self.local_id = asset.id
        self.local_url = asset.url
        self.state = AssetState.RESOLVED


@dataclass
class QueueEntry:
    """Image waiting for the background download pass."""

    origin_url: str
    alt_text: str = ""
    enqueued_at: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.origin_url,
            "alt": self.alt_text,
            "timestamp": self.enqueued_at,
        }

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "QueueEntry":
        return cls(
            origin_url=payload["url"],
            alt_text=payload.get("alt", ""),
            enqueued_at=payload.get("timestamp", 0.0),
        )


@dataclass
class ContentRecord:
    """Content record as stored by the host CMS."""

    id: int
    title: str
    body: str
    status: str = "draft"
    date: Optional[str] = None


@dataclass
class ImportOptions:
    """Per-import overrides and the external draft this content belongs to."""

    title: Optional[str] = None
    record_id: Optional[int] = None
    status: str = "draft"
    draft_id: Optional[int] = None
    permalink_hash: str = ""
    keywords: List[str] = field(default_factory=list)
    location: str = ""
    meta_title: str = ""
    meta_description: str = ""
    date: Optional[str] = None


@dataclass
class ImportResult:
    """Outcome of importing one fragment into the host store."""

    record_id: int
    title: str
    content: str
    image_mode: str
    block_data: Optional[str] = None
