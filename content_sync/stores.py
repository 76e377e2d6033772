"""Host collaborator interfaces and reference implementations.

The transform core never touches global state: the asset index, the download
queue, the scheduler and the content/metadata stores are all passed in. The
in-memory implementations back the test-suite; the file-backed ones back the
command-line entry point.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Tuple

from .models import ContentRecord, DownloadedImage, QueueEntry, StoredAsset

logger = logging.getLogger("content_sync")

ORIGINAL_URL_KEY = "original_url"
FILE_NAME_KEY = "file_name"
ALT_TEXT_KEY = "alt"


class MetadataStore(Protocol):
    def get(self, record_id: int, key: str, default: Any = None) -> Any: ...

    def set(self, record_id: int, key: str, value: Any) -> None: ...

    def find(self, key: str, value: Any) -> List[int]: ...


class AssetIndex(Protocol):
    def find(self, origin_url: str) -> Optional[StoredAsset]: ...

    def remember(self, origin_url: str, asset: StoredAsset) -> None: ...


class QueueStore(Protocol):
    def load(self) -> List[QueueEntry]: ...

    def save(self, entries: List[QueueEntry]) -> None: ...


class Scheduler(Protocol):
    def is_pending(self, job_id: str) -> bool: ...

    def try_schedule(self, job_id: str, delay: float) -> bool: ...


class ContentStore(Protocol):
    def get(self, record_id: int) -> Optional[ContentRecord]: ...

    def save(self, record: ContentRecord) -> ContentRecord: ...

    def find_containing(self, text: str) -> List[ContentRecord]: ...


class MediaLibrary(Protocol):
    def ingest(self, image: DownloadedImage) -> StoredAsset: ...

    def url_for(self, asset_id: int) -> Optional[str]: ...


class InMemoryMetadataStore:
    """Key-value metadata scoped to record ids."""

    def __init__(self) -> None:
        self._values: Dict[Tuple[int, str], Any] = {}

    def get(self, record_id: int, key: str, default: Any = None) -> Any:
        return self._values.get((record_id, key), default)

    def set(self, record_id: int, key: str, value: Any) -> None:
        self._values[(record_id, key)] = value

    def find(self, key: str, value: Any) -> List[int]:
        return sorted(
            record_id
            for (record_id, stored_key), stored in self._values.items()
            if stored_key == key and stored == value
        )


class JsonFileMetadataStore(InMemoryMetadataStore):
    """Metadata store flushed to a JSON file after every write."""

    def __init__(self, path: Path) -> None:
        super().__init__()
        self.path = path
        if path.exists():
            payload = json.loads(path.read_text(encoding="utf-8") or "{}")
            for record_id, values in payload.items():
                for key, value in values.items():
                    self._values[(int(record_id), key)] = value

    def set(self, record_id: int, key: str, value: Any) -> None:
        super().set(record_id, key, value)
        payload: Dict[str, Dict[str, Any]] = {}
        for (stored_id, stored_key), stored in self._values.items():
            payload.setdefault(str(stored_id), {})[stored_key] = stored
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(payload, indent=2), encoding="utf-8")


class MetadataAssetIndex:
    """Looks assets up by the origin URL recorded in their metadata."""

    def __init__(self, metadata: MetadataStore, library: MediaLibrary) -> None:
        self.metadata = metadata
        self.library = library

    def find(self, origin_url: str) -> Optional[StoredAsset]:
        for asset_id in self.metadata.find(ORIGINAL_URL_KEY, origin_url):
            url = self.library.url_for(asset_id)
            if url:
                return StoredAsset(
                    id=asset_id,
                    url=url,
                    file_name=self.metadata.get(asset_id, FILE_NAME_KEY, ""),
                )
        return None

    def remember(self, origin_url: str, asset: StoredAsset) -> None:
        self.metadata.set(asset.id, ORIGINAL_URL_KEY, origin_url)
        self.metadata.set(asset.id, FILE_NAME_KEY, asset.file_name)


class InMemoryQueueStore:
    def __init__(self, entries: Optional[List[QueueEntry]] = None) -> None:
        self._entries: List[QueueEntry] = list(entries or [])

    def load(self) -> List[QueueEntry]:
        return list(self._entries)

    def save(self, entries: List[QueueEntry]) -> None:
        self._entries = list(entries)


class JsonFileQueueStore:
    """Download queue persisted as a JSON list on disk."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def load(self) -> List[QueueEntry]:
        if not self.path.exists():
            return []
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8") or "[]")
        except json.JSONDecodeError as exc:
            logger.warning("Ignoring unreadable queue file %s: %s", self.path, exc)
            return []
        return [QueueEntry.from_dict(item) for item in payload]

    def save(self, entries: List[QueueEntry]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = [entry.to_dict() for entry in entries]
        self.path.write_text(json.dumps(payload, indent=2), encoding="utf-8")


class InMemoryScheduler:
    """Records one-shot job requests; the host decides when they actually run."""

    def __init__(self) -> None:
        self.pending: Dict[str, float] = {}
        self.requests: List[Tuple[str, float]] = []

    def is_pending(self, job_id: str) -> bool:
        return job_id in self.pending

    def try_schedule(self, job_id: str, delay: float) -> bool:
        if job_id in self.pending:
            return False
        self.pending[job_id] = delay
        self.requests.append((job_id, delay))
        return True

    def pop(self, job_id: str) -> Optional[float]:
        """Mark a job as started, freeing it to be scheduled again."""
        return self.pending.pop(job_id, None)


class InMemoryContentStore:
    def __init__(self) -> None:
        self.records: Dict[int, ContentRecord] = {}
        self._next_id = 1

    def get(self, record_id: int) -> Optional[ContentRecord]:
        return self.records.get(record_id)

    def save(self, record: ContentRecord) -> ContentRecord:
        if not record.id:
            record.id = self._next_id
        self._next_id = max(self._next_id, record.id + 1)
        self.records[record.id] = record
        return record

    def find_containing(self, text: str) -> List[ContentRecord]:
        return [
            record
            for record in self.records.values()
            if text in record.body and record.status in ("publish", "draft", "pending")
        ]


class JsonFileContentStore(InMemoryContentStore):
    """Content records persisted as a JSON object keyed by record id."""

    def __init__(self, path: Path) -> None:
        super().__init__()
        self.path = path
        if path.exists():
            payload = json.loads(path.read_text(encoding="utf-8") or "{}")
            for item in payload.values():
                super().save(ContentRecord(**item))

    def save(self, record: ContentRecord) -> ContentRecord:
        saved = super().save(record)
        payload = {str(item.id): asdict(item) for item in self.records.values()}
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
        return saved


class DirectoryMediaLibrary:
    """Media library that writes images below a directory served at ``base_url``."""

    def __init__(self, root: Path, base_url: str) -> None:
        self.root = root
        self.base_url = base_url.rstrip("/")
        self._files: Dict[int, str] = {}
        if root.is_dir():
            for path in root.iterdir():
                prefix, _, _ = path.name.partition("-")
                if path.is_file() and prefix.isdigit():
                    self._files[int(prefix)] = path.name
        self._next_id = max(self._files, default=0) + 1

    def ingest(self, image: DownloadedImage) -> StoredAsset:
        self.root.mkdir(parents=True, exist_ok=True)
        asset_id = self._next_id
        self._next_id += 1
        filename = f"{asset_id:04d}-{image.file_name}"
        (self.root / filename).write_bytes(image.data)
        self._files[asset_id] = filename
        logger.debug("Stored %s as %s", image.origin_url, filename)
        return StoredAsset(id=asset_id, url=f"{self.base_url}/{filename}", file_name=image.file_name)

    def url_for(self, asset_id: int) -> Optional[str]:
        filename = self._files.get(asset_id)
        if filename is None:
            return None
        return f"{self.base_url}/{filename}"
