"""Remote image acquisition with synchronous, queued and deduplicated paths."""

from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional, Union

import requests

from .config import (
    ASYNC_MODE,
    AUTO_MODE,
    DEFAULT_ASYNC_IMAGE_THRESHOLD,
    DEFAULT_QUEUE_BATCH_SIZE,
    PROCESS_QUEUE_JOB,
    SYNC_MODE,
)
from .images import download_image
from .models import AssetReference, AssetState, DownloadedImage, QueueEntry, StoredAsset
from .stores import ALT_TEXT_KEY, AssetIndex, ContentStore, MediaLibrary, MetadataStore, QueueStore, Scheduler

logger = logging.getLogger("content_sync")

Downloader = Callable[[str], Optional[DownloadedImage]]


def select_image_mode(configured: str, image_count: int, threshold: int = DEFAULT_ASYNC_IMAGE_THRESHOLD) -> str:
    """Resolve ``auto`` into a concrete mode for one pass."""
    if configured != AUTO_MODE:
        return configured
    return ASYNC_MODE if image_count >= threshold else SYNC_MODE


class AssetManager:
    """Turns origin URLs into local media library assets.

    The asset index is the single dedup point: every path consults it before
    downloading, so an origin URL already ingested is never fetched again.
    """

    def __init__(
        self,
        index: AssetIndex,
        library: MediaLibrary,
        queue: QueueStore,
        scheduler: Scheduler,
        metadata: MetadataStore,
        mode: str = SYNC_MODE,
        downloader: Optional[Downloader] = None,
        session: Optional[requests.Session] = None,
        timeout: float = 15.0,
        initial_delay: float = 5.0,
    ) -> None:
        self.index = index
        self.library = library
        self.queue = queue
        self.scheduler = scheduler
        self.metadata = metadata
        self.mode = mode
        self.timeout = timeout
        self.initial_delay = initial_delay
        self._session = session
        self._downloader = downloader or self._download
        self.references: Dict[str, AssetReference] = {}

    def _download(self, url: str) -> Optional[DownloadedImage]:
        if self._session is None:
            self._session = requests.Session()
        return download_image(url, session=self._session, timeout=self.timeout)

    def acquire(self, origin_url: str, alt_text: str = "") -> AssetReference:
        reference = AssetReference(origin_url=origin_url, alt_text=alt_text)
        self.references[origin_url] = reference

        existing = self.index.find(origin_url)
        if existing:
            reference.resolve(existing)
            return reference

        if self.mode == ASYNC_MODE:
            self._enqueue(origin_url, alt_text)
            reference.state = AssetState.QUEUED
            return reference

        asset = self.ingest(origin_url, alt_text)
        if asset is None:
            reference.state = AssetState.FAILED
        else:
            reference.resolve(asset)
        return reference

    def resolve(
        self, origin_url: str, alt_text: str = "", url_only: bool = True
    ) -> Union[str, Dict[str, Union[int, str]]]:
        """Return the URL to cite for ``origin_url`` (or ``{"url", "id"}``)."""
        reference = self.acquire(origin_url, alt_text)
        if url_only:
            return reference.url
        return {"url": reference.url, "id": reference.id}

    def ingest(self, origin_url: str, alt_text: str = "") -> Optional[StoredAsset]:
        """Synchronous path: download, store, index and tag one image."""
        existing = self.index.find(origin_url)
        if existing:
            return existing

        image = self._downloader(origin_url)
        if image is None:
            return None

        asset = self.library.ingest(image)
        self.index.remember(origin_url, asset)
        if alt_text.strip():
            self.metadata.set(asset.id, ALT_TEXT_KEY, alt_text.strip())
        logger.info("Imported image %s as asset %d", origin_url, asset.id)
        return asset

    def _enqueue(self, origin_url: str, alt_text: str) -> None:
        entries = self.queue.load()
        entries.append(QueueEntry(origin_url=origin_url, alt_text=alt_text))
        self.queue.save(entries)
        logger.debug("Queued image %s (%d waiting)", origin_url, len(entries))
        if not self.scheduler.is_pending(PROCESS_QUEUE_JOB):
            self.scheduler.try_schedule(PROCESS_QUEUE_JOB, self.initial_delay)


class QueueProcessor:
    """Background pass that drains the download queue in small batches."""

    def __init__(
        self,
        manager: AssetManager,
        content: ContentStore,
        batch_size: int = DEFAULT_QUEUE_BATCH_SIZE,
        reschedule_delay: float = 1.0,
    ) -> None:
        self.manager = manager
        self.content = content
        self.batch_size = batch_size
        self.reschedule_delay = reschedule_delay

    def process_queue(self) -> List[QueueEntry]:
        """Attempt up to ``batch_size`` oldest entries; returns the attempted ones.

        Attempted entries leave the queue whether or not they succeeded.
        """
        entries = self.manager.queue.load()
        if not entries:
            return []

        batch = entries[: self.batch_size]
        remaining = entries[self.batch_size :]
        for entry in batch:
            self._download_and_replace(entry)

        self.manager.queue.save(remaining)
        logger.info(
            "Processed %d queued image(s), %d remaining", len(batch), len(remaining)
        )
        if remaining:
            self.manager.scheduler.try_schedule(PROCESS_QUEUE_JOB, self.reschedule_delay)
        return batch

    def _download_and_replace(self, entry: QueueEntry) -> None:
        asset = self.manager.ingest(entry.origin_url, entry.alt_text)
        if asset is None:
            logger.warning("Dropping queued image %s after failed download", entry.origin_url)
            return

        for record in self.content.find_containing(entry.origin_url):
            record.body = record.body.replace(entry.origin_url, asset.url)
            self.content.save(record)
            logger.debug("Replaced %s in record %d", entry.origin_url, record.id)
