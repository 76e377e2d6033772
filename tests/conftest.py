"""Shared fixtures: in-memory host collaborators and a fake image downloader."""

from typing import List, Optional, Set

import pytest

from content_sync.assets import AssetManager
from content_sync.config import SYNC_MODE
from content_sync.models import DownloadedImage
from content_sync.stores import (
    DirectoryMediaLibrary,
    InMemoryContentStore,
    InMemoryMetadataStore,
    InMemoryQueueStore,
    InMemoryScheduler,
    MetadataAssetIndex,
)

MEDIA_URL = "https://site.test/media"
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


class FakeDownloader:
    """Stands in for the HTTP fetch; records every URL it is asked for."""

    def __init__(self) -> None:
        self.calls: List[str] = []
        self.failing: Set[str] = set()

    def __call__(self, url: str) -> Optional[DownloadedImage]:
        self.calls.append(url)
        if url in self.failing:
            return None
        name = url.rstrip("/").rsplit("/", 1)[-1] or "image.png"
        return DownloadedImage(
            origin_url=url,
            file_name=name,
            extension="png",
            content_type="image/png",
            data=PNG_BYTES,
        )


@pytest.fixture
def downloader():
    return FakeDownloader()


@pytest.fixture
def library(tmp_path):
    return DirectoryMediaLibrary(tmp_path / "media", MEDIA_URL)


@pytest.fixture
def asset_metadata():
    return InMemoryMetadataStore()


@pytest.fixture
def scheduler():
    return InMemoryScheduler()


@pytest.fixture
def queue():
    return InMemoryQueueStore()


@pytest.fixture
def content_store():
    return InMemoryContentStore()


@pytest.fixture
def manager(library, asset_metadata, queue, scheduler, downloader):
    return AssetManager(
        index=MetadataAssetIndex(asset_metadata, library),
        library=library,
        queue=queue,
        scheduler=scheduler,
        metadata=asset_metadata,
        mode=SYNC_MODE,
        downloader=downloader,
    )
