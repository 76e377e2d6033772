"""Configuration objects and constants for the content transform pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Union

SYNC_MODE = "sync"
ASYNC_MODE = "async"
AUTO_MODE = "auto"
IMAGE_PROCESSING_MODES = (SYNC_MODE, ASYNC_MODE, AUTO_MODE)

DEFAULT_ASYNC_IMAGE_THRESHOLD = 8
DEFAULT_QUEUE_BATCH_SIZE = 3
PROCESS_QUEUE_JOB = "process_image_queue"

RelList = Union[List[str], bool]


@dataclass
class LinkPolicy:
    """``rel``/``target`` values applied to anchors, split by internal vs external."""

    internal_rel: RelList = False
    internal_target: str = "_self"
    external_rel: RelList = False
    external_target: str = "_blank"


@dataclass
class ImportConfig:
    """Top-level settings that control importing and image acquisition."""

    site_origin: str
    image_processing_mode: str = AUTO_MODE
    async_image_threshold: int = DEFAULT_ASYNC_IMAGE_THRESHOLD
    queue_batch_size: int = DEFAULT_QUEUE_BATCH_SIZE
    queue_initial_delay: float = 5.0
    queue_reschedule_delay: float = 1.0
    download_timeout: float = 15.0
    strip_title: bool = True
    seo_plugin: str = "builtin"
    page_template: str = "default"
    link_policy: LinkPolicy = field(default_factory=LinkPolicy)

    def __post_init__(self) -> None:
        if self.image_processing_mode not in IMAGE_PROCESSING_MODES:
            raise ValueError(
                f"Unsupported image processing mode: {self.image_processing_mode}"
            )
