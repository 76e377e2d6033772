"""High-level orchestration for importing external content into the host store."""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Dict, Optional, Tuple

from .assets import AssetManager, QueueProcessor, select_image_mode
from .audit import IMPORT_OPERATION, OperationLog, record_failure
from .blocks import BlockTreeRenderer, Template, to_json
from .config import ImportConfig
from .flat import FlatHtmlRenderer
from .links import rewrite_links
from .models import ContentRecord, ImportOptions, ImportResult
from .prepare import extract_title, resolve_embedded_images, strip_title_headings
from .stores import ContentStore, MetadataStore
from .utils import count_images, encode_emoji
from .walker import parse_fragment

logger = logging.getLogger("content_sync")

FLAT_TARGET = "flat"
BLOCKS_TARGET = "blocks"
TARGETS = (FLAT_TARGET, BLOCKS_TARGET)

BLOCK_DATA_KEY = "block_data"
BLOCK_EDIT_MODE_KEY = "block_edit_mode"
BLOCK_TEMPLATE_TYPE_KEY = "block_template_type"
PAGE_TEMPLATE_KEY = "page_template"

IMPORT_DIRECTION = "from external service"

SEO_META_KEYS: Dict[str, Tuple[str, str]] = {
    "yoast": ("_yoast_wpseo_title", "_yoast_wpseo_metadesc"),
    "aioseo": ("_aioseo_title", "_aioseo_description"),
    "rank_math": ("rank_math_title", "rank_math_description"),
    "builtin": ("_seo_title", "_seo_description"),
}


class SeoMetadataSink:
    """Writes meta title/description under the keys the active SEO plugin reads."""

    def __init__(self, metadata: MetadataStore, plugin: str = "builtin") -> None:
        if plugin not in SEO_META_KEYS:
            logger.warning("Unknown SEO plugin %s; using builtin keys", plugin)
            plugin = "builtin"
        self.metadata = metadata
        self.plugin = plugin

    def write(self, record_id: int, meta_title: str, meta_description: str) -> None:
        title_key, description_key = SEO_META_KEYS[self.plugin]
        if meta_title:
            self.metadata.set(record_id, title_key, meta_title)
        if meta_description:
            self.metadata.set(record_id, description_key, meta_description)


class ContentImporter:
    """Parses, rewrites and renders one fragment, then persists the result."""

    def __init__(
        self,
        config: ImportConfig,
        assets: AssetManager,
        content: ContentStore,
        metadata: MetadataStore,
        template: Template = None,
        log: Optional[OperationLog] = None,
    ) -> None:
        self.config = config
        self.assets = assets
        self.content = content
        self.metadata = metadata
        self.template = template
        self.log = log
        self.seo = SeoMetadataSink(metadata, config.seo_plugin)

    def queue_processor(self) -> QueueProcessor:
        """Background pass wired to this importer's stores and queue settings."""
        return QueueProcessor(
            self.assets,
            self.content,
            batch_size=self.config.queue_batch_size,
            reschedule_delay=self.config.queue_reschedule_delay,
        )

    def import_content(
        self,
        content: str,
        target: str = FLAT_TARGET,
        options: Optional[ImportOptions] = None,
    ) -> ImportResult:
        """Render and store ``content``; every run lands in the operation log."""
        try:
            result = self._import(content, target, options or ImportOptions())
        except Exception as exc:
            logger.error("Import failed: %s", exc)
            record_failure(self.log, IMPORT_OPERATION, content, exc)
            raise
        if self.log is not None:
            self.log.record(IMPORT_OPERATION, content, result.content)
        return result

    def _import(self, content: str, target: str, options: ImportOptions) -> ImportResult:
        if not isinstance(content, str) or not content.strip():
            raise ValueError("Content to import must be a non-empty string")
        if target not in TARGETS:
            raise ValueError(f"Unsupported import target: {target}")

        image_count = count_images(content)
        self.assets.references.clear()
        self.assets.mode = select_image_mode(
            self.config.image_processing_mode,
            image_count,
            self.config.async_image_threshold,
        )
        logger.info(
            "Importing %d characters with %d image(s) in %s mode",
            len(content),
            image_count,
            self.assets.mode,
        )

        extracted_title = extract_title(content)
        tree = rewrite_links(
            parse_fragment(content), self.config.link_policy, self.config.site_origin
        )

        block_data: Optional[str] = None
        if target == FLAT_TARGET:
            if self.config.strip_title:
                strip_title_headings(tree)
            resolve_embedded_images(tree, self.assets)
            body = FlatHtmlRenderer(self.assets).render(tree)
        else:
            if self.config.strip_title and extracted_title:
                strip_title_headings(tree, extracted_title)
            resolve_embedded_images(tree, self.assets)
            document = BlockTreeRenderer(self.assets, self.template).render(tree)
            block_data = to_json(document)
            self._cite_resolved_images(tree)
            body = tree.decode()

        title = options.title or extracted_title
        record = self.content.save(
            ContentRecord(
                id=options.record_id or 0,
                title=encode_emoji(title),
                body=encode_emoji(body),
                status=options.status,
                date=self._resolve_date(options),
            )
        )

        self._write_connection_metadata(record.id, options)
        self.seo.write(record.id, options.meta_title, options.meta_description)
        if block_data is not None:
            self._write_block_metadata(record.id, block_data)

        logger.info("Imported record %d (%s target)", record.id, target)
        return ImportResult(
            record_id=record.id,
            title=record.title,
            content=record.body,
            image_mode=self.assets.mode,
            block_data=block_data,
        )

    def _cite_resolved_images(self, tree) -> None:
        for image in tree.find_all("img"):
            reference = self.assets.references.get(image.get("src") or "")
            if reference is not None:
                image["src"] = reference.url

    def _write_connection_metadata(self, record_id: int, options: ImportOptions) -> None:
        if options.draft_id is None:
            return
        self.metadata.set(record_id, "draft_id", options.draft_id)
        self.metadata.set(record_id, "permalink_hash", options.permalink_hash)
        self.metadata.set(record_id, "keywords", list(options.keywords))
        self.metadata.set(record_id, "location", options.location)
        self.metadata.set(record_id, "scrape_ready", True)
        self.metadata.set(record_id, "last_update", round(time.time() * 1000))
        self.metadata.set(record_id, "last_update_direction", IMPORT_DIRECTION)

    def _write_block_metadata(self, record_id: int, block_data: str) -> None:
        self.metadata.set(record_id, BLOCK_EDIT_MODE_KEY, "builder")
        self.metadata.set(
            record_id, BLOCK_TEMPLATE_TYPE_KEY, "page" if self.template else "post"
        )
        self.metadata.set(record_id, BLOCK_DATA_KEY, block_data)
        self.metadata.set(record_id, PAGE_TEMPLATE_KEY, self.config.page_template)

    def _resolve_date(self, options: ImportOptions) -> Optional[str]:
        """Keep a published record's date; otherwise accept only a future date."""
        if options.record_id:
            existing = self.content.get(options.record_id)
            if existing is not None and existing.status == "publish":
                return existing.date
        if options.date and _is_future(options.date):
            return options.date
        return None


def _is_future(value: str) -> bool:
    try:
        moment = datetime.fromisoformat(value)
    except ValueError:
        logger.warning("Ignoring unparseable publish date %r", value)
        return False
    now = datetime.now(timezone.utc) if moment.tzinfo else datetime.now()
    return moment > now
