"""Command-line entry point for importing, exporting and draining the image queue."""

from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional, Sequence

from .assets import AssetManager, QueueProcessor
from .audit import JsonLinesOperationLog
from .config import IMAGE_PROCESSING_MODES, AUTO_MODE, ImportConfig, LinkPolicy
from .exporter import export_content
from .importer import BLOCKS_TARGET, TARGETS, ContentImporter
from .models import ImportOptions
from .stores import (
    DirectoryMediaLibrary,
    InMemoryScheduler,
    JsonFileContentStore,
    JsonFileMetadataStore,
    JsonFileQueueStore,
    MetadataAssetIndex,
)

logger = logging.getLogger("content_sync.cli")

DEFAULT_STATE_DIR = ".content-sync"


def _ensure_command_prefix(argv: Sequence[str], commands: Iterable[str]) -> Sequence[str]:
    if not argv:
        return argv
    first = argv[0]
    if first in commands or first.startswith("-"):
        return argv
    return ("import", *argv)


def _add_state_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--state",
        default=DEFAULT_STATE_DIR,
        type=Path,
        help="Directory holding the content, metadata and queue files",
    )
    parser.add_argument(
        "--media-dir",
        default=None,
        type=Path,
        help="Directory where downloaded images are stored (default: STATE/media)",
    )
    parser.add_argument(
        "--media-url",
        default="/media",
        help="Base URL under which the media directory is served",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )


def _add_import_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("path", type=Path, help="HTML fragment to import")
    parser.add_argument(
        "--target",
        choices=TARGETS,
        default="flat",
        help="Rendering target: flat HTML body or block-tree document",
    )
    parser.add_argument(
        "--site-origin",
        required=True,
        help="Canonical site origin used to tell internal links from external ones",
    )
    parser.add_argument(
        "--mode",
        choices=IMAGE_PROCESSING_MODES,
        default=AUTO_MODE,
        help="Image processing mode (auto switches to async for 8+ images)",
    )
    parser.add_argument(
        "--template",
        type=Path,
        default=None,
        help="Block-tree JSON document whose widget settings style new widgets",
    )
    parser.add_argument("--title", default=None, help="Override the extracted title")
    parser.add_argument(
        "--external-rel",
        default="",
        help="Comma-separated rel values for external links",
    )
    parser.add_argument(
        "--internal-rel",
        default="",
        help="Comma-separated rel values for internal links",
    )
    parser.add_argument(
        "--external-target",
        default="_blank",
        help="target attribute for external links",
    )
    parser.add_argument(
        "--internal-target",
        default="_self",
        help="target attribute for internal links",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Write the rendered body (or block JSON) here instead of STDOUT",
    )
    _add_state_arguments(parser)


def _add_export_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("path", type=Path, help="Stored HTML body to export")
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Write the flattened HTML here instead of STDOUT",
    )
    parser.add_argument(
        "--state",
        default=DEFAULT_STATE_DIR,
        type=Path,
        help="Directory whose logs/ folder keeps recent export runs",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Convert editing-service HTML into host content and back.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    import_parser = subparsers.add_parser(
        "import", help="Render a fragment for the host and store it"
    )
    _add_import_arguments(import_parser)

    export_parser = subparsers.add_parser(
        "export", help="Flatten a stored body for the editing service"
    )
    _add_export_arguments(export_parser)

    queue_parser = subparsers.add_parser(
        "process-queue", help="Download one batch of queued images"
    )
    _add_state_arguments(queue_parser)

    argv = list(sys.argv[1:] if argv is None else argv)
    argv = list(_ensure_command_prefix(argv, subparsers.choices.keys()))
    return parser.parse_args(argv)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )


def _rel_list(value: str):
    rel = [item.strip() for item in value.split(",") if item.strip()]
    return rel or False


@dataclass
class Workspace:
    """File-backed collaborators rooted at one state directory."""

    assets: AssetManager
    content: JsonFileContentStore
    metadata: JsonFileMetadataStore
    scheduler: InMemoryScheduler
    log: JsonLinesOperationLog


def open_workspace(args: argparse.Namespace, config: Optional[ImportConfig] = None) -> Workspace:
    state: Path = args.state
    media_dir = args.media_dir or state / "media"
    library = DirectoryMediaLibrary(media_dir, args.media_url)
    asset_metadata = JsonFileMetadataStore(state / "assets.json")
    metadata = JsonFileMetadataStore(state / "metadata.json")
    scheduler = InMemoryScheduler()
    assets = AssetManager(
        index=MetadataAssetIndex(asset_metadata, library),
        library=library,
        queue=JsonFileQueueStore(state / "queue.json"),
        scheduler=scheduler,
        metadata=asset_metadata,
    )
    if config is not None:
        assets.timeout = config.download_timeout
        assets.initial_delay = config.queue_initial_delay
    return Workspace(
        assets=assets,
        content=JsonFileContentStore(state / "content.json"),
        metadata=metadata,
        scheduler=scheduler,
        log=operation_log(state),
    )


def operation_log(state: Path) -> JsonLinesOperationLog:
    return JsonLinesOperationLog(state / "logs")


def _write_output(text: str, output: Optional[Path]) -> None:
    if output is None:
        sys.stdout.write(text if text.endswith("\n") else text + "\n")
        sys.stdout.flush()
        return
    output.write_text(text, encoding="utf-8")
    logger.info("Saved output to %s", output)


def _run_import(args: argparse.Namespace) -> None:
    _configure_logging(args.verbose)
    config = ImportConfig(
        site_origin=args.site_origin,
        image_processing_mode=args.mode,
        link_policy=LinkPolicy(
            internal_rel=_rel_list(args.internal_rel),
            internal_target=args.internal_target,
            external_rel=_rel_list(args.external_rel),
            external_target=args.external_target,
        ),
    )
    template = None
    if args.template:
        template = json.loads(args.template.read_text(encoding="utf-8"))

    workspace = open_workspace(args, config)
    importer = ContentImporter(
        config,
        workspace.assets,
        workspace.content,
        workspace.metadata,
        template=template,
        log=workspace.log,
    )
    start = time.perf_counter()
    result = importer.import_content(
        args.path.read_text(encoding="utf-8"),
        target=args.target,
        options=ImportOptions(title=args.title),
    )
    logger.info(
        "Finished in %.2fs (record %d, images %s)",
        time.perf_counter() - start,
        result.record_id,
        result.image_mode,
    )
    if workspace.scheduler.requests:
        logger.info("Images were queued; run 'process-queue' to download them")

    if args.target == BLOCKS_TARGET:
        _write_output(result.block_data or "", args.output)
    else:
        _write_output(result.content, args.output)


def _run_export(args: argparse.Namespace) -> None:
    _configure_logging(args.verbose)
    flattened = export_content(
        args.path.read_text(encoding="utf-8"), log=operation_log(args.state)
    )
    _write_output(flattened, args.output)


def _run_process_queue(args: argparse.Namespace) -> None:
    _configure_logging(args.verbose)
    workspace = open_workspace(args)
    processor = QueueProcessor(workspace.assets, workspace.content)
    processed = processor.process_queue()
    if not processed:
        logger.info("Image queue is empty")
    elif workspace.scheduler.requests:
        logger.info("More images are waiting; run 'process-queue' again")


def main(argv: Sequence[str] | None = None) -> None:
    args = parse_args(argv)
    if args.command == "import":
        _run_import(args)
    elif args.command == "export":
        _run_export(args)
    else:
        _run_process_queue(args)


if __name__ == "__main__":
    main()
