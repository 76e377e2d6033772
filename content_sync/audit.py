"""Bounded per-operation history of imports and exports."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Protocol

logger = logging.getLogger("content_sync")

IMPORT_OPERATION = "import"
EXPORT_OPERATION = "export"
MAX_LOG_ENTRIES = 5
MAX_CONTENT_LENGTH = 50_000
TRUNCATION_MARKER = "... [TRUNCATED]"

SUCCESS = "success"
ERROR = "error"


def truncate(content: str, limit: int = MAX_CONTENT_LENGTH) -> str:
    if len(content) > limit:
        return content[:limit] + TRUNCATION_MARKER
    return content


@dataclass
class OperationEntry:
    """One import or export run, as kept in the operation log."""

    timestamp: str
    original_content: str
    parsed_content: str
    result: str
    error_message: str = ""


class OperationLog(Protocol):
    def record(
        self,
        operation: str,
        original_content: str,
        parsed_content: str = "",
        error_message: str = "",
    ) -> OperationEntry: ...

    def entries(self, operation: str) -> List[OperationEntry]: ...


def build_entry(original_content: str, parsed_content: str, error_message: str) -> OperationEntry:
    return OperationEntry(
        timestamp=datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
        original_content=truncate(original_content or ""),
        parsed_content=truncate(parsed_content or ""),
        result=ERROR if error_message else SUCCESS,
        error_message=truncate(error_message),
    )


class InMemoryOperationLog:
    """Keeps the newest ``max_entries`` runs per operation."""

    def __init__(self, max_entries: int = MAX_LOG_ENTRIES) -> None:
        self.max_entries = max_entries
        self._entries: Dict[str, List[OperationEntry]] = {}

    def record(
        self,
        operation: str,
        original_content: str,
        parsed_content: str = "",
        error_message: str = "",
    ) -> OperationEntry:
        entry = build_entry(original_content, parsed_content, error_message)
        kept = self.entries(operation) + [entry]
        self._entries[operation] = kept[-self.max_entries :]
        return entry

    def entries(self, operation: str) -> List[OperationEntry]:
        return list(self._entries.get(operation, []))


class JsonLinesOperationLog(InMemoryOperationLog):
    """Operation log stored as ``<operation>.jsonl`` files below ``directory``."""

    def __init__(self, directory: Path, max_entries: int = MAX_LOG_ENTRIES) -> None:
        super().__init__(max_entries)
        self.directory = directory

    def path_for(self, operation: str) -> Path:
        return self.directory / f"{operation}.jsonl"

    def entries(self, operation: str) -> List[OperationEntry]:
        path = self.path_for(operation)
        if not path.exists():
            return []
        entries = []
        for line in path.read_text(encoding="utf-8").splitlines():
            if not line.strip():
                continue
            try:
                entries.append(OperationEntry(**json.loads(line)))
            except (json.JSONDecodeError, TypeError) as exc:
                logger.warning("Skipping unreadable %s log line: %s", operation, exc)
        return entries

    def record(
        self,
        operation: str,
        original_content: str,
        parsed_content: str = "",
        error_message: str = "",
    ) -> OperationEntry:
        entry = build_entry(original_content, parsed_content, error_message)
        kept = (self.entries(operation) + [entry])[-self.max_entries :]
        self.directory.mkdir(parents=True, exist_ok=True)
        lines = [json.dumps(asdict(item), ensure_ascii=False) for item in kept]
        self.path_for(operation).write_text("\n".join(lines) + "\n", encoding="utf-8")
        return entry


def record_failure(
    log: Optional[OperationLog], operation: str, original_content: object, exc: Exception
) -> None:
    if log is None:
        return
    original = original_content if isinstance(original_content, str) else ""
    log.record(operation, original, error_message=str(exc) or type(exc).__name__)
