"""Error history persistence — the learning loop across analyses and sessions.

Keeps a per-workspace log of previously seen errors, how often they recurred,
and what fixed them. Similar errors are merged by bumping ``frequency``; fix
outcomes and user corrections are recorded against the persisted entry and
later surfaced as fix suggestions for similar messages.

The store is the only shared mutable state in faultline, so every read and
write goes through one re-entrant lock per workspace store. Flushes write a
temp file next to the target and swap it in with ``os.replace``.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
import time
from pathlib import Path
from typing import Any, Protocol

from pydantic import ValidationError

from faultline.config import get_settings
from faultline.types.core import Severity
from faultline.types.history import HistoryDocument, HistoryEntry

logger = logging.getLogger("faultline.history")


def similarity(first: str, second: str) -> float:
    """Jaccard index of the lower-cased, whitespace-split word sets. 0.0 when both are empty."""
    words_first = set((first or "").lower().split())
    words_second = set((second or "").lower().split())
    union = words_first | words_second
    if not union:
        return 0.0
    return len(words_first & words_second) / len(union)


def _now_ms() -> int:
    return int(time.time() * 1000)


# ---------------------------------------------------------------------------
# Storage backends
# ---------------------------------------------------------------------------


class HistoryStorage(Protocol):
    """Durable document store keyed by workspace."""

    def read(self, workspace: str) -> dict[str, Any] | None: ...

    def write(self, workspace: str, document: dict[str, Any]) -> None: ...

    def delete(self, workspace: str) -> None: ...

    def quarantine(self, workspace: str) -> None: ...


class JsonFileStorage:
    """Stores one JSON document per workspace at ``<workspace>/<dir>/<file>``."""

    def __init__(self, dir_name: str | None = None, file_name: str | None = None) -> None:
        settings = get_settings()
        self.dir_name = dir_name or settings.history_dir
        self.file_name = file_name or settings.history_file

    def path_for(self, workspace: str) -> Path:
        return Path(workspace) / self.dir_name / self.file_name

    def read(self, workspace: str) -> dict[str, Any] | None:
        path = self.path_for(workspace)
        if not path.exists():
            return None
        return json.loads(path.read_text(encoding="utf-8"))

    def write(self, workspace: str, document: dict[str, Any]) -> None:
        path = self.path_for(workspace)
        path.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(json.dumps(document, indent=2))
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def delete(self, workspace: str) -> None:
        self.path_for(workspace).unlink(missing_ok=True)

    def quarantine(self, workspace: str) -> None:
        """Move an unreadable document aside to ``<file>.corrupt``."""
        path = self.path_for(workspace)
        if path.exists():
            os.replace(path, path.with_name(f"{path.name}.corrupt"))


# ---------------------------------------------------------------------------
# History store
# ---------------------------------------------------------------------------


class ErrorHistoryStore:
    """Error history for one workspace, loaded lazily and flushed periodically."""

    def __init__(
        self,
        workspace: str | Path,
        storage: HistoryStorage | None = None,
        *,
        flush_every: int | None = None,
        dedup_threshold: float | None = None,
        suggest_threshold: float | None = None,
    ) -> None:
        settings = get_settings()
        self.workspace = str(workspace)
        self._storage = storage if storage is not None else JsonFileStorage()
        self._flush_every = flush_every if flush_every is not None else settings.history_flush_every
        if self._flush_every < 1:
            raise ValueError(f"flush_every must be >= 1, got {self._flush_every}")
        self._dedup_threshold = (
            dedup_threshold if dedup_threshold is not None else settings.dedup_similarity
        )
        self._suggest_threshold = (
            suggest_threshold if suggest_threshold is not None else settings.suggest_similarity
        )
        self._entries: list[HistoryEntry] = []
        self._loaded = False
        self._unreadable = False  # persisted document failed to parse
        self._inserted = 0
        self._lock = threading.RLock()

    # --- lifecycle ---

    def load(self) -> bool:
        """Load persisted history once. Later calls are no-ops after a successful load.

        Returns True when history is available (loaded now or earlier).
        """
        with self._lock:
            if self._loaded:
                return True

            try:
                document = self._storage.read(self.workspace)
                loaded = self._parse_document(document)
            except OSError as e:
                logger.warning(f"Failed to load error history for {self.workspace}: {e}")
                return False
            except ValueError as e:
                logger.warning(
                    f"Unreadable error history for {self.workspace}, "
                    f"moving it aside on next save: {e}"
                )
                self._unreadable = True
                return False

            self._unreadable = False
            loaded_ids = {e.error_id for e in loaded}
            self._entries = loaded + [e for e in self._entries if e.error_id not in loaded_ids]
            self._loaded = True
            logger.info(f"Loaded {len(loaded)} error history entries for {self.workspace}")
            return True

    def save(self) -> bool:
        """Flush the in-memory history to storage. Returns False on I/O failure."""
        with self._lock:
            document = HistoryDocument(entries=self._entries, last_updated=_now_ms())
            try:
                if self._unreadable:
                    self._storage.quarantine(self.workspace)
                    self._unreadable = False
                    logger.warning(f"Moved unreadable error history aside for {self.workspace}")
                self._storage.write(self.workspace, document.to_document())
            except (OSError, TypeError, ValueError) as e:
                logger.warning(f"Failed to save error history for {self.workspace}: {e}")
                return False
            logger.debug(f"Saved {len(self._entries)} error history entries")
            return True

    def clear(self) -> None:
        """Forget all entries, in memory and in storage."""
        with self._lock:
            self._entries = []
            self._inserted = 0
            self._loaded = False
            self._unreadable = False
            try:
                self._storage.delete(self.workspace)
            except OSError as e:
                logger.warning(f"Failed to delete error history for {self.workspace}: {e}")

    # --- mutations ---

    def add_or_bump_error(
        self,
        message: str,
        error_type: str | None = None,
        severity: Severity = Severity.MEDIUM,
        file_path: str | None = None,
        line_number: int | None = None,
        function_name: str | None = None,
    ) -> HistoryEntry:
        """Record a sighting: bump a similar entry (same file + line) or insert a new one.

        Returns a copy of the resulting entry.
        """
        with self._lock:
            self.load()

            existing = self._find_similar(message, file_path, line_number)
            if existing is not None:
                existing.frequency += 1
                logger.debug(f"Bumped {existing.error_id} to frequency {existing.frequency}")
                return existing.model_copy()

            entry = HistoryEntry(
                error_id=f"hist_{_now_ms()}_{len(self._entries)}",
                timestamp=_now_ms(),
                error_message=message,
                error_type=error_type,
                severity=severity,
                file_path=file_path,
                line_number=line_number,
                function_name=function_name,
            )
            self._entries.append(entry)
            self._inserted += 1

            if self._inserted % self._flush_every == 0:
                self.save()

            return entry.model_copy()

    def record_fix(self, error_id: str, fix_applied: str, successful: bool) -> bool:
        """Attach a fix outcome to an entry and flush. False if the id is unknown."""
        with self._lock:
            self.load()
            entry = self._get(error_id)
            if entry is None:
                logger.warning(f"Cannot record fix: unknown history entry {error_id}")
                return False
            entry.fix_applied = fix_applied
            entry.fix_successful = successful
            self.save()
            return True

    def record_user_correction(self, error_id: str, correction: str) -> bool:
        """Attach a user correction (assumed successful) and flush. False if unknown."""
        with self._lock:
            self.load()
            entry = self._get(error_id)
            if entry is None:
                logger.warning(f"Cannot record correction: unknown history entry {error_id}")
                return False
            entry.user_correction = correction
            entry.fix_successful = True
            self.save()
            return True

    # --- learning ---

    def suggest_fix(self, message: str, file_path: str | None = None) -> str | None:
        """Most recent successful fix (or user correction) for a similar message."""
        with self._lock:
            self.load()
            candidates = [
                e
                for e in self._entries
                if e.fix_successful is True
                and (e.user_correction or e.fix_applied)
                and similarity(e.error_message, message) > self._suggest_threshold
                and (file_path is None or e.file_path == file_path)
            ]
            if not candidates:
                return None
            best = max(candidates, key=lambda e: e.timestamp)
            return best.user_correction or best.fix_applied

    # --- read accessors ---

    def entries(self) -> list[HistoryEntry]:
        with self._lock:
            self.load()
            return [e.model_copy() for e in self._entries]

    def entry(self, error_id: str) -> HistoryEntry | None:
        with self._lock:
            self.load()
            found = self._get(error_id)
            return found.model_copy() if found else None

    def history_for_file(self, file_path: str) -> list[HistoryEntry]:
        return self._select(lambda e: e.file_path == file_path)

    def history_for_function(
        self, function_name: str, file_path: str | None = None
    ) -> list[HistoryEntry]:
        return self._select(
            lambda e: e.function_name == function_name
            and (file_path is None or e.file_path == file_path)
        )

    def by_type(self, error_type: str) -> list[HistoryEntry]:
        return self._select(lambda e: e.error_type == error_type)

    def recurring(self, min_frequency: int = 2) -> list[HistoryEntry]:
        """Entries seen at least ``min_frequency`` times, most frequent first."""
        with self._lock:
            self.load()
            hits = [e.model_copy() for e in self._entries if e.frequency >= min_frequency]
        return sorted(hits, key=lambda e: e.frequency, reverse=True)

    def successful_fixes(self) -> list[HistoryEntry]:
        with self._lock:
            self.load()
            return [
                e.model_copy()
                for e in self._entries
                if e.fix_successful is True and e.fix_applied is not None
            ]

    def user_corrections(self) -> list[HistoryEntry]:
        with self._lock:
            self.load()
            return [e.model_copy() for e in self._entries if e.user_correction is not None]

    def frequency_analysis(self) -> dict[str, int]:
        """Summed frequency per ``<type>_<file>`` key (``unknown`` for missing parts)."""
        with self._lock:
            self.load()
            counts: dict[str, int] = {}
            for e in self._entries:
                key = f"{e.error_type or 'unknown'}_{e.file_path or 'unknown'}"
                counts[key] = counts.get(key, 0) + e.frequency
            return counts

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    # --- helpers ---

    def _select(self, predicate) -> list[HistoryEntry]:
        """Matching entries, newest first."""
        with self._lock:
            self.load()
            hits = [e.model_copy() for e in self._entries if predicate(e)]
        return sorted(hits, key=lambda e: e.timestamp, reverse=True)

    def _get(self, error_id: str) -> HistoryEntry | None:
        for e in self._entries:
            if e.error_id == error_id:
                return e
        return None

    def _find_similar(
        self, message: str, file_path: str | None, line_number: int | None
    ) -> HistoryEntry | None:
        for e in self._entries:
            if (
                e.file_path == file_path
                and e.line_number == line_number
                and similarity(e.error_message, message) > self._dedup_threshold
            ):
                return e
        return None

    def _parse_document(self, document: Any) -> list[HistoryEntry]:
        if document is None:
            return []
        if not isinstance(document, dict):
            raise ValueError(f"expected a JSON object, got {type(document).__name__}")

        raw_entries = document.get("entries")
        if raw_entries is None:
            return []
        if not isinstance(raw_entries, list):
            raise ValueError(f"'entries' must be a list, got {type(raw_entries).__name__}")

        entries: list[HistoryEntry] = []
        for raw in raw_entries:
            try:
                entries.append(HistoryEntry.model_validate(raw))
            except ValidationError as e:
                logger.warning(f"Skipping malformed history entry: {e.error_count()} error(s)")
        return entries


class HistoryRegistry:
    """One ErrorHistoryStore per workspace for the lifetime of the registry."""

    def __init__(self, storage: HistoryStorage | None = None) -> None:
        self._storage = storage
        self._stores: dict[str, ErrorHistoryStore] = {}
        self._lock = threading.Lock()

    def get(self, workspace: str | Path) -> ErrorHistoryStore:
        key = str(workspace)
        with self._lock:
            store = self._stores.get(key)
            if store is None:
                store = ErrorHistoryStore(key, self._storage)
                self._stores[key] = store
        store.load()
        return store

    def save_all(self) -> None:
        with self._lock:
            stores = list(self._stores.values())
        for store in stores:
            store.save()
