"""
Holds an import batch (parsed rows and match candidates) between the
upload, scan, review and commit requests.

Batches live only in the Django cache and expire after IMPORT_BATCH_TTL
seconds; discarding a batch before commit leaves nothing persisted.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import asdict, dataclass, field
from enum import Enum

from django.conf import settings
from django.core.cache import BaseCache, caches

from catalogue_app.services.match_candidate import CommitSummary, MatchCandidate, ScanSummary
from catalogue_app.services.spreadsheet_parser import ImportRow, ParsedSheet, RowParseResult

logger = logging.getLogger(__name__)

DEFAULT_BATCH_TTL_SECONDS = 60 * 60


class BatchPhase(str, Enum):
    PARSED = "parsed"
    SCANNING = "scanning"
    REVIEW = "review"
    COMMITTING = "committing"
    COMMITTED = "committed"
    FAILED = "failed"


class ImportBatchNotFound(Exception):
    pass


@dataclass
class ImportBatch:
    batch_id: str
    user_id: int
    filename: str
    rows: list[ImportRow]
    parse_errors: list[RowParseResult] = field(default_factory=list)
    phase: BatchPhase = BatchPhase.PARSED
    candidates: list[MatchCandidate] = field(default_factory=list)
    scan_summary: ScanSummary | None = None
    commit_summary: CommitSummary | None = None
    error: str | None = None

    def candidate_at(self, index: int) -> MatchCandidate:
        if not 0 <= index < len(self.candidates):
            raise IndexError(f"No candidate at index {index}")
        return self.candidates[index]

    def to_dict(self, progress: dict | None = None) -> dict:
        return {
            "batch_id": self.batch_id,
            "filename": self.filename,
            "phase": self.phase.value,
            "total_rows": len(self.rows),
            "progress": progress,
            "parse_errors": [{"line_number": e.line_number, "error": e.error} for e in self.parse_errors],
            "candidates": [c.to_dict() for c in self.candidates],
            "scan_summary": asdict(self.scan_summary) if self.scan_summary else None,
            "commit_summary": asdict(self.commit_summary) if self.commit_summary else None,
            "error": self.error,
        }


class ImportBatchStore:
    def __init__(self, backend: BaseCache | None = None, ttl: int | None = None):
        self.backend = backend or caches[getattr(settings, "IMPORT_BATCH_CACHE_ALIAS", "default")]
        self.ttl = ttl or getattr(settings, "IMPORT_BATCH_TTL", DEFAULT_BATCH_TTL_SECONDS)

    @staticmethod
    def _key(batch_id: str) -> str:
        return f"import-batch:{batch_id}"

    @staticmethod
    def _progress_key(batch_id: str) -> str:
        return f"import-batch:{batch_id}:progress"

    def create(self, user_id: int, filename: str, sheet: ParsedSheet) -> ImportBatch:
        batch = ImportBatch(
            batch_id=uuid.uuid4().hex,
            user_id=user_id,
            filename=filename,
            rows=list(sheet.rows),
            parse_errors=list(sheet.errors),
        )
        self.save(batch)
        self.set_progress(batch.batch_id, 0, len(batch.rows))
        logger.info("Created import batch %s for user %s (%d rows)", batch.batch_id, user_id, len(batch.rows))
        return batch

    def get(self, batch_id: str, user_id: int | None = None) -> ImportBatch:
        batch = self.backend.get(self._key(batch_id))
        if batch is None or (user_id is not None and batch.user_id != user_id):
            raise ImportBatchNotFound(f"Import batch {batch_id} not found")
        return batch

    def exists(self, batch_id: str) -> bool:
        return self.backend.get(self._key(batch_id)) is not None

    def save(self, batch: ImportBatch) -> None:
        self.backend.set(self._key(batch.batch_id), batch, timeout=self.ttl)

    def set_progress(self, batch_id: str, processed: int, total: int) -> None:
        self.backend.set(
            self._progress_key(batch_id),
            {"processed": processed, "total": total},
            timeout=self.ttl,
        )

    def get_progress(self, batch_id: str) -> dict | None:
        return self.backend.get(self._progress_key(batch_id))

    def discard(self, batch_id: str) -> None:
        self.backend.delete_many([self._key(batch_id), self._progress_key(batch_id)])
        logger.info("Discarded import batch %s", batch_id)
