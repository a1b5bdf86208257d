"""
ImportReconciler: scan, review and commit of spreadsheet movie imports.

Workflow:
1. scan() proposes the first TMDB search result for every ImportRow and
   scores it against the row
2. the user reviews the MatchCandidates, optionally overriding a match
   (search_alternatives / apply_override) or toggling selection
3. commit() upserts the shared CatalogueEntry and the user's
   UserAnnotation for every selected candidate

Failures are row-scoped: a failing row is counted, recorded as an
OperationalIssue and the next row proceeds.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterator, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

from django.conf import settings
from django.db import DatabaseError, transaction

from catalogue_app.models import APICallCounter, CatalogueEntry, OperationalIssue, UserAnnotation
from catalogue_app.services.match_candidate import (
    SCAN_CANCELLED,
    BulkUpsertSummary,
    CommitSummary,
    MatchCandidate,
    MatchStatus,
    RowFailure,
    ScanResult,
    ScanSummary,
    derive_status,
)
from catalogue_app.services.read_cache import MISS, ReadCache
from catalogue_app.services.spreadsheet_parser import ImportRow
from catalogue_app.services.title_matching import calculate_confidence
from catalogue_app.services.tmdb_service import (
    ProviderRequestError,
    TMDBMovieDetails,
    TMDBMovieResult,
    TMDBService,
)

logger = logging.getLogger(__name__)

MIN_SCAN_WORKERS = 1
MAX_SCAN_WORKERS = 5
DEFAULT_SCAN_WORKERS = 3
MAX_ALTERNATIVES = 10

ProgressCallback = Callable[[int, int], None]


class PersistenceError(Exception):
    """A catalogue or annotation write failed while committing one row."""


@dataclass
class ProviderLookup:
    """Outcome of the provider calls for one row, produced on a worker thread."""

    details: TMDBMovieDetails | None
    calls: int
    error: str | None = None


class ImportReconciler:
    def __init__(
        self,
        tmdb_service: TMDBService,
        user,
        read_cache: ReadCache | None = None,
        max_workers: int | None = None,
        task_name: str = "movie_import",
    ):
        self.tmdb_service = tmdb_service
        self.user = user
        self.read_cache = read_cache or ReadCache()
        workers = max_workers or getattr(settings, "IMPORT_SCAN_MAX_WORKERS", DEFAULT_SCAN_WORKERS)
        self.max_workers = max(MIN_SCAN_WORKERS, min(workers, MAX_SCAN_WORKERS))
        self.task_name = task_name

    # Cached lookups

    @property
    def _owned_cache_key(self) -> str:
        return f"user:{self.user.pk}:owned-entries"

    @staticmethod
    def _provider_cache_key(provider_id: int) -> str:
        return f"catalogue-entry:provider:{provider_id}"

    def _owned_entry_ids(self) -> set[int]:
        owned = self.read_cache.get(self._owned_cache_key)
        if owned is MISS:
            owned = UserAnnotation.owned_entry_ids(self.user)
            self.read_cache.set(self._owned_cache_key, owned)
        return owned

    def _catalogue_entry_id(self, provider_id: int) -> int | None:
        key = self._provider_cache_key(provider_id)
        entry_id = self.read_cache.get(key)
        if entry_id is MISS:
            entry_id = CatalogueEntry.objects.filter(provider_id=provider_id).values_list("pk", flat=True).first()
            self.read_cache.set(key, entry_id)
        return entry_id

    # Stage B: scan

    def _lookup_provider(self, row: ImportRow) -> ProviderLookup:
        # Runs on a worker thread: provider calls only, no database access.
        calls = 0
        try:
            calls += 1
            response = self.tmdb_service.search_movie(row.search_query)
            if not response.results:
                logger.info("No TMDB results for '%s'", row.search_query)
                return ProviderLookup(details=None, calls=calls)
            calls += 1
            details = self.tmdb_service.get_movie_details(response.results[0].id)
            return ProviderLookup(details=details, calls=calls)
        except ProviderRequestError as e:
            return ProviderLookup(details=None, calls=calls, error=str(e))

    def _iter_lookups(
        self,
        rows: Sequence[ImportRow],
        should_stop: Callable[[], bool] | None,
    ) -> Iterator[ProviderLookup]:
        """Yield one ProviderLookup per row, in row order."""
        cancelled = ProviderLookup(details=None, calls=0, error=SCAN_CANCELLED)

        if self.max_workers == 1:
            for row in rows:
                if should_stop and should_stop():
                    yield cancelled
                else:
                    yield self._lookup_provider(row)
            return

        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="tmdb-scan") as executor:
            futures = [executor.submit(self._lookup_provider, row) for row in rows]
            for future in futures:
                if should_stop and should_stop():
                    for pending in futures:
                        pending.cancel()
                if future.cancelled():
                    yield cancelled
                else:
                    yield future.result()

    def _build_candidate(self, row: ImportRow, details: TMDBMovieDetails, owned: set[int]) -> MatchCandidate:
        confidence = calculate_confidence(
            row.title,
            row.release_year_or_date,
            details.title,
            details.release_date,
        )
        entry_id = self._catalogue_entry_id(details.id)
        already_owned = entry_id is not None and entry_id in owned
        status = derive_status(confidence, already_owned)
        return MatchCandidate(
            row=row,
            candidate=details,
            confidence=confidence,
            status=status,
            already_in_user_collection=already_owned,
            resolved_catalogue_entry_id=entry_id,
            selected=status != MatchStatus.DUPLICATE,
        )

    def scan(
        self,
        rows: Sequence[ImportRow],
        on_progress: ProgressCallback | None = None,
        should_stop: Callable[[], bool] | None = None,
    ) -> ScanResult:
        """
        Propose a TMDB match for every row.

        Args:
            rows: Parsed import rows
            on_progress: Called with (processed, total) after every row
            should_stop: Polled before each row; once True no further provider requests are issued

        Returns:
            ScanResult with one MatchCandidate per row, in row order
        """
        total = len(rows)
        owned = self._owned_entry_ids()
        summary = ScanSummary()
        candidates: list[MatchCandidate] = []

        logger.info("Scanning %d rows for user %s (workers=%d)", total, self.user.pk, self.max_workers)

        for index, lookup in enumerate(self._iter_lookups(rows, should_stop)):
            row = rows[index]
            if lookup.calls:
                APICallCounter.increment("tmdb", lookup.calls)

            if lookup.details is None:
                candidate = MatchCandidate.unmatched(row, error=lookup.error)
                if lookup.error and lookup.error != SCAN_CANCELLED:
                    OperationalIssue.record(
                        name="TMDB Lookup Failed",
                        task=self.task_name,
                        error=lookup.error,
                        context={"title": row.title, "line_number": row.line_number, "query": row.search_query},
                        severity=OperationalIssue.Severity.WARNING,
                    )
            else:
                candidate = self._build_candidate(row, lookup.details, owned)

            logger.debug(
                "  [%d] '%s' -> %s (confidence=%d)",
                row.line_number,
                row.title,
                candidate.status.value,
                candidate.confidence,
            )
            candidates.append(candidate)
            summary.count(candidate)
            if on_progress:
                on_progress(index + 1, total)

        logger.info(
            "Scan complete: %d matched, %d need review, %d duplicates, %d unmatched (%d failed)",
            summary.matched,
            summary.needs_review,
            summary.duplicate,
            summary.unmatched,
            summary.failed,
        )
        return ScanResult(candidates=candidates, summary=summary)

    # Stage C: manual override

    def search_alternatives(self, query: str, limit: int = MAX_ALTERNATIVES) -> list[TMDBMovieResult]:
        """Free-text TMDB search for a replacement match. Provider errors propagate."""
        query = query.strip()
        if not query:
            return []
        APICallCounter.increment("tmdb")
        return self.tmdb_service.search_movie(query).results[:limit]

    def apply_override(self, candidate: MatchCandidate, provider_id: int) -> MatchCandidate:
        """
        Replace a candidate's match with the chosen TMDB movie.

        Confidence, status and the duplicate check are recomputed against the
        new provider id. On ProviderRequestError the candidate is left unchanged.
        """
        APICallCounter.increment("tmdb")
        details = self.tmdb_service.get_movie_details(provider_id)
        rebuilt = self._build_candidate(candidate.row, details, self._owned_entry_ids())

        candidate.candidate = rebuilt.candidate
        candidate.confidence = rebuilt.confidence
        candidate.status = rebuilt.status
        candidate.already_in_user_collection = rebuilt.already_in_user_collection
        candidate.resolved_catalogue_entry_id = rebuilt.resolved_catalogue_entry_id
        candidate.selected = rebuilt.selected
        candidate.error = None
        logger.info(
            "Override for '%s': now '%s' (id=%d, confidence=%d, status=%s)",
            candidate.row.title,
            details.title,
            details.id,
            candidate.confidence,
            candidate.status.value,
        )
        return candidate

    @staticmethod
    def set_selected(candidate: MatchCandidate, selected: bool) -> MatchCandidate:
        if selected and candidate.candidate is None:
            raise ValueError(f"Cannot select '{candidate.row.title}': no TMDB match")
        candidate.selected = selected
        return candidate

    # Stage D: commit

    def _commit_candidate(self, candidate: MatchCandidate) -> int:
        row = candidate.row
        try:
            with transaction.atomic():
                entry, _ = CatalogueEntry.upsert_from_tmdb(candidate.candidate)
                UserAnnotation.upsert_for_import(
                    self.user,
                    entry,
                    watched=row.watched,
                    rating=row.rating,
                    note=row.note,
                )
        except DatabaseError as e:
            raise PersistenceError(f"Could not save '{row.title}': {e}") from e

        candidate.resolved_catalogue_entry_id = entry.pk
        self.read_cache.invalidate(self._provider_cache_key(candidate.candidate.id))
        return entry.pk

    def commit(
        self,
        candidates: Sequence[MatchCandidate],
        on_progress: ProgressCallback | None = None,
    ) -> CommitSummary:
        """
        Persist every selected candidate that has TMDB metadata.

        Not atomic across rows: a failed row is counted and the rest proceed.
        Re-running with the same candidates converges to the same state.
        """
        selected = [c for c in candidates if c.selected and c.candidate is not None]
        total = len(selected)
        summary = CommitSummary()

        logger.info("Committing %d of %d candidates for user %s", total, len(candidates), self.user.pk)

        for position, candidate in enumerate(selected, start=1):
            try:
                entry_id = self._commit_candidate(candidate)
            except PersistenceError as e:
                summary.failed += 1
                summary.failures.append(
                    RowFailure(line_number=candidate.row.line_number, title=candidate.row.title, error=str(e))
                )
                OperationalIssue.record(
                    name="Import Commit Failed",
                    task=self.task_name,
                    error=e,
                    context={
                        "title": candidate.row.title,
                        "line_number": candidate.row.line_number,
                        "provider_id": candidate.candidate.id,
                    },
                )
            else:
                summary.imported += 1
                summary.catalogue_entry_ids.append(entry_id)

            if on_progress:
                on_progress(position, total)

        self.read_cache.invalidate(self._owned_cache_key)
        logger.info("Commit complete: %d imported, %d failed", summary.imported, summary.failed)
        return summary


def _coerce_tmdb_id(value) -> int | None:
    try:
        tmdb_id = int(value)
    except (TypeError, ValueError):
        return None
    return tmdb_id if tmdb_id > 0 else None


def upsert_catalogue_by_tmdb_ids(
    tmdb_service: TMDBService,
    tmdb_ids: Sequence,
    on_progress: Callable[[int, int, str], None] | None = None,
    delay_seconds: float = 0.2,
    task_name: str = "upsert_tmdb_ids",
) -> BulkUpsertSummary:
    """
    Upsert catalogue entries (no user annotations) for a list of TMDB ids.

    Invalid or empty ids are skipped. delay_seconds spaces out provider calls.
    on_progress receives (position, total, action) with action one of
    created, updated, skipped, error.
    """
    total = len(tmdb_ids)
    summary = BulkUpsertSummary(total_requested=total)

    for position, raw_id in enumerate(tmdb_ids, start=1):
        tmdb_id = _coerce_tmdb_id(raw_id)
        if tmdb_id is None:
            summary.skipped += 1
            if on_progress:
                on_progress(position, total, "skipped")
            continue

        try:
            APICallCounter.increment("tmdb")
            details = tmdb_service.get_movie_details(tmdb_id)
            with transaction.atomic():
                entry, created = CatalogueEntry.upsert_from_tmdb(details)
        except (ProviderRequestError, DatabaseError) as e:
            summary.errors += 1
            OperationalIssue.record(
                name="Catalogue Upsert Failed",
                task=task_name,
                error=e,
                context={"tmdb_id": tmdb_id},
            )
            action = "error"
        else:
            summary.catalogue_entry_ids.append(entry.pk)
            if created:
                summary.created += 1
                action = "created"
            else:
                summary.updated += 1
                action = "updated"

        if on_progress:
            on_progress(position, total, action)
        if delay_seconds > 0 and position < total:
            time.sleep(delay_seconds)

    return summary
