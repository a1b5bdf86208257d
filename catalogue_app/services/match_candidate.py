from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum

from catalogue_app.services.spreadsheet_parser import ImportRow
from catalogue_app.services.tmdb_service import TMDBMovieDetails

MATCH_CONFIDENCE_THRESHOLD = 70
SCAN_CANCELLED = "cancelled"


class MatchStatus(str, Enum):
    MATCHED = "matched"
    UNMATCHED = "unmatched"
    DUPLICATE = "duplicate"
    NEEDS_REVIEW = "needs_review"


def derive_status(confidence: int, already_in_user_collection: bool) -> MatchStatus:
    if already_in_user_collection:
        return MatchStatus.DUPLICATE
    if confidence >= MATCH_CONFIDENCE_THRESHOLD:
        return MatchStatus.MATCHED
    return MatchStatus.NEEDS_REVIEW


@dataclass
class MatchCandidate:
    """Proposed TMDB match for one import row, reviewed by the user before commit."""

    row: ImportRow
    candidate: TMDBMovieDetails | None = None
    confidence: int = 0
    status: MatchStatus = MatchStatus.UNMATCHED
    already_in_user_collection: bool = False
    resolved_catalogue_entry_id: int | None = None
    selected: bool = False
    error: str | None = None

    @classmethod
    def unmatched(cls, row: ImportRow, error: str | None = None) -> MatchCandidate:
        return cls(row=row, error=error)

    def to_dict(self) -> dict:
        movie = None
        if self.candidate:
            movie = {
                "provider_id": self.candidate.id,
                "title": self.candidate.title,
                "release_date": self.candidate.release_date,
                "overview": self.candidate.overview,
                "poster_url": self.candidate.poster_url,
                "genres": [g.name for g in self.candidate.genres],
            }
        return {
            "row": asdict(self.row),
            "candidate": movie,
            "confidence": self.confidence,
            "status": self.status.value,
            "already_in_user_collection": self.already_in_user_collection,
            "resolved_catalogue_entry_id": self.resolved_catalogue_entry_id,
            "selected": self.selected,
            "error": self.error,
        }


@dataclass
class ScanSummary:
    total: int = 0
    matched: int = 0
    needs_review: int = 0
    duplicate: int = 0
    unmatched: int = 0
    failed: int = 0
    cancelled: int = 0

    def count(self, candidate: MatchCandidate) -> None:
        self.total += 1
        setattr(self, candidate.status.value, getattr(self, candidate.status.value) + 1)
        if candidate.error == SCAN_CANCELLED:
            self.cancelled += 1
        elif candidate.error:
            self.failed += 1


@dataclass
class ScanResult:
    candidates: list[MatchCandidate]
    summary: ScanSummary


@dataclass
class RowFailure:
    line_number: int
    title: str
    error: str


@dataclass
class CommitSummary:
    imported: int = 0
    failed: int = 0
    catalogue_entry_ids: list[int] = field(default_factory=list)
    failures: list[RowFailure] = field(default_factory=list)


@dataclass
class BulkUpsertSummary:
    total_requested: int = 0
    created: int = 0
    updated: int = 0
    skipped: int = 0
    errors: int = 0
    catalogue_entry_ids: list[int] = field(default_factory=list)
