"""
Run a full spreadsheet import for one user from the command line.

Scans every row against TMDB, prints the proposed matches and commits the
selected ones. Rows needing review are only committed with --include-review.

Usage:
    python manage.py import_spreadsheet movies.xlsx --user alice
    python manage.py import_spreadsheet movies.csv --user alice --dry-run
    python manage.py import_spreadsheet movies.xlsx --user alice --include-review
"""

from pathlib import Path

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError

from catalogue_app.services.import_reconciler import ImportReconciler
from catalogue_app.services.match_candidate import MatchStatus
from catalogue_app.services.spreadsheet_parser import ParseError, parse_spreadsheet
from catalogue_app.services.tmdb_service import ProviderRequestError, TMDBService

STATUS_STYLES = {
    MatchStatus.MATCHED: "SUCCESS",
    MatchStatus.NEEDS_REVIEW: "WARNING",
    MatchStatus.DUPLICATE: "NOTICE",
    MatchStatus.UNMATCHED: "ERROR",
}


class Command(BaseCommand):
    help = "Import a movie spreadsheet (.xlsx or .csv) into a user's collection"

    def add_arguments(self, parser):
        parser.add_argument("path", type=str, help="Path to the spreadsheet")
        parser.add_argument("--user", required=True, help="Username that owns the imported annotations")
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Scan and print matches without saving anything",
        )
        parser.add_argument(
            "--include-review",
            action="store_true",
            help="Also commit rows whose confidence is below the match threshold",
        )
        parser.add_argument(
            "--workers",
            type=int,
            default=None,
            help="Concurrent TMDB lookups (1-5, default: IMPORT_SCAN_MAX_WORKERS)",
        )

    def handle(self, *args, **options):
        path = Path(options["path"])
        if not path.is_file():
            raise CommandError(f"File not found: {path}")

        user_model = get_user_model()
        try:
            user = user_model.objects.get(**{user_model.USERNAME_FIELD: options["user"]})
        except user_model.DoesNotExist:
            raise CommandError(f"User '{options['user']}' does not exist")

        try:
            sheet = parse_spreadsheet(path.read_bytes(), path.name)
        except ParseError as e:
            raise CommandError(f"Could not parse {path.name}: {e}")

        for error in sheet.errors:
            self.stderr.write(self.style.WARNING(f"  line {error.line_number}: {error.error}"))

        try:
            service = TMDBService()
        except ProviderRequestError as e:
            raise CommandError(str(e))

        reconciler = ImportReconciler(service, user, max_workers=options["workers"], task_name="import_spreadsheet")

        self.stdout.write(f"Scanning {len(sheet.rows)} rows from {path.name}...")
        result = reconciler.scan(sheet.rows)

        for candidate in result.candidates:
            self._write_candidate(candidate)

        summary = result.summary
        self.stdout.write("")
        self.stdout.write(
            f"Scan: {summary.matched} matched, {summary.needs_review} need review, "
            f"{summary.duplicate} duplicates, {summary.unmatched} unmatched ({summary.failed} failed)"
        )

        if options["dry_run"]:
            self.stdout.write(self.style.WARNING("Dry run, nothing saved."))
            return

        if not options["include_review"]:
            for candidate in result.candidates:
                if candidate.status == MatchStatus.NEEDS_REVIEW:
                    reconciler.set_selected(candidate, False)

        commit = reconciler.commit(result.candidates)
        for failure in commit.failures:
            self.stderr.write(self.style.ERROR(f"  line {failure.line_number} '{failure.title}': {failure.error}"))

        style = self.style.SUCCESS if commit.failed == 0 else self.style.WARNING
        self.stdout.write(style(f"Imported {commit.imported} movies ({commit.failed} failed)"))

    def _write_candidate(self, candidate):
        row = candidate.row
        style = getattr(self.style, STATUS_STYLES[candidate.status])
        label = style(f"{candidate.status.value:<12}")
        if candidate.candidate is None:
            reason = f" - {candidate.error}" if candidate.error else ""
            self.stdout.write(f"  {label} line {row.line_number}: '{row.title}'{reason}")
            return
        self.stdout.write(
            f"  {label} line {row.line_number}: '{row.title}' -> "
            f"'{candidate.candidate.title}' ({candidate.candidate.release_date or '?'}) "
            f"[TMDB ID: {candidate.candidate.id}, confidence {candidate.confidence}]"
        )
