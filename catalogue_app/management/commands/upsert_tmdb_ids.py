"""
Add or refresh catalogue entries straight from TMDB ids, without touching any user's collection.

Usage:
    python manage.py upsert_tmdb_ids 10719 8871
    python manage.py upsert_tmdb_ids 550 --delay 0.5
"""

from django.core.management.base import BaseCommand, CommandError

from catalogue_app.services.import_reconciler import upsert_catalogue_by_tmdb_ids
from catalogue_app.services.tmdb_service import ProviderRequestError, TMDBService


class Command(BaseCommand):
    help = "Upsert catalogue entries for a list of TMDB ids"

    def add_arguments(self, parser):
        parser.add_argument(
            "tmdb_ids",
            nargs="+",
            help="TMDB movie ids",
        )
        parser.add_argument(
            "--delay",
            type=float,
            default=0.2,
            help="Seconds to wait between TMDB requests (default: 0.2)",
        )

    def handle(self, *args, **options):
        tmdb_ids = options["tmdb_ids"]

        try:
            service = TMDBService()
        except ProviderRequestError as e:
            raise CommandError(str(e))

        def report(position: int, total: int, action: str) -> None:
            self.stdout.write(f"  [{position}/{total}] {tmdb_ids[position - 1]}: {action}")

        summary = upsert_catalogue_by_tmdb_ids(
            service,
            tmdb_ids,
            on_progress=report,
            delay_seconds=options["delay"],
        )

        self.stdout.write("")
        style = self.style.SUCCESS if summary.errors == 0 else self.style.WARNING
        self.stdout.write(
            style(
                f"Done: {summary.created} created, {summary.updated} updated, "
                f"{summary.skipped} skipped, {summary.errors} errors "
                f"(of {summary.total_requested} requested)"
            )
        )
