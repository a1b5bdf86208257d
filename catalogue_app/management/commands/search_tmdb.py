"""
Search TMDB the way the import scan does, optionally scoring each result.

Usage:
    python manage.py search_tmdb "Elf"
    python manage.py search_tmdb "The Grinch" --year 2000
    python manage.py search_tmdb "Fight Club" --limit 3
"""

from django.core.management.base import BaseCommand

from catalogue_app.models import APICallCounter
from catalogue_app.services.match_candidate import derive_status
from catalogue_app.services.title_matching import calculate_confidence
from catalogue_app.services.tmdb_service import ProviderRequestError, TMDBService, get_poster_url


class Command(BaseCommand):
    help = "Search TMDB (The Movie Database) for a movie title"

    def add_arguments(self, parser):
        parser.add_argument(
            "query",
            type=str,
            help="The movie title to search for",
        )
        parser.add_argument(
            "--year",
            type=str,
            help="Release year or date; when given, each result is scored like an import row",
        )
        parser.add_argument(
            "--language",
            type=str,
            default="en-US",
            help="Language for results (default: en-US)",
        )
        parser.add_argument(
            "--limit",
            type=int,
            default=5,
            help="Maximum number of results to display (default: 5)",
        )

    def handle(self, *args, **options):
        query = options["query"]
        year = options["year"]
        limit = options["limit"]

        self.stdout.write(f"Searching TMDB for: '{query}'")
        if year:
            self.stdout.write(f"  Year: {year}")
        self.stdout.write("")

        try:
            service = TMDBService()
            APICallCounter.increment("tmdb")
            response = service.search_movie(query=query, language=options["language"])
        except ProviderRequestError as e:
            self.stderr.write(self.style.ERROR(f"Error: {e}"))
            return

        if response.total_results == 0:
            self.stdout.write(self.style.WARNING("No movies found."))
            return

        self.stdout.write(
            self.style.SUCCESS(
                f"Found {response.total_results} result(s) (showing {min(limit, len(response.results))})"
            )
        )
        self.stdout.write("")

        for i, movie in enumerate(response.results[:limit], 1):
            self.stdout.write(self.style.HTTP_INFO(f"--- Result {i} ---"))
            self.stdout.write(f"  Title: {movie.title}")
            if movie.original_title and movie.original_title != movie.title:
                self.stdout.write(f"  Original Title: {movie.original_title}")
            self.stdout.write(f"  TMDB ID: {movie.id}")
            self.stdout.write(f"  Release Date: {movie.release_date or 'Unknown'}")
            if year:
                confidence = calculate_confidence(query, year, movie.title, movie.release_date)
                status = derive_status(confidence, already_in_user_collection=False)
                self.stdout.write(f"  Confidence: {confidence} ({status.value})")
            if movie.overview:
                overview = movie.overview[:200] + "..." if len(movie.overview) > 200 else movie.overview
                self.stdout.write(f"  Overview: {overview}")
            if movie.poster_path:
                self.stdout.write(f"  Poster: {get_poster_url(movie.poster_path)}")
            self.stdout.write("")
