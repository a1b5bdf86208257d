"""
CatalogueEntry model: shared, de-duplicated movie metadata keyed by TMDB id.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from django.db import models

from catalogue_app.services.title_matching import generate_sort_title, make_keywords, normalize_title

if TYPE_CHECKING:
    from catalogue_app.services.tmdb_service import TMDBMovieDetails

logger = logging.getLogger(__name__)

MAX_CAST = 10


class CatalogueEntry(models.Model):
    """
    A movie in the shared catalogue, independent of any user's opinion of it.

    Created once per distinct provider_id and merge-updated on re-import.
    """

    provider_id = models.PositiveIntegerField(
        unique=True,
        help_text="The Movie Database (TMDB) identifier",
    )
    title = models.CharField(max_length=300)
    sort_title = models.CharField(
        max_length=300,
        help_text="Title without a leading article, used for ordering",
    )
    sort_title_lower = models.CharField(max_length=300, blank=True, default="")
    original_title = models.CharField(max_length=300, blank=True, default="")
    release_date = models.CharField(
        max_length=10,
        blank=True,
        default="",
        help_text="Release date as reported by TMDB (YYYY-MM-DD)",
    )
    genres = models.JSONField(default=list, blank=True)
    overview = models.TextField(blank=True, default="")
    poster_url = models.URLField(max_length=500, blank=True, default="")
    backdrop_url = models.URLField(max_length=500, blank=True, default="")
    runtime = models.PositiveIntegerField(null=True, blank=True, help_text="Runtime in minutes")
    cast = models.JSONField(default=list, blank=True, help_text="Top billed actors")
    directors = models.JSONField(default=list, blank=True)
    keywords = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["sort_title_lower"]
        verbose_name_plural = "catalogue entries"
        indexes = [
            models.Index(fields=["sort_title_lower"], name="catalogue_a_sort_ti_5b0c1e_idx"),
        ]

    def __str__(self):
        if self.release_date:
            return f"{self.title} ({self.release_date[:4]})"
        return self.title

    @property
    def tmdb_url(self) -> str:
        return f"https://www.themoviedb.org/movie/{self.provider_id}"

    @staticmethod
    def fields_from_tmdb(details: TMDBMovieDetails) -> dict:
        """Catalogue field values for a TMDB detail record."""
        sort_title = generate_sort_title(details.title)
        genres = [g.name for g in details.genres]
        cast = [c.name for c in details.cast[:MAX_CAST]]
        return {
            "title": details.title,
            "sort_title": sort_title,
            "sort_title_lower": normalize_title(sort_title),
            "original_title": details.original_title,
            "release_date": details.release_date,
            "genres": genres,
            "overview": details.overview,
            "poster_url": details.poster_url or "",
            "backdrop_url": details.backdrop_url or "",
            "runtime": details.runtime,
            "cast": cast,
            "directors": [d.name for d in details.directors],
            "keywords": make_keywords(
                details.title,
                details.original_title,
                details.release_date,
                genres,
                cast,
            ),
        }

    @classmethod
    def upsert_from_tmdb(cls, details: TMDBMovieDetails) -> tuple[CatalogueEntry, bool]:
        """
        Create the entry for details.id, or merge the TMDB fields into the existing one.

        Returns:
            Tuple of (CatalogueEntry, created boolean)
        """
        entry, created = cls.objects.update_or_create(
            provider_id=details.id,
            defaults=cls.fields_from_tmdb(details),
        )
        logger.info("%s catalogue entry %s (provider_id=%d)", "Created" if created else "Updated", entry, details.id)
        return entry, created
