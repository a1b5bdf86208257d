"""
UserAnnotation model: one user's personal data about a catalogue entry.
"""

from __future__ import annotations

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from catalogue_app.models.catalogue_entry import CatalogueEntry


class UserAnnotation(models.Model):
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="annotations",
    )
    catalogue_entry = models.ForeignKey(
        CatalogueEntry,
        on_delete=models.CASCADE,
        related_name="annotations",
    )
    watched = models.BooleanField(default=False)
    rating = models.PositiveSmallIntegerField(
        null=True,
        blank=True,
        validators=[MinValueValidator(1), MaxValueValidator(10)],
        help_text="Personal rating (1-10)",
    )
    note = models.TextField(blank=True, default="", help_text="Personal review or notes")
    favorite = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["user", "catalogue_entry"],
                name="unique_user_catalogue_entry",
            )
        ]

    def __str__(self):
        return f"{self.user} - {self.catalogue_entry}"

    @classmethod
    def owned_entry_ids(cls, user) -> set[int]:
        return set(cls.objects.filter(user=user).values_list("catalogue_entry_id", flat=True))

    @classmethod
    def upsert_for_import(
        cls,
        user,
        catalogue_entry: CatalogueEntry,
        watched: bool | None,
        rating: int | None,
        note: str | None,
    ) -> tuple[UserAnnotation, bool]:
        """
        Create the annotation for (user, catalogue_entry) or merge imported values into it.

        Values that are None leave the stored value untouched on merge; a new
        annotation starts unwatched, unrated and not a favorite.
        """
        annotation, created = cls.objects.get_or_create(
            user=user,
            catalogue_entry=catalogue_entry,
            defaults={
                "watched": bool(watched),
                "rating": rating,
                "note": note or "",
                "favorite": False,
            },
        )
        if created:
            return annotation, True

        update_fields = []
        if watched is not None and annotation.watched != watched:
            annotation.watched = watched
            update_fields.append("watched")
        if rating is not None and annotation.rating != rating:
            annotation.rating = rating
            update_fields.append("rating")
        if note is not None and annotation.note != note:
            annotation.note = note
            update_fields.append("note")

        if update_fields:
            annotation.save(update_fields=[*update_fields, "updated_at"])
        return annotation, False
