"""
API Call Counter model for tracking metadata-provider usage per day.
"""

from django.db import models
from django.db.models import F
from django.utils import timezone


class APICallCounter(models.Model):
    """
    Number of calls made to an external API on one day.

    The provider rate limit is the only shared resource of an import, so every
    TMDB request is counted here.
    """

    service_name = models.CharField(max_length=100, help_text="Name of the external service (e.g., 'tmdb')")
    date = models.DateField()
    call_count = models.PositiveIntegerField(default=0)
    last_called_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        verbose_name = "API Call Counter"
        verbose_name_plural = "API Call Counters"
        constraints = [
            models.UniqueConstraint(
                fields=["service_name", "date"],
                name="unique_service_date",
            )
        ]

    def __str__(self):
        return f"{self.service_name} ({self.date}): {self.call_count} calls"

    @classmethod
    def increment(cls, service_name: str, amount: int = 1) -> int:
        """
        Add amount calls to today's counter for a service and return the new count.

        Uses an F() update so concurrent increments are not lost.
        """
        now = timezone.now()
        counter, _ = cls.objects.get_or_create(
            service_name=service_name,
            date=now.date(),
            defaults={"call_count": 0},
        )
        if amount:
            cls.objects.filter(pk=counter.pk).update(
                call_count=F("call_count") + amount,
                last_called_at=now,
            )
            counter.refresh_from_db()
        return counter.call_count
