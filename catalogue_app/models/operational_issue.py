import logging
import traceback as traceback_module

from django.db import models

logger = logging.getLogger(__name__)


class OperationalIssue(models.Model):
    """Row-level failures and warnings raised while importing movies."""

    class Severity(models.TextChoices):
        ERROR = "error", "Error"
        WARNING = "warning", "Warning"
        INFO = "info", "Info"

    name = models.CharField(max_length=255)
    task = models.CharField(max_length=255)
    error_message = models.TextField()
    traceback = models.TextField(blank=True)
    context = models.JSONField(default=dict, blank=True)
    severity = models.CharField(
        max_length=20,
        choices=Severity.choices,
        default=Severity.ERROR,
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=["created_at"], name="catalogue_a_created_4d1f7a_idx"),
            models.Index(fields=["task"], name="catalogue_a_task_8e2b3c_idx"),
            models.Index(fields=["severity"], name="catalogue_a_severit_a6c9d0_idx"),
        ]
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"{self.name} ({self.task}) - {self.created_at}"

    @classmethod
    def record(
        cls,
        name: str,
        task: str,
        error: Exception | str,
        context: dict | None = None,
        severity: str = Severity.ERROR,
    ) -> "OperationalIssue":
        """Log and persist an issue; the traceback is captured when called inside an except block."""
        formatted = traceback_module.format_exc() if isinstance(error, Exception) else ""
        if formatted.strip() == "NoneType: None":
            formatted = ""
        log = logger.error if severity == cls.Severity.ERROR else logger.warning
        log("%s (%s): %s", name, task, error)
        return cls.objects.create(
            name=name,
            task=task,
            error_message=str(error),
            traceback=formatted,
            context=context or {},
            severity=severity,
        )
