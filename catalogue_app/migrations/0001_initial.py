"""Initial catalogue, annotation and tracking models."""

import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="APICallCounter",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "service_name",
                    models.CharField(help_text="Name of the external service (e.g., 'tmdb')", max_length=100),
                ),
                ("date", models.DateField()),
                ("call_count", models.PositiveIntegerField(default=0)),
                ("last_called_at", models.DateTimeField(blank=True, null=True)),
            ],
            options={
                "verbose_name": "API Call Counter",
                "verbose_name_plural": "API Call Counters",
            },
        ),
        migrations.CreateModel(
            name="CatalogueEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "provider_id",
                    models.PositiveIntegerField(help_text="The Movie Database (TMDB) identifier", unique=True),
                ),
                ("title", models.CharField(max_length=300)),
                (
                    "sort_title",
                    models.CharField(help_text="Title without a leading article, used for ordering", max_length=300),
                ),
                ("sort_title_lower", models.CharField(blank=True, default="", max_length=300)),
                ("original_title", models.CharField(blank=True, default="", max_length=300)),
                (
                    "release_date",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Release date as reported by TMDB (YYYY-MM-DD)",
                        max_length=10,
                    ),
                ),
                ("genres", models.JSONField(blank=True, default=list)),
                ("overview", models.TextField(blank=True, default="")),
                ("poster_url", models.URLField(blank=True, default="", max_length=500)),
                ("backdrop_url", models.URLField(blank=True, default="", max_length=500)),
                ("runtime", models.PositiveIntegerField(blank=True, help_text="Runtime in minutes", null=True)),
                ("cast", models.JSONField(blank=True, default=list, help_text="Top billed actors")),
                ("directors", models.JSONField(blank=True, default=list)),
                ("keywords", models.JSONField(blank=True, default=list)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "verbose_name_plural": "catalogue entries",
                "ordering": ["sort_title_lower"],
                "indexes": [models.Index(fields=["sort_title_lower"], name="catalogue_a_sort_ti_5b0c1e_idx")],
            },
        ),
        migrations.CreateModel(
            name="OperationalIssue",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=255)),
                ("task", models.CharField(max_length=255)),
                ("error_message", models.TextField()),
                ("traceback", models.TextField(blank=True)),
                ("context", models.JSONField(blank=True, default=dict)),
                (
                    "severity",
                    models.CharField(
                        choices=[("error", "Error"), ("warning", "Warning"), ("info", "Info")],
                        default="error",
                        max_length=20,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["created_at"], name="catalogue_a_created_4d1f7a_idx"),
                    models.Index(fields=["task"], name="catalogue_a_task_8e2b3c_idx"),
                    models.Index(fields=["severity"], name="catalogue_a_severit_a6c9d0_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="UserAnnotation",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("watched", models.BooleanField(default=False)),
                (
                    "rating",
                    models.PositiveSmallIntegerField(
                        blank=True,
                        help_text="Personal rating (1-10)",
                        null=True,
                        validators=[
                            django.core.validators.MinValueValidator(1),
                            django.core.validators.MaxValueValidator(10),
                        ],
                    ),
                ),
                ("note", models.TextField(blank=True, default="", help_text="Personal review or notes")),
                ("favorite", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "catalogue_entry",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="annotations",
                        to="catalogue_app.catalogueentry",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="annotations",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
        ),
        migrations.AddConstraint(
            model_name="apicallcounter",
            constraint=models.UniqueConstraint(fields=("service_name", "date"), name="unique_service_date"),
        ),
        migrations.AddConstraint(
            model_name="userannotation",
            constraint=models.UniqueConstraint(fields=("user", "catalogue_entry"), name="unique_user_catalogue_entry"),
        ),
    ]
