from django.apps import AppConfig


class CatalogueAppConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "catalogue_app"
    verbose_name = "Movie catalogue"
