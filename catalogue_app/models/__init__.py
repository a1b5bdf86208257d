from catalogue_app.models.api_call_counter import APICallCounter
from catalogue_app.models.catalogue_entry import CatalogueEntry
from catalogue_app.models.operational_issue import OperationalIssue
from catalogue_app.models.user_annotation import UserAnnotation

__all__ = ["APICallCounter", "CatalogueEntry", "OperationalIssue", "UserAnnotation"]
