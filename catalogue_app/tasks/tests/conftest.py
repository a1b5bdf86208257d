"""
Pytest fixtures for task tests.
"""

from unittest.mock import patch

import pytest

from catalogue_app.services.import_batch_store import ImportBatchStore
from catalogue_app.services.spreadsheet_parser import ImportRow, ParsedSheet


@pytest.fixture(autouse=True)
def mock_tmdb_for_tasks(mock_tmdb_service):
    """Tasks build their own TMDBService; hand them the in-memory mock instead."""
    with patch("catalogue_app.tasks.import_tasks.TMDBService") as service_class:
        service_class.return_value = mock_tmdb_service
        yield service_class


@pytest.fixture
def store():
    return ImportBatchStore()


@pytest.fixture
def batch(store, user, mock_tmdb_service, elf, grinch):
    mock_tmdb_service.register("Elf 2003", elf)
    mock_tmdb_service.register("The Grinch 2000", grinch)
    sheet = ParsedSheet(
        rows=[
            ImportRow(title="Elf", release_year_or_date="2003", watched=True, rating=9, line_number=2),
            ImportRow(title="The Grinch", release_year_or_date="2000", line_number=3),
            ImportRow(title="Nothing Like This", line_number=4),
        ]
    )
    return store.create(user.pk, "movies.xlsx", sheet)
