"""
Tests for the import workflow endpoints (upload -> scan -> review -> commit).

Celery runs eagerly under the test settings, so the scan and commit tasks
complete inside the request that queues them.
"""

import json
from unittest.mock import patch

import pytest
from django.core.files.uploadedfile import SimpleUploadedFile
from django.urls import reverse

from catalogue_app.conftest import make_details
from catalogue_app.models import CatalogueEntry, UserAnnotation
from catalogue_app.services.tmdb_service import ProviderRequestError

CSV = (
    "Title,Year,Watched,Rating\r\n"
    "Elf,2003,yes,9\r\n"
    "The Grinch,2000,,\r\n"
    "Nothing Like This,,,\r\n"
).encode("utf-8")


@pytest.fixture(autouse=True)
def tmdb(mock_tmdb_service, elf, grinch):
    mock_tmdb_service.register("Elf 2003", elf)
    mock_tmdb_service.register("The Grinch 2000", grinch)
    mock_tmdb_service.register("grinch", make_details(554, "The Grinch", "2000-11-17"), grinch)
    with patch("catalogue_app.views.TMDBService", return_value=mock_tmdb_service), patch(
        "catalogue_app.tasks.import_tasks.TMDBService", return_value=mock_tmdb_service
    ):
        yield mock_tmdb_service


@pytest.fixture
def logged_in(client, user):
    client.force_login(user)
    return client


def upload(client, content=CSV, name="movies.csv"):
    return client.post(reverse("upload_import"), {"file": SimpleUploadedFile(name, content)})


def post_json(client, url, payload):
    return client.post(url, data=json.dumps(payload), content_type="application/json")


@pytest.fixture
def batch_id(logged_in):
    response = upload(logged_in)
    assert response.status_code == 202
    return response.json()["batch_id"]


@pytest.mark.django_db
class TestUpload:
    def test_requires_login(self, client):
        response = upload(client)

        assert response.status_code == 302
        assert "/admin/login/" in response["Location"]

    def test_upload_parses_and_scans(self, logged_in):
        response = upload(logged_in)

        assert response.status_code == 202
        data = response.json()
        assert data["total_rows"] == 3
        assert data["parse_errors"] == []

        batch = logged_in.get(reverse("import_batch", args=[data["batch_id"]])).json()
        assert batch["phase"] == "review"
        assert batch["progress"] == {"processed": 3, "total": 3}
        assert [c["status"] for c in batch["candidates"]] == ["matched", "needs_review", "unmatched"]
        assert batch["candidates"][0]["candidate"]["provider_id"] == 10719
        assert batch["scan_summary"]["matched"] == 1
        assert not CatalogueEntry.objects.exists()

    def test_parse_errors_are_reported_per_row(self, logged_in):
        content = b"Title,Rating\r\nElf,9\r\nHeat,42\r\n"

        data = upload(logged_in, content).json()

        assert data["total_rows"] == 1
        assert data["parse_errors"][0]["line_number"] == 3

    def test_unreadable_file_is_rejected(self, logged_in, tmdb):
        response = upload(logged_in, b"garbage", "movies.xlsx")

        assert response.status_code == 400
        assert "error" in response.json()
        tmdb.search_movie.assert_not_called()

    def test_missing_file(self, logged_in):
        response = logged_in.post(reverse("upload_import"))

        assert response.status_code == 400

    def test_get_not_allowed(self, logged_in):
        assert logged_in.get(reverse("upload_import")).status_code == 405


@pytest.mark.django_db
class TestBatch:
    def test_other_users_batch_is_not_found(self, client, batch_id, other_user):
        client.force_login(other_user)

        assert client.get(reverse("import_batch", args=[batch_id])).status_code == 404

    def test_unknown_batch(self, logged_in):
        assert logged_in.get(reverse("import_batch", args=["nope"])).status_code == 404

    def test_discard_leaves_nothing_persisted(self, logged_in, batch_id):
        response = logged_in.delete(reverse("import_batch", args=[batch_id]))

        assert response.status_code == 200
        assert response.json()["discarded"] is True
        assert logged_in.get(reverse("import_batch", args=[batch_id])).status_code == 404
        assert not CatalogueEntry.objects.exists()
        assert not UserAnnotation.objects.exists()


@pytest.mark.django_db
class TestSearch:
    def test_returns_alternatives(self, logged_in):
        response = logged_in.get(reverse("import_search"), {"q": "grinch"})

        assert response.status_code == 200
        results = response.json()["results"]
        assert [r["provider_id"] for r in results] == [554, 8871]
        assert results[0]["poster_url"] == "https://image.tmdb.org/t/p/w500/poster_554.jpg"

    def test_provider_error_is_bad_gateway(self, logged_in, tmdb):
        tmdb.search_movie.side_effect = ProviderRequestError("TMDB API request timed out")

        response = logged_in.get(reverse("import_search"), {"q": "grinch"})

        assert response.status_code == 502
        assert response.json()["error"] == "TMDB API request timed out"


@pytest.mark.django_db
class TestReview:
    def test_override_updates_candidate(self, logged_in, batch_id):
        url = reverse("import_override", args=[batch_id, 1])

        response = post_json(logged_in, url, {"provider_id": 554})

        assert response.status_code == 200
        data = response.json()
        assert data["candidate"]["provider_id"] == 554
        assert data["confidence"] == 100
        assert data["status"] == "matched"
        batch = logged_in.get(reverse("import_batch", args=[batch_id])).json()
        assert batch["candidates"][1]["candidate"]["provider_id"] == 554

    def test_override_validation(self, logged_in, batch_id):
        assert post_json(logged_in, reverse("import_override", args=[batch_id, 1]), {}).status_code == 400
        assert post_json(logged_in, reverse("import_override", args=[batch_id, 9]), {"provider_id": 1}).status_code == 404
        assert post_json(logged_in, reverse("import_override", args=[batch_id, 1]), {"provider_id": 424242}).status_code == 502

    def test_selection(self, logged_in, batch_id):
        response = post_json(logged_in, reverse("import_selection", args=[batch_id, 1]), {"selected": False})

        assert response.status_code == 200
        assert response.json()["selected"] is False

    @pytest.mark.parametrize("payload", [{"selected": "false"}, {"selected": 0}, {"selected": None}, {}])
    def test_selection_requires_boolean(self, logged_in, batch_id, payload):
        response = post_json(logged_in, reverse("import_selection", args=[batch_id, 0]), payload)

        assert response.status_code == 400
        batch = logged_in.get(reverse("import_batch", args=[batch_id])).json()
        assert batch["candidates"][0]["selected"] is True

    def test_cannot_select_unmatched_row(self, logged_in, batch_id):
        response = post_json(logged_in, reverse("import_selection", args=[batch_id, 2]), {"selected": True})

        assert response.status_code == 400

    def test_commit(self, logged_in, batch_id, user):
        post_json(logged_in, reverse("import_selection", args=[batch_id, 1]), {"selected": False})

        response = logged_in.post(reverse("import_commit", args=[batch_id]))

        assert response.status_code == 202
        assert response.json()["phase"] == "committed"
        assert response.json()["commit_summary"]["imported"] == 1
        annotation = UserAnnotation.objects.get(user=user)
        assert annotation.catalogue_entry.provider_id == 10719
        assert annotation.watched is True
        assert annotation.rating == 9

    def test_review_actions_after_commit_conflict(self, logged_in, batch_id):
        logged_in.post(reverse("import_commit", args=[batch_id]))

        assert logged_in.post(reverse("import_commit", args=[batch_id])).status_code == 409
        assert post_json(logged_in, reverse("import_selection", args=[batch_id, 0]), {"selected": False}).status_code == 409
        assert logged_in.delete(reverse("import_batch", args=[batch_id])).status_code == 409
