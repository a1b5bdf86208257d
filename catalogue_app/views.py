"""
JSON endpoints for the spreadsheet import workflow: upload -> scan -> review -> commit.
"""

import json
import logging

from django.contrib.auth.decorators import login_required
from django.http import JsonResponse
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from catalogue_app.services.import_batch_store import BatchPhase, ImportBatchNotFound, ImportBatchStore
from catalogue_app.services.import_reconciler import ImportReconciler
from catalogue_app.services.spreadsheet_parser import ParseError, parse_spreadsheet
from catalogue_app.services.tmdb_service import ProviderRequestError, TMDBService, get_poster_url
from catalogue_app.tasks.import_tasks import commit_import_batch_task, scan_import_batch_task

logger = logging.getLogger(__name__)


def _error(message: str, status: int) -> JsonResponse:
    return JsonResponse({"error": message}, status=status)


def _json_body(request) -> dict:
    try:
        body = json.loads(request.body or b"{}")
    except json.JSONDecodeError:
        return {}
    return body if isinstance(body, dict) else {}


def _batch_response(store: ImportBatchStore, batch, status: int = 200) -> JsonResponse:
    return JsonResponse(batch.to_dict(progress=store.get_progress(batch.batch_id)), status=status)


@login_required
@require_POST
def upload_import(request):
    """Parse an uploaded spreadsheet and queue the TMDB scan."""
    upload = request.FILES.get("file")
    if upload is None:
        return _error("No file uploaded", 400)

    try:
        sheet = parse_spreadsheet(upload.read(), upload.name)
    except ParseError as e:
        logger.warning("Rejected import upload '%s': %s", upload.name, e)
        return _error(str(e), 400)

    store = ImportBatchStore()
    batch = store.create(request.user.pk, upload.name, sheet)
    scan_import_batch_task.delay(batch.batch_id)

    return JsonResponse(
        {
            "batch_id": batch.batch_id,
            "total_rows": len(sheet.rows),
            "dropped_rows": sheet.dropped,
            "parse_errors": [{"line_number": e.line_number, "error": e.error} for e in sheet.errors],
        },
        status=202,
    )


@login_required
@require_http_methods(["GET", "DELETE"])
def import_batch(request, batch_id):
    """GET returns batch state and progress; DELETE discards the batch."""
    store = ImportBatchStore()
    try:
        batch = store.get(batch_id, user_id=request.user.pk)
    except ImportBatchNotFound:
        return _error("Import not found", 404)

    if request.method == "DELETE":
        if batch.phase in (BatchPhase.COMMITTING, BatchPhase.COMMITTED):
            return _error("Import has already been committed", 409)
        store.discard(batch_id)
        return JsonResponse({"batch_id": batch_id, "discarded": True})

    return _batch_response(store, batch)


@login_required
@require_GET
def search_tmdb(request):
    """Alternative matches for a manual override."""
    query = request.GET.get("q", "")
    try:
        results = ImportReconciler(TMDBService(), request.user).search_alternatives(query)
    except ProviderRequestError as e:
        return _error(str(e), 502)

    return JsonResponse(
        {
            "results": [
                {
                    "provider_id": r.id,
                    "title": r.title,
                    "release_date": r.release_date,
                    "poster_url": get_poster_url(r.poster_path),
                }
                for r in results
            ]
        }
    )


def _reviewable_batch(store: ImportBatchStore, request, batch_id):
    batch = store.get(batch_id, user_id=request.user.pk)
    if batch.phase != BatchPhase.REVIEW:
        return batch, _error(f"Import is not in review (phase: {batch.phase.value})", 409)
    return batch, None


@login_required
@require_POST
def override_match(request, batch_id, index):
    store = ImportBatchStore()
    try:
        batch, conflict = _reviewable_batch(store, request, batch_id)
        if conflict:
            return conflict
        candidate = batch.candidate_at(index)
    except ImportBatchNotFound:
        return _error("Import not found", 404)
    except IndexError as e:
        return _error(str(e), 404)

    try:
        provider_id = int(_json_body(request).get("provider_id"))
    except (TypeError, ValueError):
        return _error("provider_id must be an integer", 400)

    try:
        ImportReconciler(TMDBService(), request.user).apply_override(candidate, provider_id)
    except ProviderRequestError as e:
        return _error(str(e), 502)

    store.save(batch)
    return JsonResponse(candidate.to_dict())


@login_required
@require_POST
def set_selection(request, batch_id, index):
    store = ImportBatchStore()
    try:
        batch, conflict = _reviewable_batch(store, request, batch_id)
        if conflict:
            return conflict
        candidate = batch.candidate_at(index)
    except ImportBatchNotFound:
        return _error("Import not found", 404)
    except IndexError as e:
        return _error(str(e), 404)

    selected = _json_body(request).get("selected")
    if not isinstance(selected, bool):
        return _error("selected must be true or false", 400)

    try:
        ImportReconciler.set_selected(candidate, selected)
    except ValueError as e:
        return _error(str(e), 400)

    store.save(batch)
    return JsonResponse(candidate.to_dict())


@login_required
@require_POST
def commit_import(request, batch_id):
    store = ImportBatchStore()
    try:
        batch, conflict = _reviewable_batch(store, request, batch_id)
    except ImportBatchNotFound:
        return _error("Import not found", 404)
    if conflict:
        return conflict

    commit_import_batch_task.delay(batch_id)
    return _batch_response(store, store.get(batch_id), status=202)
