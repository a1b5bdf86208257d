"""
Import Tasks

Celery tasks that run the scan and commit stages of a spreadsheet import
in the background. Progress is written to the ImportBatchStore after every
row so the review page can poll it.
"""

import logging

from django.contrib.auth import get_user_model

from catalogue_app.models import OperationalIssue
from catalogue_app.services.import_batch_store import BatchPhase, ImportBatchNotFound, ImportBatchStore
from catalogue_app.services.import_reconciler import ImportReconciler
from catalogue_app.services.tmdb_service import TMDBService
from config.celery_app import app

logger = logging.getLogger(__name__)


def _load_batch(store: ImportBatchStore, batch_id: str):
    try:
        return store.get(batch_id)
    except ImportBatchNotFound:
        logger.warning("Import batch %s no longer exists (discarded or expired)", batch_id)
        return None


def _fail_batch(store: ImportBatchStore, batch, task: str, error: Exception) -> None:
    OperationalIssue.record(
        name="Import Batch Failed",
        task=task,
        error=error,
        context={"batch_id": batch.batch_id, "filename": batch.filename},
    )
    if not store.exists(batch.batch_id):
        return
    batch.phase = BatchPhase.FAILED
    batch.error = str(error)
    store.save(batch)


@app.task
def scan_import_batch_task(batch_id: str) -> dict | None:
    """Scan every row of a batch against TMDB; leaves the batch in the review phase."""
    logger.info("Starting scan_import_batch_task for batch %s", batch_id)
    store = ImportBatchStore()
    batch = _load_batch(store, batch_id)
    if batch is None:
        return None

    batch.phase = BatchPhase.SCANNING
    store.save(batch)

    try:
        user = get_user_model().objects.get(pk=batch.user_id)
        reconciler = ImportReconciler(TMDBService(), user, task_name="scan_import_batch_task")
        result = reconciler.scan(
            batch.rows,
            on_progress=lambda processed, total: store.set_progress(batch_id, processed, total),
            should_stop=lambda: not store.exists(batch_id),
        )
    except Exception as e:
        logger.exception("Scan of batch %s failed", batch_id)
        _fail_batch(store, batch, "scan_import_batch_task", e)
        return None

    if not store.exists(batch_id):
        logger.info("Batch %s was discarded during scan, dropping results", batch_id)
        return None

    batch.candidates = result.candidates
    batch.scan_summary = result.summary
    batch.phase = BatchPhase.REVIEW
    store.save(batch)
    return {"batch_id": batch_id, "total": result.summary.total, "failed": result.summary.failed}


@app.task
def commit_import_batch_task(batch_id: str) -> dict | None:
    """Commit the selected candidates of a reviewed batch."""
    logger.info("Starting commit_import_batch_task for batch %s", batch_id)
    store = ImportBatchStore()
    batch = _load_batch(store, batch_id)
    if batch is None:
        return None

    batch.phase = BatchPhase.COMMITTING
    store.save(batch)

    try:
        user = get_user_model().objects.get(pk=batch.user_id)
        reconciler = ImportReconciler(TMDBService(), user, task_name="commit_import_batch_task")
        summary = reconciler.commit(
            batch.candidates,
            on_progress=lambda committed, total: store.set_progress(batch_id, committed, total),
        )
    except Exception as e:
        logger.exception("Commit of batch %s failed", batch_id)
        _fail_batch(store, batch, "commit_import_batch_task", e)
        return None

    batch.commit_summary = summary
    batch.phase = BatchPhase.COMMITTED
    store.save(batch)
    return {"batch_id": batch_id, "imported": summary.imported, "failed": summary.failed}
