"""Startup sweep that restores the pairing between blobs and file rows.

Runs once before the app serves requests, so no upload or download is in
flight while it decides what is orphaned.
"""

from __future__ import annotations

import logging

from sqlmodel import Session, or_, select

from bitbeam.core.errors import StorageError
from bitbeam.models import File
from bitbeam.storage import PARTIAL_SUFFIX

logger = logging.getLogger("bitbeam.cleaner")


def reconcile_storage(context) -> int:
    """Delete exhausted or blob-less rows and row-less blobs.

    Returns the number of rows and orphan blobs removed.
    """
    blobs = context.blobs
    removed = 0
    orphans = 0
    failures = 0
    with Session(context.engine) as session:
        stale = list(session.exec(
            select(File).where(
                or_(File.pending_deletion == True, File.download_count >= File.download_limit)  # noqa: E712
            )
        ).all())
        stale_ids = {f.id for f in stale}
        for f in session.exec(select(File)).all():
            if f.id not in stale_ids and not blobs.exists(f.id):
                stale.append(f)

        for f in stale:
            try:
                blobs.delete(f.id)
            except StorageError as e:
                failures += 1
                logger.error("event=sweep_blob_delete_failed file_id=%s error=%s", f.id, e.__cause__ or e)
                continue
            session.delete(f)
            removed += 1
        session.commit()

        known = set(session.exec(select(File.id)).all())

    for name in blobs.list_ids():
        if name.endswith(PARTIAL_SUFFIX):
            blobs.path_for(name).unlink(missing_ok=True)
            continue
        if name not in known:
            try:
                blobs.delete(name)
            except StorageError as e:
                failures += 1
                logger.error("event=sweep_orphan_blob_failed file_id=%s error=%s", name, e.__cause__ or e)
                continue
            orphans += 1

    if removed or orphans or failures:
        logger.info(
            "event=sweep_summary removed=%d orphan_blobs=%d failures=%d", removed, orphans, failures
        )
    context.metrics.record_expirations(removed)
    context.metrics.record_orphans_swept(orphans)
    return removed + orphans
