"""Serving a file and counting the download against its limit.

For one identifier the whole read, increment, check and delete sequence
runs while holding that identifier's entry in a :class:`KeyedLock`, and
the row is selected ``FOR UPDATE`` so other processes sharing a
PostgreSQL database queue behind it as well. Unrelated identifiers never
wait on each other.

The increment that reaches the limit also sets ``pending_deletion`` in
the same commit. From then on the record is never served again, even if
removing the blob or the row fails afterwards; the next request for the
identifier finishes the job and answers NotFound.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from bitbeam.core.errors import NotFoundError, PersistenceError
from bitbeam.core.locks import KeyedLock
from bitbeam.core.metrics import MetricsStore
from bitbeam.models import File
from bitbeam.storage import BlobStore

logger = logging.getLogger("bitbeam.consumption")


@dataclass(frozen=True)
class Download:
    data: bytes
    content_type: str
    file_name: str
    file_size: int
    download_count: int
    expired: bool


class ConsumptionEngine:
    def __init__(self, engine: Engine, blobs: BlobStore, locks: KeyedLock, metrics: MetricsStore) -> None:
        self.engine = engine
        self.blobs = blobs
        self.locks = locks
        self.metrics = metrics

    def consume(self, file_id: str) -> Download:
        with self.locks.hold(file_id):
            return self._consume_locked(file_id)

    def _consume_locked(self, file_id: str) -> Download:
        try:
            with Session(self.engine) as session:
                if not self.blobs.exists(file_id):
                    self._reconcile_missing_blob(session, file_id)
                    raise NotFoundError("blob missing", operation="consume", identifier=file_id)

                record = session.exec(select(File).where(File.id == file_id).with_for_update()).first()
                if record is None:
                    raise NotFoundError("no file record", operation="consume", identifier=file_id)
                if record.pending_deletion or record.download_count >= record.download_limit:
                    self._expire(session, record)
                    raise NotFoundError("file already exhausted", operation="consume", identifier=file_id)

                record.download_count += 1
                expired = record.download_count >= record.download_limit
                record.pending_deletion = expired
                session.add(record)
                try:
                    session.commit()
                except SQLAlchemyError as e:
                    session.rollback()
                    raise PersistenceError("counter update failed", operation="consume", identifier=file_id) from e
                session.refresh(record)

                data = self.blobs.read(file_id)
                result = Download(
                    data=data,
                    content_type=record.content_type,
                    file_name=record.file_name,
                    file_size=record.file_size,
                    download_count=record.download_count,
                    expired=expired,
                )
                if expired:
                    self._expire(session, record)
        except SQLAlchemyError as e:
            raise PersistenceError("file lookup failed", operation="consume", identifier=file_id) from e

        self.metrics.record_download(len(result.data))
        logger.info(
            "event=file_served file_id=%s download_count=%s expired=%s",
            file_id,
            result.download_count,
            result.expired,
        )
        return result

    def _expire(self, session: Session, record: File) -> None:
        """Delete the blob, then the row. Caller holds the identifier's lock."""
        file_id = record.id
        self.blobs.delete(file_id)
        session.delete(record)
        try:
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise PersistenceError("file delete failed", operation="expire", identifier=file_id) from e
        self.metrics.record_expirations(1)
        logger.info("event=file_expired file_id=%s", file_id)

    def _reconcile_missing_blob(self, session: Session, file_id: str) -> None:
        # Upload writes the blob before the row, so a row without a blob is
        # left over from an interrupted expiry and is safe to drop.
        record = session.exec(select(File).where(File.id == file_id).with_for_update()).first()
        if record is None:
            return
        logger.warning(
            "event=orphan_record_removed file_id=%s pending_deletion=%s", file_id, record.pending_deletion
        )
        self._expire(session, record)
