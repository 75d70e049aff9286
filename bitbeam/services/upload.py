from __future__ import annotations

import logging
import time

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from bitbeam.config import Config
from bitbeam.core.errors import PayloadTooLargeError, PersistenceError, StorageError, ValidationError
from bitbeam.core.identifiers import generate_identifier
from bitbeam.models import UNKNOWN, File, FileRead
from bitbeam.services.identity import IdentityStore
from bitbeam.storage import BlobStore

logger = logging.getLogger("bitbeam.upload")

DEFAULT_DOWNLOAD_LIMIT = 1
# files.download_limit is a 32-bit INTEGER column
MAX_DOWNLOAD_LIMIT = 2**31 - 1


def check_download_limit(limit: int) -> int:
    if limit < 1:
        raise ValidationError("download_limit must be positive", operation="upload")
    if limit > MAX_DOWNLOAD_LIMIT:
        raise ValidationError("download_limit out of range", operation="upload")
    return limit


def parse_download_limit(raw: str | None) -> int:
    if raw is None or raw.strip() == "":
        return DEFAULT_DOWNLOAD_LIMIT
    try:
        limit = int(raw.strip())
    except ValueError:
        raise ValidationError("download_limit is not an integer", operation="upload")
    return check_download_limit(limit)


class UploadService:
    def __init__(self, config: Config, engine: Engine, blobs: BlobStore, identities: IdentityStore) -> None:
        self.config = config
        self.engine = engine
        self.blobs = blobs
        self.identities = identities

    def download_url(self, file_id: str) -> str:
        return f"{self.config.scheme}://{self.config.base_url}/download/{file_id}"

    def accept(
        self,
        owner_key: str | None,
        content_type: str | None,
        file_name: str | None,
        download_limit: int | None,
        data: bytes,
    ) -> FileRead:
        """Store ``data`` as a new file owned by the identity behind ``owner_key``.

        The blob is written before the row is inserted; if anything after the
        write fails the blob is removed again so neither outlives the other.
        """
        if not owner_key:
            raise ValidationError("missing key header", operation="upload")
        if download_limit is None:
            download_limit = DEFAULT_DOWNLOAD_LIMIT
        check_download_limit(download_limit)
        if len(data) > self.config.max_upload_bytes:
            raise PayloadTooLargeError("body exceeds max upload size", operation="upload")

        owner = self.identities.authenticate(owner_key)

        file_id = generate_identifier()
        self.blobs.ensure_root()
        self.blobs.write(file_id, data)

        record = File(
            id=file_id,
            file_name=file_name or UNKNOWN,
            content_type=content_type or UNKNOWN,
            upload_time=int(time.time()),
            download_limit=download_limit,
            download_count=0,
            file_size=len(data),
            download_url=self.download_url(file_id),
            owner=owner,
        )
        try:
            with Session(self.engine) as session:
                session.add(record)
                session.commit()
                session.refresh(record)
                result = FileRead.model_validate(record)
        except SQLAlchemyError as e:
            self._discard_blob(file_id)
            raise PersistenceError("file insert failed", operation="upload", identifier=file_id) from e
        except Exception:
            self._discard_blob(file_id)
            raise

        logger.info(
            "event=upload_success file_id=%s owner=%s size_bytes=%s content_type=%s download_limit=%s",
            file_id,
            owner,
            result.file_size,
            result.content_type,
            download_limit,
        )
        return result

    def _discard_blob(self, file_id: str) -> None:
        try:
            self.blobs.delete(file_id)
        except StorageError as e:
            # The startup sweep removes blobs that have no row.
            logger.error("event=orphan_blob_cleanup_failed file_id=%s error=%s", file_id, e.__cause__ or e)
