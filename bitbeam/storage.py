from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import List

from bitbeam.core.errors import NotFoundError, StorageError

logger = logging.getLogger("bitbeam.storage")

PARTIAL_SUFFIX = ".part"


class BlobStore:
    """Blob bytes kept as one file per identifier under ``root``."""

    def __init__(self, root: str | os.PathLike) -> None:
        self.root = Path(root).resolve()

    def ensure_root(self) -> None:
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.warning("event=mkdir_failed path=%s error=%s", self.root, e)
            raise StorageError("could not create blob directory", operation="ensure_root") from e

    def path_for(self, file_id: str) -> Path:
        """Resolve ``file_id`` inside the root, rejecting anything that escapes it."""
        path = (self.root / file_id).resolve()
        try:
            path.relative_to(self.root)
        except ValueError:
            raise NotFoundError("identifier escapes blob root", identifier=file_id)
        if path == self.root:
            raise NotFoundError("empty identifier", identifier=file_id)
        return path

    def exists(self, file_id: str) -> bool:
        try:
            return self.path_for(file_id).is_file()
        except NotFoundError:
            return False

    def write(self, file_id: str, data: bytes) -> Path:
        path = self.path_for(file_id)
        partial = path.with_name(path.name + PARTIAL_SUFFIX)
        try:
            with open(partial, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(partial, path)
        except OSError as e:
            partial.unlink(missing_ok=True)
            logger.warning("event=blob_write_failed file_id=%s error=%s", file_id, e)
            raise StorageError("blob write failed", operation="write", identifier=file_id) from e
        return path

    def read(self, file_id: str) -> bytes:
        path = self.path_for(file_id)
        try:
            with open(path, "rb") as f:
                return f.read()
        except FileNotFoundError as e:
            raise NotFoundError("blob missing", operation="read", identifier=file_id) from e
        except OSError as e:
            raise StorageError("blob read failed", operation="read", identifier=file_id) from e

    def delete(self, file_id: str) -> bool:
        """Remove the blob; returns False when there was nothing to remove."""
        path = self.path_for(file_id)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageError("blob delete failed", operation="delete", identifier=file_id) from e
        return True

    def list_ids(self) -> List[str]:
        if not self.root.is_dir():
            return []
        return [entry.name for entry in self.root.iterdir() if entry.is_file()]
