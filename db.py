import os
import re
import json
import time
import tempfile
from functools import lru_cache
from typing import Any, Dict, Optional

from config import DATA_DIR
from exceptions import NotFoundError, StorageError
from logging_config import setup_logger

logger = setup_logger("Storage")

DB_FILE = "store.json"
BLOB_DIR = "blobs"


def sanitize_name(name: str) -> str:
    """Lower-cases a display name and collapses anything non-alphanumeric to '-'."""
    cleaned = re.sub(r"[^a-z0-9]+", "-", (name or "").lower()).strip("-")
    return cleaned or "file"


def build_upload_key(kind: str, name: str, scope: Optional[str] = None, now: Optional[float] = None) -> str:
    """
    Builds a blob key of the form <kind>-<sanitized-name>-<processId-or-timestamp>-<epoch-ms>.
    """
    epoch_ms = int((now if now is not None else time.time()) * 1000)
    return f"{kind}-{sanitize_name(name)}-{scope or epoch_ms}-{epoch_ms}"


class KeyValueStore:
    """
    A key-value store with one JSON blob per key, kept in a single JSON file,
    plus binary blobs (uploads) kept as files next to it.

    Every write replaces the whole document. There is no locking: concurrent
    writers race and the last write wins.
    """

    def __init__(self, data_dir: str):
        self.data_dir = data_dir
        self.db_path = os.path.join(data_dir, DB_FILE)
        self.blob_dir = os.path.join(data_dir, BLOB_DIR)

    def _ensure_db_exists(self):
        os.makedirs(self.blob_dir, exist_ok=True)
        if not os.path.exists(self.db_path):
            self._write_db({})

    def _load_db(self) -> Dict:
        self._ensure_db_exists()
        try:
            with open(self.db_path, "r") as f:
                content = f.read().strip()
        except OSError as e:
            raise StorageError(f"Failed to read store: {e}") from e
        if not content:
            return {}
        try:
            return json.loads(content)
        except json.JSONDecodeError as e:
            logger.error(f"Error decoding store file {self.db_path}: {e}")
            raise StorageError("Store file is corrupt.") from e

    def _write_db(self, db: Dict):
        # Write to a temp file and swap it in so readers never see half a document
        try:
            fd, tmp_path = tempfile.mkstemp(dir=self.data_dir, suffix=".tmp")
        except OSError as e:
            raise StorageError(f"Failed to write store: {e}") from e
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(db, f, indent=2)
            os.replace(tmp_path, self.db_path)
        except (OSError, TypeError, ValueError) as e:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise StorageError(f"Failed to write store: {e}") from e

    def get(self, key: str) -> Any:
        """Returns the JSON value stored under key, or None."""
        return self._load_db().get(key)

    def set(self, key: str, value: Any):
        """Replaces the value stored under key."""
        db = self._load_db()
        db[key] = value
        self._write_db(db)

    def delete(self, key: str):
        db = self._load_db()
        if key in db:
            del db[key]
            self._write_db(db)

    def _blob_path(self, key: str) -> str:
        if not key or key != os.path.basename(key) or key.startswith("."):
            raise NotFoundError(f"Blob '{key}' not found.")
        return os.path.join(self.blob_dir, key)

    def put_blob(self, key: str, content: bytes) -> str:
        self._ensure_db_exists()
        try:
            with open(self._blob_path(key), "wb") as f:
                f.write(content)
        except OSError as e:
            raise StorageError(f"Failed to write blob '{key}': {e}") from e
        logger.info(f"Stored blob {key} ({len(content)} bytes)")
        return key

    def get_blob(self, key: str) -> bytes:
        path = self._blob_path(key)
        if not os.path.exists(path):
            raise NotFoundError(f"Blob '{key}' not found.")
        try:
            with open(path, "rb") as f:
                return f.read()
        except OSError as e:
            raise StorageError(f"Failed to read blob '{key}': {e}") from e

    def delete_blob(self, key: str):
        """Deletes a blob. Missing blobs are ignored."""
        path = self._blob_path(key)
        try:
            os.remove(path)
            logger.info(f"Deleted blob {key}")
        except FileNotFoundError:
            pass
        except OSError as e:
            raise StorageError(f"Failed to delete blob '{key}': {e}") from e


@lru_cache(maxsize=1)
def get_store() -> KeyValueStore:
    """Process-wide store rooted at DATA_DIR."""
    return KeyValueStore(DATA_DIR)
