"""Owner-scoped document store over age-encrypted files.

Layout mirrors the remote database: ``users/{user_id}/{collection}/{doc_id}``
becomes ``<data_store_path>/users/<user_id>/<collection>/<doc_id>.age``.
There is no locking; concurrent writers race and the last write wins.
"""

from __future__ import annotations

import logging
import re
import uuid
from pathlib import Path
from typing import Any

from habitlog.core.config import Settings, settings
from habitlog.core.errors import (
    ErrorKind,
    HabitlogError,
    NotFoundError,
    StoreError,
    ValidationError,
    classify_error,
)
from habitlog.data.audit import write_audit_entry
from habitlog.data.encryption import DocumentCipher

logger = logging.getLogger(__name__)

HABITS = "habits"
ENTRIES = "entries"

_SAFE_SEGMENT_RE = re.compile(r"[a-zA-Z0-9_-]+")


def _matches_filters(doc: dict[str, Any], filters: dict[str, Any]) -> bool:
    return all(doc.get(k) == v for k, v in filters.items())


class RecordStore:
    """Encrypted file-backed store handle; pass it to services explicitly."""

    def __init__(self, config: Settings | None = None) -> None:
        self._config = config or settings
        self._root = self._config.data_store_path
        self._audit_file = self._config.data_audit_path / "store.jsonl"
        self._cipher = DocumentCipher(self._config.age_recipient, self._config.age_identity)
        self._offline = self._config.offline_mode

    @property
    def config(self) -> Settings:
        return self._config

    @property
    def offline(self) -> bool:
        return self._offline

    def set_offline(self, offline: bool) -> None:
        """Toggle offline mode. While offline, reads work and writes are refused."""
        self._offline = offline
        logger.info("Record store %s", "offline" if offline else "online")

    def _collection_dir(self, user_id: str, collection: str) -> Path:
        for segment in (user_id, collection):
            # Security: path segments come from callers
            if not _SAFE_SEGMENT_RE.fullmatch(segment):
                logger.warning("Invalid path segment rejected: %s", segment)
                raise ValidationError(f"Invalid path segment: {segment!r}")
        return self._root / "users" / user_id / collection

    def _doc_path(self, user_id: str, collection: str, doc_id: str) -> Path:
        if not _SAFE_SEGMENT_RE.fullmatch(doc_id):
            logger.warning("Invalid document id rejected: %s", doc_id)
            raise ValidationError(f"Invalid document id: {doc_id!r}")
        return self._collection_dir(user_id, collection) / f"{doc_id}.age"

    def _ensure_online(self, action: str) -> None:
        if self._offline:
            raise StoreError(f"Cannot {action} while offline", kind=ErrorKind.OFFLINE, code="offline")

    def _write(self, path: Path, doc: dict[str, Any]) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(self._cipher.encrypt(doc))
        except OSError as exc:
            raise classify_error(exc) from exc

    def _read(self, path: Path) -> dict[str, Any]:
        try:
            ciphertext = path.read_bytes()
        except OSError as exc:
            raise classify_error(exc) from exc
        try:
            return self._cipher.decrypt(ciphertext)
        except Exception as exc:
            raise StoreError(f"Failed to decrypt {path.name}: {exc}", code="decrypt-failed") from exc

    def _audit(self, action: str, user_id: str, collection: str, doc_id: str | None = None) -> None:
        write_audit_entry(
            self._audit_file,
            action,
            user_id=user_id,
            collection=collection,
            doc_id=doc_id,
        )

    async def add(self, user_id: str, collection: str, doc: dict[str, Any]) -> str:
        """Store a new document under a generated id and return the id."""
        self._ensure_online("add")
        doc_id = uuid.uuid4().hex
        self._write(self._doc_path(user_id, collection, doc_id), doc)
        self._audit("add", user_id, collection, doc_id)
        logger.info("Added %s/%s", collection, doc_id)
        return doc_id

    async def update(self, user_id: str, collection: str, doc_id: str, changes: dict[str, Any]) -> dict[str, Any]:
        """Merge changes into an existing document; None values are ignored."""
        self._ensure_online("update")
        path = self._doc_path(user_id, collection, doc_id)
        if not path.exists():
            raise NotFoundError(f"{collection}/{doc_id} not found", code="not-found")
        doc = self._read(path)
        doc.update({k: v for k, v in changes.items() if v is not None})
        self._write(path, doc)
        self._audit("update", user_id, collection, doc_id)
        logger.info("Updated %s/%s (%s)", collection, doc_id, ", ".join(sorted(changes)))
        return doc

    async def delete(self, user_id: str, collection: str, doc_id: str) -> None:
        self._ensure_online("delete")
        path = self._doc_path(user_id, collection, doc_id)
        try:
            path.unlink()
        except FileNotFoundError as exc:
            raise NotFoundError(f"{collection}/{doc_id} not found", code="not-found") from exc
        except OSError as exc:
            raise classify_error(exc) from exc
        self._audit("delete", user_id, collection, doc_id)
        logger.info("Deleted %s/%s", collection, doc_id)

    async def get(self, user_id: str, collection: str, doc_id: str) -> dict[str, Any] | None:
        path = self._doc_path(user_id, collection, doc_id)
        if not path.exists():
            return None
        return self._read(path)

    async def query(
        self,
        user_id: str,
        collection: str,
        filters: dict[str, Any] | None = None,
    ) -> dict[str, dict[str, Any]]:
        """Return doc_id -> document for the collection, sorted by id.

        Documents that fail to decrypt are logged and skipped.
        """
        coll_dir = self._collection_dir(user_id, collection)
        self._audit("query", user_id, collection)

        if not coll_dir.exists():
            return {}

        results: dict[str, dict[str, Any]] = {}
        for age_file in sorted(coll_dir.glob("*.age")):
            try:
                doc = self._read(age_file)
            except HabitlogError as exc:
                logger.error("Skipping %s: %s", age_file, exc)
                continue
            if filters and not _matches_filters(doc, filters):
                continue
            results[age_file.stem] = doc
        return results
