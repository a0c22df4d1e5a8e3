from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from sqlalchemy.orm import Session

from ugc_missions.config import settings
from ugc_missions.db.base import after_commit

logger = logging.getLogger(__name__)


class DocumentStorageError(RuntimeError):
    pass


class DocumentStorage:
    """
    Write-once store for rendered contract and invoice text.

    Keys are relative references (``contracts/<number>.txt``) persisted on the
    owning record. Existing documents are never overwritten or deleted.
    """

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    @staticmethod
    def build_key(*, kind: str, number: str) -> str:
        safe_number = "".join(ch if ch.isalnum() or ch in "-_" else "_" for ch in number)
        return f"{kind}/{safe_number}.txt"

    def put_text(self, *, kind: str, number: str, text: str) -> str:
        key = self.build_key(kind=kind, number=number)
        path = self.root / key
        if path.exists():
            logger.debug("Document already stored", extra={"document_reference": key})
            return key
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(text, encoding="utf-8")
        except OSError as exc:
            raise DocumentStorageError(f"Failed to store document {key}: {exc}") from exc
        logger.info("Stored document", extra={"document_reference": key, "bytes": len(text.encode("utf-8"))})
        return key

    def read_text(self, key: str) -> Optional[str]:
        path = self.root / key
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")


def get_document_storage() -> Optional[DocumentStorage]:
    if not settings.DOCUMENT_STORAGE_DIR:
        return None
    return DocumentStorage(settings.DOCUMENT_STORAGE_DIR)


def store_document(session: Session, *, kind: str, number: str, text: str) -> Optional[str]:
    """
    Return the reference ``text`` will be stored under, or None when storage is off.

    The write happens once ``session`` commits; nothing is written for a unit
    of work that rolls back.
    """
    storage = get_document_storage()
    if storage is None:
        return None
    after_commit(session, lambda: storage.put_text(kind=kind, number=number, text=text))
    return storage.build_key(kind=kind, number=number)
