"""
JSON-file document store.

Each document lives at ``<root>/<collection>/<doc_id>.json``. Writes are
serialized with a process-wide lock; ``merge_set`` merges nested mappings
field by field, matching the hosted store's merge semantics.
"""
import json
import logging
import re
from pathlib import Path
from threading import Lock
from typing import Any, Dict, List

from .ports import DocumentExists, DocumentNotFound, DocumentStore, InvalidDocumentId

logger = logging.getLogger(__name__)

_SAFE_ID = re.compile(r"^[A-Za-z0-9_@+\-][A-Za-z0-9_.@+\-]*$")


def deep_merge(target: Dict[str, Any], partial: Dict[str, Any]) -> Dict[str, Any]:
    """Merge ``partial`` into a copy of ``target``, recursing into nested dicts."""
    merged = dict(target)
    for key, value in partial.items():
        current = merged.get(key)
        if isinstance(value, dict) and isinstance(current, dict):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = value
    return merged


class JsonDocumentStore(DocumentStore):
    """Document store backed by one JSON file per document."""

    def __init__(self, root_dir: Path):
        self.root_dir = Path(root_dir)
        self.root_dir.mkdir(parents=True, exist_ok=True)
        self._lock = Lock()

    def _doc_path(self, collection: str, doc_id: str) -> Path:
        if not _SAFE_ID.match(collection or "") or not _SAFE_ID.match(doc_id or ""):
            raise InvalidDocumentId(f"Invalid document path: {collection!r}/{doc_id!r}")
        return self.root_dir / collection / f"{doc_id}.json"

    def _read(self, path: Path) -> Dict[str, Any]:
        with open(path, 'r', encoding='utf-8') as f:
            return json.load(f)

    def _write(self, path: Path, document: Dict[str, Any]) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_suffix(".json.tmp")
        tmp_path.write_text(json.dumps(document, ensure_ascii=False, indent=2), encoding="utf-8")
        tmp_path.replace(path)

    def get(self, collection: str, doc_id: str) -> Dict[str, Any]:
        path = self._doc_path(collection, doc_id)
        try:
            return self._read(path)
        except FileNotFoundError:
            raise DocumentNotFound(collection, doc_id) from None

    def merge_set(self, collection: str, doc_id: str, partial: Dict[str, Any]) -> Dict[str, Any]:
        path = self._doc_path(collection, doc_id)
        with self._lock:
            try:
                existing = self._read(path)
            except FileNotFoundError:
                existing = {}
            merged = deep_merge(existing, partial)
            self._write(path, merged)
        logger.debug(f"merge_set {collection}/{doc_id}: {sorted(partial)}")
        return merged

    def create(self, collection: str, doc_id: str, document: Dict[str, Any]) -> None:
        path = self._doc_path(collection, doc_id)
        with self._lock:
            if path.exists():
                raise DocumentExists(collection, doc_id)
            self._write(path, dict(document))

    def set(self, collection: str, doc_id: str, document: Dict[str, Any]) -> None:
        path = self._doc_path(collection, doc_id)
        with self._lock:
            self._write(path, dict(document))

    def delete(self, collection: str, doc_id: str) -> None:
        path = self._doc_path(collection, doc_id)
        with self._lock:
            path.unlink(missing_ok=True)

    def list_ids(self, collection: str) -> List[str]:
        """Return the ids of every document in ``collection``."""
        folder = self.root_dir / collection
        if not folder.exists():
            return []
        return sorted(p.stem for p in folder.glob("*.json"))
