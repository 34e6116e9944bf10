"""Document store backends for task records.

Two backends share one small contract:
- Firestore: collection/{doc_id}, queried by the ``userId`` field
- File fallback: {data_dir}/{collection}.jsonl, one document per line

The file backend follows the same fallback pattern used elsewhere in the
service and is what local development and the tests run against.
"""
from __future__ import annotations

import json
import logging
import uuid
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Protocol, Tuple

logger = logging.getLogger(__name__)

OWNER_FIELD = "userId"

StoredDocument = Tuple[str, Dict[str, Any]]


class DocumentNotFoundError(LookupError):
    """Raised when updating a document that does not exist."""


class DocumentStore(Protocol):
    """Minimal surface of the external document database."""

    def query(self, collection: str, owner_id: str) -> List[StoredDocument]:
        ...

    def insert(self, collection: str, record: Mapping[str, Any]) -> str:
        ...

    def update(self, collection: str, doc_id: str, fields: Mapping[str, Any]) -> None:
        ...

    def delete(self, collection: str, doc_id: str) -> None:
        ...


# =============================================================================
# Firestore Storage
# =============================================================================

class FirestoreDocumentStore:
    """Document store backed by Cloud Firestore."""

    def __init__(self, client: Any = None, *, project_id: Optional[str] = None) -> None:
        self._client = client
        self._project_id = project_id

    @property
    def client(self) -> Any:
        if self._client is None:
            from ..firestore import get_firestore_client

            self._client = get_firestore_client(self._project_id)
        return self._client

    def query(self, collection: str, owner_id: str) -> List[StoredDocument]:
        from google.cloud.firestore_v1.base_query import FieldFilter

        docs = (
            self.client.collection(collection)
            .where(filter=FieldFilter(OWNER_FIELD, "==", owner_id))
            .stream()
        )
        return [(doc.id, doc.to_dict() or {}) for doc in docs]

    def insert(self, collection: str, record: Mapping[str, Any]) -> str:
        _, doc_ref = self.client.collection(collection).add(dict(record))
        return doc_ref.id

    def update(self, collection: str, doc_id: str, fields: Mapping[str, Any]) -> None:
        self.client.collection(collection).document(doc_id).update(dict(fields))

    def delete(self, collection: str, doc_id: str) -> None:
        self.client.collection(collection).document(doc_id).delete()


# =============================================================================
# File Storage (Fallback)
# =============================================================================

def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


class FileDocumentStore:
    """JSONL-backed document store for local development and tests.

    Temporal values are written as ISO strings; readers convert them back.
    """

    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory)

    def _collection_file(self, collection: str) -> Path:
        self.directory.mkdir(parents=True, exist_ok=True)
        return self.directory / f"{collection}.jsonl"

    def _read_all(self, collection: str) -> Dict[str, Dict[str, Any]]:
        path = self._collection_file(collection)
        documents: Dict[str, Dict[str, Any]] = {}
        if not path.exists():
            return documents

        with path.open("r", encoding="utf-8") as handle:
            for line in handle:
                line = line.strip()
                if not line:
                    continue
                try:
                    entry = json.loads(line)
                except json.JSONDecodeError:
                    logger.warning("Skipping corrupt line in %s", path)
                    continue
                documents[entry["id"]] = entry["data"]
        return documents

    def _write_all(self, collection: str, documents: Dict[str, Dict[str, Any]]) -> None:
        path = self._collection_file(collection)
        with path.open("w", encoding="utf-8") as handle:
            for doc_id, data in documents.items():
                handle.write(json.dumps({"id": doc_id, "data": data}, default=_json_default))
                handle.write("\n")

    def query(self, collection: str, owner_id: str) -> List[StoredDocument]:
        documents = self._read_all(collection)
        return [
            (doc_id, data)
            for doc_id, data in documents.items()
            if data.get(OWNER_FIELD) == owner_id
        ]

    def insert(self, collection: str, record: Mapping[str, Any]) -> str:
        documents = self._read_all(collection)
        doc_id = uuid.uuid4().hex
        # Round-trip through JSON so stored values match what a reader sees.
        documents[doc_id] = json.loads(json.dumps(dict(record), default=_json_default))
        self._write_all(collection, documents)
        return doc_id

    def update(self, collection: str, doc_id: str, fields: Mapping[str, Any]) -> None:
        documents = self._read_all(collection)
        if doc_id not in documents:
            raise DocumentNotFoundError(f"No document {collection}/{doc_id}")
        patch = json.loads(json.dumps(dict(fields), default=_json_default))
        documents[doc_id].update(patch)
        self._write_all(collection, documents)

    def delete(self, collection: str, doc_id: str) -> None:
        documents = self._read_all(collection)
        if documents.pop(doc_id, None) is not None:
            self._write_all(collection, documents)
