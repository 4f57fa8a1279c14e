"""Document storage for progress records, games and the forced-provider override.

The generation core only needs simple key/collection access, so storage is
expressed as a small ``DocumentStore`` interface with a Firestore-backed
implementation for deployments and an in-memory one for local runs.
"""

import copy
import logging
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from google.api_core import exceptions as google_exceptions
from google.cloud import firestore

from .exceptions import ForcedProviderReadError

logger = logging.getLogger(__name__)

LLM_CONFIG_COLLECTION = "llmConfig"
FORCED_PROVIDER_DOC = "forcedProvider"


class DocumentStore(ABC):
    """Minimal key/collection document store."""

    @abstractmethod
    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        """Return the document data, or None if it does not exist."""

    @abstractmethod
    def set(
        self, collection: str, doc_id: str, data: Dict[str, Any], merge: bool = False
    ) -> None:
        """Create or overwrite a document; with ``merge`` only given fields change."""

    @abstractmethod
    def update(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        """Update fields of an existing document."""

    @abstractmethod
    def delete(self, collection: str, doc_id: str) -> None:
        """Delete a document. Deleting a missing document is not an error."""

    @abstractmethod
    def set_many(self, collection: str, documents: Dict[str, Dict[str, Any]]) -> None:
        """Write several documents atomically."""


class FirestoreDocumentStore(DocumentStore):
    """DocumentStore backed by Google Cloud Firestore."""

    def __init__(
        self,
        client: Optional[firestore.Client] = None,
        project: Optional[str] = None,
    ):
        self.client = client or firestore.Client(project=project)

    def _ref(self, collection: str, doc_id: str) -> Any:
        return self.client.collection(collection).document(doc_id)

    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        snapshot = self._ref(collection, doc_id).get()
        if not snapshot.exists:
            return None
        return snapshot.to_dict()

    def set(
        self, collection: str, doc_id: str, data: Dict[str, Any], merge: bool = False
    ) -> None:
        self._ref(collection, doc_id).set(data, merge=merge)

    def update(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        self._ref(collection, doc_id).update(data)

    def delete(self, collection: str, doc_id: str) -> None:
        self._ref(collection, doc_id).delete()

    def set_many(self, collection: str, documents: Dict[str, Dict[str, Any]]) -> None:
        batch = self.client.batch()
        for doc_id, data in documents.items():
            batch.set(self._ref(collection, doc_id), data)
        batch.commit()


class InMemoryDocumentStore(DocumentStore):
    """Thread-safe in-process DocumentStore for local runs and tests."""

    def __init__(self) -> None:
        self._collections: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._lock = threading.Lock()

    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            doc = self._collections.get(collection, {}).get(doc_id)
            return copy.deepcopy(doc) if doc is not None else None

    def set(
        self, collection: str, doc_id: str, data: Dict[str, Any], merge: bool = False
    ) -> None:
        with self._lock:
            docs = self._collections.setdefault(collection, {})
            if merge and doc_id in docs:
                docs[doc_id].update(copy.deepcopy(data))
            else:
                docs[doc_id] = copy.deepcopy(data)

    def update(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        with self._lock:
            docs = self._collections.get(collection, {})
            if doc_id not in docs:
                raise KeyError(f"No document {collection}/{doc_id}")
            docs[doc_id].update(copy.deepcopy(data))

    def delete(self, collection: str, doc_id: str) -> None:
        with self._lock:
            self._collections.get(collection, {}).pop(doc_id, None)

    def set_many(self, collection: str, documents: Dict[str, Dict[str, Any]]) -> None:
        with self._lock:
            docs = self._collections.setdefault(collection, {})
            for doc_id, data in documents.items():
                docs[doc_id] = copy.deepcopy(data)

    def list(self, collection: str) -> Dict[str, Dict[str, Any]]:
        """Return a copy of every document in a collection."""
        with self._lock:
            return copy.deepcopy(self._collections.get(collection, {}))


# Errors a store may raise for transient or backend-side failures
STORE_ERRORS = (google_exceptions.GoogleAPIError, KeyError, OSError)


class ForcedProviderStore:
    """Persisted operator override pinning generation to one provider."""

    def __init__(self, store: DocumentStore):
        self.store = store

    def get(self) -> Optional[str]:
        """Return the forced provider name, or None when unset.

        Raises:
            ForcedProviderReadError: If the store could not be read
        """
        try:
            data = self.store.get(LLM_CONFIG_COLLECTION, FORCED_PROVIDER_DOC)
        except STORE_ERRORS as e:
            raise ForcedProviderReadError(f"Error getting forced provider: {e}") from e
        if not data:
            return None
        return data.get("providerName") or None

    def set(self, provider_name: Optional[str]) -> None:
        """Persist the override; None clears it."""
        try:
            if provider_name is None:
                self.store.delete(LLM_CONFIG_COLLECTION, FORCED_PROVIDER_DOC)
            else:
                self.store.set(
                    LLM_CONFIG_COLLECTION,
                    FORCED_PROVIDER_DOC,
                    {
                        "providerName": provider_name,
                        "updatedAt": datetime.now(timezone.utc),
                    },
                )
        except STORE_ERRORS as e:
            logger.error(f"Error setting forced provider: {e}")


def create_document_store(
    backend: str = "firestore", project: Optional[str] = None
) -> DocumentStore:
    """Build the configured document store.

    Args:
        backend: "firestore" or "memory"
        project: Google Cloud project for Firestore

    Raises:
        ValueError: For an unknown backend name
    """
    if backend == "firestore":
        return FirestoreDocumentStore(project=project)
    if backend == "memory":
        return InMemoryDocumentStore()
    raise ValueError(f"Unknown storage backend: {backend}")
