"""Tests for document storage and the forced-provider store."""

from unittest.mock import MagicMock, patch

import pytest
from google.api_core import exceptions as google_exceptions

from quizbooth.exceptions import ForcedProviderReadError
from quizbooth.storage import (
    FORCED_PROVIDER_DOC,
    LLM_CONFIG_COLLECTION,
    FirestoreDocumentStore,
    ForcedProviderStore,
    InMemoryDocumentStore,
    create_document_store,
)


class TestInMemoryDocumentStore:
    def test_set_and_get(self, store):
        store.set("games", "g1", {"a": 1})

        assert store.get("games", "g1") == {"a": 1}
        assert store.get("games", "missing") is None

    def test_merge_keeps_other_fields(self, store):
        store.set("games", "g1", {"a": 1, "b": 2})
        store.set("games", "g1", {"b": 3}, merge=True)

        assert store.get("games", "g1") == {"a": 1, "b": 3}

    def test_set_without_merge_replaces(self, store):
        store.set("games", "g1", {"a": 1, "b": 2})
        store.set("games", "g1", {"b": 3})

        assert store.get("games", "g1") == {"b": 3}

    def test_update_missing_document_raises(self, store):
        with pytest.raises(KeyError):
            store.update("games", "nope", {"a": 1})

    def test_returned_documents_are_copies(self, store):
        store.set("games", "g1", {"tags": ["x"]})
        doc = store.get("games", "g1")
        doc["tags"].append("y")

        assert store.get("games", "g1") == {"tags": ["x"]}

    def test_delete_is_idempotent(self, store):
        store.set("games", "g1", {"a": 1})
        store.delete("games", "g1")
        store.delete("games", "g1")

        assert store.get("games", "g1") is None

    def test_set_many_and_list(self, store):
        store.set_many("questions", {"q1": {"order": 1}, "q2": {"order": 2}})

        assert store.list("questions") == {"q1": {"order": 1}, "q2": {"order": 2}}


class TestFirestoreDocumentStore:
    """FirestoreDocumentStore against a mocked Firestore client."""

    @pytest.fixture
    def client(self):
        return MagicMock()

    def test_get_existing(self, client):
        snapshot = client.collection.return_value.document.return_value.get.return_value
        snapshot.exists = True
        snapshot.to_dict.return_value = {"a": 1}

        result = FirestoreDocumentStore(client=client).get("games", "g1")

        assert result == {"a": 1}
        client.collection.assert_called_with("games")
        client.collection.return_value.document.assert_called_with("g1")

    def test_get_missing(self, client):
        snapshot = client.collection.return_value.document.return_value.get.return_value
        snapshot.exists = False

        assert FirestoreDocumentStore(client=client).get("games", "g1") is None

    def test_set_with_merge(self, client):
        FirestoreDocumentStore(client=client).set("p", "g1", {"a": 1}, merge=True)

        client.collection.return_value.document.return_value.set.assert_called_once_with(
            {"a": 1}, merge=True
        )

    def test_update_and_delete(self, client):
        docstore = FirestoreDocumentStore(client=client)
        doc_ref = client.collection.return_value.document.return_value

        docstore.update("games", "g1", {"llm": "DeepSeek"})
        docstore.delete("games", "g1")

        doc_ref.update.assert_called_once_with({"llm": "DeepSeek"})
        doc_ref.delete.assert_called_once_with()

    def test_set_many_uses_batch(self, client):
        batch = client.batch.return_value

        FirestoreDocumentStore(client=client).set_many(
            "questions", {"q1": {"order": 1}, "q2": {"order": 2}}
        )

        assert batch.set.call_count == 2
        batch.commit.assert_called_once()

    @patch("quizbooth.storage.firestore.Client")
    def test_default_client_uses_project(self, mock_client_class):
        docstore = FirestoreDocumentStore(project="quizbooth-test")

        assert docstore.client is mock_client_class.return_value
        mock_client_class.assert_called_once_with(project="quizbooth-test")


class TestForcedProviderStore:
    def test_unset_returns_none(self, store):
        assert ForcedProviderStore(store).get() is None

    def test_set_and_clear(self, store):
        forced = ForcedProviderStore(store)

        forced.set("OpenAI")
        record = store.get(LLM_CONFIG_COLLECTION, FORCED_PROVIDER_DOC)
        assert record["providerName"] == "OpenAI"
        assert "updatedAt" in record
        assert forced.get() == "OpenAI"

        forced.set(None)
        assert store.get(LLM_CONFIG_COLLECTION, FORCED_PROVIDER_DOC) is None
        assert forced.get() is None

    def test_read_failure_raises(self):
        failing = MagicMock()
        failing.get.side_effect = google_exceptions.ServiceUnavailable("down")

        with pytest.raises(ForcedProviderReadError, match="down"):
            ForcedProviderStore(failing).get()

    def test_write_failure_is_swallowed(self):
        failing = MagicMock()
        failing.set.side_effect = google_exceptions.PermissionDenied("nope")

        ForcedProviderStore(failing).set("DeepSeek")

        failing.set.assert_called_once()


class TestCreateDocumentStore:
    def test_memory_backend(self):
        assert isinstance(create_document_store("memory"), InMemoryDocumentStore)

    @patch("quizbooth.storage.firestore.Client")
    def test_firestore_backend(self, mock_client_class):
        docstore = create_document_store("firestore", project="p1")

        assert isinstance(docstore, FirestoreDocumentStore)
        mock_client_class.assert_called_once_with(project="p1")

    def test_unknown_backend(self):
        with pytest.raises(ValueError, match="Unknown storage backend"):
            create_document_store("redis")
