"""Tests for the durable SQLAlchemy entity store, run against in-memory SQLite."""

import re
from datetime import datetime

import pytest

from docvault.core.exceptions import BackendError, InvalidUpdateError
from docvault.database import connection
from docvault.database.connection import DatabaseConnection, get_database, reset_database
from docvault.database.init_db import drop_tables
from docvault.models.health import HealthState
from docvault.storage.database import DatabaseStore, generate_document_id


def test_generate_document_id_format():
    document_id = generate_document_id()

    assert re.fullmatch(r"doc_\d{13}_[a-z0-9]{9}", document_id)
    assert generate_document_id() != document_id


class TestUsers:
    def test_create_get_by_username(self, database_store, make_user):
        user = database_store.create_user(make_user())

        assert user.id == 1
        assert database_store.get_user(user.id).username == "ada@example.com"
        assert database_store.get_user_by_username("ada@example.com").id == user.id
        assert database_store.get_user_by_username("nobody") is None

    def test_missing_user(self, database_store):
        assert database_store.get_user(7) is None
        assert database_store.update_user(7, {"password": "x"}) is None
        assert database_store.delete_user(7) is False


class TestDocuments:
    def test_create_assigns_generated_id(self, database_store, make_document):
        document = database_store.create_document(make_document())

        assert document.id.startswith("doc_")
        assert database_store.get_document(document.id) == document
        assert database_store.get_document(document.id).title == "Field notes"

    def test_json_fields_round_trip(self, database_store, make_document):
        chunks = [{"title": "Introduction", "content": "Notes", "start_position": 0, "end_position": 5}]
        document = database_store.create_document(
            make_document(metadata={"source": "upload", "pages": 3}, chunks=chunks)
        )

        stored = database_store.get_document(document.id)
        assert stored.metadata == {"source": "upload", "pages": 3}
        assert stored.chunks == chunks

    def test_metadata_datetimes_are_serialized(self, database_store, make_document):
        seen = datetime(2024, 5, 1, 12, 30)
        document = database_store.create_document(make_document(metadata={"seen": seen}))

        assert database_store.get_document(document.id).metadata == {"seen": "2024-05-01T12:30:00"}

    def test_list_by_user(self, database_store, make_document):
        database_store.create_document(make_document(user_id=1, title="A"))
        database_store.create_document(make_document(user_id=2, title="B"))

        assert [d.title for d in database_store.get_documents_by_user(2)] == ["B"]

    def test_update_leaves_other_fields(self, database_store, make_document):
        document = database_store.create_document(make_document(metadata={"source": "upload"}))

        updated = database_store.update_document(document.id, {"excerpt": "Short"})

        assert updated.excerpt == "Short"
        assert updated.title == document.title
        assert updated.metadata == {"source": "upload"}

    def test_update_metadata_column(self, database_store, make_document):
        document = database_store.create_document(make_document())

        database_store.update_document(document.id, {"metadata": {"reviewed": True}})

        assert database_store.get_document(document.id).metadata == {"reviewed": True}

    def test_update_unknown_field(self, database_store, make_document):
        document = database_store.create_document(make_document())

        with pytest.raises(InvalidUpdateError):
            database_store.update_document(document.id, {"colour": "red"})

    def test_delete(self, database_store, make_document):
        document = database_store.create_document(make_document())

        assert database_store.delete_document(document.id) is True
        assert database_store.delete_document(document.id) is False


class TestConversationsAndMessages:
    def test_messages_ordered_by_time(self, database_store, make_conversation, make_message):
        conversation = database_store.create_conversation(make_conversation())
        for text in ("first", "second", "third"):
            database_store.create_message(make_message(conversation.id, text))

        messages = database_store.get_messages_by_conversation(conversation.id)

        assert [m.content for m in messages] == ["first", "second", "third"]

    def test_message_bumps_updated_at(self, database_store, make_conversation, make_message):
        conversation = database_store.create_conversation(make_conversation())

        message = database_store.create_message(make_message(conversation.id))

        assert database_store.get_conversation(conversation.id).updated_at == message.timestamp

    def test_delete_cascades_messages(self, database_store, make_conversation, make_message):
        conversation = database_store.create_conversation(make_conversation())
        messages = [
            database_store.create_message(make_message(conversation.id, text))
            for text in ("one", "two", "three")
        ]

        assert database_store.delete_conversation(conversation.id) is True

        assert database_store.get_messages_by_conversation(conversation.id) == []
        assert all(database_store.get_message(m.id) is None for m in messages)
        assert database_store.delete_conversation(conversation.id) is False

    def test_context_document_ids(self, database_store, make_conversation):
        conversation = database_store.create_conversation(
            make_conversation(context_document_ids=["doc_1", "doc_2"])
        )

        assert database_store.get_conversation(conversation.id).context_document_ids == ["doc_1", "doc_2"]


class TestRewritesAndProfiles:
    def test_rewrite_lifecycle(self, database_store, make_rewrite):
        rewrite = database_store.create_rewrite(make_rewrite(source_type="document", source_id="doc_1"))

        stored = database_store.get_rewrite(rewrite.id)
        assert stored.source_id == "doc_1"
        assert stored.instructions is None

        assert database_store.update_rewrite(rewrite.id, {"instructions": "Be brief"}).instructions == "Be brief"
        assert [r.id for r in database_store.get_rewrites_by_user(1)] == [rewrite.id]
        assert database_store.delete_rewrite(rewrite.id) is True

    def test_profile_lifecycle(self, database_store, make_profile):
        profile = database_store.create_profile(make_profile())

        assert database_store.get_profile(profile.id).results == {"tone": "neutral", "score": 0.7}
        assert database_store.update_profile(profile.id, {"profile_type": "voice"}).profile_type == "voice"
        assert database_store.delete_profile(profile.id) is True
        assert database_store.get_profiles_by_user(1) == []


class TestFailures:
    def test_missing_tables_raise_backend_error(self, broken_db, make_user):
        store = DatabaseStore(broken_db)

        with pytest.raises(BackendError) as excinfo:
            store.create_user(make_user())

        assert excinfo.value.operation == "create_user"
        assert excinfo.value.error_code == "backend_error"
        assert excinfo.value.details

    def test_read_failure_names_operation(self, broken_db):
        store = DatabaseStore(broken_db)

        with pytest.raises(BackendError) as excinfo:
            store.get_messages_by_conversation(1)

        assert excinfo.value.operation == "get_messages_by_conversation"


class TestConnection:
    def test_check_connection(self, sqlite_db):
        assert sqlite_db.check_connection() is True

    def test_drop_tables(self, sqlite_db, make_user):
        store = DatabaseStore(sqlite_db)
        store.create_user(make_user())

        drop_tables(sqlite_db)

        with pytest.raises(BackendError):
            store.get_user(1)

    def test_reset_database(self, monkeypatch):
        db = DatabaseConnection("sqlite://")
        monkeypatch.setattr(connection, "_db_connection", db)

        assert get_database() is db
        reset_database()
        assert connection._db_connection is None

    def test_health_reflects_connectivity(self, database_store, monkeypatch):
        assert database_store.health().state == HealthState.HEALTHY

        monkeypatch.setattr(database_store.db, "check_connection", lambda: False)

        assert database_store.health().state == HealthState.UNAVAILABLE
