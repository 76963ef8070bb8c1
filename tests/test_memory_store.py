"""Tests for the volatile in-memory entity store."""

import pytest

from docvault.core.exceptions import InvalidUpdateError
from docvault.models.health import HealthState
from docvault.storage.memory import MemoryStore


class TestUsers:
    def test_create_and_get(self, memory_store, make_user):
        user = memory_store.create_user(make_user())

        assert user.id == 1
        assert memory_store.get_user(1).username == "ada@example.com"

    def test_get_by_username(self, memory_store, make_user):
        memory_store.create_user(make_user("ada@example.com"))
        bob = memory_store.create_user(make_user("bob@example.com"))

        assert memory_store.get_user_by_username("bob@example.com").id == bob.id
        assert memory_store.get_user_by_username("nobody@example.com") is None

    def test_missing_user(self, memory_store):
        assert memory_store.get_user(42) is None

    def test_update_and_delete(self, memory_store, make_user):
        user = memory_store.create_user(make_user())

        updated = memory_store.update_user(user.id, {"password": "changed"})
        assert updated.password == "changed"
        assert updated.username == user.username

        assert memory_store.delete_user(user.id) is True
        assert memory_store.delete_user(user.id) is False
        assert memory_store.get_user(user.id) is None


class TestDocuments:
    def test_ids_are_prefixed_counters(self, memory_store, make_document):
        first = memory_store.create_document(make_document())
        second = memory_store.create_document(make_document())

        assert first.id == "doc_1"
        assert second.id == "doc_2"

    def test_optional_fields_default_to_none(self, memory_store, make_document):
        document = memory_store.create_document(make_document())

        assert document.metadata is None
        assert document.chunks is None
        assert memory_store.get_document(document.id) == document

    def test_list_by_user(self, memory_store, make_document):
        memory_store.create_document(make_document(user_id=1, title="A"))
        memory_store.create_document(make_document(user_id=2, title="B"))
        memory_store.create_document(make_document(user_id=1, title="C"))

        titles = [d.title for d in memory_store.get_documents_by_user(1)]
        assert titles == ["A", "C"]
        assert memory_store.get_documents_by_user(3) == []

    def test_update_leaves_other_fields(self, memory_store, make_document):
        document = memory_store.create_document(
            make_document(metadata={"source": "upload"})
        )

        updated = memory_store.update_document(document.id, {"title": "Renamed"})

        assert updated.title == "Renamed"
        assert updated.content == document.content
        assert updated.metadata == {"source": "upload"}
        assert updated.date == document.date

    def test_update_ignores_id(self, memory_store, make_document):
        document = memory_store.create_document(make_document())

        updated = memory_store.update_document(document.id, {"id": "doc_99", "title": "Same id"})

        assert updated.id == document.id
        assert memory_store.get_document("doc_99") is None

    def test_update_unknown_field(self, memory_store, make_document):
        document = memory_store.create_document(make_document())

        with pytest.raises(InvalidUpdateError) as excinfo:
            memory_store.update_document(document.id, {"colour": "red"})

        assert excinfo.value.fields == ["colour"]
        assert excinfo.value.error_code == "invalid_update"

    def test_update_missing(self, memory_store):
        assert memory_store.update_document("doc_404", {"title": "x"}) is None

    def test_returned_entities_are_copies(self, memory_store, make_document):
        document = memory_store.create_document(make_document(metadata={"tags": ["a"]}))

        document.title = "Mutated"
        document.metadata["tags"].append("b")

        stored = memory_store.get_document(document.id)
        assert stored.title == "Field notes"
        assert stored.metadata == {"tags": ["a"]}


class TestConversations:
    def test_create_sets_timestamps(self, memory_store, make_conversation):
        conversation = memory_store.create_conversation(make_conversation())

        assert conversation.created_at == conversation.updated_at
        assert conversation.context_document_ids is None

    def test_message_bumps_updated_at(self, memory_store, make_conversation, make_message):
        conversation = memory_store.create_conversation(make_conversation())

        message = memory_store.create_message(make_message(conversation.id))

        refreshed = memory_store.get_conversation(conversation.id)
        assert refreshed.updated_at == message.timestamp
        assert refreshed.updated_at >= conversation.created_at

    def test_delete_cascades_messages(self, memory_store, make_conversation, make_message):
        conversation = memory_store.create_conversation(make_conversation())
        other = memory_store.create_conversation(make_conversation(title="Other"))
        for text in ("one", "two", "three"):
            memory_store.create_message(make_message(conversation.id, text))
        kept = memory_store.create_message(make_message(other.id, "keep me"))

        assert memory_store.delete_conversation(conversation.id) is True

        assert memory_store.get_conversation(conversation.id) is None
        assert memory_store.get_messages_by_conversation(conversation.id) == []
        assert memory_store.get_message(kept.id) is not None
        assert memory_store.delete_conversation(conversation.id) is False


class TestMessages:
    def test_messages_in_creation_order(self, memory_store, make_conversation, make_message):
        conversation = memory_store.create_conversation(make_conversation())
        for text in ("first", "second", "third"):
            memory_store.create_message(make_message(conversation.id, text))

        messages = memory_store.get_messages_by_conversation(conversation.id)

        assert [m.content for m in messages] == ["first", "second", "third"]
        timestamps = [m.timestamp for m in messages]
        assert timestamps == sorted(timestamps)

    def test_llm_format(self, memory_store, make_conversation, make_message):
        conversation = memory_store.create_conversation(make_conversation())
        message = memory_store.create_message(
            make_message(conversation.id, "Answer", role="assistant")
        )

        assert message.to_llm_format() == {"role": "assistant", "content": "Answer"}

    def test_update_and_delete(self, memory_store, make_conversation, make_message):
        conversation = memory_store.create_conversation(make_conversation())
        message = memory_store.create_message(make_message(conversation.id))

        updated = memory_store.update_message(message.id, {"content": "Edited"})
        assert updated.content == "Edited"
        assert updated.role == "user"

        assert memory_store.delete_message(message.id) is True
        assert memory_store.get_messages_by_conversation(conversation.id) == []


class TestRewritesAndProfiles:
    def test_rewrite_lifecycle(self, memory_store, make_rewrite):
        rewrite = memory_store.create_rewrite(make_rewrite())

        assert rewrite.instructions is None
        assert memory_store.get_rewrites_by_user(1) == [rewrite]

        updated = memory_store.update_rewrite(rewrite.id, {"mode": "casual"})
        assert updated.mode == "casual"
        assert updated.rewritten_content == "Good afternoon."

        assert memory_store.delete_rewrite(rewrite.id) is True
        assert memory_store.get_rewrite(rewrite.id) is None

    def test_profile_lifecycle(self, memory_store, make_profile):
        profile = memory_store.create_profile(make_profile())

        assert memory_store.get_profile(profile.id).results == {"tone": "neutral", "score": 0.7}

        updated = memory_store.update_profile(profile.id, {"results": {"tone": "warm"}})
        assert updated.results == {"tone": "warm"}
        assert updated.analysis_type == "tone"

        assert memory_store.get_profiles_by_user(2) == []
        assert memory_store.delete_profile(profile.id) is True


def test_stats(memory_store, make_user, make_document):
    memory_store.create_user(make_user())
    memory_store.create_document(make_document())
    memory_store.create_document(make_document())

    stats = memory_store.get_stats()

    assert stats["user"] == 1
    assert stats["document"] == 2
    assert stats["message"] == 0


class TestIdStep:
    def test_negative_step_counts_down(self, make_user, make_conversation, make_message, make_document):
        store = MemoryStore(id_step=-1)

        user = store.create_user(make_user())
        first = store.create_conversation(make_conversation(user_id=user.id))
        second = store.create_conversation(make_conversation(user_id=user.id))
        message = store.create_message(make_message(first.id))

        assert (user.id, first.id, second.id, message.id) == (-1, -1, -2, -1)
        assert store.get_conversation(-2).title == "Reading group"
        assert store.create_document(make_document()).id == "doc_1"

    def test_zero_step_rejected(self):
        with pytest.raises(ValueError):
            MemoryStore(id_step=0)


class TestHealth:
    def test_memory_only(self, memory_store, make_user):
        memory_store.create_user(make_user())

        health = memory_store.health()

        assert health.state == HealthState.MEMORY_ONLY
        assert health.durable_attempts_allowed is False
        assert health.diverged is False
        assert health.volatile_entities["user"] == 1

    def test_unavailable_reason(self):
        health = MemoryStore(unavailable_reason="driver missing").health()

        assert health.state == HealthState.UNAVAILABLE
        assert health.last_error == "driver missing"
