"""Tests for client-side reconciliation (tempchat.core.reconcile)."""

from helpers import chat_message
from tempchat.core.reconcile import FeedState, apply_deletion, reconcile
from tempchat.core.types import Attachment


def ids(state):
    return [m.id for m in state.messages]


class TestPushBatches:
    def test_new_messages_appended_in_batch_order(self):
        state = FeedState([chat_message("m1")])

        diff = reconcile(state, [chat_message("m2"), chat_message("m3")])

        assert ids(state) == ["m1", "m2", "m3"]
        assert [m.id for m in diff.added] == ["m2", "m3"]

    def test_same_batch_twice_equals_once(self):
        batch = [chat_message("m1"), chat_message("m2")]
        once, twice = FeedState(), FeedState()

        reconcile(once, batch)
        reconcile(twice, batch)
        second = reconcile(twice, batch)

        assert ids(once) == ids(twice) == ["m1", "m2"]
        assert not second.changed

    def test_duplicates_inside_a_batch_applied_once(self):
        state = FeedState()
        reconcile(state, [chat_message("m1"), chat_message("m1")])
        assert ids(state) == ["m1"]

    def test_push_batch_never_removes(self):
        state = FeedState([chat_message("m1")])
        diff = reconcile(state, [chat_message("m2")])
        assert ids(state) == ["m1", "m2"]
        assert diff.removed == []


class TestSnapshots:
    def test_identical_id_set_is_no_change(self):
        state = FeedState([chat_message("m1"), chat_message("m2")])
        before = state.messages

        diff = reconcile(state, [chat_message("m1"), chat_message("m2")], authoritative=True)

        assert not diff.changed
        assert state.messages is before

    def test_snapshot_with_removal_replaces_state(self):
        state = FeedState([chat_message("m1"), chat_message("m2")])

        diff = reconcile(state, [chat_message("m2"), chat_message("m3")], authoritative=True)

        assert ids(state) == ["m2", "m3"]
        assert diff.removed == ["m1"]
        assert [m.id for m in diff.added] == ["m3"]

    def test_empty_snapshot_clears_state(self):
        state = FeedState([chat_message("m1")])
        diff = reconcile(state, [], authoritative=True)
        assert ids(state) == []
        assert diff.removed == ["m1"]


class TestDeletion:
    def test_deletion_is_idempotent(self):
        state = FeedState([chat_message("m1"), chat_message("m2")])

        assert apply_deletion(state, "m1") is True
        assert apply_deletion(state, "m1") is False
        assert ids(state) == ["m2"]


class TestReplyPreview:
    def test_preview_of_existing_message(self):
        state = FeedState([chat_message("m1", username="alice", body="hello")])
        reply = chat_message("m2", reply_to_id="m1")
        assert state.reply_preview(reply) == "alice: hello"

    def test_preview_of_deleted_message(self):
        state = FeedState([chat_message("m2", reply_to_id="m1")])
        assert state.reply_preview(state.messages[0]) == "message not found"

    def test_preview_of_attachment_only_message(self):
        attachment = Attachment(stored_name="a.pdf", original_name="a.pdf", size_bytes=1, url="/api/files/a.pdf")
        state = FeedState([chat_message("m1", username="bob", body="", attachments=[attachment])])
        assert state.reply_preview(chat_message("m2", reply_to_id="m1")) == "bob: 1 attachment"

    def test_not_a_reply(self):
        assert FeedState().reply_preview(chat_message("m1")) is None
