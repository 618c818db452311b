# tempchat/core/reconcile.py

"""
Client-side merge of message batches into local feed state.

Push frames and full re-fetches both go through `reconcile`, so the two
delivery paths can never disagree about what a batch means:

* a push batch is additive: unseen ids are appended in batch order, seen
  ids are ignored (duplicate delivery is expected and harmless);
* a full snapshot is authoritative: when its id set differs from ours in
  either direction, local state is replaced wholesale.

Deletion frames go through `apply_deletion`, which is a no-op for ids we
do not hold.
"""

from dataclasses import dataclass, field

from tempchat.core.types import ChatMessage


@dataclass
class FeedDiff:
    added: list[ChatMessage] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.added or self.removed)


@dataclass
class FeedState:
    messages: list[ChatMessage] = field(default_factory=list)

    @property
    def ids(self) -> set[str]:
        return {m.id for m in self.messages}

    def find(self, message_id: str) -> ChatMessage | None:
        for m in self.messages:
            if m.id == message_id:
                return m
        return None

    def reply_preview(self, message: ChatMessage) -> str | None:
        """Text shown above a reply, or None when it is not a reply."""
        if not message.reply_to_id:
            return None
        original = self.find(message.reply_to_id)
        if original is None:
            return "message not found"
        if original.body:
            return f"{original.username}: {original.body}"
        if original.media_url:
            return f"{original.username}: GIF"
        count = len(original.attachments)
        return f"{original.username}: {count} attachment{'s' if count != 1 else ''}"


def reconcile(state: FeedState, candidates: list[ChatMessage], authoritative: bool = False) -> FeedDiff:
    seen = state.ids

    if not authoritative:
        added = []
        for m in candidates:
            if m.id not in seen:
                seen.add(m.id)
                added.append(m)
        if added:
            state.messages = state.messages + added
        return FeedDiff(added=added)

    incoming = {m.id for m in candidates}
    if incoming == seen:
        return FeedDiff()

    diff = FeedDiff(
        added=[m for m in candidates if m.id not in seen],
        removed=[m.id for m in state.messages if m.id not in incoming],
    )
    state.messages = list(candidates)
    return diff


def apply_deletion(state: FeedState, message_id: str) -> bool:
    before = len(state.messages)
    state.messages = [m for m in state.messages if m.id != message_id]
    return len(state.messages) != before
