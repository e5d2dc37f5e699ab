"""
Conversation context prepended to every chat completion request.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterator, List, Mapping, Sequence, Union

from .errors import ValidationError

ROLES = ("system", "user", "assistant")

ENTRY_ERROR = (
    'Context entry must be an object with role ("system", "user", or "assistant") '
    "and content properties"
)
BATCH_ERROR = "Input must be an array of context entries"


@dataclass(frozen=True)
class ContextEntry:
    """One role-tagged turn of conversation history."""

    role: str
    content: str

    def to_dict(self) -> dict:
        return {"role": self.role, "content": self.content}


EntryLike = Union[ContextEntry, Mapping[str, Any]]


def _coerce(entry: Any) -> ContextEntry:
    if isinstance(entry, ContextEntry):
        role, content = entry.role, entry.content
    elif isinstance(entry, Mapping):
        role, content = entry.get("role"), entry.get("content")
    else:
        raise ValidationError(ENTRY_ERROR)

    if role not in ROLES or not isinstance(content, str):
        raise ValidationError(ENTRY_ERROR)
    if isinstance(entry, ContextEntry):
        return entry
    return ContextEntry(role=role, content=content)


class ContextBuffer:
    """
    Ordered, role-tagged history owned by a single client.

    Entries are validated on the way in and never mutated afterwards. There is
    no locking: mutating the buffer from another thread while a chat request
    is being built is a race the caller must avoid.
    """

    def __init__(self):
        self._entries: List[ContextEntry] = []

    def append(self, entry: EntryLike) -> None:
        """Validate and append one entry. Nothing changes on failure."""
        self._entries.append(_coerce(entry))

    def append_batch(self, entries: Sequence[EntryLike]) -> None:
        """
        Append entries one by one, in order.

        A failing entry raises ``ValidationError``; entries appended before it
        stay in the buffer.
        """
        if not isinstance(entries, (list, tuple)):
            raise ValidationError(BATCH_ERROR)
        for entry in entries:
            self.append(entry)

    def snapshot(self) -> List[ContextEntry]:
        """Return a copy of the current entries in insertion order."""
        return list(self._entries)

    def as_messages(self) -> List[dict]:
        return [entry.to_dict() for entry in self._entries]

    def clear(self) -> None:
        self._entries = []

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[ContextEntry]:
        return iter(self.snapshot())

    def __repr__(self):
        return f"ContextBuffer(entries={len(self._entries)})"
