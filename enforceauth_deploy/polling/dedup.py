"""Session-scoped deduplication of re-fetched log entries.

Every poll re-reads the most recent window of the log stream, so most
entries arrive many times. ``EntryDeduplicator`` fingerprints each entry
from fields that are stable across fetches and remembers which
fingerprints were already processed.

The fingerprint deliberately avoids hashing whole message bodies: it uses
the timestamp, the message length plus its head and tail, and the metadata
action. Two distinct entries with the same timestamp, action, length, head
and tail would collapse; that risk is accepted.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, NamedTuple

if TYPE_CHECKING:
    from enforceauth_deploy.models.logs import LogEntry

#: Characters kept from each end of the message.
MESSAGE_EDGE_CHARS = 64


class EntryIdentity(NamedTuple):
    """Deterministic fingerprint of one log entry."""

    timestamp: str
    message_length: int
    message_head: str
    message_tail: str
    action: str


def identify(entry: LogEntry) -> EntryIdentity:
    """Return the fingerprint of *entry*."""
    message = entry.message
    return EntryIdentity(
        timestamp=entry.timestamp,
        message_length=len(message),
        message_head=message[:MESSAGE_EDGE_CHARS],
        message_tail=message[-MESSAGE_EDGE_CHARS:],
        action=entry.action_name,
    )


class EntryDeduplicator:
    """Monotonically growing set of processed entry fingerprints.

    Owned by exactly one poll session; never reset, never shared.
    """

    def __init__(self) -> None:
        self._seen: set[EntryIdentity] = set()

    def __len__(self) -> int:
        return len(self._seen)

    def seen(self, identity: EntryIdentity) -> bool:
        return identity in self._seen

    def mark_seen(self, identity: EntryIdentity) -> None:
        self._seen.add(identity)

    def admit(self, entry: LogEntry) -> bool:
        """Mark *entry* seen and return ``True`` if it was new."""
        identity = identify(entry)
        if identity in self._seen:
            return False
        self._seen.add(identity)
        return True
