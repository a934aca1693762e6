"""In-memory mailbox: read state, chronological views and reply threads.

Entries are kept in canonical order (newest first, identifier descending on
ties) through a sorted key list, with an identifier index for lookups and a
parent -> children index for thread traversal. Every public method holds the
mailbox lock, so thread-wide updates and views see a consistent snapshot.
"""

from __future__ import annotations

import threading
from bisect import bisect_left, insort
from typing import Iterator
from uuid import UUID

from threadbox.models.email import Email, EmailThread
from threadbox.utils.logger import get_logger

logger = get_logger("threadbox.mailbox")


class MessageNotFoundError(ValueError):
    """Raised when a read-state query names a message the mailbox does not hold."""

    def __init__(self, msg_id: UUID):
        super().__init__(f"No message with id {msg_id} in mailbox")
        self.msg_id = msg_id


class ThreadCycleError(ValueError):
    """Raised when response_to links loop back on themselves."""

    def __init__(self, msg_id: UUID):
        super().__init__(f"Reply chain starting at {msg_id} contains a cycle")
        self.msg_id = msg_id


class _Entry:
    """An email and its read flag, stored once per message."""

    __slots__ = ("email", "read")

    def __init__(self, email: Email, read: bool = False):
        self.email = email
        self.read = read


class Mailbox:
    """A collection of emails with per-message read flags."""

    def __init__(self) -> None:
        self._entries: dict[UUID, _Entry] = {}
        self._order: list[tuple[int, UUID]] = []  # ascending (timestamp, id)
        self._children: dict[UUID, list[UUID]] = {}  # parent id -> reply ids
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    def add(self, msg: Email | None) -> bool:
        """Store msg as unread. Returns False for None or a duplicate.

        Identifiers are unique within a mailbox: a message whose id is already
        stored is a duplicate even when its timestamp differs.
        """
        if msg is None:
            logger.debug("mailbox.add.rejected", reason="none")
            return False
        with self._lock:
            if msg.id in self._entries:
                logger.debug("mailbox.add.duplicate", msg_id=str(msg.id))
                return False
            insort(self._order, msg.sort_key)
            self._entries[msg.id] = _Entry(email=msg)
            if not msg.is_root:
                self._children.setdefault(msg.response_to, []).append(msg.id)
            logger.debug(
                "mailbox.add",
                msg_id=str(msg.id),
                timestamp=msg.timestamp,
                count=len(self._entries),
            )
            return True

    def get(self, msg_id: UUID) -> Email | None:
        """Return the email with this id, or None."""
        with self._lock:
            entry = self._entries.get(msg_id)
            return entry.email if entry is not None else None

    def delete(self, msg_id: UUID) -> bool:
        """Remove the email with this id. Returns True if one was removed."""
        with self._lock:
            entry = self._entries.pop(msg_id, None)
            if entry is None:
                logger.debug("mailbox.delete.miss", msg_id=str(msg_id))
                return False
            msg = entry.email
            del self._order[bisect_left(self._order, msg.sort_key)]
            if not msg.is_root:
                siblings = self._children[msg.response_to]
                siblings.remove(msg.id)
                if not siblings:
                    del self._children[msg.response_to]
            logger.debug("mailbox.delete", msg_id=str(msg_id), count=len(self._entries))
            return True

    def count(self) -> int:
        """Number of messages in the mailbox."""
        with self._lock:
            return len(self._entries)

    def __len__(self) -> int:
        return self.count()

    def __contains__(self, msg_id: object) -> bool:
        with self._lock:
            return msg_id in self._entries

    def __iter__(self) -> Iterator[Email]:
        return iter(self.timestamp_view())

    # ------------------------------------------------------------------
    # Read state
    # ------------------------------------------------------------------

    def mark_read(self, msg_id: UUID) -> bool:
        """Mark one message as read. False if it is not in the mailbox."""
        return self._set_read(msg_id, True)

    def mark_unread(self, msg_id: UUID) -> bool:
        """Mark one message as unread. False if it is not in the mailbox."""
        return self._set_read(msg_id, False)

    def _set_read(self, msg_id: UUID, read: bool) -> bool:
        with self._lock:
            entry = self._entries.get(msg_id)
            if entry is None:
                logger.debug("mailbox.mark.miss", msg_id=str(msg_id), read=read)
                return False
            entry.read = read
            return True

    def is_read(self, msg_id: UUID) -> bool:
        """Return the read flag of a message.

        Raises:
            MessageNotFoundError: the id is not in the mailbox. Unlike the
                other lookups, absence here is a caller error.
        """
        with self._lock:
            entry = self._entries.get(msg_id)
            if entry is None:
                raise MessageNotFoundError(msg_id)
            return entry.read

    def unread_count(self) -> int:
        """Number of unread messages."""
        with self._lock:
            return sum(1 for entry in self._entries.values() if not entry.read)

    # ------------------------------------------------------------------
    # Chronological views
    # ------------------------------------------------------------------

    def timestamp_view(self) -> list[Email]:
        """All messages, most recent first (identifier descending on ties)."""
        with self._lock:
            return [self._entries[msg_id].email for _, msg_id in reversed(self._order)]

    def in_range(self, start: int, end: int) -> list[Email]:
        """Messages with start <= timestamp <= end, earliest first.

        Expects 0 <= start <= end; bounds are not validated.
        """
        with self._lock:
            lo = bisect_left(self._order, (start,))
            hi = bisect_left(self._order, (end + 1,))
            return [self._entries[msg_id].email for _, msg_id in self._order[lo:hi]]

    # ------------------------------------------------------------------
    # Threads
    # ------------------------------------------------------------------

    def mark_thread_as_read(self, msg_id: UUID) -> bool:
        """Mark every message in msg_id's thread as read. False if msg_id is absent."""
        return self._mark_thread(msg_id, True)

    def mark_thread_as_unread(self, msg_id: UUID) -> bool:
        """Mark every message in msg_id's thread as unread. False if msg_id is absent."""
        return self._mark_thread(msg_id, False)

    def _mark_thread(self, msg_id: UUID, read: bool) -> bool:
        with self._lock:
            if msg_id not in self._entries:
                logger.debug("mailbox.mark_thread.miss", msg_id=str(msg_id), read=read)
                return False
            top_id = self._topmost_ancestor(msg_id)
            members = self._descendants(top_id)
            for member_id in members:
                self._entries[member_id].read = read
            logger.debug(
                "mailbox.mark_thread",
                msg_id=str(msg_id),
                top_id=str(top_id),
                read=read,
                members=len(members),
            )
            return True

    def threads(self) -> list[EmailThread]:
        """Rooted threads, the most recently active first."""
        with self._lock:
            threads = [
                self._build_thread(msg_id)
                for _, msg_id in reversed(self._order)
                if self._entries[msg_id].email.is_root
            ]
            threads.sort(key=lambda t: t.latest_email.sort_key, reverse=True)
            return threads

    def threaded_view(self) -> list[Email]:
        """All rooted threads flattened into one list.

        Threads with the most recent activity come first; inside a thread newer
        messages come first. Messages whose chain does not reach a root in
        this mailbox are left out.
        """
        return [email for thread in self.threads() for email in thread.emails]

    def get_thread(self, msg_id: UUID) -> EmailThread | None:
        """The thread holding msg_id, anchored at its topmost ancestor present here."""
        with self._lock:
            if msg_id not in self._entries:
                return None
            return self._build_thread(self._topmost_ancestor(msg_id))

    def _topmost_ancestor(self, msg_id: UUID) -> UUID:
        """Follow response_to upward until a root or a parent missing from the mailbox."""
        seen = {msg_id}
        current = self._entries[msg_id].email
        while not current.is_root:
            parent = self._entries.get(current.response_to)
            if parent is None:
                break
            if parent.email.id in seen:
                logger.warning("mailbox.thread_cycle", msg_id=str(msg_id))
                raise ThreadCycleError(msg_id)
            seen.add(parent.email.id)
            current = parent.email
        return current.id

    def _descendants(self, top_id: UUID) -> list[UUID]:
        """top_id plus every transitive reply to it, via an explicit stack."""
        members: list[UUID] = []
        seen: set[UUID] = set()
        stack = [top_id]
        while stack:
            node = stack.pop()
            if node in seen:
                continue
            seen.add(node)
            members.append(node)
            stack.extend(self._children.get(node, ()))
        return members

    def _build_thread(self, top_id: UUID) -> EmailThread:
        entries = [self._entries[member_id] for member_id in self._descendants(top_id)]
        entries.sort(key=lambda entry: entry.email.sort_key, reverse=True)
        emails = [entry.email for entry in entries]
        return EmailThread(
            root_id=top_id,
            emails=emails,
            latest_email=emails[0],
            unread_count=sum(1 for entry in entries if not entry.read),
        )
