"""Parse plain email rows and load them into a mailbox."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Iterable

from threadbox.mailbox import Mailbox
from threadbox.models.email import NO_PARENT_ID, Email
from threadbox.utils.logger import get_logger

logger = get_logger("threadbox.email_parser")


def _parse_timestamp(value: Any) -> int:
    """Accept epoch seconds (int or numeric string) or an ISO-8601 datetime."""
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, int):
        return value
    elif isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    elif isinstance(value, str) and value.strip():
        dt = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    else:
        raise ValueError(f"Unsupported timestamp value: {value!r}")
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp())


def parse_email_row(row: dict[str, Any]) -> Email:
    """Parse a row dict into an Email model."""
    data: dict[str, Any] = {
        "timestamp": _parse_timestamp(row.get("timestamp")),
        "sender": row.get("sender") or "",
        "subject": row.get("subject") or "",
        "body": row.get("body") or "",
    }
    msg_id = row.get("id") or row.get("email_id")
    if msg_id:
        data["id"] = msg_id
    parent = row.get("response_to") or row.get("in_reply_to")
    data["response_to"] = parent or NO_PARENT_ID
    return Email.model_validate(data)


def build_mailbox(rows: Iterable[dict[str, Any]], mailbox: Mailbox | None = None) -> Mailbox:
    """Parse rows and add them to mailbox (a new one when omitted). Duplicates are skipped."""
    target = mailbox if mailbox is not None else Mailbox()
    added = skipped = 0
    for row in rows:
        email = parse_email_row(row)
        if target.add(email):
            added += 1
        else:
            skipped += 1
            logger.debug("email_parser.duplicate_skipped", msg_id=str(email.id))
    logger.debug("email_parser.build_mailbox", added=added, skipped=skipped)
    return target
