"""In-memory mailbox with read tracking and reply-thread views."""

from threadbox.mailbox import Mailbox, MessageNotFoundError, ThreadCycleError
from threadbox.models.email import NO_PARENT_ID, Email, EmailThread
from threadbox.utils.email_parser import build_mailbox, parse_email_row
from threadbox.utils.logger import configure_logging

__all__ = [
    "Mailbox",
    "MessageNotFoundError",
    "ThreadCycleError",
    "NO_PARENT_ID",
    "Email",
    "EmailThread",
    "build_mailbox",
    "parse_email_row",
    "configure_logging",
]
