"""Pydantic models for the mailbox."""

from threadbox.models.email import NO_PARENT_ID, Email, EmailThread

__all__ = [
    "NO_PARENT_ID",
    "Email",
    "EmailThread",
]
