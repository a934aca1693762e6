"""Email and thread models."""

from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field

# Sentinel response_to value for messages that start a thread.
NO_PARENT_ID = UUID(int=0)


class Email(BaseModel):
    """Single immutable email message.

    Only ``id``, ``timestamp`` and ``response_to`` matter to a mailbox; the
    descriptive fields are carried along untouched.
    """

    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    timestamp: int = Field(ge=0)
    response_to: UUID = NO_PARENT_ID
    sender: str = ""
    subject: str = ""
    body: str = ""

    @property
    def is_root(self) -> bool:
        """True when this message starts a thread."""
        return self.response_to == NO_PARENT_ID

    @property
    def sort_key(self) -> tuple[int, UUID]:
        """Ascending ordering key; mailbox canonical order is its reverse."""
        return (self.timestamp, self.id)


class EmailThread(BaseModel):
    """Thread of emails (newest to oldest)."""

    root_id: UUID
    emails: list[Email]
    latest_email: Email
    unread_count: int = 0
