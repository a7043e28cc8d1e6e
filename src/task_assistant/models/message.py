"""Inbound chat message as handed over by the transport layer."""

from pydantic import BaseModel, Field


class InboundMessage(BaseModel):
    """
    A single chat message.

    ``thread_anchor_id`` is the thread root when the message was posted in a
    thread; top-level messages either omit it or set it to their own id.
    """

    conversation_id: str = Field(..., description='Channel / conversation id')
    message_id: str = Field(..., description='Platform message id (timestamp on Slack)')
    thread_anchor_id: str | None = Field(default=None, description='Thread root message id')
    author_id: str = Field(..., description='User id of the author')
    text: str = Field(default='', description='Raw message text including address tokens')
    addressed_user_ids: list[str] = Field(
        default_factory=list, description='User ids addressed in the text'
    )

    @property
    def is_thread_reply(self) -> bool:
        return self.thread_anchor_id is not None and self.thread_anchor_id != self.message_id

    @property
    def anchor(self) -> str:
        """Message id that a reply thread hangs off."""
        return self.thread_anchor_id or self.message_id


class ThreadMessage(BaseModel):
    """One message of an existing thread, as read back from the chat platform."""

    message_id: str
    author_id: str | None = Field(default=None, description='None for some bot / system posts')
    text: str = ''
    is_bot: bool = False
