"""
Reply model returned by the conversation router.

Replies are transport independent: the Telegram adapter turns the
button rows into an inline keyboard.
"""

from pydantic import BaseModel, Field


class ChoiceButton(BaseModel):
    """One inline choice; token comes back as callback data."""
    label: str
    token: str


class Reply(BaseModel):
    """Text to send back to the chat, with optional choice buttons."""
    text: str
    buttons: list[list[ChoiceButton]] = Field(default_factory=list)
