"""Transcript message data models"""
from datetime import datetime, timezone
from enum import Enum
from typing import Literal, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from models.draft import Draft, PendingField


class Sender(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class Presentation(str, Enum):
    """How a client should render a message. Values match chat_messages.component_type."""
    PLAIN_TEXT = "text"
    MENU_PROMPT = "main-menu"
    CHOICE_PROMPT = "sub-menu"
    INPUT_PROMPT = "input-prompt"
    CONFIRMATION_CARD = "confirmation-card"


class MenuOption(BaseModel):
    """One clickable choice (main menu entry, category, day, duration...)"""
    model_config = ConfigDict(frozen=True)

    label: str
    value: str
    description: Optional[str] = None


class InputField(BaseModel):
    """Free-form input a prompt is waiting for"""
    model_config = ConfigDict(frozen=True)

    field: PendingField
    type: Literal["text", "number", "date", "time"] = "text"
    placeholder: str = ""


class MessagePayload(BaseModel):
    model_config = ConfigDict(frozen=True)

    options: list[MenuOption] = []
    multi_select: bool = False
    input_field: Optional[InputField] = None
    draft: Optional[Draft] = None
    end_time: Optional[str] = None  # derived for scheduled-class cards
    route: Optional[str] = None  # navigation target


class Message(BaseModel):
    """Immutable transcript entry"""
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    sender: Sender
    text: str
    presentation: Presentation = Presentation.PLAIN_TEXT
    payload: MessagePayload = MessagePayload()
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
