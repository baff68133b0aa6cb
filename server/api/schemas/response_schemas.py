"""API response schemas"""
from datetime import datetime
from pydantic import BaseModel
from typing import Any, Dict, List, Optional

from models.message import Message


class DialogueState(BaseModel):
    draft_kind: Optional[str] = None
    pending_field: Optional[str] = None
    draft: Optional[Dict[str, Any]] = None


class TurnResponse(BaseModel):
    """Messages emitted by one operation, plus the resulting state"""
    session_id: str
    state: DialogueState
    messages: List[Message]


class SessionResponse(TurnResponse):
    """Full session view: state plus the whole in-memory transcript"""


class HistoryMessage(BaseModel):
    id: str
    sender: str
    text: str
    component_type: Optional[str] = None
    created_at: Optional[datetime] = None


class HistoryResponse(BaseModel):
    messages: List[HistoryMessage]
