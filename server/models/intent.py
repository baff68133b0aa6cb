"""Intent data models"""
from enum import Enum
from typing import Optional

from pydantic import BaseModel


class IntentKind(str, Enum):
    NAVIGATION = "navigation"
    SCHEDULED_CLASS = "scheduled_class"
    STUDY_TASK = "study_task"
    EXPENSE = "expense"
    SMALL_TALK = "small_talk"


class SmallTalkTopic(str, Enum):
    GREETING = "greeting"
    HELP = "help"
    THANKS = "thanks"
    TODAYS_CLASSES = "todays_classes"
    UNKNOWN = "unknown"


class Intent(BaseModel):
    """Classified free-text utterance"""
    kind: IntentKind
    trigger: str  # name of the rule that fired, for logs and tests
    route: Optional[str] = None  # navigation only
    topic: Optional[SmallTalkTopic] = None  # small talk only
