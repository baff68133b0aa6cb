"""Intent classifier: maps a free-text utterance onto one intent.

Triggers are evaluated in a fixed precedence and the first hit wins:
navigation, scheduled class, study task, expense, then small talk. This
is a disambiguation policy, not a scoring model: "add my Calculus class"
is always a scheduled class even though "class" could relate to study.
"""
import logging
import re

from core.extractors import (
    DEFAULT_EXPENSE_TITLE,
    extract_amount,
    extract_category,
    extract_expense_title,
    extract_navigation_target,
)
from models.draft import Category
from models.intent import Intent, IntentKind, SmallTalkTopic

logger = logging.getLogger(__name__)

SCHEDULE_VERBS = re.compile(r"\b(class|lecture|lesson|tutorial|lab|seminar|meeting|session)\b", re.IGNORECASE)
SCHEDULE_PHRASES = re.compile(
    r"\b(put .*(in|into) .*(schedul|timetable)|add .*(to|into) .*(schedul|timetable)|scheduling tab)",
    re.IGNORECASE,
)

STUDY_VERBS = re.compile(
    r"\b(homework|assignment|revision|revise|study|review|practice|prepare|essay|report|project|quiz|exam|test)\b",
    re.IGNORECASE,
)
STUDY_PHRASES = re.compile(
    r"\b(remind me to .*(do|finish|complete|submit|start|work)|add .*(study|homework|assignment)|create .*(study|task).*for)\b",
    re.IGNORECASE,
)

SPENDING_VERBS = re.compile(
    r"\b(spent|spend|paid|pay|bought|buy|cost|grabbed|got|ordered|ate|had)\b", re.IGNORECASE
)
SPENDING_PHRASES = re.compile(
    r"\b(can you .*(add|put|log|track|record)|add .*(to|into) .*tracker|put .*(into|in) .*tracker|log .*(expense|spending))\b",
    re.IGNORECASE,
)

_GREETING_RE = re.compile(r"^(hi|hello|hey|sup|yo)\b", re.IGNORECASE)
_TODAYS_CLASSES_RE = re.compile(r"\b(what|which|do i have|any)\b.*\b(class|classes|today|schedule)\b", re.IGNORECASE)


def detects_schedule_intent(text: str) -> bool:
    return bool(SCHEDULE_VERBS.search(text) or SCHEDULE_PHRASES.search(text))


def detects_study_intent(text: str) -> bool:
    return bool(STUDY_VERBS.search(text) or STUDY_PHRASES.search(text))


def detects_spending_intent(text: str) -> bool:
    return bool(SPENDING_VERBS.search(text) or SPENDING_PHRASES.search(text))


def detects_expense_intent(text: str) -> bool:
    """An amount, or spending language naming something recognisable."""
    if extract_amount(text) is not None:
        return True
    if not detects_spending_intent(text):
        return False
    return (
        extract_category(text) is not Category.OTHER
        or extract_expense_title(text) != DEFAULT_EXPENSE_TITLE
    )


def small_talk_topic(text: str) -> SmallTalkTopic:
    lower = text.strip().lower()
    if _GREETING_RE.search(lower):
        return SmallTalkTopic.GREETING
    if "help" in lower or "what can you do" in lower:
        return SmallTalkTopic.HELP
    if "thank" in lower:
        return SmallTalkTopic.THANKS
    if _TODAYS_CLASSES_RE.search(lower):
        return SmallTalkTopic.TODAYS_CLASSES
    return SmallTalkTopic.UNKNOWN


def classify_intent(text: str) -> Intent:
    """Total, deterministic classification of one utterance."""
    route = extract_navigation_target(text)
    if route:
        intent = Intent(kind=IntentKind.NAVIGATION, trigger="navigation", route=route)
    elif detects_schedule_intent(text):
        intent = Intent(kind=IntentKind.SCHEDULED_CLASS, trigger="schedule_keywords")
    elif detects_study_intent(text):
        intent = Intent(kind=IntentKind.STUDY_TASK, trigger="study_keywords")
    elif detects_expense_intent(text):
        intent = Intent(kind=IntentKind.EXPENSE, trigger="spending")
    else:
        topic = small_talk_topic(text)
        intent = Intent(kind=IntentKind.SMALL_TALK, trigger=f"small_talk:{topic.value}", topic=topic)

    logger.debug(f"Classified {text!r} as {intent.kind.value} ({intent.trigger})")
    return intent
