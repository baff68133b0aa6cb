"""Slot extractors: pure functions that pull one typed value out of raw text.

Each extractor takes the whole utterance and returns the value or ``None``.
They never raise and never look at conversation state. Where a slot has
several patterns they are tried in list order and the first usable match
wins; that order is part of the contract and is covered by tests.

Category inference is a plain bag-of-keywords count rather than a trained
model: deterministic, auditable and cheap.
"""
import datetime as dt
import re
from decimal import Decimal, InvalidOperation
from typing import Iterable, Optional

from models.draft import Category, Importance, Weekday

# ---------------------------------------------------------------------------
# Amount
# ---------------------------------------------------------------------------

_NUM = r"(-?\d[\d,]*(?:\.\d{1,2})?)"
_BARE_NUM = r"(?<![\d.,-])" + _NUM

_AMOUNT_PATTERNS: list[re.Pattern] = [
    re.compile(r"\$\s?" + _NUM),
    re.compile(_BARE_NUM + r"\s*(?:dollars?|bucks?|usd)", re.IGNORECASE),
    re.compile(r"(?:rm|myr)\s?" + _NUM, re.IGNORECASE),
    re.compile(r"(?:spent|paid|cost|bought|pay)\s+(?:\$|rm|myr)?\s?" + _NUM, re.IGNORECASE),
    re.compile(r"(?:spent|paid|cost|bought|pay)\s+.*?" + _BARE_NUM, re.IGNORECASE),
    re.compile(_BARE_NUM + r"\s*(?:for|on)\s+", re.IGNORECASE),
]

MAX_AMOUNT = Decimal("1000000")


def extract_amount(text: str) -> Optional[Decimal]:
    """First pattern whose number parses to 0 < amount < 1,000,000."""
    for pattern in _AMOUNT_PATTERNS:
        match = pattern.search(text)
        if not match:
            continue
        try:
            value = Decimal(match.group(1).replace(",", ""))
        except InvalidOperation:
            continue
        if Decimal(0) < value < MAX_AMOUNT:
            return value
    return None


# ---------------------------------------------------------------------------
# Category
# ---------------------------------------------------------------------------

CATEGORY_KEYWORDS: dict[Category, list[str]] = {
    Category.FOOD: [
        "food", "burger", "pizza", "lunch", "dinner", "breakfast", "coffee", "tea",
        "snack", "meal", "eat", "ate", "restaurant", "cafe", "drink", "sushi", "rice",
        "chicken", "noodle", "bread", "grocery", "groceries", "takeout", "takeaway",
        "mcdonald", "starbucks", "kfc",
    ],
    Category.TRANSPORT: [
        "transport", "uber", "lyft", "taxi", "cab", "bus", "train", "subway", "metro",
        "gas", "fuel", "petrol", "parking", "toll", "flight", "airline", "grab", "ride",
    ],
    Category.SHOPPING: [
        "shopping", "shoes", "clothes", "shirt", "pants", "dress", "jacket", "amazon",
        "store", "mall", "buy", "bought", "purchase", "order", "ordered",
    ],
    Category.ENTERTAINMENT: [
        "entertainment", "movie", "cinema", "netflix", "spotify", "game", "gaming",
        "concert", "show", "ticket", "subscription", "youtube", "disney",
    ],
    Category.EDUCATION: [
        "education", "book", "course", "tuition", "school", "university", "udemy",
        "textbook",
    ],
    Category.HEALTH: [
        "health", "doctor", "hospital", "medicine", "pharmacy", "gym", "fitness",
        "dental", "dentist", "vitamin", "supplement", "therapy", "clinic",
    ],
    Category.BILLS: [
        "bill", "bills", "rent", "electricity", "water", "internet", "wifi", "phone",
        "insurance", "utility", "utilities", "mortgage", "payment",
    ],
}


def extract_category(text: str) -> Category:
    """Category with the strictly highest keyword count; Other on zero or a tie."""
    lower = text.lower()
    scores = {
        category: sum(1 for kw in keywords if kw in lower)
        for category, keywords in CATEGORY_KEYWORDS.items()
    }
    best = max(scores.values())
    if best == 0:
        return Category.OTHER
    leaders = [category for category, score in scores.items() if score == best]
    if len(leaders) > 1:
        return Category.OTHER
    return leaders[0]


# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------

def extract_relative_date(text: str, today: Optional[dt.date] = None) -> dt.date:
    """"yesterday" / "tomorrow" relative to today, otherwise today."""
    today = today or dt.date.today()
    lower = text.lower()
    if "yesterday" in lower:
        return today - dt.timedelta(days=1)
    if "tomorrow" in lower:
        return today + dt.timedelta(days=1)
    return today


# ---------------------------------------------------------------------------
# Expense title
# ---------------------------------------------------------------------------

DEFAULT_EXPENSE_TITLE = "Expense"

_TITLE_STRIP_STEPS: list[tuple[re.Pattern, int]] = [
    (re.compile(r"^(i\s+)?(just\s+)?(spent|paid|bought|got|had|ordered|grabbed)\s+", re.IGNORECASE), 1),
    (re.compile(r"\$[\d,.]+\s*"), 0),
    (re.compile(r"rm\s?[\d,.]+\s*", re.IGNORECASE), 0),
    (re.compile(r"[\d,.]+\s*(dollars?|bucks?|usd)\s*", re.IGNORECASE), 0),
    (re.compile(r"\b(on|for|at)\s+", re.IGNORECASE), 1),
    (re.compile(r"\b(yesterday|today|tomorrow)\b", re.IGNORECASE), 0),
    (re.compile(r"\b(can you|help me|place it|put it|in my|finance tracker|tracker)\b", re.IGNORECASE), 0),
]


def extract_expense_title(text: str) -> str:
    """Short label: lead verbs, currency and date words stripped, first three words kept."""
    remainder = text
    for pattern, count in _TITLE_STRIP_STEPS:
        remainder = pattern.sub("", remainder, count=count)
    words = remainder.split()[:3]
    title = " ".join(words)
    if not title:
        return DEFAULT_EXPENSE_TITLE
    return title[0].upper() + title[1:]


# ---------------------------------------------------------------------------
# Time of day / duration
# ---------------------------------------------------------------------------

_DURATION_RE = re.compile(
    r"(?:for|about|around)\s+(?:a\s+)?(?:whole|full|entire|solid|good)?\s*"
    r"(\d+(?:\.\d+)?)\s*(?:hours?|hrs?|h)\b",
    re.IGNORECASE,
)
_DURATION_PHRASE_RE = re.compile(
    r"(?:for|about|around)\s+(?:a\s+)?(?:whole|full|entire|solid|good)?\s*"
    r"\d+(?:\.\d+)?\s*(?:hours?|hrs?|h|minutes?|mins?|m)\b",
    re.IGNORECASE,
)
_TIME_RE = re.compile(r"\b(\d{1,2})(?::(\d{2}))?\s*(am|pm)?\b", re.IGNORECASE)


def extract_time(text: str) -> Optional[str]:
    """``H[:MM][am|pm]`` as 24-hour "HH:MM". Durations are not read as times."""
    match = _TIME_RE.search(_DURATION_PHRASE_RE.sub("", text))
    if not match:
        return None
    hour = int(match.group(1))
    minute = int(match.group(2)) if match.group(2) else 0
    meridiem = (match.group(3) or "").lower()
    if meridiem == "pm" and hour < 12:
        hour += 12
    if meridiem == "am" and hour == 12:
        hour = 0
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        return None
    return f"{hour:02d}:{minute:02d}"


def extract_duration_hours(text: str) -> Optional[float]:
    """``for/about/around N hour(s)`` with 0 < N <= 12."""
    match = _DURATION_RE.search(text)
    if match:
        value = float(match.group(1))
        if 0 < value <= 12:
            return value
    return None


# ---------------------------------------------------------------------------
# Class subject name
# ---------------------------------------------------------------------------

CLASS_NOUNS = r"(?:class|lecture|lesson|tutorial|lab|seminar|meeting|session)"

_SUBJECT_STOPWORDS = {"a", "an", "the", "i", "my", "have", "has", "had", "this", "that", "next", "every", "each"}
_FOR_STOPWORDS = {"a", "an", "the", "it", "that", "this", "me", "you", "tomorrow", "today", "yesterday"}

_CALLED_RE = re.compile(r"(?:called|named)\s+([A-Za-z][A-Za-z\s]{0,30})", re.IGNORECASE)
_MY_CLASS_RE = re.compile(r"\bmy\s+([A-Za-z][A-Za-z\s]{0,30}?)\s+" + CLASS_NOUNS + r"\b", re.IGNORECASE)
_BEFORE_CLASS_RE = re.compile(r"\b([A-Za-z][A-Za-z\s]{0,30}?)\s+" + CLASS_NOUNS + r"\b", re.IGNORECASE)
_TRAILING_FOR_RE = re.compile(r"\bfor\s+([A-Za-z][A-Za-z\s]{1,30}?)\s*$", re.IGNORECASE)


def extract_subject_name(text: str) -> Optional[str]:
    """Class name: "called X", "my X class", "X class", then a trailing "for X"."""
    cleaned = _DURATION_PHRASE_RE.sub("", text)

    match = _CALLED_RE.search(cleaned)
    if match:
        return match.group(1).strip()

    match = _MY_CLASS_RE.search(cleaned)
    if match:
        return match.group(1).strip()

    match = _BEFORE_CLASS_RE.search(cleaned)
    if match:
        candidate = match.group(1).strip()
        if candidate.lower() not in _SUBJECT_STOPWORDS:
            return candidate

    match = _TRAILING_FOR_RE.search(cleaned)
    if match:
        candidate = match.group(1).strip()
        if candidate.lower() not in _FOR_STOPWORDS:
            return candidate

    return None


# ---------------------------------------------------------------------------
# Weekdays
# ---------------------------------------------------------------------------

WEEKDAY_NAMES: dict[Weekday, tuple[str, ...]] = {
    Weekday.SUNDAY: ("sunday", "sun"),
    Weekday.MONDAY: ("monday", "mon"),
    Weekday.TUESDAY: ("tuesday", "tues", "tue"),
    Weekday.WEDNESDAY: ("wednesday", "wed"),
    Weekday.THURSDAY: ("thursday", "thurs", "thu"),
    Weekday.FRIDAY: ("friday", "fri"),
    Weekday.SATURDAY: ("saturday", "sat"),
}

_WEEKDAY_RES: dict[Weekday, re.Pattern] = {
    day: re.compile(r"\b(?:" + "|".join(names) + r")\b", re.IGNORECASE)
    for day, names in WEEKDAY_NAMES.items()
}


def extract_weekdays(text: str) -> Optional[list[Weekday]]:
    """Every weekday named anywhere in the text, sorted; None when there are none."""
    found = [day for day, pattern in _WEEKDAY_RES.items() if pattern.search(text)]
    return sorted(found) if found else None


# ---------------------------------------------------------------------------
# Importance
# ---------------------------------------------------------------------------

_IMPORTANCE_BUCKETS: list[tuple[re.Pattern, Importance]] = [
    (re.compile(r"\b(urgent|critical|important|high)\b", re.IGNORECASE), Importance.HIGH),
    (re.compile(r"\b(medium|moderate|normal)\b", re.IGNORECASE), Importance.MEDIUM),
    (re.compile(r"\b(low|minor|optional|whenever)\b", re.IGNORECASE), Importance.LOW),
]


def extract_importance(text: str) -> Importance:
    for pattern, level in _IMPORTANCE_BUCKETS:
        if pattern.search(text):
            return level
    return Importance.MEDIUM


# ---------------------------------------------------------------------------
# Navigation
# ---------------------------------------------------------------------------

_NAV_VERB = r"\b(show|open|go to|take me to|view)\b.*"

NAVIGATION_ROUTES: list[tuple[re.Pattern, str, str]] = [
    (re.compile(_NAV_VERB + r"\b(schedul|timetable|weekly)"), "/dashboard/schedules", "Schedules"),
    (re.compile(_NAV_VERB + r"\b(study|hub|study hub|materials|flashcard|notes)\b"), "/dashboard/study-hub", "Study Hub"),
    (re.compile(_NAV_VERB + r"\b(financ|expense|budget|tracker|money)"), "/dashboard/finance-tracker", "Finance Tracker"),
    (re.compile(_NAV_VERB + r"\b(task|todo)"), "/dashboard/tasks", "Tasks"),
    (re.compile(_NAV_VERB + r"\b(dashboard|overview|home)\b"), "/dashboard", "Dashboard"),
]

ROUTE_LABELS: dict[str, str] = {route: label for _, route, label in NAVIGATION_ROUTES}


def extract_navigation_target(text: str) -> Optional[str]:
    """Route for "show/open/go to/view <area>"; the first matching row wins."""
    lower = text.lower()
    for pattern, route, _label in NAVIGATION_ROUTES:
        if pattern.search(lower):
            return route
    return None


# ---------------------------------------------------------------------------
# Study task title / subject
# ---------------------------------------------------------------------------

_STUDY_DO_RE = re.compile(
    r"\b(?:do|finish|complete|submit|start|work on)\s+(?:my\s+)?(.+?)"
    r"(?:\s+(?:by|before|tomorrow|today|yesterday|on|due)|\s*$)",
    re.IGNORECASE,
)
_STUDY_KIND_RE = re.compile(
    r"\b(homework|assignment|revision|essay|report|project|quiz)\s+(?:for|on|about)\s+(.+?)"
    r"(?:\s+(?:by|before|tomorrow|today|on|due)|\s*$)",
    re.IGNORECASE,
)
_STUDY_FOR_RE = re.compile(
    r"\b(?:for|in|on)\s+([A-Za-z][A-Za-z\s]{1,30}?)(?:\s+(?:class|by|before|tomorrow|today|due)|\s*$)",
    re.IGNORECASE,
)
_STUDY_MY_RE = re.compile(
    r"\bmy\s+([A-Za-z][A-Za-z\s]{1,30}?)\s+(?:homework|assignment|revision|essay|report|project)",
    re.IGNORECASE,
)


def extract_study_title(text: str) -> Optional[str]:
    match = _STUDY_DO_RE.search(text)
    if match:
        title = match.group(1).strip()
        if len(title) > 2:
            return title[0].upper() + title[1:]
    match = _STUDY_KIND_RE.search(text)
    if match:
        kind = match.group(1)
        return f"{kind[0].upper()}{kind[1:]} for {match.group(2).strip()}"
    return None


def extract_study_subject(text: str, known_subjects: Iterable[str] = ()) -> Optional[str]:
    """A known class subject mentioned in the text, else "for/in/on X", else "my X homework"."""
    lower = text.lower()
    for subject in known_subjects:
        if subject.lower() in lower:
            return subject
    match = _STUDY_FOR_RE.search(text)
    if match:
        return match.group(1).strip()
    match = _STUDY_MY_RE.search(text)
    if match:
        return match.group(1).strip()
    return None
