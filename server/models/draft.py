"""Draft data models: the record being assembled by the assistant."""
import datetime as dt
from decimal import Decimal
from enum import Enum, IntEnum
from typing import Annotated, ClassVar, Literal, Optional, Union

from pydantic import BaseModel, Field


class DraftKind(str, Enum):
    """The four commit-able record types."""
    EXPENSE = "expense"
    SCHEDULED_CLASS = "schedule"
    TASK = "task"
    STUDY_TASK = "study"


class PendingField(str, Enum):
    """Slot the controller is waiting on. CONFIRM is the review sentinel."""
    TITLE = "title"
    CATEGORY = "category"
    AMOUNT = "amount"
    SUBJECT_NAME = "subject_name"
    DAYS = "days"
    START_TIME = "start_time"
    DURATION_HOURS = "duration_hours"
    DATE = "date"
    IMPORTANCE = "importance"
    SUBJECT = "subject"
    CONFIRM = "confirm"


class Category(str, Enum):
    FOOD = "Food"
    TRANSPORT = "Transport"
    SHOPPING = "Shopping"
    ENTERTAINMENT = "Entertainment"
    EDUCATION = "Education"
    HEALTH = "Health"
    BILLS = "Bills"
    OTHER = "Other"


CATEGORY_COLORS: dict[Category, str] = {
    Category.FOOD: "#f59e0b",
    Category.TRANSPORT: "#3b82f6",
    Category.SHOPPING: "#ec4899",
    Category.ENTERTAINMENT: "#a855f7",
    Category.EDUCATION: "#6366f1",
    Category.HEALTH: "#10b981",
    Category.BILLS: "#ef4444",
    Category.OTHER: "#6b7280",
}


class Importance(IntEnum):
    LOW = 1
    MEDIUM = 2
    HIGH = 3

    @property
    def label(self) -> str:
        return self.name.capitalize()


class Weekday(IntEnum):
    """Stored as 0=Sunday .. 6=Saturday, matching schedule_entries.days."""
    SUNDAY = 0
    MONDAY = 1
    TUESDAY = 2
    WEDNESDAY = 3
    THURSDAY = 4
    FRIDAY = 5
    SATURDAY = 6

    @property
    def short(self) -> str:
        return self.name[:3].capitalize()

    @classmethod
    def of(cls, day: dt.date) -> "Weekday":
        return cls(day.isoweekday() % 7)


class BaseDraft(BaseModel):
    """Common behaviour for every draft variant.

    ``SLOTS`` lists the slots the wizard asks for, in order. A draft is
    complete when none of them is empty.
    """

    SLOTS: ClassVar[tuple[PendingField, ...]] = ()

    def missing_slots(self) -> list[PendingField]:
        missing = []
        for slot in self.SLOTS:
            value = getattr(self, slot.value)
            if value is None or value == "" or value == []:
                missing.append(slot)
        return missing

    def first_missing_slot(self) -> Optional[PendingField]:
        missing = self.missing_slots()
        return missing[0] if missing else None

    def is_complete(self) -> bool:
        return not self.missing_slots()

    def owns(self, field: PendingField) -> bool:
        return field is PendingField.CONFIRM or field in self.SLOTS


class ExpenseDraft(BaseDraft):
    kind: Literal[DraftKind.EXPENSE] = DraftKind.EXPENSE
    title: Optional[str] = None
    amount: Optional[Decimal] = None
    category: Optional[Category] = None
    date: Optional[dt.date] = None
    description: Optional[str] = None

    SLOTS: ClassVar[tuple[PendingField, ...]] = (
        PendingField.TITLE,
        PendingField.CATEGORY,
        PendingField.AMOUNT,
    )


class ScheduledClassDraft(BaseDraft):
    kind: Literal[DraftKind.SCHEDULED_CLASS] = DraftKind.SCHEDULED_CLASS
    subject_name: Optional[str] = None
    start_time: Optional[str] = None  # "HH:MM", 24-hour
    duration_hours: Optional[float] = None
    days: Optional[list[Weekday]] = None
    color: Optional[str] = None

    SLOTS: ClassVar[tuple[PendingField, ...]] = (
        PendingField.SUBJECT_NAME,
        PendingField.DAYS,
        PendingField.START_TIME,
        PendingField.DURATION_HOURS,
    )

    @property
    def end_time(self) -> Optional[str]:
        if not self.start_time or self.duration_hours is None:
            return None
        return compute_end_time(self.start_time, self.duration_hours)


class TaskDraft(BaseDraft):
    kind: Literal[DraftKind.TASK] = DraftKind.TASK
    title: Optional[str] = None
    date: Optional[dt.date] = None
    importance: Optional[Importance] = None
    description: Optional[str] = None

    SLOTS: ClassVar[tuple[PendingField, ...]] = (
        PendingField.TITLE,
        PendingField.DATE,
        PendingField.IMPORTANCE,
    )


class StudyTaskDraft(BaseDraft):
    kind: Literal[DraftKind.STUDY_TASK] = DraftKind.STUDY_TASK
    title: Optional[str] = None
    subject: Optional[str] = None
    date: Optional[dt.date] = None
    importance: Optional[Importance] = None

    SLOTS: ClassVar[tuple[PendingField, ...]] = (
        PendingField.TITLE,
        PendingField.SUBJECT,
        PendingField.DATE,
        PendingField.IMPORTANCE,
    )


Draft = Annotated[
    Union[ExpenseDraft, ScheduledClassDraft, TaskDraft, StudyTaskDraft],
    Field(discriminator="kind"),
]

DRAFT_TYPES: dict[DraftKind, type[BaseDraft]] = {
    DraftKind.EXPENSE: ExpenseDraft,
    DraftKind.SCHEDULED_CLASS: ScheduledClassDraft,
    DraftKind.TASK: TaskDraft,
    DraftKind.STUDY_TASK: StudyTaskDraft,
}


def compute_end_time(start_time: str, duration_hours: float) -> str:
    """Add a duration to an "HH:MM" start. The hour is clamped to 23, no wraparound."""
    hours, minutes = (int(part) for part in start_time.split(":"))
    total = hours * 60 + minutes + round(duration_hours * 60)
    end_hour = min(total // 60, 23)
    end_minute = total % 60
    return f"{end_hour:02d}:{end_minute:02d}"
