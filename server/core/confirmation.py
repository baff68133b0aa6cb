"""Confirmation & commit: renders a finished draft and persists it in one call."""
import datetime as dt
import logging
import random
from typing import Callable, Iterable, Optional

from pydantic import BaseModel

from core import prompts
from core.collaborators import AssistantCollaborators
from models.draft import (
    BaseDraft,
    DraftKind,
    ExpenseDraft,
    Importance,
    ScheduledClassDraft,
    StudyTaskDraft,
    TaskDraft,
    Weekday,
)
from models.message import Message, MessagePayload, Presentation, Sender

logger = logging.getLogger(__name__)

SCHEDULE_COLORS = ["#a855f7", "#ec4899", "#3b82f6", "#10b981", "#f59e0b", "#6366f1", "#ef4444", "#14b8a6"]


def pick_color(used: Iterable[str], rng: Optional[random.Random] = None) -> str:
    """First palette colour not already in use, else a random one."""
    used = set(used)
    for color in SCHEDULE_COLORS:
        if color not in used:
            return color
    return (rng or random).choice(SCHEDULE_COLORS)


def format_value(value) -> str:
    """Card rendering keeps the stored value as-is."""
    if isinstance(value, Importance):
        return value.label
    if isinstance(value, dt.date):
        return value.isoformat()
    if isinstance(value, list):
        return ", ".join(day.short if isinstance(day, Weekday) else str(day) for day in value)
    if hasattr(value, "value"):
        return str(value.value)
    return str(value)


def render_confirmation_card(draft: BaseDraft, heading: Optional[str] = None) -> Message:
    """Read-only card listing every filled field, with Confirm/Cancel actions."""
    lines = [heading or prompts.CONFIRMATION_HEADINGS[draft.kind]]
    for name, value in draft:
        if name == "kind" or value is None:
            continue
        lines.append(f"- **{prompts.FIELD_LABELS.get(name, name)}:** {format_value(value)}")

    end_time = None
    if isinstance(draft, ScheduledClassDraft):
        end_time = draft.end_time
        if end_time:
            lines.append(f"- **{prompts.FIELD_LABELS['end_time']}:** {end_time}")

    return Message(
        sender=Sender.ASSISTANT,
        text="\n".join(lines),
        presentation=Presentation.CONFIRMATION_CARD,
        payload=MessagePayload(
            draft=draft,
            end_time=end_time,
            options=prompts.CONFIRM_ACTIONS,
        ),
    )


class CommitOutcome(BaseModel):
    success: bool
    record_id: Optional[str] = None
    message: str


class CommitDispatcher:
    """
    Sends a confirmed draft to the matching collaborator, exactly once.

    Failures are logged and turned into a generic message; nothing is
    retried and no partial record is assumed.
    """

    def __init__(
        self,
        collaborators: AssistantCollaborators,
        today: Callable[[], dt.date] = dt.date.today,
    ):
        self.collaborators = collaborators
        self.today = today
        self._handlers = {
            DraftKind.EXPENSE: self._commit_expense,
            DraftKind.SCHEDULED_CLASS: self._commit_scheduled_class,
            DraftKind.TASK: self._commit_task,
            DraftKind.STUDY_TASK: self._commit_study_task,
        }

    async def commit(self, draft: BaseDraft) -> CommitOutcome:
        handler = self._handlers.get(draft.kind)
        if handler is None:
            raise ValueError(f"No commit handler for draft kind {draft.kind!r}")

        try:
            record_id, text = await handler(draft)
        except Exception as e:
            logger.error(f"Commit of {draft.kind.value} draft failed: {e}", exc_info=True)
            return CommitOutcome(success=False, message=prompts.COMMIT_FAILED)

        logger.info(f"Committed {draft.kind.value} record {record_id}")
        return CommitOutcome(success=True, record_id=record_id, message=text)

    async def _commit_expense(self, draft: ExpenseDraft) -> tuple[str, str]:
        record_id = await self.collaborators.commit_expense(
            amount=draft.amount,
            category=draft.category,
            date=draft.date or self.today(),
            description=draft.description or draft.title or "Expense",
        )
        return record_id, prompts.EXPENSE_SAVED.format(amount=f"{draft.amount:.2f}", category=draft.category.value)

    async def _commit_scheduled_class(self, draft: ScheduledClassDraft) -> tuple[str, str]:
        color = draft.color
        if not color:
            color = pick_color(await self._known_colors())
        record_id = await self.collaborators.commit_scheduled_class(
            subject_name=draft.subject_name,
            start_time=draft.start_time,
            end_time=draft.end_time,
            days=draft.days,
            color=color,
        )
        return record_id, prompts.SCHEDULE_SAVED.format(subject=draft.subject_name)

    async def _commit_task(self, draft: TaskDraft) -> tuple[str, str]:
        record_id = await self.collaborators.commit_task(
            title=draft.title,
            date=draft.date or self.today(),
            importance=draft.importance or Importance.MEDIUM,
            description=draft.description or draft.title,
        )
        return record_id, prompts.TASK_SAVED.format(title=draft.title)

    async def _commit_study_task(self, draft: StudyTaskDraft) -> tuple[str, str]:
        record_id = await self.collaborators.commit_study_task(
            title=draft.title,
            subject=draft.subject,
            date=draft.date or self.today(),
            importance=draft.importance or Importance.MEDIUM,
        )
        return record_id, prompts.STUDY_SAVED.format(title=draft.title, subject=draft.subject)

    async def _known_colors(self) -> set[str]:
        try:
            return await self.collaborators.list_known_schedule_colors()
        except Exception as e:
            logger.warning(f"Could not load schedule colors: {e}")
            return set()
