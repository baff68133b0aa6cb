"""Supabase-backed collaborators: where confirmed drafts end up."""
import datetime as dt
import logging
from decimal import Decimal

from supabase import Client

from core.collaborators import AssistantCollaborators, CommitError, TranscriptError
from database.repositories.chat_repo import ChatRepository
from database.repositories.finance_repo import FinanceRepository
from database.repositories.item_repo import STUDY_COLOR, STUDY_SLOT, TASK_COLOR, ItemRepository
from database.repositories.schedule_repo import ScheduleRepository
from models.draft import Category, Importance, Weekday
from models.message import Presentation, Sender
from models.schedule import ScheduleEntry

logger = logging.getLogger(__name__)

# chat_messages.sender predates the assistant naming
_STORED_SENDER = {Sender.USER: "user", Sender.ASSISTANT: "bot"}


def _record_id(row) -> str:
    if not row or "id" not in row:
        raise CommitError("Datastore returned no row")
    return str(row["id"])


class SupabaseCollaborators(AssistantCollaborators):
    """
    Commits and lookups for one user.

    Repositories are lightweight wrappers around the shared Supabase
    client, so one instance per session is fine.
    """

    def __init__(self, user_id: str, supabase: Client):
        self.user_id = user_id
        self.finance_repo = FinanceRepository(supabase)
        self.schedule_repo = ScheduleRepository(supabase)
        self.item_repo = ItemRepository(supabase)
        self.chat_repo = ChatRepository(supabase)

    async def commit_expense(
        self,
        *,
        amount: Decimal,
        category: Category,
        date: dt.date,
        description: str,
    ) -> str:
        row = await self.finance_repo.create_expense(
            self.user_id,
            amount=amount,
            category=category.value,
            transaction_date=date,
            description=description,
        )
        return _record_id(row)

    async def commit_scheduled_class(
        self,
        *,
        subject_name: str,
        start_time: str,
        end_time: str,
        days: list[Weekday],
        color: str,
    ) -> str:
        row = await self.schedule_repo.create_entry(
            self.user_id,
            subject_name=subject_name,
            start_time=start_time,
            end_time=end_time,
            days=[int(day) for day in days],
            color=color,
        )
        return _record_id(row)

    async def commit_task(
        self,
        *,
        title: str,
        date: dt.date,
        importance: Importance,
        description: str,
    ) -> str:
        row = await self.item_repo.create_item(
            self.user_id,
            item_type="task",
            title=title,
            item_date=date,
            importance=int(importance),
            description=description,
            color=TASK_COLOR,
        )
        return _record_id(row)

    async def commit_study_task(
        self,
        *,
        title: str,
        subject: str,
        date: dt.date,
        importance: Importance,
    ) -> str:
        start_time, end_time = STUDY_SLOT
        row = await self.item_repo.create_item(
            self.user_id,
            item_type="study",
            title=title,
            item_date=date,
            importance=int(importance),
            description=f"Study task for {subject}",
            color=STUDY_COLOR,
            start_time=start_time,
            end_time=end_time,
            subject=subject,
        )
        return _record_id(row)

    async def list_known_schedules(self) -> list[ScheduleEntry]:
        rows = await self.schedule_repo.get_entries_by_user(self.user_id)
        return [ScheduleEntry.model_validate(row) for row in rows]

    async def append_transcript_message(
        self,
        session_id: str,
        sender: Sender,
        text: str,
        presentation: Presentation,
    ) -> None:
        stored = await self.chat_repo.insert_message(
            self.user_id,
            sender=_STORED_SENDER[sender],
            text=text,
            component_type=presentation.value,
        )
        if not stored:
            raise TranscriptError(f"Could not store {sender.value} message for session {session_id}")

    async def load_history(self) -> list[dict]:
        return await self.chat_repo.get_messages(self.user_id)

    async def clear_history(self) -> None:
        await self.chat_repo.clear_messages(self.user_id)
