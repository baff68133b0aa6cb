"""Collaborator interface: the boundary between the assistant and the host app."""
import datetime as dt
import logging
from abc import ABC, abstractmethod
from decimal import Decimal

from models.draft import Category, Importance, Weekday
from models.message import Presentation, Sender
from models.schedule import ScheduleEntry

logger = logging.getLogger(__name__)


class CommitError(Exception):
    """A commit call was rejected; no record should be assumed to exist."""


class TranscriptError(Exception):
    """A transcript message could not be stored."""


class AssistantCollaborators(ABC):
    """
    Everything the dialogue needs from the outside world.

    Commit methods persist one completed draft in a single call and return
    the new record id, raising ``CommitError`` (or any exception) on
    failure. Query methods are read-only. Transcript appends are
    best-effort and navigation is fire-and-forget.
    """

    @abstractmethod
    async def commit_expense(
        self,
        *,
        amount: Decimal,
        category: Category,
        date: dt.date,
        description: str,
    ) -> str:
        ...

    @abstractmethod
    async def commit_scheduled_class(
        self,
        *,
        subject_name: str,
        start_time: str,
        end_time: str,
        days: list[Weekday],
        color: str,
    ) -> str:
        ...

    @abstractmethod
    async def commit_task(
        self,
        *,
        title: str,
        date: dt.date,
        importance: Importance,
        description: str,
    ) -> str:
        ...

    @abstractmethod
    async def commit_study_task(
        self,
        *,
        title: str,
        subject: str,
        date: dt.date,
        importance: Importance,
    ) -> str:
        ...

    @abstractmethod
    async def list_known_schedules(self) -> list[ScheduleEntry]:
        """Classes already on the timetable."""
        ...

    async def list_known_class_subjects(self) -> set[str]:
        return {entry.subject_name for entry in await self.list_known_schedules()}

    async def list_known_schedule_colors(self) -> set[str]:
        return {entry.color for entry in await self.list_known_schedules() if entry.color}

    @abstractmethod
    async def append_transcript_message(
        self,
        session_id: str,
        sender: Sender,
        text: str,
        presentation: Presentation,
    ) -> None:
        ...

    def navigate(self, route: str) -> None:
        """Ask the host to switch view. Remote clients read the route from the reply payload."""
        logger.info(f"Navigation requested: {route}")
