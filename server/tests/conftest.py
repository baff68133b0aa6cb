"""Shared test fixtures and configuration."""
import sys
import os
import datetime as dt

import pytest

# Ensure the server package is importable
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Set required environment variables BEFORE any application module is imported.
# These are dummy values used only in tests — no real connections are made.
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_KEY", "test-key-for-unit-tests")

from core.collaborators import AssistantCollaborators, CommitError  # noqa: E402
from core.dialogue import DialogueController  # noqa: E402
from core.pacing import ReplyPacer  # noqa: E402
from models.schedule import ScheduleEntry  # noqa: E402

# Fixed "today": a Wednesday
TODAY = dt.date(2025, 3, 12)


class FakeCollaborators(AssistantCollaborators):
    """In-memory collaborators that record every call."""

    def __init__(self, schedules=None):
        self.commits: list[tuple[str, dict]] = []
        self.schedules: list[ScheduleEntry] = list(schedules or [])
        self.transcript: list[tuple[str, str, str, str]] = []
        self.routes: list[str] = []
        self.history: list[dict] = []
        self.fail_commits = False
        self.fail_transcript = False
        self.fail_queries = False
        self.fail_navigation = False

    async def _commit(self, kind: str, **fields) -> str:
        if self.fail_commits:
            raise CommitError("datastore rejected the write")
        self.commits.append((kind, fields))
        return f"{kind}-{len(self.commits)}"

    async def commit_expense(self, **fields) -> str:
        return await self._commit("expense", **fields)

    async def commit_scheduled_class(self, **fields) -> str:
        return await self._commit("schedule", **fields)

    async def commit_task(self, **fields) -> str:
        return await self._commit("task", **fields)

    async def commit_study_task(self, **fields) -> str:
        return await self._commit("study", **fields)

    async def list_known_schedules(self):
        if self.fail_queries:
            raise RuntimeError("datastore unavailable")
        return list(self.schedules)

    async def append_transcript_message(self, session_id, sender, text, presentation) -> None:
        if self.fail_transcript:
            raise RuntimeError("chat_messages insert failed")
        self.transcript.append((session_id, sender.value, text, presentation.value))

    def navigate(self, route: str) -> None:
        if self.fail_navigation:
            raise RuntimeError("host view is gone")
        self.routes.append(route)

    async def load_history(self):
        return list(self.history)

    async def clear_history(self):
        self.history.clear()


@pytest.fixture
def collaborators():
    return FakeCollaborators()


@pytest.fixture
def controller(collaborators):
    return DialogueController(
        "session-1",
        collaborators,
        pacer=ReplyPacer(0, 0),
        today=lambda: TODAY,
    )


@pytest.fixture
def physics_entry():
    return ScheduleEntry(
        id="sched-1",
        subject_name="Physics",
        start_time="09:00",
        end_time="10:30",
        days=[3, 5],
        color="#a855f7",
    )
