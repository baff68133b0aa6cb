"""Tests for the Supabase repositories and collaborators (mocked client)."""
import datetime as dt
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from core.collaborators import CommitError, TranscriptError
from database.collaborators import SupabaseCollaborators
from database.repositories.chat_repo import ChatRepository
from models.draft import Category, Importance, Weekday
from models.message import Presentation, Sender


def mock_supabase(data=None):
    """Supabase client whose query chain ends in execute() -> response(data)."""
    supabase = MagicMock()
    table = supabase.table.return_value
    for method in ("select", "insert", "delete", "eq", "order", "limit"):
        getattr(table, method).return_value = table
    table.execute.return_value = MagicMock(data=data)
    return supabase, table


# ---------------------------------------------------------------------------
# Commits
# ---------------------------------------------------------------------------

class TestSupabaseCommits:
    @pytest.mark.asyncio
    async def test_expense_row(self):
        supabase, table = mock_supabase([{"id": "tx-1"}])
        collaborators = SupabaseCollaborators("user-1", supabase)

        record_id = await collaborators.commit_expense(
            amount=Decimal("15.50"),
            category=Category.FOOD,
            date=dt.date(2025, 3, 12),
            description="Lunch",
        )

        assert record_id == "tx-1"
        supabase.table.assert_called_with("transactions")
        table.insert.assert_called_once_with({
            "user_id": "user-1",
            "type": "expense",
            "amount": 15.5,
            "category": "Food",
            "transaction_date": "2025-03-12",
            "description": "Lunch",
            "is_recurring": False,
        })

    @pytest.mark.asyncio
    async def test_schedule_row_stores_day_numbers(self):
        supabase, table = mock_supabase([{"id": 7}])
        collaborators = SupabaseCollaborators("user-1", supabase)

        record_id = await collaborators.commit_scheduled_class(
            subject_name="Physics",
            start_time="09:00",
            end_time="10:30",
            days=[Weekday.SUNDAY, Weekday.WEDNESDAY],
            color="#a855f7",
        )

        assert record_id == "7"
        supabase.table.assert_called_with("schedule_entries")
        assert table.insert.call_args[0][0]["days"] == [0, 3]

    @pytest.mark.asyncio
    async def test_study_row(self):
        supabase, table = mock_supabase([{"id": "item-1"}])
        collaborators = SupabaseCollaborators("user-1", supabase)

        await collaborators.commit_study_task(
            title="Essay",
            subject="History",
            date=dt.date(2025, 3, 14),
            importance=Importance.HIGH,
        )

        row = table.insert.call_args[0][0]
        supabase.table.assert_called_with("dashboard_items")
        assert row["type"] == "study"
        assert row["importance"] == 3
        assert row["subject"] == "History"
        assert (row["start_time"], row["end_time"]) == ("09:00", "10:00")

    @pytest.mark.asyncio
    async def test_task_row_has_no_study_columns(self):
        supabase, table = mock_supabase([{"id": "item-2"}])
        collaborators = SupabaseCollaborators("user-1", supabase)

        await collaborators.commit_task(
            title="Call mum",
            date=dt.date(2025, 3, 14),
            importance=Importance.LOW,
            description="Call mum",
        )

        row = table.insert.call_args[0][0]
        assert row["type"] == "task"
        assert "subject" not in row

    @pytest.mark.asyncio
    async def test_no_row_is_commit_error(self):
        supabase, _ = mock_supabase([])
        collaborators = SupabaseCollaborators("user-1", supabase)
        with pytest.raises(CommitError):
            await collaborators.commit_task(
                title="Call mum",
                date=dt.date(2025, 3, 14),
                importance=Importance.LOW,
                description="Call mum",
            )

    @pytest.mark.asyncio
    async def test_datastore_error_propagates(self):
        supabase, table = mock_supabase()
        table.execute.side_effect = RuntimeError("connection reset")
        collaborators = SupabaseCollaborators("user-1", supabase)
        with pytest.raises(RuntimeError):
            await collaborators.commit_expense(
                amount=Decimal("1"),
                category=Category.OTHER,
                date=dt.date(2025, 3, 12),
                description="x",
            )


# ---------------------------------------------------------------------------
# Queries / transcript
# ---------------------------------------------------------------------------

class TestSupabaseQueries:
    @pytest.mark.asyncio
    async def test_known_schedules(self):
        supabase, _ = mock_supabase([
            {"id": 1, "user_id": "user-1", "subject_name": "Physics", "start_time": "09:00:00",
             "end_time": "10:30:00", "days": [1, 3], "color": None},
        ])
        collaborators = SupabaseCollaborators("user-1", supabase)

        schedules = await collaborators.list_known_schedules()

        assert schedules[0].start_time == "09:00"
        assert schedules[0].days == [Weekday.MONDAY, Weekday.WEDNESDAY]
        assert await collaborators.list_known_class_subjects() == {"Physics"}
        assert await collaborators.list_known_schedule_colors() == set()

    @pytest.mark.asyncio
    async def test_transcript_uses_stored_sender_names(self):
        supabase, table = mock_supabase([{"id": "m1"}])
        collaborators = SupabaseCollaborators("user-1", supabase)

        await collaborators.append_transcript_message(
            "session-1", Sender.ASSISTANT, "Hello", Presentation.MENU_PROMPT
        )

        table.insert.assert_called_once_with({
            "user_id": "user-1",
            "sender": "bot",
            "text": "Hello",
            "component_type": "main-menu",
        })

    @pytest.mark.asyncio
    async def test_transcript_store_failure_raises(self):
        supabase, table = mock_supabase()
        table.execute.side_effect = RuntimeError("chat_messages unavailable")
        collaborators = SupabaseCollaborators("user-1", supabase)

        with pytest.raises(TranscriptError):
            await collaborators.append_transcript_message(
                "session-1", Sender.USER, "hi", Presentation.PLAIN_TEXT
            )


class TestChatRepository:
    @pytest.mark.asyncio
    async def test_insert_failure_returns_false(self):
        supabase, table = mock_supabase()
        table.execute.side_effect = RuntimeError("boom")
        assert await ChatRepository(supabase).insert_message("u", "user", "hi", "text") is False

    @pytest.mark.asyncio
    async def test_history_oldest_first(self):
        supabase, table = mock_supabase([{"id": 1}, {"id": 2}])
        rows = await ChatRepository(supabase).get_messages("u")
        assert [r["id"] for r in rows] == [1, 2]
        table.order.assert_called_with("created_at")

    @pytest.mark.asyncio
    async def test_clear(self):
        supabase, table = mock_supabase()
        await ChatRepository(supabase).clear_messages("u")
        table.delete.assert_called_once()
        table.eq.assert_called_with("user_id", "u")
