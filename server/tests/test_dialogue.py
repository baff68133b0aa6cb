"""Tests for the dialogue controller state machine."""
import asyncio
import datetime as dt
from decimal import Decimal

import pytest

from conftest import TODAY, FakeCollaborators
from core import prompts
from core.dialogue import DialogueBusyError, DialogueController
from core.pacing import ReplyPacer
from models.draft import (
    Category,
    DraftKind,
    ExpenseDraft,
    Importance,
    PendingField,
    ScheduledClassDraft,
    StudyTaskDraft,
    Weekday,
)
from models.message import Presentation, Sender


def texts(messages):
    return [m.text for m in messages]


async def fill_task(controller):
    await controller.select_intent("task")
    await controller.submit_text("Buy milk")
    await controller.submit_text("2025-03-20")
    return await controller.select_option("2")


# ---------------------------------------------------------------------------
# Opening / menu
# ---------------------------------------------------------------------------

class TestOpen:
    @pytest.mark.asyncio
    async def test_welcome_and_menu(self, controller):
        messages = await controller.open()
        assert len(messages) == 1
        welcome = messages[0]
        assert welcome.sender is Sender.ASSISTANT
        assert welcome.presentation is Presentation.MENU_PROMPT
        assert "OptiPlan AI" in welcome.text
        assert [o.value for o in welcome.payload.options] == ["expense", "schedule", "task", "study"]
        assert controller.is_idle

    @pytest.mark.asyncio
    async def test_open_only_once(self, controller):
        await controller.open()
        assert await controller.open() == []
        assert len(controller.transcript) == 1

    @pytest.mark.asyncio
    async def test_unknown_menu_choice(self, controller):
        messages = await controller.select_intent("pets")
        assert texts(messages) == [prompts.UNKNOWN_MENU_CHOICE]
        assert controller.draft is None


# ---------------------------------------------------------------------------
# Guided wizards
# ---------------------------------------------------------------------------

class TestGuidedExpense:
    @pytest.mark.asyncio
    async def test_full_flow(self, controller, collaborators):
        messages = await controller.select_intent("expense")
        assert messages[0].sender is Sender.USER
        assert messages[0].text == "Add Expense"
        assert messages[1].text == "What did you spend on?"
        assert messages[1].presentation is Presentation.INPUT_PROMPT
        assert controller.pending_field is PendingField.TITLE

        messages = await controller.submit_text("Burger")
        assert controller.pending_field is PendingField.CATEGORY
        assert messages[-1].presentation is Presentation.CHOICE_PROMPT
        assert [o.value for o in messages[-1].payload.options][-1] == "Other"

        messages = await controller.select_option("Food")
        assert messages[0].text == "Food"
        assert controller.pending_field is PendingField.AMOUNT

        messages = await controller.submit_text("12.5")
        card = messages[-1]
        assert controller.pending_field is PendingField.CONFIRM
        assert card.presentation is Presentation.CONFIRMATION_CARD
        assert "- **Amount:** 12.5" in card.text
        assert "- **Category:** Food" in card.text
        assert "- **Date:** 2025-03-12" in card.text
        assert [o.value for o in card.payload.options] == ["confirm", "cancel"]

        messages = await controller.confirm()
        assert texts(messages) == [
            "Confirm",
            "Done! **$12.50** added to **Food**.",
            prompts.MENU_AGAIN,
        ]
        assert messages[-1].presentation is Presentation.MENU_PROMPT
        assert collaborators.commits == [(
            "expense",
            {
                "amount": Decimal("12.5"),
                "category": Category.FOOD,
                "date": TODAY,
                "description": "Burger",
            },
        )]
        assert controller.draft is None
        assert controller.pending_field is None

    @pytest.mark.asyncio
    async def test_invalid_amount_reprompts(self, controller, collaborators):
        await controller.select_intent("expense")
        await controller.submit_text("Burger")
        await controller.select_option("Food")

        messages = await controller.submit_text("abc")
        assert texts(messages) == [
            "abc",
            prompts.CORRECTIONS[PendingField.AMOUNT],
            "How much?",
        ]
        assert controller.pending_field is PendingField.AMOUNT
        assert controller.draft.amount is None

        await controller.submit_text("0")
        assert controller.pending_field is PendingField.AMOUNT

        await controller.submit_text("1e5")
        assert controller.pending_field is PendingField.AMOUNT
        assert controller.draft.amount is None
        assert collaborators.commits == []


class TestGuidedScheduledClass:
    @pytest.mark.asyncio
    async def test_full_flow(self, controller, collaborators):
        await controller.select_intent("schedule")
        assert controller.draft.color == "#a855f7"
        await controller.submit_text("Calculus")

        messages = await controller.select_option("3,1")
        assert messages[0].text == "Mon, Wed"
        assert controller.draft.days == [Weekday.MONDAY, Weekday.WEDNESDAY]

        await controller.submit_text("9am")
        messages = await controller.select_option("1.5")
        assert messages[0].text == "1.5h"
        card = messages[-1]
        assert card.payload.end_time == "10:30"
        assert "- **End:** 10:30" in card.text

        await controller.confirm()
        kind, fields = collaborators.commits[0]
        assert kind == "schedule"
        assert fields == {
            "subject_name": "Calculus",
            "start_time": "09:00",
            "end_time": "10:30",
            "days": [Weekday.MONDAY, Weekday.WEDNESDAY],
            "color": "#a855f7",
        }

    @pytest.mark.asyncio
    @pytest.mark.parametrize("answer", ["0", "-1"])
    async def test_non_positive_duration_reprompts(self, controller, answer):
        await controller.select_intent("schedule")
        await controller.submit_text("Calculus")
        await controller.select_option("3,1")
        await controller.submit_text("9am")
        assert controller.pending_field is PendingField.DURATION_HOURS

        messages = await controller.submit_text(answer)
        assert texts(messages) == [
            answer,
            prompts.CORRECTIONS[PendingField.DURATION_HOURS],
            "How long?",
        ]
        assert messages[-1].payload.options
        assert controller.pending_field is PendingField.DURATION_HOURS
        assert controller.draft.duration_hours is None

    @pytest.mark.asyncio
    async def test_color_skips_used(self, physics_entry):
        collaborators = FakeCollaborators(schedules=[physics_entry])
        controller = DialogueController("s", collaborators, pacer=ReplyPacer(0, 0), today=lambda: TODAY)
        await controller.select_intent("schedule")
        assert controller.draft.color == "#ec4899"

    @pytest.mark.asyncio
    async def test_days_prompt_is_multi_select(self, controller):
        await controller.select_intent("schedule")
        messages = await controller.submit_text("Calculus")
        assert messages[-1].payload.multi_select is True
        assert [o.value for o in messages[-1].payload.options] == ["0", "1", "2", "3", "4", "5", "6"]


class TestGuidedTasks:
    @pytest.mark.asyncio
    async def test_task_flow(self, controller, collaborators):
        messages = await fill_task(controller)
        assert messages[-1].presentation is Presentation.CONFIRMATION_CARD
        assert "- **Importance:** Medium" in messages[-1].text

        await controller.confirm()
        assert collaborators.commits == [(
            "task",
            {
                "title": "Buy milk",
                "date": dt.date(2025, 3, 20),
                "importance": Importance.MEDIUM,
                "description": "Buy milk",
            },
        )]

    @pytest.mark.asyncio
    async def test_relative_due_date(self, controller):
        await controller.select_intent("task")
        await controller.submit_text("Buy milk")
        await controller.submit_text("tomorrow")
        assert controller.draft.date == dt.date(2025, 3, 13)

    @pytest.mark.asyncio
    async def test_study_subject_falls_back_to_general(self, controller, collaborators):
        await controller.select_intent("study")
        messages = await controller.submit_text("Chapter 5 revision")
        assert [o.value for o in messages[-1].payload.options] == ["General"]

        await controller.select_option("General")
        await controller.submit_text("2025-03-20")
        await controller.select_option("3")
        await controller.confirm()

        assert collaborators.commits == [(
            "study",
            {
                "title": "Chapter 5 revision",
                "subject": "General",
                "date": dt.date(2025, 3, 20),
                "importance": Importance.HIGH,
            },
        )]

    @pytest.mark.asyncio
    async def test_study_subjects_from_timetable(self, physics_entry):
        collaborators = FakeCollaborators(schedules=[physics_entry])
        controller = DialogueController("s", collaborators, pacer=ReplyPacer(0, 0), today=lambda: TODAY)
        await controller.select_intent("study")
        messages = await controller.submit_text("Lab report")
        assert [o.value for o in messages[-1].payload.options] == ["Physics"]


# ---------------------------------------------------------------------------
# Free-text absorption
# ---------------------------------------------------------------------------

class TestFreeText:
    @pytest.mark.asyncio
    async def test_complete_expense_goes_straight_to_card(self, controller):
        messages = await controller.submit_text("I spent $15.50 on lunch")
        assert messages[0].sender is Sender.USER
        card = messages[-1]
        assert card.presentation is Presentation.CONFIRMATION_CARD
        assert card.text.startswith(prompts.EXPENSE_COMPLETE)
        assert controller.pending_field is PendingField.CONFIRM

        draft = controller.draft
        assert isinstance(draft, ExpenseDraft)
        assert draft.amount == Decimal("15.50")
        assert draft.title == "Lunch"
        assert draft.category is Category.FOOD
        assert draft.date == TODAY

    @pytest.mark.asyncio
    async def test_expense_without_amount_asks_for_it(self, controller):
        messages = await controller.submit_text("had pizza yesterday")
        assert controller.pending_field is PendingField.AMOUNT
        assert controller.draft.date == dt.date(2025, 3, 11)
        assert texts(messages)[-1] == "How much?"

    @pytest.mark.asyncio
    async def test_partial_class_lands_on_days(self, controller):
        messages = await controller.submit_text("Add my Physics lecture")
        assert isinstance(controller.draft, ScheduledClassDraft)
        assert controller.draft.subject_name == "Physics"
        assert controller.pending_field is PendingField.DAYS
        assert texts(messages)[1] == "I'll schedule **Physics**."
        assert texts(messages)[2] == "Which days?"

    @pytest.mark.asyncio
    async def test_class_with_day_and_time_lands_on_duration(self, controller):
        await controller.submit_text("Can you add my Calculus class on Monday at 2pm")
        draft = controller.draft
        assert draft.subject_name == "Calculus"
        assert draft.start_time == "14:00"
        assert draft.days == [Weekday.MONDAY]
        assert controller.pending_field is PendingField.DURATION_HOURS

    @pytest.mark.asyncio
    async def test_complete_class(self, controller):
        messages = await controller.submit_text("add my Chemistry lab on tue and thu at 3pm for 2 hours")
        card = messages[-1]
        assert card.presentation is Presentation.CONFIRMATION_CARD
        assert card.payload.end_time == "17:00"
        assert "Chemistry" in card.text

    @pytest.mark.asyncio
    async def test_study_task(self, controller):
        await controller.submit_text("remind me to finish my essay for History by Friday")
        draft = controller.draft
        assert isinstance(draft, StudyTaskDraft)
        assert draft.title == "Essay for History"
        assert draft.subject == "History"
        assert draft.importance is Importance.MEDIUM
        assert controller.pending_field is PendingField.CONFIRM

    @pytest.mark.asyncio
    async def test_new_intent_replaces_draft_at_confirm(self, controller):
        await controller.submit_text("I spent $15.50 on lunch")
        await controller.submit_text("Add my Physics lecture")
        assert isinstance(controller.draft, ScheduledClassDraft)
        assert controller.pending_field is PendingField.DAYS

    @pytest.mark.asyncio
    async def test_text_answers_pending_slot(self, controller):
        await controller.select_intent("task")
        await controller.submit_text("I spent $5 on coffee")
        assert controller.draft.kind is DraftKind.TASK
        assert controller.draft.title == "I spent $5 on coffee"

    @pytest.mark.asyncio
    async def test_small_talk_keeps_draft(self, controller):
        await controller.submit_text("I spent $15.50 on lunch")
        messages = await controller.submit_text("thanks")
        assert texts(messages) == ["thanks", prompts.THANKS_REPLY]
        assert controller.pending_field is PendingField.CONFIRM
        assert controller.draft.amount == Decimal("15.50")

    @pytest.mark.asyncio
    async def test_navigation(self, controller, collaborators):
        messages = await controller.submit_text("show me my schedule")
        assert collaborators.routes == ["/dashboard/schedules"]
        assert messages[-1].payload.route == "/dashboard/schedules"
        assert "Schedules" in messages[-1].text
        assert controller.draft is None

    @pytest.mark.asyncio
    async def test_navigation_failure_is_not_surfaced(self, controller, collaborators):
        collaborators.fail_navigation = True
        messages = await controller.submit_text("show me my schedule")
        assert messages[-1].payload.route == "/dashboard/schedules"
        assert controller.draft is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("utterance", [
        "I spent $15.50 on lunch",
        "Add my Calculus class on Monday at 2pm for 2 hours",
        "Finish my math homework by tomorrow",
    ])
    async def test_same_utterance_same_draft(self, utterance):
        first = DialogueController("a", FakeCollaborators(), pacer=ReplyPacer(0, 0), today=lambda: TODAY)
        second = DialogueController("b", FakeCollaborators(), pacer=ReplyPacer(0, 0), today=lambda: TODAY)

        await first.submit_text(utterance)
        await second.submit_text(utterance)

        assert first.pending_field is PendingField.CONFIRM
        assert second.pending_field is PendingField.CONFIRM
        assert first.draft == second.draft

    @pytest.mark.asyncio
    async def test_greeting_uses_assistant_name(self, controller):
        messages = await controller.submit_text("hello")
        assert "OptiPlan AI" in messages[-1].text

    @pytest.mark.asyncio
    async def test_fallback(self, controller):
        messages = await controller.submit_text("banana")
        assert messages[-1].text == prompts.FALLBACK_REPLY

    @pytest.mark.asyncio
    async def test_blank_text_is_ignored(self, controller):
        assert await controller.submit_text("   ") == []


class TestTodaysClasses:
    @pytest.mark.asyncio
    async def test_lists_todays_classes(self, physics_entry):
        collaborators = FakeCollaborators(schedules=[physics_entry])
        controller = DialogueController("s", collaborators, pacer=ReplyPacer(0, 0), today=lambda: TODAY)
        messages = await controller.submit_text("what classes do I have today?")
        assert "Physics" in messages[-1].text
        assert "09:00" in messages[-1].text

    @pytest.mark.asyncio
    async def test_no_classes(self, controller):
        messages = await controller.submit_text("what classes do I have today?")
        assert messages[-1].text == prompts.NO_CLASSES_REPLY.format(day="Wed")

    @pytest.mark.asyncio
    async def test_lookup_failure_degrades(self, controller, collaborators):
        collaborators.fail_queries = True
        messages = await controller.submit_text("what classes do I have today?")
        assert messages[-1].text == prompts.NO_CLASSES_REPLY.format(day="Wed")


# ---------------------------------------------------------------------------
# Confirm / cancel
# ---------------------------------------------------------------------------

class TestConfirmAndCancel:
    @pytest.mark.asyncio
    async def test_confirm_option_commits(self, controller, collaborators):
        await fill_task(controller)
        await controller.select_option("confirm")
        assert len(collaborators.commits) == 1

    @pytest.mark.asyncio
    async def test_confirm_when_idle(self, controller, collaborators):
        messages = await controller.confirm()
        assert texts(messages) == [prompts.NOTHING_TO_CONFIRM]
        assert collaborators.commits == []

    @pytest.mark.asyncio
    async def test_confirm_before_card(self, controller, collaborators):
        await controller.select_intent("task")
        messages = await controller.confirm()
        assert texts(messages) == [prompts.NOTHING_TO_CONFIRM]
        assert controller.pending_field is PendingField.TITLE
        assert collaborators.commits == []

    @pytest.mark.asyncio
    async def test_cancel_discards_draft(self, controller, collaborators):
        await controller.select_intent("expense")
        messages = await controller.cancel()
        assert texts(messages) == ["Cancel", prompts.CANCELLED]
        assert messages[-1].presentation is Presentation.MENU_PROMPT
        assert controller.draft is None
        assert collaborators.commits == []

    @pytest.mark.asyncio
    async def test_cancel_option_at_card(self, controller, collaborators):
        await fill_task(controller)
        await controller.select_option("cancel")
        assert controller.draft is None
        assert collaborators.commits == []

    @pytest.mark.asyncio
    async def test_commit_failure(self, controller, collaborators):
        collaborators.fail_commits = True
        await fill_task(controller)
        messages = await controller.confirm()
        assert texts(messages) == ["Confirm", prompts.COMMIT_FAILED, prompts.MENU_AGAIN]
        assert controller.draft is None
        assert controller.pending_field is None
        assert controller.committing is False

    @pytest.mark.asyncio
    async def test_second_confirm_does_not_commit_again(self, controller, collaborators):
        await fill_task(controller)
        await controller.confirm()
        await controller.confirm()
        assert len(collaborators.commits) == 1


class TestBusy:
    @pytest.mark.asyncio
    async def test_operations_rejected_while_committing(self):
        gate = asyncio.Event()

        class SlowCollaborators(FakeCollaborators):
            async def commit_task(self, **fields):
                await gate.wait()
                return await super().commit_task(**fields)

        collaborators = SlowCollaborators()
        controller = DialogueController("s", collaborators, pacer=ReplyPacer(0, 0), today=lambda: TODAY)
        await fill_task(controller)

        commit = asyncio.create_task(controller.confirm())
        for _ in range(10):
            if controller.committing:
                break
            await asyncio.sleep(0)
        assert controller.committing

        with pytest.raises(DialogueBusyError):
            await controller.submit_text("another")
        with pytest.raises(DialogueBusyError):
            await controller.confirm()

        gate.set()
        await commit
        assert len(collaborators.commits) == 1
        assert controller.draft is None


class TestPacedReplies:
    @pytest.mark.asyncio
    async def test_delays_do_not_change_outcome(self, controller, collaborators):
        paced_collaborators = FakeCollaborators()
        paced = DialogueController(
            "paced", paced_collaborators, pacer=ReplyPacer(0.01, 0.01), today=lambda: TODAY
        )

        for dialogue in (controller, paced):
            await fill_task(dialogue)
            assert dialogue.pending_field is PendingField.CONFIRM
            await dialogue.confirm()

        assert texts(paced.transcript) == texts(controller.transcript)
        assert paced_collaborators.commits == collaborators.commits
        assert paced.draft is None and paced.pending_field is None


# ---------------------------------------------------------------------------
# Transcript persistence
# ---------------------------------------------------------------------------

class TestTranscript:
    @pytest.mark.asyncio
    async def test_persisted_in_order(self, controller, collaborators):
        await controller.open()
        await controller.submit_text("I spent $15.50 on lunch")
        await controller.confirm()
        await controller.flush_transcript()

        assert [row[2] for row in collaborators.transcript] == texts(controller.transcript)
        assert collaborators.transcript[0][0] == "session-1"
        assert collaborators.transcript[1][1] == "user"

    @pytest.mark.asyncio
    async def test_failures_are_not_surfaced(self, controller, collaborators):
        collaborators.fail_transcript = True
        messages = await controller.submit_text("I spent $15.50 on lunch")
        await controller.flush_transcript()
        assert messages[-1].presentation is Presentation.CONFIRMATION_CARD
        assert collaborators.transcript == []

    @pytest.mark.asyncio
    async def test_snapshot(self, controller):
        await controller.submit_text("Add my Physics lecture")
        state = controller.snapshot()
        assert state["draft_kind"] == "schedule"
        assert state["pending_field"] == "days"
        assert state["draft"]["subject_name"] == "Physics"
