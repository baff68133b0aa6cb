"""Dialogue controller: the drafting state machine shared by every surface.

States: idle (no draft, main menu) → one draft variant × pending slot →
confirm → idle. A draft is started either from the main menu (guided
wizard) or from one free-text utterance (classified, extracted, then the
wizard continues from the first missing slot). Both paths end in the same
confirmation card and the same single commit.

The controller is not re-entrant: an operation that arrives while another
is running (most importantly while a commit is in flight) is rejected with
``DialogueBusyError``.
"""
import asyncio
import datetime as dt
import logging
from collections import deque
from typing import Awaitable, Callable, Optional

from core import prompts
from core.collaborators import AssistantCollaborators
from core.confirmation import CommitDispatcher, format_value, pick_color, render_confirmation_card
from core.extractors import (
    DEFAULT_EXPENSE_TITLE,
    ROUTE_LABELS,
    extract_amount,
    extract_category,
    extract_duration_hours,
    extract_expense_title,
    extract_importance,
    extract_relative_date,
    extract_study_subject,
    extract_study_title,
    extract_subject_name,
    extract_time,
    extract_weekdays,
)
from core.field_values import FieldValidationError, parse_field_value
from core.intent_classifier import classify_intent
from core.pacing import ReplyPacer
from models.draft import (
    BaseDraft,
    DRAFT_TYPES,
    DraftKind,
    ExpenseDraft,
    PendingField,
    ScheduledClassDraft,
    StudyTaskDraft,
    Weekday,
)
from models.intent import Intent, IntentKind, SmallTalkTopic
from models.message import Message, MenuOption, MessagePayload, Presentation, Sender
from models.schedule import ScheduleEntry

logger = logging.getLogger(__name__)


class DialogueBusyError(RuntimeError):
    """The session is still processing a previous operation."""


class DialogueController:
    """One conversation: transcript, at most one draft, one pending slot."""

    def __init__(
        self,
        session_id: str,
        collaborators: AssistantCollaborators,
        pacer: Optional[ReplyPacer] = None,
        today: Callable[[], dt.date] = dt.date.today,
        assistant_name: str = "OptiPlan AI",
    ):
        self.session_id = session_id
        self.collaborators = collaborators
        self.pacer = pacer or ReplyPacer()
        self.today = today
        self.assistant_name = assistant_name
        self.dispatcher = CommitDispatcher(collaborators, today=today)

        self.transcript: list[Message] = []
        self.draft: Optional[BaseDraft] = None
        self.pending_field: Optional[PendingField] = None
        self.committing = False

        self._opened = False
        self._turn: list[Message] = []
        self._lock = asyncio.Lock()
        self._outbox: deque[Message] = deque()
        self._drain_task: Optional[asyncio.Task] = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def is_idle(self) -> bool:
        return self.draft is None

    def snapshot(self) -> dict:
        return {
            "draft_kind": self.draft.kind.value if self.draft else None,
            "pending_field": self.pending_field.value if self.pending_field else None,
            "draft": self.draft.model_dump(mode="json") if self.draft else None,
        }

    # ------------------------------------------------------------------
    # Operations (one call = one turn; returns the messages it emitted)
    # ------------------------------------------------------------------

    async def open(self) -> list[Message]:
        """Welcome + main menu, once per session."""
        return await self._run_turn(self._open)

    async def select_intent(self, value: str) -> list[Message]:
        """Main-menu click: start the guided wizard for that record type."""
        return await self._run_turn(self._select_intent, value)

    async def submit_text(self, text: str) -> list[Message]:
        """Typed input: answers the pending slot, otherwise is classified."""
        return await self._run_turn(self._submit_text, text)

    async def select_option(self, value: str) -> list[Message]:
        """Choice-list click (categories, days, durations, card actions...)"""
        return await self._run_turn(self._select_option, value)

    async def confirm(self) -> list[Message]:
        return await self._run_turn(self._confirm)

    async def cancel(self) -> list[Message]:
        return await self._run_turn(self._cancel)

    async def _run_turn(self, step: Callable[..., Awaitable[None]], *args) -> list[Message]:
        if self._lock.locked():
            raise DialogueBusyError(f"Session {self.session_id} is busy")
        async with self._lock:
            self._turn = []
            await step(*args)
            return list(self._turn)

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    async def _open(self) -> None:
        if self._opened:
            return
        self._opened = True
        await self.pacer.pause_step()
        self._show_main_menu(prompts.WELCOME.format(assistant_name=self.assistant_name))

    async def _select_intent(self, value: str) -> None:
        try:
            kind = DraftKind(value)
        except ValueError:
            logger.info(f"Unknown menu choice {value!r}")
            self._show_main_menu(prompts.UNKNOWN_MENU_CHOICE)
            return

        self._emit_user(prompts.MENU_LABELS[kind.value])
        self._replace_draft(await self._new_draft(kind))
        await self._advance()

    async def _submit_text(self, text: str) -> None:
        text = text.strip()
        if not text:
            return
        if self.draft is not None and self.pending_field not in (None, PendingField.CONFIRM):
            await self._fill_pending(text)
        else:
            await self._absorb(text)

    async def _select_option(self, value: str) -> None:
        if self.pending_field is PendingField.CONFIRM:
            if value == "confirm":
                await self._confirm()
            elif value == "cancel":
                await self._cancel()
            else:
                await self._prompt_confirmation()
            return
        if self.draft is not None and self.pending_field is not None:
            await self._fill_pending(value)
            return
        await self._select_intent(value)

    async def _confirm(self) -> None:
        if self.draft is None or self.pending_field is not PendingField.CONFIRM:
            self._emit_assistant(prompts.NOTHING_TO_CONFIRM)
            return

        draft = self.draft
        self._emit_user("Confirm")
        self.committing = True
        try:
            outcome = await self.dispatcher.commit(draft)
        finally:
            self.committing = False
            # Commit is terminal for the draft either way
            self.draft = None
            self.pending_field = None

        self._emit_assistant(outcome.message)
        await self.pacer.pause_before_menu()
        self._show_main_menu(prompts.MENU_AGAIN)

    async def _cancel(self) -> None:
        self._emit_user("Cancel")
        if self.draft is not None:
            logger.info(f"Session {self.session_id}: {self.draft.kind.value} draft cancelled")
        self.draft = None
        self.pending_field = None
        self._show_main_menu(prompts.CANCELLED)

    # ------------------------------------------------------------------
    # Guided wizard
    # ------------------------------------------------------------------

    async def _new_draft(self, kind: DraftKind) -> BaseDraft:
        if kind is DraftKind.EXPENSE:
            return ExpenseDraft(date=self.today())
        if kind is DraftKind.SCHEDULED_CLASS:
            return ScheduledClassDraft(color=pick_color(await self._known_colors()))
        return DRAFT_TYPES[kind]()

    def _replace_draft(self, draft: BaseDraft) -> None:
        if self.draft is not None:
            logger.info(
                f"Session {self.session_id}: discarding incomplete "
                f"{self.draft.kind.value} draft for a new {draft.kind.value} draft"
            )
        self.draft = draft
        self.pending_field = None

    async def _fill_pending(self, raw: str) -> None:
        field = self.pending_field
        self._emit_user(self._echo(field, raw))
        try:
            value = parse_field_value(field, raw, self.today())
        except FieldValidationError as e:
            logger.info(f"Session {self.session_id}: rejected {field.value} answer {raw!r}")
            self._emit_assistant(e.message)
            await self._prompt_for(field)
            return

        update = {field.value: value}
        if field is PendingField.TITLE and self.draft.kind in (DraftKind.EXPENSE, DraftKind.TASK):
            update["description"] = value
        self.draft = self.draft.model_copy(update=update)
        await self._advance()

    async def _advance(self) -> None:
        """Move to the first empty slot, or to the confirmation card."""
        await self.pacer.pause_step()
        next_field = self.draft.first_missing_slot()
        if next_field is None:
            self._set_pending(PendingField.CONFIRM)
            self._emit(render_confirmation_card(self.draft))
        else:
            self._set_pending(next_field)
            await self._prompt_for(next_field)

    def _set_pending(self, field: PendingField) -> None:
        if not self.draft.owns(field):
            raise ValueError(f"{field.value!r} is not a slot of a {self.draft.kind.value} draft")
        logger.info(f"Session {self.session_id}: {self.draft.kind.value} → {field.value}")
        self.pending_field = field

    async def _prompt_for(self, field: PendingField) -> None:
        prompt = prompts.SLOT_PROMPTS[(self.draft.kind, field)]
        options = list(prompt.options)
        if self.draft.kind is DraftKind.STUDY_TASK and field is PendingField.SUBJECT:
            options = await self._subject_options()
        self._emit_assistant(
            prompt.text,
            prompt.presentation,
            MessagePayload(
                options=options,
                multi_select=prompt.multi_select,
                input_field=prompt.input_field,
            ),
        )

    async def _prompt_confirmation(self) -> None:
        self._emit(render_confirmation_card(self.draft))

    async def _subject_options(self) -> list[MenuOption]:
        subjects = sorted(await self._known_subjects())
        if not subjects:
            return [prompts.GENERAL_SUBJECT]
        return [MenuOption(label=subject, value=subject) for subject in subjects]

    def _echo(self, field: PendingField, raw: str) -> str:
        """What the user's answer reads as in the transcript."""
        if field is PendingField.DAYS:
            try:
                return format_value(parse_field_value(field, raw, self.today()))
            except FieldValidationError:
                return raw
        prompt = prompts.SLOT_PROMPTS.get((self.draft.kind, field))
        if prompt:
            for option in prompt.options:
                if option.value == raw:
                    return option.label
        return raw

    # ------------------------------------------------------------------
    # Free-text absorption
    # ------------------------------------------------------------------

    async def _absorb(self, text: str) -> None:
        self._emit_user(text)
        await self.pacer.pause_step()
        intent = classify_intent(text)
        logger.info(f"Session {self.session_id}: free text classified as {intent.kind.value}")

        if intent.kind is IntentKind.NAVIGATION:
            self._navigate(intent)
        elif intent.kind is IntentKind.SMALL_TALK:
            await self._small_talk(intent)
        else:
            builders = {
                IntentKind.EXPENSE: self._expense_from_text,
                IntentKind.SCHEDULED_CLASS: self._scheduled_class_from_text,
                IntentKind.STUDY_TASK: self._study_task_from_text,
            }
            draft, heading = await builders[intent.kind](text)
            self._replace_draft(draft)
            await self._continue_absorbed(heading)

    async def _continue_absorbed(self, heading: str) -> None:
        next_field = self.draft.first_missing_slot()
        if next_field is None:
            self._set_pending(PendingField.CONFIRM)
            self._emit(render_confirmation_card(self.draft, heading=heading))
            return
        self._emit_assistant(heading)
        self._set_pending(next_field)
        await self.pacer.pause_step()
        await self._prompt_for(next_field)

    async def _expense_from_text(self, text: str) -> tuple[BaseDraft, str]:
        amount = extract_amount(text)
        category = extract_category(text)
        title = extract_expense_title(text)
        if amount is None and title == DEFAULT_EXPENSE_TITLE:
            title = None
        draft = ExpenseDraft(
            title=title,
            amount=amount,
            category=category,
            date=extract_relative_date(text, self.today()),
            description=title,
        )
        if draft.is_complete():
            return draft, prompts.EXPENSE_COMPLETE
        return draft, prompts.EXPENSE_PARTIAL.format(what=title or category.value)

    async def _scheduled_class_from_text(self, text: str) -> tuple[BaseDraft, str]:
        draft = ScheduledClassDraft(
            subject_name=extract_subject_name(text),
            start_time=extract_time(text),
            duration_hours=extract_duration_hours(text),
            days=extract_weekdays(text),
            color=pick_color(await self._known_colors()),
        )
        if draft.is_complete():
            heading = prompts.SCHEDULE_COMPLETE.format(
                subject=draft.subject_name,
                days=format_value(draft.days),
                start=draft.start_time,
                end=draft.end_time,
            )
        elif draft.subject_name:
            heading = prompts.SCHEDULE_PARTIAL_NAMED.format(subject=draft.subject_name)
        else:
            heading = prompts.SCHEDULE_PARTIAL
        return draft, heading

    async def _study_task_from_text(self, text: str) -> tuple[BaseDraft, str]:
        title = extract_study_title(text)
        draft = StudyTaskDraft(
            title=title,
            subject=extract_study_subject(text, sorted(await self._known_subjects())),
            date=extract_relative_date(text, self.today()),
            importance=extract_importance(text),
        )
        if draft.is_complete():
            return draft, prompts.STUDY_COMPLETE
        if title:
            return draft, prompts.STUDY_PARTIAL_TITLED.format(title=title)
        return draft, prompts.STUDY_PARTIAL

    def _navigate(self, intent: Intent) -> None:
        label = ROUTE_LABELS.get(intent.route, "that page")
        try:
            self.collaborators.navigate(intent.route)
        except Exception as e:
            logger.warning(f"Session {self.session_id}: navigation to {intent.route} failed: {e}")
        self._emit_assistant(
            prompts.NAVIGATING.format(label=label),
            payload=MessagePayload(route=intent.route),
        )

    async def _small_talk(self, intent: Intent) -> None:
        if intent.topic is SmallTalkTopic.GREETING:
            reply = prompts.GREETING_REPLY.format(assistant_name=self.assistant_name)
        elif intent.topic is SmallTalkTopic.HELP:
            reply = prompts.HELP_REPLY
        elif intent.topic is SmallTalkTopic.THANKS:
            reply = prompts.THANKS_REPLY
        elif intent.topic is SmallTalkTopic.TODAYS_CLASSES:
            reply = await self._todays_classes_reply()
        else:
            reply = prompts.FALLBACK_REPLY
        self._emit_assistant(reply)

    async def _todays_classes_reply(self) -> str:
        weekday = Weekday.of(self.today())
        todays = sorted(
            (entry for entry in await self._known_schedules() if weekday in entry.days),
            key=lambda entry: entry.start_time,
        )
        if not todays:
            return prompts.NO_CLASSES_REPLY.format(day=weekday.short)
        lines = "\n".join(f"- **{e.subject_name}** at {e.start_time}–{e.end_time}" for e in todays)
        return prompts.TODAYS_CLASSES_REPLY.format(day=weekday.short, lines=lines)

    # ------------------------------------------------------------------
    # Read-only queries (a failed lookup degrades to "nothing known")
    # ------------------------------------------------------------------

    async def _known_schedules(self) -> list[ScheduleEntry]:
        try:
            return await self.collaborators.list_known_schedules()
        except Exception as e:
            logger.warning(f"Could not load schedules: {e}")
            return []

    async def _known_subjects(self) -> set[str]:
        try:
            return await self.collaborators.list_known_class_subjects()
        except Exception as e:
            logger.warning(f"Could not load class subjects: {e}")
            return set()

    async def _known_colors(self) -> set[str]:
        try:
            return await self.collaborators.list_known_schedule_colors()
        except Exception as e:
            logger.warning(f"Could not load schedule colors: {e}")
            return set()

    # ------------------------------------------------------------------
    # Transcript
    # ------------------------------------------------------------------

    def _show_main_menu(self, text: str) -> None:
        self._emit_assistant(text, Presentation.MENU_PROMPT, MessagePayload(options=prompts.MAIN_MENU))

    def _emit_user(self, text: str) -> None:
        self._emit(Message(sender=Sender.USER, text=text))

    def _emit_assistant(
        self,
        text: str,
        presentation: Presentation = Presentation.PLAIN_TEXT,
        payload: Optional[MessagePayload] = None,
    ) -> None:
        self._emit(Message(
            sender=Sender.ASSISTANT,
            text=text,
            presentation=presentation,
            payload=payload or MessagePayload(),
        ))

    def _emit(self, message: Message) -> None:
        self.transcript.append(message)
        self._turn.append(message)
        self._outbox.append(message)
        if self._drain_task is None or self._drain_task.done():
            self._drain_task = asyncio.create_task(self._drain_outbox())

    async def _drain_outbox(self) -> None:
        """Persist queued messages in order; failures are logged and dropped."""
        while self._outbox:
            message = self._outbox.popleft()
            try:
                await self.collaborators.append_transcript_message(
                    self.session_id,
                    message.sender,
                    message.text,
                    message.presentation,
                )
            except Exception as e:
                logger.warning(f"Session {self.session_id}: transcript append failed: {e}")

    async def flush_transcript(self) -> None:
        """Wait until every queued message has been handed to the store."""
        while self._drain_task is not None and not self._drain_task.done():
            await self._drain_task
