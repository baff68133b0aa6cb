"""Assistant copy, menus and per-slot prompts."""
from typing import Iterable, NamedTuple, Optional

from models.draft import Category, DraftKind, Importance, PendingField, Weekday
from models.message import InputField, MenuOption, Presentation


MAIN_MENU: list[MenuOption] = [
    MenuOption(label="Add Expense", value=DraftKind.EXPENSE.value, description="Track spending"),
    MenuOption(label="Schedule Class", value=DraftKind.SCHEDULED_CLASS.value, description="Add to timetable"),
    MenuOption(label="Create Task", value=DraftKind.TASK.value, description="Add a to-do"),
    MenuOption(label="Study Task", value=DraftKind.STUDY_TASK.value, description="Homework / revision"),
]

MENU_LABELS: dict[str, str] = {option.value: option.label for option in MAIN_MENU}

CATEGORY_OPTIONS: list[MenuOption] = [MenuOption(label=c.value, value=c.value) for c in Category]

DAY_OPTIONS: list[MenuOption] = [MenuOption(label=day.short, value=str(day.value)) for day in Weekday]

IMPORTANCE_OPTIONS: list[MenuOption] = [
    MenuOption(label="Low", value=str(Importance.LOW.value), description="Not urgent"),
    MenuOption(label="Medium", value=str(Importance.MEDIUM.value), description="Normal priority"),
    MenuOption(label="High", value=str(Importance.HIGH.value), description="Urgent / important"),
]

DURATION_OPTIONS: list[MenuOption] = [
    MenuOption(label="30m", value="0.5"),
    MenuOption(label="1h", value="1"),
    MenuOption(label="1.5h", value="1.5"),
    MenuOption(label="2h", value="2"),
    MenuOption(label="3h", value="3"),
]

GENERAL_SUBJECT = MenuOption(label="General", value="General", description="No subjects yet")

CONFIRM_ACTIONS: list[MenuOption] = [
    MenuOption(label="Confirm", value="confirm"),
    MenuOption(label="Cancel", value="cancel"),
]


class SlotPrompt(NamedTuple):
    text: str
    presentation: Presentation
    input_field: Optional[InputField] = None
    options: tuple[MenuOption, ...] = ()
    multi_select: bool = False


def _ask(field: PendingField, text: str, kind: str, placeholder: str) -> SlotPrompt:
    return SlotPrompt(text, Presentation.INPUT_PROMPT, InputField(field=field, type=kind, placeholder=placeholder))


def _choose(text: str, options: Iterable[MenuOption], multi_select: bool = False) -> SlotPrompt:
    return SlotPrompt(text, Presentation.CHOICE_PROMPT, options=tuple(options), multi_select=multi_select)


# Subject choices for study tasks depend on the user's timetable; the
# controller fills them in at prompt time.
SLOT_PROMPTS: dict[tuple[DraftKind, PendingField], SlotPrompt] = {
    (DraftKind.EXPENSE, PendingField.TITLE): _ask(PendingField.TITLE, "What did you spend on?", "text", "e.g. Burger, Uber ride..."),
    (DraftKind.EXPENSE, PendingField.CATEGORY): _choose("Which category?", CATEGORY_OPTIONS),
    (DraftKind.EXPENSE, PendingField.AMOUNT): _ask(PendingField.AMOUNT, "How much?", "number", "e.g. 15.50"),
    (DraftKind.SCHEDULED_CLASS, PendingField.SUBJECT_NAME): _ask(PendingField.SUBJECT_NAME, "What's the subject/class name?", "text", "e.g. Calculus..."),
    (DraftKind.SCHEDULED_CLASS, PendingField.DAYS): _choose("Which days?", DAY_OPTIONS, multi_select=True),
    (DraftKind.SCHEDULED_CLASS, PendingField.START_TIME): _ask(PendingField.START_TIME, "Start time?", "time", "e.g. 09:00"),
    (DraftKind.SCHEDULED_CLASS, PendingField.DURATION_HOURS): _choose("How long?", DURATION_OPTIONS),
    (DraftKind.TASK, PendingField.TITLE): _ask(PendingField.TITLE, "What's the task?", "text", "e.g. Buy groceries..."),
    (DraftKind.TASK, PendingField.DATE): _ask(PendingField.DATE, "When is it due?", "date", "YYYY-MM-DD"),
    (DraftKind.TASK, PendingField.IMPORTANCE): _choose("Importance?", IMPORTANCE_OPTIONS),
    (DraftKind.STUDY_TASK, PendingField.TITLE): _ask(PendingField.TITLE, "Assignment/task title?", "text", "e.g. Chapter 5 revision..."),
    (DraftKind.STUDY_TASK, PendingField.SUBJECT): _choose("Which subject?", ()),
    (DraftKind.STUDY_TASK, PendingField.DATE): _ask(PendingField.DATE, "Due date?", "date", "YYYY-MM-DD"),
    (DraftKind.STUDY_TASK, PendingField.IMPORTANCE): _choose("Importance?", IMPORTANCE_OPTIONS),
}

CONFIRMATION_HEADINGS: dict[DraftKind, str] = {
    DraftKind.EXPENSE: "Here's what I'll add:",
    DraftKind.SCHEDULED_CLASS: "Here's the schedule:",
    DraftKind.TASK: "Here's the task:",
    DraftKind.STUDY_TASK: "Here's the study task:",
}

FIELD_LABELS: dict[str, str] = {
    "title": "Title",
    "amount": "Amount",
    "category": "Category",
    "date": "Date",
    "description": "Description",
    "subject_name": "Subject",
    "days": "Days",
    "start_time": "Start",
    "duration_hours": "Duration (h)",
    "end_time": "End",
    "color": "Color",
    "importance": "Importance",
    "subject": "Subject",
}

CORRECTIONS: dict[PendingField, str] = {
    PendingField.TITLE: "Please type a title.",
    PendingField.SUBJECT_NAME: "Please type the subject name.",
    PendingField.SUBJECT: "Please pick or type a subject.",
    PendingField.CATEGORY: "Pick one of the categories below.",
    PendingField.AMOUNT: "Enter a valid number like **15** or **15.50**.",
    PendingField.DAYS: "Pick at least one day.",
    PendingField.START_TIME: "Enter a time like **09:00** or **2pm**.",
    PendingField.DURATION_HOURS: "Pick how long the class lasts.",
    PendingField.DATE: "Enter a date like **2025-03-14** or **next Friday**.",
    PendingField.IMPORTANCE: "Pick Low, Medium or High.",
}

# ---------------------------------------------------------------------------
# Conversation copy
# ---------------------------------------------------------------------------

WELCOME = "Hi! I'm your **{assistant_name}**. What would you like to do?"
MENU_AGAIN = "What else would you like to do?"
CANCELLED = "No problem! What would you like to do instead?"
NOTHING_TO_CONFIRM = "There's nothing to confirm right now."
UNKNOWN_MENU_CHOICE = "Pick one of the options below."
COMMIT_FAILED = "Something went wrong, please try again."

GREETING_REPLY = (
    "Hey there! I'm your **{assistant_name}**. Use the buttons below or just type naturally "
    "— I can handle expenses, schedules, study tasks, and more!"
)
HELP_REPLY = (
    "I can help with:\n"
    '- **Expenses** — *"$15 on lunch"*\n'
    '- **Schedule classes** — *"Calculus on Monday at 12:30"*\n'
    '- **Study tasks** — *"Math assignment due tomorrow"*\n'
    '- **Navigate** — *"Show my schedule"*\n\n'
    "Or use the buttons below!"
)
THANKS_REPLY = "You're welcome! Let me know if you need anything else."
FALLBACK_REPLY = (
    "I'm not sure what you'd like to do. Try the buttons below, or type something like "
    '*"$15 on lunch"* or *"Add my Calculus class on Monday at 2pm"*.'
)
TODAYS_CLASSES_REPLY = "Your classes today ({day}):\n\n{lines}"
NO_CLASSES_REPLY = "No classes scheduled for today ({day})."
NAVIGATING = "Taking you to **{label}** now!"

# Acknowledgements when free text starts a draft
EXPENSE_COMPLETE = "I'll add this expense:"
EXPENSE_PARTIAL = "I can log that **{what}** expense."
SCHEDULE_COMPLETE = "I'll add **{subject}** on **{days}** at **{start}–{end}**:"
SCHEDULE_PARTIAL_NAMED = "I'll schedule **{subject}**."
SCHEDULE_PARTIAL = "I can add that to your schedule!"
STUDY_COMPLETE = "I'll create this study task:"
STUDY_PARTIAL_TITLED = "Let's set up **{title}**."
STUDY_PARTIAL = "Let's set up that study task."

# Commit results
EXPENSE_SAVED = "Done! **${amount}** added to **{category}**."
SCHEDULE_SAVED = "Done! **{subject}** added to your timetable."
TASK_SAVED = "Done! Task **{title}** created."
STUDY_SAVED = "Done! **{title}** for **{subject}** created."
