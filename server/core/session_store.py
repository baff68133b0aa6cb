"""In-process registry of open assistant sessions."""
import logging
import time
from dataclasses import dataclass, field
from typing import Callable
from uuid import uuid4

from core.collaborators import AssistantCollaborators
from core.dialogue import DialogueController
from core.pacing import ReplyPacer

logger = logging.getLogger(__name__)


class SessionNotFoundError(LookupError):
    """No open session with that id."""


class SessionAccessError(PermissionError):
    """The session belongs to another user."""


@dataclass
class Session:
    session_id: str
    user_id: str
    controller: DialogueController
    last_used: float = field(default_factory=time.monotonic)


class SessionStore:
    """
    Maps session ids to their dialogue controller.

    Sessions are independent: each owns its controller, draft and pacer.
    Idle sessions are evicted after ``idle_minutes``; when ``max_sessions``
    is reached the least recently used sessions go first.
    """

    def __init__(
        self,
        collaborators_factory: Callable[[str], AssistantCollaborators],
        *,
        step_delay: float = 0.3,
        menu_delay: float = 0.8,
        assistant_name: str = "OptiPlan AI",
        idle_minutes: int = 60,
        max_sessions: int = 10000,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.collaborators_factory = collaborators_factory
        self.step_delay = step_delay
        self.menu_delay = menu_delay
        self.assistant_name = assistant_name
        self.idle_seconds = idle_minutes * 60
        self.max_sessions = max_sessions
        self.clock = clock
        self._sessions: dict[str, Session] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    async def create(self, user_id: str) -> Session:
        await self.evict_idle()

        session_id = str(uuid4())
        controller = DialogueController(
            session_id,
            self.collaborators_factory(user_id),
            pacer=ReplyPacer(self.step_delay, self.menu_delay),
            assistant_name=self.assistant_name,
        )
        session = Session(session_id, user_id, controller, last_used=self.clock())
        self._sessions[session_id] = session
        logger.info(f"Session {session_id} created for user {user_id}")
        return session

    def get(self, session_id: str, user_id: str) -> Session:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        if session.user_id != user_id:
            raise SessionAccessError(session_id)
        session.last_used = self.clock()
        return session

    async def close(self, session_id: str, user_id: str) -> None:
        session = self.get(session_id, user_id)
        await self._discard(session)
        logger.info(f"Session {session_id} closed")

    async def evict_idle(self) -> int:
        """Drop idle sessions, then the oldest ones while over capacity."""
        now = self.clock()
        stale = [
            session for session in self._sessions.values()
            if now - session.last_used >= self.idle_seconds and not session.controller.committing
        ]
        stale_ids = {session.session_id for session in stale}
        overflow = len(self._sessions) - len(stale) - (self.max_sessions - 1)
        if overflow > 0:
            remaining = sorted(
                (s for s in self._sessions.values() if s.session_id not in stale_ids),
                key=lambda s: s.last_used,
            )
            stale.extend(remaining[:overflow])

        for session in stale:
            await self._discard(session)
        if stale:
            logger.info(f"Evicted {len(stale)} session(s), {len(self._sessions)} open")
        return len(stale)

    async def close_all(self) -> None:
        for session in list(self._sessions.values()):
            await self._discard(session)

    async def _discard(self, session: Session) -> None:
        self._sessions.pop(session.session_id, None)
        session.controller.pacer.skip()
        await session.controller.flush_transcript()
