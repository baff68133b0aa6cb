"""
Shared singleton dependencies for the application.

The session store lives for the whole process and is created once at
startup. Collaborators are per-user wrappers around the shared Supabase
client and are built on demand.
"""
import logging
from typing import Optional

from config.settings import settings
from core.session_store import SessionStore
from database.client import get_supabase
from database.collaborators import SupabaseCollaborators

logger = logging.getLogger(__name__)

# Module-level singleton — initialized once via init_dependencies()
_session_store: Optional[SessionStore] = None


def build_collaborators(user_id: str) -> SupabaseCollaborators:
    return SupabaseCollaborators(user_id, get_supabase())


def init_dependencies() -> None:
    """
    Initialize all shared singletons. Called once at application startup.
    """
    global _session_store

    logger.info("Initializing shared dependencies...")
    _session_store = SessionStore(
        build_collaborators,
        step_delay=settings.REPLY_STEP_DELAY_SECONDS,
        menu_delay=settings.MENU_REDISPLAY_DELAY_SECONDS,
        assistant_name=settings.ASSISTANT_NAME,
        idle_minutes=settings.SESSION_IDLE_MINUTES,
        max_sessions=settings.MAX_SESSIONS,
    )
    logger.info("Dependencies initialized")


async def shutdown_dependencies() -> None:
    """Close open sessions so their transcripts are flushed."""
    global _session_store
    if _session_store:
        await _session_store.close_all()
        logger.info("Session store closed")
        _session_store = None


def get_session_store() -> SessionStore:
    if _session_store is None:
        raise RuntimeError("Dependencies not initialized. Call init_dependencies() first.")
    return _session_store


def get_collaborators_factory():
    """Per-user collaborators, used by the history routes. Overridable in tests."""
    return build_collaborators
