"""Assistant API routes: one endpoint per dialogue operation."""
from fastapi import APIRouter, HTTPException, Depends, status
from typing import Awaitable, Callable
import logging

from api.middleware.auth_middleware import get_current_user_id
from api.schemas.request_schemas import (
    MenuSelectionRequest,
    OptionSelectionRequest,
    TextInputRequest,
)
from api.schemas.response_schemas import (
    DialogueState,
    HistoryMessage,
    HistoryResponse,
    SessionResponse,
    TurnResponse,
)
from core.dependencies import get_collaborators_factory, get_session_store
from core.dialogue import DialogueBusyError, DialogueController
from core.session_store import SessionAccessError, SessionNotFoundError, SessionStore, Session
from models.message import Message

logger = logging.getLogger(__name__)
router = APIRouter()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _lookup(store: SessionStore, session_id: str, user_id: str) -> Session:
    try:
        return store.get(session_id, user_id)
    except SessionNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found")
    except SessionAccessError:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have access to this session",
        )


def _turn(session_id: str, controller: DialogueController, messages: list[Message]) -> TurnResponse:
    return TurnResponse(
        session_id=session_id,
        state=DialogueState(**controller.snapshot()),
        messages=messages,
    )


async def _run_operation(
    store: SessionStore,
    session_id: str,
    user_id: str,
    operation: Callable[[DialogueController], Awaitable[list[Message]]],
) -> TurnResponse:
    try:
        session = _lookup(store, session_id, user_id)
        messages = await operation(session.controller)
        return _turn(session_id, session.controller, messages)
    except HTTPException:
        raise
    except DialogueBusyError:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="The assistant is still working on your previous request",
        )
    except Exception as e:
        logger.error(f"Error processing session {session_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal server error")


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------

@router.post("/sessions", response_model=TurnResponse, status_code=status.HTTP_201_CREATED)
async def create_session(
    user_id: str = Depends(get_current_user_id),
    store: SessionStore = Depends(get_session_store),
):
    """Open a session: welcome message and main menu."""
    try:
        session = await store.create(user_id)
        messages = await session.controller.open()
        return _turn(session.session_id, session.controller, messages)
    except Exception as e:
        logger.error(f"Error creating session: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/sessions/{session_id}", response_model=SessionResponse)
async def get_session(
    session_id: str,
    user_id: str = Depends(get_current_user_id),
    store: SessionStore = Depends(get_session_store),
):
    """Current state plus the whole transcript."""
    session = _lookup(store, session_id, user_id)
    controller = session.controller
    return SessionResponse(
        session_id=session_id,
        state=DialogueState(**controller.snapshot()),
        messages=list(controller.transcript),
    )


@router.delete("/sessions/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def close_session(
    session_id: str,
    user_id: str = Depends(get_current_user_id),
    store: SessionStore = Depends(get_session_store),
):
    _lookup(store, session_id, user_id)
    await store.close(session_id, user_id)


# ---------------------------------------------------------------------------
# Dialogue operations
# ---------------------------------------------------------------------------

@router.post("/sessions/{session_id}/menu", response_model=TurnResponse)
async def select_intent(
    session_id: str,
    request: MenuSelectionRequest,
    user_id: str = Depends(get_current_user_id),
    store: SessionStore = Depends(get_session_store),
):
    return await _run_operation(
        store, session_id, user_id, lambda c: c.select_intent(request.value)
    )


@router.post("/sessions/{session_id}/input", response_model=TurnResponse)
async def submit_text(
    session_id: str,
    request: TextInputRequest,
    user_id: str = Depends(get_current_user_id),
    store: SessionStore = Depends(get_session_store),
):
    return await _run_operation(
        store, session_id, user_id, lambda c: c.submit_text(request.text)
    )


@router.post("/sessions/{session_id}/option", response_model=TurnResponse)
async def select_option(
    session_id: str,
    request: OptionSelectionRequest,
    user_id: str = Depends(get_current_user_id),
    store: SessionStore = Depends(get_session_store),
):
    return await _run_operation(
        store, session_id, user_id, lambda c: c.select_option(request.value)
    )


@router.post("/sessions/{session_id}/confirm", response_model=TurnResponse)
async def confirm(
    session_id: str,
    user_id: str = Depends(get_current_user_id),
    store: SessionStore = Depends(get_session_store),
):
    return await _run_operation(store, session_id, user_id, lambda c: c.confirm())


@router.post("/sessions/{session_id}/cancel", response_model=TurnResponse)
async def cancel(
    session_id: str,
    user_id: str = Depends(get_current_user_id),
    store: SessionStore = Depends(get_session_store),
):
    return await _run_operation(store, session_id, user_id, lambda c: c.cancel())


# ---------------------------------------------------------------------------
# Persisted chat history
# ---------------------------------------------------------------------------

@router.get("/history", response_model=HistoryResponse)
async def get_history(
    user_id: str = Depends(get_current_user_id),
    collaborators_factory=Depends(get_collaborators_factory),
):
    """Persisted messages for the caller, oldest first."""
    try:
        rows = await collaborators_factory(user_id).load_history()
        return HistoryResponse(
            messages=[
                HistoryMessage(
                    id=str(row["id"]),
                    sender=row["sender"],
                    text=row["text"],
                    component_type=row.get("component_type"),
                    created_at=row.get("created_at"),
                )
                for row in rows
            ]
        )
    except Exception as e:
        logger.error(f"Error loading chat history: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to load chat history")


@router.delete("/history", status_code=status.HTTP_204_NO_CONTENT)
async def clear_history(
    user_id: str = Depends(get_current_user_id),
    collaborators_factory=Depends(get_collaborators_factory),
):
    try:
        await collaborators_factory(user_id).clear_history()
    except Exception as e:
        logger.error(f"Error clearing chat history: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to clear chat history")
