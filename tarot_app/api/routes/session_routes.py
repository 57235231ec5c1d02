# tarot_app/api/routes/session_routes.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from tarot_app.core.dependencies import get_session_registry
from tarot_app.core.exceptions import PersistenceFailure, SelectionExhaustedError
from tarot_app.core.security import get_current_user_id_from_cookie
from tarot_app.models.tarot_models import CreateSessionRequest, SelectCardRequest
from tarot_app.services.reading_session import ReadingSession, SessionRegistry

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_session(session_id: str, sessions: SessionRegistry) -> ReadingSession:
    session = sessions.get(session_id)
    if not session:
        raise HTTPException(status_code=404, detail="Session not found")
    return session


@router.post("", status_code=201)
async def start_session(
    request: CreateSessionRequest,
    user_id: Optional[str] = Depends(get_current_user_id_from_cookie),
    sessions: SessionRegistry = Depends(get_session_registry),
):
    """Open a draw session; the deck shuffles before cards can be picked."""
    try:
        session = sessions.create(request.category, user_id=user_id or request.user_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return session.to_dict()


@router.get("/{session_id}")
async def get_session(session_id: str, sessions: SessionRegistry = Depends(get_session_registry)):
    return _get_session(session_id, sessions).to_dict()


@router.post("/{session_id}/select")
async def select_card(
    session_id: str,
    request: Optional[SelectCardRequest] = None,
    sessions: SessionRegistry = Depends(get_session_registry),
):
    """
    Pick the next card. The third pick saves the reading and waits for the
    AI interpretation before answering; `readingId` is then set.
    """
    session = _get_session(session_id, sessions)
    touched_index = request.touched_index if request else None
    try:
        drawn = await session.select_next(touched_index=touched_index)
    except PersistenceFailure:
        raise HTTPException(
            status_code=503,
            detail="Could not save the reading. Please draw your cards again.",
        )
    except SelectionExhaustedError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except Exception as e:
        logger.exception(f"Error selecting card for session {session_id}: {e}")
        raise HTTPException(status_code=500, detail="Internal Server Error")
    return {
        "drawn": drawn.model_dump(by_alias=True) if drawn else None,
        "session": session.to_dict(),
    }


@router.post("/{session_id}/reset")
async def reset_session(session_id: str, sessions: SessionRegistry = Depends(get_session_registry)):
    session = _get_session(session_id, sessions)
    session.reset()
    return session.to_dict()
