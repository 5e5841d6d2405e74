"""
Session API endpoints - lobby listing, creation, lookup, deletion, summaries
and the links a sitter sends to the owner.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from ..config import settings
from ..channels.sms import build_sms_link, slot_complete_message
from ..core.day_log import get_or_default_log, is_slot_complete, resolve_current_date, today_local
from ..core.links import build_join_url, share_text
from ..core.session_codes import create_unique_session, normalize_code
from ..models import SessionCreate, SessionList, SessionState, get_time_slot
from ..services.summary import DailySummaryService
from ..storage import SessionStore
from .deps import get_session_store, get_summarizer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sessions", tags=["sessions"])


async def _load_session(store: SessionStore, session_id: str) -> SessionState:
    session = await store.get_session(normalize_code(session_id))
    if session is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found")
    return session


@router.get("", response_model=SessionList)
async def list_sessions(
    active: bool = Query(False, description="Only sessions whose last day hasn't passed"),
    store: SessionStore = Depends(get_session_store),
):
    """List sessions for the lobby, newest first."""
    return SessionList(sessions=await store.list_sessions(active_only=active))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_session(
    payload: SessionCreate,
    store: SessionStore = Depends(get_session_store),
):
    """
    Create a session under a fresh shareable code.

    Returns:
        The assigned id and the join link to share with the owner
    """
    session_id = await create_unique_session(store, payload.sitter_name, payload)
    return {
        "id": session_id,
        "joinUrl": build_join_url(settings.public_base_url, session_id),
    }


@router.get("/{session_id}", response_model=SessionState, response_model_by_alias=True)
async def get_session(
    session_id: str,
    store: SessionStore = Depends(get_session_store),
):
    """Fetch a session by code; codes typed in lowercase still match."""
    return await _load_session(store, session_id)


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_session(
    session_id: str,
    store: SessionStore = Depends(get_session_store),
):
    await store.delete_session(normalize_code(session_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{session_id}/summary")
async def generate_summary(
    session_id: str,
    date: Optional[str] = Query(None, description="YYYY-MM-DD; takes precedence over day"),
    day: int = Query(0, ge=0, description="0-based day index, used when date is omitted"),
    store: SessionStore = Depends(get_session_store),
    summarizer: DailySummaryService = Depends(get_summarizer),
):
    """
    Generate the AI summary for one day.

    The text is returned, not stored; the client saves it through its sync engine.
    """
    session = await _load_session(store, session_id)
    date_str = date or resolve_current_date(session, day)
    log = get_or_default_log(session, date_str)
    return {"date": date_str, "summary": await summarizer.generate(session, log)}


@router.get("/{session_id}/share")
async def get_share_info(
    session_id: str,
    store: SessionStore = Depends(get_session_store),
):
    """Join link and invitation text for the owner."""
    session = await _load_session(store, session_id)
    return {
        "id": session.id,
        "joinUrl": build_join_url(settings.public_base_url, session.id),
        "shareText": share_text(session.id, session.dogs),
    }


@router.get("/{session_id}/slots/{slot_id}/sms-link")
async def get_slot_sms_link(
    session_id: str,
    slot_id: str,
    date: Optional[str] = Query(None, description="YYYY-MM-DD; defaults to today"),
    store: SessionStore = Depends(get_session_store),
):
    """
    Prefilled ``sms:`` link telling the owner a time slot is done.

    ``smsLink`` is null until every task in the slot is complete or when no
    owner phone number is on file.
    """
    slot = get_time_slot(slot_id)
    if slot is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown time slot: {slot_id}")

    session = await _load_session(store, session_id)
    log = get_or_default_log(session, date or today_local())
    complete = is_slot_complete(log, slot.id, session.dogs)
    message = slot_complete_message(slot, session.dogs)
    owner_phone = session.emergency_contacts.owner.phone
    return {
        "complete": complete,
        "message": message,
        "smsLink": build_sms_link(owner_phone, message) if complete and owner_phone else None,
    }
