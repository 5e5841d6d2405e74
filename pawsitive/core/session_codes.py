"""
Session Codes - short shareable session ids such as ``SARAH-42``.

Uniqueness is checked against the store once, at creation time.
"""

import logging
import random
import re
import time
from typing import Optional, Union

from ..models import EmergencyContact, EmergencyContacts, SessionCreate, SessionState
from ..storage.session_store import SessionStore

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 5
PREFIX_MAX_LENGTH = 10
FALLBACK_PREFIX = "SITTER"

_NON_LETTERS = re.compile(r"[^a-zA-Z]")


def sitter_prefix(sitter_name: str) -> str:
    """First word of the name, letters only, uppercased, at most 10 characters."""
    words = sitter_name.split()
    first = words[0] if words else ""
    prefix = _NON_LETTERS.sub("", first)[:PREFIX_MAX_LENGTH].upper()
    return prefix or FALLBACK_PREFIX


def generate_candidate(sitter_name: str, rng: Optional[random.Random] = None) -> str:
    """Build ``<PREFIX>-<NN>`` with NN drawn uniformly from 10..99."""
    rng = rng or random
    return f"{sitter_prefix(sitter_name)}-{rng.randint(10, 99)}"


def normalize_code(code: str) -> str:
    """Canonical form of a code typed into the lobby."""
    return code.strip().upper()


def build_session(session_id: str, payload: SessionCreate, created_at: Optional[int] = None) -> SessionState:
    """
    Turn a creation payload into the initial session document.

    Blank dog names become ``Dog N`` and blank contact names get a role label.
    """
    dogs = [
        dog.model_copy(update={"name": dog.name.strip() or f"Dog {index + 1}"})
        for index, dog in enumerate(payload.dogs)
    ]
    contacts = payload.emergency_contacts
    emergency_contacts = EmergencyContacts(
        owner=EmergencyContact(name=contacts.owner.name or "Owner", phone=contacts.owner.phone),
        secondary=EmergencyContact(name=contacts.secondary.name or "Secondary", phone=contacts.secondary.phone),
        vet=EmergencyContact(name=contacts.vet.name or "Vet", phone=contacts.vet.phone),
    )
    return SessionState(
        id=session_id,
        sitter_name=payload.sitter_name,
        start_date=payload.start_date,
        total_days=payload.total_days,
        dogs=dogs,
        emergency_contacts=emergency_contacts,
        created_at=created_at if created_at is not None else int(time.time() * 1000),
        logs={},
    )


async def create_unique_session(
    store: SessionStore,
    sitter_name: str,
    payload: Union[SessionCreate, dict],
    rng: Optional[random.Random] = None,
) -> str:
    """
    Pick a free session code and persist the session under it.

    Up to five candidates are checked against the store. If all are taken an
    extra random digit is appended to the last one; that id is not re-checked.

    Returns:
        str: The id the session was stored under

    Raises:
        StoreError: If the existence check or the write fails; nothing is stored
    """
    rng = rng or random
    if isinstance(payload, dict):
        payload = SessionCreate.model_validate(payload)

    candidate = generate_candidate(sitter_name, rng)
    is_unique = False
    for attempt in range(MAX_ATTEMPTS):
        if not await store.session_exists(candidate):
            is_unique = True
            break
        logger.info(f"Code {candidate} taken, retrying (attempt {attempt + 1}/{MAX_ATTEMPTS})")
        if attempt < MAX_ATTEMPTS - 1:
            candidate = generate_candidate(sitter_name, rng)

    if not is_unique:
        candidate = f"{candidate}-{rng.randint(0, 8)}"
        logger.warning(f"All {MAX_ATTEMPTS} codes taken, falling back to {candidate}")

    await store.create_session(build_session(candidate, payload))
    return candidate
