"""
Join links - the ``session`` query parameter that deep-links into a session.
"""

from typing import Optional, Sequence
from urllib.parse import parse_qs, urlencode, urlparse, urlunparse

from ..models import DogConfig

SESSION_PARAM = "session"


def build_join_url(base_url: str, session_id: str) -> str:
    """Set ``?session=<id>`` on the URL, keeping any other query parameters."""
    parts = urlparse(base_url)
    query = {key: values for key, values in parse_qs(parts.query).items() if key != SESSION_PARAM}
    query[SESSION_PARAM] = [session_id]
    return urlunparse(parts._replace(query=urlencode(query, doseq=True)))


def clear_join_param(url: str) -> str:
    """The URL without its ``session`` parameter, used when leaving a session."""
    parts = urlparse(url)
    query = {key: values for key, values in parse_qs(parts.query).items() if key != SESSION_PARAM}
    return urlunparse(parts._replace(query=urlencode(query, doseq=True)))


def session_id_from_url(url: str) -> Optional[str]:
    values = parse_qs(urlparse(url).query).get(SESSION_PARAM)
    if not values or not values[0].strip():
        return None
    return values[0].strip()


def share_text(session_id: str, dogs: Sequence[DogConfig]) -> str:
    names = ", ".join(dog.name for dog in dogs)
    return f"Join my Pawsitive Petsitting session for {names}. Code: {session_id}"
