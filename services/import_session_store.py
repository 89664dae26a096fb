"""
In-memory storage for open import sessions.
Sessions expire after a TTL of inactivity.
Single-process only: sessions are not shared between workers.
"""
from datetime import datetime, timedelta
from threading import Lock
import structlog

from config import get_settings
from exceptions import ImportSessionNotFoundError
from models.user_import import WorkflowState
from services.import_session_service import ImportSession

logger = structlog.get_logger(__name__)

_sessions: dict[str, tuple[datetime, ImportSession]] = {}
_lock = Lock()


def _ttl() -> timedelta:
    return timedelta(minutes=get_settings().import_session_ttl_minutes)


def create_session() -> ImportSession:
    """Open a new session in UPLOAD, return it."""
    session = ImportSession(on_close=discard_session)
    with _lock:
        _sessions[session.id] = (datetime.now() + _ttl(), session)
    _cleanup_expired()
    logger.info("import_session_created", session_id=session.id)
    return session


def get_session(session_id: str) -> ImportSession:
    """
    Fetch an open session and extend its expiry.

    Raises:
        ImportSessionNotFoundError: If unknown, expired, completed or cancelled
    """
    with _lock:
        entry = _sessions.get(session_id)
        if entry is None:
            raise ImportSessionNotFoundError(session_id)
        expires_at, session = entry
        if datetime.now() > expires_at and session.state != WorkflowState.IMPORTING:
            del _sessions[session_id]
            logger.info("import_session_expired", session_id=session_id)
            raise ImportSessionNotFoundError(session_id)
        _sessions[session_id] = (datetime.now() + _ttl(), session)
        return session


def discard_session(session_id: str) -> None:
    """Remove a session after completion or cancel."""
    with _lock:
        removed = _sessions.pop(session_id, None)
    if removed is not None:
        logger.info("import_session_discarded", session_id=session_id)


def open_session_count() -> int:
    with _lock:
        return len(_sessions)


def clear_sessions() -> None:
    """Drop every session."""
    with _lock:
        _sessions.clear()


def _cleanup_expired() -> None:
    """Remove all expired entries, except sessions mid-commit."""
    now = datetime.now()
    with _lock:
        expired = [
            k for k, (exp, session) in _sessions.items()
            if now > exp and session.state != WorkflowState.IMPORTING
        ]
        for k in expired:
            del _sessions[k]
