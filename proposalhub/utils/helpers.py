"""Shared utility functions used by models, services and blueprints.

utcnow / as_utc / iso:   timezone-aware timestamps (SQLite drops tzinfo on read)
get_client_ip:           requester IP honouring X-Forwarded-For / X-Real-IP
truncate:                bounded copies of untrusted free-text input
commit_or_raise:         commit the session, mapping store failures to UnavailableError
"""
import logging
from datetime import datetime, timezone

from flask import has_request_context, request
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from proposalhub.core.exceptions import UnavailableError
from proposalhub.models import db

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes read back from the store."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def iso(value: datetime | None) -> str | None:
    value = as_utc(value)
    return value.isoformat() if value else None


def get_client_ip() -> str | None:
    """Return the originating client IP for the current request.

    The first X-Forwarded-For entry wins, then X-Real-IP, then the socket
    address. Returns None outside a request context.
    """
    if not has_request_context():
        return None
    forwarded_for = request.headers.get("X-Forwarded-For", "")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    real_ip = request.headers.get("X-Real-IP", "").strip()
    if real_ip:
        return real_ip
    return request.remote_addr


def truncate(value, max_len: int) -> str | None:
    """Return ``value`` as a string capped at ``max_len`` chars, or None if empty."""
    if value is None:
        return None
    text = str(value)
    if not text:
        return None
    return text[:max_len]


def commit_or_raise(context: str = "commit"):
    """Commit the current session or roll back and raise.

    OperationalError (connection loss, lock timeout) becomes
    UnavailableError so callers can fail closed. Other SQLAlchemy errors are
    re-raised after rollback.
    """
    try:
        db.session.commit()
    except OperationalError as exc:
        db.session.rollback()
        logger.exception("Database unavailable during %s", context)
        raise UnavailableError(f"Data store unavailable during {context}") from exc
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Database error during %s", context)
        raise
