"""
Security utilities for the reservation backend
Admin PIN gate, log redaction, chat input validation
"""
import logging
import re
import secrets
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Optional

from fastapi import Header, HTTPException, Request, status

from app.core.config import settings
from app.core.errors import AdminLockedError
from app.core.firebase import utcnow

logger = logging.getLogger(__name__)

# Every admin change is attributed to this label; there are no per-user identities
ADMIN_ACTOR = "pin-admin"


# ==================== Admin PIN Gate ====================

@dataclass(frozen=True)
class AdminSession:
    """Session-scoped proof that the PIN was entered"""
    token: str
    expires_at: datetime
    actor: str = ADMIN_ACTOR


class AdminPinGate:
    """
    Single shared numeric PIN for the whole dashboard.

    A correct PIN issues an opaque token that the caller passes back on
    every admin operation. Tokens expire after the configured idle TTL
    or when the session is locked.
    """

    def __init__(self, pin: str, ttl_minutes: int):
        self._pin = pin
        self._ttl = timedelta(minutes=ttl_minutes)
        self._sessions: Dict[str, AdminSession] = {}
        self._lock = threading.Lock()

    def unlock(self, pin: Optional[str]) -> AdminSession:
        """
        Raises:
            AdminLockedError: If the PIN is wrong
        """
        candidate = (pin or "").strip()
        if not candidate.isdigit() or not secrets.compare_digest(candidate, self._pin):
            logger.warning("Rejected admin PIN attempt")
            raise AdminLockedError("Incorrect PIN.")

        session = AdminSession(token=secrets.token_urlsafe(32), expires_at=utcnow() + self._ttl)
        with self._lock:
            self._purge_expired()
            self._sessions[session.token] = session
        logger.info("Admin dashboard unlocked")
        return session

    def verify(self, token: Optional[str], refresh: bool = True) -> AdminSession:
        """
        Check a session token. `refresh=False` checks without sliding the expiry.

        Raises:
            AdminLockedError: If the token is missing, unknown or expired
        """
        if not token:
            raise AdminLockedError()
        with self._lock:
            session = self._sessions.get(token)
            if session is None:
                raise AdminLockedError()
            if session.expires_at <= utcnow():
                del self._sessions[token]
                raise AdminLockedError("Admin session expired. Enter the PIN again.")
            if not refresh:
                return session
            # Sliding expiry
            refreshed = AdminSession(token=token, expires_at=utcnow() + self._ttl, actor=session.actor)
            self._sessions[token] = refreshed
            return refreshed

    def lock(self, token: Optional[str]) -> None:
        with self._lock:
            if token and self._sessions.pop(token, None):
                logger.info("Admin dashboard locked")

    def _purge_expired(self) -> None:
        now = utcnow()
        for token in [t for t, s in self._sessions.items() if s.expires_at <= now]:
            del self._sessions[token]


admin_gate = AdminPinGate(settings.ADMIN_PIN, settings.ADMIN_SESSION_TTL_MINUTES)


def get_admin_gate() -> AdminPinGate:
    return admin_gate


async def require_admin_session(
    x_admin_session: Optional[str] = Header(None, alias="X-Admin-Session")
) -> AdminSession:
    """FastAPI dependency: verified admin session from the X-Admin-Session header"""
    return admin_gate.verify(x_admin_session)


# ==================== Log Redaction ====================

def redact_sensitive_data(text: str) -> str:
    """
    Redact sensitive information from logs
    Removes: emails, credit cards, tokens, phone numbers
    """
    if not text:
        return text

    text = re.sub(r'\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Z|a-z]{2,}\b', '[EMAIL_REDACTED]', text)
    text = re.sub(r'\b\d{4}[\s-]?\d{4}[\s-]?\d{4}[\s-]?\d{4,7}\b', '[CARD_REDACTED]', text)
    text = re.sub(r'\b(AIza[0-9A-Za-z_-]{35})\b', '[API_KEY_REDACTED]', text)
    text = re.sub(r'\b(sk_(live|test)_[0-9A-Za-z]{10,})\b', '[API_KEY_REDACTED]', text)
    text = re.sub(r'\+?\(?\d[\d\s()\-]{8,14}\d', '[PHONE_REDACTED]', text)

    return text


def safe_log_error(message: str, error: Exception):
    """Log errors with sensitive data redaction"""
    safe_message = redact_sensitive_data(message)
    safe_error = redact_sensitive_data(str(error))
    logger.error(f"{safe_message}: {safe_error}")


# ==================== AI Input Validation ====================

def validate_ai_input(text: str, max_length: int = 2000) -> str:
    """
    Validate and sanitize concierge chat input.

    Returns:
        Sanitized text

    Raises:
        HTTPException: If input is empty, too long or looks like prompt injection
    """
    if not text or not text.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing message."
        )

    text = text.strip()

    if len(text) > max_length:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Input too long. Maximum {max_length} characters allowed"
        )

    # Remove control characters except newlines and tabs
    text = ''.join(char for char in text if char.isprintable() or char in '\n\t')

    injection_patterns = [
        r'ignore\s+(previous|above|all)\s+instructions',
        r'system\s*:',
        r'<\|im_start\|>',
        r'<\|im_end\|>',
        r'###\s*instruction',
        r'forget\s+(everything|all|previous)',
    ]

    for pattern in injection_patterns:
        if re.search(pattern, text, re.IGNORECASE):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid input detected"
            )

    return text


def get_client_ip(request: Request) -> str:
    """Client IP for logging, honoring proxy headers"""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip

    if request.client:
        return request.client.host

    return "unknown"
