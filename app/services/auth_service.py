# app/services/auth_service.py
"""
Passwordless OTP authentication.

Per email the flow moves NoPendingCode → CodeSent → Verified → SessionIssued:
  send_code    delete every older code for the email, store a fresh 6-digit
               code (5 min), email it. Delivery failure fails the operation.
  verify_code  known user  → consume code, mint session (login)
               unknown     → requires_signup, code left unconsumed
  signup       re-checks the same code, creates the user, mints session
  logout       deletes the session, idempotent

A wrong guess counts against the pending code; OTP_MAX_ATTEMPTS misses
delete it and a new code must be requested.

Codes and bearer tokens are never logged and never returned by send_code.
Only the HMAC of a bearer token is stored in user_sessions.
"""

import hashlib
import hmac
import re
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.config import settings
from app.exceptions import AuthError, ConflictError, DependencyError, ValidationError
from app.models.otp_token import OTPToken
from app.models.user import User
from app.models.user_session import UserSession
from app.services.email_service import EmailSender
from app.utils.logger import get_logger

logger = get_logger(__name__)

OTP_LENGTH = 6
INVALID_CODE = "Invalid or expired code"

_EMAIL = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_OTP = re.compile(r"^\d{%d}$" % OTP_LENGTH, re.ASCII)


@dataclass
class VerifyOutcome:
    requires_signup: bool = False
    session_token: Optional[str] = None
    user: Optional[User] = None


def utcnow() -> datetime:
    """Application clock (naive UTC). Expiry is always judged here, not by the database."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def normalize_email(email: Optional[str]) -> str:
    email = (email or "").strip().lower()
    if not email:
        raise ValidationError("email", "Email is required")
    if not _EMAIL.match(email):
        raise ValidationError("email", "Email is not valid")
    return email


def generate_otp() -> str:
    return f"{secrets.randbelow(10 ** OTP_LENGTH):0{OTP_LENGTH}d}"


def generate_session_token() -> str:
    """256-bit random bearer token, hex encoded."""
    return secrets.token_hex(32)


def hash_session_token(token: str) -> str:
    return hmac.new(settings.SESSION_SECRET.encode(), token.encode(), hashlib.sha256).hexdigest()


def check_user(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == normalize_email(email)).first()


# ── send ─────────────────────────────────────────────────────────────────────

def send_code(db: Session, email: str, sender: EmailSender) -> None:
    email = normalize_email(email)
    now = utcnow()

    db.query(OTPToken).filter(OTPToken.email == email).delete(synchronize_session=False)

    token = OTPToken(
        email=email,
        otp_code=generate_otp(),
        expires_at=now + timedelta(minutes=settings.OTP_EXPIRE_MINUTES),
        verified=False,
        created_at=now,
    )
    db.add(token)
    db.commit()

    body = (
        f"Your ALPR Dashboard verification code is: {token.otp_code}\n\n"
        f"The code expires in {settings.OTP_EXPIRE_MINUTES} minutes. "
        f"If you did not request it, you can ignore this email."
    )
    if not sender.send(email, "Your ALPR Dashboard verification code", body):
        db.delete(token)
        db.commit()
        logger.error(f"[OTP] Delivery failed for {email}, code discarded")
        raise DependencyError("Failed to send verification code", dependency="email")

    logger.info(f"[OTP] Code sent to {email}")


# ── verify / signup ──────────────────────────────────────────────────────────

def _find_live_code(db: Session, email: str, code: Optional[str]) -> OTPToken:
    code = (code or "").strip()
    if not code:
        raise ValidationError("otp", "Verification code is required")
    if not _OTP.match(code):
        raise AuthError(INVALID_CODE)

    token = (
        db.query(OTPToken)
        .filter(OTPToken.email == email, OTPToken.verified.is_(False))
        .order_by(OTPToken.created_at.desc())
        .with_for_update()
        .first()
    )
    if token is None or token.expires_at <= utcnow():
        db.rollback()
        logger.info(f"[OTP] Rejected code for {email}")
        raise AuthError(INVALID_CODE)

    if not hmac.compare_digest(token.otp_code, code):
        token.attempts = (token.attempts or 0) + 1
        if token.attempts >= settings.OTP_MAX_ATTEMPTS:
            db.delete(token)
            logger.warning(f"[OTP] Too many wrong codes for {email}, code discarded")
        else:
            logger.info(f"[OTP] Wrong code for {email} ({token.attempts}/{settings.OTP_MAX_ATTEMPTS})")
        db.commit()
        raise AuthError(INVALID_CODE)
    return token


def _mint_session(db: Session, user: User, now: datetime) -> str:
    raw_token = generate_session_token()
    db.add(UserSession(
        user_id=user.id,
        session_token=hash_session_token(raw_token),
        expires_at=now + timedelta(days=settings.SESSION_EXPIRE_DAYS),
        created_at=now,
    ))
    user.last_login = now
    return raw_token


def verify_code(db: Session, email: str, code: str) -> VerifyOutcome:
    email = normalize_email(email)
    token = _find_live_code(db, email, code)

    user = db.query(User).filter(User.email == email).first()
    if user is None:
        # The same code is re-checked by signup, so it stays unconsumed.
        db.rollback()
        return VerifyOutcome(requires_signup=True)

    now = utcnow()
    token.verified = True
    session_token = _mint_session(db, user, now)
    db.commit()
    db.refresh(user)
    logger.info(f"[AUTH] Login for {email}")
    return VerifyOutcome(session_token=session_token, user=user)


def signup(db: Session, email: str, name: Optional[str], code: str) -> VerifyOutcome:
    email = normalize_email(email)
    token = _find_live_code(db, email, code)

    if db.query(User).filter(User.email == email).first() is not None:
        db.rollback()
        raise ConflictError("User already exists")

    now = utcnow()
    user = User(email=email, name=(name or "").strip() or None, created_at=now)
    db.add(user)
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        raise ConflictError("User already exists")

    token.verified = True
    session_token = _mint_session(db, user, now)
    db.commit()
    db.refresh(user)
    logger.info(f"[AUTH] Signup for {email}")
    return VerifyOutcome(session_token=session_token, user=user)


# ── logout / housekeeping ────────────────────────────────────────────────────

def logout(db: Session, session_token: Optional[str]) -> None:
    """Delete the session. Unknown or already-deleted tokens are not an error."""
    if not session_token:
        return
    deleted = (
        db.query(UserSession)
        .filter(UserSession.session_token == hash_session_token(session_token))
        .delete(synchronize_session=False)
    )
    db.commit()
    if deleted:
        logger.info("[AUTH] Session closed")


def purge_expired(db: Session) -> tuple[int, int]:
    """Delete expired sessions and OTP codes. Returns (sessions, codes) removed."""
    now = utcnow()
    sessions = db.query(UserSession).filter(UserSession.expires_at <= now).delete(synchronize_session=False)
    codes = db.query(OTPToken).filter(OTPToken.expires_at <= now).delete(synchronize_session=False)
    db.commit()
    logger.info(f"[AUTH] Purged {sessions} expired sessions and {codes} expired codes")
    return sessions, codes
