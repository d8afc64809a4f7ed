# app/routers/auth.py
"""
Passwordless OTP login.
POST /auth/check-user : does an account exist for this email
POST /auth/send-otp   : email a 6-digit code (never returned in the response)
POST /auth/verify-otp : login with the code, or requiresSignup for new emails
POST /auth/signup     : create the account with the same code
GET  /auth/session    : current user for a bearer token
POST /auth/logout     : delete the session (idempotent)
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database import get_db
from app.schemas.auth import AuthOut, CheckUserOut, EmailIn, SessionOut, SignupIn, UserOut, VerifyOtpIn
from app.services import auth_service
from app.services.email_service import EmailSender, get_email_sender
from app.services.session_guard import UserContext, get_bearer_token, require_session

router = APIRouter(prefix="/auth")


@router.post("/check-user", response_model=CheckUserOut, response_model_exclude_none=True)
def check_user(body: EmailIn, db: Session = Depends(get_db)):
    user = auth_service.check_user(db, body.email)
    if user is None:
        return {"exists": False}
    return {"exists": True, "user": UserOut.model_validate(user)}


@router.post("/send-otp", response_model=AuthOut, response_model_exclude_none=True)
def send_otp(body: EmailIn, db: Session = Depends(get_db), sender: EmailSender = Depends(get_email_sender)):
    auth_service.send_code(db, body.email, sender)
    return AuthOut(success=True, message="Verification code sent")


@router.post("/verify-otp", response_model=AuthOut, response_model_exclude_none=True)
def verify_otp(body: VerifyOtpIn, db: Session = Depends(get_db)):
    outcome = auth_service.verify_code(db, body.email, body.otp)
    if outcome.requires_signup:
        return AuthOut(success=True, requires_signup=True, message="No account for this email, please sign up")
    return AuthOut(
        success=True,
        session_token=outcome.session_token,
        user=UserOut.model_validate(outcome.user),
        message="Login successful",
    )


@router.post("/signup", response_model=AuthOut, response_model_exclude_none=True)
def signup(body: SignupIn, db: Session = Depends(get_db)):
    outcome = auth_service.signup(db, body.email, body.name, body.otp)
    return AuthOut(
        success=True,
        session_token=outcome.session_token,
        user=UserOut.model_validate(outcome.user),
        message="Account created",
    )


@router.get("/session", response_model=SessionOut)
def current_session(user: UserContext = Depends(require_session)):
    return {"user": UserOut(id=user.id, email=user.email, name=user.name)}


@router.post("/logout", response_model=AuthOut, response_model_exclude_none=True)
def logout(session_token: str = Depends(get_bearer_token), db: Session = Depends(get_db)):
    """Only needs a bearer header; an already-closed session still logs out cleanly."""
    auth_service.logout(db, session_token)
    return AuthOut(success=True, message="Logged out")
