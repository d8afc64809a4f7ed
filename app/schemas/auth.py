# app/schemas/auth.py
from pydantic import BaseModel, Field
from typing import Optional


class EmailIn(BaseModel):
    email: str = ""


class VerifyOtpIn(BaseModel):
    email: str = ""
    otp: str = ""


class SignupIn(BaseModel):
    email: str = ""
    name: Optional[str] = None
    otp: str = ""


class UserOut(BaseModel):
    id: str
    email: str
    name: Optional[str] = None

    class Config:
        from_attributes = True


class CheckUserOut(BaseModel):
    exists: bool
    user: Optional[UserOut] = None


class AuthOut(BaseModel):
    """Shape shared by send-otp, verify-otp, signup and logout responses."""
    success: bool
    session_token: Optional[str] = Field(None, alias="sessionToken")
    user: Optional[UserOut] = None
    message: Optional[str] = None
    requires_signup: Optional[bool] = Field(None, alias="requiresSignup")

    class Config:
        populate_by_name = True


class SessionOut(BaseModel):
    user: UserOut
