# app/models/otp_token.py
"""
One-time login codes. At most one row per email exists:
send_code deletes the previous ones before inserting. attempts counts
wrong guesses against the row; it is deleted once the limit is reached.
"""

import uuid
from sqlalchemy import Column, String, DateTime, Boolean, Integer
from app.database import Base, auth_table_args


class OTPToken(Base):
    __tablename__ = "otp_tokens"
    __table_args__ = auth_table_args()

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(255), nullable=False, index=True)
    otp_code = Column(String(6), nullable=False)
    expires_at = Column(DateTime, nullable=False, index=True)
    verified = Column(Boolean, default=False, nullable=False)
    attempts = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, nullable=False)

    def __repr__(self):
        return f"<OTPToken {self.id} email={self.email} verified={self.verified}>"
