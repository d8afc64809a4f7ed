# app/models/user_session.py
"""
Bearer sessions minted after a successful OTP login or signup.
session_token holds the HMAC of the bearer token, never the token itself.
"""

import uuid
from sqlalchemy import Column, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from app.database import Base, auth_table_args, auth_fk


class UserSession(Base):
    __tablename__ = "user_sessions"
    __table_args__ = auth_table_args()

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey(auth_fk("users.id"), ondelete="CASCADE"), nullable=False)
    session_token = Column(String(255), unique=True, nullable=False, index=True)
    expires_at = Column(DateTime, nullable=False, index=True)
    created_at = Column(DateTime, nullable=False)

    user = relationship("User", back_populates="sessions")

    def __repr__(self):
        return f"<UserSession {self.id} user={self.user_id} expires={self.expires_at}>"
