# app/models/user.py
"""
Dashboard users. Created on first successful OTP signup.
Email is stored lowercased, which makes the unique constraint case-insensitive.
"""

import uuid
from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import relationship
from app.database import Base, auth_table_args


class User(Base):
    __tablename__ = "users"
    __table_args__ = auth_table_args()

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(255))
    created_at = Column(DateTime, nullable=False)
    last_login = Column(DateTime)

    sessions = relationship("UserSession", back_populates="user", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<User {self.id} email={self.email}>"
