# tests/conftest.py
"""Shared fixtures: in-memory auth database and an email sender that records instead of sending."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.database import Base
from app.models import OTPToken, User, UserSession  # noqa: F401  registers the tables on Base
from app.services.email_service import EmailSender


class RecordingSender(EmailSender):
    def __init__(self):
        self.sent = []
        self.succeed = True

    def send(self, to, subject, body):
        self.sent.append({"to": to, "subject": subject, "body": body})
        return self.succeed


@pytest.fixture
def db():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def sender():
    return RecordingSender()
