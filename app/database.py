# app/database.py
"""
Database connection, session management, and table creation.
Uses SQLAlchemy with PostgreSQL. Only the auth tables (users, otp_tokens,
user_sessions) are owned by this service; the detection table is written by
the ingestion process and read here with raw parameterized SQL.
"""

import os
from sqlalchemy import create_engine, event, text
from sqlalchemy.ext.declarative import declarative_base
from sqlalchemy.orm import sessionmaker
from app.config import settings
from app.utils.logger import get_logger

logger = get_logger(__name__)

engine = create_engine(
    settings.SQLALCHEMY_URL,
    pool_pre_ping=True,          # Auto-reconnect if DB connection drops
    pool_size=settings.DB_POOL_SIZE,
    max_overflow=settings.DB_MAX_OVERFLOW,
    echo=False,                  # Set True to log all SQL queries (debug only)
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def auth_table_args() -> dict:
    """__table_args__ for the auth tables, honouring AUTH_SCHEMA."""
    return {"schema": settings.AUTH_SCHEMA} if settings.AUTH_SCHEMA else {}


def auth_fk(column: str) -> str:
    """Schema-qualified foreign key target, e.g. 'users.id'."""
    return f"{settings.AUTH_SCHEMA}.{column}" if settings.AUTH_SCHEMA else column


@event.listens_for(engine, "handle_error")
def on_pool_error(context):
    """
    A disconnect that survives pre-ping means the pool cannot reach the
    database at all. Serving requests from here on would only return errors
    or empty results, so the process exits and the supervisor restarts it.
    Disconnects seen by pre-ping itself are stale pooled connections; the
    pool replaces those and the checkout carries on.
    """
    if context.is_pre_ping or not context.is_disconnect or not settings.DB_FAIL_FAST:
        return
    logger.critical(
        f"Unrecoverable database connection error, shutting down: {context.original_exception}"
    )
    os._exit(1)


def get_db():
    """FastAPI dependency: yields a DB session and closes it after request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def test_db_connection() -> bool:
    """Runs SELECT 1 against the pool. Returns False instead of raising."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        return False


def create_tables():
    """
    Creates the auth tables on startup. Safe to call multiple times.
    Import all models here so SQLAlchemy knows about them.
    """
    from app.models.user import User                    # noqa
    from app.models.otp_token import OTPToken           # noqa
    from app.models.user_session import UserSession     # noqa
    from app.services.query_builder import sanitize_identifier

    if settings.AUTH_SCHEMA:
        with engine.begin() as conn:
            conn.execute(text(f"CREATE SCHEMA IF NOT EXISTS {sanitize_identifier(settings.AUTH_SCHEMA)}"))
    Base.metadata.create_all(bind=engine)
