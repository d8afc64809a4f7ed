# scripts/setup/init_db.py
"""
Initialize database: creates the auth tables (users, otp_tokens, user_sessions)
and checks that the detection table is readable.
Run once before first launch.
Usage: python scripts/setup/init_db.py
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", ".."))

from app.database import create_tables, engine
from app.config import settings
from app.services.query_builder import detection_table
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError


def main():
    print("ALPR Dashboard DB Initialization")
    print("=" * 40)
    print(f"Database: {settings.DB_HOST}:{settings.DB_PORT}/{settings.DB_NAME}")

    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        print("Database connection OK")
    except SQLAlchemyError as e:
        print(f"Cannot connect to database: {e}")
        sys.exit(1)

    print("\nCreating auth tables...")
    create_tables()
    print("Auth tables ready")

    table = detection_table()
    try:
        with engine.connect() as conn:
            total = conn.execute(text(f"SELECT COUNT(*) FROM {table}")).scalar()
        print(f"\nDetection table {table}: {total} rows")
    except SQLAlchemyError as e:
        print(f"\nDetection table {table} is not readable: {e}")
        print("Check DB_TABLE / DB_SCHEMA in .env")
        sys.exit(1)

    print("\nDatabase ready! You can now start the backend:")
    print(f"   uvicorn app.main:app --host {settings.HOST} --port {settings.PORT} --reload")


if __name__ == "__main__":
    main()
