"""
SQLAlchemy model for the remote waitlist table.

Tables:
- waitlist: one row per normalized email, upserted on conflict(email)
"""
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, String, create_engine
from sqlalchemy.engine import URL, Engine, make_url
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WaitlistRow(Base):
    """
    Remote counterpart of WaitlistEntry.
    id and created_at are assigned by column defaults on first insert only.
    """
    __tablename__ = "waitlist"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    email = Column(String(254), unique=True, nullable=False, index=True)
    completed_signup = Column(Boolean, nullable=False, default=False)

    # Timestamps
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    def __repr__(self):
        return f"<WaitlistRow {self.email} completed={self.completed_signup}>"


def resolve_url(url: str, key: Optional[str] = None) -> URL:
    """Normalize the database URL. The access key fills in a missing password."""
    # Handle Render's postgres:// vs postgresql:// URL
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql://", 1)
    parsed = make_url(url)
    if key and parsed.password is None and not parsed.drivername.startswith("sqlite"):
        parsed = parsed.set(password=key)
    return parsed


def get_engine(url: str, key: Optional[str] = None) -> Engine:
    """Create SQLAlchemy engine."""
    return create_engine(resolve_url(url, key), echo=False, pool_pre_ping=True)


def init_db(engine: Engine) -> None:
    """Create the waitlist table if missing."""
    Base.metadata.create_all(engine)


if __name__ == "__main__":
    import logging
    import sys
    import os

    sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
    from config import load_config

    logging.basicConfig(level=logging.INFO)
    config = load_config()
    init_db(get_engine(config.remote_url, config.remote_key))
    logging.getLogger(__name__).info("Waitlist table ready")
