"""Database setup and models for board content."""

import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    create_engine,
)
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.orm import Session, declarative_base, relationship, sessionmaker

from .config import settings
from .errors import StoreUnavailable

logger = logging.getLogger(__name__)

_connect_args = {"check_same_thread": False} if settings.database_url.startswith("sqlite") else {}

engine = create_engine(settings.database_url, connect_args=_connect_args, future=True)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
Base = declarative_base()


def new_id() -> str:
    return uuid.uuid4().hex


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Announcement(Base):
    """A notice posted to the board by an admin."""

    __tablename__ = "announcements"

    id = Column(String(32), primary_key=True, default=new_id)
    title = Column(String, nullable=False)
    content = Column(Text, nullable=False)
    category = Column(String, index=True, nullable=False)
    is_featured = Column(Boolean, default=False, nullable=False)
    is_urgent = Column(Boolean, default=False, nullable=False)
    file_url = Column(String)
    author_id = Column(String(32), ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    author = relationship("User", lazy="joined")


class Timetable(Base):
    """An uploaded timetable document for one level and semester."""

    __tablename__ = "timetables"

    id = Column(String(32), primary_key=True, default=new_id)
    title = Column(String, nullable=False)
    level = Column(Integer, index=True, nullable=False)
    semester = Column(String, nullable=False)
    file_url = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)


class Result(Base):
    """A single course grade for a student."""

    __tablename__ = "results"

    id = Column(String(32), primary_key=True, default=new_id)
    student_id = Column(String(32), ForeignKey("users.id"), index=True, nullable=False)
    course_code = Column(String, nullable=False)
    course_title = Column(String, nullable=False)
    grade = Column(String, nullable=False)
    semester = Column(String, nullable=False)
    session = Column(String, nullable=False)
    level = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)


class Event(Base):
    """A department event."""

    __tablename__ = "events"

    id = Column(String(32), primary_key=True, default=new_id)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    date = Column(DateTime(timezone=True), nullable=False)
    venue = Column(String, nullable=False)
    image_url = Column(String)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)


class Archive(Base):
    """An announcement saved by a student for later."""

    __tablename__ = "archives"
    __table_args__ = (UniqueConstraint("student_id", "announcement_id", name="uq_archive_student_announcement"),)

    id = Column(String(32), primary_key=True, default=new_id)
    student_id = Column(String(32), ForeignKey("users.id"), index=True, nullable=False)
    announcement_id = Column(String(32), ForeignKey("announcements.id", ondelete="CASCADE"), nullable=False)
    archived_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    announcement = relationship("Announcement", lazy="joined")


def handle_store_error(session: Session, exc: Exception) -> None:
    """Rollback and translate connectivity failures into ``StoreUnavailable``."""
    session.rollback()
    if isinstance(exc, (OperationalError, InterfaceError)):
        logger.exception("database unavailable", exc_info=exc)
        raise StoreUnavailable() from exc
    raise exc


def init_db(bind=None) -> None:
    """Create database tables if they do not exist."""
    from .models import user  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
