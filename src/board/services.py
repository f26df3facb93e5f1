"""Service layer for authentication and board content."""

import logging
from datetime import datetime
from typing import Dict, List

from prometheus_client import Counter
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .database import (
    Announcement,
    Archive,
    Event,
    Result,
    Timetable,
    handle_store_error,
)
from .errors import (
    DuplicateUser,
    InvalidCredentials,
    InvalidToken,
    NotFound,
    ValidationError,
)
from .identity import canonical_email, canonical_matric, resolve_identifier
from .models.user import User
from .security import PasswordHasher, TokenService
from .store import CredentialStore

logger = logging.getLogger(__name__)

SIGNUP_COUNTER = Counter("signups_total", "Total successful student signups")
LOGIN_COUNTER = Counter("logins_total", "Login attempts by outcome", ["outcome"])

FEATURED_LIMIT = 5


def _blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _parse_int(value, field: str) -> int:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a whole number") from None


class AuthService:
    """Signup, login and token verification over an injected credential store."""

    def __init__(
        self,
        store: CredentialStore,
        hasher: PasswordHasher,
        tokens: TokenService,
        department: str,
    ):
        self.store = store
        self.hasher = hasher
        self.tokens = tokens
        self.department = department

    def signup(
        self,
        name: str | None,
        email: str | None,
        matric_number: str | None,
        level,
        password: str | None,
        student_type: str | None,
        phone: str | None = None,
    ) -> tuple[User, str]:
        if any(_blank(value) for value in (name, email, matric_number, level, password, student_type)):
            raise ValidationError("All fields are required")
        level = _parse_int(level, "Level")
        if level <= 0:
            raise ValidationError("Level must be a positive number")
        email = canonical_email(email)
        matric_number = canonical_matric(matric_number)

        # Fast path for a friendly error; the unique constraints are authoritative.
        if self.store.find_user_by_email_or_matric(email, matric_number) is not None:
            raise DuplicateUser()

        password_hash = self.hasher.hash(password)
        user = self.store.create_user(
            name=name.strip(),
            email=email,
            matric_number=matric_number,
            level=level,
            password_hash=password_hash,
            student_type=student_type.strip(),
            phone=phone.strip() if phone and phone.strip() else None,
            role="student",
            department=self.department,
        )
        SIGNUP_COUNTER.inc()
        logger.info("student %s signed up", user.id)
        return user, self.tokens.issue(user.id)

    def login(
        self,
        password: str | None,
        identifier: str | None = None,
        email: str | None = None,
        matric_number: str | None = None,
    ) -> tuple[User, str]:
        if not password:
            raise ValidationError("Email or matric number and password are required")
        value = resolve_identifier(identifier, email, matric_number)

        user = self.store.find_user_by_email_or_matric(canonical_email(value), canonical_matric(value))
        if user is None or not self.hasher.verify(password, user.password_hash):
            LOGIN_COUNTER.labels(outcome="failure").inc()
            raise InvalidCredentials()

        LOGIN_COUNTER.labels(outcome="success").inc()
        logger.info("user %s logged in", user.id)
        return user, self.tokens.issue(user.id)

    def resolve_token_user(self, token: str | None) -> User:
        """Return the user a token belongs to, or raise ``InvalidToken``."""
        user_id = self.tokens.verify(token) if token else None
        if user_id is None:
            raise InvalidToken()
        user = self.store.find_user_by_id(user_id)
        if user is None:
            raise InvalidToken()
        return user

    def verify_token(self, token: str | None) -> Dict[str, str]:
        user = self.resolve_token_user(token)
        return {"id": user.id, "name": user.name, "email": user.email, "role": user.role}


# ---------------------------------------------------------------------------
# Announcements


def list_announcements(
    session: Session,
    search: str | None = None,
    category: str | None = None,
    featured: str | None = None,
    urgent: str | None = None,
) -> List[Announcement]:
    """Return announcements newest first, applying the optional filters."""
    try:
        query = session.query(Announcement)
        if search:
            pattern = f"%{search}%"
            query = query.filter(
                or_(Announcement.title.ilike(pattern), Announcement.content.ilike(pattern))
            )
        if category:
            query = query.filter(Announcement.category == category)
        if featured is not None:
            query = query.filter(Announcement.is_featured == (featured == "true"))
        if urgent is not None:
            query = query.filter(Announcement.is_urgent == (urgent == "true"))
        return query.order_by(Announcement.created_at.desc()).all()
    except SQLAlchemyError as exc:
        handle_store_error(session, exc)


def list_featured_announcements(session: Session) -> List[Announcement]:
    try:
        return (
            session.query(Announcement)
            .filter(or_(Announcement.is_featured.is_(True), Announcement.is_urgent.is_(True)))
            .order_by(Announcement.created_at.desc())
            .limit(FEATURED_LIMIT)
            .all()
        )
    except SQLAlchemyError as exc:
        handle_store_error(session, exc)


def get_announcement(session: Session, announcement_id: str) -> Announcement:
    try:
        announcement = session.get(Announcement, announcement_id)
    except SQLAlchemyError as exc:
        handle_store_error(session, exc)
    if announcement is None:
        raise NotFound("Announcement not found")
    return announcement


def create_announcement(
    session: Session,
    author: User,
    title: str | None,
    content: str | None,
    category: str | None,
    is_featured: bool = False,
    is_urgent: bool = False,
    file_url: str | None = None,
) -> Announcement:
    if _blank(title) or _blank(content) or _blank(category):
        raise ValidationError("Title, content, and category are required")
    announcement = Announcement(
        title=title,
        content=content,
        category=category,
        is_featured=is_featured,
        is_urgent=is_urgent,
        file_url=file_url,
        author_id=author.id,
    )
    try:
        session.add(announcement)
        session.commit()
        session.refresh(announcement)
    except SQLAlchemyError as exc:
        handle_store_error(session, exc)
    logger.info("announcement %s created by %s", announcement.id, author.id)
    return announcement


def update_announcement(session: Session, announcement_id: str, **changes) -> Announcement:
    """Apply the non-None ``changes`` to an announcement."""
    announcement = get_announcement(session, announcement_id)
    for field, value in changes.items():
        if value is None or (isinstance(value, str) and not value.strip()):
            continue
        setattr(announcement, field, value)
    try:
        session.commit()
        session.refresh(announcement)
    except SQLAlchemyError as exc:
        handle_store_error(session, exc)
    return announcement


def delete_announcement(session: Session, announcement_id: str) -> Announcement:
    announcement = get_announcement(session, announcement_id)
    try:
        session.query(Archive).filter(Archive.announcement_id == announcement.id).delete()
        session.delete(announcement)
        session.commit()
    except SQLAlchemyError as exc:
        handle_store_error(session, exc)
    logger.info("announcement %s deleted", announcement_id)
    return announcement


# ---------------------------------------------------------------------------
# Timetables, events and results


def create_timetable(session: Session, title: str | None, level, semester: str | None, file_url: str) -> Timetable:
    if _blank(title) or _blank(level) or _blank(semester):
        raise ValidationError("Title, level, semester, and file are required")
    timetable = Timetable(title=title, level=_parse_int(level, "Level"), semester=semester, file_url=file_url)
    try:
        session.add(timetable)
        session.commit()
        session.refresh(timetable)
    except SQLAlchemyError as exc:
        handle_store_error(session, exc)
    return timetable


def list_timetables(session: Session, level: int) -> List[Timetable]:
    try:
        return (
            session.query(Timetable)
            .filter(Timetable.level == level)
            .order_by(Timetable.created_at.desc())
            .all()
        )
    except SQLAlchemyError as exc:
        handle_store_error(session, exc)


def latest_timetable(session: Session, level: int, semester: str | None = None) -> Timetable:
    try:
        query = session.query(Timetable).filter(Timetable.level == level)
        if semester:
            query = query.filter(Timetable.semester == semester)
        timetable = query.order_by(Timetable.created_at.desc()).first()
    except SQLAlchemyError as exc:
        handle_store_error(session, exc)
    if timetable is None:
        raise NotFound("Timetable not found for this level")
    return timetable


def create_event(
    session: Session,
    title: str | None,
    description: str | None,
    date: str | None,
    venue: str | None,
    image_url: str | None = None,
) -> Event:
    if any(_blank(value) for value in (title, description, date, venue)):
        raise ValidationError("All event fields are required")
    try:
        when = datetime.fromisoformat(date.strip())
    except ValueError:
        raise ValidationError("Event date must be an ISO-8601 date") from None
    event = Event(title=title, description=description, date=when, venue=venue, image_url=image_url)
    try:
        session.add(event)
        session.commit()
        session.refresh(event)
    except SQLAlchemyError as exc:
        handle_store_error(session, exc)
    return event


def list_events(session: Session) -> List[Event]:
    try:
        return session.query(Event).order_by(Event.date.desc()).all()
    except SQLAlchemyError as exc:
        handle_store_error(session, exc)


def create_result(
    session: Session,
    student_id: str | None,
    course_code: str | None,
    course_title: str | None,
    grade: str | None,
    semester: str | None = None,
    session_name: str | None = None,
    level=None,
) -> Result:
    if any(_blank(value) for value in (student_id, course_code, course_title, grade)):
        raise ValidationError("Required result fields are missing")
    try:
        student = session.get(User, student_id)
    except SQLAlchemyError as exc:
        handle_store_error(session, exc)
    if student is None or student.role != "student":
        raise NotFound("Student not found")
    result = Result(
        student_id=student.id,
        course_code=course_code,
        course_title=course_title,
        grade=grade,
        semester=semester or "first",
        session=session_name or "2023/2024",
        level=_parse_int(level, "Level") if not _blank(level) else 100,
    )
    try:
        session.add(result)
        session.commit()
        session.refresh(result)
    except SQLAlchemyError as exc:
        handle_store_error(session, exc)
    return result


def list_results(session: Session, student: User) -> List[Result]:
    try:
        return (
            session.query(Result)
            .filter(Result.student_id == student.id)
            .order_by(Result.created_at.desc())
            .all()
        )
    except SQLAlchemyError as exc:
        handle_store_error(session, exc)


# ---------------------------------------------------------------------------
# Student profile and archives


def update_profile(session: Session, student: User, name: str | None, email: str | None, phone: str | None) -> User:
    if _blank(name) or _blank(email):
        raise ValidationError("Name and email are required")
    student.name = name.strip()
    student.email = canonical_email(email)
    student.phone = phone.strip() if phone and phone.strip() else None
    try:
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        raise DuplicateUser("Email already exists") from exc
    except SQLAlchemyError as exc:
        handle_store_error(session, exc)
    session.refresh(student)
    return student


def update_profile_image(session: Session, student: User, image_url: str) -> User:
    student.profile_image = image_url
    try:
        session.commit()
        session.refresh(student)
    except SQLAlchemyError as exc:
        handle_store_error(session, exc)
    return student


def student_timetable(session: Session, student: User) -> Timetable:
    if not student.level:
        raise ValidationError("Student level not found")
    try:
        return latest_timetable(session, student.level)
    except NotFound:
        raise NotFound("Timetable not found for your level") from None


def archive_announcement(session: Session, student: User, announcement_id: str) -> Archive:
    get_announcement(session, announcement_id)
    try:
        existing = (
            session.query(Archive)
            .filter(Archive.student_id == student.id, Archive.announcement_id == announcement_id)
            .first()
        )
    except SQLAlchemyError as exc:
        handle_store_error(session, exc)
    if existing is not None:
        raise ValidationError("Announcement already archived")

    archive = Archive(student_id=student.id, announcement_id=announcement_id)
    session.add(archive)
    try:
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        raise ValidationError("Announcement already archived") from exc
    except SQLAlchemyError as exc:
        handle_store_error(session, exc)
    session.refresh(archive)
    return archive


def list_archives(session: Session, student: User) -> List[Archive]:
    try:
        return (
            session.query(Archive)
            .filter(Archive.student_id == student.id)
            .order_by(Archive.archived_at.desc())
            .all()
        )
    except SQLAlchemyError as exc:
        handle_store_error(session, exc)


def remove_archive(session: Session, student: User, archive_id: str) -> None:
    try:
        archive = (
            session.query(Archive)
            .filter(Archive.id == archive_id, Archive.student_id == student.id)
            .first()
        )
    except SQLAlchemyError as exc:
        handle_store_error(session, exc)
    if archive is None:
        raise NotFound("Archive not found")
    try:
        session.delete(archive)
        session.commit()
    except SQLAlchemyError as exc:
        handle_store_error(session, exc)
