"""Script for loading demo data into an empty board database."""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from .config import ConfigurationError, Settings, settings
from .database import Announcement, Archive, Event, Result, SessionLocal, Timetable, init_db
from .identity import canonical_email
from .models.user import User
from .security import PasswordHasher, build_password_hasher

logger = logging.getLogger(__name__)

DEMO_STUDENT_PASSWORD = "password123"

STUDENTS = [
    {
        "name": "Eboh David",
        "email": "daavideboh5@gmail.com",
        "matric_number": "20221314455",
        "level": 200,
        "student_type": "Undergraduate",
        "phone": "+2348012345678",
    },
    {
        "name": "Aisha Bello",
        "email": "aisha.bello@student.edu.ng",
        "matric_number": "CS2024002",
        "level": 300,
        "student_type": "Undergraduate",
        "phone": "+2348023456789",
    },
]

ANNOUNCEMENTS = [
    {
        "title": "First Semester Examination Schedule",
        "content": "The first semester examination timetable has been released. "
        "All students are advised to check the schedule and prepare accordingly.",
        "category": "exam",
        "is_featured": True,
        "file_url": "/files/exam-timetable.pdf",
    },
    {
        "title": "Course Registration Deadline Extension",
        "content": "The deadline for course registration has been extended. "
        "All students must complete their registration before the new date.",
        "category": "registration",
        "is_featured": True,
        "is_urgent": True,
    },
    {
        "title": "Computer Laboratory Maintenance",
        "content": "The main computer laboratory will be closed for maintenance. "
        "Alternative arrangements have been made in Lab B.",
        "category": "general",
    },
    {
        "title": "Cybersecurity Awareness Workshop",
        "content": "The department is organizing a cybersecurity awareness workshop. "
        "Venue: Lecture Theater 3, Time: 10:00 AM.",
        "category": "event",
        "is_featured": True,
    },
]


def _clear(session: Session) -> None:
    for model in (Archive, Result, Announcement, Timetable, Event, User):
        session.query(model).delete()


def seed(
    session: Session,
    hasher: PasswordHasher,
    admin_password: str | None,
    config: Settings = settings,
) -> dict[str, int]:
    """Replace all board data with the demo data set and return row counts."""
    if not admin_password:
        raise ConfigurationError("SEED_ADMIN_PASSWORD must be set to seed an admin account.")

    _clear(session)

    admin = User(
        name="HOD INFORMATION TECHNOLOGY",
        email=canonical_email(config.seed_admin_email),
        role="admin",
        department=config.department_name,
        phone="+2348067890123",
        password_hash=hasher.hash(admin_password),
    )
    session.add(admin)

    student_hash = hasher.hash(DEMO_STUDENT_PASSWORD)
    students = [
        User(
            password_hash=student_hash,
            role="student",
            department=config.department_name,
            **{**fields, "email": canonical_email(fields["email"])},
        )
        for fields in STUDENTS
    ]
    session.add_all(students)
    session.flush()

    announcements = [Announcement(author_id=admin.id, **fields) for fields in ANNOUNCEMENTS]
    session.add_all(announcements)

    timetables = [
        Timetable(
            title=f"{level} Level First Semester Timetable CSC",
            level=level,
            semester="first",
            file_url=f"/files/timetable-{level}-first.pdf",
        )
        for level in (100, 200, 300)
    ]
    session.add_all(timetables)

    results = [
        Result(
            student_id=students[0].id,
            course_code="CSC201",
            course_title="Data Structures and Algorithms",
            grade="A",
            semester="First Semester 2024/2025",
            session="2024/2025",
            level=200,
        ),
        Result(
            student_id=students[0].id,
            course_code="CIT306",
            course_title="Web Programming",
            grade="B",
            semester="First Semester 2024/2025",
            session="2024/2025",
            level=200,
        ),
    ]
    session.add_all(results)
    session.flush()

    archives = [
        Archive(student_id=students[0].id, announcement_id=announcements[0].id),
        Archive(student_id=students[0].id, announcement_id=announcements[3].id),
    ]
    session.add_all(archives)
    session.commit()

    counts = {
        "admins": 1,
        "students": len(students),
        "announcements": len(announcements),
        "timetables": len(timetables),
        "results": len(results),
        "archives": len(archives),
    }
    logger.info("seed completed: %s", counts)
    return counts


def main() -> None:
    logging.basicConfig(level=settings.log_level)
    init_db()
    session: Session = SessionLocal()
    try:
        seed(session, build_password_hasher(settings), settings.seed_admin_password)
    except Exception:
        session.rollback()
        logger.exception("seed failed")
        raise
    finally:
        session.close()


if __name__ == "__main__":
    main()
