from sqlalchemy import Column, DateTime, Integer, String

from ..database import Base, new_id, utcnow


class User(Base):
    """SQLAlchemy model for board users (students and admins)."""

    __tablename__ = "users"

    id = Column(String(32), primary_key=True, default=new_id)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    # NULL for admins; multiple NULLs do not violate the unique constraint.
    matric_number = Column(String, unique=True, index=True, nullable=True)
    password_hash = Column(String, nullable=False)
    role = Column(String, default="student", nullable=False)
    level = Column(Integer)
    student_type = Column(String)
    department = Column(String)
    phone = Column(String)
    profile_image = Column(String)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
