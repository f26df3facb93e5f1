"""Credential store used by the authentication flow."""

import logging
from typing import Protocol

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .database import handle_store_error
from .errors import DuplicateUser
from .models.user import User

logger = logging.getLogger(__name__)


class CredentialStore(Protocol):
    def find_user_by_email_or_matric(self, email: str | None, matric_number: str | None) -> User | None:
        ...

    def create_user(self, **fields) -> User:
        ...

    def find_user_by_id(self, user_id: str) -> User | None:
        ...


class SqlCredentialStore:
    """``CredentialStore`` backed by a SQLAlchemy session."""

    def __init__(self, session: Session):
        self.session = session

    def find_user_by_email_or_matric(self, email: str | None, matric_number: str | None) -> User | None:
        clauses = []
        if email:
            clauses.append(User.email == email)
        if matric_number:
            clauses.append(User.matric_number == matric_number)
        if not clauses:
            return None
        try:
            return self.session.query(User).filter(or_(*clauses)).first()
        except SQLAlchemyError as exc:
            handle_store_error(self.session, exc)

    def create_user(self, **fields) -> User:
        user = User(**fields)
        self.session.add(user)
        try:
            self.session.commit()
        except IntegrityError as exc:
            # Lost a race with a concurrent signup; the unique constraint decides.
            self.session.rollback()
            logger.info("user insert rejected by unique constraint")
            raise DuplicateUser() from exc
        except SQLAlchemyError as exc:
            handle_store_error(self.session, exc)
        self.session.refresh(user)
        return user

    def find_user_by_id(self, user_id: str) -> User | None:
        try:
            return self.session.get(User, user_id)
        except SQLAlchemyError as exc:
            handle_store_error(self.session, exc)
