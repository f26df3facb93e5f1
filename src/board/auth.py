from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from .config import settings
from .database import SessionLocal
from .errors import Forbidden
from .models.user import User
from .security import build_password_hasher, build_token_service
from .services import AuthService
from .storage import LocalBlobStore
from .store import SqlCredentialStore

security = HTTPBearer(auto_error=False)

# Built once per process; a missing production secret stops the import here.
password_hasher = build_password_hasher(settings)
token_service = build_token_service(settings)
blob_store = LocalBlobStore(settings.upload_dir, settings.max_upload_bytes)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_blob_store() -> LocalBlobStore:
    return blob_store


def get_auth_service(db: Session = Depends(get_db)) -> AuthService:
    return AuthService(
        SqlCredentialStore(db),
        password_hasher,
        token_service,
        department=settings.department_name,
    )


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    auth_service: AuthService = Depends(get_auth_service),
) -> User:
    token = credentials.credentials if credentials else None
    return auth_service.resolve_token_user(token)


def require_admin(current_user: User = Depends(get_current_user)) -> User:
    if current_user.role != "admin":
        raise Forbidden("Admin access required")
    return current_user


def require_student(current_user: User = Depends(get_current_user)) -> User:
    if current_user.role != "student":
        raise Forbidden("Student access required")
    return current_user
