"""FastAPI application for the department board."""

from datetime import datetime, timezone
from typing import Any, List

import logging
from fastapi import APIRouter, Depends, FastAPI, File, Form, Request, UploadFile
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from fastapi.staticfiles import StaticFiles
from prometheus_client import CONTENT_TYPE_LATEST, Counter, generate_latest
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from sqlalchemy.orm import Session

from . import services
from .auth import (
    get_auth_service,
    get_blob_store,
    get_current_user,
    get_db,
    require_admin,
    require_student,
)
from .config import settings, validate_runtime_config
from .database import init_db
from .errors import BoardError, InvalidToken, ValidationError
from .models.user import User
from .services import AuthService
from .storage import PUBLIC_PREFIX, LocalBlobStore

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

validate_runtime_config(settings)

limiter = Limiter(key_func=get_remote_address, enabled=settings.rate_limit_enabled)
app = FastAPI(title=settings.api_title)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.mount(PUBLIC_PREFIX, StaticFiles(directory=settings.upload_dir, check_dir=False), name="uploads")
init_db()

VERIFY_PATHS = {"/verify", "/api/auth/verify"}

# Prometheus counter to track API requests by method, endpoint and status code
REQUEST_COUNTER = Counter(
    "api_requests_total",
    "Total API requests",
    ["method", "endpoint", "status"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log incoming requests and their outcomes while updating metrics."""
    logger.info("request %s %s", request.method, request.url.path)
    try:
        response = await call_next(request)
        REQUEST_COUNTER.labels(
            method=request.method,
            endpoint=request.url.path,
            status=str(response.status_code),
        ).inc()
        logger.info(
            "response %s %s status %s",
            request.method,
            request.url.path,
            response.status_code,
        )
        return response
    except Exception:
        REQUEST_COUNTER.labels(
            method=request.method,
            endpoint=request.url.path,
            status="500",
        ).inc()
        logger.exception(
            "error handling %s %s", request.method, request.url.path
        )
        raise


def _error_body(message: str, exc: Exception | None = None, details=None) -> dict:
    body = {"error": message}
    if not settings.is_production and (details is not None or exc is not None):
        body["details"] = details if details is not None else str(exc)
    return body


@app.exception_handler(BoardError)
async def board_error_handler(request: Request, exc: BoardError):
    if exc.status_code >= 500:
        return JSONResponse(status_code=exc.status_code, content=_error_body(exc.message, exc.__cause__ or exc))
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    if request.url.path in VERIFY_PATHS:
        # Whatever was posted, it is not a usable token.
        return JSONResponse(status_code=401, content={"valid": False, "error": InvalidToken.message})
    return JSONResponse(
        status_code=400,
        content=_error_body("Invalid request body", details=jsonable_encoder(exc.errors())),
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error("unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content=_error_body("Something went wrong!", exc))


# ---------------------------------------------------------------------------
# Schemas


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        coerce_numbers_to_str=True,
    )


class UserPublic(CamelModel):
    """User fields that are safe to hand to clients."""

    id: str
    name: str
    email: str
    matric_number: str | None = None
    level: int | None = None
    student_type: str | None = None
    role: str
    department: str | None = None
    phone: str | None = None
    profile_image: str | None = None
    created_at: datetime | None = None


class SignupRequest(CamelModel):
    name: str | None = None
    email: str | None = None
    matric_number: str | None = None
    level: int | str | None = None
    password: str | None = None
    student_type: str | None = None
    phone: str | None = None


class LoginRequest(CamelModel):
    identifier: str | None = None
    email: str | None = None
    matric_number: str | None = None
    password: str | None = None


class VerifyRequest(BaseModel):
    token: Any = None


class AuthResponse(BaseModel):
    success: bool = True
    message: str
    user: UserPublic
    token: str


class ProfileUpdateRequest(CamelModel):
    name: str | None = None
    email: str | None = None
    phone: str | None = None


class AuthorOut(CamelModel):
    name: str
    role: str


class AnnouncementOut(CamelModel):
    id: str
    title: str
    content: str
    category: str
    is_featured: bool
    is_urgent: bool
    file_url: str | None = None
    author_id: str
    author: AuthorOut | None = None
    created_at: datetime
    updated_at: datetime


class TimetableOut(CamelModel):
    id: str
    title: str
    level: int
    semester: str
    file_url: str
    created_at: datetime


class ResultOut(CamelModel):
    id: str
    student_id: str
    course_code: str
    course_title: str
    grade: str
    semester: str
    session: str
    level: int
    created_at: datetime


class EventOut(CamelModel):
    id: str
    title: str
    description: str
    date: datetime
    venue: str
    image_url: str | None = None
    created_at: datetime


class ArchiveOut(CamelModel):
    id: str
    student_id: str
    announcement_id: str
    archived_at: datetime
    announcement: AnnouncementOut | None = None


def _form_flag(value: str | None) -> bool | None:
    if value is None:
        return None
    return value.strip().lower() == "true"


# ---------------------------------------------------------------------------
# Health


@app.get("/health")
@app.get("/api/health")
def health():
    """Liveness check."""
    return {
        "status": "ok",
        "message": "Department Board API is running!",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": settings.app_env,
    }


@app.get("/metrics", include_in_schema=False)
def metrics():
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


# ---------------------------------------------------------------------------
# Authentication

auth_router = APIRouter()


@auth_router.post("/signup", response_model=AuthResponse, status_code=201)
@limiter.limit(settings.auth_rate_limit)
def signup(
    request: Request,
    payload: SignupRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    """Register a student account and log it in."""
    user, token = auth_service.signup(
        name=payload.name,
        email=payload.email,
        matric_number=payload.matric_number,
        level=payload.level,
        password=payload.password,
        student_type=payload.student_type,
        phone=payload.phone,
    )
    return AuthResponse(
        message="Student registered successfully",
        user=UserPublic.model_validate(user),
        token=token,
    )


@auth_router.post("/login", response_model=AuthResponse)
@limiter.limit(settings.auth_rate_limit)
def login(
    request: Request,
    payload: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    """Log in with an email address or a matric number."""
    user, token = auth_service.login(
        password=payload.password,
        identifier=payload.identifier,
        email=payload.email,
        matric_number=payload.matric_number,
    )
    return AuthResponse(
        message="Login successful",
        user=UserPublic.model_validate(user),
        token=token,
    )


@auth_router.post("/verify")
@limiter.limit(settings.auth_rate_limit)
def verify(
    request: Request,
    payload: VerifyRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    try:
        identity = auth_service.verify_token(payload.token)
    except InvalidToken as exc:
        return JSONResponse(status_code=401, content={"valid": False, "error": exc.message})
    return {"valid": True, "user": identity}


@auth_router.get("/me", response_model=UserPublic)
def me(current_user: User = Depends(get_current_user)):
    return current_user


app.include_router(auth_router)
app.include_router(auth_router, prefix="/api/auth", include_in_schema=False)


# ---------------------------------------------------------------------------
# Public board content


@app.get("/api/announcements", response_model=List[AnnouncementOut])
def get_announcements(
    search: str | None = None,
    category: str | None = None,
    featured: str | None = None,
    urgent: str | None = None,
    db: Session = Depends(get_db),
):
    """Return announcements, newest first, with optional filters."""
    return services.list_announcements(db, search=search, category=category, featured=featured, urgent=urgent)


@app.get("/api/announcements/featured", response_model=List[AnnouncementOut])
def get_featured_announcements(db: Session = Depends(get_db)):
    return services.list_featured_announcements(db)


@app.get("/api/announcements/{announcement_id}", response_model=AnnouncementOut)
def get_announcement(announcement_id: str, db: Session = Depends(get_db)):
    return services.get_announcement(db, announcement_id)


@app.get("/api/timetables/{level}", response_model=TimetableOut)
def get_timetable(level: int, db: Session = Depends(get_db)):
    """Return the latest first-semester timetable for a level."""
    return services.latest_timetable(db, level, semester="first")


@app.get("/api/events", response_model=List[EventOut])
def get_events(db: Session = Depends(get_db)):
    return services.list_events(db)


# ---------------------------------------------------------------------------
# Admin


@app.post("/api/admin/announcements", status_code=201)
def post_announcement(
    title: str | None = Form(None),
    content: str | None = Form(None),
    category: str | None = Form(None),
    is_featured: str | None = Form(None, alias="isFeatured"),
    is_urgent: str | None = Form(None, alias="isUrgent"),
    file: UploadFile | None = File(None),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
    blob_store: LocalBlobStore = Depends(get_blob_store),
):
    """Create an announcement, optionally with an attached file."""
    if any(not value or not value.strip() for value in (title, content, category)):
        raise ValidationError("Title, content, and category are required")
    with blob_store.staged(file, "file") as file_url:
        announcement = services.create_announcement(
            db,
            admin,
            title=title,
            content=content,
            category=category,
            is_featured=bool(_form_flag(is_featured)),
            is_urgent=bool(_form_flag(is_urgent)),
            file_url=file_url,
        )
    return {
        "message": "Announcement created successfully",
        "announcement": AnnouncementOut.model_validate(announcement),
    }


@app.put("/api/admin/announcements/{announcement_id}")
def put_announcement(
    announcement_id: str,
    title: str | None = Form(None),
    content: str | None = Form(None),
    category: str | None = Form(None),
    is_featured: str | None = Form(None, alias="isFeatured"),
    is_urgent: str | None = Form(None, alias="isUrgent"),
    file: UploadFile | None = File(None),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
    blob_store: LocalBlobStore = Depends(get_blob_store),
):
    services.get_announcement(db, announcement_id)
    with blob_store.staged(file, "file") as file_url:
        announcement = services.update_announcement(
            db,
            announcement_id,
            title=title,
            content=content,
            category=category,
            is_featured=_form_flag(is_featured),
            is_urgent=_form_flag(is_urgent),
            file_url=file_url,
        )
    return {
        "message": "Announcement updated successfully",
        "announcement": AnnouncementOut.model_validate(announcement),
    }


@app.delete("/api/admin/announcements/{announcement_id}")
def delete_announcement(
    announcement_id: str,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
    blob_store: LocalBlobStore = Depends(get_blob_store),
):
    announcement = services.delete_announcement(db, announcement_id)
    blob_store.delete(announcement.file_url)
    return {"message": "Announcement deleted successfully"}


@app.post("/api/admin/timetables", status_code=201)
def post_timetable(
    title: str | None = Form(None),
    level: str | None = Form(None),
    semester: str | None = Form(None),
    file: UploadFile | None = File(None),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
    blob_store: LocalBlobStore = Depends(get_blob_store),
):
    """Upload a timetable document for a level."""
    if file is None or not file.filename:
        raise ValidationError("Title, level, semester, and file are required")
    with blob_store.staged(file, "file") as file_url:
        timetable = services.create_timetable(db, title, level, semester, file_url)
    return {
        "message": "Timetable uploaded successfully",
        "timetable": TimetableOut.model_validate(timetable),
    }


@app.get("/api/admin/timetables/{level}", response_model=List[TimetableOut])
def get_admin_timetables(
    level: int,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return services.list_timetables(db, level)


@app.post("/api/admin/events", status_code=201)
def post_event(
    title: str | None = Form(None),
    description: str | None = Form(None),
    date: str | None = Form(None),
    venue: str | None = Form(None),
    image: UploadFile | None = File(None),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
    blob_store: LocalBlobStore = Depends(get_blob_store),
):
    if any(not value or not value.strip() for value in (title, description, date, venue)):
        raise ValidationError("All event fields are required")
    with blob_store.staged(image, "image") as image_url:
        event = services.create_event(db, title, description, date, venue, image_url=image_url)
    return {"message": "Event created successfully", "event": EventOut.model_validate(event)}


@app.post("/api/admin/results", status_code=201)
def post_result(
    student_id: str | None = Form(None, alias="studentId"),
    course_code: str | None = Form(None, alias="courseCode"),
    course_title: str | None = Form(None, alias="courseTitle"),
    grade: str | None = Form(None),
    semester: str | None = Form(None),
    session: str | None = Form(None),
    level: str | None = Form(None),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Record a single course result for a student."""
    result = services.create_result(
        db,
        student_id=student_id,
        course_code=course_code,
        course_title=course_title,
        grade=grade,
        semester=semester,
        session_name=session,
        level=level,
    )
    return {"message": "Result uploaded successfully", "result": ResultOut.model_validate(result)}


# ---------------------------------------------------------------------------
# Students


@app.get("/api/students/profile", response_model=UserPublic)
def get_profile(student: User = Depends(require_student)):
    return student


@app.put("/api/students/profile")
def put_profile(
    payload: ProfileUpdateRequest,
    student: User = Depends(require_student),
    db: Session = Depends(get_db),
):
    updated = services.update_profile(db, student, payload.name, payload.email, payload.phone)
    return {"message": "Profile updated successfully", "user": UserPublic.model_validate(updated)}


@app.put("/api/students/profile/picture")
def put_profile_picture(
    profile_image: UploadFile | None = File(None, alias="profileImage"),
    student: User = Depends(require_student),
    db: Session = Depends(get_db),
    blob_store: LocalBlobStore = Depends(get_blob_store),
):
    if profile_image is None or not profile_image.filename:
        raise ValidationError("No image file provided")
    if not (profile_image.content_type or "").startswith("image/"):
        raise ValidationError("Only image files are allowed")
    previous = student.profile_image
    with blob_store.staged(profile_image, "profile", settings.max_profile_image_bytes) as image_url:
        updated = services.update_profile_image(db, student, image_url)
    blob_store.delete(previous)
    return {
        "message": "Profile picture updated successfully",
        "student": {"id": updated.id, "name": updated.name, "profileImage": updated.profile_image},
    }


@app.get("/api/students/results", response_model=List[ResultOut])
def get_student_results(student: User = Depends(require_student), db: Session = Depends(get_db)):
    return services.list_results(db, student)


@app.get("/api/students/timetable", response_model=TimetableOut)
def get_student_timetable(student: User = Depends(require_student), db: Session = Depends(get_db)):
    return services.student_timetable(db, student)


@app.post("/api/students/archives/{announcement_id}")
def post_archive(
    announcement_id: str,
    student: User = Depends(require_student),
    db: Session = Depends(get_db),
):
    archive = services.archive_announcement(db, student, announcement_id)
    return {"message": "Announcement archived successfully", "archive": ArchiveOut.model_validate(archive)}


@app.get("/api/students/archives", response_model=List[ArchiveOut])
def get_archives(student: User = Depends(require_student), db: Session = Depends(get_db)):
    return services.list_archives(db, student)


@app.delete("/api/students/archives/{archive_id}")
def delete_archive(
    archive_id: str,
    student: User = Depends(require_student),
    db: Session = Depends(get_db),
):
    services.remove_archive(db, student, archive_id)
    return {"message": "Removed from archive successfully"}
