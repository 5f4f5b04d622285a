from fastapi import FastAPI, Depends, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
from contextlib import asynccontextmanager
import logging

from .config import settings, configure_logging
from .db import create_db_and_tables, async_session_maker
from .errors import AppError, UnexpectedError
from .models import user_model, grade_model, exam_model, question_model, submission_model  # noqa: F401
from .routers import auth, admin_routers, teacher_routers, student_routers, exam_routers, submission_routers
from .security import auth_backend, app_users
from .dependencies import users_router_permission
from .schemas.user_schema import UserRead, UserUpdate
from .services.user_service import ensure_admin

configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # run once when app starts. Make DB and the bootstrap admin.
    await create_db_and_tables()
    if settings.ADMIN_EMAIL and settings.ADMIN_PASSWORD:
        async with async_session_maker() as session:
            await ensure_admin(session, settings.ADMIN_EMAIL, settings.ADMIN_PASSWORD, settings.ADMIN_NAME)
    yield

app = FastAPI(title="Exam Portal", lifespan=lifespan)


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,  # which sites can call this API
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Every error leaves the API as {"error": <message>, ...}
@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(exc.to_dict()))


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid request", "details": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(SQLAlchemyError)
async def storage_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception("Storage error on %s %s", request.method, request.url.path)
    return await app_error_handler(request, UnexpectedError(str(exc)))


@app.get("/health", tags=["health"])
async def health():
    return {"status": "OK", "message": "Backend is running"}


# Attach users router with small permission check. This router provides /users and /users/me
app.include_router(
    app_users.get_users_router(UserRead, UserUpdate),
    prefix="/users",
    tags=["users"],
    dependencies=[Depends(users_router_permission)],
)


app.include_router(auth.router, prefix="/api")
app.include_router(admin_routers.router, prefix="/api")
app.include_router(teacher_routers.router, prefix="/api")
app.include_router(student_routers.router, prefix="/api")
app.include_router(exam_routers.router, prefix="/api")
app.include_router(submission_routers.router, prefix="/api")

# Auth routers
app.include_router(app_users.get_auth_router(auth_backend), prefix="/auth/jwt", tags=["auth"])
