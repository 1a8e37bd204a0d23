import logging
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from passlib.hash import bcrypt
from sqlalchemy import select

from .database import init_db, async_session_maker
from .errors import MessagingError
from .routers.submissions import router as submissions_router
from .schemas import UserCreate, UserRead, UserUpdate
from .settings.config import settings
from .users import fastapi_users, auth_backend, cookie_backend

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

app = FastAPI(title="Practice Feedback")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ----------------------
# Route Includes
# ----------------------
app.include_router(submissions_router, prefix="/api/v1", tags=["submissions"])

# Authentication Routes
app.include_router(
    fastapi_users.get_auth_router(auth_backend),
    prefix="/auth/jwt",
    tags=["auth"]
)
app.include_router(
    fastapi_users.get_auth_router(cookie_backend),
    prefix="/auth/cookie",
    tags=["auth"]
)
app.include_router(
    fastapi_users.get_register_router(UserRead, UserCreate),
    prefix="/auth",
    tags=["auth"]
)
app.include_router(
    fastapi_users.get_users_router(UserRead, UserUpdate),
    prefix="/users",
    tags=["users"]
)


# ----------------------
# Error translation
# ----------------------
@app.exception_handler(MessagingError)
async def _messaging_error_handler(request: Request, exc: MessagingError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def _request_validation_handler(request: Request, exc: RequestValidationError):
    # malformed bodies / query params are plain 400s for the clients
    fields = [".".join(str(p) for p in err.get("loc", ())) for err in exc.errors()]
    return JSONResponse(
        status_code=400,
        content={"error": "validation_error", "message": "Invalid request: " + ", ".join(fields)},
    )


# ----------------------
# Auto-create admin user
# ----------------------
async def create_admin_user():
    from .models import User
    admin_email = settings.ADMIN_EMAIL
    admin_password = settings.ADMIN_PASSWORD

    if not admin_email or not admin_password:
        logger.info("ADMIN_EMAIL or ADMIN_PASSWORD not set, skipping admin creation.")
        return

    async with async_session_maker() as session:
        result = await session.execute(select(User).where(User.email == admin_email))
        existing_admin = result.scalars().first()
        if not existing_admin:
            user = User(
                email=admin_email,
                hashed_password=bcrypt.hash(admin_password),
                full_name=settings.ADMIN_FULL_NAME,
                is_superuser=True,
                is_active=True,
                is_verified=True,
            )
            session.add(user)
            await session.commit()
            logger.info("Admin user created: %s", admin_email)
        else:
            logger.info("Admin user already exists: %s", admin_email)


@app.on_event("startup")
async def on_startup():
    from . import models  # Required for SQLAlchemy model detection
    await init_db()
    await create_admin_user()


@app.get("/healthz")
async def healthz():
    return {"status": "ok"}
