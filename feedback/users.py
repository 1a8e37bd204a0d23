import logging
from fastapi import Depends
from fastapi_users import FastAPIUsers
from fastapi_users.manager import BaseUserManager, IntegerIDMixin
from fastapi_users.authentication import BearerTransport, CookieTransport, AuthenticationBackend, JWTStrategy
from fastapi_users.db import SQLAlchemyUserDatabase
from .models import User
from .database import get_db
from .services.visibility import Viewer
from .settings.config import settings


logger = logging.getLogger(__name__)


SECRET = (settings.SECRET or "").strip()
if not SECRET or SECRET == "CHANGE_ME_SECRET":
    raise RuntimeError(
        "SECRET environment variable must be set to a strong value; the default placeholder is not allowed."
    )

# -------------------------
# Database Dependency
# -------------------------
async def get_user_db(session=Depends(get_db)):
    yield SQLAlchemyUserDatabase(session, User)

# -------------------------
# User Manager
# -------------------------
class UserManager(IntegerIDMixin, BaseUserManager[User, int]):
    reset_password_token_secret = SECRET
    verification_token_secret = SECRET

    async def on_after_register(self, user: User, request=None):
        logger.info("User %s registered", user.id)

async def get_user_manager(user_db=Depends(get_user_db)):
    yield UserManager(user_db)

# -------------------------
# Authentication Backends
# -------------------------
# cookie for the web client, bearer for the mobile client polling the API
cookie_transport = CookieTransport(
    cookie_name="session",
    cookie_max_age=settings.JWT_LIFETIME_SECONDS,
    cookie_secure=settings.COOKIE_SECURE,
    cookie_httponly=True,
)
bearer_transport = BearerTransport(tokenUrl="auth/jwt/login")

def get_jwt_strategy() -> JWTStrategy:
    return JWTStrategy(secret=SECRET, lifetime_seconds=settings.JWT_LIFETIME_SECONDS)

auth_backend = AuthenticationBackend(
    name="jwt",
    transport=bearer_transport,
    get_strategy=get_jwt_strategy,
)
cookie_backend = AuthenticationBackend(
    name="cookie",
    transport=cookie_transport,
    get_strategy=get_jwt_strategy,
)

# -------------------------
# FastAPI Users instance
# -------------------------
fastapi_users = FastAPIUsers[User, int](
    get_user_manager,
    [auth_backend, cookie_backend],
)

# Dependency to get currently active user
current_active_user = fastapi_users.current_user(active=True)


async def current_viewer(user: User = Depends(current_active_user)) -> Viewer:
    """Identity context for the messaging service: who is calling and are they admin."""
    return Viewer.from_user(user)
