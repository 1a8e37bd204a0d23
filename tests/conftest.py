import os

os.environ.setdefault("SECRET", "test-secret-not-for-production")
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from feedback.database import Base
from feedback.models import Program, User
from feedback.services.messaging import MessagingService
from feedback.services.visibility import Viewer


@pytest_asyncio.fixture
async def engine():
    eng = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest_asyncio.fixture
async def db(engine):
    maker = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
    async with maker() as session:
        yield session


async def _user(db, email, full_name, admin=False) -> User:
    u = User(
        email=email,
        full_name=full_name,
        hashed_password="x",
        is_active=True,
        is_superuser=admin,
    )
    db.add(u)
    await db.commit()
    return u


@pytest_asyncio.fixture
async def admin(db):
    return await _user(db, "coach@test.com", "Coach Admin", admin=True)


@pytest_asyncio.fixture
async def student(db):
    return await _user(db, "student@test.com", "Sam Student")


@pytest_asyncio.fixture
async def other_student(db):
    return await _user(db, "other@test.com", "Olive Other")


@pytest_asyncio.fixture
async def program(db):
    p = Program(name="Wing Chun Basics")
    db.add(p)
    await db.commit()
    return p


@pytest_asyncio.fixture
async def second_program(db):
    p = Program(name="Footwork")
    db.add(p)
    await db.commit()
    return p


@pytest.fixture
def svc(db):
    return MessagingService(db)


@pytest.fixture
def as_admin(admin):
    return Viewer(admin.id, is_admin=True)


@pytest.fixture
def as_student(student):
    return Viewer(student.id)


@pytest.fixture
def as_other(other_student):
    return Viewer(other_student.id)
