import os

os.environ["SQLITE_MODE"] = "true"
os.environ["ENVIRONMENT"] = "testing"
os.environ.setdefault("DB_NAME", "test_dental_sync")

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

import models  # noqa: E402,F401
from db.database import Base, get_db  # noqa: E402
from services.clinical_repository import SqlAlchemyClinicalRepository  # noqa: E402
from services.consultation_reconciler import ConsultationReconciler  # noqa: E402
from services.appointment_lifecycle import AppointmentLifecycleCoordinator  # noqa: E402
from services.tooth_resolution import ToothResolutionChain  # noqa: E402
from tests.fakes import ClinicFactory, InMemoryClinicalRepository  # noqa: E402


@pytest.fixture
def repository() -> InMemoryClinicalRepository:
    return InMemoryClinicalRepository()


@pytest.fixture
def clinic(repository: InMemoryClinicalRepository) -> ClinicFactory:
    return ClinicFactory(repository)


@pytest.fixture
def chain(repository: InMemoryClinicalRepository) -> ToothResolutionChain:
    return ToothResolutionChain(repository, auto_create=True)


@pytest.fixture
def coordinator(
    repository: InMemoryClinicalRepository, chain: ToothResolutionChain
) -> AppointmentLifecycleCoordinator:
    return AppointmentLifecycleCoordinator(
        repository, chain, ConsultationReconciler(repository), ordering_guard=True
    )


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(
        bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def sql_repository(db_session) -> SqlAlchemyClinicalRepository:
    return SqlAlchemyClinicalRepository(db_session)


@pytest_asyncio.fixture
async def client(session_factory):
    from main import app

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as test_client:
        yield test_client
    app.dependency_overrides.clear()
