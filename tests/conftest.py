import os

# Point the application at throwaway settings before it is imported
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["JWT_SECRET_KEY"] = "test-secret-key"
os.environ["SMTP_HOST"] = ""
os.environ["LOG_DIR"] = ""

import pytest
from dataclasses import dataclass, field
from typing import AsyncGenerator, Dict, List, Optional
from uuid import UUID
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool
from fastapi import FastAPI
from asgi_lifespan import LifespanManager

from app.core.auth import issue_token
from app.core.database import get_db
from app.core.email import EmailNotifier
from app.crud import case as case_crud
from app.crud import client as client_crud
from app.crud import permission as permission_crud
from app.crud import tenant as tenant_crud
from app.crud import user as user_crud
from app.db.base import Base
from app.db.models import Case, Client, User, UserRole
from app.realtime.manager import ConnectionManager
from app.schemas.case import CaseCreate
from app.schemas.client import ClientCreate
from app.schemas.user import UserCreate
from app.services.messaging import MessagingService
from app.services.notifications import NotificationScheduler
from main import app

TEST_PASSWORD = "test_password123"


class RecordingNotifier(EmailNotifier):
    """E-mail notifier that records messages instead of sending them."""

    def __init__(self, succeed: bool = True):
        super().__init__()
        self.succeed = succeed
        self.sent: List[Dict[str, Optional[str]]] = []

    async def send(self, to_email, subject, text_body, html_body=None) -> bool:
        self.sent.append({
            "to": to_email,
            "subject": subject,
            "text": text_body,
            "html": html_body,
        })
        return self.succeed


class FakeWebSocket:
    """Stand-in for a realtime connection that records outbound frames."""

    def __init__(self):
        self.accepted = False
        self.sent: List[dict] = []

    async def accept(self):
        self.accepted = True

    async def send_json(self, data):
        self.sent.append(data)

    def events(self, name: str) -> list:
        return [frame["data"] for frame in self.sent if frame["event"] == name]


@dataclass
class Office:
    """A seeded tenant: its users, two client logins and one case."""
    tenant_id: UUID
    admin: User
    lawyer: User
    outsider: User
    client: Client
    client_user: User
    other_client: Client
    other_client_user: User
    case: Case
    tokens: Dict[str, str] = field(default_factory=dict)

    def headers(self, who: str) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.tokens[who]}"}


async def _client_with_login(db: AsyncSession, tenant_id: UUID, email: str, first_name: str):
    client = await client_crud.create_client(
        db,
        ClientCreate(first_name=first_name, last_name="Client", email=email),
        tenant_id,
    )
    user = await user_crud.create_user(
        db,
        UserCreate(email=email, password=TEST_PASSWORD, first_name=first_name, last_name="Client"),
        tenant_id,
        UserRole.client,
    )
    client.user_id = user.id
    await db.commit()
    return client, user


async def build_office(db: AsyncSession, name: str, domain: str) -> Office:
    admin = await tenant_crud.register_user(
        db,
        name,
        UserCreate(email=f"admin@{domain}", password=TEST_PASSWORD, first_name="Ana", last_name="Admin"),
    )
    tenant_id = admin.tenant_id
    lawyer = await user_crud.create_user(
        db,
        UserCreate(email=f"lawyer@{domain}", password=TEST_PASSWORD, first_name="Luis", last_name="Lawyer"),
        tenant_id,
        UserRole.lawyer,
    )
    outsider = await user_crud.create_user(
        db,
        UserCreate(email=f"outsider@{domain}", password=TEST_PASSWORD, first_name="Olga", last_name="Outsider"),
        tenant_id,
        UserRole.lawyer,
    )
    client, client_user = await _client_with_login(db, tenant_id, f"client@{domain}", "Carla")
    other_client, other_client_user = await _client_with_login(db, tenant_id, f"other@{domain}", "Otto")

    case = await case_crud.create_case(
        db,
        CaseCreate(title=f"{name} v. Costa", client_id=client.id),
        tenant_id,
        lawyer.id,
    )

    office = Office(
        tenant_id=tenant_id,
        admin=admin,
        lawyer=lawyer,
        outsider=outsider,
        client=client,
        client_user=client_user,
        other_client=other_client,
        other_client_user=other_client_user,
        case=case,
    )
    users = {
        "admin": admin,
        "lawyer": lawyer,
        "outsider": outsider,
        "client": client_user,
        "other_client": other_client_user,
    }
    for who, user in users.items():
        office.tokens[who] = issue_token(user, await user_crud.get_permission_names(db, user.id))
    return office


@pytest.fixture
async def engine(tmp_path):
    """A fresh SQLite database file per test."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Session used to seed and inspect test data."""
    async with session_factory() as session:
        await permission_crud.seed_permissions(session)
        yield session


@pytest.fixture
async def office(db) -> Office:
    return await build_office(db, "Silva Advogados", "silva.com")


@pytest.fixture
async def other_office(db, office) -> Office:
    return await build_office(db, "Costa & Filhos", "costa.com")


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def connections() -> ConnectionManager:
    return ConnectionManager()


@pytest.fixture
async def scheduler() -> AsyncGenerator[NotificationScheduler, None]:
    # Long enough that no alert fires during a test unless it asks for one
    scheduler = NotificationScheduler(delay=3600)
    yield scheduler
    await scheduler.shutdown()


@pytest.fixture
def messaging(session_factory, scheduler, connections, notifier) -> MessagingService:
    return MessagingService(
        session_factory=session_factory,
        scheduler=scheduler,
        connections=connections,
        notifier=notifier,
    )


@pytest.fixture
async def test_app(session_factory, scheduler, connections, notifier, messaging) -> AsyncGenerator[FastAPI, None]:
    """The application wired to the per-test database and services."""
    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    async with LifespanManager(app):
        app.state.session_factory = session_factory
        app.state.scheduler = scheduler
        app.state.connections = connections
        app.state.notifier = notifier
        app.state.messaging = messaging
        app.dependency_overrides[get_db] = override_get_db
        yield app
        app.dependency_overrides.clear()


@pytest.fixture
async def client(test_app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(
        transport=ASGITransport(app=test_app),
        base_url="http://test",
    ) as client:
        yield client


@pytest.fixture
def make_socket():
    return FakeWebSocket
