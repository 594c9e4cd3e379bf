"""Shared fixtures: a throwaway SQLite database per test, an API client and
helpers to create actors, properties and contractors."""

import os
from pathlib import Path

os.environ["CONFIG"] = str(Path(__file__).parent / "config" / "test.yaml")

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from propcare_backend.database import Base, get_db  # noqa: E402
from propcare_backend.main import app  # noqa: E402
from propcare_backend.modules.auth.jwt_service import (  # noqa: E402
    create_access_token,
)
from propcare_backend.modules.auth.models import RoleSlug  # noqa: E402
from propcare_backend.modules.auth.schemas import AuthenticatedUser  # noqa: E402
from propcare_backend.modules.auth.services import provision_profile  # noqa: E402
from propcare_backend.modules.directory import crud as directory_crud  # noqa: E402
from propcare_backend.modules.maintenance import services as maintenance_services  # noqa: E402
from propcare_backend.modules.maintenance.models import ReportCategory  # noqa: E402
from propcare_backend.modules.maintenance.schemas import ReportCreate  # noqa: E402
from propcare_backend.storage import LocalStorageProvider  # noqa: E402

PASSWORD = "correct-horse-battery"


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'propcare.db'}",
        connect_args={"timeout": 30},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture(autouse=True)
def storage(tmp_path, monkeypatch):
    provider = LocalStorageProvider(base_dir=str(tmp_path / "storage"))
    monkeypatch.setattr(maintenance_services, "get_storage", lambda: provider)
    return provider


@pytest.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://testserver"
    ) as ac:
        yield ac
    app.dependency_overrides.clear()


def auth_headers(actor: AuthenticatedUser) -> dict[str, str]:
    token = create_access_token(
        profile_id=actor.id, email=actor.email, role=actor.role.value
    )
    return {"Authorization": f"Bearer {token}"}


class World:
    """Builds actors and reference data inside one test database."""

    def __init__(self, session_factory):
        self.session_factory = session_factory
        self._seq = 0

    def _email(self, role: RoleSlug) -> str:
        self._seq += 1
        return f"{role.value}{self._seq}@example.com"

    async def actor(self, role: RoleSlug, name: str | None = None) -> AuthenticatedUser:
        async with self.session_factory() as db:
            profile = await provision_profile(
                db, self._email(role), PASSWORD, role, full_name=name
            )
            contractor_id = None
            if role == RoleSlug.CONTRACTOR:
                contractor = await directory_crud.create_contractor(
                    db,
                    profile_id=profile.id,
                    full_name=name or profile.email,
                    email=profile.email,
                )
                await db.commit()
                contractor_id = contractor.id
            return AuthenticatedUser(
                id=profile.id,
                email=profile.email,
                full_name=profile.full_name,
                role=profile.role,
                contractor_id=contractor_id,
            )

    async def property(self, landlord: AuthenticatedUser, name: str = "Elm Court"):
        async with self.session_factory() as db:
            prop = await directory_crud.create_property(
                db, owner_id=landlord.id, name=name, address="1 Elm Street"
            )
            await db.commit()
            return prop

    async def report(self, tenant: AuthenticatedUser, property_id, **overrides):
        data = {
            "property_id": property_id,
            "title": "Leaking tap",
            "description": "Kitchen tap drips all night",
            "category": ReportCategory.PLUMBING,
        }
        data.update(overrides)
        async with self.session_factory() as db:
            return await maintenance_services.create_report(
                db, tenant, ReportCreate(**data)
            )

    async def approved_report(self, tenant, landlord, property_id):
        report = await self.report(tenant, property_id)
        async with self.session_factory() as db:
            await maintenance_services.approve_report(db, landlord, report.id)
        return report


@pytest.fixture
def world(session_factory):
    return World(session_factory)


@pytest.fixture
async def cast(world):
    """A tenant, a landlord with one property, a helpdesk agent and two contractors."""
    landlord = await world.actor(RoleSlug.LANDLORD, "Lena Landlord")
    tenant = await world.actor(RoleSlug.TENANT, "Tom Tenant")
    helpdesk = await world.actor(RoleSlug.HELPDESK, "Hana Helpdesk")
    contractor = await world.actor(RoleSlug.CONTRACTOR, "Carl Contractor")
    other_contractor = await world.actor(RoleSlug.CONTRACTOR, "Cora Contractor")
    prop = await world.property(landlord)
    return {
        "landlord": landlord,
        "tenant": tenant,
        "helpdesk": helpdesk,
        "contractor": contractor,
        "other_contractor": other_contractor,
        "property": prop,
    }
