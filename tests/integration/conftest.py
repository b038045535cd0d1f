"""Integration-test fixtures.

All integration tests share a single event-loop so that the module-level
SQLAlchemy async engine pool and Redis pool (both created at import time)
remain valid across the entire test session.

Requires PostgreSQL with migrations applied and PAYMENT_MODE=SANDBOX;
skipped unless RUN_INTEGRATION=1.
"""

import os
import uuid
from collections.abc import AsyncGenerator
from dataclasses import dataclass
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import text

from src.ec_common.database import async_session_factory
from src.ec_common.enums import ActorKind
from src.ec_gateway.auth.jwt_handler import create_access_token
from src.main import app


_HERE = Path(__file__).parent


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    if os.environ.get("RUN_INTEGRATION") == "1":
        return
    skip = pytest.mark.skip(reason="set RUN_INTEGRATION=1 to run against a live database")
    for item in items:
        if _HERE in item.path.parents:
            item.add_marker(pytest.mark.integration)
            item.add_marker(skip)


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def client() -> AsyncGenerator[AsyncClient, None]:  # type: ignore[override]
    """Session-scoped async HTTP client — keeps the engine pool alive."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@dataclass
class Actors:
    family_id: str
    elderly_id: str
    angel_ids: list[str]

    def family_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(self.family_id, ActorKind.FAMILY)}"}

    def angel_headers(self, index: int = 0) -> dict[str, str]:
        token = create_access_token(self.angel_ids[index], ActorKind.ANGEL)
        return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture(loop_scope="session")
async def actors() -> Actors:
    """Fresh family member, elderly dependent and two angels per test."""
    uid = uuid.uuid4().hex[:8]
    seeded = Actors(
        family_id=f"fam-{uid}",
        elderly_id=f"eld-{uid}",
        angel_ids=[f"ang-{uid}-a", f"ang-{uid}-b"],
    )
    async with async_session_factory() as db:
        await db.execute(
            text("INSERT INTO family_members (id, name) VALUES (:id, :name)"),
            {"id": seeded.family_id, "name": "Integration Family"},
        )
        await db.execute(
            text("INSERT INTO elderly (id, user_id, name) VALUES (:id, :user_id, :name)"),
            {"id": seeded.elderly_id, "user_id": seeded.family_id, "name": "Integration Elder"},
        )
        for angel_id in seeded.angel_ids:
            await db.execute(
                text("INSERT INTO angels (id, name) VALUES (:id, :name)"),
                {"id": angel_id, "name": "Integration Angel"},
            )
        await db.commit()
    return seeded
