import time
from typing import AsyncGenerator

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from jose import jwt

from crm.core.config import Settings
from main import create_app

TEST_JWT_SECRET = "test-secret"


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        clients_seed_file=None,
        attachments_dir=tmp_path / "orderImages",
        temp_uploads_dir=tmp_path / "tempUploads",
        auth_mode="secret",
        jwt_secret=TEST_JWT_SECRET,
        file_workers=2,
    )


@pytest.fixture
async def app(settings: Settings) -> AsyncGenerator[FastAPI, None]:
    application = create_app(settings)
    async with application.router.lifespan_context(application):
        yield application


def make_token(secret: str = TEST_JWT_SECRET, expires_in: int = 3600, **extra_claims) -> str:
    claims = {"sub": "user-1", "exp": int(time.time()) + expires_in, **extra_claims}
    return jwt.encode(claims, secret, algorithm="HS256")


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    headers = {"Authorization": f"Bearer {make_token()}"}
    async with AsyncClient(transport=transport, base_url="http://testserver", headers=headers) as test_client:
        yield test_client


@pytest.fixture
async def anonymous_client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as test_client:
        yield test_client
