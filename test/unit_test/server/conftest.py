from typing import AsyncGenerator, Callable

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from gnamiai.core.config import GnamiConfig
from gnamiai.server.main import create_app
from gnamiai.server.services.gateway import GatewayService

REMOTE_CLIENT = ("203.0.113.5", 5000)


@pytest.fixture
def model(scripted_model):
    """Function-backed model answering every prompt with the same line."""
    return scripted_model(lambda prompt: "Hello from GnamiBot")


@pytest.fixture
def build_gateway(gnami_env, tmp_path, model) -> Callable[..., GatewayService]:
    """Build a gateway wired to temporary storage and the scripted model."""

    def _build(config: GnamiConfig | None = None, **kwargs) -> GatewayService:
        kwargs.setdefault("model_factory", model.factory)
        return GatewayService(
            config or GnamiConfig(),
            env=gnami_env,
            config_path=tmp_path / "gnamiai.json",
            database_url=f"sqlite+aiosqlite:///{tmp_path / 'gateway.sqlite'}",
            workspace_dir=tmp_path / "workspace",
            **kwargs,
        )

    return _build


@pytest_asyncio.fixture
async def gateway(build_gateway) -> AsyncGenerator[GatewayService, None]:
    service = build_gateway()
    # ASGITransport does not run the lifespan, so the gateway is started here.
    await service.start(start_channels=False)
    yield service
    await service.stop()


@pytest_asyncio.fixture(name="client")
async def client_fixture(gateway: GatewayService) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client calling the app from a loopback address."""
    app = create_app(gateway)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://localhost") as client:
        yield client


@pytest_asyncio.fixture(name="remote_client")
async def remote_client_fixture(gateway: GatewayService) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client calling the app from a non-local address."""
    app = create_app(gateway)
    transport = ASGITransport(app=app, client=REMOTE_CLIENT)
    async with AsyncClient(transport=transport, base_url="http://localhost") as client:
        yield client
