"""
Gateway Service.

Wires the store, workspace, memory, model runtime, action registry,
integrations and channels into one ``TurnEngine`` and owns their lifecycle.
The FastAPI app keeps one ``GatewayService`` on ``app.state.gateway``.
"""

from __future__ import annotations

import os
import platform
import socket
from dataclasses import asdict
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

import httpx

from gnamiai.agent_core.capabilities import ActionDeps, build_default_registry
from gnamiai.agent_core.model_provider import AgentRuntime, ModelFactory
from gnamiai.agent_core.persona import PersonaService
from gnamiai.agent_core.runtime import TurnDeps, TurnEngine
from gnamiai.agent_core.skills import SkillStore
from gnamiai.agent_core.workspace import WorkspaceDocs
from gnamiai.channels import InboundMessage, TelegramChannel
from gnamiai.channels.telegram import TELEGRAM_API_BASE
from gnamiai.core.config import GnamiConfig, Settings, TelegramConfig, load_config, settings
from gnamiai.core.database import create_all, create_engine, create_sessionmaker
from gnamiai.core.database.base import utc_now
from gnamiai.core.logging_config import get_logger
from gnamiai.core.store import GatewayStore
from gnamiai.integrations import IntegrationRuntime, create_integration_runtime
from gnamiai.memory import MemoryService
from gnamiai.server.core.constant import LOCAL_HOSTS

from .webchat import WebchatHub

logger = get_logger(__name__)


def _telegram_config(config: GnamiConfig, env: Settings) -> Optional[TelegramConfig]:
    if config.channels.telegram is not None:
        return config.channels.telegram
    if env.telegram_bot_token:
        return TelegramConfig(bot_token=env.telegram_bot_token)
    return None


class GatewayService:
    """
    Application service behind the HTTP API.

    Every collaborator can be overridden so tests can run the full turn
    pipeline against temporary directories, a function-backed model and mock
    HTTP transports.
    """

    def __init__(
        self,
        config: GnamiConfig,
        *,
        env: Settings = settings,
        config_path: Optional[Path] = None,
        database_url: Optional[str] = None,
        workspace_dir: Optional[Path] = None,
        model_factory: Optional[ModelFactory] = None,
        memory: Optional[MemoryService] = None,
        integrations: Optional[IntegrationRuntime] = None,
        telegram_api_base: str = TELEGRAM_API_BASE,
        telegram_transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.config = config
        self.env = env
        self.started_at: datetime = utc_now()

        self.db_engine = create_engine(database_url or env.store_url)
        self.store = GatewayStore(create_sessionmaker(self.db_engine))

        workspace = workspace_dir or env.workspace_dir
        self.docs = WorkspaceDocs(workspace)
        self.skills = SkillStore(workspace / "skills")
        self.memory = memory or MemoryService(config, env=env)
        self.integrations = integrations or create_integration_runtime(config)
        self.agent = AgentRuntime(config, env=env, model_factory=model_factory)
        self.persona = PersonaService(self.docs, config, config_path or env.config_path)

        self.engine = TurnEngine(
            TurnDeps(
                store=self.store,
                memory=self.memory,
                skills=self.skills,
                docs=self.docs,
                persona=self.persona,
                agent=self.agent,
                registry=build_default_registry(),
                action_deps=ActionDeps(skills=self.skills, integrations=self.integrations.exec),
            )
        )
        self.webchat = WebchatHub()

        telegram_config = _telegram_config(config, env)
        self.telegram: Optional[TelegramChannel] = (
            TelegramChannel(
                telegram_config,
                self.handle_inbound,
                api_base=telegram_api_base,
                transport=telegram_transport,
            )
            if telegram_config is not None
            else None
        )

    async def handle_inbound(self, message: InboundMessage) -> None:
        await self.engine.handle_inbound(message)

    async def start(self, *, start_channels: bool = True) -> None:
        """Create tables, seed workspace documents and start polling channels."""
        await create_all(self.db_engine)
        await self.docs.ensure()
        if start_channels and self.telegram is not None:
            self.telegram.start()
        logger.info("Gateway started")

    async def stop(self) -> None:
        if self.telegram is not None:
            await self.telegram.stop()
        await self.db_engine.dispose()
        logger.info("Gateway stopped")

    def is_authorized(self, client_host: Optional[str], token: Optional[str]) -> bool:
        """Local clients are always allowed; others need the configured token."""
        host = client_host or ""
        if host in LOCAL_HOSTS or host.endswith("127.0.0.1"):
            return True
        configured = self.config.gateway.auth_token
        if not configured:
            return True
        return token == configured

    def instance_info(self) -> Dict[str, Any]:
        """Describe the process serving this gateway."""
        host = socket.gethostname()
        return {
            "id": f"host:{host}",
            "host": host,
            "platform": f"{platform.system()} {platform.release()}",
            "pid": os.getpid(),
            "python": platform.python_version(),
            "cwd": os.getcwd(),
            "startedAt": self.started_at.isoformat(),
        }

    async def overview(self) -> Dict[str, Any]:
        stats = await self.store.overview_stats()
        return {
            "health": "ok",
            "model": self.config.agent.model,
            "gatewayPort": self.config.gateway.port,
            "channelsConfigured": {
                "webchat": self.config.channels.webchat.enabled,
                "telegram": self.telegram is not None,
            },
            "memory": self.memory.describe(),
            "integrations": [asdict(status) for status in self.integrations.list()],
            "instance": self.instance_info(),
            "stats": stats.model_dump(mode="json"),
        }


def build_gateway(config: Optional[GnamiConfig] = None, *, env: Settings = settings) -> GatewayService:
    """Build the gateway from the persisted configuration."""
    return GatewayService(config or load_config(env.config_path), env=env)
