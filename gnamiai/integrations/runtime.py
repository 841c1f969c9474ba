from __future__ import annotations

"""Integration runtime.

``IntegrationRuntime`` is the dispatcher behind the ``integration`` agent
action. It resolves the adapter by app name and refuses to run adapters
that are missing, disabled or not configured.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from ..core.config import GnamiConfig
from ..core.errors import (
    IntegrationDisabledError,
    IntegrationNotConfiguredError,
    IntegrationNotFoundError,
)
from .adapters.browser import BrowserAdapter
from .base import BaseAdapter, IntegrationHealth

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IntegrationStatus:
    app: str
    enabled: bool
    configured: bool


class IntegrationRuntime:
    """Registry of integration adapters keyed by app name."""

    def __init__(self, adapters: Iterable[BaseAdapter]) -> None:
        self._adapters: Dict[str, BaseAdapter] = {adapter.name: adapter for adapter in adapters}

    def list(self) -> List[IntegrationStatus]:
        return [
            IntegrationStatus(app=adapter.name, enabled=adapter.is_enabled(), configured=adapter.is_configured())
            for adapter in self._adapters.values()
        ]

    async def health(self, app: Optional[str] = None) -> Dict[str, IntegrationHealth]:
        results: Dict[str, IntegrationHealth] = {}
        for adapter in self._adapters.values():
            if app and adapter.name != app:
                continue
            try:
                results[adapter.name] = await adapter.health_check()
            except Exception as e:
                results[adapter.name] = IntegrationHealth(ok=False, details=str(e))
        return results

    async def exec(self, app: str, action: str, params: Optional[Dict[str, Any]] = None) -> Any:
        adapter = self._adapters.get(app)
        if adapter is None:
            raise IntegrationNotFoundError(app)
        if not adapter.is_enabled():
            raise IntegrationDisabledError(app)
        if not adapter.is_configured():
            raise IntegrationNotConfiguredError(app)
        logger.info(f"Executing integration {app}.{action}")
        return await adapter.execute(action, params or {})


def create_integration_runtime(config: GnamiConfig) -> IntegrationRuntime:
    return IntegrationRuntime([BrowserAdapter(config.integrations.browser.model_dump(by_alias=True))])
