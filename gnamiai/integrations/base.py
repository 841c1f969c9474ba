from __future__ import annotations

"""Integration adapter protocol.

An adapter exposes one third-party app to the ``integration`` action. The
runtime only calls ``execute`` on adapters that are both enabled (explicitly,
``enabled: true`` in the config) and configured.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional


@dataclass(frozen=True)
class IntegrationHealth:
    ok: bool
    details: str


class BaseAdapter(ABC):
    """Base class for integration adapters."""

    name: str

    def __init__(self, config: Optional[Mapping[str, Any]] = None) -> None:
        self.config: Mapping[str, Any] = config or {}

    def is_enabled(self) -> bool:
        return self.config.get("enabled") is True

    @abstractmethod
    def is_configured(self) -> bool: ...

    @abstractmethod
    async def health_check(self) -> IntegrationHealth: ...

    @abstractmethod
    async def execute(self, action: str, params: Dict[str, Any]) -> Any: ...
