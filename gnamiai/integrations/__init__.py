"""Third-party integrations reachable through the ``integration`` agent action.

- ``runtime``: adapter registry and dispatch.
- ``cdp``: remote debugging (Chrome DevTools Protocol) session.
- ``adapters.browser``: page fetch, text extraction and scripted form filling.
"""

from .base import BaseAdapter, IntegrationHealth
from .runtime import IntegrationRuntime, IntegrationStatus, create_integration_runtime

__all__ = [
    "BaseAdapter",
    "IntegrationHealth",
    "IntegrationRuntime",
    "IntegrationStatus",
    "create_integration_runtime",
]
