"""Parameter coercion and HTTP helpers shared by integration adapters."""

from __future__ import annotations

from typing import Any, Dict, Iterable, Optional

import httpx

from ..core.errors import IntegrationError


def as_string(value: Any, label: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise IntegrationError(f'Expected non-empty string for "{label}".')
    return value.strip()


def as_optional_string(value: Any) -> Optional[str]:
    return value.strip() if isinstance(value, str) and value.strip() else None


def as_object(value: Any, label: str) -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise IntegrationError(f'Expected object for "{label}".')
    return value


async def http_json(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    expect_statuses: Iterable[int] = (200,),
    **kwargs: Any,
) -> Any:
    """Send a request and decode its JSON body.

    Raises:
        IntegrationError: The response status is not one of ``expect_statuses``.
    """
    response = await client.request(method, url, **kwargs)
    if response.status_code not in tuple(expect_statuses):
        raise IntegrationError(f"HTTP {response.status_code} {url}: {response.text}")
    return response.json()
