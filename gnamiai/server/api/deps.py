"""
API Dependencies.

``GatewayDep`` resolves the ``GatewayService`` stored on the application
state; ``AuthorizedGatewayDep`` additionally enforces the gateway token for
non-local clients.
"""

from typing import Annotated, Optional

from fastapi import Depends, HTTPException, status
from starlette.requests import HTTPConnection

from gnamiai.server.core.constant import TOKEN_HEADER
from gnamiai.server.services.gateway import GatewayService


def get_gateway(conn: HTTPConnection) -> GatewayService:
    return conn.app.state.gateway


def request_token(conn: HTTPConnection) -> Optional[str]:
    """Token from the ``x-gnamiai-token`` header or the ``token`` query parameter."""
    return conn.headers.get(TOKEN_HEADER) or conn.query_params.get("token")


def is_authorized(conn: HTTPConnection, gateway: GatewayService) -> bool:
    client_host = conn.client.host if conn.client else None
    return gateway.is_authorized(client_host, request_token(conn))


GatewayDep = Annotated[GatewayService, Depends(get_gateway)]


def require_authorized(conn: HTTPConnection, gateway: GatewayDep) -> GatewayService:
    if not is_authorized(conn, gateway):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    return gateway


AuthorizedGatewayDep = Annotated[GatewayService, Depends(require_authorized)]
