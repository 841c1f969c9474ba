"""Server services."""

from .gateway import GatewayService, build_gateway
from .webchat import WebchatHub

__all__ = ["GatewayService", "WebchatHub", "build_gateway"]
