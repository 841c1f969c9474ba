"""Inbound channels (Telegram polling; the webchat lives in the server package)."""

from .base import InboundMessage, MessageHandler
from .telegram import TelegramChannel

__all__ = ["InboundMessage", "MessageHandler", "TelegramChannel"]
