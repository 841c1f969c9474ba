"""Integration adapters."""

from .browser import BrowserAdapter

__all__ = ["BrowserAdapter"]
