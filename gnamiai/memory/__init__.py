"""Long-term memory backends (local JSON file, Mem0)."""

from .service import MemoryBackend, MemoryService

__all__ = ["MemoryBackend", "MemoryService"]
