"""
Database layer for the GnamiAI gateway.

Structure:
- entities/: SQLModel table entities (pairings, sessions, messages, memory events)
- utils.py: engine, session factory and table creation helpers
"""

from .base import Base
from .utils import create_all, create_engine, create_sessionmaker

__all__ = [
    "Base",
    "create_all",
    "create_engine",
    "create_sessionmaker",
]
