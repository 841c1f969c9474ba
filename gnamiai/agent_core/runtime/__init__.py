"""LangGraph-based turn runtime.

The main entry point is ``TurnEngine``: it takes one ``InboundMessage`` from
any channel through pairing, command short-circuits, the persona gate, the
identity short-circuit and the model/action round trip, and sends exactly
one reply.
"""

from .engine import TurnEngine
from .models import TurnDeps

__all__ = [
    "TurnDeps",
    "TurnEngine",
]
