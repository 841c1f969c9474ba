"""GnamiAI: a local-first personal assistant gateway.

The gateway receives messages from chat channels (Telegram, the built-in
webchat), gates them behind a per-sender pairing approval, bootstraps the
assistant persona, and runs each message through a two-pass model/action
round trip.

Subpackages
-----------

- ``core``: logging, configuration, errors and the relational store.
- ``agent_core``: action protocol, capabilities, persona, workspace docs,
  model provider and the turn state machine.
- ``memory``: long-term memory backends (local JSON file, Mem0).
- ``integrations``: integration runtime, browser adapter and the remote
  debugging session.
- ``channels``: inbound channel transports.
- ``server``: FastAPI application (HTTP API + webchat WebSocket).
"""

__version__ = "0.1.0"
