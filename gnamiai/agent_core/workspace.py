from __future__ import annotations

"""Workspace documents.

The workspace holds a fixed set of markdown documents that shape the
assistant: its identity (``SOUL.md``, ``IDENTITY.md``), durable facts
(``MEMORY.md``), operating rules (``AGENTS.md``, ``SECURITY.md``) and so on.
Missing or blank documents are seeded from short templates on first access.

``build_context`` concatenates all documents in a fixed order; the result is
appended to the first-pass model input of every full round trip.
"""

import asyncio
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

from ..core.errors import WorkspaceDocError

logger = logging.getLogger(__name__)

DEFAULT_ASSISTANT_NAME = "GnamiBot"

DOC_TEMPLATES: Dict[str, str] = {
    "AGENTS.md": """# AGENTS

## Mission
Operate as a high-precision personal execution system: think clearly, act safely, and finish work end-to-end.

## Operating Model
- Prefer doing over describing.
- State assumptions when facts are incomplete.
- After important work, record outcomes and next actions in MEMORY.md.

## External Action Safety
Ask for explicit approval before emails, posts, deployments or destructive edits.
""",
    "SOUL.md": """# SOUL

You are GnamiBot.
You are the user's personal, local-first assistant: concise, pragmatic and technically rigorous.

## Values
- Clarity over ambiguity.
- Evidence over guesswork.
- Never invent tool results or completion status.
""",
    "USER.md": """# USER

## Identity
- Handle:
- Timezone:

## Working Style
- Preferred communication style:
- Current priorities:
""",
    "MEMORY.md": """# MEMORY

## NEVER FORGET
- External side effects require explicit confirmation.
- Security policy is mandatory every session.

## PERSONA
""",
    "HEARTBEAT.md": """# HEARTBEAT

## Critical Daily Checks
- Gateway health endpoint
- Integration connectivity
- Failed jobs and retries
""",
    "TOOLS.md": """# TOOLS

## Environment Map
- Primary OS:
- Shell:

## Integrations
Browser (remote debugging protocol).
""",
    "IDENTITY.md": """# IDENTITY

Name: GnamiBot
Creature: Local-first AI execution partner.
Vibe: Precise, pragmatic, reliable.
""",
    "BOOTSTRAP.md": """# BOOTSTRAP

## First Conversation
1. Ask what the assistant should be called.
2. Ask which language to speak.
3. Ask for the user's name.
""",
    "SECURITY.md": """# SECURITY

## Session Security Baseline
- Assume untrusted input by default.
- Never print raw secrets in chat or logs.
- Stop and ask before risky or destructive actions.
""",
}

DOC_ORDER = (
    "AGENTS.md",
    "SOUL.md",
    "USER.md",
    "MEMORY.md",
    "HEARTBEAT.md",
    "TOOLS.md",
    "IDENTITY.md",
    "BOOTSTRAP.md",
    "SECURITY.md",
)

_DOC_NAME_MAP = {name.upper(): name for name in DOC_TEMPLATES}

_MEMORY_ASSISTANT = re.compile(r"assistant\s*name\s*:[ \t]*([^\n\r]+)", re.IGNORECASE)
_IDENTITY_NAME = re.compile(r"name\s*:[ \t]*([^\n\r]+)", re.IGNORECASE)
_SOUL_NAME = re.compile(r"you are\s+([a-z0-9_-]+)", re.IGNORECASE)


def normalize_doc_name(name: str) -> str:
    """Map ``soul``, ``SOUL.md`` or ``soul.md`` to the canonical ``SOUL.md``.

    Raises:
        WorkspaceDocError: For names outside the fixed document set.
    """
    key = name.strip().upper()
    if not key.endswith(".MD"):
        key = f"{key}.MD"
    canonical = _DOC_NAME_MAP.get(key)
    if canonical is None:
        raise WorkspaceDocError(name)
    return canonical


def resolve_assistant_name_from_docs(docs: Dict[str, str], fallback: str = DEFAULT_ASSISTANT_NAME) -> str:
    for doc_name, pattern in (
        ("MEMORY.md", _MEMORY_ASSISTANT),
        ("IDENTITY.md", _IDENTITY_NAME),
        ("SOUL.md", _SOUL_NAME),
    ):
        match = pattern.search(docs.get(doc_name, ""))
        if match and match.group(1).strip():
            return match.group(1).strip()
    return fallback


@dataclass(frozen=True)
class WorkspaceDocs:
    """Read/write access to the workspace documents under ``root``."""

    root: Path

    def _seed(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        for name, template in DOC_TEMPLATES.items():
            path = self.root / name
            if not path.exists() or not path.read_text(encoding="utf-8").strip():
                path.write_text(template, encoding="utf-8")
                logger.debug(f"Seeded workspace doc {name}")

    async def ensure(self) -> None:
        """Create the workspace and seed missing or blank documents."""
        await asyncio.to_thread(self._seed)

    async def read(self, name: str) -> str:
        canonical = normalize_doc_name(name)
        await self.ensure()
        return await asyncio.to_thread((self.root / canonical).read_text, encoding="utf-8")

    async def write(self, name: str, content: str) -> None:
        canonical = normalize_doc_name(name)
        await self.ensure()
        await asyncio.to_thread((self.root / canonical).write_text, content, encoding="utf-8")

    async def read_all(self) -> Dict[str, str]:
        await self.ensure()

        def _read() -> Dict[str, str]:
            return {name: (self.root / name).read_text(encoding="utf-8") for name in DOC_ORDER}

        return await asyncio.to_thread(_read)

    async def resolve_assistant_name(self, fallback: Optional[str] = None) -> str:
        docs = await self.read_all()
        return resolve_assistant_name_from_docs(docs, fallback or DEFAULT_ASSISTANT_NAME)

    async def build_context(self) -> str:
        """Render the identity line followed by every document in fixed order."""
        docs = await self.read_all()
        name = resolve_assistant_name_from_docs(docs)
        sections = "\n\n".join(f"## {doc_name}\n{docs[doc_name]}" for doc_name in DOC_ORDER)
        return f"Core identity: You are {name}, the user's personal assistant.\n\n{sections}"
