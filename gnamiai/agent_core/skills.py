"""Local skill store.

Skills are markdown documents stored at ``<skills_dir>/<slug>/SKILL.md``.
The slug is derived from the human name by lowercasing, collapsing every run
of non ``[a-z0-9]`` characters to ``-``, trimming leading/trailing ``-`` and
capping the result at 80 characters.
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import List

from ..core.errors import SkillNameError

logger = logging.getLogger(__name__)

SKILL_FILE_NAME = "SKILL.md"
_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def slugify(name: str) -> str:
    slug = _NON_ALNUM.sub("-", name.lower())
    return slug.strip("-")[:80]


@dataclass(frozen=True)
class SkillStore:
    """Filesystem-backed skill store."""

    skills_dir: Path

    def _skill_file(self, slug: str) -> Path:
        return self.skills_dir / slug / SKILL_FILE_NAME

    async def install(self, name: str, content: str) -> str:
        """Write a skill and return its slug.

        Raises:
            SkillNameError: If ``name`` has no letters or digits.
        """
        slug = slugify(name)
        if not slug:
            raise SkillNameError()
        path = self._skill_file(slug)

        def _write() -> None:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")

        await asyncio.to_thread(_write)
        logger.info(f"Installed skill {slug} at {path}")
        return slug

    async def has(self, name: str) -> bool:
        slug = slugify(name)
        return bool(slug) and await asyncio.to_thread(self._skill_file(slug).is_file)

    async def read(self, name: str) -> str | None:
        slug = slugify(name)
        path = self._skill_file(slug)
        if not slug or not await asyncio.to_thread(path.is_file):
            return None
        return await asyncio.to_thread(path.read_text, encoding="utf-8")

    async def list(self) -> List[str]:
        def _scan() -> List[str]:
            if not self.skills_dir.is_dir():
                return []
            return sorted(entry.name for entry in self.skills_dir.iterdir() if entry.is_dir())

        return await asyncio.to_thread(_scan)
