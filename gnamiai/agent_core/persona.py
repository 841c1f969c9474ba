from __future__ import annotations

"""Persona bootstrap.

Three durable facts make up the persona: the assistant's name, the user's
name and the preferred language. They live in two workspace documents:

- ``MEMORY.md`` holds ``Assistant name:``, ``User name:`` and
  ``Preferred language:`` lines.
- ``SOUL.md`` opens with ``You are <assistant name>.``

``parse_persona_input`` runs an ordered list of independent matchers over a
free-form message. Each matcher only fills fields that earlier matchers left
empty, so the first match per field wins:

1. ``key: value`` / ``key = value`` pairs
2. English phrases ("call you X", "my name is X", "I speak X")
3. French phrases ("appelle-toi X", "je m'appelle X", "je parle X")
4. a comma/newline chunk heuristic for answers like
   ``"Jarvis, francais, Gabriel"``
"""

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from ..core.config import GnamiConfig, save_config
from .schemas.domain import PersonaFields
from .workspace import DEFAULT_ASSISTANT_NAME, WorkspaceDocs

logger = logging.getLogger(__name__)

PERSONA_PROMPT = "Before we start: what should I call myself, what language do you want, and what is your name?"

MEMORY_KEY_ASSISTANT = "Assistant name"
MEMORY_KEY_USER = "User name"
MEMORY_KEY_LANGUAGE = "Preferred language"

PersonaMatcher = Callable[[str, PersonaFields], PersonaFields]

_I = re.IGNORECASE

_PAIR = re.compile(
    r"(?:^|[;,\n])\s*(assistant|assistant_name|bot|bot_name|language|lang|user|user_name)\s*[:=]\s*([^;,\n]+)", _I
)

_EN_ASSISTANT = re.compile(r"(?:call\s+you|your\s+name\s+is)\s+([a-z0-9 _-]{2,40})", _I)
_EN_USER = re.compile(r"(?:my\s+name\s+is|i\s+am)\s+([a-z0-9 _-]{2,40})", _I)
_EN_LANGUAGE = re.compile(r"(?:language\s*(?:is)?|i\s*speak)\s+([a-z0-9 _-]{2,40})", _I)

_FR_ASSISTANT = re.compile(r"(?:tu\s+t'?appelles|appelle[-\s]?toi|ton\s+nom\s+est)\s+([a-z0-9 _-]{2,40})", _I)
_FR_USER = re.compile(r"(?:mon\s+nom\s+c'?est|je\s+m'?appelle)\s+([a-z0-9 _-]{2,40})", _I)
_FR_LANGUAGE = re.compile(r"(?:langue|je\s+parle)\s*(?:est|:)?\s*([a-z0-9 _-]{2,60})", _I)

_CHUNK_SPLIT = re.compile(r"[,\n]+")
_LOOKS_LIKE_USER = re.compile(r"(?:my\s+name|i\s+am|mon\s+nom|m'?appelle|c'?est)\b", _I)
_LOOKS_LIKE_LANGUAGE = re.compile(r"(?:fran[cç]ais|english|spanish|qu[eé]b[eé]cois|lang(?:uage)?|je\s+parle)", _I)
_USER_LEAD_IN = re.compile(r"^(?:my\s+name\s+is|i\s+am|mon\s+nom\s+c'?est|je\s+m'?appelle)\s+", _I)
_LANGUAGE_LEAD_IN = re.compile(r"^(?:language\s*(?:is)?|lang(?:ue)?\s*(?:est)?|je\s+parle)\s+", _I)
_NOT_NAME_CHAR = re.compile(r"[^\w _-]")

_MEMORY_ASSISTANT = re.compile(r"assistant\s*name\s*:[ \t]*([^\n\r]+)", _I)
_MEMORY_USER = re.compile(r"user\s*name\s*:[ \t]*([^\n\r]+)", _I)
_MEMORY_LANGUAGE = re.compile(r"preferred\s*language\s*:[ \t]*([^\n\r]+)", _I)
_SOUL_ASSISTANT = re.compile(r"you are\s+([^\n\r.]+)", _I)
_SOUL_SENTENCE = re.compile(r"You are [^\n\r.]+\.?", _I)

_IDENTITY_QUESTION = re.compile(r"\b(who are you|what are you|your name|who am i talking to)\b", _I)
_SOUL_HEADING = re.compile(r"^#\s*SOUL\s*$", re.IGNORECASE | re.MULTILINE)


def _first_group(pattern: re.Pattern[str], text: str) -> Optional[str]:
    match = pattern.search(text)
    if match is None:
        return None
    return match.group(1).strip() or None


def _match_pairs(text: str, parsed: PersonaFields) -> PersonaFields:
    found = PersonaFields()
    for match in _PAIR.finditer(text):
        key = match.group(1).lower()
        value = match.group(2).strip()
        if not value:
            continue
        if "assistant" in key or "bot" in key:
            found.assistant_name = value
        elif "lang" in key:
            found.language = value
        elif "user" in key:
            found.user_name = value
    return found


def _phrase_matcher(assistant: re.Pattern[str], user: re.Pattern[str], language: re.Pattern[str]) -> PersonaMatcher:
    def _match(text: str, parsed: PersonaFields) -> PersonaFields:
        return PersonaFields(
            assistant_name=_first_group(assistant, text),
            user_name=_first_group(user, text),
            language=_first_group(language, text),
        )

    return _match


def _clean_name(value: str) -> str:
    return _NOT_NAME_CHAR.sub("", value).strip()


def _match_chunks(text: str, parsed: PersonaFields) -> PersonaFields:
    if parsed.is_complete() and parsed.assistant_name:
        return PersonaFields()
    chunks = [part.strip() for part in _CHUNK_SPLIT.split(text) if part.strip()]
    if len(chunks) < 2:
        return PersonaFields()

    def looks_like_user(value: str) -> bool:
        return bool(_LOOKS_LIKE_USER.search(value))

    def looks_like_language(value: str) -> bool:
        return bool(_LOOKS_LIKE_LANGUAGE.search(value))

    found = PersonaFields()
    if not parsed.user_name:
        raw_user = next((chunk for chunk in chunks if looks_like_user(chunk)), None)
        if raw_user:
            found.user_name = _USER_LEAD_IN.sub("", raw_user).strip() or None
    if not parsed.language:
        raw_language = next((chunk for chunk in chunks if looks_like_language(chunk)), None)
        if raw_language:
            found.language = _LANGUAGE_LEAD_IN.sub("", raw_language).strip() or None
    assistant_name = parsed.assistant_name
    if not assistant_name:
        candidate = next((c for c in chunks if not looks_like_user(c) and not looks_like_language(c)), None)
        if candidate and len(candidate) <= 40:
            assistant_name = found.assistant_name = _clean_name(candidate) or None
    if not (parsed.user_name or found.user_name):
        remaining: List[str] = []
        for chunk in chunks:
            normalized = _clean_name(chunk)
            if not normalized:
                continue
            if assistant_name and normalized.lower() == assistant_name.lower():
                continue
            if looks_like_language(chunk):
                continue
            remaining.append(chunk)
        if remaining:
            found.user_name = _clean_name(remaining[-1]) or None
    return found


PERSONA_MATCHERS: Sequence[PersonaMatcher] = (
    _match_pairs,
    _phrase_matcher(_EN_ASSISTANT, _EN_USER, _EN_LANGUAGE),
    _phrase_matcher(_FR_ASSISTANT, _FR_USER, _FR_LANGUAGE),
    _match_chunks,
)


def parse_persona_input(text: str) -> PersonaFields:
    """Extract persona fields from a free-form message."""
    parsed = PersonaFields()
    for matcher in PERSONA_MATCHERS:
        found = matcher(text, parsed)
        # Earlier matches are never overwritten.
        parsed = found.merged_with(parsed)
    return parsed


def persona_prompt(persona: PersonaFields) -> str:
    """Return the setup question, or an empty string when nothing is missing."""
    if persona.assistant_name and persona.user_name and persona.language:
        return ""
    return PERSONA_PROMPT


def upsert_line(doc: str, key: str, value: str) -> str:
    """Replace the ``key: ...`` line in ``doc`` or append ``- key: value``."""
    pattern = re.compile(rf"^(?P<lead>[-*][ \t]*)?{re.escape(key)}:[ \t]*.*$", re.IGNORECASE | re.MULTILINE)
    if pattern.search(doc):
        return pattern.sub(lambda m: f"{m.group('lead') or ''}{key}: {value}", doc, count=1)
    return f"{doc.rstrip()}\n- {key}: {value}\n"


def is_identity_question(text: str) -> bool:
    return bool(_IDENTITY_QUESTION.search(text))


def identity_reply(soul_doc: str, assistant_name: str) -> str:
    """First paragraph of ``SOUL.md`` (heading removed) or a generic one-liner."""
    cleaned = _SOUL_HEADING.sub("", soul_doc).strip()
    first_paragraph = re.split(r"\n\s*\n", cleaned)[0].strip() if cleaned else ""
    if not first_paragraph:
        return f"I am {assistant_name}, your local-first personal assistant running on this computer."
    return first_paragraph


@dataclass
class PersonaService:
    """Reads and updates the persona stored in the workspace documents.

    ``config`` is the live user configuration; when the assistant name
    changes it is updated in place and written to ``config_path``.
    """

    docs: WorkspaceDocs
    config: GnamiConfig
    config_path: Optional[Path] = None

    @property
    def default_assistant_name(self) -> str:
        return self.config.agent.assistant_name or DEFAULT_ASSISTANT_NAME

    async def read(self) -> PersonaFields:
        memory_doc = await self.docs.read("MEMORY.md")
        soul_doc = await self.docs.read("SOUL.md")
        return PersonaFields(
            assistant_name=_first_group(_MEMORY_ASSISTANT, memory_doc)
            or _first_group(_SOUL_ASSISTANT, soul_doc)
            or self.default_assistant_name,
            user_name=_first_group(_MEMORY_USER, memory_doc),
            language=_first_group(_MEMORY_LANGUAGE, memory_doc),
        )

    async def apply(self, updates: PersonaFields) -> PersonaFields:
        """Merge ``updates`` into the stored persona and persist it."""
        current = await self.read()
        nxt = current.merged_with(
            PersonaFields(
                assistant_name=(updates.assistant_name or "").strip() or None,
                user_name=(updates.user_name or "").strip() or None,
                language=(updates.language or "").strip() or None,
            )
        )
        assistant_name = nxt.assistant_name or self.default_assistant_name

        memory_doc = await self.docs.read("MEMORY.md")
        soul_doc = await self.docs.read("SOUL.md")
        memory_doc = upsert_line(memory_doc, MEMORY_KEY_ASSISTANT, assistant_name)
        if nxt.user_name:
            memory_doc = upsert_line(memory_doc, MEMORY_KEY_USER, nxt.user_name)
        if nxt.language:
            memory_doc = upsert_line(memory_doc, MEMORY_KEY_LANGUAGE, nxt.language)
        soul_doc = _SOUL_SENTENCE.sub(lambda _: f"You are {assistant_name}.", soul_doc, count=1)

        await self.docs.write("MEMORY.md", memory_doc)
        await self.docs.write("SOUL.md", soul_doc)

        if self.config.agent.assistant_name != assistant_name:
            logger.info(f"Assistant renamed from {self.config.agent.assistant_name} to {assistant_name}")
            self.config.agent.assistant_name = assistant_name
            save_config(self.config, self.config_path)
        return PersonaFields(assistant_name=assistant_name, user_name=nxt.user_name, language=nxt.language)
