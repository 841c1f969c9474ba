from __future__ import annotations

import json
from pathlib import Path

import pytest

from gnamiai.agent_core.persona import (
    PERSONA_PROMPT,
    PersonaService,
    identity_reply,
    is_identity_question,
    parse_persona_input,
    persona_prompt,
    upsert_line,
)
from gnamiai.agent_core.schemas.domain import PersonaFields
from gnamiai.agent_core.workspace import DOC_TEMPLATES, WorkspaceDocs
from gnamiai.core.config import GnamiConfig


class TestParsePersonaInput:
    def test_french_sentence(self):
        parsed = parse_persona_input("Mon nom c'est Gabriel, je parle francais")
        assert parsed.user_name == "Gabriel"
        assert parsed.language == "francais"
        assert parsed.assistant_name is None

    def test_key_value_pairs(self):
        parsed = parse_persona_input("assistant: Nova; user: Sam; language: Spanish")
        assert parsed == PersonaFields(assistant_name="Nova", user_name="Sam", language="Spanish")

    def test_english_phrases(self):
        parsed = parse_persona_input("I will call you Friday")
        assert parsed.assistant_name == "Friday"

    def test_free_form_chunks(self):
        parsed = parse_persona_input("Jarvis, English, my name is Tony")
        assert parsed == PersonaFields(assistant_name="Jarvis", user_name="Tony", language="English")

    def test_pairs_win_over_later_matchers(self):
        parsed = parse_persona_input("user: Sam\nmy name is Bob")
        assert parsed.user_name == "Sam"

    def test_nothing_recognized(self):
        assert parse_persona_input("hello there").is_empty()


def test_persona_prompt():
    assert persona_prompt(PersonaFields(assistant_name="A")) == PERSONA_PROMPT
    assert persona_prompt(PersonaFields(assistant_name="A", user_name="B", language="C")) == ""


class TestUpsertLine:
    def test_appends_missing_key(self):
        assert upsert_line("# MEMORY\n", "User name", "Sam") == "# MEMORY\n- User name: Sam\n"

    def test_replaces_plain_line(self):
        assert upsert_line("User name: Old\nrest", "User name", "Sam") == "User name: Sam\nrest"

    def test_replaces_bulleted_line(self):
        doc = "# MEMORY\n- User name: Old\n- Preferred language: fr\n"
        assert upsert_line(doc, "User name", "Sam") == "# MEMORY\n- User name: Sam\n- Preferred language: fr\n"


@pytest.mark.parametrize(
    "text,expected",
    [
        ("Who are you?", True),
        ("what is YOUR NAME", True),
        ("who am I talking to", True),
        ("what's the weather", False),
    ],
)
def test_is_identity_question(text, expected):
    assert is_identity_question(text) is expected


def test_identity_reply_uses_first_soul_paragraph():
    reply = identity_reply(DOC_TEMPLATES["SOUL.md"], "GnamiBot")
    assert reply.startswith("You are GnamiBot.\n")
    assert "## Values" not in reply


def test_identity_reply_fallback():
    assert identity_reply("# SOUL\n", "Nova") == (
        "I am Nova, your local-first personal assistant running on this computer."
    )


class TestPersonaService:
    @pytest.fixture
    def service(self, tmp_path: Path) -> PersonaService:
        return PersonaService(WorkspaceDocs(tmp_path / "workspace"), GnamiConfig(), tmp_path / "gnamiai.json")

    async def test_read_defaults(self, service: PersonaService):
        persona = await service.read()
        assert persona == PersonaFields(assistant_name="GnamiBot")
        assert not persona.is_complete()

    async def test_apply_persists_docs_and_config(self, service: PersonaService, tmp_path: Path):
        updated = await service.apply(PersonaFields(assistant_name="Jarvis", user_name="Tony", language="English"))

        assert updated == PersonaFields(assistant_name="Jarvis", user_name="Tony", language="English")
        memory_doc = await service.docs.read("MEMORY.md")
        assert "- Assistant name: Jarvis" in memory_doc
        assert "- User name: Tony" in memory_doc
        assert "- Preferred language: English" in memory_doc
        assert (await service.docs.read("SOUL.md")).startswith("# SOUL\n\nYou are Jarvis.\n")
        assert service.config.agent.assistant_name == "Jarvis"
        saved = json.loads((tmp_path / "gnamiai.json").read_text(encoding="utf-8"))
        assert saved["agent"]["assistantName"] == "Jarvis"
        assert await service.read() == updated

    async def test_partial_updates_merge(self, service: PersonaService):
        await service.apply(PersonaFields(user_name="Tony"))
        persona = await service.apply(PersonaFields(language="Italian"))
        assert persona == PersonaFields(assistant_name="GnamiBot", user_name="Tony", language="Italian")

    async def test_rename_twice(self, service: PersonaService):
        await service.apply(PersonaFields(assistant_name="Jarvis"))
        await service.apply(PersonaFields(assistant_name="Friday"))

        assert (await service.read()).assistant_name == "Friday"
        assert (await service.docs.read("MEMORY.md")).count("Assistant name:") == 1

    async def test_unchanged_name_does_not_write_config(self, service: PersonaService, tmp_path: Path):
        await service.apply(PersonaFields(user_name="Tony"))
        assert not (tmp_path / "gnamiai.json").exists()
