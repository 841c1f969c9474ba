from __future__ import annotations

import pytest
from pydantic import ValidationError

from gnamiai.agent_core.schemas.domain import (
    ActionResult,
    InstallSkillAction,
    IntegrationAction,
    PersonaFields,
    ShellAction,
    agent_action_adapter,
)


@pytest.mark.parametrize("raw", ["abc", 0, -5, True, None, float("inf"), float("-inf"), float("nan")])
def test_shell_timeout_non_numeric_or_non_positive_is_dropped(raw) -> None:
    action = agent_action_adapter.validate_python({"type": "shell", "command": "ls", "timeoutMs": raw})
    assert isinstance(action, ShellAction)
    assert action.timeout_ms is None


def test_shell_timeout_numeric_is_kept() -> None:
    action = agent_action_adapter.validate_python({"type": "shell", "command": "ls", "timeoutMs": 1500.0})
    assert action.timeout_ms == 1500


def test_shell_command_must_be_a_string() -> None:
    with pytest.raises(ValidationError):
        agent_action_adapter.validate_python({"type": "shell", "command": 5})


def test_install_skill_requires_content() -> None:
    with pytest.raises(ValidationError):
        agent_action_adapter.validate_python({"type": "install_skill", "name": "notes"})


def test_unknown_action_type_is_rejected() -> None:
    with pytest.raises(ValidationError):
        agent_action_adapter.validate_python({"type": "teleport", "where": "mars"})


def test_extra_keys_are_ignored() -> None:
    action = agent_action_adapter.validate_python(
        {"type": "integration", "app": "browser", "action": "fetch_html", "why": "because"}
    )
    assert isinstance(action, IntegrationAction)
    assert action.params is None


def test_action_result_wraps_any_variant() -> None:
    result = ActionResult(action=InstallSkillAction(name="n", content="c"), ok=True, output="done")
    assert result.action.type == "install_skill"


def test_persona_fields_completion_rules() -> None:
    assert PersonaFields().is_empty()
    assert not PersonaFields(assistant_name="Nova").is_complete()
    assert PersonaFields(user_name="Ana", language="english").is_complete()


def test_persona_fields_merge_prefers_new_values() -> None:
    current = PersonaFields(assistant_name="Nova", user_name="Ana")
    merged = current.merged_with(PersonaFields(user_name="Bea", language="french"))
    assert merged == PersonaFields(assistant_name="Nova", user_name="Bea", language="french")
