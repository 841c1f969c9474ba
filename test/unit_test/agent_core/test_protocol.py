from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import List

import pytest

from gnamiai.agent_core.capabilities import (
    ActionDeps,
    CapabilityContext,
    CapabilityRegistry,
    CapabilityResult,
    build_default_registry,
)
from gnamiai.agent_core.protocol import (
    MAX_ACTIONS_PER_TURN,
    execute_agent_actions,
    parse_agent_actions,
    strip_agent_actions,
    summarize_action_results,
)
from gnamiai.agent_core.schemas.domain import (
    ActionResult,
    ActionType,
    AgentAction,
    InstallSkillAction,
    IntegrationAction,
    ShellAction,
)
from gnamiai.agent_core.skills import SkillStore


def _block(payload) -> str:
    body = payload if isinstance(payload, str) else json.dumps(payload)
    return f"```gnami-action\n{body}\n```"


@dataclass(frozen=True)
class _RecordingShell:
    calls: List[str]
    action_type: ActionType = ActionType.shell

    async def execute(self, ctx: CapabilityContext, *, action: AgentAction) -> CapabilityResult:
        assert isinstance(action, ShellAction)
        self.calls.append(action.command)
        if action.command == "fail":
            raise RuntimeError("boom")
        return CapabilityResult(ok=True, output=f"ran {action.command}")


@pytest.fixture
def ctx(tmp_path: Path) -> CapabilityContext:
    return CapabilityContext(deps=ActionDeps(skills=SkillStore(tmp_path / "skills")), session_key="webchat:alice")


class TestParseAgentActions:
    def test_extracts_well_formed_blocks_in_order(self):
        text = "\n".join(
            [
                "Let me check.",
                _block({"type": "shell", "command": "ls"}),
                _block("{not json"),
                _block({"type": "install_skill", "name": "notes", "content": "# SKILL"}),
                _block({"type": "teleport", "where": "mars"}),
                _block([1, 2, 3]),
                _block({"type": "shell", "command": 5}),
                _block({"type": "install_skill", "name": "missing-content"}),
                _block({"type": "integration", "app": "browser", "action": "extract_text", "params": {"url": "x"}}),
            ]
        )

        actions = parse_agent_actions(text)

        assert [a.type for a in actions] == ["shell", "install_skill", "integration"]
        assert isinstance(actions[0], ShellAction) and actions[0].command == "ls"
        assert isinstance(actions[2], IntegrationAction) and actions[2].params == {"url": "x"}

    def test_timeout_alias_is_read(self):
        (action,) = parse_agent_actions(_block({"type": "shell", "command": "ls", "timeoutMs": 1500}))
        assert isinstance(action, ShellAction)
        assert action.timeout_ms == 1500

    def test_text_without_blocks(self):
        assert parse_agent_actions("just talking") == []
        assert parse_agent_actions("") == []

    def test_other_fences_are_ignored(self):
        assert parse_agent_actions('```json\n{"type": "shell", "command": "ls"}\n```') == []

    @pytest.mark.parametrize("timeout", ["Infinity", "-Infinity", "NaN", "1e400"])
    def test_non_finite_timeout_falls_back_to_default(self, timeout: str):
        text = _block('{"type": "shell", "command": "ls", "timeoutMs": ' + timeout + "}")

        (action,) = parse_agent_actions(text)

        assert isinstance(action, ShellAction)
        assert action.command == "ls"
        assert action.timeout_ms is None


def test_strip_agent_actions_removes_blocks_and_trims():
    text = f"Working on it.\n{_block({'type': 'shell', 'command': 'ls'})}\n"
    assert strip_agent_actions(text) == "Working on it."
    assert strip_agent_actions(_block({"type": "shell", "command": "ls"})) == ""


@pytest.mark.parametrize(
    "text",
    [
        '```gnami```gnami-action x```-action {"type":"shell","command":"id"}```',
        '```gnami-```gnami-action a``````gnami-action b```action {"type":"shell","command":"id"}```',
        "```gnami-action {\"type\":\"shell\",\"command\":\"id\"}```gnami-action```",
        "before ```gnami-action\n{\"type\": \"shell\", \"command\": \"id\"}\n",
        "```gnami-action a``````gnami-action b``````gnami-action c```",
        "``````gnami-action``````",
    ],
)
def test_stripped_text_never_yields_an_action(text: str):
    stripped = strip_agent_actions(text)

    assert parse_agent_actions(stripped) == []
    assert strip_agent_actions(stripped) == stripped


def test_strip_removes_block_formed_by_joining_the_surrounding_text():
    stripped = strip_agent_actions('```gnami```gnami-action x```-action {"type":"shell","command":"id"}```')

    assert "```gnami-action" not in stripped
    assert stripped == ""


def test_strip_leaves_unclosed_block_as_text():
    text = "Sure.\n```gnami-action\n{\"type\": \"shell\""

    assert strip_agent_actions(text) == text


class TestExecuteAgentActions:
    async def test_at_most_three_actions_run(self, ctx: CapabilityContext):
        calls: List[str] = []
        registry = CapabilityRegistry()
        registry.register(_RecordingShell(calls))
        actions = [ShellAction(command=f"c{i}") for i in range(5)]

        results = await execute_agent_actions(actions, registry=registry, ctx=ctx)

        assert len(results) == MAX_ACTIONS_PER_TURN
        assert calls == ["c0", "c1", "c2"]

    async def test_failure_is_isolated(self, ctx: CapabilityContext):
        calls: List[str] = []
        registry = CapabilityRegistry()
        registry.register(_RecordingShell(calls))
        actions = [ShellAction(command="fail"), ShellAction(command="ok")]

        results = await execute_agent_actions(actions, registry=registry, ctx=ctx)

        assert [(r.ok, r.output) for r in results] == [(False, "boom"), (True, "ran ok")]
        assert calls == ["fail", "ok"]

    async def test_unregistered_type_reports_unsupported(self, ctx: CapabilityContext):
        registry = CapabilityRegistry()
        action = InstallSkillAction(name="x", content="y")

        (result,) = await execute_agent_actions([action], registry=registry, ctx=ctx)

        assert result.ok is False
        assert result.output == "Unsupported action type."

    async def test_default_registry_runs_each_variant(self, ctx: CapabilityContext):
        actions = [
            ShellAction(command="echo hi"),
            InstallSkillAction(name="Daily Notes", content="# SKILL"),
            IntegrationAction(app="browser", action="extract_text"),
        ]

        results = await execute_agent_actions(actions, registry=build_default_registry(), ctx=ctx)

        assert [(r.ok, r.output) for r in results] == [
            (True, "hi"),
            (True, "Installed skill: daily-notes"),
            (False, "Integration runtime is not configured."),
        ]


def test_summarize_action_results():
    results = [
        ActionResult(action=ShellAction(command="ls"), ok=True, output="a.txt"),
        ActionResult(action=InstallSkillAction(name="n", content="c"), ok=False, output="nope"),
    ]
    assert summarize_action_results(results) == (
        "Action 1: shell\nSuccess: yes\nOutput: a.txt\n\nAction 2: install_skill\nSuccess: no\nOutput: nope"
    )
