from __future__ import annotations

"""Agent action protocol.

The model requests side effects by embedding fenced blocks in its reply::

    ```gnami-action
    {"type": "shell", "command": "ls -la", "timeoutMs": 10000}
    ```

Three operations are provided:

- ``parse_agent_actions``: extract the valid action blocks in source order.
  A block whose body is not a JSON object, or whose ``type``/fields do not
  match an ``AgentAction`` variant, is skipped without error.
- ``execute_agent_actions``: run up to ``MAX_ACTIONS_PER_TURN`` actions one at
  a time. A failure is captured as that action's ``ok=False`` result and
  never prevents the following actions from running.
- ``strip_agent_actions``: remove every action block from text shown to a user.
"""

import json
import logging
import re
from typing import List, Sequence

from pydantic import ValidationError

from .capabilities import CapabilityContext, CapabilityRegistry
from .schemas.domain import ActionResult, ActionType, AgentAction, agent_action_adapter

logger = logging.getLogger(__name__)

ACTION_MARKER = "gnami-action"
MAX_ACTIONS_PER_TURN = 3

_ACTION_BLOCK = re.compile(r"```" + ACTION_MARKER + r"\s*([\s\S]*?)```")
_ACTION_BLOCK_STRIP = re.compile(r"```" + ACTION_MARKER + r"[\s\S]*?```")


def parse_agent_actions(text: str) -> List[AgentAction]:
    """Extract every well-formed action block from ``text`` in order."""
    actions: List[AgentAction] = []
    for match in _ACTION_BLOCK.finditer(text or ""):
        body = match.group(1).strip()
        try:
            payload = json.loads(body)
        except ValueError:
            logger.debug("Skipping action block with invalid JSON")
            continue
        if not isinstance(payload, dict):
            continue
        try:
            actions.append(agent_action_adapter.validate_python(payload))
        except (ValidationError, ValueError, OverflowError):
            logger.debug(f"Skipping action block with unknown type or bad fields: {payload.get('type')!r}")
    return actions


def strip_agent_actions(text: str) -> str:
    """Remove all action blocks and trim the remainder.

    Removal repeats until no block is left, since deleting one block can join
    the text around it into a new marker.
    """
    stripped = text or ""
    while True:
        reduced = _ACTION_BLOCK_STRIP.sub("", stripped)
        if reduced == stripped:
            return reduced.strip()
        stripped = reduced


async def execute_agent_actions(
    actions: Sequence[AgentAction],
    *,
    registry: CapabilityRegistry,
    ctx: CapabilityContext,
) -> List[ActionResult]:
    """Execute at most ``MAX_ACTIONS_PER_TURN`` actions sequentially.

    Returns:
        One ``ActionResult`` per executed action, in the same order.
    """
    results: List[ActionResult] = []
    for action in list(actions)[:MAX_ACTIONS_PER_TURN]:
        try:
            cap = registry.get(ActionType(action.type))
        except KeyError:
            results.append(ActionResult(action=action, ok=False, output="Unsupported action type."))
            continue
        try:
            outcome = await cap.execute(ctx, action=action)
            results.append(ActionResult(action=action, ok=outcome.ok, output=outcome.output))
        except Exception as e:
            logger.error(f"Action {action.type} failed: {e}")
            results.append(ActionResult(action=action, ok=False, output=str(e) or type(e).__name__))
        else:
            logger.info(f"Action {action.type} finished: ok={outcome.ok}")
    return results


def summarize_action_results(results: Sequence[ActionResult]) -> str:
    """Render results as the plain-text summary fed to the second model pass."""
    blocks = []
    for index, result in enumerate(results, start=1):
        blocks.append(
            "\n".join(
                [
                    f"Action {index}: {result.action.type}",
                    f"Success: {'yes' if result.ok else 'no'}",
                    f"Output: {result.output}",
                ]
            )
        )
    return "\n\n".join(blocks)
