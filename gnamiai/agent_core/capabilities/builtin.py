from __future__ import annotations

import asyncio
import json
import logging
import os
import signal
from dataclasses import dataclass
from typing import Any, Optional

from ...core.errors import ActionError, ShellTimeoutError
from ..schemas.domain import ActionType, AgentAction, InstallSkillAction, IntegrationAction, ShellAction
from .base import Capability, CapabilityContext, CapabilityResult

logger = logging.getLogger(__name__)

DEFAULT_SHELL_TIMEOUT_MS = 60_000


def _kill_process_group(process: asyncio.subprocess.Process) -> None:
    try:
        os.killpg(process.pid, signal.SIGKILL)
    except ProcessLookupError:
        pass


@dataclass(frozen=True)
class ShellCapability(Capability):
    """
    Run a ``shell`` action through the platform shell.

    The child inherits the gateway's environment and working directory (or
    ``cwd`` when set). It runs in its own process group so that a timeout kills
    the shell together with anything it spawned.
    """

    action_type: ActionType = ActionType.shell
    default_timeout_ms: int = DEFAULT_SHELL_TIMEOUT_MS
    cwd: Optional[str] = None

    async def execute(self, ctx: CapabilityContext, *, action: AgentAction) -> CapabilityResult:
        """
        Execute a shell command.

        Returns:
            CapabilityResult: trimmed stdout and stderr joined by a newline, or
            ``(no output)`` when the command printed nothing.

        Raises:
            ShellTimeoutError: The command outlived its timeout and was killed.
            ActionError: The command exited with a nonzero status.
        """
        if not isinstance(action, ShellAction):
            raise ActionError(f"{type(self).__name__} cannot run a {action.type} action.")
        timeout_ms = action.timeout_ms or self.default_timeout_ms
        logger.info(f"Executing shell action: {action.command} (timeout={timeout_ms}ms)")

        process = await asyncio.create_subprocess_shell(
            action.command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=self.cwd,
            start_new_session=True,
        )
        try:
            stdout_bytes, stderr_bytes = await asyncio.wait_for(process.communicate(), timeout=timeout_ms / 1000)
        except asyncio.TimeoutError:
            _kill_process_group(process)
            await process.wait()
            logger.warning(f"Shell action killed after {timeout_ms}ms: {action.command}")
            raise ShellTimeoutError(timeout_ms)

        stdout = stdout_bytes.decode("utf-8", errors="replace").strip()
        stderr = stderr_bytes.decode("utf-8", errors="replace").strip()
        output = "\n".join(part for part in (stdout, stderr) if part)

        if process.returncode != 0:
            raise ActionError(output or f"Command failed with exit code {process.returncode}")
        return CapabilityResult(ok=True, output=output or "(no output)")


@dataclass(frozen=True)
class InstallSkillCapability(Capability):
    """Write an ``install_skill`` action into the local skill store."""

    action_type: ActionType = ActionType.install_skill

    async def execute(self, ctx: CapabilityContext, *, action: AgentAction) -> CapabilityResult:
        if not isinstance(action, InstallSkillAction):
            raise ActionError(f"{type(self).__name__} cannot run a {action.type} action.")
        slug = await ctx.deps.skills.install(action.name, action.content)
        return CapabilityResult(ok=True, output=f"Installed skill: {slug}")


@dataclass(frozen=True)
class IntegrationCapability(Capability):
    """
    Delegate an ``integration`` action to the integration dispatcher.

    Whatever the adapter returns is serialized as JSON text.
    """

    action_type: ActionType = ActionType.integration

    async def execute(self, ctx: CapabilityContext, *, action: AgentAction) -> CapabilityResult:
        if not isinstance(action, IntegrationAction):
            raise ActionError(f"{type(self).__name__} cannot run a {action.type} action.")
        dispatch = ctx.deps.integrations
        if dispatch is None:
            return CapabilityResult(ok=False, output="Integration runtime is not configured.")

        result: Any = await dispatch(action.app, action.action, action.params or {})
        return CapabilityResult(ok=True, output=json.dumps(result, default=str))
