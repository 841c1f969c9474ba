from __future__ import annotations

"""Domain schemas for the agent action protocol and the turn pipeline.

``AgentAction`` is a closed tagged union discriminated by ``type``. It is only
ever constructed by parsing model output, and every variant's required fields
are strictly typed so that ``"command": 5`` or a missing ``content`` fails
validation instead of being coerced.
"""

import math
from enum import Enum
from typing import Annotated, Any, Dict, Literal, Optional, Union

from pydantic import ConfigDict, Field, StrictStr, TypeAdapter, field_validator

from .base import BaseSchema


class ActionType(str, Enum):
    shell = "shell"
    install_skill = "install_skill"
    integration = "integration"


class Thinking(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"


class _ActionBase(BaseSchema):
    # Model output may carry extra keys; they are ignored rather than rejected.
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ShellAction(_ActionBase):
    type: Literal["shell"] = "shell"
    command: StrictStr
    timeout_ms: Optional[int] = Field(default=None, alias="timeoutMs")

    @field_validator("timeout_ms", mode="before")
    @classmethod
    def _numeric_timeout_only(cls, value: Any) -> Optional[int]:
        # A non-numeric timeout falls back to the default instead of rejecting the action.
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return None
        if not math.isfinite(value) or value <= 0:
            return None
        return int(value)


class InstallSkillAction(_ActionBase):
    type: Literal["install_skill"] = "install_skill"
    name: StrictStr
    content: StrictStr


class IntegrationAction(_ActionBase):
    type: Literal["integration"] = "integration"
    app: StrictStr
    action: StrictStr
    params: Optional[Dict[str, Any]] = None


AgentAction = Annotated[
    Union[ShellAction, InstallSkillAction, IntegrationAction],
    Field(discriminator="type"),
]

agent_action_adapter: TypeAdapter[AgentAction] = TypeAdapter(AgentAction)


class ActionResult(BaseSchema):
    """Outcome of one executed action."""

    action: AgentAction
    ok: bool
    output: str


class PersonaFields(BaseSchema):
    """Durable identity facts: assistant name, user name, preferred language."""

    assistant_name: Optional[str] = None
    user_name: Optional[str] = None
    language: Optional[str] = None

    def is_empty(self) -> bool:
        return not (self.assistant_name or self.user_name or self.language)

    def is_complete(self) -> bool:
        return bool(self.user_name and self.language)

    def merged_with(self, other: "PersonaFields") -> "PersonaFields":
        """Return a copy where fields set on ``other`` take precedence."""
        return PersonaFields(
            assistant_name=other.assistant_name or self.assistant_name,
            user_name=other.user_name or self.user_name,
            language=other.language or self.language,
        )


class AgentRequest(BaseSchema):
    """Input of one model call."""

    input: str
    history: list[str] = Field(default_factory=list)
    thinking: Thinking = Thinking.medium
    memory_context: Optional[str] = None
