# models.py
# Data contracts for the screen pilot.
# No business logic lives here — pure schema and validation.

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field

SubGoalStatus = Literal["pending", "running", "finished"]


# ---------------------------------------------------------------------------
# Planning protocol
# ---------------------------------------------------------------------------


class SubGoal(BaseModel):
    """One unit of the decomposed task plan."""

    index: int = Field(..., description="Stable identifier declared by the model.")
    description: str = Field(default="", description="Human-readable intent of this sub-goal.")
    status: SubGoalStatus = Field(default="pending")


class ActionDescriptor(BaseModel):
    """Structurally decoded action. Domain validation happens in actions.py."""

    type: str
    param: dict | None = Field(default=None, description="None when absent or undecodable.")


class Completion(BaseModel):
    success: bool
    message: str = ""


class Decision(BaseModel):
    """Normalized result of decoding one model turn. Every field is optional."""

    thought: str | None = None
    log: str | None = None
    error: str | None = None
    memory: str | None = None
    action: ActionDescriptor | None = None
    action_param_raw: str | None = None
    completion: Completion | None = None
    sub_goals: list[SubGoal] | None = None
    finished_indexes: list[int] | None = None

    @property
    def next_action(self) -> ActionDescriptor | None:
        # Finishing and acting are mutually exclusive; completion wins.
        if self.completion is not None:
            return None
        return self.action

    @property
    def param_decode_failed(self) -> bool:
        return (
            self.action is not None
            and self.action.param is None
            and bool(self.action_param_raw)
        )


# ---------------------------------------------------------------------------
# Conversation transcript
# ---------------------------------------------------------------------------


class TextPart(BaseModel):
    type: Literal["text"] = "text"
    text: str


class ImagePart(BaseModel):
    type: Literal["image"] = "image"
    image: str = Field(..., description="Base64-encoded image payload.")
    mime_type: str = "image/jpeg"


ContentPart = Annotated[Union[TextPart, ImagePart], Field(discriminator="type")]


class Turn(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str | list[ContentPart]

    def has_image(self) -> bool:
        if isinstance(self.content, str):
            return False
        return any(part.type == "image" for part in self.content)


# ---------------------------------------------------------------------------
# Screen geometry and observation
# ---------------------------------------------------------------------------


class Viewport(BaseModel):
    width: int
    height: int


class Point(BaseModel):
    x: float
    y: float


class Observation(BaseModel):
    """What the observer saw: logical viewport size plus an opaque screenshot."""

    viewport: Viewport
    image: str
    mime_type: str = "image/jpeg"


# ---------------------------------------------------------------------------
# Task outcome
# ---------------------------------------------------------------------------


class TaskStatus(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    STEP_BUDGET_EXHAUSTED = "step_budget_exhausted"


class TaskResult(BaseModel):
    """Final report handed back to the caller of Pilot.run()."""

    status: TaskStatus
    success: bool | None = Field(default=None, description="None unless the model completed the task.")
    message: str | None = None
    steps: int = 0
    sub_goals: list[SubGoal] = Field(default_factory=list)
    memories: list[str] = Field(default_factory=list)
