# harness.py
# Screen pilot control loop.
#
# The Pilot is the kernel. The model is a passive responder — this class
# owns all control flow, conversation state and termination. The observer,
# the model caller and the actuator are injected, so a test can drive the
# loop with scripted fakes.
#
# One step:
#   observe → attach screenshot → model turn → decode → apply plan/memory
#   → complete? → narrow + locate + actuate → next user turn → budget check
#
# All terminal output is delegated to display.py — no formatting here.

import os
import time
from typing import Protocol

from dotenv import load_dotenv
from openai import OpenAI

from screen_pilot import display
from screen_pilot.actions import BrowserAction, narrow_action, target_region
from screen_pilot.conversation import Conversation
from screen_pilot.coords import BoxOrder, region_center
from screen_pilot.errors import ActionError, PilotStateError
from screen_pilot.models import (
    Decision,
    Observation,
    Point,
    TaskResult,
    TaskStatus,
    TextPart,
    Turn,
)
from screen_pilot.prompts import format_instruction, get_system_prompt
from screen_pilot.protocol import decode_response

load_dotenv()

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_MODEL = "google/gemini-3-flash-preview"

EXECUTED_MESSAGE = (
    "The previous action has been executed, here is the latest screenshot. "
    "Please continue according to the instruction."
)
FAILED_MESSAGE = (
    "Action {type} failed. Error: {error}. Please try a different approach or fix the params."
)
OBSERVE_FAILED_MESSAGE = (
    "Could not capture the screen. Error: {error}. "
    "The page may still be loading, please continue."
)
REPORTED_ERROR_MESSAGE ="You reported an error: {error}. Please try to recover."
CONTINUE_MESSAGE = "Please continue."


# ---------------------------------------------------------------------------
# External collaborators
# ---------------------------------------------------------------------------


class ModelCaller(Protocol):
    def complete(self, model: str, turns: list[Turn]) -> str: ...


class Observer(Protocol):
    def observe(self) -> Observation: ...


class Actuator(Protocol):
    def perform(self, action: BrowserAction, point: Point | None) -> None: ...


class OpenRouterModel:
    """ModelCaller backed by the OpenAI SDK pointed at OpenRouter."""

    def __init__(self, api_key: str | None = None, base_url: str = OPENROUTER_BASE_URL) -> None:
        self._client = OpenAI(
            base_url=base_url,
            api_key=api_key or os.getenv("OPENROUTER_API_KEY"),
        )

    def complete(self, model: str, turns: list[Turn]) -> str:
        response = self._client.chat.completions.create(
            model=model,
            messages=to_openai_messages(turns),
        )
        message = response.choices[0].message
        # OpenRouter returns optional reasoning alongside the answer; it is shown, never parsed.
        reasoning = getattr(message, "reasoning", None)
        if reasoning:
            display.model_reasoning(str(reasoning))
        return (message.content or "").strip()


def to_openai_messages(turns: list[Turn]) -> list[dict]:
    """Render transcript turns as chat-completions messages (images as data URLs)."""
    messages: list[dict] = []
    for turn in turns:
        if isinstance(turn.content, str):
            messages.append({"role": turn.role, "content": turn.content})
            continue

        parts: list[dict] = []
        for part in turn.content:
            if isinstance(part, TextPart):
                parts.append({"type": "text", "text": part.text})
            else:
                parts.append(
                    {
                        "type": "image_url",
                        "image_url": {"url": f"data:{part.mime_type};base64,{part.image}"},
                    }
                )
        messages.append({"role": turn.role, "content": parts})
    return messages


# ---------------------------------------------------------------------------
# Pilot
# ---------------------------------------------------------------------------


class Pilot:
    """
    Drives one task at a time through the observe → decide → act loop.

    Example:
        pilot = Pilot(OpenRouterModel(), device, device)
        result = pilot.run("Open example.com and read the heading.")

    Each task gets a fresh Conversation; a Pilot must not be shared between
    concurrently running tasks.
    """

    def __init__(
        self,
        model_caller: ModelCaller,
        observer: Observer,
        actuator: Actuator,
        model: str = DEFAULT_MODEL,
        *,
        max_steps: int = 15,
        deep_think: bool = True,
        step_delay: float = 1.0,
        box_order: BoxOrder = BoxOrder.YXYX,
        compress_threshold: int | None = None,
        compress_keep: int = 10,
    ) -> None:
        if max_steps < 1:
            raise ValueError("max_steps must be at least 1.")

        self._model_caller = model_caller
        self._observer = observer
        self._actuator = actuator
        self._model = model
        self._max_steps = max_steps
        self._deep_think = deep_think
        self._step_delay = step_delay
        self._box_order = box_order
        self._compress_threshold = compress_threshold
        self._compress_keep = compress_keep

        self._conversation: Conversation | None = None
        self._steps = 0
        self._status = TaskStatus.RUNNING
        self._completion_success: bool | None = None
        self._completion_message: str | None = None

        display.banner(model, max_steps, deep_think)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def conversation(self) -> Conversation:
        if self._conversation is None:
            raise PilotStateError("No task has been started. Call start() first.")
        return self._conversation

    @property
    def steps(self) -> int:
        return self._steps

    @property
    def status(self) -> TaskStatus:
        return self._status

    def result(self) -> TaskResult:
        conversation = self.conversation
        return TaskResult(
            status=self._status,
            success=self._completion_success,
            message=self._completion_message,
            steps=self._steps,
            sub_goals=conversation.sub_goals.goals,
            memories=conversation.memories,
        )

    # ------------------------------------------------------------------
    # Task lifecycle
    # ------------------------------------------------------------------

    def start(self, instruction: str) -> Conversation:
        """Seed a fresh transcript for `instruction`, discarding any previous task."""
        display.task_received(instruction)

        self._conversation = Conversation(
            get_system_prompt(include_sub_goals=self._deep_think, include_thought=True)
        )
        self._conversation.append_user([TextPart(text=format_instruction(instruction))])
        self._steps = 0
        self._status = TaskStatus.RUNNING
        self._completion_success = None
        self._completion_message = None
        return self._conversation

    def step(self) -> TaskStatus:
        """
        Run one observe → decide → act iteration.

        Raises PilotStateError if no task was started or the task already
        reached a terminal state. Observation and actuation failures never
        escape; they go back to the model as a user turn.
        """
        conversation = self.conversation
        if self._status is not TaskStatus.RUNNING:
            raise PilotStateError(f"Task already finished with status '{self._status.value}'.")

        self._steps += 1
        display.step_start(self._steps, self._max_steps)

        # ── 1. Observe ────────────────────────────────────────────────
        try:
            observation = self._observer.observe()
        except ActionError as exc:
            display.observe_failed(str(exc))
            conversation.append_user(OBSERVE_FAILED_MESSAGE.format(error=exc) + self._context())
            return self._finish_step()
        attached = conversation.attach_image(observation.image, observation.mime_type)
        display.observed(observation.viewport, attached)

        # ── 2. Ask the model ──────────────────────────────────────────
        display.calling_model(self._model, len(conversation))
        raw = self._model_caller.complete(self._model, conversation.snapshot())
        display.model_response(raw)

        # ── 3. Decode and apply state updates ─────────────────────────
        decision = decode_response(raw)
        self._apply_updates(decision)
        conversation.append_assistant(raw)

        # ── 4. Completion wins over any action in the same turn ───────
        if decision.completion is not None:
            conversation.sub_goals.mark_all_finished()
            self._status = TaskStatus.COMPLETED
            self._completion_success = decision.completion.success
            self._completion_message = decision.completion.message
            display.completed(decision.completion.success, decision.completion.message)
            return self._status

        # ── 5. Act, or ask the model to continue ──────────────────────
        action = decision.next_action
        if action is not None:
            self._act(decision, observation)
        elif decision.error:
            display.agent_error(decision.error)
            conversation.append_user(
                REPORTED_ERROR_MESSAGE.format(error=decision.error) + self._context()
            )
        else:
            display.no_action()
            conversation.append_user(CONTINUE_MESSAGE + self._context())

        return self._finish_step()

    def run(self, instruction: str) -> TaskResult:
        """
        Full task entry point.

        Returns a TaskResult in all non-fatal cases: completed (either way)
        or out of steps.
        """
        self.start(instruction)
        while self.step() is TaskStatus.RUNNING:
            if self._step_delay > 0:
                time.sleep(self._step_delay)

        result = self.result()
        display.task_summary(result)
        return result

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _apply_updates(self, decision: Decision) -> None:
        if decision.thought:
            display.thought(decision.thought)
        if decision.log:
            display.log_line(decision.log)

        if not self._deep_think:
            return

        conversation = self.conversation
        if decision.sub_goals:
            conversation.sub_goals.replace(decision.sub_goals)
            display.plan_updated(conversation.sub_goals.goals)
        if decision.finished_indexes:
            conversation.sub_goals.mark_finished(decision.finished_indexes)
            display.sub_goals_finished(decision.finished_indexes)
        if decision.memory:
            conversation.attach_memory(decision.memory)
            display.memory_added(decision.memory)

    def _act(self, decision: Decision, observation: Observation) -> None:
        conversation = self.conversation
        descriptor = decision.next_action
        display.action(descriptor.type, descriptor.param)
        if decision.param_decode_failed:
            display.param_undecodable(descriptor.type, decision.action_param_raw)

        try:
            action = narrow_action(descriptor)
            point = None
            region = target_region(action)
            if region is not None:
                point = region_center(region, observation.viewport, self._box_order)
                display.action_point(point)
            self._actuator.perform(action, point)
        except ActionError as exc:
            display.action_failed(descriptor.type, str(exc))
            conversation.append_user(FAILED_MESSAGE.format(type=descriptor.type, error=exc))
            return

        display.action_done(descriptor.type)
        conversation.append_user(EXECUTED_MESSAGE + self._context())

    def _finish_step(self) -> TaskStatus:
        conversation = self.conversation
        if self._compress_threshold is not None:
            if conversation.compress(self._compress_threshold, self._compress_keep):
                display.history_compressed(len(conversation))

        # ── 6. Budget ─────────────────────────────────────────────────
        if self._steps >= self._max_steps:
            self._status = TaskStatus.STEP_BUDGET_EXHAUSTED
            display.budget_exhausted(self._max_steps)

        return self._status

    def _context(self) -> str:
        if not self._deep_think:
            return ""
        return self.conversation.render_context()
