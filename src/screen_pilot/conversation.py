# conversation.py
# Conversation state for one task: the turn transcript, the sub-goal plan and
# the memory log.
#
# A single Pilot owns one Conversation and mutates it from one thread. Give
# every task its own instance. Nothing here is locked.

from screen_pilot.models import ContentPart, ImagePart, SubGoal, SubGoalStatus, TextPart, Turn

_STATUS_RANK: dict[str, int] = {"pending": 0, "running": 1, "finished": 2}

OMITTED_TEMPLATE = "{count} previous conversation messages have been omitted."


# ---------------------------------------------------------------------------
# Sub-goals
# ---------------------------------------------------------------------------


class SubGoalTracker:
    """
    Ordered sub-goal list with a pending → running → finished lifecycle.

    After every status change the first pending sub-goal is promoted to
    running if nothing is running, so at most one sub-goal is active and work
    proceeds in declared order.
    """

    def __init__(self) -> None:
        self._goals: list[SubGoal] = []

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def replace(self, goals: list[SubGoal]) -> None:
        """Install a new plan. The only operation allowed to move a status backward."""
        installed: list[SubGoal] = []
        seen: set[int] = set()
        has_running = False

        for goal in goals:
            if goal.index in seen:
                continue
            seen.add(goal.index)
            copy = goal.model_copy(deep=True)
            if copy.status == "running":
                if has_running:
                    copy.status = "pending"
                has_running = True
            installed.append(copy)

        self._goals = installed
        self._promote_first_pending()

    def mark_finished(self, indexes: list[int]) -> None:
        # Unknown indexes are ignored; the model may refer to a stale plan.
        wanted = set(indexes)
        for goal in self._goals:
            if goal.index in wanted:
                goal.status = "finished"
        self._promote_first_pending()

    def mark_all_finished(self) -> None:
        for goal in self._goals:
            goal.status = "finished"

    def update(
        self,
        index: int,
        description: str | None = None,
        status: SubGoalStatus | None = None,
    ) -> bool:
        """
        Change one sub-goal in place. Returns False if no sub-goal has `index`.

        Raises ValueError if the new status would move the sub-goal backward
        or would make a second sub-goal running.
        """
        goal = self._find(index)
        if goal is None:
            return False

        if status is not None and status != goal.status:
            if _STATUS_RANK[status] < _STATUS_RANK[goal.status]:
                raise ValueError(
                    f"Sub-goal {index} cannot move from '{goal.status}' back to '{status}'."
                )
            current = self.current
            if status == "running" and current is not None:
                raise ValueError(
                    f"Sub-goal {current.index} is already running; cannot start {index}."
                )
            goal.status = status

        if description is not None:
            goal.description = description

        self._promote_first_pending()
        return True

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def goals(self) -> list[SubGoal]:
        """Deep copies in plan order."""
        return [goal.model_copy(deep=True) for goal in self._goals]

    @property
    def current(self) -> SubGoal | None:
        return next((g for g in self._goals if g.status == "running"), None)

    def render_text(self) -> str:
        if not self._goals:
            return ""
        lines = [f"{g.index}. {g.description} ({g.status})" for g in self._goals]
        current = self.current
        current_text = f"\nCurrent sub-goal is: {current.description}" if current else ""
        return "Sub-goals:\n" + "\n".join(lines) + current_text

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _find(self, index: int) -> SubGoal | None:
        return next((g for g in self._goals if g.index == index), None)

    def _promote_first_pending(self) -> None:
        if self.current is not None:
            return
        pending = next((g for g in self._goals if g.status == "pending"), None)
        if pending is not None:
            pending.status = "running"


# ---------------------------------------------------------------------------
# Conversation
# ---------------------------------------------------------------------------


class Conversation:
    """
    Turn transcript plus the sub-goal plan and memory log of one task.

    The system turn is inserted first and never touched again. Appending a
    user turn right after another user turn merges the two.
    """

    def __init__(self, system_prompt: str) -> None:
        self._turns: list[Turn] = [Turn(role="system", content=system_prompt)]
        self._memories: list[str] = []
        self.sub_goals = SubGoalTracker()
        # Current compression placeholder and how many turns it stands for.
        self._placeholder: Turn | None = None
        self._placeholder_count = 0

    # ------------------------------------------------------------------
    # Transcript
    # ------------------------------------------------------------------

    def append_user(self, content: str | list[ContentPart]) -> None:
        parts = _as_parts(content)
        last = self._turns[-1]
        if last.role == "user":
            last.content = _as_parts(last.content) + parts
            return
        self._turns.append(Turn(role="user", content=parts))

    def append_assistant(self, text: str) -> None:
        self._turns.append(Turn(role="assistant", content=text))

    def attach_image(self, image: str, mime_type: str = "image/jpeg") -> bool:
        """
        Add a screenshot to the most recent user turn.

        Returns False, leaving the turn alone, when that turn already carries
        an image. A new image-only user turn is appended when the most recent
        turn is not a user turn.
        """
        part = ImagePart(image=image, mime_type=mime_type)
        last = self._turns[-1]
        if last.role != "user":
            self._turns.append(Turn(role="user", content=[part]))
            return True
        if last.has_image():
            return False
        last.content = _as_parts(last.content) + [part]
        return True

    def compress(self, threshold: int, keep_count: int) -> bool:
        """
        Collapse all but the last `keep_count` turns into one placeholder turn.

        No-op (returns False) while the transcript has at most `threshold`
        turns. The system turn is only kept if it falls inside `keep_count`.
        The placeholder count covers original turns, so an earlier placeholder
        that gets dropped adds the turns it stood for.
        """
        if len(self._turns) <= threshold:
            return False

        keep_count = max(0, min(keep_count, len(self._turns)))
        dropped = self._turns[: len(self._turns) - keep_count]
        kept = self._turns[len(dropped):]

        omitted = len(dropped)
        if any(turn is self._placeholder for turn in dropped):
            omitted += self._placeholder_count - 1

        placeholder = Turn(
            role="user",
            content=[TextPart(text=OMITTED_TEMPLATE.format(count=omitted))],
        )
        self._placeholder = placeholder
        self._placeholder_count = omitted
        self._turns = [placeholder] + kept
        return True

    def snapshot(self) -> list[Turn]:
        """Independent deep copy of the transcript."""
        return [turn.model_copy(deep=True) for turn in self._turns]

    def __len__(self) -> int:
        return len(self._turns)

    @property
    def last_turn(self) -> Turn:
        return self._turns[-1].model_copy(deep=True)

    # ------------------------------------------------------------------
    # Memory
    # ------------------------------------------------------------------

    def attach_memory(self, text: str | None) -> None:
        if text:
            self._memories.append(text)

    @property
    def memories(self) -> list[str]:
        return list(self._memories)

    def render_memory_text(self) -> str:
        if not self._memories:
            return ""
        return "Memories from previous steps:\n---\n" + "\n---\n".join(self._memories) + "\n"

    def render_context(self) -> str:
        """Memory and sub-goal state appended to loop-generated user turns."""
        return f"\n\n{self.render_memory_text()}{self.sub_goals.render_text()}"


def _as_parts(content: str | list[ContentPart]) -> list[ContentPart]:
    if isinstance(content, str):
        return [TextPart(text=content)]
    return [part.model_copy(deep=True) for part in content]
