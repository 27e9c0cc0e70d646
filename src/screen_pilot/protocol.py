# protocol.py
# Tolerant decoder for the planning-response wire format.
#
# The model answers in loose XML-ish tags:
#   <thought> <log> <error> <memory>
#   <action-type> <action-param-json>
#   <complete-goal success="true|false">message</complete-goal>
#   <update-plan-content><sub-goal index="1" status="pending">…</sub-goal></update-plan-content>
#   <mark-sub-goal-done><sub-goal index="1" status="finished" /></mark-sub-goal-done>
#
# Nothing in this module raises on malformed input. A missing, unterminated
# or undecodable block comes back as None.

import json
import re

from screen_pilot.models import ActionDescriptor, Completion, Decision, SubGoal

_COMPLETE_GOAL_RE = re.compile(
    r'<complete-goal\s+success="(true|false)"\s*>(.*?)</complete-goal>',
    re.IGNORECASE | re.DOTALL,
)
_SUB_GOAL_RE = re.compile(
    r'<sub-goal\s+index="(\d+)"\s+status="(pending|finished)"(?:\s*/>|\s*>(.*?)</sub-goal>)',
    re.IGNORECASE | re.DOTALL,
)
_FINISHED_SUB_GOAL_RE = re.compile(
    r'<sub-goal\s+index="(\d+)"\s+status="finished"\s*/>',
    re.IGNORECASE,
)
_FENCE_OPEN_RE = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
_FENCE_CLOSE_RE = re.compile(r"\s*```$")

NULL_ACTION = "null"


# ---------------------------------------------------------------------------
# Tag extraction
# ---------------------------------------------------------------------------


def extract_tag(text: str, tag: str) -> str | None:
    """
    Return the trimmed body of the last well-formed <tag>…</tag> in `text`.

    The last closing tag is found first, then the nearest opening tag before
    it, so a block the model restated later in its answer wins over the
    earlier one. Matching is case-insensitive.
    """
    if not text:
        return None

    name = re.escape(tag)
    closes = list(re.finditer(rf"</{name}\s*>", text, re.IGNORECASE))
    if not closes:
        return None
    end = closes[-1].start()

    opens = list(re.finditer(rf"<{name}\s*>", text[:end], re.IGNORECASE))
    if not opens:
        return None
    return text[opens[-1].end():end].strip()


# ---------------------------------------------------------------------------
# Block parsers
# ---------------------------------------------------------------------------


def parse_completion(text: str) -> Completion | None:
    matches = list(_COMPLETE_GOAL_RE.finditer(text or ""))
    if not matches:
        return None
    last = matches[-1]
    return Completion(success=last.group(1).lower() == "true", message=last.group(2).strip())


def parse_action_param(raw: str | None) -> dict | None:
    """Decode the action-param-json body. Anything but a JSON object is None."""
    if not raw:
        return None

    body = raw.strip()
    if body.startswith("```"):
        body = _FENCE_OPEN_RE.sub("", body)
        body = _FENCE_CLOSE_RE.sub("", body)

    try:
        value = json.loads(body, strict=False)
    except json.JSONDecodeError:
        return None
    return value if isinstance(value, dict) else None


def parse_sub_goals(content: str) -> list[SubGoal]:
    """Collect well-formed <sub-goal> declarations; malformed entries are skipped."""
    goals: list[SubGoal] = []
    for match in _SUB_GOAL_RE.finditer(content):
        goals.append(
            SubGoal(
                index=int(match.group(1)),
                status=match.group(2).lower(),
                description=(match.group(3) or "").strip(),
            )
        )
    return goals


def parse_finished_indexes(content: str) -> list[int]:
    indexes: list[int] = []
    for match in _FINISHED_SUB_GOAL_RE.finditer(content):
        index = int(match.group(1))
        if index not in indexes:
            indexes.append(index)
    return indexes


# ---------------------------------------------------------------------------
# Decoder
# ---------------------------------------------------------------------------


def decode_response(text: str | None) -> Decision:
    """
    Turn one raw model answer into a Decision.

    Never raises. When both a completion block and an action are present the
    Decision keeps both; Decision.next_action hides the action.
    """
    text = text or ""

    action = None
    param_raw = extract_tag(text, "action-param-json")
    action_type = extract_tag(text, "action-type")
    if action_type and action_type.lower() != NULL_ACTION:
        action = ActionDescriptor(type=action_type, param=parse_action_param(param_raw))

    plan_content = extract_tag(text, "update-plan-content")
    done_content = extract_tag(text, "mark-sub-goal-done")

    return Decision(
        thought=extract_tag(text, "thought"),
        log=extract_tag(text, "log"),
        error=extract_tag(text, "error"),
        memory=extract_tag(text, "memory"),
        action=action,
        action_param_raw=param_raw if action is not None else None,
        completion=parse_completion(text),
        sub_goals=parse_sub_goals(plan_content) if plan_content is not None else None,
        finished_indexes=parse_finished_indexes(done_content) if done_content is not None else None,
    )
