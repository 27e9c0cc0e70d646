# actions.py
# Typed action variants. This is the narrowing step between the open key/value map
# the decoder produces and the device that performs it.
#
# The harness narrows every ActionDescriptor here before dispatch. Devices
# only ever see one of the variant classes below, never a raw dict.

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, model_validator

from screen_pilot.errors import ActionError
from screen_pilot.models import ActionDescriptor


class Locate(BaseModel):
    """Target region on the 0–1000 grid. `bbox_2d` is accepted as a synonym."""

    model_config = ConfigDict(extra="ignore")

    bbox: list[float] = Field(..., min_length=4, max_length=4)

    @model_validator(mode="before")
    @classmethod
    def _accept_bbox_2d(cls, data):
        if isinstance(data, dict) and "bbox" not in data and "bbox_2d" in data:
            return {**data, "bbox": data["bbox_2d"]}
        return data


class _Action(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class LaunchAction(_Action):
    type: Literal["Launch"] = "Launch"
    url: str = Field(..., min_length=1)


class TapAction(_Action):
    type: Literal["Tap"] = "Tap"
    locate: Locate


class InputAction(_Action):
    type: Literal["Input"] = "Input"
    value: str = ""
    locate: Locate | None = None
    mode: Literal["replace", "clear", "typeOnly", "append"] = "replace"


class ScrollAction(_Action):
    type: Literal["Scroll"] = "Scroll"
    direction: Literal["down", "up", "left", "right"] = "down"
    scroll_type: Literal[
        "singleAction", "scrollToBottom", "scrollToTop", "scrollToRight", "scrollToLeft"
    ] = Field(default="singleAction", alias="scrollType")
    distance: int | None = None
    locate: Locate | None = None


class SleepAction(_Action):
    type: Literal["Sleep"] = "Sleep"
    time_ms: int = Field(default=1000, alias="timeMs", ge=0)


BrowserAction = Annotated[
    Union[LaunchAction, TapAction, InputAction, ScrollAction, SleepAction],
    Field(discriminator="type"),
]

_ADAPTER: TypeAdapter = TypeAdapter(BrowserAction)

# Lower-cased model vocabulary → canonical variant tag.
ACTION_TYPES: dict[str, str] = {
    "launch": "Launch",
    "tap": "Tap",
    "click": "Tap",
    "input": "Input",
    "type": "Input",
    "scroll": "Scroll",
    "sleep": "Sleep",
}


def narrow_action(descriptor: ActionDescriptor) -> BrowserAction:
    """
    Validate a decoded descriptor into its typed variant.

    Raises ActionError for unknown types and for missing or malformed
    parameters. Both are recoverable and go back to the model.
    """
    canonical = ACTION_TYPES.get(descriptor.type.strip().lower())
    if canonical is None:
        raise ActionError(f"Unsupported action type '{descriptor.type}'")

    data = {**(descriptor.param or {}), "type": canonical}
    try:
        return _ADAPTER.validate_python(data)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'][1:]) or 'param'}: {err['msg']}"
            for err in exc.errors()
        )
        raise ActionError(f"Invalid params for {canonical}: {problems}") from exc


def target_region(action: BrowserAction) -> list[float] | None:
    """The region an action points at, or None for untargeted actions."""
    locate = getattr(action, "locate", None)
    return list(locate.bbox) if locate is not None else None
