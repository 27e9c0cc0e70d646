import pytest

from screen_pilot.actions import (
    InputAction,
    LaunchAction,
    ScrollAction,
    SleepAction,
    TapAction,
    narrow_action,
    target_region,
)
from screen_pilot.errors import ActionError
from screen_pilot.models import ActionDescriptor

# ---------------------------------------------------------------------------
# Narrowing Tests
# ---------------------------------------------------------------------------

def test_narrow_launch():
    action = narrow_action(ActionDescriptor(type="Launch", param={"url": "https://example.com"}))
    assert isinstance(action, LaunchAction)
    assert action.url == "https://example.com"
    assert target_region(action) is None

@pytest.mark.parametrize("name", ["Tap", "Click", "tap", " CLICK "])
def test_narrow_tap_aliases(name):
    action = narrow_action(ActionDescriptor(type=name, param={"locate": {"bbox": [1, 2, 3, 4]}}))
    assert isinstance(action, TapAction)
    assert action.type == "Tap"
    assert target_region(action) == [1, 2, 3, 4]

def test_narrow_accepts_bbox_2d():
    action = narrow_action(ActionDescriptor(type="Tap", param={"locate": {"bbox_2d": [10, 20, 30, 40]}}))
    assert action.locate.bbox == [10, 20, 30, 40]

def test_narrow_input_defaults_and_optional_locate():
    action = narrow_action(ActionDescriptor(type="Type", param={"value": "John"}))
    assert isinstance(action, InputAction)
    assert action.value == "John"
    assert action.mode == "replace"
    assert action.locate is None
    assert target_region(action) is None

def test_narrow_scroll_camel_case_params():
    action = narrow_action(
        ActionDescriptor(type="Scroll", param={"scrollType": "scrollToBottom", "distance": 300})
    )
    assert isinstance(action, ScrollAction)
    assert action.scroll_type == "scrollToBottom"
    assert action.direction == "down"
    assert action.distance == 300

def test_narrow_scroll_without_params():
    action = narrow_action(ActionDescriptor(type="Scroll", param=None))
    assert action.scroll_type == "singleAction"
    assert action.direction == "down"

def test_narrow_sleep_default():
    action = narrow_action(ActionDescriptor(type="Sleep"))
    assert isinstance(action, SleepAction)
    assert action.time_ms == 1000

def test_narrow_ignores_unknown_extra_keys():
    action = narrow_action(ActionDescriptor(type="Sleep", param={"timeMs": 250, "reason": "page load"}))
    assert action.time_ms == 250

# ---------------------------------------------------------------------------
# Rejection Tests
# ---------------------------------------------------------------------------

def test_narrow_unknown_type():
    with pytest.raises(ActionError, match="Unsupported action type 'Hover'"):
        narrow_action(ActionDescriptor(type="Hover", param={}))

def test_narrow_tap_without_locate():
    with pytest.raises(ActionError, match="Invalid params for Tap"):
        narrow_action(ActionDescriptor(type="Tap", param=None))

def test_narrow_launch_without_url():
    with pytest.raises(ActionError, match="url"):
        narrow_action(ActionDescriptor(type="Launch", param={}))

def test_narrow_bad_bbox_length():
    with pytest.raises(ActionError, match="Invalid params for Tap"):
        narrow_action(ActionDescriptor(type="Tap", param={"locate": {"bbox": [1, 2, 3]}}))

def test_narrow_bad_scroll_direction():
    with pytest.raises(ActionError, match="direction"):
        narrow_action(ActionDescriptor(type="Scroll", param={"direction": "sideways"}))
