import pytest

from screen_pilot.coords import BoxOrder, clamp_point, region_center
from screen_pilot.models import Point, Viewport

VIEWPORT = Viewport(width=1280, height=800)

# ---------------------------------------------------------------------------
# Region Mapping Tests
# ---------------------------------------------------------------------------

def test_full_region_maps_to_viewport_center():
    assert region_center([0, 0, 1000, 1000], VIEWPORT) == Point(x=640, y=400)

def test_smaller_box_same_center():
    assert region_center([250, 250, 750, 750], VIEWPORT) == Point(x=640, y=400)

def test_axes_scale_independently():
    # [top, left, bottom, right]
    point = region_center([100, 500, 300, 700], VIEWPORT)
    assert point.x == pytest.approx(768.0)  # (500 + 700) / 2 / 1000 * 1280
    assert point.y == pytest.approx(160.0)  # (100 + 300) / 2 / 1000 * 800

def test_xyxy_order_swaps_axes():
    # [left, top, right, bottom]
    point = region_center([500, 100, 700, 300], VIEWPORT, order=BoxOrder.XYXY)
    assert point == region_center([100, 500, 300, 700], VIEWPORT, order=BoxOrder.YXYX)

def test_order_accepts_plain_string():
    assert region_center([500, 100, 700, 300], VIEWPORT, order="xyxy").x == pytest.approx(768.0)

def test_out_of_range_passes_through():
    point = region_center([-200, 1000, 0, 1400], VIEWPORT)
    assert point.x == pytest.approx(1536.0)
    assert point.y == pytest.approx(-80.0)

def test_no_rounding():
    point = region_center([0, 0, 1, 1], Viewport(width=1000, height=1000))
    assert point.x == pytest.approx(0.5)
    assert point.y == pytest.approx(0.5)

@pytest.mark.parametrize("region", [[], [1, 2, 3], [1, 2, 3, 4, 5]])
def test_wrong_arity_rejected(region):
    with pytest.raises(ValueError, match="4 values"):
        region_center(region, VIEWPORT)

# ---------------------------------------------------------------------------
# Clamping Tests
# ---------------------------------------------------------------------------

def test_clamp_point_inside_is_unchanged():
    assert clamp_point(Point(x=10.5, y=20.25), VIEWPORT) == Point(x=10.5, y=20.25)

def test_clamp_point_pulls_back_into_viewport():
    assert clamp_point(Point(x=1536.0, y=-80.0), VIEWPORT) == Point(x=1279.0, y=0.0)
