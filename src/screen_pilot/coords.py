# coords.py
# Maps a model-reported region to a pixel point on the current viewport.
#
# Regions arrive as four numbers on a 0–1000 grid, independent of the real
# device resolution. The axis order is a protocol detail, not a property of
# the mapper: the current prompt asks for [ymin, xmin, ymax, xmax]
# (BoxOrder.YXYX); models that answer in [xmin, ymin, xmax, ymax] can be
# served by passing BoxOrder.XYXY.
#
# No rounding or clamping happens in region_center(). Callers that dispatch
# to a device clamp the point themselves with clamp_point().

from collections.abc import Sequence
from enum import Enum

from screen_pilot.models import Point, Viewport

NORMALIZED_SCALE = 1000


class BoxOrder(str, Enum):
    YXYX = "yxyx"  # [top, left, bottom, right]
    XYXY = "xyxy"  # [left, top, right, bottom]


def region_center(
    region: Sequence[float],
    viewport: Viewport,
    order: BoxOrder = BoxOrder.YXYX,
) -> Point:
    """
    Center of a normalized region, scaled independently on each axis.

    Out-of-range values pass through arithmetically.
    Raises ValueError if `region` does not hold exactly four numbers.
    """
    if len(region) != 4:
        raise ValueError(f"Region must have 4 values, got {len(region)}: {list(region)}")

    if BoxOrder(order) is BoxOrder.YXYX:
        top, left, bottom, right = region
    else:
        left, top, right, bottom = region

    x = ((left + right) / 2 / NORMALIZED_SCALE) * viewport.width
    y = ((top + bottom) / 2 / NORMALIZED_SCALE) * viewport.height
    return Point(x=x, y=y)


def clamp_point(point: Point, viewport: Viewport) -> Point:
    """Pull a point back inside [0, width - 1] x [0, height - 1]."""
    max_x = max(0, viewport.width - 1)
    max_y = max(0, viewport.height - 1)
    return Point(
        x=min(max(point.x, 0.0), float(max_x)),
        y=min(max(point.y, 0.0), float(max_y)),
    )
