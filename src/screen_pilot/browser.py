# browser.py
# Playwright-backed observer and actuator.
#
# BrowserDevice implements both Observer.observe() and Actuator.perform().
# It only ever receives typed action variants from actions.py, and points
# that harness.py already resolved from the model's 0–1000 region.

import base64
import io

from PIL import Image
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import sync_playwright

from screen_pilot.actions import (
    BrowserAction,
    InputAction,
    LaunchAction,
    ScrollAction,
    SleepAction,
    TapAction,
)
from screen_pilot.coords import clamp_point
from screen_pilot.errors import ActionError, PilotStateError
from screen_pilot.models import Observation, Point, Viewport

JPEG_QUALITY = 90
FOCUS_SETTLE_MS = 500
TYPE_DELAY_MS = 100
EDGE_SCROLL_REPEATS = 10

_EDGE_SCROLLS = {
    "scrollToBottom": "down",
    "scrollToTop": "up",
    "scrollToRight": "right",
    "scrollToLeft": "left",
}


class BrowserDevice:
    """
    One Chromium page driven through Playwright's sync API.

    Usage:
        with BrowserDevice(headless=True) as device:
            pilot = Pilot(OpenRouterModel(), device, device)
            pilot.run("...")
    """

    def __init__(
        self,
        headless: bool = False,
        viewport: Viewport | None = None,
        scroll_amount: int = 500,
    ) -> None:
        self.headless = headless
        self.viewport = viewport or Viewport(width=1280, height=800)
        self.scroll_amount = scroll_amount
        self._playwright = None
        self._browser = None
        self._page = None
        self._handlers = {
            LaunchAction: self._launch,
            TapAction: self._tap,
            InputAction: self._input,
            ScrollAction: self._scroll,
            SleepAction: self._sleep,
        }

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        if self._page is not None:
            return
        self._playwright = sync_playwright().start()
        self._browser = self._playwright.chromium.launch(
            headless=self.headless,
            args=["--no-sandbox", "--disable-setuid-sandbox"],
        )
        self._page = self._browser.new_page(
            viewport={"width": self.viewport.width, "height": self.viewport.height}
        )

    def close(self) -> None:
        try:
            if self._browser:
                self._browser.close()
            if self._playwright:
                self._playwright.stop()
        finally:
            self._browser = None
            self._playwright = None
            self._page = None

    def __enter__(self) -> "BrowserDevice":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def page(self):
        if self._page is None:
            raise PilotStateError("Browser not started. Call start() first.")
        return self._page

    # ------------------------------------------------------------------
    # Observer
    # ------------------------------------------------------------------

    def observe(self) -> Observation:
        """Screenshot resized to the logical viewport, so regions map 1:1."""
        page = self.page
        try:
            size = page.evaluate("() => ({ width: window.innerWidth, height: window.innerHeight })")
            raw = page.screenshot(type="jpeg", quality=JPEG_QUALITY)
        except PlaywrightError as exc:
            # Navigation started by the previous action can destroy the context.
            raise ActionError(_first_line(exc)) from exc
        viewport = Viewport(width=size["width"], height=size["height"])
        return Observation(viewport=viewport, image=_normalize_screenshot(raw, viewport))

    # ------------------------------------------------------------------
    # Actuator
    # ------------------------------------------------------------------

    def perform(self, action: BrowserAction, point: Point | None) -> None:
        handler = self._handlers.get(type(action))
        if handler is None:
            raise ActionError(f"No handler for action '{action.type}'")
        try:
            handler(action, point)
        except PlaywrightError as exc:
            raise ActionError(_first_line(exc)) from exc

    def _launch(self, action: LaunchAction, point: Point | None) -> None:
        url = action.url
        if not url.startswith(("http://", "https://", "about:", "file:")):
            url = "https://" + url
        self.page.goto(url)

    def _tap(self, action: TapAction, point: Point | None) -> None:
        if point is None:
            raise ActionError("Tap requires a located region")
        target = self._clamped(point)
        self.page.mouse.click(target.x, target.y)

    def _input(self, action: InputAction, point: Point | None) -> None:
        replacing = action.mode in ("replace", "clear")
        if point is not None:
            target = self._clamped(point)
            # Triple click focuses the field and selects what is already there.
            self.page.mouse.click(target.x, target.y, click_count=3 if replacing else 1)
            self.page.wait_for_timeout(FOCUS_SETTLE_MS)

        keyboard = self.page.keyboard
        if action.mode == "append":
            keyboard.press("End")
        elif replacing and point is None:
            keyboard.press("ControlOrMeta+A")
        if replacing:
            keyboard.press("Backspace")
        if action.mode != "clear" and action.value:
            keyboard.type(action.value, delay=TYPE_DELAY_MS)

    def _scroll(self, action: ScrollAction, point: Point | None) -> None:
        if point is not None:
            target = self._clamped(point)
            self.page.mouse.move(target.x, target.y)

        if action.scroll_type in _EDGE_SCROLLS:
            direction = _EDGE_SCROLLS[action.scroll_type]
            for _ in range(EDGE_SCROLL_REPEATS):
                self._scroll_by(direction, self.scroll_amount * 2, point)
            return
        self._scroll_by(action.direction, action.distance or self.scroll_amount, point)

    def _scroll_by(self, direction: str, distance: int, point: Point | None) -> None:
        """Wheel over a located element, otherwise scroll the window itself."""
        dx = dy = 0
        if direction == "down":
            dy = distance
        elif direction == "up":
            dy = -distance
        elif direction == "right":
            dx = distance
        elif direction == "left":
            dx = -distance
        if point is None:
            self.page.evaluate("([x, y]) => window.scrollBy(x, y)", [dx, dy])
        else:
            self.page.mouse.wheel(dx, dy)

    def _sleep(self, action: SleepAction, point: Point | None) -> None:
        self.page.wait_for_timeout(action.time_ms)

    def _clamped(self, point: Point) -> Point:
        size = self.page.viewport_size or {"width": self.viewport.width, "height": self.viewport.height}
        return clamp_point(point, Viewport(width=size["width"], height=size["height"]))


def _first_line(exc: PlaywrightError) -> str:
    message = str(exc)
    return message.splitlines()[0] if message else repr(exc)


def _normalize_screenshot(raw: bytes, viewport: Viewport) -> str:
    """Base64 JPEG at exactly the viewport's logical size."""
    with Image.open(io.BytesIO(raw)) as image:
        if image.size == (viewport.width, viewport.height):
            return base64.b64encode(raw).decode("ascii")
        resized = image.convert("RGB").resize((viewport.width, viewport.height))
        buffer = io.BytesIO()
        resized.save(buffer, format="JPEG", quality=JPEG_QUALITY)
        return base64.b64encode(buffer.getvalue()).decode("ascii")
