# run.py
# Entry point. Config and wiring only — no logic lives here.
#
# Swap MODEL for any vision-capable OpenRouter model.
# https://openrouter.ai/models
# OPENROUTER_API_KEY is read from the environment or a local .env file.

import sys

from screen_pilot.browser import BrowserDevice
from screen_pilot.coords import BoxOrder
from screen_pilot.harness import OpenRouterModel, Pilot
from screen_pilot.models import Viewport

MODEL = "google/gemini-3-flash-preview"
MAX_STEPS = 15
DEEP_THINK = True
HEADLESS = False
VIEWPORT = Viewport(width=1280, height=800)
# Gemini answers with [ymin, xmin, ymax, xmax]; switch to BoxOrder.XYXY for x-first models.
BOX_ORDER = BoxOrder.YXYX

# Demo tasks — used when no instruction is passed on the command line.
TASKS = [
    "Open https://httpbin.org/forms/post and fill the Customer name field with 'Ada', "
    "then return the value you typed.",
    "Open https://news.ycombinator.com, tell me the title of the top story.",
]


def main() -> None:
    tasks = [" ".join(sys.argv[1:])] if len(sys.argv) > 1 else TASKS

    with BrowserDevice(headless=HEADLESS, viewport=VIEWPORT) as device:
        pilot = Pilot(
            OpenRouterModel(),
            device,
            device,
            model=MODEL,
            max_steps=MAX_STEPS,
            deep_think=DEEP_THINK,
            box_order=BOX_ORDER,
        )
        for task in tasks:
            result = pilot.run(task)
            print(f"\n[RESULT]\n{result.model_dump_json(indent=2)}\n")


if __name__ == "__main__":
    main()
