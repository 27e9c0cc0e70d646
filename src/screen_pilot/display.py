# display.py
# All terminal output for the screen pilot.
#
# This module owns presentation entirely. harness.py and browser.py never
# format strings — they call named functions here. Swap this file to change
# the entire UI.
#
# Colour language:
#   cyan    — loop scaffolding / step boundaries
#   blue    — model calls and raw responses
#   yellow  — plan and memory updates, recoverable warnings
#   green   — success / confirmed
#   red     — failures, halts
#   magenta — decoded decision (thought / log / action)

import json

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table
from rich.text import Text

from screen_pilot.models import Point, SubGoal, TaskResult, Viewport

console = Console()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _label(tag: str, color: str) -> Text:
    t = Text()
    t.append(f" {tag} ", style=f"bold white on {color}")
    return t


def _mono(value: str, max_len: int = 120) -> str:
    if len(value) > max_len:
        return value[:max_len] + "…"
    return value


_STATUS_STYLE = {
    "pending": "dim white",
    "running": "bold yellow",
    "finished": "green",
}


# ---------------------------------------------------------------------------
# Task entry
# ---------------------------------------------------------------------------


def banner(model: str, max_steps: int, deep_think: bool) -> None:
    console.print()
    console.print(
        Panel.fit(
            "[bold cyan]Screen Pilot[/bold cyan]\n"
            "[dim]Screenshot → model decision → UI action, one step at a time[/dim]\n\n"
            f"[dim]Model      :[/dim] [white]{model}[/white]\n"
            f"[dim]Max steps  :[/dim] [white]{max_steps}[/white]\n"
            f"[dim]Deep think :[/dim] [white]{'on' if deep_think else 'off'}[/white]",
            border_style="cyan",
            padding=(1, 4),
        )
    )


def task_received(instruction: str) -> None:
    console.print()
    console.print(Rule("[cyan]NEW TASK[/cyan]", style="cyan"))
    console.print(
        Panel(
            f"[white]{escape(instruction)}[/white]",
            title=_label("INSTRUCTION", "cyan"),
            border_style="cyan",
            padding=(0, 2),
        )
    )


# ---------------------------------------------------------------------------
# Step loop
# ---------------------------------------------------------------------------


def step_start(step: int, max_steps: int) -> None:
    console.print()
    console.print(Rule(f"[cyan]STEP {step}/{max_steps}[/cyan]", style="cyan"))


def observed(viewport: Viewport, attached: bool) -> None:
    note = "attached to pending user turn" if attached else "turn already has a screenshot"
    console.print(
        _label("OBSERVE", "cyan"),
        f"[cyan] viewport {viewport.width}×{viewport.height}[/cyan] [dim]({note})[/dim]",
    )


def observe_failed(message: str) -> None:
    console.print(
        Panel(
            "[bold red]Screenshot failed.[/bold red]\n"
            f"[white]{escape(message)}[/white]\n"
            "[dim]Skipping the model call this step.[/dim]",
            title=_label("OBSERVE FAILED ✗", "red"),
            border_style="red",
            padding=(0, 2),
        )
    )


def calling_model(model: str, turns: int) -> None:
    console.print(
        _label("MODEL", "blue"),
        f"[blue] → {model}[/blue] [dim]with {turns} turn(s)…[/dim]",
    )


def model_reasoning(reasoning: str) -> None:
    console.print(f"  [dim blue]Reasoning[/dim blue]  [dim]{escape(_mono(reasoning, 200))}[/dim]")


def model_response(raw: str) -> None:
    console.print(
        Panel(
            f"[dim white]{escape(_mono(raw, 1200))}[/dim white]",
            title=_label("RAW RESPONSE", "blue"),
            border_style="blue",
            padding=(0, 2),
        )
    )


# ---------------------------------------------------------------------------
# Decoded decision
# ---------------------------------------------------------------------------


def thought(text: str) -> None:
    console.print(f"  [magenta]Thought[/magenta]  [dim white]{escape(_mono(text, 200))}[/dim white]")


def log_line(text: str) -> None:
    console.print(f"  [magenta]Log[/magenta]      [white]{escape(text)}[/white]")


def param_undecodable(action_type: str, raw: str) -> None:
    console.print(
        _label("DECODE", "yellow"),
        f"[yellow] <action-param-json> for[/yellow] [bold white]{escape(action_type)}[/bold white]"
        f"[yellow] is not a JSON object — continuing without params.[/yellow]",
    )
    console.print(f"  [dim]{escape(_mono(raw, 160))}[/dim]")


def plan_updated(goals: list[SubGoal]) -> None:
    table = Table(box=box.SIMPLE, show_header=True, header_style="bold yellow", padding=(0, 1))
    table.add_column("#", justify="center", width=4)
    table.add_column("Sub-goal", style="white")
    table.add_column("Status", width=10)

    for goal in goals:
        style = _STATUS_STYLE.get(goal.status, "white")
        table.add_row(str(goal.index), escape(goal.description), f"[{style}]{goal.status}[/{style}]")

    console.print(
        Panel(
            table,
            title=_label("PLAN UPDATED", "yellow"),
            border_style="yellow",
            padding=(0, 1),
        )
    )


def sub_goals_finished(indexes: list[int]) -> None:
    joined = ", ".join(str(i) for i in indexes)
    console.print(f"  [bold green]✓ Sub-goals finished:[/bold green] [white]{joined}[/white]")


def memory_added(memory: str) -> None:
    console.print(f"  [yellow]Memory[/yellow]   [white]{escape(_mono(memory, 160))}[/white]")


# ---------------------------------------------------------------------------
# Actuation
# ---------------------------------------------------------------------------


def action(action_type: str, param: dict | None) -> None:
    console.print(
        f"  [magenta]Action[/magenta]   [bold white]{escape(action_type)}[/bold white]"
        f"  [dim]{escape(json.dumps(param)) if param is not None else '(no params)'}[/dim]"
    )


def action_point(point: Point) -> None:
    console.print(f"  [magenta]Target[/magenta]   [white]({point.x:.1f}, {point.y:.1f})[/white]")


def action_done(action_type: str) -> None:
    console.print(f"  [bold green]✓ {escape(action_type)} executed[/bold green]")


def action_failed(action_type: str, message: str) -> None:
    console.print(
        Panel(
            f"[bold red]Action {escape(action_type)} failed.[/bold red]\n"
            f"[white]{escape(message)}[/white]\n"
            "[dim]Reported back to the model for recovery.[/dim]",
            title=_label("ACTION FAILED ✗", "red"),
            border_style="red",
            padding=(0, 2),
        )
    )


def agent_error(message: str) -> None:
    console.print(
        _label("MODEL ERROR", "red"),
        f"[red] {escape(message)}[/red] [dim]— asking the model to recover.[/dim]",
    )


def no_action() -> None:
    console.print(
        _label("IDLE", "yellow"),
        "[yellow] No action in response — asking the model to continue.[/yellow]",
    )


def history_compressed(turns: int) -> None:
    console.print(f"  [dim cyan]Transcript compressed to {turns} turn(s).[/dim cyan]")


# ---------------------------------------------------------------------------
# Terminal states
# ---------------------------------------------------------------------------


def completed(success: bool, message: str) -> None:
    color = "green" if success else "red"
    mark = "✓" if success else "✗"
    console.print()
    console.print(
        Panel(
            f"[white]{escape(message)}[/white]",
            title=_label(f"TASK {'SUCCEEDED' if success else 'FAILED'} {mark}", color),
            border_style=color,
            padding=(1, 2),
        )
    )


def budget_exhausted(max_steps: int) -> None:
    console.print()
    console.print(
        Panel(
            f"[bold white]Step budget of {max_steps} reached without completion.[/bold white]",
            title=_label("HALT", "red"),
            border_style="red",
            padding=(0, 2),
        )
    )


def task_summary(result: TaskResult) -> None:
    table = Table(
        box=box.SIMPLE_HEAVY,
        border_style="dim",
        show_header=True,
        header_style="bold dim",
        padding=(0, 1),
    )
    table.add_column("#", justify="center", width=4)
    table.add_column("Sub-goal", style="dim white")
    table.add_column("Status", width=10)

    for goal in result.sub_goals:
        style = _STATUS_STYLE.get(goal.status, "white")
        table.add_row(str(goal.index), escape(goal.description), f"[{style}]{goal.status}[/{style}]")

    console.print(
        Panel(
            table,
            title=f"[dim]SUMMARY — {result.status.value}, {result.steps} step(s)[/dim]",
            border_style="dim",
            padding=(0, 1),
        )
    )
    console.print()
