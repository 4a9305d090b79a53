"""Completion summary rendering: header box, statistics and slowest tasks."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Sequence, Union

from booster.util import clamp

Elapsed = Union[timedelta, float, int]

_RULE = "─" * 41
_BAR_WIDTH = 20
_LABEL_WIDTH = len("completed")
_MAX_SLOWEST = 3
_DEFAULT_BOX_WIDTH = 60
_MIN_BOX_WIDTH = 40
_MAX_BOX_WIDTH = 80


@dataclass
class TaskTiming:
    """A task name together with how long it ran."""

    name: str
    duration: Elapsed


@dataclass
class SummaryData:
    """Completion statistics for a run."""

    done: int = 0
    skipped: int = 0
    failed: int = 0
    total: int = 0
    elapsed: Elapsed = field(default_factory=timedelta)
    slowest_tasks: list[TaskTiming] = field(default_factory=list)


def _to_seconds(elapsed: Elapsed) -> float:
    if isinstance(elapsed, timedelta):
        return elapsed.total_seconds()
    return float(elapsed)


def _round_half_away(value: float) -> int:
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def format_duration(elapsed: Elapsed) -> str:
    """Format a duration as e.g. ``"2m 34s"``, ``"45s"`` or ``"5.2s"``."""
    seconds = _to_seconds(elapsed)
    if seconds < 1:
        return "0s"
    if seconds >= 60:
        return f"{int(seconds // 60)}m {int(seconds) % 60}s"
    if seconds >= 10:
        return f"{int(seconds)}s"
    return f"{seconds:.1f}s"


def render_header_box(title: str, elapsed: Elapsed, width: int) -> str:
    """Render a bordered box holding the title and the total elapsed time."""
    box_width = width if width > 0 else _DEFAULT_BOX_WIDTH
    box_width = clamp(box_width, _MIN_BOX_WIDTH, _MAX_BOX_WIDTH)
    inner = box_width - 4

    lines = [title, f"{format_duration(elapsed)} total"]
    top = "┌" + "─" * (inner + 2) + "┐"
    bottom = "└" + "─" * (inner + 2) + "┘"
    body = [f"│ {line.center(inner)} │" for line in lines]
    return "\n".join([top, *body, bottom])


def render_mini_bar(percent: float, width: int) -> str:
    """Render a bar of ``width`` cells, filled in proportion to ``percent``."""
    filled = clamp(_round_half_away(percent / 100 * width), 0, width)
    return "█" * filled + "░" * (width - filled)


def render_stat_line(count: int, label: str, percent: float) -> str:
    """Render one statistics line: count, padded label, bar and percentage."""
    bar = render_mini_bar(percent, _BAR_WIDTH)
    return f"     {count:2d} {label:<{_LABEL_WIDTH}}    {bar}  {percent:3.0f}%"


def render_statistics(data: SummaryData) -> str:
    """Render the statistics section with one line per outcome."""
    total = data.total or 1
    rows = [
        (data.done, "completed"),
        (data.skipped, "skipped"),
        (data.failed, "failed"),
    ]
    lines = ["  Summary", "  " + _RULE]
    lines.extend(
        render_stat_line(count, label, count / total * 100) for count, label in rows
    )
    return "\n".join(lines)


def render_slowest_tasks(tasks: Sequence[TaskTiming]) -> str:
    """Render the section listing up to three of the slowest tasks."""
    lines = ["  Slowest Tasks", "  " + _RULE]
    lines.extend(
        f"     {format_duration(task.duration):>6}   {task.name}"
        for task in tasks[:_MAX_SLOWEST]
    )
    return "\n".join(lines)


def _render(title: str, data: SummaryData, width: int) -> str:
    parts = [
        render_header_box(title, data.elapsed, width),
        "\n\n",
        render_statistics(data),
        "\n",
    ]
    if data.slowest_tasks:
        parts.append("\n")
        parts.append(render_slowest_tasks(data.slowest_tasks))
    return "".join(parts)


def render_summary(data: SummaryData, width: int) -> str:
    """Render the completion summary for a successful run."""
    return _render("✓ BOOSTER COMPLETE", data, width)


def render_failed_summary(data: SummaryData, width: int) -> str:
    """Render the completion summary for a run that had failures."""
    return _render("✗ BOOSTER FAILED", data, width)