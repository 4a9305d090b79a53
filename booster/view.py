"""Text layout and box rendering used by the terminal interface."""

from __future__ import annotations

import math
import textwrap
import unicodedata
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional, Union

from booster.summary import format_duration
from booster.util import clamp

Elapsed = Union[timedelta, float, int]

_TWO_COLUMN_MIN_WIDTH = 80
_TWO_COLUMN_MIN_HEIGHT = 12
_LEFT_MIN_WIDTH = 30
_LEFT_MAX_WIDTH = 50

_FAILURE_DEFAULT_WIDTH = 60
_FAILURE_MIN_WIDTH = 40
_FAILURE_MAX_WIDTH = 80
_FAILURE_OUTPUT_LINES = 10

_FOCUSED_BORDER = ("┏", "━", "┓", "┃", "┗", "┛")
_UNFOCUSED_BORDER = ("┌", "─", "┐", "│", "└", "┘")


def _char_width(char: str) -> int:
    if unicodedata.combining(char):
        return 0
    return 2 if unicodedata.east_asian_width(char) in ("W", "F") else 1


def display_width(text: str) -> int:
    """Number of terminal cells ``text`` occupies."""
    return sum(_char_width(char) for char in text)


def _truncate(text: str, width: int) -> str:
    kept: list[str] = []
    used = 0
    for char in text:
        cells = _char_width(char)
        if used + cells > width:
            break
        kept.append(char)
        used += cells
    return "".join(kept)


def _fit(text: str, width: int) -> str:
    """Truncate or pad ``text`` to exactly ``width`` cells."""
    if width <= 0:
        return ""
    clipped = _truncate(text, width)
    return clipped + " " * (width - display_width(clipped))


@dataclass(frozen=True)
class Layout:
    """Dimensions of the content area and its split into two panels."""

    width: int
    height: int
    left_width: int
    right_width: int

    def is_two_column(self) -> bool:
        """Whether the area is large enough for side-by-side panels."""
        return self.width >= _TWO_COLUMN_MIN_WIDTH and self.height >= _TWO_COLUMN_MIN_HEIGHT


def compute_layout(width: int, height: int) -> Layout:
    """Split a content area of ``width`` by ``height`` into panel widths."""
    probe = Layout(width, height, width, 0)
    if not probe.is_two_column():
        return probe
    left = clamp(width * 2 // 5, _LEFT_MIN_WIDTH, _LEFT_MAX_WIDTH)
    return Layout(width, height, left, width - left)


def render_task_with_leader(prefix: str, name: str, suffix: str, total_width: int) -> str:
    """Join name and suffix with a run of dots filling the line.

    At least three dots are always drawn.
    """
    used = display_width(prefix) + display_width(name) + display_width(suffix)
    leader_count = max(total_width - used - 2, 3)
    return f"{prefix}{name} {'·' * leader_count} {suffix}"


def render_progress(completed: int, total: int, elapsed: Elapsed, width: int) -> str:
    """Render a progress bar line followed by a counts and time line."""
    width = max(width, 0)
    fraction = completed / total if total > 0 else 0.0
    filled = clamp(int(math.floor(fraction * width + 0.5)), 0, width)
    bar = "█" * filled + "░" * (width - filled)
    percent = int(math.floor(fraction * 100 + 0.5))
    status = f"{completed}/{total} tasks • {percent}% • {format_duration(elapsed)}"
    return f"{bar}\n{status}"


def render_panel(title: str, content: str, width: int, height: int, focused: bool) -> str:
    """Render a bordered panel of exactly ``width`` by ``height`` cells.

    The first line inside the border holds the title; the content follows,
    clipped or padded to fill the panel.
    """
    top_left, horizontal, top_right, vertical, bottom_left, bottom_right = (
        _FOCUSED_BORDER if focused else _UNFOCUSED_BORDER
    )
    inner = max(width - 2, 0)
    text_width = max(inner - 2, 0)
    body_height = max(height - 3, 0)

    content_lines = content.split("\n") if content else []
    content_lines = content_lines[:body_height]
    content_lines += [""] * (body_height - len(content_lines))

    lines = [top_left + horizontal * inner + top_right]
    lines.append(vertical + _fit(f" {title}", inner) + vertical)
    lines.extend(
        vertical + _fit(f" {_fit(line, text_width)} ", inner) + vertical
        for line in content_lines
    )
    lines.append(bottom_left + horizontal * inner + bottom_right)
    return "\n".join(lines)


def render_failure(
    task_name: str,
    error: Optional[Union[BaseException, str]],
    output: str,
    width: int,
) -> str:
    """Render a box describing a failed task, its error and recent output."""
    box_width = width if width >= _FAILURE_MIN_WIDTH else _FAILURE_DEFAULT_WIDTH
    box_width = min(box_width, _FAILURE_MAX_WIDTH)
    inner = box_width - 4

    body = [f"✗ FAILED: {task_name}"]
    message = str(error) if error is not None else ""
    if message:
        body.append("")
        body.extend(textwrap.wrap(f"Error: {message}", inner) or [""])
    output_lines = output.strip().splitlines()
    if output_lines:
        body.append("")
        body.append("Output:")
        for line in output_lines[-_FAILURE_OUTPUT_LINES:]:
            body.extend(textwrap.wrap(line, inner) or [""])

    lines = ["┌" + "─" * (inner + 2) + "┐"]
    lines.extend(f"│ {_fit(line, inner)} │" for line in body)
    lines.append("└" + "─" * (inner + 2) + "┘")
    return "\n".join(lines)


def render_container(content: str) -> str:
    """Wrap ``content`` in a rounded border with one cell of side padding."""
    content_lines = content.split("\n")
    inner = max((display_width(line) for line in content_lines), default=0)
    lines = ["╭" + "─" * (inner + 2) + "╮"]
    lines.extend(f"│ {_fit(line, inner)} │" for line in content_lines)
    lines.append("╰" + "─" * (inner + 2) + "╯")
    return "\n".join(lines)