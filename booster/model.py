"""The interactive model behind the terminal interface.

The model receives messages (key presses, task completion, log lines, …)
through :meth:`Model.update`, which changes its state and may return a
command: a callable that produces the next message, or a list of such
callables to be run concurrently.
"""

from __future__ import annotations

import copy
import enum
import time
from dataclasses import dataclass, field
from typing import Callable, Iterator, Optional, Sequence, Union

from booster.execution import Executor, LogWriter, Task, TaskResult, TaskStatus
from booster.summary import (
    SummaryData,
    TaskTiming,
    render_failed_summary,
    render_summary,
)
from booster.view import (
    Layout,
    compute_layout,
    display_width,
    render_container,
    render_failure,
    render_panel,
    render_progress,
    render_task_with_leader,
)
from booster.viewport import Viewport

MAX_LOG_LINES = 8
OUTPUT_VIEW_HEIGHT = 15
LOG_BUFFER_SIZE = 100
SPINNER_INTERVAL = 0.08
SPINNER_FRAMES = ("⣾", "⣽", "⣻", "⢿", "⡿", "⣟", "⣯", "⣷")
_CONDITION_PREFIX = "condition not met:"

Command = Callable[[], object]
Commands = Union[Command, list]


class FocusPanel(enum.Enum):
    """Which panel has focus in two-column mode."""

    TASK_LIST = "task_list"
    LOGS = "logs"


@dataclass(frozen=True)
class StartTask:
    """Start the next task."""


@dataclass(frozen=True)
class TaskDone:
    """A task has finished."""

    result: TaskResult


@dataclass(frozen=True)
class LogLine:
    """A log line from the running task."""

    line: str


@dataclass(frozen=True)
class LogDone:
    """The running task's log stream has ended."""


@dataclass(frozen=True)
class SpinnerTick:
    """Advance the spinner animation."""


@dataclass(frozen=True)
class KeyPress:
    """A key, named like ``"q"``, ``"enter"``, ``"tab"`` or ``"ctrl+c"``."""

    key: str


@dataclass(frozen=True)
class MouseEvent:
    """A mouse event; ``button`` is ``"left"``, ``"wheel_up"`` or ``"wheel_down"``."""

    x: int
    y: int = 0
    button: str = "left"


@dataclass(frozen=True)
class WindowSize:
    """The terminal was resized."""

    width: int
    height: int


@dataclass(frozen=True)
class Quit:
    """The interface should exit."""


def _quit() -> Quit:
    return Quit()


def _start_next() -> StartTask:
    return StartTask()


def _spinner_tick() -> SpinnerTick:
    time.sleep(SPINNER_INTERVAL)
    return SpinnerTick()


def _listen_for_logs(lines: Optional[Iterator[str]]) -> Optional[Command]:
    if lines is None:
        return None

    def listen() -> object:
        line = next(lines, None)
        return LogDone() if line is None else LogLine(line)

    return listen


def _format_elapsed_compact(elapsed) -> str:
    seconds = elapsed.total_seconds()
    if seconds < 1:
        return f"{int(seconds * 1000)}ms"
    if seconds < 60:
        return f"{seconds:.1f}s"
    return f"{int(seconds // 60)}m {int(seconds) % 60}s"


def _skip_label(result: TaskResult) -> str:
    return "skipped" if result.message.startswith(_CONDITION_PREFIX) else "exists"


def _join_horizontal(left: str, right: str) -> str:
    left_lines = left.split("\n")
    right_lines = right.split("\n")
    left_width = max((display_width(line) for line in left_lines), default=0)
    rows = max(len(left_lines), len(right_lines))
    left_lines += [""] * (rows - len(left_lines))
    right_lines += [""] * (rows - len(right_lines))
    return "\n".join(
        a + " " * (left_width - display_width(a)) + b
        for a, b in zip(left_lines, right_lines)
    )


@dataclass
class Model:
    """State of the terminal interface while tasks run and after they stop."""

    tasks: Sequence[Task]
    executor: Executor = field(init=False)
    show_output: bool = field(default=False, init=False)
    show_logs: bool = field(default=True, init=False)
    width: int = field(default=0, init=False)
    height: int = field(default=0, init=False)
    output_viewport: Viewport = field(default_factory=Viewport, init=False)
    log_viewport: Viewport = field(default_factory=Viewport, init=False)
    task_viewport: Viewport = field(default_factory=Viewport, init=False)
    log_history: dict = field(default_factory=dict, init=False)
    current_logs: list = field(default_factory=list, init=False)
    selected_task: int = field(default=0, init=False)
    focused_panel: FocusPanel = field(default=FocusPanel.TASK_LIST, init=False)
    pending_result: Optional[TaskResult] = field(default=None, init=False)
    logs_done: bool = field(default=False, init=False)
    spinner_frame: int = field(default=0, init=False)

    def __post_init__(self) -> None:
        self.executor = Executor(self.tasks)
        self._log_writer: Optional[LogWriter] = None
        self._log_lines: Optional[Iterator[str]] = None

    # ----- lifecycle -------------------------------------------------

    def init(self) -> Optional[Command]:
        """The first command: start a task, or nothing if there are none."""
        if self.executor.done():
            return None
        return _start_next

    def start_task(self) -> tuple[LogWriter, list]:
        """Set up log streaming for the next task and return its commands."""
        writer = LogWriter(LOG_BUFFER_SIZE)
        self._log_writer = writer
        self._log_lines = writer.lines()
        commands = [self.run_task(writer), _listen_for_logs(self._log_lines), _spinner_tick]
        return writer, commands

    def run_task(self, writer: LogWriter) -> Command:
        """A command that runs the next task with ``writer`` as its log sink."""
        executor = self.executor

        def run() -> TaskDone:
            with writer:
                result = executor.run_next()
            return TaskDone(result if result is not None else TaskResult())

        return run

    # ----- layout helpers -------------------------------------------

    def _content_dimensions(self) -> tuple[int, int]:
        return max(self.width - 4, 10), max(self.height - 2, 3)

    def _layout(self) -> Layout:
        return compute_layout(*self._content_dimensions())

    def _is_two_column(self) -> bool:
        return self._layout().is_two_column()

    def _is_two_column_running(self) -> bool:
        return self._is_two_column() and not self.executor.stopped()

    def _size_panel_viewports(self, layout: Layout, create: bool) -> None:
        task_height = max(layout.height - 8, 3)
        if create:
            self.log_viewport = Viewport(layout.right_width - 2, layout.height - 5)
            self.task_viewport = Viewport(layout.left_width - 4, task_height)
        else:
            self.log_viewport.width = layout.right_width - 2
            self.log_viewport.height = layout.height - 5
            self.task_viewport.width = layout.left_width - 4
            self.task_viewport.height = task_height

    def _spinner(self) -> str:
        return SPINNER_FRAMES[self.spinner_frame % len(SPINNER_FRAMES)]

    # ----- update ----------------------------------------------------

    def update(self, message: object) -> Optional[Commands]:
        """Apply ``message`` to the model and return the follow-up command."""
        if isinstance(message, MouseEvent):
            return self._handle_mouse(message)
        if isinstance(message, KeyPress):
            return self._handle_key(message.key)
        if isinstance(message, StartTask):
            _, commands = self.start_task()
            self.logs_done = False
            self.pending_result = None
            if self._is_two_column_running():
                self._size_panel_viewports(self._layout(), create=True)
                self.log_viewport.set_content("")
            return commands
        if isinstance(message, SpinnerTick):
            self.spinner_frame = (self.spinner_frame + 1) % len(SPINNER_FRAMES)
            return None if self.executor.stopped() else _spinner_tick
        if isinstance(message, LogLine):
            self.current_logs.append(message.line)
            if self._is_two_column_running():
                was_at_bottom = self.log_viewport.at_bottom()
                self.log_viewport.set_content("\n".join(self.current_logs))
                if was_at_bottom:
                    self.log_viewport.goto_bottom()
            return _listen_for_logs(self._log_lines)
        if isinstance(message, LogDone):
            self.logs_done = True
            if self.pending_result is not None:
                return self._complete_task(self.pending_result)
            return None
        if isinstance(message, TaskDone):
            if not self.logs_done:
                self.pending_result = message.result
                return None
            return self._complete_task(message.result)
        if isinstance(message, WindowSize):
            self.width, self.height = message.width, message.height
            content_width, content_height = self._content_dimensions()
            if self.show_output:
                self.output_viewport.width = content_width
                self.output_viewport.height = min(OUTPUT_VIEW_HEIGHT, content_height // 2)
            layout = compute_layout(content_width, content_height)
            if layout.is_two_column():
                self._size_panel_viewports(layout, create=False)
            return None
        return None

    def _handle_mouse(self, event: MouseEvent) -> None:
        if not (self._is_two_column() and self.show_logs):
            return None
        on_left = event.x - 2 < self._layout().left_width
        if event.button == "left":
            self.focused_panel = FocusPanel.TASK_LIST if on_left else FocusPanel.LOGS
        elif event.button == "wheel_up":
            (self.task_viewport if on_left else self.log_viewport).scroll_up(3)
        elif event.button == "wheel_down":
            (self.task_viewport if on_left else self.log_viewport).scroll_down(3)
        return None

    def _move_selection(self, step: int) -> None:
        target = self.selected_task + step
        if 0 <= target < self.executor.total():
            self.selected_task = target
            self._ensure_task_visible()
        if self.executor.stopped():
            self._update_log_viewport_for_selected_task()

    def _handle_key(self, key: str) -> Optional[Command]:
        stopped = self.executor.stopped()
        if self._is_two_column():
            on_tasks = self.focused_panel is FocusPanel.TASK_LIST
            if key == "o":
                self.show_logs = not self.show_logs
            elif key == "tab":
                self.focused_panel = FocusPanel.LOGS if on_tasks else FocusPanel.TASK_LIST
            elif key in ("j", "down"):
                if on_tasks:
                    self._move_selection(1)
                else:
                    self.log_viewport.scroll_down(1)
            elif key in ("k", "up"):
                if on_tasks:
                    self._move_selection(-1)
                else:
                    self.log_viewport.scroll_up(1)
            elif key == "G":
                if not on_tasks:
                    self.log_viewport.goto_bottom()
            elif key in ("q", "ctrl+c"):
                return _quit
            elif key == "enter" and stopped:
                return _quit
            return None

        if key in ("q", "ctrl+c"):
            return _quit
        if key == "enter":
            return _quit if stopped else None
        if key == "o":
            if stopped:
                self.show_output = not self.show_output
                if self.show_output:
                    self.output_viewport = self.create_output_viewport()
            return None
        if self.show_output and stopped:
            self.output_viewport.handle_key(key)
        return None

    def _complete_task(self, result: TaskResult) -> Optional[Command]:
        task_index = self.executor.current() - 1
        if task_index >= 0 and self.current_logs:
            self.log_history[task_index] = self.current_logs
        self.current_logs = []
        self.pending_result = None
        self.logs_done = False

        if result.status is TaskStatus.FAILED:
            self.executor.abort()
            self._init_log_viewport_for_history()
            return None
        if self.executor.stopped():
            self._init_log_viewport_for_history()
            return None

        if self.selected_task < self.executor.total() - 1:
            self.selected_task += 1
            self._ensure_task_visible()
        return _start_next

    def _ensure_task_visible(self) -> None:
        viewport = self.task_viewport
        if viewport.height == 0:
            return
        start = viewport.y_offset
        if self.selected_task < start:
            viewport.set_y_offset(self.selected_task)
        if self.selected_task >= start + viewport.height:
            viewport.set_y_offset(self.selected_task - viewport.height + 1)

    def _update_log_viewport_for_selected_task(self) -> None:
        self.log_viewport.set_content("\n".join(self.display_logs() or []))

    def _init_log_viewport_for_history(self) -> None:
        if not self._is_two_column():
            return
        self._size_panel_viewports(self._layout(), create=True)
        self._update_log_viewport_for_selected_task()
        self._ensure_task_visible()

    # ----- queries ---------------------------------------------------

    def display_logs(self) -> Optional[list]:
        """Logs of the selected task once stopped, else of the running task."""
        if self.executor.stopped():
            return self.log_history.get(self.selected_task)
        return self.current_logs

    def has_task_output(self) -> bool:
        """Whether any task produced output."""
        return any(
            self.executor.result_at(index).output for index in range(self.executor.total())
        )

    def build_summary_data(self) -> SummaryData:
        """Completion statistics, including the three slowest finished tasks."""
        summary = self.executor.summary()
        timings = [
            TaskTiming(task.name, result.duration)
            for task, result in self._task_results()
            if result.duration.total_seconds() > 0 and result.status is TaskStatus.DONE
        ]
        timings.sort(key=lambda timing: timing.duration, reverse=True)
        return SummaryData(
            done=summary.done,
            skipped=summary.skipped,
            failed=summary.failed,
            total=self.executor.total(),
            elapsed=self.executor.elapsed_time(),
            slowest_tasks=timings[:3],
        )

    def create_output_viewport(self) -> Viewport:
        """A viewport holding the trimmed output of every task that had any."""
        parts = [
            f"\n{task.name}\n{result.output.strip()}\n"
            for task, result in self._task_results()
            if result.output
        ]
        height = min(OUTPUT_VIEW_HEIGHT, self.height // 2) or OUTPUT_VIEW_HEIGHT
        viewport = Viewport(self.width or 80, height)
        viewport.set_content("".join(parts))
        return viewport

    def _task_results(self):
        return [
            (task, self.executor.result_at(index))
            for index, task in enumerate(self.executor.tasks)
        ]

    def _completed_count(self) -> int:
        return sum(
            result.status is not TaskStatus.PENDING for _, result in self._task_results()
        )

    # ----- rendering -------------------------------------------------

    def view(self) -> str:
        """Render the whole interface."""
        layout = self._layout()
        if layout.is_two_column():
            content = self._render_two_column(layout)
        else:
            content = self._render_single_column()
        if self.width > 0 and self.height > 0:
            return render_container(content)
        return content

    def _render_single_column(self) -> str:
        executor = self.executor
        stopped = executor.stopped()
        current = executor.current()
        out: list[str] = ["BOOSTER\n"]

        bar_width = self.width - 4
        if bar_width < 20:
            bar_width = 40
        out.append(
            render_progress(
                self._completed_count(), executor.total(), executor.elapsed_time(), bar_width
            )
        )
        out.append("\n\n")

        failure = None
        available = max(self.width - 4, 40)
        for index, (task, result) in enumerate(self._task_results()):
            if result.status is TaskStatus.DONE:
                line = render_task_with_leader(
                    "✓ ", task.name, _format_elapsed_compact(result.duration), available
                )
            elif result.status is TaskStatus.SKIPPED:
                line = render_task_with_leader("○ ", task.name, _skip_label(result), available)
            elif result.status is TaskStatus.FAILED:
                failure = (task.name, result.error, result.output)
                line = "✗ " + task.name
            elif result.status is not TaskStatus.PENDING:
                line = "→ " + task.name
            elif index == current and not stopped:
                line = f"→ {task.name} {self._spinner()}"
            else:
                line = "  " + task.name
            out.append(line + "\n")

        if not stopped and self.current_logs:
            out.append("\n─── logs ───\n")
            max_width = self.width - 4
            for line in self.current_logs[-MAX_LOG_LINES:]:
                if max_width > 0 and len(line) > max_width:
                    line = line[: max(max_width - 3, 0)] + "..."
                out.append(line + "\n")

        if stopped:
            if failure is not None:
                fail_width = self.width if self.width >= 40 else 60
                out.append("\n")
                out.append(render_failure(*failure, fail_width))
            out.append("\n")
            summary_width = self.width if self.width >= 40 else 60
            data = self.build_summary_data()
            if executor.summary().has_failures:
                out.append(render_failed_summary(data, summary_width))
            else:
                out.append(render_summary(data, summary_width))

            if self.show_output:
                viewport = self.output_viewport
                hint = ""
                if viewport.total_line_count() > viewport.height:
                    percent = int(viewport.scroll_percent() * 100)
                    hint = f" (↑↓/j/k to scroll, {percent}%)"
                out.append(f"\n─── Output{hint} ───\n")
                out.append(viewport.view() + "\n")

            out.append("\n")
            if self.has_task_output():
                if self.show_output:
                    out.append("'o' hide • ↑↓/j/k scroll • Enter exit")
                else:
                    out.append("'o' view output • Enter exit")
            else:
                out.append("Enter exit")
        return "".join(out)

    def _render_task_lines(self, width: int) -> str:
        stopped = self.executor.stopped()
        current = self.executor.current()
        lines: list[str] = []
        for index, (task, result) in enumerate(self._task_results()):
            selected = index == self.selected_task
            prefix = "▶ " if selected else "○ "
            if result.status is TaskStatus.DONE:
                line = render_task_with_leader(
                    prefix + "✓ ", task.name, _format_elapsed_compact(result.duration), width
                )
            elif result.status is TaskStatus.SKIPPED:
                line = render_task_with_leader(
                    prefix + "○ ", task.name, _skip_label(result), width
                )
            elif result.status is TaskStatus.FAILED:
                line = prefix + "✗ " + task.name
            elif result.status is not TaskStatus.PENDING:
                line = prefix + "→ " + task.name
            elif index == current and not stopped:
                line = f"{prefix}→ {task.name} {self._spinner()}"
            else:
                line = prefix + "  " + task.name
            if selected:
                line += " " * max(width - display_width(line) - 4, 0)
            lines.append(line)
        return "\n".join(lines)

    def _render_task_list_content(self, width: int) -> str:
        executor = self.executor
        progress = render_progress(
            self._completed_count(),
            executor.total(),
            executor.elapsed_time(),
            max(width - 4, 20),
        )
        task_lines = self._render_task_lines(width)
        viewport = copy.copy(self.task_viewport)
        if viewport.height > 0:
            viewport.set_content(task_lines)
            task_lines = viewport.view()
        return f"{progress}\n\n{task_lines}"

    def _render_empty_log_content(self) -> str:
        index = self.selected_task if self.executor.stopped() else self.executor.current()
        if index >= self.executor.total():
            return "Waiting for output..."
        name = self.executor.tasks[index].name
        result = self.executor.result_at(index)
        lines = [name, ""]
        if result.status is TaskStatus.PENDING:
            lines.append("Waiting for output...")
        elif result.status is TaskStatus.SKIPPED:
            lines.append("Task was skipped")
            if result.message:
                lines.append(result.message)
        else:
            lines.append("No output captured")
        return "\n".join(lines)

    def _render_two_column(self, layout: Layout) -> str:
        executor = self.executor
        stopped = executor.stopped()
        panel_height = layout.height - 3
        left_focused = self.focused_panel is FocusPanel.TASK_LIST or not self.show_logs

        if self.show_logs:
            left = render_panel(
                "BOOSTER",
                self._render_task_list_content(layout.left_width - 4),
                layout.left_width,
                panel_height,
                left_focused,
            )
            logs = self.display_logs()
            viewport = self.log_viewport
            right_content = viewport.view() if logs else self._render_empty_log_content()

            index = self.selected_task if stopped else executor.current()
            task_name = executor.tasks[index].name if index < executor.total() else ""
            title = task_name
            line_count = viewport.total_line_count()
            if line_count > 0:
                title = f"{task_name} • {line_count} lines"
            if line_count > viewport.height:
                title = f"{title} ({int(viewport.scroll_percent() * 100)}%)"
            if not viewport.at_bottom() and line_count > 0:
                title += " ▼"

            right = render_panel(
                "Logs: " + title,
                right_content,
                layout.right_width,
                panel_height,
                self.focused_panel is FocusPanel.LOGS,
            )
            panels = _join_horizontal(left, right)
        else:
            full_width = layout.left_width + layout.right_width
            panels = render_panel(
                "BOOSTER",
                self._render_task_list_content(full_width - 2),
                full_width,
                panel_height,
                left_focused,
            )

        if stopped:
            help_text = (
                "enter exit • o hide logs • tab switch • ↑↓/j/k navigate/scroll"
                if self.show_logs
                else "enter exit • o show logs • ↑↓/j/k navigate"
            )
        else:
            help_text = (
                "q quit • o hide logs • tab switch panel • ↑↓/j/k navigate/scroll • G bottom"
                if self.show_logs
                else "q quit • o show logs • ↑↓/j/k navigate"
            )
        return panels + "\n" + help_text