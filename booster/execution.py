"""Sequential task execution, task results and streaming of task logs."""

from __future__ import annotations

import contextvars
import enum
import queue
import time
from dataclasses import dataclass, field, replace
from datetime import timedelta
from typing import Iterator, Optional, Protocol, Sequence


class TaskStatus(enum.Enum):
    """Lifecycle state of a task."""

    PENDING = "pending"
    RUNNING = "running"
    DONE = "done"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class TaskResult:
    """Outcome of running one task."""

    status: TaskStatus = TaskStatus.PENDING
    message: str = ""
    output: str = ""
    error: Optional[BaseException] = None
    duration: timedelta = field(default_factory=timedelta)


class Task(Protocol):
    """A unit of work with a display name."""

    name: str

    def run(self) -> TaskResult:
        """Perform the work and report its outcome."""
        ...


@dataclass(frozen=True)
class ExecutionSummary:
    """Counts of task outcomes."""

    done: int = 0
    skipped: int = 0
    failed: int = 0

    @property
    def has_failures(self) -> bool:
        return self.failed > 0


_current_writer: contextvars.ContextVar[Optional["LogWriter"]] = contextvars.ContextVar(
    "booster_log_writer", default=None
)

_CLOSED = object()


class LogWriter:
    """Turns written text into a stream of lines for a consumer.

    Used as a context manager it becomes the current writer for the block
    and is closed when the block ends.
    """

    def __init__(self, capacity: int = 100) -> None:
        self._queue: queue.Queue[object] = queue.Queue(maxsize=capacity)
        self._partial = ""
        self._closed = False
        self._tokens: list[contextvars.Token[Optional[LogWriter]]] = []

    def write(self, text: str) -> int:
        """Queue every complete line in ``text``; return the characters taken."""
        if self._closed:
            raise ValueError("write to a closed log writer")
        *complete, self._partial = (self._partial + text).split("\n")
        for line in complete:
            self._queue.put(line.rstrip("\r"))
        return len(text)

    def close(self) -> None:
        """Flush any unterminated line and end the stream."""
        if self._closed:
            return
        self._closed = True
        if self._partial:
            self._queue.put(self._partial.rstrip("\r"))
            self._partial = ""
        self._queue.put(_CLOSED)

    @property
    def closed(self) -> bool:
        return self._closed

    def lines(self) -> Iterator[str]:
        """Yield lines as they arrive until the writer is closed."""
        while True:
            item = self._queue.get()
            if item is _CLOSED:
                self._queue.put(_CLOSED)
                return
            yield str(item)

    def __enter__(self) -> "LogWriter":
        self._tokens.append(_current_writer.set(self))
        return self

    def __exit__(self, *exc_info: object) -> None:
        _current_writer.reset(self._tokens.pop())
        self.close()


def current_log_writer() -> Optional[LogWriter]:
    """The log writer bound to the running context, if any."""
    return _current_writer.get()


class Executor:
    """Runs tasks one at a time, in order, recording each result."""

    def __init__(self, tasks: Sequence[Task]) -> None:
        self.tasks: tuple[Task, ...] = tuple(tasks)
        self._results: list[TaskResult] = [TaskResult() for _ in self.tasks]
        self._current = 0
        self._aborted = False
        self._started: Optional[float] = None
        self._finished: Optional[float] = None

    def run_next(self) -> Optional[TaskResult]:
        """Run the next task and return its result, or None if stopped."""
        if self.stopped():
            return None
        now = time.monotonic()
        if self._started is None:
            self._started = now
        index = self._current
        self._results[index] = TaskResult(status=TaskStatus.RUNNING)
        try:
            result = self.tasks[index].run()
        except Exception as exc:  # a crashing task is a failed task
            result = TaskResult(status=TaskStatus.FAILED, error=exc)
        duration = timedelta(seconds=time.monotonic() - now)
        result = replace(result, duration=duration)
        self._results[index] = result
        self._current += 1
        if self.done():
            self._finished = time.monotonic()
        return result

    def done(self) -> bool:
        """Whether every task has run."""
        return self._current >= len(self.tasks)

    def stopped(self) -> bool:
        """Whether no further task will run."""
        return self._aborted or self.done()

    def abort(self) -> None:
        """Stop running further tasks."""
        if not self._aborted:
            self._aborted = True
            if self._started is not None and self._finished is None:
                self._finished = time.monotonic()

    def total(self) -> int:
        """Number of tasks."""
        return len(self.tasks)

    def current(self) -> int:
        """Index of the next task to run."""
        return self._current

    def result_at(self, index: int) -> TaskResult:
        """The recorded result of the task at ``index``."""
        return self._results[index]

    def elapsed_time(self) -> timedelta:
        """Time from the first task starting to the run ending (or now)."""
        if self._started is None:
            return timedelta(0)
        end = self._finished if self._finished is not None else time.monotonic()
        return timedelta(seconds=end - self._started)

    def summary(self) -> ExecutionSummary:
        """Counts of done, skipped and failed tasks."""
        statuses = [result.status for result in self._results]
        return ExecutionSummary(
            done=statuses.count(TaskStatus.DONE),
            skipped=statuses.count(TaskStatus.SKIPPED),
            failed=statuses.count(TaskStatus.FAILED),
        )