# booster

`booster` is a library for running a list of setup tasks one after
another and turning their progress into text for a terminal: a task list
with status icons and dotted leaders, a live log panel, and a summary
with completion statistics and the slowest tasks once everything has
finished or a task has failed.

It also resolves the variables that tasks need, looking in the
environment first, then in a YAML file of remembered values, and only
then asking through a collector you supply; answers are saved for the
next run.

## Installation

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## Running tasks

A task is anything with a `name` and a `run()` method that returns a
`TaskResult`. The `Executor` in `booster.execution` runs tasks in order,
records each result with its duration, and stops once every task has
run or `abort()` has been called. A task that raises is recorded as
failed.

```python
from booster.execution import Executor, TaskResult, TaskStatus


class MakeCache:
    name = "Create cache directory"

    def run(self):
        return TaskResult(status=TaskStatus.DONE)


executor = Executor([MakeCache()])
result = executor.run_next()
print(result.status, executor.done(), executor.summary())
```

Inside `run()`, a task can stream log lines through the writer returned
by `booster.execution.current_log_writer()` (it is `None` when no
`LogWriter` is active). A `LogWriter` splits written text into lines;
its `lines()` generator yields them until the writer is closed.

## The view model

`booster.model.Model` ties the executor to the screen. Its `update()`
method takes messages such as `StartTask`, `LogLine`, `LogDone`,
`TaskDone`, `SpinnerTick`, `KeyPress`, `MouseEvent` and `WindowSize`,
changes the model's state and returns the follow-up command: a callable
producing the next message, a list of such callables, or `None`. A
callable returning `Quit` means the interface should exit. `view()`
returns the text to draw.

On wide terminals the view splits into a task list and a log panel:
`tab` switches focus between them, `j`/`k` or the arrow keys move the
selection or scroll the logs, `G` jumps to the end of the logs, `o`
shows or hides the log panel, and `q`, `ctrl+c` or `enter` (once
finished) quit. On narrow terminals `o` shows or hides the collected
task output once the run has stopped, and that output can be scrolled.

`booster.view` holds the plain-text building blocks: `compute_layout`,
`render_progress`, `render_panel`, `render_failure`,
`render_task_with_leader` and `render_container`. `booster.viewport`
provides the scrollable `Viewport`.

## Summaries

`booster.summary` renders the final screen on its own:

```python
from datetime import timedelta
from booster.summary import SummaryData, TaskTiming, render_summary

data = SummaryData(
    done=12, skipped=3, failed=0, total=15,
    elapsed=timedelta(minutes=2, seconds=34),
    slowest_tasks=[TaskTiming("Install node", timedelta(seconds=45.2))],
)
print(render_summary(data, 60))
```

`render_failed_summary` renders the same screen with a failure heading;
`format_duration` gives the short durations used throughout.

## Variables

```python
from booster.variable import Definition, FileStore
from booster.resolver import Resolver

store = FileStore("values.yaml")
resolver = Resolver(store, collector=None, env_lookup=None)
values = resolver.resolve([Definition(name="Email", prompt="Your email",
                                      default="user@example.com")])
```

Pass an object with a `collect(definitions)` method as `collector` to
ask for values that are neither set in the environment nor stored; an
empty answer falls back to the definition's default. Without a
collector, such variables are left out of the result. `env_lookup`
replaces the environment lookup, which is handy in tests.

## What it does not do

- There is no command-line program; the package is used from Python.
- It does not read a task configuration file and has no built-in task
  types; you supply the task objects.
- It does not drive a terminal itself: nothing reads keys or the mouse,
  runs the returned commands or redraws the screen. `Model` only
  produces state and text for a loop you provide.
- It has no interactive prompt; asking the user for variable values is
  left to the collector you pass in.
- Output is plain text without colours or styling.