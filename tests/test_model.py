from dataclasses import dataclass, field

import pytest

from booster.execution import TaskResult, TaskStatus, current_log_writer
from booster.model import (
    MAX_LOG_LINES,
    FocusPanel,
    KeyPress,
    LogDone,
    LogLine,
    Model,
    MouseEvent,
    Quit,
    StartTask,
    TaskDone,
    WindowSize,
)
from booster.view import compute_layout
from booster.viewport import Viewport


@dataclass
class MockTask:
    name: str
    result: TaskResult = field(default_factory=lambda: TaskResult(status=TaskStatus.DONE))

    def run(self) -> TaskResult:
        return self.result


@dataclass
class StreamingTask:
    name: str
    lines: list
    result: TaskResult = field(default_factory=lambda: TaskResult(status=TaskStatus.DONE))

    def run(self) -> TaskResult:
        writer = current_log_writer()
        if writer is not None:
            for line in self.lines:
                writer.write(line + "\n")
        return self.result


def task(name, status=TaskStatus.DONE, output="", error=None, message=""):
    return MockTask(name, TaskResult(status=status, output=output, error=error, message=message))


def done_model(count=1):
    return Model([task(f"task{i + 1}") for i in range(count)])


def test_new_defaults():
    model = done_model(2)
    assert model.executor.total() == 2
    assert model.show_output is False
    assert model.show_logs is True
    assert model.focused_panel is FocusPanel.TASK_LIST


def test_init_with_tasks_starts():
    model = done_model()
    cmd = model.init()
    assert cmd() == StartTask()
    assert model.executor.current() == 0


def test_init_empty_returns_none():
    assert Model([]).init() is None


@pytest.mark.parametrize("key", ["q", "ctrl+c"])
def test_quit_keys(key):
    cmd = done_model().update(KeyPress(key))
    assert cmd() == Quit()


def test_enter_quits_when_done():
    cmd = Model([]).update(KeyPress("enter"))
    assert cmd() == Quit()


@pytest.mark.parametrize("key", ["enter", "x"])
def test_keys_ignored_when_running(key):
    assert done_model().update(KeyPress(key)) is None


def test_o_toggles_output_when_done():
    model = Model([])
    assert model.update(KeyPress("o")) is None
    assert model.show_output is True
    assert model.update(KeyPress("o")) is None
    assert model.show_output is False


def test_o_ignored_when_running():
    model = done_model()
    assert model.update(KeyPress("o")) is None
    assert model.show_output is False


def test_task_done_triggers_next():
    model = done_model(2)
    assert model.executor.run_next() is not None
    model.logs_done = True
    cmd = model.update(TaskDone(TaskResult(status=TaskStatus.DONE)))
    assert cmd() == StartTask()
    assert model.selected_task == 1


def test_task_done_when_all_complete():
    model = Model([])
    assert model.update(TaskDone(TaskResult(status=TaskStatus.DONE))) is None


def test_task_failure_stops_execution():
    model = Model([task("task1"), task("task2", TaskStatus.FAILED, error=RuntimeError("fail")), task("task3")])
    model.executor.run_next()
    result2 = model.executor.run_next()
    assert result2.status is TaskStatus.FAILED
    model.logs_done = True
    assert model.update(TaskDone(result2)) is None
    assert model.executor.stopped()
    assert not model.executor.done()
    assert model.executor.result_at(2).status is TaskStatus.PENDING
    view = model.view()
    assert "task3" in view
    assert "BOOSTER FAILED" in view


def test_unknown_message_ignored():
    assert done_model().update(object()) is None


def test_view_contains_title():
    assert "BOOSTER" in done_model().view()


@pytest.mark.parametrize(
    "tasks, run, expected",
    [
        ([task("completed task"), task("running task"), task("pending task")], 1, ["  pending task"]),
        ([task("running task"), task("pending task")], 0, ["running task", "→"]),
        ([task("completed task")], 1, ["completed task", "✓"]),
        ([task("skipped task", TaskStatus.SKIPPED, message="already exists")], 1, ["○", "exists"]),
        (
            [task("conditional task", TaskStatus.SKIPPED, message="condition not met: os=darwin, want arch")],
            1,
            ["○", "skipped"],
        ),
        ([task("failed task", TaskStatus.FAILED, error=RuntimeError("test error message"))], 1, ["✗", "test error message"]),
        ([task("failed task", TaskStatus.FAILED)], 1, ["failed task", "FAILED"]),
    ],
)
def test_view_task_status(tasks, run, expected):
    model = Model(tasks)
    for _ in range(run):
        assert model.executor.run_next() is not None
    view = model.view()
    for text in expected:
        assert text in view


def run_all(tasks, show_output=False):
    model = Model(tasks)
    model.width, model.height = 50, 40
    for _ in tasks:
        model.executor.run_next()
    model.show_output = show_output
    if show_output:
        model.output_viewport = model.create_output_viewport()
    return model.view()


def test_summary_success():
    view = run_all([task("task1"), task("task2", TaskStatus.SKIPPED)])
    assert "BOOSTER COMPLETE" in view and "completed" in view and "skipped" in view


def test_summary_failure():
    view = run_all([task("task1"), task("task2", TaskStatus.FAILED, error=RuntimeError("error"))])
    assert "BOOSTER FAILED" in view and "failed" in view


def test_help_text_without_output():
    view = run_all([task("task1")])
    assert "Enter exit" in view
    assert "'o'" not in view


def test_help_text_with_output():
    assert "'o' view output" in run_all([task("task1", output="some output")])
    shown = run_all([task("task1", output="some output")], show_output=True)
    assert "'o' hide" in shown and "scroll" in shown


def test_output_section_hidden_by_default():
    view = run_all([task("task1", output="some output")])
    assert "─── Output ───" not in view
    assert "some output" not in view


def test_output_section_visible():
    view = run_all(
        [task("task1", output="output 1"), task("task2", output="output 2"), task("task3")],
        show_output=True,
    )
    for text in ["─── Output ───", "task1", "output 1", "task2", "output 2"]:
        assert text in view


def test_output_trims_whitespace():
    raw = "  \n  output with spaces  \n  "
    view = run_all([task("task1", output=raw)], show_output=True)
    assert "output with spaces" in view
    assert raw not in view


def test_has_task_output():
    model = Model([task("task1"), task("task2")])
    model.executor.run_next()
    model.executor.run_next()
    assert model.has_task_output() is False
    model = Model([task("task1"), task("task2", output="some output")])
    model.executor.run_next()
    model.executor.run_next()
    assert model.has_task_output() is True
    assert Model([task("task1", output="x")]).has_task_output() is False


def test_start_task_and_run_closes_stream():
    model = Model([task("task1", output="output")])
    writer, commands = model.start_task()
    assert len(commands) == 3
    message = model.run_task(writer)()
    assert isinstance(message, TaskDone)
    assert message.result.status is TaskStatus.DONE
    assert list(writer.lines()) == []


def test_log_streaming_integration():
    model = Model([StreamingTask("streaming task", ["line1", "line2", "line3"])])
    writer, _ = model.start_task()
    message = model.run_task(writer)()
    assert list(writer.lines()) == ["line1", "line2", "line3"]
    assert message.result.status is TaskStatus.DONE


def test_log_streaming_with_model_update():
    model = Model([StreamingTask("streaming task", ["log line 1", "log line 2"])])
    result = model.executor.run_next()
    model.start_task()
    assert model.update(LogLine("log line 1")) is not None
    assert model.update(LogLine("log line 2")) is not None
    assert model.current_logs == ["log line 1", "log line 2"]
    assert model.update(LogDone()) is None
    model.update(TaskDone(result))
    assert model.current_logs == []
    assert model.log_history[0] == ["log line 1", "log line 2"]


def test_max_lines_limit():
    model = done_model()
    for i in range(MAX_LOG_LINES + 5):
        model.update(LogLine(f"line {i}"))
    assert len(model.current_logs) == MAX_LOG_LINES + 5
    view = model.view()
    assert "line 12" in view
    assert "line 5" in view
    assert "line 0" not in view


def test_log_history_persistence():
    model = done_model(3)
    model.executor.run_next()
    model.update(LogLine("task1 log line 1"))
    model.update(LogLine("task1 log line 2"))
    model.logs_done = True
    model.update(TaskDone(TaskResult(status=TaskStatus.DONE)))
    assert model.current_logs == []
    assert model.log_history[0] == ["task1 log line 1", "task1 log line 2"]

    model.executor.run_next()
    for i in range(1, 4):
        model.update(LogLine(f"task2 log line {i}"))
    model.logs_done = True
    model.update(TaskDone(TaskResult(status=TaskStatus.DONE)))
    assert model.log_history[1] == ["task2 log line 1", "task2 log line 2", "task2 log line 3"]

    model.executor.run_next()
    model.logs_done = True
    model.update(TaskDone(TaskResult(status=TaskStatus.DONE)))
    assert 2 not in model.log_history
    assert len(model.log_history[0]) == 2


def test_selected_task_auto_advance():
    model = done_model(3)
    expected = [1, 2, 2]
    for want in expected:
        model.executor.run_next()
        model.logs_done = True
        model.update(TaskDone(TaskResult(status=TaskStatus.DONE)))
        assert model.selected_task == want


def test_log_history_failed_task():
    model = Model([task("task1"), task("task2", TaskStatus.FAILED)])
    model.executor.run_next()
    model.update(LogLine("task1 log"))
    model.logs_done = True
    model.update(TaskDone(TaskResult(status=TaskStatus.DONE)))
    model.executor.run_next()
    model.update(LogLine("task2 log 1"))
    model.update(LogLine("task2 log 2"))
    model.logs_done = True
    model.update(TaskDone(TaskResult(status=TaskStatus.FAILED)))
    assert model.log_history[0] == ["task1 log"]
    assert model.log_history[1] == ["task2 log 1", "task2 log 2"]
    assert model.executor.stopped()


def test_task_done_before_log_done():
    model = done_model(2)
    model.executor.run_next()
    model.update(LogLine("log line 1"))
    model.update(LogLine("log line 2"))
    assert model.update(TaskDone(TaskResult(status=TaskStatus.DONE))) is None
    assert model.pending_result is not None
    model.update(LogLine("log line 3"))
    cmd = model.update(LogDone())
    assert isinstance(cmd(), StartTask)
    assert model.pending_result is None
    assert model.current_logs == []
    assert model.log_history[0] == ["log line 1", "log line 2", "log line 3"]


def test_log_done_before_task_done():
    model = done_model(2)
    model.executor.run_next()
    model.update(LogLine("log line 1"))
    assert model.update(LogDone()) is None
    assert model.logs_done is True
    assert model.update(TaskDone(TaskResult(status=TaskStatus.DONE))) is not None
    assert model.log_history[0] == ["log line 1"]


def wide_model(count=1):
    model = done_model(count)
    model.width, model.height = 100, 40
    return model


def test_tab_toggles_focus():
    model = wide_model(2)
    assert model.update(KeyPress("tab")) is None
    assert model.focused_panel is FocusPanel.LOGS
    model.update(KeyPress("tab"))
    assert model.focused_panel is FocusPanel.TASK_LIST


def test_jk_navigation_bounds():
    model = wide_model(3)
    for key, want in [("j", 1), ("j", 2), ("j", 2), ("k", 1), ("k", 0), ("k", 0)]:
        model.update(KeyPress(key))
        assert model.selected_task == want


def test_arrow_navigation():
    model = wide_model(2)
    model.update(KeyPress("down"))
    assert model.selected_task == 1
    model.update(KeyPress("up"))
    assert model.selected_task == 0


def filled_log_viewport(model):
    layout = compute_layout(model.width, model.height)
    model.log_viewport = Viewport(layout.right_width - 2, layout.height - 5)
    model.log_viewport.set_content("\n".join(f"log line {i}" for i in range(50)))


def test_jk_scrolls_logs_when_focused():
    model = wide_model()
    model.focused_panel = FocusPanel.LOGS
    filled_log_viewport(model)
    model.update(KeyPress("j"))
    assert model.log_viewport.y_offset > 0
    model.update(KeyPress("k"))
    assert model.log_viewport.y_offset == 0


def test_g_jumps_to_bottom_only_when_logs_focused():
    model = wide_model()
    filled_log_viewport(model)
    model.update(KeyPress("G"))
    assert model.log_viewport.y_offset == 0
    model.focused_panel = FocusPanel.LOGS
    model.update(KeyPress("G"))
    assert model.log_viewport.at_bottom()


def test_o_toggles_logs_in_two_column():
    model = wide_model()
    assert model.update(KeyPress("o")) is None
    assert model.show_logs is False
    model.update(KeyPress("o"))
    assert model.show_logs is True


def test_mouse_click_focuses_panel():
    model = wide_model()
    model.update(MouseEvent(x=90, button="left"))
    assert model.focused_panel is FocusPanel.LOGS
    model.update(MouseEvent(x=3, button="left"))
    assert model.focused_panel is FocusPanel.TASK_LIST


def test_empty_log_placeholder():
    view = wide_model().view()
    assert "task1" in view
    assert "Waiting for output..." in view


def test_display_logs_when_stopped():
    model = done_model(3)
    for _ in range(3):
        model.executor.run_next()
    model.log_history[0] = ["task1 log"]
    model.log_history[1] = ["task2 log"]
    model.selected_task = 0
    assert model.display_logs() == ["task1 log"]
    model.selected_task = 1
    assert model.display_logs() == ["task2 log"]
    model.selected_task = 2
    assert model.display_logs() is None


def test_autoscroll_sticks_to_bottom():
    model = wide_model()
    layout = compute_layout(model.width, model.height)
    model.log_viewport = Viewport(layout.right_width - 2, layout.height - 5)
    for i in range(50):
        model.update(LogLine(f"log line {i}"))
    assert model.log_viewport.at_bottom()
    model.log_viewport.scroll_up(5)
    before = model.log_viewport.y_offset
    model.update(LogLine("new log line"))
    assert model.log_viewport.y_offset == before
    assert not model.log_viewport.at_bottom()
    model.log_viewport.goto_bottom()
    model.update(LogLine("another log line"))
    assert model.log_viewport.at_bottom()


def test_window_size_resizes_viewports():
    model = done_model()
    assert model.update(WindowSize(120, 40)) is None
    layout = compute_layout(116, 38)
    assert model.log_viewport.width == layout.right_width - 2
    assert model.log_viewport.height == layout.height - 5
    assert model.task_viewport.width == layout.left_width - 4


@pytest.mark.parametrize("width, height", [(80, 40), (20, 10), (120, 40)])
def test_container_border(width, height):
    model = done_model(2)
    model.width, model.height = width, height
    view = model.view()
    for corner in "╭╮╰╯":
        assert corner in view
    assert "BOOSTER" in view


def test_zero_dimensions_has_no_container():
    view = done_model().view()
    assert "BOOSTER" in view
    assert "╭" not in view


def test_help_bar_inside_container():
    model = wide_model()
    model.executor.run_next()
    lines = model.view().split("\n")
    assert "enter exit" in "\n".join(lines)
    assert "╭" in lines[0]
    assert "╯" in lines[-1]


def test_build_summary_data_counts():
    model = Model([task("a"), task("b", TaskStatus.SKIPPED), task("c", TaskStatus.FAILED)])
    for _ in range(3):
        model.executor.run_next()
    data = model.build_summary_data()
    assert (data.done, data.skipped, data.failed, data.total) == (1, 1, 1, 3)
    assert all(t.name == "a" for t in data.slowest_tasks)


def test_full_flow_view():
    model = Model([task("task1", output="output1"), task("task2", TaskStatus.SKIPPED), task("task3", TaskStatus.FAILED, error=RuntimeError("failure"))])
    assert model.init() is not None
    for expect_cmd in (True, True, False):
        result = model.executor.run_next()
        model.logs_done = True
        cmd = model.update(TaskDone(result))
        assert (cmd is not None) is expect_cmd
    view = model.view()
    assert "BOOSTER FAILED" in view
    assert "✓ task1" in view
    assert "○ task2" in view
    assert "✗ task3" in view