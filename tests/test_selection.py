from conftest import FakeApp

from stealthai.errors import AutomationFailure
from stealthai.selection import AcquisitionEngine, SelectionCapture, make_marker


def engine_for(app, log=None, **kwargs):
    kwargs.setdefault("marker_factory", lambda: "__MARKER__")
    if log is not None:
        kwargs["log"] = log
    return AcquisitionEngine(app, **kwargs)


def test_real_selection_is_captured_verbatim():
    text = "  this is a test sentance with a typo \n"
    app = FakeApp(selection=text)
    capture = engine_for(app).acquire()
    assert capture == SelectionCapture(text=text, acquired=True, via_fallback_line=False)
    assert app.calls == ["write", "copy", "settle", "read"]


def test_marker_is_written_before_copy():
    app = FakeApp(selection="x", clipboard="user data")
    seen = []
    original_copy = app.send_copy

    def copy_spy():
        seen.append(app.clipboard)
        original_copy()

    app.send_copy = copy_spy
    engine_for(app).acquire()
    assert seen == ["__MARKER__"]


def test_no_selection_falls_back_to_current_line():
    app = FakeApp(selection="", line="hello world")
    capture = engine_for(app).acquire()
    assert capture.acquired
    assert capture.via_fallback_line
    assert capture.text == "hello world"
    assert app.calls == [
        "write", "copy", "settle", "read",
        "select_line", "copy", "settle", "read",
    ]


def test_empty_line_is_not_acquired_and_fallback_runs_once():
    app = FakeApp(selection="", line="")
    capture = engine_for(app).acquire()
    assert capture.acquired is False
    assert app.calls.count("select_line") == 1
    assert app.calls.count("copy") == 2


def test_whitespace_line_is_not_acquired():
    app = FakeApp(selection="", line="   ")
    assert engine_for(app).acquire().acquired is False


def test_force_editor_skips_everything():
    app = FakeApp(selection="something")
    capture = engine_for(app).acquire(force_editor=True)
    assert capture.acquired is False
    assert app.calls == []


def test_automation_failure_is_absorbed(log):
    for step in ("write", "copy", "read", "select_line"):
        app = FakeApp(selection="", line="hello", fail_on={step})
        capture = engine_for(app, log=log).acquire()
        assert capture.acquired is False, step
    assert "warn" in log.tags()


def test_settle_interval_is_passed_through():
    intervals = []

    class App(FakeApp):
        def settle(self, interval):
            intervals.append(interval)

    engine_for(App(selection="x"), settle_interval=0.75).acquire()
    assert intervals == [0.75]


def test_markers_are_unique():
    assert make_marker() != make_marker()
    assert make_marker().startswith("__NO_SELECTION_")


def test_frontmost_app_failure_does_not_stop_capture(log):
    class App(FakeApp):
        def frontmost_app(self):
            raise AutomationFailure("osascript timed out")

    app = App(selection="hello world")
    capture = engine_for(app, log=log).acquire()
    assert capture == SelectionCapture(text="hello world", acquired=True)
    assert app.calls == ["write", "copy", "settle", "read"]
    assert "Could not get frontmost app: osascript timed out" in log.text()


def test_unexpected_backend_error_is_not_acquired(log):
    class App(FakeApp):
        def read_clipboard(self):
            raise RuntimeError("backend boom")

    capture = engine_for(App(selection="hello"), log=log).acquire()
    assert capture.acquired is False
    assert log.tags()[-1] == "warn"
    assert "RuntimeError" in log.text()
