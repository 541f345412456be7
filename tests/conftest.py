import sys
from pathlib import Path
from types import SimpleNamespace

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from stealthai.automation import Automation
from stealthai.errors import AutomationFailure
from stealthai.toast import Notifier


class FakeApp(Automation):
    """
    A foreground text field: `selection` is what is highlighted, `line` is
    the text of the line holding the caret. Copy only touches the clipboard
    when something is selected, like a real editor.
    """

    name = "fake"

    def __init__(self, selection: str = "", line: str = "", clipboard: str = "old clip",
                 fail_on=()):
        self.selection = selection
        self.line      = line
        self.clipboard = clipboard
        self.fail_on   = set(fail_on)
        self.calls     = []
        self.pasted    = []
        self.staged    = []

    def _call(self, name: str):
        self.calls.append(name)
        if name in self.fail_on:
            raise AutomationFailure(f"{name} exploded")

    def read_clipboard(self) -> str:
        self._call("read")
        return self.clipboard

    def write_clipboard(self, text: str):
        self._call("write")
        self.clipboard = text

    def copy_file_to_clipboard(self, path: str):
        self._call("copy_file")
        self.staged.append(path)
        with open(path, "r", encoding="utf-8", newline="") as fh:
            self.clipboard = fh.read()

    def send_copy(self):
        self._call("copy")
        if self.selection:
            self.clipboard = self.selection

    def select_current_line(self):
        self._call("select_line")
        self.selection = self.line

    def send_paste(self):
        self._call("paste")
        self.pasted.append(self.clipboard)

    def settle(self, interval: float):
        self.calls.append("settle")


class FakeClient:
    """Stands in for anthropic.Anthropic: records requests, returns canned text."""

    def __init__(self, reply="corrected", error=None):
        self.reply    = reply
        self.error    = error
        self.requests = []
        self.messages = SimpleNamespace(create=self._create)

    def _create(self, **kwargs):
        self.requests.append(kwargs)
        if self.error is not None:
            raise self.error
        content = [] if self.reply is None else [SimpleNamespace(type="text", text=self.reply)]
        return SimpleNamespace(content=content)

    @property
    def prompts(self) -> list:
        return [r["messages"][0]["content"] for r in self.requests]


class RecordingNotifier(Notifier):
    def __init__(self):
        self.events = []

    def show(self, state, title, message="", on_edit=None, action_id=""):
        self.events.append(SimpleNamespace(
            state=state, title=title, message=message, on_edit=on_edit,
            action_id=action_id,
        ))

    @property
    def last(self):
        return self.events[-1]

    @property
    def states(self) -> list:
        return [e.state for e in self.events]


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class LogRecorder:
    def __init__(self):
        self.entries = []

    def __call__(self, message, tag="info", action_id=""):
        self.entries.append((tag, message))

    def tags(self) -> list:
        return [t for t, _ in self.entries]

    def text(self) -> str:
        return "\n".join(m for _, m in self.entries)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def log():
    return LogRecorder()
