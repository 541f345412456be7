"""
selection.py — Detect and capture the foreground app's text selection.

There is no portable way to ask another application what it has selected,
so the engine watches a side effect instead:

    1. put a run-unique marker on the clipboard
    2. send "copy" to the focused app and let the clipboard settle
    3. clipboard changed and is non-blank   -> that is the selection
       clipboard still holds the marker     -> nothing was selected:
           select the current line, copy again, settle, re-check once
    4. any clipboard or key failure          -> not acquired

The frontmost app name is only logged; failing to read it does not stop
the probe.

The clipboard is scratch space for the whole run; its previous content is
not restored here.
"""

import uuid
from dataclasses import dataclass

from .db_logger import null_log
from .errors import AutomationFailure

SETTLE_INTERVAL = 0.2


@dataclass(frozen=True)
class SelectionCapture:
    text: str = ""
    acquired: bool = False
    via_fallback_line: bool = False


NOT_ACQUIRED = SelectionCapture()


def make_marker() -> str:
    return f"__NO_SELECTION_{uuid.uuid4().hex}__"


def _preview(text: str) -> str:
    return f'"{text[:50]}" ({len(text)} chars)'


class AcquisitionEngine:
    def __init__(self, automation, settle_interval: float = SETTLE_INTERVAL,
                 log=null_log, marker_factory=make_marker):
        self.automation      = automation
        self.settle_interval = settle_interval
        self.log             = log
        self._make_marker    = marker_factory

    def acquire(self, force_editor: bool = False) -> SelectionCapture:
        if force_editor:
            self.log("Editor mode forced, skipping selection", "debug")
            return NOT_ACQUIRED
        try:
            return self._probe()
        except AutomationFailure as exc:
            self.log(f"Selection capture failed: {exc}", "warn")
        except Exception as exc:
            self.log(f"Selection capture failed ({type(exc).__name__}): {exc}", "warn")
        return NOT_ACQUIRED

    def _copy_and_read(self) -> str:
        self.automation.send_copy()
        self.automation.settle(self.settle_interval)
        return self.automation.read_clipboard()

    def _probe(self) -> SelectionCapture:
        try:
            app = self.automation.frontmost_app()
        except AutomationFailure as exc:
            self.log(f"Could not get frontmost app: {exc}", "debug")
            app = ""
        if app:
            self.log(f"Frontmost app: {app}", "debug")

        marker = self._make_marker()
        self.automation.write_clipboard(marker)
        self.log("Clipboard cleared with marker", "debug")

        clip = self._copy_and_read()
        self.log(f"Clipboard after copy: {_preview(clip)}", "debug")

        if clip != marker:
            if clip.strip():
                self.log("Real selection detected", "info")
                return SelectionCapture(text=clip, acquired=True)
            self.log("Copy produced only whitespace", "warn")
            return NOT_ACQUIRED

        self.log("Clipboard still has marker, auto-selecting line", "info")
        self.automation.select_current_line()
        clip = self._copy_and_read()
        self.log(f"Clipboard after auto-select: {_preview(clip)}", "debug")

        if clip != marker and clip.strip():
            self.log("Line auto-selected", "info")
            return SelectionCapture(text=clip, acquired=True, via_fallback_line=True)

        self.log("Auto-select failed, empty line?", "warn")
        return NOT_ACQUIRED
