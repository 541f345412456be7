"""
automation.py — OS automation backends: clipboard access and simulated keys.

The selection and replacement engines only talk to the Automation
interface, so a platform with a native accessibility API can plug in a new
backend without touching the detection algorithm.

Backends:
    keyboard      pyperclip + the `keyboard` package (Windows, Linux, macOS)
    applescript   pbcopy / pbpaste / osascript through subprocess (macOS)

Every failure is raised as AutomationFailure.
"""

import subprocess
import sys
import time

import pyperclip

try:
    import keyboard
    KEYBOARD_AVAILABLE = True
except ImportError:
    keyboard = None
    KEYBOARD_AVAILABLE = False

from .errors import AutomationFailure

IS_MAC = sys.platform == "darwin"


class Automation:
    """Capability interface used by the pipeline."""

    name = "base"

    def frontmost_app(self) -> str:
        """Name of the focused application, or "" if the backend cannot tell."""
        return ""

    def read_clipboard(self) -> str:
        raise NotImplementedError

    def write_clipboard(self, text: str):
        raise NotImplementedError

    def copy_file_to_clipboard(self, path: str):
        """Load the clipboard from a file's contents, never from a command line."""
        raise NotImplementedError

    def send_copy(self):
        raise NotImplementedError

    def select_current_line(self):
        """Move the caret to end of line, then extend the selection to line start."""
        raise NotImplementedError

    def send_paste(self):
        raise NotImplementedError

    def settle(self, interval: float):
        """
        Wait for the foreground app to finish an asynchronous clipboard write.
        A fixed sleep is a heuristic; backends with change notification may
        override this with an event wait.
        """
        if interval > 0:
            time.sleep(interval)


# ─── keyboard + pyperclip ─────────────────────────────────────────────────────

class KeyboardAutomation(Automation):
    name = "keyboard"

    def __init__(self, mac: bool = IS_MAC, key_delay: float = 0.05):
        if not KEYBOARD_AVAILABLE:
            raise AutomationFailure("'keyboard' not installed. pip install keyboard")
        self.modifier  = "command" if mac else "ctrl"
        self.key_delay = key_delay
        if mac:
            self.line_end_keys   = "command+right"
            self.line_start_keys = "command+shift+left"
        else:
            self.line_end_keys   = "end"
            self.line_start_keys = "shift+home"

    def read_clipboard(self) -> str:
        try:
            return pyperclip.paste() or ""
        except pyperclip.PyperclipException as exc:
            raise AutomationFailure(f"Could not read clipboard: {exc}") from exc

    def write_clipboard(self, text: str):
        try:
            pyperclip.copy(text)
        except pyperclip.PyperclipException as exc:
            raise AutomationFailure(f"Could not write clipboard: {exc}") from exc

    def copy_file_to_clipboard(self, path: str):
        try:
            with open(path, "r", encoding="utf-8", newline="") as fh:
                content = fh.read()
        except OSError as exc:
            raise AutomationFailure(f"Could not read {path}: {exc}") from exc
        self.write_clipboard(content)

    def _send(self, hotkey):
        try:
            keyboard.send(hotkey)
        except Exception as exc:
            raise AutomationFailure(f"Could not send {hotkey!r}: {exc}") from exc

    def _scan_code(self, key: str) -> int:
        try:
            return keyboard.key_to_scan_codes(key)[0]
        except (ValueError, IndexError) as exc:
            raise AutomationFailure(f"No scan code for {key!r}: {exc}") from exc

    def send_copy(self):
        self._send(f"{self.modifier}+c")

    def select_current_line(self):
        self._send(self.line_end_keys)
        time.sleep(self.key_delay)
        self._send(self.line_start_keys)
        time.sleep(self.key_delay)

    def send_paste(self):
        # Modifier + physical V as scan codes, so a character layout or a
        # still-held key cannot turn this into a different keystroke.
        chord = [self._scan_code(self.modifier), self._scan_code("v")]
        self._send(chord)


# ─── AppleScript (macOS) ──────────────────────────────────────────────────────

KEY_CODE_V     = 9
KEY_CODE_LEFT  = 123
KEY_CODE_RIGHT = 124


class AppleScriptAutomation(Automation):
    name = "applescript"

    def __init__(self, timeout: float = 60):
        self.timeout = timeout

    def _run(self, argv: list, data: bytes = None, stdin=None) -> bytes:
        try:
            result = subprocess.run(
                argv, input=data, stdin=stdin, capture_output=True,
                timeout=self.timeout, check=True,
            )
        except (OSError, subprocess.SubprocessError) as exc:
            raise AutomationFailure(f"{argv[0]} failed: {exc}") from exc
        return result.stdout

    def _system_events(self, *lines: str):
        body = "\n".join(lines)
        script = f'tell application "System Events"\n{body}\nend tell'
        self._run(["osascript", "-e", script])

    def frontmost_app(self) -> str:
        out = self._run([
            "osascript", "-e",
            'tell application "System Events" to get name of first process '
            'whose frontmost is true',
        ])
        return out.decode("utf-8", "replace").strip()

    def read_clipboard(self) -> str:
        return self._run(["pbpaste"]).decode("utf-8", "replace")

    def write_clipboard(self, text: str):
        self._run(["pbcopy"], data=text.encode("utf-8"))

    def copy_file_to_clipboard(self, path: str):
        try:
            with open(path, "rb") as fh:
                self._run(["pbcopy"], stdin=fh)
        except OSError as exc:
            raise AutomationFailure(f"Could not read {path}: {exc}") from exc

    def send_copy(self):
        self._system_events('keystroke "c" using command down')

    def select_current_line(self):
        self._system_events(
            f"key code {KEY_CODE_RIGHT} using command down",
            "delay 0.05",
            f"key code {KEY_CODE_LEFT} using {{command down, shift down}}",
            "delay 0.05",
        )

    def send_paste(self):
        self._system_events(f"key code {KEY_CODE_V} using command down")


BACKENDS = {
    KeyboardAutomation.name:    KeyboardAutomation,
    AppleScriptAutomation.name: AppleScriptAutomation,
}


def get_automation(name: str = None) -> Automation:
    """Build a backend by name; default is applescript on macOS, keyboard elsewhere."""
    if not name:
        name = AppleScriptAutomation.name if IS_MAC else KeyboardAutomation.name
    try:
        cls = BACKENDS[name]
    except KeyError:
        raise ValueError(
            f"Unknown automation backend {name!r} (choose from {', '.join(BACKENDS)})"
        ) from None
    return cls()
