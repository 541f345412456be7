"""
replacer.py — Paste the transformed text over the current selection.

The text is staged in a UTF-8 temp file and the clipboard is loaded from
that file, so quotes, backslashes and newlines never pass through a command
line. The temp file is removed whether or not the paste works. Whatever was
on the clipboard before (including the selection marker) is overwritten.
"""

import os
import tempfile

from .db_logger import null_log
from .errors import AutomationFailure


class Replacer:
    def __init__(self, automation, tmp_dir: str = None, log=null_log):
        self.automation = automation
        self.tmp_dir    = tmp_dir
        self.log        = log

    def _stage(self, text: str) -> str:
        try:
            fd, path = tempfile.mkstemp(prefix="stealthai-", suffix=".txt", dir=self.tmp_dir)
        except OSError as exc:
            raise AutomationFailure(f"Could not create temp file: {exc}") from exc
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as fh:
                fh.write(text)
        except OSError as exc:
            self._cleanup(path)
            raise AutomationFailure(f"Could not stage result: {exc}") from exc
        return path

    def _cleanup(self, path: str):
        try:
            os.unlink(path)
        except FileNotFoundError:
            pass
        except OSError as exc:
            self.log(f"Could not remove {path}: {exc}", "warn")

    def replace(self, text: str):
        path = self._stage(text)
        try:
            self.automation.copy_file_to_clipboard(path)
            self.automation.send_paste()
            self.log(f"Pasted {len(text)} chars", "ok")
        finally:
            self._cleanup(path)
