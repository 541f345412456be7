"""
toast.py — Outcome reporting: small borderless Tk toasts, or stderr lines.

A notifier never raises; it is the last stop for every user-visible error.
Notifier methods may be called from any thread. ToastNotifier hands all Tk
work to the Tk thread with root.after().
"""

import sys
import threading

try:
    import tkinter as tk
    TK_AVAILABLE = True
except ImportError:
    tk = None
    TK_AVAILABLE = False

# ── Colours ───────────────────────────────────────────────────────────────────
C = {
    "bg_dark":   "#1e2127",
    "bg_input":  "#44475a",
    "fg":        "#f8f8f2",
    "fg_dim":    "#6272a4",
    "ok":        "#50fa7b",
    "err":       "#ff5555",
    "busy":      "#8be9fd",
}

PROGRESS = "in-progress"
SUCCESS  = "success"
FAILURE  = "failure"

STATE_COLOURS = {
    PROGRESS: C["busy"],
    SUCCESS:  C["ok"],
    FAILURE:  C["err"],
}


class Notifier:
    """Outcome sink. Subclasses implement show()."""

    def show(self, state: str, title: str, message: str = "", on_edit=None,
             action_id: str = ""):
        raise NotImplementedError

    def progress(self, title: str):
        self.show(PROGRESS, f"{title}...")

    def success(self, title: str = "Done!", message: str = ""):
        self.show(SUCCESS, title, message)

    def no_selection(self, action_id: str, on_edit=None):
        self.show(FAILURE, "No text selected", "Please select text first", on_edit,
                  action_id)

    def failure(self, message: str, action_id: str = "", on_edit=None):
        self.show(FAILURE, "Failed", message, on_edit, action_id)


class ConsoleNotifier(Notifier):
    def __init__(self, stream=None):
        self.stream = stream or sys.stderr

    def show(self, state: str, title: str, message: str = "", on_edit=None,
             action_id: str = ""):
        line = f"[{state}] {title}"
        if message:
            line += f": {message}"
        if on_edit is not None:
            line += f"  (run `stealthai edit {action_id}` to adjust the prompt)"
        try:
            print(line, file=self.stream)
        except (OSError, ValueError):
            pass


class ToastNotifier(Notifier):
    """
    One toast on screen at a time. Each update replaces the previous toast,
    so a run reads as one notification going from in-progress to done.
    """

    WIDTH = 340

    def __init__(self, root, seconds: float = 4.0):
        self.root     = root
        self.seconds  = seconds
        self._win     = None
        self._timer   = None
        self._pending = 0
        self._lock    = threading.Lock()

    @property
    def visible(self) -> bool:
        """True while a toast is on screen or queued for the Tk thread."""
        with self._lock:
            return self._pending > 0 or self._win is not None

    def show(self, state: str, title: str, message: str = "", on_edit=None,
             action_id: str = ""):
        with self._lock:
            self._pending += 1
        try:
            self.root.after(0, lambda: self._render(state, title, message, on_edit))
        except (RuntimeError, tk.TclError) as exc:
            with self._lock:
                self._pending -= 1
            print(f"stealthai: {title} {message} (toast failed: {exc})", file=sys.stderr)

    # ── Tk thread only ────────────────────────────────────────────────────────

    def _render(self, state, title, message, on_edit):
        with self._lock:
            self._pending -= 1
        self._close()
        self._win = tw = tk.Toplevel(self.root)
        tw.wm_overrideredirect(True)
        tw.attributes("-topmost", True)
        tw.configure(bg=C["bg_dark"])
        x = tw.winfo_screenwidth() - self.WIDTH - 24
        tw.wm_geometry(f"+{x}+{40}")

        body = tk.Frame(tw, bg=C["bg_dark"], padx=10, pady=8)
        body.pack(fill=tk.BOTH, expand=True)

        tk.Label(
            body, text="●", fg=STATE_COLOURS.get(state, C["fg_dim"]),
            bg=C["bg_dark"], font=("Courier", 12)
        ).pack(side=tk.LEFT, anchor="n")

        text = tk.Frame(body, bg=C["bg_dark"])
        text.pack(side=tk.LEFT, fill=tk.X, expand=True, padx=6)
        tk.Label(
            text, text=title, fg=C["fg"], bg=C["bg_dark"],
            font=("Helvetica", 11, "bold"), anchor="w", justify=tk.LEFT,
        ).pack(fill=tk.X)
        if message:
            tk.Label(
                text, text=message, fg=C["fg_dim"], bg=C["bg_dark"],
                font=("Helvetica", 10), anchor="w", justify=tk.LEFT,
                wraplength=self.WIDTH - 60,
            ).pack(fill=tk.X)

        if on_edit is not None:
            def _edit():
                self._close()
                on_edit()
            tk.Button(
                body, text="Edit Prompt", command=_edit,
                bg=C["bg_input"], fg=C["fg"], relief=tk.FLAT,
                activebackground=C["fg_dim"], cursor="hand2", padx=6
            ).pack(side=tk.RIGHT, anchor="n")

        if state != PROGRESS:
            self._timer = self.root.after(int(self.seconds * 1000), self._close)

    def _close(self):
        if self._timer is not None:
            self.root.after_cancel(self._timer)
            self._timer = None
        if self._win is not None:
            self._win.destroy()
            self._win = None
