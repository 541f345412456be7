"""
app.py — Command line and hotkey host for the stealthai pipeline.

Rewrites the selected text in whatever app has focus, in place, using an
AI instruction per action slot (action-1 … action-9).

Usage:
    stealthai listen                    # global hotkeys ctrl+alt+1 … ctrl+alt+9
    stealthai run action-1 [--edit]     # one-shot, for launchers / OS shortcuts
    stealthai edit action-6 [--title T --prompt P]
    stealthai reset action-6
    stealthai actions
    stealthai history [--tag err] [--limit 50]

Common options:
    --data-dir ~/.stealthai   --config stealthai.ini   --backend keyboard|applescript
    --model NAME   --settle 0.2   --debounce 3   --no-gui   --verbose

stealthai.ini format:
    [settings]
    backend = keyboard
    model = claude-sonnet-4-5
    settle_interval = 0.3
    hotkey_template = ctrl+alt+{n}

    [preferences]                # applies to every action
    prompt =

    [action:action-6]            # applies to one action
    title = Translate to French
    prompt = Translate the following text to French. Return only the translation:
"""

import argparse
import sys
import threading
from pathlib import Path

try:
    import keyboard
    KEYBOARD_AVAILABLE = True
except ImportError:
    KEYBOARD_AVAILABLE = False

from .automation import get_automation
from .db_logger import TAGS, DBLogger
from .editor import TK_AVAILABLE, PromptEditor, save_config
from .errors import AutomationFailure
from .gate import DEBOUNCE_SECONDS, RunGate
from .local_storage import LocalStorage
from .pipeline import DONE, EDITOR, StealthRunner
from .prompts import ACTION_IDS, PromptResolver, load_ini
from .replacer import Replacer
from .selection import SETTLE_INTERVAL, AcquisitionEngine
from .toast import ConsoleNotifier, ToastNotifier
from .transformer import MAX_TOKENS, MODEL, Transformer

if TK_AVAILABLE:
    import tkinter as tk

DEFAULT_DATA_DIR = Path.home() / ".stealthai"

DEFAULT_SETTINGS = {
    "backend":         "",
    "model":           MODEL,
    "max_tokens":      MAX_TOKENS,
    "settle_interval": SETTLE_INTERVAL,
    "debounce":        DEBOUNCE_SECONDS,
    "hotkey_template": "ctrl+alt+{n}",
    "toast_seconds":   4.0,
}

IDLE_POLL_MS = 200


# ─── Settings ─────────────────────────────────────────────────────────────────

def load_settings(cfg, overrides: dict = None) -> dict:
    """
    [settings] from the ini on top of DEFAULT_SETTINGS, then non-None CLI
    overrides on top. Values are cast to the type of their default.
    """
    settings = dict(DEFAULT_SETTINGS)
    if cfg.has_section("settings"):
        for key, raw in cfg["settings"].items():
            if key not in settings:
                continue
            cast = type(DEFAULT_SETTINGS[key])
            try:
                settings[key] = cast(raw)
            except (TypeError, ValueError):
                raise ValueError(
                    f"[settings] {key} = {raw!r} is not a valid {cast.__name__}"
                ) from None
    for key, value in (overrides or {}).items():
        if value is not None:
            settings[key] = value
    return settings


# ─── Host ─────────────────────────────────────────────────────────────────────

class StealthApp:
    """Wires the pipeline together and owns the Tk loop, hotkeys and workers."""

    def __init__(self, settings: dict, data_dir, cfg, root=None, echo: bool = False):
        self.root     = root
        self.settings = settings
        self.logger   = DBLogger(str(data_dir), backend=settings["backend"], echo=echo)
        self.resolver = PromptResolver(LocalStorage(str(data_dir)), cfg, log=self.logger.log)

        if root is not None:
            self.notifier = ToastNotifier(root, settings["toast_seconds"])
        else:
            self.notifier = ConsoleNotifier()

        self._runner  = None
        self._workers = []
        self._editors = []
        self._hotkeys = []

    @property
    def runner(self) -> StealthRunner:
        if self._runner is None:
            self._runner = self._build_runner()
        return self._runner

    def _build_runner(self) -> StealthRunner:
        settings   = self.settings
        automation = get_automation(settings["backend"] or None)
        log        = self.logger.log
        self.logger.log(f"Backend: {automation.name}", "info")
        return StealthRunner(
            gate        = RunGate(settings["debounce"]),
            resolver    = self.resolver,
            engine      = AcquisitionEngine(automation, settings["settle_interval"], log=log),
            transformer = Transformer(model=settings["model"],
                                      max_tokens=settings["max_tokens"], log=log),
            replacer    = Replacer(automation, log=log),
            notifier    = self.notifier,
            open_editor = self.open_editor if self.root is not None else None,
            log         = log,
        )

    # ── Triggers ──────────────────────────────────────────────────────────────

    def trigger(self, action_id: str, force_editor: bool = False):
        """Start a run without blocking the caller (hotkey thread or Tk loop)."""
        if force_editor and self.root is not None:
            self.root.after(0, lambda: self.runner.run(action_id, force_editor=True))
            return
        worker = threading.Thread(
            target=self.runner.run, args=(action_id, force_editor), daemon=True
        )
        self._workers = [w for w in self._workers if w.is_alive()]
        self._workers.append(worker)
        worker.start()

    def open_editor(self, action_id: str, config):
        # Tk thread only: reached from the Tk loop or a toast button.
        self._editors.append(PromptEditor(
            self.root, action_id, config, self.resolver, self.notifier,
            on_run=self.trigger,
        ))

    def register_hotkeys(self) -> int:
        if not KEYBOARD_AVAILABLE:
            self.logger.log("'keyboard' not installed, hotkeys disabled. "
                            "pip install keyboard", "warn")
            return 0
        template = self.settings["hotkey_template"]
        for n, action_id in enumerate(ACTION_IDS, start=1):
            hotkey = template.format(n=n)
            # Fire on release so the trigger chord is up before any simulated key.
            keyboard.add_hotkey(hotkey, self.trigger, args=(action_id,),
                                trigger_on_release=True)
            self._hotkeys.append(hotkey)
            self.logger.log(f"Hotkey registered: {hotkey} → {action_id}", "ok")
        return len(self._hotkeys)

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    def busy(self) -> bool:
        self._workers = [w for w in self._workers if w.is_alive()]
        self._editors = [e for e in self._editors if e.open]
        toast_up = isinstance(self.notifier, ToastNotifier) and self.notifier.visible
        return bool(self._workers or self._editors or toast_up)

    def quit_when_idle(self):
        if self.busy():
            self.root.after(IDLE_POLL_MS, self.quit_when_idle)
        else:
            self.root.quit()

    def close(self):
        if KEYBOARD_AVAILABLE:
            for hotkey in self._hotkeys:
                try:
                    keyboard.remove_hotkey(hotkey)
                except (KeyError, ValueError):
                    pass
        self._hotkeys = []
        self.logger.stop()


# ─── Commands ─────────────────────────────────────────────────────────────────

def make_root(no_gui: bool):
    if no_gui or not TK_AVAILABLE:
        return None
    try:
        root = tk.Tk()
    except tk.TclError as exc:
        print(f"No display available ({exc}); falling back to console output.",
              file=sys.stderr)
        return None
    root.withdraw()
    return root


def cmd_run(app: StealthApp, args) -> int:
    if app.root is None:
        outcome = app.runner.run(args.action, force_editor=args.edit)
        return 0 if outcome in (DONE, EDITOR) else 1
    app.trigger(args.action, force_editor=args.edit)
    app.root.after(IDLE_POLL_MS, app.quit_when_idle)
    app.root.mainloop()
    return 0


def cmd_listen(app: StealthApp, args) -> int:
    app.runner  # build now so a backend that cannot start fails before any hotkey fires
    if app.register_hotkeys() == 0:
        print("No hotkeys registered (is the 'keyboard' package installed and "
              "permitted?)", file=sys.stderr)
        return 1
    print(f"Listening: {app.settings['hotkey_template'].format(n='1-9')}. "
          f"Ctrl+C to quit.", file=sys.stderr)
    try:
        if app.root is not None:
            app.root.mainloop()
        else:
            keyboard.wait()
    except KeyboardInterrupt:
        pass
    return 0


def cmd_edit(app: StealthApp, args) -> int:
    if args.title is not None or args.prompt is not None:
        config = app.resolver.resolve(args.action)
        title  = args.title if args.title is not None else config.title
        prompt = args.prompt if args.prompt is not None else config.prompt
        return 0 if save_config(app.resolver, app.notifier, args.action, title, prompt) else 1
    if app.root is None:
        config = app.resolver.resolve(args.action)
        print(f"{args.action}: {config.title}\n\n{config.prompt}")
        print("\nNo display: pass --title/--prompt to change it.", file=sys.stderr)
        return 0
    app.open_editor(args.action, app.resolver.resolve(args.action))
    app.root.after(IDLE_POLL_MS, app.quit_when_idle)
    app.root.mainloop()
    return 0


def cmd_reset(app: StealthApp, args) -> int:
    if app.resolver.reset(args.action):
        print(f"{args.action}: saved config removed")
    else:
        print(f"{args.action}: nothing saved")
    return 0


def cmd_actions(app: StealthApp, args) -> int:
    for action_id in ACTION_IDS:
        config = app.resolver.resolve(action_id)
        mark   = " " if config.configured else "!"
        print(f"{mark} {action_id:<9} {config.title}")
    return 0


def cmd_history(app: StealthApp, args) -> int:
    for entry in app.logger.get_entries(session_id=args.session, tag=args.tag,
                                        action_id=args.action, limit=args.limit):
        ts = entry["timestamp"][:19].replace("T", " ")
        print(f"{ts} {entry['session_id']} {entry['tag']:<5} {entry['message']}")
    return 0


COMMANDS = {
    "run":     cmd_run,
    "listen":  cmd_listen,
    "edit":    cmd_edit,
    "reset":   cmd_reset,
    "actions": cmd_actions,
    "history": cmd_history,
}

NEEDS_GUI = {"run", "listen", "edit"}


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        prog="stealthai",
        description="Rewrite the selected text in any app with an AI instruction."
    )
    parser.add_argument("--data-dir", default=str(DEFAULT_DATA_DIR),
                        help="Where stealthai.db and stealthai.ini live "
                             "(default: ~/.stealthai).")
    parser.add_argument("--config", default=None,
                        help="Path to an ini file (default: <data-dir>/stealthai.ini).")
    parser.add_argument("--backend", choices=["keyboard", "applescript"], default=None,
                        help="Automation backend (default: applescript on macOS, "
                             "keyboard elsewhere).")
    parser.add_argument("--model", default=None, help=f"Model name (default: {MODEL}).")
    parser.add_argument("--settle", type=float, default=None, dest="settle_interval",
                        help=f"Seconds to wait after a simulated copy "
                             f"(default: {SETTLE_INTERVAL}).")
    parser.add_argument("--debounce", type=float, default=None,
                        help=f"Minimum seconds between run starts "
                             f"(default: {DEBOUNCE_SECONDS}).")
    parser.add_argument("--no-gui", action="store_true",
                        help="Report to stderr instead of toast windows.")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Echo log entries to stderr.")

    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("run", help="Run one action on the current selection.")
    p.add_argument("action", help="Action id, e.g. action-1.")
    p.add_argument("--edit", action="store_true",
                   help="Open the prompt editor instead of running.")

    sub.add_parser("listen", help="Register global hotkeys and wait.")

    p = sub.add_parser("edit", help="Edit an action's title and prompt.")
    p.add_argument("action")
    p.add_argument("--title", default=None)
    p.add_argument("--prompt", default=None)

    p = sub.add_parser("reset", help="Forget an action's saved title and prompt.")
    p.add_argument("action")

    sub.add_parser("actions", help="List actions and their resolved titles.")

    p = sub.add_parser("history", help="Show the run log.")
    p.add_argument("--session", default=None)
    p.add_argument("--tag", choices=TAGS, default=None)
    p.add_argument("--action", default=None)
    p.add_argument("--limit", type=int, default=100)

    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    data_dir = Path(args.data_dir).expanduser()
    cfg = load_ini(args.config or data_dir)
    try:
        settings = load_settings(cfg, {
            "backend":         args.backend,
            "model":           args.model,
            "settle_interval": args.settle_interval,
            "debounce":        args.debounce,
        })
    except ValueError as exc:
        print(f"stealthai: {exc}", file=sys.stderr)
        return 2

    root = make_root(args.no_gui) if args.command in NEEDS_GUI else None
    app = StealthApp(settings, data_dir, cfg, root=root, echo=args.verbose)
    try:
        return COMMANDS[args.command](app, args)
    except (AutomationFailure, ValueError) as exc:
        print(f"stealthai: {exc}", file=sys.stderr)
        return 2
    finally:
        app.close()
        if root is not None:
            root.destroy()


if __name__ == "__main__":
    sys.exit(main())
