"""
editor.py — Prompt editor window, the target of forced editor mode.

Lets the user change an action's title and instruction prompt. Saving
writes the per-action override map through the resolver; "Run Now" closes
the window and starts a normal run once focus is back in the other app.
"""

try:
    import tkinter as tk
    TK_AVAILABLE = True
except ImportError:
    tk = None
    TK_AVAILABLE = False

from .toast import C

RUN_NOW_DELAY_MS = 400


def save_config(resolver, notifier, action_id: str, title: str, prompt: str) -> bool:
    """Persist the edited config and report the result. Returns True on success."""
    title  = title.strip() or action_id
    prompt = prompt.strip()
    try:
        resolver.save(action_id, title, prompt)
    except Exception as exc:
        notifier.failure(f"Failed to save: {exc}", action_id)
        return False
    notifier.success("Configuration saved!")
    return True


class PromptEditor:
    def __init__(self, root, action_id: str, config, resolver, notifier,
                 on_run=None):
        self.root      = root
        self.action_id = action_id
        self.resolver  = resolver
        self.notifier  = notifier
        self.on_run    = on_run

        self.win = tk.Toplevel(root)
        self.win.title(f"stealthai: Editing {config.title}")
        self.win.geometry("560x360")
        self.win.minsize(420, 260)
        self.win.configure(bg=C["bg_dark"])
        self.win.protocol("WM_DELETE_WINDOW", self.close)
        self._build_ui(config)
        self.win.lift()
        self.win.focus_force()

    def _build_ui(self, config):
        frame = tk.Frame(self.win, bg=C["bg_dark"], padx=10, pady=8)
        frame.pack(fill=tk.BOTH, expand=True)

        tk.Label(
            frame, text=f"Editing {config.title} ({self.action_id})",
            fg=C["fg"], bg=C["bg_dark"], font=("Helvetica", 12, "bold"), anchor="w"
        ).pack(fill=tk.X)
        tk.Label(
            frame, text="Modify the prompt and title. Multiline is supported here.",
            fg=C["fg_dim"], bg=C["bg_dark"], font=("Helvetica", 10), anchor="w"
        ).pack(fill=tk.X, pady=(0, 6))

        tk.Label(frame, text="Title", fg=C["fg_dim"], bg=C["bg_dark"],
                 anchor="w").pack(fill=tk.X)
        self.title_var = tk.StringVar(value=config.title)
        tk.Entry(
            frame, textvariable=self.title_var, bg=C["bg_input"], fg=C["fg"],
            insertbackground=C["fg"], relief=tk.FLAT
        ).pack(fill=tk.X, pady=(0, 6))

        tk.Label(frame, text="Prompt", fg=C["fg_dim"], bg=C["bg_dark"],
                 anchor="w").pack(fill=tk.X)
        self.prompt_text = tk.Text(
            frame, height=8, wrap=tk.WORD, bg=C["bg_input"], fg=C["fg"],
            insertbackground=C["fg"], relief=tk.FLAT, font=("Courier", 10)
        )
        self.prompt_text.insert("1.0", config.prompt)
        self.prompt_text.pack(fill=tk.BOTH, expand=True)

        buttons = tk.Frame(frame, bg=C["bg_dark"])
        buttons.pack(fill=tk.X, pady=(8, 0))
        tk.Button(
            buttons, text="Save and Close", command=self._on_save,
            bg=C["bg_input"], fg=C["ok"], relief=tk.FLAT,
            activebackground=C["fg_dim"], cursor="hand2", padx=8
        ).pack(side=tk.RIGHT, padx=3)
        if self.on_run is not None:
            tk.Button(
                buttons, text="Run Now (needs selection)", command=self._on_run,
                bg=C["bg_input"], fg=C["fg"], relief=tk.FLAT,
                activebackground=C["fg_dim"], cursor="hand2", padx=8
            ).pack(side=tk.RIGHT, padx=3)

    def _values(self) -> tuple:
        return self.title_var.get(), self.prompt_text.get("1.0", tk.END).rstrip("\n")

    def _on_save(self):
        title, prompt = self._values()
        if save_config(self.resolver, self.notifier, self.action_id, title, prompt):
            self.close()

    def _on_run(self):
        self.close()
        self.root.after(RUN_NOW_DELAY_MS, lambda: self.on_run(self.action_id))

    def close(self):
        if self.win is not None:
            self.win.destroy()
            self.win = None

    @property
    def open(self) -> bool:
        return self.win is not None
