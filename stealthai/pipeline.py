"""
pipeline.py — One capture → transform → replace run per trigger.

    gate → resolve config → acquire selection → call model → paste result

Every exit path releases the gate and ends in one terminal notification.
A trigger refused by the gate is a silent no-op.
"""

import traceback

from .db_logger import null_log
from .errors import AutomationFailure, EmptyResponse, ModelCallFailed

REJECTED       = "rejected"
EDITOR         = "editor"
NOT_CONFIGURED = "not-configured"
NO_SELECTION   = "no-selection"
MODEL_ERROR    = "model-error"
PASTE_ERROR    = "paste-error"
FAILED         = "failed"
DONE           = "done"


class StealthRunner:
    def __init__(self, gate, resolver, engine, transformer, replacer, notifier,
                 open_editor=None, log=null_log):
        self.gate        = gate
        self.resolver    = resolver
        self.engine      = engine
        self.transformer = transformer
        self.replacer    = replacer
        self.notifier    = notifier
        self.open_editor = open_editor
        self.log         = log

    def edit_callback(self, action_id: str):
        """The "Edit Prompt" affordance: re-enter this action in editor mode."""
        return lambda: self.run(action_id, force_editor=True)

    def run(self, action_id: str, force_editor: bool = False) -> str:
        if force_editor:
            # No clipboard or key side effects, so the gate is not taken.
            return self._run_editor(action_id)

        if not self.gate.try_enter():
            self.log(f"{self.gate.last_reason}. Aborting.", "gate", action_id)
            return REJECTED

        self.log(f"--- Starting {action_id} ---", "info", action_id)
        try:
            return self._run(action_id)
        except Exception as exc:
            self.log(f"Unexpected error: {exc}", "err", action_id)
            self.log(traceback.format_exc(), "err", action_id)
            self.notifier.failure(str(exc), action_id)
            return FAILED
        finally:
            self.gate.exit()
            self.log(f"--- Finished {action_id} ---", "info", action_id)

    def _run_editor(self, action_id: str) -> str:
        config = self.resolver.resolve(action_id)
        if self.open_editor is None:
            self.notifier.no_selection(action_id, None)
        else:
            self.log("Opening editor", "info", action_id)
            self.open_editor(action_id, config)
        return EDITOR

    def _run(self, action_id: str) -> str:
        on_edit = self.edit_callback(action_id)
        config  = self.resolver.resolve(action_id)
        self.log(f"Config: {config.title}", "info", action_id)

        if not config.configured:
            self.log("No prompt configured", "warn", action_id)
            self.notifier.failure(f"No prompt configured for {action_id}",
                                  action_id, on_edit)
            return NOT_CONFIGURED

        capture = self.engine.acquire()
        if not capture.acquired:
            self.notifier.no_selection(action_id, on_edit)
            return NO_SELECTION
        if capture.via_fallback_line:
            self.log("Using current line as selection", "info", action_id)

        self.notifier.progress(config.title)
        try:
            result = self.transformer.transform(config, capture.text)
        except (EmptyResponse, ModelCallFailed) as exc:
            self.log(f"Model call failed: {exc}", "err", action_id)
            self.notifier.failure(str(exc), action_id, on_edit)
            return MODEL_ERROR

        try:
            self.replacer.replace(result)
        except AutomationFailure as exc:
            self.log(f"Paste failed: {exc}", "err", action_id)
            self.notifier.failure(str(exc), action_id)
            return PASTE_ERROR

        self.notifier.success()
        return DONE
