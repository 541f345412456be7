"""
prompts.py — Action configuration and the prompt resolver.

Resolution layers, lowest to highest priority:

    1. DEFAULT_CONFIGS, the built-in table keyed by action id
    2. host preferences from stealthai.ini:
           [preferences]          title / prompt, applied to every action
           [action:action-3]      title / prompt, applied to that action only
    3. the persisted per-action override map, a JSON object stored under
       STORAGE_KEY in local storage: {"action-3": {"title": ..., "prompt": ...}}

Each layer is merged field by field. In the ini an empty value means
"not set"; in the persisted map any string present overrides, including
"", so a saved blank prompt clears the default.
"""

import configparser
import json
from dataclasses import dataclass
from pathlib import Path

from .db_logger import null_log
from .errors import ConfigCorrupt

STORAGE_KEY = "action-configs"
INI_NAME    = "stealthai.ini"
ACTION_IDS  = tuple(f"action-{n}" for n in range(1, 10))


@dataclass(frozen=True)
class ActionConfig:
    title: str
    prompt: str

    @property
    def configured(self) -> bool:
        return bool(self.prompt.strip())


DEFAULT_CONFIGS = {
    "action-1": ActionConfig(
        title="Fix Grammar",
        prompt=(
            "Fix all typos, spelling errors, and grammar issues in the following "
            "text. IMPORTANT: Do NOT change the capitalization of the first "
            "character - if it starts with a lowercase letter, keep it lowercase. "
            "Return only the corrected text without any explanation:"
        ),
    ),
    "action-2": ActionConfig(
        title="Make Concise",
        prompt=(
            "Make the following text more concise while preserving the key "
            "meaning. Return only the rewritten text without explanation:"
        ),
    ),
    "action-3": ActionConfig(
        title="Create List",
        prompt=(
            "Convert the following text into a clean bullet point list. "
            "Return only the list without explanation:"
        ),
    ),
    "action-4": ActionConfig(
        title="Make Professional",
        prompt=(
            "Rewrite the following text to be more professional and polished, "
            "suitable for business communication. Return only the rewritten "
            "text without explanation:"
        ),
    ),
    "action-5": ActionConfig(
        title="Simplify",
        prompt=(
            "Simplify the following text to make it easier to understand. Use "
            "simpler words and shorter sentences. Return only the simplified "
            "text without explanation:"
        ),
    ),
}


# ─── INI loader ──────────────────────────────────────────────────────────────

def load_ini(path) -> configparser.ConfigParser:
    """Load stealthai.ini if it exists; an absent file yields an empty parser."""
    cfg = configparser.ConfigParser(interpolation=None)
    ini_path = Path(path)
    if ini_path.is_dir():
        ini_path = ini_path / INI_NAME
    if ini_path.exists():
        cfg.read(ini_path, encoding="utf-8")
    return cfg


def get_preferences(cfg: configparser.ConfigParser, action_id: str) -> dict:
    """
    Host-level title/prompt overrides for action_id: [preferences] first,
    then [action:<id>] on top. Only non-empty values are returned.
    """
    prefs = {}
    for section in ("preferences", f"action:{action_id}"):
        if not cfg.has_section(section):
            continue
        for field in ("title", "prompt"):
            value = cfg.get(section, field, fallback="").strip()
            if value:
                prefs[field] = value
    return prefs


# ─── Persisted overrides ─────────────────────────────────────────────────────

def parse_overrides(blob) -> dict:
    """Decode the stored override map. Raises ConfigCorrupt on a bad blob."""
    if not blob:
        return {}
    try:
        data = json.loads(blob)
    except (TypeError, ValueError) as exc:
        raise ConfigCorrupt(f"Stored action configs are not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigCorrupt("Stored action configs are not a JSON object")
    return data


def _merge(title: str, prompt: str, layer, keep_empty: bool = False) -> tuple:
    if not isinstance(layer, dict):
        return title, prompt
    new_title  = layer.get("title")
    new_prompt = layer.get("prompt")
    if isinstance(new_title, str) and (new_title or keep_empty):
        title = new_title
    if isinstance(new_prompt, str) and (new_prompt or keep_empty):
        prompt = new_prompt
    return title, prompt


class PromptResolver:
    def __init__(self, storage, cfg: configparser.ConfigParser = None, log=null_log):
        self.storage = storage
        self.cfg     = cfg if cfg is not None else configparser.ConfigParser()
        self.log     = log

    def load_overrides(self) -> dict:
        """The persisted override map, or {} if it is missing, unreadable or corrupt."""
        try:
            return parse_overrides(self.storage.get_item(STORAGE_KEY))
        except ConfigCorrupt as exc:
            self.log(f"Failed to load configs: {exc}", "warn")
        except Exception as exc:
            self.log(f"Failed to read config storage: {exc}", "warn")
        return {}

    def resolve(self, action_id: str) -> ActionConfig:
        default = DEFAULT_CONFIGS.get(action_id)
        title   = default.title if default else action_id
        prompt  = default.prompt if default else ""

        title, prompt = _merge(title, prompt, get_preferences(self.cfg, action_id))
        title, prompt = _merge(title, prompt, self.load_overrides().get(action_id),
                               keep_empty=True)

        return ActionConfig(title=title, prompt=prompt)

    def save(self, action_id: str, title: str, prompt: str):
        """Write {title, prompt} for action_id into the persisted override map."""
        try:
            configs = parse_overrides(self.storage.get_item(STORAGE_KEY))
        except ConfigCorrupt as exc:
            self.log(f"Replacing unreadable stored configs: {exc}", "warn")
            configs = {}
        configs[action_id] = {"title": title, "prompt": prompt}
        self.storage.set_item(STORAGE_KEY, json.dumps(configs, ensure_ascii=False))
        self.log(f"Saved config for {action_id}: {title}", "ok")

    def reset(self, action_id: str) -> bool:
        """Drop the persisted override for action_id. Returns True if one existed."""
        configs = self.load_overrides()
        if action_id not in configs:
            return False
        del configs[action_id]
        self.storage.set_item(STORAGE_KEY, json.dumps(configs, ensure_ascii=False))
        self.log(f"Reset config for {action_id}", "ok")
        return True
