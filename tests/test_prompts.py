import configparser
import json

import pytest

from stealthai.errors import ConfigCorrupt
from stealthai.local_storage import MemoryStorage
from stealthai.prompts import (
    DEFAULT_CONFIGS, STORAGE_KEY, ActionConfig, PromptResolver, get_preferences,
    load_ini, parse_overrides,
)


def ini(text: str) -> configparser.ConfigParser:
    cfg = configparser.ConfigParser(interpolation=None)
    cfg.read_string(text)
    return cfg


def stored(configs: dict) -> MemoryStorage:
    return MemoryStorage({STORAGE_KEY: json.dumps(configs)})


def test_defaults_cover_the_five_builtin_actions():
    titles = {k: v.title for k, v in DEFAULT_CONFIGS.items()}
    assert titles == {
        "action-1": "Fix Grammar",
        "action-2": "Make Concise",
        "action-3": "Create List",
        "action-4": "Make Professional",
        "action-5": "Simplify",
    }


def test_default_layer_only():
    config = PromptResolver(MemoryStorage()).resolve("action-1")
    assert config == DEFAULT_CONFIGS["action-1"]
    assert config.configured


def test_unknown_action_uses_id_as_title_and_empty_prompt():
    config = PromptResolver(MemoryStorage()).resolve("action-7")
    assert config == ActionConfig(title="action-7", prompt="")
    assert not config.configured


def test_preferences_override_defaults():
    cfg = ini("[preferences]\nprompt = Translate to German:\n")
    config = PromptResolver(MemoryStorage(), cfg).resolve("action-2")
    assert config.title == "Make Concise"
    assert config.prompt == "Translate to German:"


def test_action_section_beats_global_preferences():
    cfg = ini(
        "[preferences]\ntitle = Global\nprompt = global prompt\n"
        "[action:action-6]\ntitle = Translate\n"
    )
    assert get_preferences(cfg, "action-6") == {"title": "Translate", "prompt": "global prompt"}
    assert get_preferences(cfg, "action-5") == {"title": "Global", "prompt": "global prompt"}


def test_persisted_override_wins_field_by_field():
    cfg = ini("[preferences]\ntitle = From Prefs\nprompt = prefs prompt\n")
    storage = stored({"action-3": {"prompt": "saved prompt"}})
    config = PromptResolver(storage, cfg).resolve("action-3")
    assert config == ActionConfig(title="From Prefs", prompt="saved prompt")


def test_overrides_for_other_actions_are_ignored():
    storage = stored({"action-9": {"title": "Nine", "prompt": "p9"}})
    assert PromptResolver(storage).resolve("action-1") == DEFAULT_CONFIGS["action-1"]


def test_corrupt_storage_falls_back_and_logs(log):
    storage = MemoryStorage({STORAGE_KEY: "{not json"})
    cfg = ini("[preferences]\ntitle = Prefs Title\n")
    config = PromptResolver(storage, cfg, log=log).resolve("action-1")
    assert config.title == "Prefs Title"
    assert config.prompt == DEFAULT_CONFIGS["action-1"].prompt
    assert log.tags() == ["warn"]


def test_unreadable_storage_falls_back(log):
    class Broken(MemoryStorage):
        def get_item(self, key):
            raise OSError("disk gone")

    config = PromptResolver(Broken(), log=log).resolve("action-4")
    assert config == DEFAULT_CONFIGS["action-4"]
    assert "disk gone" in log.text()


def test_non_object_blob_is_corrupt():
    with pytest.raises(ConfigCorrupt):
        parse_overrides("[1, 2]")
    assert parse_overrides(None) == {}
    assert parse_overrides("") == {}


def test_malformed_entry_fields_are_skipped():
    storage = stored({"action-1": {"title": 42, "prompt": None}, "action-2": "nonsense"})
    resolver = PromptResolver(storage)
    assert resolver.resolve("action-1") == DEFAULT_CONFIGS["action-1"]
    assert resolver.resolve("action-2") == DEFAULT_CONFIGS["action-2"]


def test_saved_blank_prompt_clears_the_default():
    storage = stored({"action-1": {"title": "Grammar", "prompt": ""}})
    config = PromptResolver(storage).resolve("action-1")
    assert config == ActionConfig("Grammar", "")
    assert not config.configured


def test_save_then_resolve_and_reset():
    storage = MemoryStorage()
    resolver = PromptResolver(storage)
    resolver.save("action-6", "Pirate", "Rewrite like a pirate:")
    assert resolver.resolve("action-6") == ActionConfig("Pirate", "Rewrite like a pirate:")
    assert json.loads(storage.get_item(STORAGE_KEY)) == {
        "action-6": {"title": "Pirate", "prompt": "Rewrite like a pirate:"}
    }
    assert resolver.reset("action-6") is True
    assert resolver.reset("action-6") is False
    assert resolver.resolve("action-6") == ActionConfig("action-6", "")


def test_save_keeps_other_entries_and_replaces_corrupt_blob(log):
    storage = stored({"action-1": {"title": "Mine", "prompt": "p"}})
    PromptResolver(storage).save("action-2", "Two", "p2")
    assert set(json.loads(storage.get_item(STORAGE_KEY))) == {"action-1", "action-2"}

    storage = MemoryStorage({STORAGE_KEY: "garbage"})
    PromptResolver(storage, log=log).save("action-2", "Two", "p2")
    assert json.loads(storage.get_item(STORAGE_KEY)) == {"action-2": {"title": "Two", "prompt": "p2"}}
    assert "warn" in log.tags()


def test_load_ini_accepts_dir_or_file(tmp_path):
    assert load_ini(tmp_path).sections() == []
    (tmp_path / "stealthai.ini").write_text("[preferences]\ntitle = T\n", encoding="utf-8")
    assert load_ini(tmp_path).get("preferences", "title") == "T"
    assert load_ini(tmp_path / "stealthai.ini").get("preferences", "title") == "T"
