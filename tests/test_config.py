"""Tests for application config and persisted user settings."""

from __future__ import annotations

import json

import pytest

from qisas.config import AppConfig, SettingsStore, UserSettings, get_app_config, load_config
from qisas.data.editions import DEFAULT_AUDIO_EDITION, DEFAULT_TEXT_EDITION


class TestAppConfig:
    def test_defaults_ship_with_package(self):
        cfg = load_config()
        assert cfg.get("api", "base_url") == "https://api.alquran.cloud/v1"
        assert cfg.get("prefetch", "concurrency") == 3
        assert cfg.get("audio", "default_edition") == DEFAULT_AUDIO_EDITION

    def test_missing_key_returns_default(self):
        assert AppConfig({"a": {"b": 1}}).get("a", "c", default=7) == 7
        assert AppConfig({"a": 1}).get("a", "b") is None

    def test_merge_is_deep(self):
        cfg = AppConfig({"api": {"base_url": "x", "timeout": 30}})
        cfg.merge({"api": {"timeout": 5}})
        assert cfg.data == {"api": {"base_url": "x", "timeout": 5}}

    def test_env_override(self, tmp_path, monkeypatch):
        override = tmp_path / "qisas.json"
        override.write_text(json.dumps({"api": {"timeout": 3}}), encoding="utf-8")
        monkeypatch.setenv("QISAS_CONFIG", str(override))
        cfg = get_app_config()
        assert cfg.get("api", "timeout") == 3
        assert cfg.get("api", "base_url") == "https://api.alquran.cloud/v1"

    def test_missing_override_is_ignored(self, tmp_path):
        cfg = load_config(tmp_path / "absent.json")
        assert cfg.get("api", "timeout") == 30


class TestSettingsStore:
    def test_defaults_when_no_file(self, settings_store):
        assert settings_store.load() == UserSettings()
        assert not settings_store.path.exists()

    def test_update_persists(self, settings_store):
        settings_store.update(audio_edition="ar.husary", repeat=3)
        again = SettingsStore(path=settings_store.path)
        assert again.load().audio_edition == "ar.husary"
        assert again.load().repeat == 3

    def test_repeat_is_coerced(self, settings_store):
        assert settings_store.update(repeat="0").repeat == 1
        assert settings_store.update(repeat="4").repeat == 4
        assert settings_store.update(repeat="lots").repeat == 1

    def test_unknown_key_rejected(self, settings_store):
        with pytest.raises(KeyError):
            settings_store.update(volume=3)

    def test_text_edition_is_forced_and_migrated(self, settings_store):
        settings_store.path.write_text(
            json.dumps({"audio_edition": "ar.minshawi", "text_edition": "en.sahih"}),
            encoding="utf-8",
        )
        settings = settings_store.load()
        assert settings.text_edition == DEFAULT_TEXT_EDITION
        assert settings.audio_edition == "ar.minshawi"
        on_disk = json.loads(settings_store.path.read_text(encoding="utf-8"))
        assert on_disk["text_edition"] == DEFAULT_TEXT_EDITION

    def test_unreadable_file_gives_defaults(self, settings_store):
        settings_store.path.write_text("{not json", encoding="utf-8")
        assert settings_store.load() == UserSettings()

    def test_audio_edition_is_read_fresh(self, settings_store):
        other = SettingsStore(path=settings_store.path)
        other.update(audio_edition="ar.abdulbasitmurattal")
        assert settings_store.audio_edition() == "ar.abdulbasitmurattal"

    def test_reader_sees_old_settings_during_write(self, settings_store, monkeypatch):
        """A concurrent reader never sees a truncated file while an update is written."""
        import qisas.config as config_module

        settings_store.update(audio_edition="ar.husary")
        reader = SettingsStore(path=settings_store.path)
        seen = []
        real_replace = config_module.os.replace

        def replace_after_read(src, dst):
            seen.append(reader.audio_edition())
            real_replace(src, dst)

        monkeypatch.setattr(config_module.os, "replace", replace_after_read)
        settings_store.update(audio_edition="ar.minshawi")

        assert seen == ["ar.husary"]
        assert reader.audio_edition() == "ar.minshawi"

    def test_no_temporary_files_left(self, settings_store):
        settings_store.update(repeat=2)
        settings_store.update(repeat=3)
        assert [p.name for p in settings_store.path.parent.iterdir()] == ["settings.json"]

    def test_config_defaults(self, tmp_path):
        cfg = AppConfig({"audio": {"default_edition": "ar.husary", "default_repeat": 2}})
        store = SettingsStore(path=tmp_path / "s.json", config=cfg)
        assert store.load().audio_edition == "ar.husary"
        assert store.load().repeat == 2

    def test_env_path(self, tmp_path, monkeypatch):
        target = tmp_path / "env.json"
        monkeypatch.setenv("QISAS_SETTINGS", str(target))
        assert SettingsStore().path == target
