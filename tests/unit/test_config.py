"""Tests for OffshootConfig — env-driven settings."""

from __future__ import annotations

from offshoot.config import OffshootConfig
from offshoot.core.instrumentation import log_subscriber
from offshoot.core.resource import ResourceType


class TestOffshootConfig:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("OFFSHOOT_DEFAULT_STORAGE", raising=False)
        config = OffshootConfig(_env_file=None)
        assert config.log_level == "INFO"
        assert config.default_storage == "store"
        assert config.cache_storage == "cache"
        assert config.versions_compatibility is False
        assert config.log_processing is True
        assert config.delete_raw_files is True

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("OFFSHOOT_DEFAULT_STORAGE", "permanent")
        monkeypatch.setenv("OFFSHOOT_VERSIONS_COMPATIBILITY", "true")
        config = OffshootConfig(_env_file=None)
        assert config.default_storage == "permanent"
        assert config.versions_compatibility is True


class TestResourceTypeDefaults:
    def test_takes_defaults_from_settings(self):
        settings = OffshootConfig(
            _env_file=None,
            default_storage="permanent",
            cache_storage="tmp",
            log_processing=False,
            versions_compatibility=True,
        )
        resource = ResourceType("photo", settings=settings)
        assert resource.store_key == "permanent"
        assert resource.cache_key == "tmp"
        assert resource.resolve_storage(("thumb",)) == "permanent"
        assert resource.versions_compatibility is True
        assert resource.instrumenter.subscribers == []

    def test_arguments_override_settings(self):
        settings = OffshootConfig(_env_file=None)
        resource = ResourceType(
            "photo", settings=settings, store_key="s3", log_processing=True,
            versions_compatibility=False,
        )
        assert resource.store_key == "s3"
        assert resource.versions_compatibility is False
        assert resource.instrumenter.subscribers == [log_subscriber]
