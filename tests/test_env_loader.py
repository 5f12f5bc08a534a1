"""
Tests for environment-driven configuration.
"""

from pathlib import Path

import pytest

from cinema.env_loader import (
    DEFAULT_IMAGE_MODEL, StudioConfig, get_key_info, load_config, validate_key_format,
)
from cinema.exceptions import MissingConfigError

ENV_VARS = [
    "GEMINI_API_KEY", "GOOGLE_API_KEY", "GEMINI_IMAGE_API_KEY",
    "STUDIO_IMAGE_MODEL", "STUDIO_TEXT_MODEL", "STUDIO_QUALITY_TIER", "STUDIO_DATA_DIR", "STUDIO_LOG_LEVEL",
]


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestLoadConfig:

    def test_defaults(self, clean_env):
        cfg = load_config()
        assert cfg.api_key == ""
        assert cfg.image_model == DEFAULT_IMAGE_MODEL
        assert cfg.quality_tier == "4K"
        assert cfg.data_dir == Path("storyboards")

    def test_overrides(self, clean_env):
        clean_env.setenv("GOOGLE_API_KEY", "abc123")
        clean_env.setenv("STUDIO_QUALITY_TIER", "2K")
        clean_env.setenv("STUDIO_DATA_DIR", "/tmp/boards")
        cfg = load_config(require_key=True)
        assert cfg.api_key == "abc123"
        assert cfg.quality_tier == "2K"
        assert cfg.data_dir == Path("/tmp/boards")

    def test_image_key_preferred(self, clean_env):
        clean_env.setenv("GEMINI_API_KEY", "text-key")
        clean_env.setenv("GEMINI_IMAGE_API_KEY", "image-key")
        assert load_config().effective_image_key == "image-key"

    def test_missing_key(self, clean_env):
        with pytest.raises(MissingConfigError):
            load_config(require_key=True)


class TestKeyHelpers:

    def test_validate_key_format(self):
        assert validate_key_format("AIzaSyExample")
        assert not validate_key_format("")
        assert not validate_key_format("two words")

    def test_key_info_hides_key(self):
        assert "secret" not in get_key_info("secret")
        assert get_key_info("") == "no key"

    def test_fallback_key(self):
        assert StudioConfig(api_key="a").effective_image_key == "a"
