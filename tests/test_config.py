import logging

import pytest

from deckport.config import apply_logging_config, get_config, get_logging_config, reload_config
from deckport.config.settings import DeckportConfig, ExportConfig


@pytest.fixture
def fresh_config():
    yield
    get_config.cache_clear()


def test_environment_overrides_are_read_on_reload(monkeypatch, fresh_config):
    monkeypatch.setenv("DECKPORT_TARGET_WIDTH", "1280")
    monkeypatch.setenv("DECKPORT_TARGET_HEIGHT", "720")
    monkeypatch.setenv("DECKPORT_FETCH_REMOTE_IMAGES", "false")
    config = reload_config()
    assert (config.importing.target_width, config.importing.target_height) == (1280, 720)
    assert config.exporting.fetch_remote_images is False
    assert get_config() is config


def test_invalid_placeholder_color_is_rejected(monkeypatch, fresh_config):
    monkeypatch.setenv("DECKPORT_PLACEHOLDER_COLOR", "grey")
    with pytest.raises(ValueError):
        reload_config()


def test_validate_rejects_empty_canvas():
    config = DeckportConfig(exporting=ExportConfig(canvas_width_in=0))
    with pytest.raises(ValueError):
        config.validate()


@pytest.mark.parametrize("env,debug,profile,level", [
    (None, None, "development", "INFO"),
    ("production", None, "production", "WARNING"),
    ("production", "true", "debug", "DEBUG"),
])
def test_logging_profile_follows_environment(monkeypatch, env, debug, profile, level):
    for name, value in (("ENV", env), ("DEBUG", debug)):
        if value is None:
            monkeypatch.delenv(name, raising=False)
        else:
            monkeypatch.setenv(name, value)
    config = get_logging_config()
    assert config["environment"] == profile
    assert config["default_level"] == level


def test_apply_logging_config_installs_one_handler():
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    try:
        apply_logging_config({"default_level": "WARNING", "console_format": "%(message)s", "suppress_modules": ["PIL"]})
        assert len(root.handlers) == 1
        assert root.level == logging.WARNING
        assert logging.getLogger("PIL").level == logging.WARNING
    finally:
        root.handlers = saved_handlers
        root.setLevel(saved_level)
