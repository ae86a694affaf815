"""Tests for settings layering and logging setup."""

import io
import logging

import pytest

from config import ConfigurationManager, get_config
from src.utils.logger import get_logger, set_level, setup_logger


def test_packaged_defaults():
    assert get_config("annotator.min_zone_size") == 0.01
    assert get_config("feedback.ewma_alpha") is None
    assert get_config("missing.key", "fallback") == "fallback"


def test_override_file_is_merged(tmp_path, monkeypatch):
    settings = tmp_path / "override.yaml"
    settings.write_text(
        "extraction:\n  fallback:\n    window: 40\npaths:\n  output_dir: data\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("INVOICE_TEMPLATES_CONFIG", str(settings))

    assert get_config("extraction.fallback.window") == 40
    assert get_config("extraction.fallback.confidence") == 0.5
    assert get_config("paths.output_dir") == str(tmp_path / "data")


def test_override_must_be_a_mapping(tmp_path):
    settings = tmp_path / "bad.yaml"
    settings.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(ValueError):
        ConfigurationManager(str(settings))


def test_missing_override_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        ConfigurationManager(str(tmp_path / "nope.yaml"))


def test_runtime_override_survives_reload():
    config = ConfigurationManager()
    config.set("feedback.ewma_alpha", 0.3)
    config.reload()
    assert get_config("feedback.ewma_alpha") == 0.3
    assert get_config("feedback.default_success_rate") == 100.0


def test_logger_writes_plain_text_to_stream():
    stream = io.StringIO()
    setup_logger(level="INFO", stream=stream)
    logger = get_logger("src.engine")

    logger.info("template matched")
    logger.debug("hidden")
    set_level("DEBUG")
    logger.debug("visible")

    output = stream.getvalue()
    assert logger.name == "invoice_templates.src.engine"
    assert "template matched" in output
    assert "hidden" not in output
    assert "visible" in output
    assert "\x1b[" not in output


def test_unknown_level():
    with pytest.raises(ValueError):
        setup_logger(level="LOUD")
    logging.getLogger("invoice_templates").handlers.clear()
