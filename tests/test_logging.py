import structlog

from plume.core.config import settings
from plume.core.logging import configure_logging


def renderer():
    return structlog.get_config()["processors"][-1]


def test_renderer_follows_json_flag():
    try:
        configure_logging(json_output=False)
        assert isinstance(renderer(), structlog.dev.ConsoleRenderer)

        configure_logging(json_output=True)
        assert isinstance(renderer(), structlog.processors.JSONRenderer)
    finally:
        configure_logging()


def test_debug_flag_does_not_pick_the_renderer(monkeypatch):
    monkeypatch.setattr(settings, "debug", True)
    monkeypatch.setattr(settings, "log_json", True)
    try:
        configure_logging()
        assert isinstance(renderer(), structlog.processors.JSONRenderer)
    finally:
        monkeypatch.undo()
        configure_logging()
