import logging

from config import Config, configure_logging


def test_defaults_point_beside_the_modules():
    assert Config.DB_FILE.name
    assert Config.CACHE_FILE != Config.DB_FILE
    assert Config.STORE_TIMEOUT > 0


def test_configure_logging_sets_root_level():
    root = logging.getLogger()
    saved_level, saved_handlers = root.level, root.handlers[:]
    try:
        configure_logging("debug")
        assert root.level == logging.DEBUG
    finally:
        for handler in root.handlers[:]:
            root.removeHandler(handler)
        for handler in saved_handlers:
            root.addHandler(handler)
        root.setLevel(saved_level)
