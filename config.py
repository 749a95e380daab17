"""
config.py
Runtime settings (environment overrides) and logging setup.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

basedir = Path(__file__).resolve().parent


class Config:
    DB_FILE = Path(os.environ.get("GYM_DB_FILE") or basedir / "gym.db")
    CACHE_FILE = Path(os.environ.get("GYM_CACHE_FILE") or basedir / "gym_cache.db")

    ROLL_PREFIX = os.environ.get("GYM_ROLL_PREFIX") or "GYM"
    ROLL_FLOOR = int(os.environ.get("GYM_ROLL_FLOOR") or 0)

    # Seconds to wait on a busy store before treating it as unreachable
    STORE_TIMEOUT = float(os.environ.get("GYM_STORE_TIMEOUT") or 5.0)

    LOG_LEVEL = os.environ.get("GYM_LOG_LEVEL") or "INFO"


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(
        level=(level or Config.LOG_LEVEL).upper(),
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
        force=True,
    )
