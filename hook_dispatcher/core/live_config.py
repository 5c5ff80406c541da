"""Live access to the rate ceiling.

The rate ceiling is the only setting operators may change without restarting
the process. It is re-read from the config file whenever the file's mtime
changes; when no file is in use the startup value stays in force.
"""

from __future__ import annotations

import logging
import os
import threading
from pathlib import Path

from dotenv import dotenv_values

from hook_dispatcher.core.errors import CONFIG_READ_ERROR, ConfigReadAppError

logger = logging.getLogger(__name__)

RATE_CEILING_KEY = "DISPATCHER_CONCURRENT_SIZE"


class LiveRateCeiling:
    """Reloading reader for ``DISPATCHER_CONCURRENT_SIZE``.

    Unlike the startup check, a reloaded ceiling may be zero or negative,
    which disables throttling.
    """

    def __init__(self, initial: int, config_file: str | Path | None = None) -> None:
        self._initial = initial
        self._value = initial
        self._path = Path(config_file) if config_file else None
        self._mtime_ns: int | None = None
        self._lock = threading.Lock()

    def get_rate_ceiling(self) -> int:
        """Return the current rate ceiling.

        Returns:
            The most recently loaded ceiling.

        Raises:
            ConfigReadAppError: If the config file cannot be read or the value
                is not an integer.
        """
        if self._path is None:
            return self._value

        with self._lock:
            try:
                mtime_ns = os.stat(self._path).st_mtime_ns
            except FileNotFoundError:
                # File removed after startup: keep serving the startup value
                return self._initial
            except OSError as exc:
                raise ConfigReadAppError(
                    code=CONFIG_READ_ERROR,
                    message=f"Cannot stat config file: {exc}",
                    details={"config_file": str(self._path)},
                ) from exc

            if mtime_ns != self._mtime_ns:
                self._value = self._load()
                self._mtime_ns = mtime_ns
                logger.debug(
                    "config.rate_ceiling_loaded",
                    extra={"ceiling": self._value, "config_file": str(self._path)},
                )

            return self._value

    def _load(self) -> int:
        try:
            values = dotenv_values(self._path)
        except (OSError, UnicodeDecodeError) as exc:
            raise ConfigReadAppError(
                code=CONFIG_READ_ERROR,
                message=f"Cannot read config file: {exc}",
                details={"config_file": str(self._path)},
            ) from exc

        raw = None
        for key, value in values.items():
            if key.upper() == RATE_CEILING_KEY:
                raw = value

        if raw is None or not raw.strip():
            return self._initial

        try:
            return int(raw.strip())
        except ValueError as exc:
            raise ConfigReadAppError(
                code=CONFIG_READ_ERROR,
                message=f"{RATE_CEILING_KEY} is not an integer: {raw!r}",
                details={"config_file": str(self._path)},
            ) from exc
