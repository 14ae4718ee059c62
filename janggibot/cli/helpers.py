"""Helper functions used by CLI commands."""

from __future__ import annotations

import importlib
import json
import logging
from typing import Any

from janggibot.cli.options import LogFormat

logger = logging.getLogger(__name__)


class _JSONLogFormatter(logging.Formatter):
    """Compact JSON formatter for machine-readable logs."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        return json.dumps(payload, separators=(",", ":"), ensure_ascii=False)


def _configure_logging(
    level: str = "INFO",
    log_format: str = LogFormat.READABLE.value,
) -> None:
    """Configure process-wide logging."""
    resolved_level = getattr(logging, level.upper(), logging.INFO)
    root = logging.getLogger()
    root.handlers = [h for h in root.handlers if not getattr(h, "_janggibot_handler", False)]

    handler = logging.StreamHandler()
    handler._janggibot_handler = True  # type: ignore[attr-defined]
    if log_format == LogFormat.JSON.value:
        formatter: logging.Formatter = _JSONLogFormatter(datefmt="%Y-%m-%dT%H:%M:%S")
    else:
        formatter = logging.Formatter(
            fmt="%(asctime)s | %(levelname)s | %(message)s",
            datefmt="%H:%M:%S",
        )
    handler.setFormatter(formatter)
    root.addHandler(handler)
    root.setLevel(resolved_level)
    # Pillow logs every plugin import at DEBUG.
    logging.getLogger("PIL").setLevel(logging.WARNING)


def _load_component(spec: str, **kwargs: Any) -> Any:
    """Instantiate a backend given as ``module:Class``.

    Raises:
        ValueError: If ``spec`` is not of the form ``module:Class``.
        ImportError: If the module cannot be imported.
        AttributeError: If the class does not exist in the module.
    """
    module_name, sep, attr = spec.partition(":")
    if not sep or not module_name or not attr:
        raise ValueError(f"Expected 'module:Class', got {spec!r}")
    module = importlib.import_module(module_name)
    factory = getattr(module, attr)
    logger.debug(f"Loaded component {spec}")
    return factory(**kwargs)
