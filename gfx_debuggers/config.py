"""
Settings and logging setup for the injector.
"""
from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, Mapping, Optional

CONFIG_ENV = "GFX_DEBUGGERS_CONFIG"
DEBUGGER_ENV = "GFX_DEBUGGER"
CONFIG_FILENAME = "gfx_debuggers.json"

LOGGER_NAME = "gfx_debuggers"
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"

DEFAULT_CONFIG: Dict[str, Any] = {
    "debugger": None,
    "ngfx_path": None,
    "renderdoc_path": None,
    "gpu_trace_frame_limit": 5,
    "start_after_hotkey": True,
    "log_level": "INFO",
    "log_path": None,
}

LOGGER = logging.getLogger(__name__)


def load_config(path: Optional[str] = None, environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    """Merge the JSON settings file and environment overrides over the defaults."""
    environ = os.environ if environ is None else environ
    config_path = path or environ.get(CONFIG_ENV) or CONFIG_FILENAME
    data = dict(DEFAULT_CONFIG)
    if os.path.exists(config_path):
        try:
            with open(config_path, "r", encoding="utf-8") as handle:
                loaded = json.load(handle)
        except (OSError, ValueError) as exc:
            LOGGER.error("Failed to read %s: %s", config_path, exc)
        else:
            if isinstance(loaded, dict):
                data.update({key: value for key, value in loaded.items() if key in DEFAULT_CONFIG})
            else:
                LOGGER.error("Ignoring %s: expected a JSON object.", config_path)

    if environ.get(DEBUGGER_ENV):
        data["debugger"] = environ[DEBUGGER_ENV]
    try:
        data["gpu_trace_frame_limit"] = max(1, int(data["gpu_trace_frame_limit"]))
    except (TypeError, ValueError):
        LOGGER.warning("Invalid gpu_trace_frame_limit %r; using default.", data["gpu_trace_frame_limit"])
        data["gpu_trace_frame_limit"] = DEFAULT_CONFIG["gpu_trace_frame_limit"]
    return data


def configure_logging(level: str = "INFO", log_path: Optional[str] = None) -> logging.Logger:
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, str(level).upper(), logging.INFO))
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    handler: logging.Handler
    if log_path:
        os.makedirs(os.path.dirname(log_path) or ".", exist_ok=True)
        handler = logging.FileHandler(log_path, encoding="utf-8")
    else:
        handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    return logger
