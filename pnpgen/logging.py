# pnpgen/logging.py
# -*- coding: utf-8 -*-
"""
pnpgen logging

Features:
 - Integration with pnpgen.config (re-applied on config reload)
 - Console color formatter (stderr, so generated artifacts can go to stdout)
 - Rotating file handler
 - JSONL log with one object per record
 - Module-level configurable log levels (module_levels)
 - Thread-safe reconfiguration and per-level metrics
"""

from __future__ import annotations
import sys
import json
import time
import logging
import logging.handlers
import threading
from pathlib import Path
from typing import Dict, Any, Optional, List

from pnpgen.config import get_logging_config, register_watch_callback

# Logger for this module
_logger = logging.getLogger("pnpgen.logging")

# ----------------------
# Color formatter
# ----------------------
class ColorFormatter(logging.Formatter):
    COLORS = {
        logging.DEBUG: "\033[37m",    # light gray
        logging.INFO: "\033[36m",     # cyan
        logging.WARNING: "\033[33m",  # yellow
        logging.ERROR: "\033[31m",    # red
        logging.CRITICAL: "\033[41;37m", # white on red
    }
    RESET = "\033[0m"

    def __init__(self, fmt: Optional[str] = None, datefmt: Optional[str] = None, color: bool = True):
        super().__init__(fmt=fmt, datefmt=datefmt)
        self.color = color

    def format(self, record):
        msg = super().format(record)
        if self.color:
            color = self.COLORS.get(record.levelno, "")
            return f"{color}{msg}{self.RESET}"
        return msg

# ----------------------
# JSONL formatter
# ----------------------
class JSONLineFormatter(logging.Formatter):
    def format(self, record):
        obj = {
            "timestamp": time.time(),
            "level": record.levelname,
            "module": getattr(record, "pnpgen_module", record.name),
            "message": record.getMessage(),
        }
        if record.exc_info:
            obj["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(obj, ensure_ascii=False)

# ----------------------
# Filters
# ----------------------
class ModuleFieldFilter(logging.Filter):
    """Give records from plain loggers a pnpgen_module so formats never fail."""

    def filter(self, record):
        if not hasattr(record, "pnpgen_module"):
            record.pnpgen_module = record.name.rsplit(".", 1)[-1]
        return True

class ModuleLevelFilter(logging.Filter):
    def __init__(self, module_levels: Dict[str, str]):
        super().__init__()
        self.module_levels = {m: getattr(logging, str(lvl).upper(), logging.INFO) for m, lvl in (module_levels or {}).items()}

    def filter(self, record):
        mod = getattr(record, "pnpgen_module", None)
        if mod and mod in self.module_levels:
            return record.levelno >= self.module_levels[mod]
        return True

# ----------------------
# PnpLogger (singleton)
# ----------------------
class PnpLogger:
    _instance = None
    _singleton_lock = threading.Lock()

    def __new__(cls):
        with cls._singleton_lock:
            if cls._instance is None:
                cls._instance = super().__new__(cls)
                cls._instance._inited = False
        return cls._instance

    def __init__(self):
        if self._inited:
            return
        self._lock = threading.RLock()

        self._root = logging.getLogger("pnpgen")
        self._handlers: List[logging.Handler] = []
        self._metrics: Dict[str, int] = {lvl: 0 for lvl in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")}

        self._apply_config(get_logging_config())

        register_watch_callback(lambda new_cfg: self._apply_config(new_cfg.merged.get("logging", {})))

        self._root.addFilter(self._count_levels_filter)
        self._inited = True

    def _count_levels_filter(self, record):
        name = record.levelname
        if name in self._metrics:
            self._metrics[name] += 1
        return True

    # ----------------------
    # Configuration (apply/reload)
    # ----------------------
    def _apply_config(self, cfg: Dict[str, Any]):
        with self._lock:
            for h in list(self._handlers):
                self._root.removeHandler(h)
                h.close()
            self._handlers.clear()

            module_filter = ModuleLevelFilter(cfg.get("module_levels", {}) or {})
            field_filter = ModuleFieldFilter()
            level = getattr(logging, str(cfg.get("level", "INFO")).upper(), logging.INFO)
            fmt = cfg.get("format") or "[%(asctime)s] [%(levelname)s] [%(pnpgen_module)s] %(message)s"
            datefmt = cfg.get("datefmt", "%H:%M:%S")

            def _add(handler: logging.Handler):
                handler.addFilter(field_filter)
                handler.addFilter(module_filter)
                self._root.addHandler(handler)
                self._handlers.append(handler)

            # console handler
            console_cfg = cfg.get("console", {"enabled": True})
            if console_cfg.get("enabled", True):
                ch = logging.StreamHandler(sys.stderr)
                ch.setLevel(level)
                ch.setFormatter(ColorFormatter(fmt, datefmt=datefmt, color=bool(cfg.get("color", True))))
                _add(ch)

            # rotating file handler
            if cfg.get("file"):
                try:
                    file_path = Path(cfg["file"]).expanduser()
                    file_path.parent.mkdir(parents=True, exist_ok=True)
                    max_bytes = cfg.get("max_size_bytes") or 10 * 1024 * 1024
                    fh = logging.handlers.RotatingFileHandler(str(file_path), maxBytes=max_bytes, backupCount=int(cfg.get("backups", 5)), encoding="utf-8")
                    fh.setLevel(getattr(logging, str(cfg.get("file_level", "DEBUG")).upper(), logging.DEBUG))
                    fh.setFormatter(logging.Formatter(fmt, datefmt=datefmt))
                    _add(fh)
                except OSError:
                    _logger.exception("logging: failed to configure file handler")

            # jsonl log
            jsonl_cfg = cfg.get("jsonl", {}) or {}
            if jsonl_cfg.get("enabled"):
                try:
                    path = Path(jsonl_cfg.get("path", "pnpgen.log.jsonl")).expanduser()
                    path.parent.mkdir(parents=True, exist_ok=True)
                    jh = logging.FileHandler(str(path), encoding="utf-8")
                    jh.setLevel(getattr(logging, str(jsonl_cfg.get("level", "INFO")).upper(), logging.INFO))
                    jh.setFormatter(JSONLineFormatter())
                    _add(jh)
                except OSError:
                    _logger.exception("logging: failed to configure jsonl handler")

            # file handler has its own (lower) level
            self._root.setLevel(logging.DEBUG if cfg.get("file") else level)

    def reload_config(self):
        """Re-apply the logging section of the current config."""
        self._apply_config(get_logging_config())
        self._root.debug("logging: reloaded configuration")

    def set_level(self, level: int):
        with self._lock:
            self._root.setLevel(level)
            for h in self._handlers:
                if isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler):
                    h.setLevel(level)

    # ----------------------
    # Public API
    # ----------------------
    def get_logger(self, module_name: str) -> logging.LoggerAdapter:
        """Return a LoggerAdapter that injects 'pnpgen_module' into records."""
        return logging.LoggerAdapter(self._root, {"pnpgen_module": module_name})

    def get_metrics(self) -> Dict[str, int]:
        with self._lock:
            return dict(self._metrics)

# ----------------------
# Public factory
# ----------------------
_GLOBAL_LOGGER = PnpLogger()

def get_logger(module: str) -> logging.LoggerAdapter:
    return _GLOBAL_LOGGER.get_logger(module)

def set_level(level: int):
    return _GLOBAL_LOGGER.set_level(level)

def reload_config():
    return _GLOBAL_LOGGER.reload_config()

def get_metrics() -> Dict[str, int]:
    return _GLOBAL_LOGGER.get_metrics()
