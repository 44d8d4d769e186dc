# pnpgen/config.py
# -*- coding: utf-8 -*-
"""
pnpgen central configuration loader

Features:
- Read YAML/JSON config from multiple locations (explicit path, env override, cwd, user)
- Merge with authoritative DEFAULTS, normalize/coerce types (human sizes to bytes, paths)
- Validate structure and types, warn or error (fatal optional)
- Provide typed access via Config dataclass (get_config(), get_generate_config())
- Thread-safe load/reload with watcher callbacks (used by the logging module)
"""

from __future__ import annotations
import os
import hashlib
import json
import logging
import threading
from pathlib import Path
from copy import deepcopy
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, List, Tuple, Callable, Union

import yaml

from pnpgen.errors import ConfigError

logger = logging.getLogger("pnpgen.config")

# ----------------------------
# DEFAULT configuration (authoritative base)
# ----------------------------
DEFAULTS: Dict[str, Any] = {
    "logging": {
        "level": "INFO",
        "file": None,
        "color": True,
        "max_size": "10M",  # human readable
        "backups": 5,
        "module_levels": {},
        "jsonl": {"enabled": False},
    },
    "generate": {
        "template": None,  # None -> bundled pnp-api.tpl.js
        "output": None,    # None -> stdout
        "marker": "$$SETUP_STATIC_TABLES();",
        "hash_algorithm": "sha1",
        "virtual_prefix": "pnp:",
        "alias_prefix": "pnp-",
        "separator": None,  # None -> os.sep
    },
}

# ----------------------------
# Dataclass to hold config
# ----------------------------
@dataclass
class Config:
    raw: Dict[str, Any] = field(default_factory=dict)     # values loaded from file (if any)
    merged: Dict[str, Any] = field(default_factory=dict)  # merged with DEFAULTS
    path: Optional[Path] = None

    def get(self, path: str, default: Any = None) -> Any:
        """Dot-separated getter for merged config."""
        parts = path.split(".") if path else []
        cur: Any = self.merged
        for p in parts:
            if isinstance(cur, dict) and p in cur:
                cur = cur[p]
            else:
                return default
        return cur

    def as_dict(self) -> Dict[str, Any]:
        return deepcopy(self.merged)

# ----------------------------
# Module state
# ----------------------------
_CONFIG: Optional[Config] = None
_CONFIG_LOCK = threading.RLock()
_WATCH_CALLBACKS: List[Callable[[Config], None]] = []

# ----------------------------
# Utilities
# ----------------------------
def _human_size_to_bytes(val: Union[str, int, None]) -> Optional[int]:
    if val is None:
        return None
    if isinstance(val, int):
        return val
    s = str(val).strip().upper()
    # two-letter suffixes first
    units = [("KB", 1024), ("MB", 1024**2), ("GB", 1024**3), ("K", 1024), ("M", 1024**2), ("G", 1024**3)]
    try:
        for suffix, mul in units:
            if s.endswith(suffix):
                num = float(s[: -len(suffix)].strip())
                return int(num * mul)
        return int(float(s))
    except ValueError:
        logger.warning("config: cannot parse human size '%s'", val)
        return None

def _expand_path(val: Optional[str]) -> Optional[str]:
    if val is None:
        return None
    return os.path.abspath(os.path.expanduser(os.path.expandvars(val)))

def _deep_merge(a: Dict[str, Any], b: Dict[str, Any]) -> Dict[str, Any]:
    res = deepcopy(a)
    for k, v in b.items():
        if k in res and isinstance(res[k], dict) and isinstance(v, dict):
            res[k] = _deep_merge(res[k], v)
        else:
            res[k] = deepcopy(v)
    return res

def _find_candidates(explicit: Optional[str] = None) -> List[Path]:
    candidates: List[Path] = []
    env = os.environ.get("PNPGEN_CONFIG")
    if explicit:
        candidates.append(Path(explicit))
    if env:
        candidates.append(Path(env))
    candidates.extend([
        Path.cwd() / "pnpgen.yaml",
        Path.cwd() / "pnpgen.yml",
        Path.cwd() / "pnpgen.json",
        Path.home() / ".config" / "pnpgen" / "config.yaml",
    ])
    return candidates

def _load_file(path: Path) -> Optional[Dict[str, Any]]:
    if not path.exists():
        return None
    try:
        txt = path.read_text(encoding="utf-8")
    except OSError as e:
        logger.error("config: failed reading %s: %s", path, e, exc_info=True)
        return None

    if path.suffix.lower() == ".json":
        try:
            data = json.loads(txt)
        except ValueError as e:
            logger.error("config: json parse fail %s: %s", path, e)
            return None
    else:
        try:
            data = yaml.safe_load(txt)
        except yaml.YAMLError as e:
            logger.error("config: yaml parse fail %s: %s", path, e)
            return None
    if data is None:
        return {}
    if not isinstance(data, dict):
        logger.error("config: top-level of %s must be a mapping", path)
        return None
    return data

def _normalize_and_coerce(cfg: Dict[str, Any]) -> Dict[str, Any]:
    """Normalize path fields, convert human sizes and coerce basic types."""
    out = deepcopy(cfg)
    path_keys = [
        ("logging", "file"),
        ("generate", "template"),
        ("generate", "output"),
    ]
    for section, key in path_keys:
        ref = out.get(section)
        if isinstance(ref, dict) and isinstance(ref.get(key), str) and ref[key]:
            ref[key] = _expand_path(ref[key])

    log_cfg = out.get("logging")
    jsonl = log_cfg.get("jsonl") if isinstance(log_cfg, dict) else None
    if isinstance(jsonl, dict) and isinstance(jsonl.get("path"), str):
        jsonl["path"] = _expand_path(jsonl["path"])

    # Convert human sizes
    if isinstance(out.get("logging"), dict) and "max_size" in out["logging"]:
        ms = _human_size_to_bytes(out["logging"]["max_size"])
        if ms is not None:
            out["logging"]["max_size_bytes"] = ms

    try:
        if isinstance(out.get("logging"), dict):
            out["logging"]["backups"] = int(out["logging"].get("backups", 5))
    except (TypeError, ValueError):
        logger.debug("config: failed to coerce logging.backups", exc_info=True)

    return out

def _validate_structure(cfg: Dict[str, Any]) -> Tuple[bool, List[str]]:
    """Return (ok, issues_list). Non-fatal warnings unless called with fatal=True in load."""
    warnings: List[str] = []
    for k in cfg.keys():
        if k not in DEFAULTS:
            warnings.append(f"Unknown top-level config key: {k}")
    gen = cfg.get("generate", {})
    if not isinstance(gen, dict):
        warnings.append("generate must be a mapping")
        gen = {}
    for k in gen.keys():
        if k not in DEFAULTS["generate"]:
            warnings.append(f"Unknown generate key: {k}")
    marker = gen.get("marker")
    if not isinstance(marker, str) or not marker:
        warnings.append("generate.marker must be a non-empty string")
    algo = gen.get("hash_algorithm")
    if not isinstance(algo, str) or algo.lower() not in _hash_algorithms():
        warnings.append(f"generate.hash_algorithm {algo!r} is not supported by hashlib")
    for k in ("virtual_prefix", "alias_prefix"):
        if not isinstance(gen.get(k), str):
            warnings.append(f"generate.{k} must be a string")
    sep = gen.get("separator")
    if sep is not None and sep not in ("/", "\\"):
        warnings.append("generate.separator must be '/' or '\\\\'")
    log = cfg.get("logging", {})
    if isinstance(log, dict):
        lvl = log.get("level", "INFO")
        if not isinstance(lvl, str) or not isinstance(logging.getLevelName(lvl.upper()), int):
            warnings.append(f"logging.level {lvl!r} is not a logging level")
        if log.get("module_levels") is not None and not isinstance(log.get("module_levels"), dict):
            warnings.append("logging.module_levels should be a mapping")
    else:
        warnings.append("logging must be a mapping")
    return (len(warnings) == 0, warnings)

def _hash_algorithms() -> List[str]:
    return sorted(a.lower() for a in hashlib.algorithms_available)

# ----------------------------
# Loading / reloading
# ----------------------------
def _find_path(explicit: Optional[str] = None) -> Optional[Path]:
    for p in _find_candidates(explicit):
        if p and p.exists():
            return p
    return None

def load(explicit_path: Optional[str] = None, fatal: bool = False) -> Config:
    """
    Load and merge config. If fatal=True then structural validation failures raise.
    Returns Config object.
    """
    global _CONFIG
    with _CONFIG_LOCK:
        if explicit_path and fatal and not Path(explicit_path).exists():
            raise ConfigError(f"config: {explicit_path} does not exist")
        cfg_path = _find_path(explicit_path)
        raw: Dict[str, Any] = {}
        if cfg_path:
            data = _load_file(cfg_path)
            if data is None:
                msg = f"config: file found but could not be parsed: {cfg_path}"
                if fatal:
                    raise ConfigError(msg)
                logger.warning(msg)
            else:
                raw = data
        merged = _deep_merge(DEFAULTS, raw)
        normalized = _normalize_and_coerce(merged)
        ok, issues = _validate_structure(normalized)
        if not ok:
            msg = f"config: validation issues: {issues}"
            if fatal:
                logger.error(msg)
                raise ConfigError(msg)
            logger.warning(msg)
        cfg_obj = Config(raw=raw, merged=normalized, path=cfg_path)
        _CONFIG = cfg_obj
        logger.debug("config: loaded merged config (from=%s)", str(cfg_path) if cfg_path else "<defaults>")
        return cfg_obj

def get_config() -> Config:
    global _CONFIG
    with _CONFIG_LOCK:
        if _CONFIG is None:
            _CONFIG = load()
        return _CONFIG

def reload(explicit_path: Optional[str] = None, fatal: bool = False) -> Config:
    cfg = load(explicit_path, fatal=fatal)
    _notify_watchers(cfg)
    return cfg

# ----------------------------
# Watcher API
# ----------------------------
def register_watch_callback(cb: Callable[[Config], None]) -> None:
    with _CONFIG_LOCK:
        if cb not in _WATCH_CALLBACKS:
            _WATCH_CALLBACKS.append(cb)

def unregister_watch_callback(cb: Callable[[Config], None]) -> None:
    with _CONFIG_LOCK:
        if cb in _WATCH_CALLBACKS:
            _WATCH_CALLBACKS.remove(cb)

def _notify_watchers(cfg: Config) -> None:
    with _CONFIG_LOCK:
        cbs = list(_WATCH_CALLBACKS)
    for cb in cbs:
        try:
            cb(cfg)
        except Exception:
            logger.exception("config: watcher callback error")

# ----------------------------
# Convenience helpers for modules
# ----------------------------
def get_generate_config() -> Dict[str, Any]:
    return deepcopy(get_config().merged.get("generate", {}))

def get_logging_config() -> Dict[str, Any]:
    return deepcopy(get_config().merged.get("logging", {}))

def validate_config() -> Tuple[bool, List[str]]:
    return _validate_structure(get_config().merged)
