import copy
import os
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml


DEFAULT_CONFIG: dict[str, Any] = {
    "server": {
        "host": "0.0.0.0",
        "user_port": 8081,
        "order_port": 8082,
    },
    "oracle": {
        "mode": "remote",
        "user_service_url": "http://127.0.0.1:8081",
        "timeout_seconds": 2.0,
        "retries": 1,
        "fail_open": False,
    },
    "logging": {
        "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        "user_log": "user.log",
        "order_log": "order.log",
    },
}

ORACLE_MODES = ("remote", "local")


def _deep_merge(base: dict[str, Any], incoming: dict[str, Any]) -> dict[str, Any]:
    for key, value in incoming.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            base[key] = _deep_merge(base[key], value)
        else:
            base[key] = value
    return base


def _config_path() -> Path:
    value = os.environ.get("SHOPREG_CONFIG_FILE")
    if value:
        return Path(value)
    return Path(__file__).resolve().parents[2] / "config.yaml"


def _env_flag(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def _apply_env_overrides(config: dict[str, Any]) -> None:
    if os.environ.get("SHOPREG_HOST"):
        config["server"]["host"] = os.environ["SHOPREG_HOST"]
    if os.environ.get("SHOPREG_USER_PORT"):
        config["server"]["user_port"] = int(os.environ["SHOPREG_USER_PORT"])
    if os.environ.get("SHOPREG_ORDER_PORT"):
        config["server"]["order_port"] = int(os.environ["SHOPREG_ORDER_PORT"])

    if os.environ.get("SHOPREG_ORACLE_MODE"):
        config["oracle"]["mode"] = os.environ["SHOPREG_ORACLE_MODE"]
    if os.environ.get("SHOPREG_USER_SERVICE_URL"):
        config["oracle"]["user_service_url"] = os.environ["SHOPREG_USER_SERVICE_URL"]
    if os.environ.get("SHOPREG_ORACLE_TIMEOUT_SECONDS"):
        config["oracle"]["timeout_seconds"] = float(os.environ["SHOPREG_ORACLE_TIMEOUT_SECONDS"])
    if os.environ.get("SHOPREG_ORACLE_RETRIES"):
        config["oracle"]["retries"] = int(os.environ["SHOPREG_ORACLE_RETRIES"])
    if os.environ.get("SHOPREG_ORACLE_FAIL_OPEN"):
        config["oracle"]["fail_open"] = _env_flag(os.environ["SHOPREG_ORACLE_FAIL_OPEN"])

    # Empty string is a valid override: it disables the file handler.
    if "SHOPREG_USER_LOG" in os.environ:
        config["logging"]["user_log"] = os.environ["SHOPREG_USER_LOG"]
    if "SHOPREG_ORDER_LOG" in os.environ:
        config["logging"]["order_log"] = os.environ["SHOPREG_ORDER_LOG"]


def _validate(config: dict[str, Any]) -> None:
    mode = config["oracle"]["mode"]
    if mode not in ORACLE_MODES:
        raise ValueError(f"Invalid oracle.mode {mode!r}: expected one of {', '.join(ORACLE_MODES)}")
    if float(config["oracle"]["timeout_seconds"]) <= 0:
        raise ValueError("oracle.timeout_seconds must be positive")
    if int(config["oracle"]["retries"]) < 0:
        raise ValueError("oracle.retries must not be negative")


@lru_cache(maxsize=1)
def load_config() -> dict[str, Any]:
    config = copy.deepcopy(DEFAULT_CONFIG)
    path = _config_path()

    if path.exists():
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Invalid YAML root in {path}: expected mapping")
        _deep_merge(config, data)

    _apply_env_overrides(config)
    _validate(config)
    return config


def reload_config() -> dict[str, Any]:
    load_config.cache_clear()
    return load_config()
