"""Pretty JSON request/response packet logging and per-service log files."""

import json
import logging
import os


def ensure_file_logger(logger: logging.Logger, log_path: str, log_format: str) -> None:
    """Attach a UTF-8 file handler to ``logger`` once. An empty path disables it."""
    logger.setLevel(logging.INFO)
    if not log_path:
        return
    existing = [
        handler
        for handler in logger.handlers
        if isinstance(handler, logging.FileHandler)
        and getattr(handler, "baseFilename", "") == os.path.abspath(log_path)
    ]
    if existing:
        return

    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setLevel(logging.INFO)
    file_handler.setFormatter(logging.Formatter(log_format))
    logger.addHandler(file_handler)


def _json(payload) -> str:
    return json.dumps(payload, ensure_ascii=False, indent=2, default=str)


def log_request_packet(logger: logging.Logger, route: str, payload) -> None:
    logger.info("%s request packet:\n%s", route, _json(payload))


def log_response_packet(logger: logging.Logger, route: str, payload) -> None:
    logger.info("%s response packet:\n%s", route, _json(payload))
