import json
import logging
from datetime import datetime, timezone
from typing import Any

_REDACTED_KEYS = {"token", "password", "email", "authorization", "telephone", "adresse", "phone", "address"}


def get_logger(name: str) -> logging.Logger:
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger
    logger.setLevel(logging.INFO)
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    return logger


def log_action(
    logger: logging.Logger,
    module: str,
    action: str,
    outcome: str,
    level: int = logging.INFO,
    **fields: Any,
) -> None:
    payload = {
        "ts": datetime.now(timezone.utc).isoformat(),
        "level": logging.getLevelName(level),
        "module": module,
        "action": action,
        "outcome": outcome,
    }
    payload.update({key: value for key, value in fields.items() if key.lower() not in _REDACTED_KEYS})
    logger.log(level, json.dumps(payload, default=str))
