"""Structured, single-line JSON log events.

Every operational event is one JSON object so log shippers can index it
without parsing free text. Never pass secrets as fields.
"""

from __future__ import annotations

import json
import logging
from typing import Any


def log_event(logger: logging.Logger, event: str, *, level: int = logging.INFO, **fields: Any) -> None:
    if not logger.isEnabledFor(level):
        return
    payload = {"event": event, **fields}
    logger.log(level, json.dumps(payload, default=str, sort_keys=False))
