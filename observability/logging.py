from __future__ import annotations

import json
import logging
import time
from typing import Any, Dict, Optional

LOGGER_NAME = "registry_signer"

_logger = logging.getLogger(LOGGER_NAME)


def build_log_context(**fields: Any) -> Dict[str, Any]:
    """
    Static fields attached to every event emitted by one component.

    None values are dropped so callers can pass optional fields unconditionally.
    """
    return {k: v for k, v in fields.items() if v is not None}


def log_event(
    event: str,
    *,
    ctx: Optional[Dict[str, Any]] = None,
    data: Optional[Dict[str, Any]] = None,
    level: int = logging.INFO,
) -> None:
    """
    Emit one JSON line: {"event", "ts_ms", **ctx, "data"}.

    Never pass secrets (private keys, passphrases) in ctx or data.
    """
    if not _logger.isEnabledFor(level):
        return
    payload: Dict[str, Any] = {"event": event, "ts_ms": int(time.time() * 1000)}
    payload.update(ctx or {})
    if data:
        payload["data"] = data
    _logger.log(level, json.dumps(payload, sort_keys=True, default=str))
