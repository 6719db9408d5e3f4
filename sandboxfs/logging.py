# sandboxfs/logging.py
import logging
import os
from typing import Any, Dict, Optional

PAYLOAD_KEYS = {"data", "content", "search_and_replace"}  # file contents never hit the logs
MAX_VALUE_CHARS = 200


def configure_logging(level: Optional[str] = None):
    logging.basicConfig(
        level=(level or os.getenv("LOG_LEVEL", "INFO")).upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def summarize_value(value: Any) -> Any:
    if isinstance(value, (bytes, str)) and len(value) > MAX_VALUE_CHARS:
        return f"<{len(value)} chars>" if isinstance(value, str) else f"<{len(value)} bytes>"
    return value


def summarize_args(args: Dict[str, Any]) -> Dict[str, Any]:
    safe: Dict[str, Any] = {}
    for k, v in args.items():
        if k in PAYLOAD_KEYS and v is not None:
            safe[k] = f"<{len(v)} {'items' if isinstance(v, dict) else 'chars'}>"
        elif isinstance(v, int) and not isinstance(v, bool) and k == "mode":
            safe[k] = oct(v)
        else:
            safe[k] = summarize_value(v)
    return safe


def log_tool_call(logger: logging.Logger, name: str, args: Dict[str, Any]):
    logger.info("tool_call %s %s", name, summarize_args(args))
