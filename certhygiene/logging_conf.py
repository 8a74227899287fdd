
import json
import logging
import os
import re
from typing import Any

from .settings import Settings

_SECRET_KV = re.compile(r"(pass(word|phrase|in)?|pwd|secret|token)\s*[=:]\s*([^\s,;]+)", re.IGNORECASE)
_PEM_PRIV = re.compile(
    r"-----BEGIN (?:RSA |EC |DSA |ENCRYPTED )?PRIVATE KEY-----.*?-----END (?:RSA |EC |DSA |ENCRYPTED )?PRIVATE KEY-----",
    re.DOTALL | re.IGNORECASE,
)
_PASS_FLAG = re.compile(r"(?<!\S)(-p|--passphrase|-passin|-passout)(\s+|=)(?!-)(\S+)")


def redact(text: str) -> str:
    text = _PEM_PRIV.sub("[REDACTED-PRIVATE-KEY]", text)
    text = _SECRET_KV.sub(lambda m: f"{m.group(1)}=[REDACTED]", text)
    return _PASS_FLAG.sub(lambda m: f"{m.group(1)}{m.group(2)}[REDACTED]", text)


class _Redact(logging.Filter):
    """Masks secrets in the rendered message, arguments included."""

    def filter(self, record: logging.LogRecord) -> bool:
        try:
            message = record.getMessage()
        except (TypeError, ValueError):
            message = str(record.msg)
        record.msg = redact(message)
        record.args = None
        return True


class _JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def setup_logging(settings: Settings, json_mode: bool | None = None) -> None:
    root = logging.getLogger()
    if getattr(root, "_certhygiene_configured", False):
        return

    level = getattr(logging, settings.LOG_LEVEL, logging.INFO)
    root.setLevel(level)

    if json_mode is None:
        json_mode = os.getenv("CERTHYGIENE_LOG_JSON", "false").lower() in ("1", "true", "yes")

    # stderr keeps the report on stdout clean
    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.addFilter(_Redact())
    handler.setFormatter(_JsonFormatter() if json_mode else logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    root.addHandler(handler)

    setattr(root, "_certhygiene_configured", True)
