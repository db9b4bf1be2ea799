"""Logging setup shared by the API, the entrypoint and the link components.

- One idempotent setup (no duplicated handlers when called twice)
- Console handler plus an optional file handler
- Every handler masks room link secrets before anything is written
"""
import hashlib
import logging
import re
from typing import Optional

DEFAULT_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"

_INITIALIZED = False

# push=/audience= query values, wherever they show up in a message
_SECRET_PARAM_RE = re.compile(r"(?i)\b(push|audience)=([^&\s\"'#]+)")


def link_fingerprint(url: str) -> str:
    """Short stable identifier for a link, safe to log."""
    return hashlib.sha256(url.encode("utf-8")).hexdigest()[:8]


def redact(text: str) -> str:
    return _SECRET_PARAM_RE.sub(lambda m: f"{m.group(1)}=***", text)


class SecretRedactionFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        try:
            rendered = record.getMessage()
        except Exception:  # noqa: BLE001
            rendered = str(record.msg)
        cleaned = redact(rendered)
        if cleaned != rendered:
            record.msg = cleaned
            record.args = None
        return True


def setup_logging(log_level: str = "INFO", log_file: Optional[str] = None, force: bool = False) -> None:
    global _INITIALIZED
    if _INITIALIZED and not force:
        return

    root = logging.getLogger()
    if force:
        for h in list(root.handlers):
            root.removeHandler(h)

    handlers = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    for handler in handlers:
        handler.setFormatter(logging.Formatter(DEFAULT_FORMAT))
        root.addHandler(handler)

    # Handlers installed by someone else (uvicorn, pytest) get the filter too
    for handler in root.handlers:
        if not any(isinstance(f, SecretRedactionFilter) for f in handler.filters):
            handler.addFilter(SecretRedactionFilter())

    root.setLevel(getattr(logging, str(log_level).upper(), logging.INFO))
    _INITIALIZED = True


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


__all__ = ["setup_logging", "get_logger", "link_fingerprint", "redact", "SecretRedactionFilter"]
