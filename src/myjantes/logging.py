"""Package logging.

Handlers live on the ``myjantes`` logger only; module loggers are its
children and inherit level, format and the secret-masking filter.
"""

import logging
import os
import re
from typing import Union

ROOT_NAME = "myjantes"

_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"

# connect.sid=<value> in cookie strings, "password": "<value>" in payload dumps
_SECRET_RE = re.compile(r"""(connect\.sid=|["']?(?:password|newPassword|currentPassword)["']?\s*[:=]\s*["']?)([^;\s"',}]+)""")


def _coerce_level(value: Union[str, int, None]) -> int:
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip():
        name = value.strip().upper()
        if name == "WARN":
            name = "WARNING"
        level = logging.getLevelName(name)
        if isinstance(level, int):
            return level
    return logging.INFO


class RedactSecrets(logging.Filter):
    """Mask session cookies and passwords before a record is written."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        masked = _SECRET_RE.sub(lambda m: m.group(1) + "***", message)
        if masked != message:
            record.msg = masked
            record.args = None
        return True


def _package_logger() -> logging.Logger:
    root = logging.getLogger(ROOT_NAME)
    if getattr(root, "_myjantes_configured", False):
        return root

    root.setLevel(_coerce_level(os.environ.get("MYJANTES_LOG_LEVEL") or os.environ.get("LOG_LEVEL")))
    formatter = logging.Formatter(fmt=_FORMAT, datefmt=_DATEFMT)
    redact = RedactSecrets()

    # stderr, so JSON printed by the CLI stays alone on stdout
    handlers: list = [logging.StreamHandler()]
    log_file = os.environ.get("LOG_FILE")
    file_error = None
    if log_file:
        try:
            handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
        except OSError as e:
            file_error = e
    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(redact)
        root.addHandler(handler)

    root.propagate = False
    setattr(root, "_myjantes_configured", True)
    if file_error is not None:
        root.warning(f"LOG_FILE {log_file!r} could not be opened ({file_error}); logging to stderr only")
    return root


def get_logger(name: str) -> logging.Logger:
    _package_logger()
    return logging.getLogger(f"{ROOT_NAME}.{name}")


def set_level(level: Union[str, int]) -> None:
    """Change the level of every package logger at once."""
    _package_logger().setLevel(_coerce_level(level))
