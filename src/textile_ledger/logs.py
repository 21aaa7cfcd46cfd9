from __future__ import annotations

import logging
from pathlib import Path

from textile_ledger.paths import daily_log_path

_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"


def suppress_noisy_loggers() -> None:
    """Keep HTTP client chatter out of the ledger log."""
    for name in ("httpx", "httpcore", "urllib3", "google_genai", "google.genai"):
        logger = logging.getLogger(name)
        logger.setLevel(logging.WARNING)


def setup_logging(level: str = "INFO") -> Path:
    """Attach a daily file handler under <workspace>/log and return its path.

    Safe to call more than once; the handler is only added the first time.
    """
    log_path = daily_log_path()

    root = logging.getLogger("textile_ledger")
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    for h in root.handlers:
        if isinstance(h, logging.FileHandler) and Path(h.baseFilename) == log_path:
            break
    else:
        fh = logging.FileHandler(log_path, encoding="utf-8")
        fh.setFormatter(logging.Formatter(_FORMAT, _DATEFMT))
        root.addHandler(fh)

    suppress_noisy_loggers()
    return log_path
