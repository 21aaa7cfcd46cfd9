from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from textile_ledger.paths import env_file_path

DEFAULT_MODEL = "gemini-3-flash-preview"
DEFAULT_TEMPERATURE = 0.7


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass
class Settings:
    api_key: Optional[str]
    model: str = DEFAULT_MODEL
    temperature: float = DEFAULT_TEMPERATURE
    log_level: str = "INFO"

    @classmethod
    def load(cls, env_file: Optional[Path] = None) -> "Settings":
        """Read secrets/ledger.env (if present) and then the environment.

        Real environment variables win over the file.
        """
        path = env_file or env_file_path()
        if path.exists():
            load_dotenv(path, override=False)

        api_key = (
            os.getenv("GEMINI_API_KEY")
            or os.getenv("GOOGLE_API_KEY")
            or os.getenv("API_KEY")
            or None
        )
        return cls(
            api_key=api_key,
            model=os.getenv("TEXTILE_LEDGER_MODEL") or DEFAULT_MODEL,
            temperature=_float_env("TEXTILE_LEDGER_TEMPERATURE", DEFAULT_TEMPERATURE),
            log_level=(os.getenv("TEXTILE_LEDGER_LOG_LEVEL") or "INFO").upper(),
        )
