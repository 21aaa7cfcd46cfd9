from __future__ import annotations

from datetime import date
from pathlib import Path
import os

APP_NAME = "TextileLedger"
HOME_ENV = "TEXTILE_LEDGER_HOME"
DB_FILENAME = "textile_ledger.sqlite"
ENV_FILENAME = "ledger.env"
WORKSPACE_DIRS = ("exports", "log", "secrets")


def workspace_root() -> Path:
    """Folder holding the ledger database, reports, logs and secrets.

    TEXTILE_LEDGER_HOME wins. A source checkout (pyproject.toml next to src/)
    keeps its data in build/workspace; an installed copy uses ~/TextileLedger.
    """
    env = os.getenv(HOME_ENV)
    if env:
        return Path(env).expanduser().resolve()

    repo = project_root()
    if (repo / "pyproject.toml").exists():
        return (repo / "build" / "workspace").resolve()

    return (Path.home() / APP_NAME).resolve()


def _subdir(name: str) -> Path:
    d = workspace_root() / name
    d.mkdir(parents=True, exist_ok=True)
    return d


def ensure_workspace() -> Path:
    """Create the workspace folder structure if missing; return workspace root."""
    for sub in WORKSPACE_DIRS:
        _subdir(sub)
    return workspace_root()


def default_db_path() -> Path:
    root = workspace_root()
    root.mkdir(parents=True, exist_ok=True)
    return root / DB_FILENAME


def exports_dir() -> Path:
    return _subdir("exports")


def log_dir() -> Path:
    return _subdir("log")


def secrets_dir() -> Path:
    return _subdir("secrets")


def env_file_path() -> Path:
    return secrets_dir() / ENV_FILENAME


def daily_log_path(day: date | None = None) -> Path:
    """log/ledger_YYYYMMDD.log for the given (default: current) day."""
    return log_dir() / f"ledger_{(day or date.today()).strftime('%Y%m%d')}.log"


def report_path(day: date | None = None) -> Path:
    """exports/Textile_Ledger_YYYY-MM-DD.pdf for the given (default: current) day."""
    return exports_dir() / f"Textile_Ledger_{(day or date.today()).isoformat()}.pdf"


def project_root() -> Path:
    # .../src/textile_ledger/paths.py -> parents[2] == repo root
    p = Path(__file__).resolve()
    return p.parents[2] if len(p.parents) >= 3 else p.parent
