# finflow/config.py
"""Runtime settings, read from the environment and Streamlit-style secrets."""
from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional
import logging
import os

from finflow.constants import DEFAULT_COLLECTION, DEFAULT_DATA_FILE, DEFAULT_DOCUMENT

_PROJECT_ROOT = Path(__file__).resolve().parent.parent

STORAGE_LOCAL = "local"
STORAGE_SHEETS = "sheets"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass(frozen=True)
class Settings:
    storage: str = STORAGE_LOCAL
    data_dir: Path = _PROJECT_ROOT / "data"
    data_file: str = DEFAULT_DATA_FILE
    spreadsheet_id: Optional[str] = None
    collection: str = DEFAULT_COLLECTION
    document: str = DEFAULT_DOCUMENT
    log_level: str = "INFO"

    @property
    def data_path(self) -> Path:
        return self.data_dir / self.data_file

    @property
    def uses_sheets(self) -> bool:
        return self.storage == STORAGE_SHEETS


def _secret(secrets: Optional[Mapping[str, Any]], section: str, key: str) -> Optional[str]:
    if not secrets:
        return None
    try:
        value = secrets[section][key]
    except (KeyError, TypeError):
        return None
    return str(value).strip() or None


def load_settings(
    secrets: Optional[Mapping[str, Any]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    env = os.environ if environ is None else environ

    storage = (env.get("FINFLOW_STORAGE") or STORAGE_LOCAL).strip().lower()
    if storage not in (STORAGE_LOCAL, STORAGE_SHEETS):
        raise ValueError(f"FINFLOW_STORAGE must be '{STORAGE_LOCAL}' or '{STORAGE_SHEETS}', got {storage!r}")

    return Settings(
        storage=storage,
        data_dir=Path(env.get("FINFLOW_DATA_DIR") or _PROJECT_ROOT / "data"),
        data_file=env.get("FINFLOW_DATA_FILE") or DEFAULT_DATA_FILE,
        spreadsheet_id=_secret(secrets, "sheets", "spreadsheet_id") or env.get("FINFLOW_SPREADSHEET_ID") or None,
        collection=env.get("FINFLOW_COLLECTION") or DEFAULT_COLLECTION,
        document=env.get("FINFLOW_DOCUMENT") or DEFAULT_DOCUMENT,
        log_level=(env.get("FINFLOW_LOG_LEVEL") or "INFO").upper(),
    )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
