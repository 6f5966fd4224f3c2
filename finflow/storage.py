# finflow/storage.py
"""Persistence backends and the best-effort save/load wrappers around them."""
from __future__ import annotations
from pathlib import Path
from typing import Optional, Protocol
import json
import logging

from finflow.config import Settings
from finflow.io import from_dict, to_dict
from finflow.models import FinanceData
from finflow.results import InvalidPayload, StorageError

logger = logging.getLogger(__name__)


class FinanceStore(Protocol):
    def load(self) -> Optional[FinanceData]: ...

    def save(self, data: FinanceData) -> None: ...


class LocalStore:
    """FinanceData kept as a JSON document on local disk."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> Optional[FinanceData]:
        if not self.path.exists():
            return None
        try:
            with self.path.open("r", encoding="utf-8") as handle:
                payload = json.load(handle)
        except (json.JSONDecodeError, OSError) as e:
            raise StorageError(f"Could not read {self.path}: {e}") from e
        try:
            return from_dict(payload)
        except InvalidPayload as e:
            raise StorageError(f"{self.path} holds invalid finance data: {e}") from e

    def save(self, data: FinanceData) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("w", encoding="utf-8") as handle:
                json.dump(to_dict(data), handle, indent=2)
        except OSError as e:
            raise StorageError(f"Failed to save finance data to {self.path}: {e}") from e


def make_store(settings: Settings, client=None) -> FinanceStore:
    if settings.uses_sheets:
        if client is None:
            raise StorageError("Sign in with Google before using the Sheets store")
        from finflow.sheets import SheetsStore

        return SheetsStore(client, settings.spreadsheet_id, settings.collection, settings.document)
    return LocalStore(settings.data_path)


def save_quietly(store: FinanceStore, data: FinanceData) -> bool:
    """Persist ``data``; failures are logged and reported, never raised."""
    try:
        store.save(data)
    except StorageError as e:
        logger.error("Error saving data: %s", e)
        return False
    logger.info("Data successfully saved to %s", type(store).__name__)
    return True


def load_quietly(store: FinanceStore) -> Optional[FinanceData]:
    """Load stored data, or None when nothing is stored or the read fails."""
    try:
        data = store.load()
    except StorageError as e:
        logger.error("Error loading data: %s", e)
        return None
    if data is None:
        logger.warning("No stored finance data found in %s", type(store).__name__)
    return data
