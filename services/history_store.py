"""Durable history of past analyses, kept as one JSON document in a storage slot.

Loading and saving never raise: a missing or corrupt slot loads as an empty
history, and a failed write is logged and remembered in `last_error` so the
caller keeps working with its in-memory history.
"""

from __future__ import annotations

import json
import logging
from typing import List, Optional

from dal.storage_slot_dal import StorageSlotDAL
from models.analysis_record import AnalysisResult
from models.errors import StorageError

LOGGER = logging.getLogger(__name__)
HISTORY_SLOT = "plantAnalyses"


class HistoryStore:
    """Load and save the ordered (newest first) analysis history."""

    def __init__(self, dal: StorageSlotDAL, slot_name: str = HISTORY_SLOT) -> None:
        self._dal = dal
        self.slot_name = slot_name
        self.last_error: Optional[StorageError] = None

    async def load(self) -> List[AnalysisResult]:
        """Return the stored history, or an empty list if it is missing or unreadable."""
        try:
            raw = await self._dal.read_slot(self.slot_name)
        except Exception as exc:
            self._record_error(f"Failed to read history slot '{self.slot_name}': {exc}", level=logging.WARNING)
            return []

        if raw is None:
            LOGGER.warning("No stored history in slot '%s'; starting empty.", self.slot_name)
            return []

        try:
            items = json.loads(raw)
            if not isinstance(items, list):
                raise ValueError(f"expected a JSON array, got {type(items).__name__}")
            history = [AnalysisResult.from_dict(item) for item in items]
        except (ValueError, KeyError, TypeError, AttributeError, OverflowError, RecursionError) as exc:
            self._record_error(f"Stored history is corrupt and was ignored: {exc}", level=logging.WARNING)
            return []

        ids = [record.id for record in history]
        if len(ids) != len(set(ids)):
            LOGGER.warning("Stored history contains duplicate ids; keeping the newest of each.")
            history = _drop_duplicate_ids(history)

        self.last_error = None
        LOGGER.info("Loaded %s analyses from slot '%s'.", len(history), self.slot_name)
        return history

    async def save(self, history: List[AnalysisResult]) -> bool:
        """Persist the whole history. Returns False, without raising, on failure."""
        try:
            payload = json.dumps([record.to_dict() for record in history])
            await self._dal.write_slot(self.slot_name, payload)
        except Exception as exc:
            self._record_error(f"Failed to save history to slot '{self.slot_name}': {exc}")
            return False
        self.last_error = None
        return True

    def _record_error(self, message: str, level: int = logging.ERROR) -> None:
        LOGGER.log(level, message)
        self.last_error = StorageError(message)


def _drop_duplicate_ids(history: List[AnalysisResult]) -> List[AnalysisResult]:
    seen = set()
    unique: List[AnalysisResult] = []
    for record in history:
        if record.id in seen:
            continue
        seen.add(record.id)
        unique.append(record)
    return unique
