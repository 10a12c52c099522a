"""Analysis lifecycle: new analyses, viewing history, and retranslation.

The controller is the only writer of the analysis state. It runs on a single
event loop; `is_busy` is checked and set without an await in between, so two
requests can never have a diagnosis in flight at the same time.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Protocol

from models.analysis_record import AnalysisFields, AnalysisResult, ImagePayload
from models.errors import DiagnosisError, ParseError
from services.history_store import HistoryStore
from utils.languages import normalize_language, text_direction
from utils.media_validation import parse_image_data_url

LOGGER = logging.getLogger(__name__)

UNKNOWN_ANALYSIS_ERROR = "An unknown error occurred during analysis."
UNKNOWN_TRANSLATION_ERROR = "An unknown error occurred during translation."


class Diagnoser(Protocol):
    async def diagnose(self, image: ImagePayload, target_language: str) -> AnalysisFields: ...


@dataclass
class AnalysisContext:
    """Process-wide state shared with the controller: history and display language."""

    display_language: str
    history: List[AnalysisResult] = field(default_factory=list)


class AnalysisController:
    """Coordinate the diagnosis client, the history store, and the displayed state."""

    def __init__(self, diagnoser: Diagnoser, history_store: HistoryStore, context: AnalysisContext) -> None:
        self._diagnoser = diagnoser
        self._store = history_store
        self._context = context
        self._pending_image: Optional[ImagePayload] = None
        self._current_result: Optional[AnalysisResult] = None
        self._is_busy = False
        self._last_error: Optional[str] = None
        # Bumped whenever the displayed state moves on; results from older generations are stale.
        self._generation = 0

    @property
    def pending_image(self) -> Optional[ImagePayload]:
        return self._pending_image

    @property
    def current_result(self) -> Optional[AnalysisResult]:
        return self._current_result

    @property
    def is_busy(self) -> bool:
        return self._is_busy

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    @property
    def history(self) -> List[AnalysisResult]:
        """A copy of the history, newest first."""
        return list(self._context.history)

    @property
    def display_language(self) -> str:
        return self._context.display_language

    def find_record(self, record_id: str) -> AnalysisResult:
        """Return the history record with `record_id`, or raise KeyError."""
        for record in self._context.history:
            if record.id == record_id:
                return record
        raise KeyError(f"Analysis {record_id} not found")

    def select_image(self, image: ImagePayload) -> None:
        """Make `image` the pending image and drop the displayed result."""
        self._pending_image = image
        self._current_result = None
        self._last_error = None
        self._generation += 1

    def clear(self) -> None:
        """Drop the pending image, the displayed result, and any error. History is untouched."""
        self._pending_image = None
        self._current_result = None
        self._last_error = None
        self._generation += 1

    async def select_from_history(self, record_id: str) -> AnalysisResult:
        """Display a stored analysis, retranslating it if its language is stale."""
        record = self.find_record(record_id)
        self._current_result = record
        self._pending_image = None
        self._last_error = None
        self._generation += 1
        await self.reconcile_language()
        return record

    async def set_display_language(self, language: str) -> str:
        """Switch the display language and retranslate the displayed analysis if needed.

        Raises:
            ValueError: If the language is not supported.
        """
        code = normalize_language(language)
        if code != self._context.display_language:
            LOGGER.info("Display language changed from '%s' to '%s'", self._context.display_language, code)
            self._context.display_language = code
        await self.reconcile_language()
        return code

    async def run_analysis(self) -> Optional[AnalysisResult]:
        """Diagnose the pending image and record the result at the front of history.

        Returns the new record, or None when nothing ran (no pending image or
        already busy), the diagnosis failed, or the result went stale.
        """
        image = self._pending_image
        if image is None or self._is_busy:
            return None

        language = self._context.display_language
        generation = self._generation
        self._is_busy = True
        self._last_error = None
        self._current_result = None
        record: Optional[AnalysisResult] = None
        try:
            fields = await self._diagnoser.diagnose(image, language)
            record = AnalysisResult.create(self._next_record_id(), image, fields, language)
            self._context.history.insert(0, record)
            if generation == self._generation:
                self._current_result = record
            else:
                LOGGER.info("Analysis %s finished after the selection changed; kept in history only.", record.id)
            await self._store.save(self._context.history)
        except Exception as exc:
            self._report_failure(exc, generation, UNKNOWN_ANALYSIS_ERROR)
        finally:
            self._is_busy = False

        await self.reconcile_language()
        return record if record is not None and record is self._current_result else None

    async def reconcile_language(self) -> bool:
        """Retranslate the displayed analysis into the display language.

        Skipped when nothing is displayed, a diagnosis is in flight, the
        analysis is already in the display language, or a new image is waiting
        to be analyzed. Returns True if a translation was applied.
        """
        record = self._current_result
        language = self._context.display_language
        if record is None or self._is_busy or record.language == language or self._pending_image is not None:
            return False

        generation = self._generation
        self._is_busy = True
        self._last_error = None
        applied = False
        try:
            image = parse_image_data_url(record.image_url)
            fields = await self._diagnoser.diagnose(image, language)
            # The record object is shared with history, so this updates both in place.
            record.apply_translation(fields, language)
            applied = True
            await self._store.save(self._context.history)
        except Exception as exc:
            self._report_failure(exc, generation, UNKNOWN_TRANSLATION_ERROR)
        finally:
            self._is_busy = False

        if applied or generation != self._generation:
            # The language or the selection may have moved on while translating.
            await self.reconcile_language()
        return applied

    def snapshot(self) -> Dict[str, Any]:
        """Return the full displayed state for the presentation layer."""
        pending = self._pending_image
        current = self._current_result
        return {
            "pendingImage": (
                {"mimeType": pending.mime_type, "dataUrl": pending.data_url} if pending is not None else None
            ),
            "currentResult": current.to_dict() if current is not None else None,
            "isBusy": self._is_busy,
            "lastError": self._last_error,
            "displayLanguage": self._context.display_language,
            "textDirection": text_direction(self._context.display_language),
            "historyCount": len(self._context.history),
        }

    def _report_failure(self, exc: Exception, generation: int, fallback: str) -> None:
        if isinstance(exc, (DiagnosisError, ParseError)):
            LOGGER.warning("Diagnosis failed: %s", exc)
        else:
            LOGGER.exception("Unexpected error while diagnosing")
        if generation != self._generation:
            LOGGER.info("Dropping error from a stale request: %s", exc)
            return
        self._last_error = str(exc) or fallback

    def _next_record_id(self) -> str:
        """Return a timestamp-derived id that no record in history already uses."""
        taken = {record.id for record in self._context.history}
        moment = datetime.now(timezone.utc)
        record_id = moment.isoformat(timespec="microseconds")
        while record_id in taken:
            moment += timedelta(microseconds=1)
            record_id = moment.isoformat(timespec="microseconds")
        return record_id
