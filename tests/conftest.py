import asyncio
from typing import List, Optional, Tuple, Union

import pytest

from dal.storage_slot_dal import StorageSlotDAL
from models.analysis_record import (
    AnalysisFields,
    AnalysisResult,
    ImagePayload,
    SuggestedProduct,
    Treatment,
    TreatmentKind,
)
from services.history_store import HistoryStore
from utils.database_init import AsyncDatabaseInitializer


def make_fields(disease: str = "Blight", severity_level: int = 3, **overrides) -> AnalysisFields:
    values = dict(
        disease=disease,
        description=f"{disease} description",
        severity_level=severity_level,
        severity_description="Moderate",
        treatments=[],
    )
    values.update(overrides)
    return AnalysisFields(**values)


def make_record(record_id: str, language: str = "en", disease: str = "Blight") -> AnalysisResult:
    return AnalysisResult(
        id=record_id,
        image_url="data:image/png;base64,AAA",
        created_at=record_id,
        disease=disease,
        description=f"{disease} description",
        severity_level=4,
        severity_description="Moderate",
        language=language,
        treatments=[
            Treatment(
                kind=TreatmentKind.CHEMICAL,
                description="Spray fungicide",
                suggested_products=[SuggestedProduct(name="Bravo", active_ingredient="Chlorothalonil")],
            ),
            Treatment(kind=TreatmentKind.BIOLOGICAL, description="Remove infected leaves"),
        ],
    )


class StubDiagnoser:
    """Diagnosis client double returning queued outcomes in order.

    When `gate` is set, each call waits for it before answering.
    """

    def __init__(self, *outcomes: Union[AnalysisFields, Exception]) -> None:
        self.outcomes: List[Union[AnalysisFields, Exception]] = list(outcomes)
        self.calls: List[Tuple[ImagePayload, str]] = []
        self.gate: Optional[asyncio.Event] = None

    async def diagnose(self, image: ImagePayload, target_language: str) -> AnalysisFields:
        self.calls.append((image, target_language))
        if self.gate is not None:
            await self.gate.wait()
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture
def db_initializer(tmp_path):
    return AsyncDatabaseInitializer(tmp_path / "db")


@pytest.fixture
def slot_dal(db_initializer):
    return StorageSlotDAL(db_initializer)


@pytest.fixture
def history_store(slot_dal):
    return HistoryStore(slot_dal)
