"""Domain models for plant leaf diagnoses and their persisted history."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class TreatmentKind(str, Enum):
    """Category of a suggested remedy."""

    CHEMICAL = "Chemical"
    BIOLOGICAL = "Biological"


@dataclass(frozen=True)
class ImagePayload:
    """An image as an opaque base64 payload plus its mime type."""

    mime_type: str
    base64: str

    @property
    def data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.base64}"


@dataclass
class SuggestedProduct:
    name: str
    active_ingredient: str

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "activeIngredient": self.active_ingredient}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SuggestedProduct":
        _require_mapping(data, "suggested product")
        return cls(name=data["name"], active_ingredient=data["activeIngredient"])


@dataclass
class Treatment:
    """One remedy option returned with a diagnosis."""

    kind: TreatmentKind
    description: str
    suggested_products: Optional[List[SuggestedProduct]] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"type": self.kind.value, "description": self.description}
        if self.suggested_products is not None:
            data["suggestedProducts"] = [product.to_dict() for product in self.suggested_products]
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Treatment":
        _require_mapping(data, "treatment")
        products = data.get("suggestedProducts")
        if products is not None and not isinstance(products, list):
            raise ValueError(f"suggestedProducts must be a list, got {type(products).__name__}")
        return cls(
            kind=TreatmentKind(data["type"]),
            description=data["description"],
            suggested_products=(
                [SuggestedProduct.from_dict(p) for p in products] if products is not None else None
            ),
        )


@dataclass
class AnalysisFields:
    """Diagnostic fields produced by the diagnosis service in one language."""

    disease: str
    description: str
    severity_level: int
    severity_description: str
    treatments: List[Treatment] = field(default_factory=list)


@dataclass
class AnalysisResult:
    """A completed diagnosis as kept in history.

    Attributes:
        id: Timestamp-derived identifier, unique within history.
        image_url: The diagnosed image as a ``data:`` URL.
        created_at: ISO-8601 creation timestamp.
        disease: Name of the diagnosed disease.
        description: Free-text explanation of the diagnosis.
        severity_level: Integer severity from 1 (mild) to 10 (critical).
        severity_description: Text qualifying the severity.
        treatments: Ordered remedy options.
        language: Language code the text fields are expressed in.
    """

    id: str
    image_url: str
    created_at: str
    disease: str
    description: str
    severity_level: int
    severity_description: str
    language: str
    treatments: List[Treatment] = field(default_factory=list)

    @classmethod
    def create(
        cls, record_id: str, image: ImagePayload, fields: AnalysisFields, language: str
    ) -> "AnalysisResult":
        return cls(
            id=record_id,
            image_url=image.data_url,
            created_at=record_id,
            disease=fields.disease,
            description=fields.description,
            severity_level=fields.severity_level,
            severity_description=fields.severity_description,
            language=language,
            treatments=list(fields.treatments),
        )

    def apply_translation(self, fields: AnalysisFields, language: str) -> None:
        """Replace the translated text fields and language in place."""
        self.disease = fields.disease
        self.description = fields.description
        self.severity_level = fields.severity_level
        self.severity_description = fields.severity_description
        self.treatments = list(fields.treatments)
        self.language = language

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "imageUrl": self.image_url,
            "timestamp": self.created_at,
            "disease": self.disease,
            "description": self.description,
            "treatments": [treatment.to_dict() for treatment in self.treatments],
            "severityLevel": self.severity_level,
            "severityDescription": self.severity_description,
            "language": self.language,
        }

    def summary(self) -> Dict[str, Any]:
        """Return the lightweight fields a history listing needs."""
        return {
            "id": self.id,
            "timestamp": self.created_at,
            "disease": self.disease,
            "severityLevel": self.severity_level,
            "language": self.language,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AnalysisResult":
        _require_mapping(data, "analysis")
        severity = data["severityLevel"]
        if isinstance(severity, bool) or not isinstance(severity, (int, float)) or not math.isfinite(severity):
            raise ValueError(f"severityLevel must be a finite number, got {severity!r}")
        treatments = data.get("treatments", [])
        if not isinstance(treatments, list):
            raise ValueError(f"treatments must be a list, got {type(treatments).__name__}")
        return cls(
            id=str(data["id"]),
            image_url=data["imageUrl"],
            created_at=data["timestamp"],
            disease=data["disease"],
            description=data["description"],
            severity_level=int(severity),
            severity_description=data["severityDescription"],
            language=data["language"],
            treatments=[Treatment.from_dict(t) for t in treatments],
        )


def _require_mapping(data: Any, what: str) -> None:
    if not isinstance(data, dict):
        raise ValueError(f"Stored {what} must be an object, got {type(data).__name__}")
