"""Helpers to parse Responses API outputs into diagnosis fields."""

import json
import math
from typing import Any, Dict, List, Optional

from models.analysis_record import AnalysisFields, SuggestedProduct, Treatment, TreatmentKind
from models.errors import DiagnosisError
from services.openai.diagnosis_schema import MAX_SEVERITY, MIN_SEVERITY


def parse_function_call(response: Any, *, tool_name: str) -> Dict[str, Any]:
    """Extract the function call arguments for the specified tool name."""
    for item in getattr(response, "output", None) or []:
        if getattr(item, "type", None) == "function_call" and getattr(item, "name", None) == tool_name:
            try:
                args = json.loads(getattr(item, "arguments", "{}") or "{}")
            except json.JSONDecodeError as exc:
                raise DiagnosisError("The diagnosis service returned unreadable data.") from exc
            if not isinstance(args, dict):
                raise DiagnosisError("The diagnosis service returned unreadable data.")
            return args
    raise DiagnosisError("The diagnosis service did not return a diagnosis.")


def to_analysis_fields(args: Dict[str, Any]) -> AnalysisFields:
    """Validate raw tool arguments and convert them into AnalysisFields."""
    disease = _require_text(args, "disease")
    description = _require_text(args, "description")
    severity_description = _require_text(args, "severityDescription")

    severity = args.get("severityLevel")
    if (
        isinstance(severity, bool)
        or not isinstance(severity, (int, float))
        or not math.isfinite(severity)
        or int(severity) != severity
    ):
        raise DiagnosisError("The diagnosis is missing a valid severity level.")
    if not MIN_SEVERITY <= severity <= MAX_SEVERITY:
        raise DiagnosisError(f"Severity level {severity} is outside {MIN_SEVERITY}-{MAX_SEVERITY}.")

    raw_treatments = args.get("treatments")
    if not isinstance(raw_treatments, list):
        raise DiagnosisError("The diagnosis is missing its treatment list.")

    return AnalysisFields(
        disease=disease,
        description=description,
        severity_level=int(severity),
        severity_description=severity_description,
        treatments=[_to_treatment(raw) for raw in raw_treatments],
    )


def extract_usage(response: Any) -> Dict[str, Optional[int]]:
    """Return token usage information from the response, if present."""
    usage = getattr(response, "usage", None)
    return {
        "input_tokens": getattr(usage, "input_tokens", None) if usage else None,
        "output_tokens": getattr(usage, "output_tokens", None) if usage else None,
    }


def _require_text(args: Dict[str, Any], key: str) -> str:
    value = args.get(key)
    if not isinstance(value, str) or not value.strip():
        raise DiagnosisError(f"The diagnosis is missing '{key}'.")
    return value.strip()


def _to_treatment(raw: Any) -> Treatment:
    if not isinstance(raw, dict):
        raise DiagnosisError("The diagnosis contains a malformed treatment.")
    try:
        kind = TreatmentKind(raw.get("type"))
    except ValueError as exc:
        raise DiagnosisError(f"Unknown treatment type {raw.get('type')!r}.") from exc

    products: Optional[List[SuggestedProduct]] = None
    raw_products = raw.get("suggestedProducts")
    if raw_products:
        if not isinstance(raw_products, list):
            raise DiagnosisError("The diagnosis contains malformed product suggestions.")
        products = [_to_product(p) for p in raw_products]

    return Treatment(kind=kind, description=_require_text(raw, "description"), suggested_products=products)


def _to_product(raw: Any) -> SuggestedProduct:
    if not isinstance(raw, dict):
        raise DiagnosisError("The diagnosis contains a malformed product suggestion.")
    return SuggestedProduct(
        name=_require_text(raw, "name"),
        active_ingredient=_require_text(raw, "activeIngredient"),
    )
