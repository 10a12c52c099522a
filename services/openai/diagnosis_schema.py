"""Schema definitions for the plant leaf diagnosis tool."""

from typing import Any, Dict

from models.analysis_record import TreatmentKind

FUNCTION_NAME = "report_plant_diagnosis"

MIN_SEVERITY = 1
MAX_SEVERITY = 10

_SUGGESTED_PRODUCT: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "name": {"type": "string", "description": "Commercial or common product name."},
        "activeIngredient": {"type": "string", "description": "Active ingredient of the product."},
    },
    "required": ["name", "activeIngredient"],
    "additionalProperties": False,
}

_TREATMENT: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "type": {
            "type": "string",
            "enum": [kind.value for kind in TreatmentKind],
            "description": "Whether the remedy is chemical or biological.",
        },
        "description": {"type": "string", "description": "How to apply the remedy."},
        "suggestedProducts": {
            "type": "array",
            "description": "Products implementing the remedy; empty when none apply.",
            "items": _SUGGESTED_PRODUCT,
        },
    },
    "required": ["type", "description", "suggestedProducts"],
    "additionalProperties": False,
}

FUNCTION_DEFINITION: Dict[str, Any] = {
    "type": "function",
    "name": FUNCTION_NAME,
    "description": "Return the diagnosis, severity, and treatment options for the plant leaf.",
    "parameters": {
        "type": "object",
        "properties": {
            "disease": {
                "type": "string",
                "description": "Name of the disease, or a statement that the plant looks healthy.",
            },
            "description": {
                "type": "string",
                "description": "Symptoms observed and the likely cause.",
            },
            "severityLevel": {
                "type": "integer",
                "description": f"Severity from {MIN_SEVERITY} (mild) to {MAX_SEVERITY} (critical).",
            },
            "severityDescription": {
                "type": "string",
                "description": "One sentence qualifying the severity.",
            },
            "treatments": {
                "type": "array",
                "description": "Treatment options, most recommended first.",
                "items": _TREATMENT,
            },
        },
        "required": ["disease", "description", "severityLevel", "severityDescription", "treatments"],
        "additionalProperties": False,
    },
    "strict": True,
}
