"""Languages the diagnosis can be expressed in."""

from typing import Dict, List

SUPPORTED_LANGUAGES: Dict[str, str] = {
    "en": "English",
    "fr": "French",
    "es": "Spanish",
    "de": "German",
    "pt": "Portuguese",
    "it": "Italian",
    "hi": "Hindi",
    "ar": "Arabic",
    "fa": "Persian",
    "he": "Hebrew",
    "zh": "Chinese",
}

RTL_LANGUAGES = {"ar", "fa", "he", "ur"}

DEFAULT_LANGUAGE = "en"


def normalize_language(code: str) -> str:
    """Return the supported base language for a code such as ``fr-CA``.

    Raises:
        ValueError: If the language is not supported.
    """
    base = (code or "").strip().replace("_", "-").split("-", 1)[0].lower()
    if base not in SUPPORTED_LANGUAGES:
        raise ValueError(f"Unsupported language '{code}'. Supported: {', '.join(SUPPORTED_LANGUAGES)}")
    return base


def language_name(code: str) -> str:
    """Return the English name of a language code, falling back to the code itself."""
    return SUPPORTED_LANGUAGES.get(code, code)


def text_direction(code: str) -> str:
    return "rtl" if code in RTL_LANGUAGES else "ltr"


def list_languages() -> List[Dict[str, str]]:
    return [
        {"code": code, "name": name, "direction": text_direction(code)}
        for code, name in SUPPORTED_LANGUAGES.items()
    ]
