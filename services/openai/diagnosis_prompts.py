"""Prompt builders for multimodal plant leaf diagnosis."""

from utils.languages import language_name


def build_system_prompt() -> str:
    """Return the system prompt for the diagnosis model."""
    return (
        "You are an expert plant pathologist and agronomist. "
        "You are careful and conservative: when a leaf looks healthy, say so instead of inventing a disease. "
        "Recommend treatments a farmer or home gardener can realistically apply, "
        "and prefer widely available products."
    )


def build_user_prompt(target_language: str) -> str:
    """Return the user prompt asking for a diagnosis written in `target_language`."""
    name = language_name(target_language)
    return (
        "Analyze the following image of a plant leaf and identify any disease, pest damage, or deficiency. "
        "Give the disease name, a short description of the symptoms and cause, "
        "a severity level from 1 (mild) to 10 (critical) with a one-sentence explanation, "
        "and treatment options, each either Chemical or Biological, with suggested products and their "
        "active ingredients where relevant. "
        f"Write every text field in {name} (language code '{target_language}'). "
        "Keep the treatment type values exactly 'Chemical' or 'Biological'."
    )
