"""Description: Multimodal plant leaf diagnosis using OpenAI's Responses API."""

import logging
import time
from typing import Any, List, Dict

import openai
from openai import AsyncOpenAI

from models.analysis_record import AnalysisFields, ImagePayload
from models.errors import DiagnosisError
from services.openai.diagnosis_prompts import build_system_prompt, build_user_prompt
from services.openai.diagnosis_schema import FUNCTION_DEFINITION, FUNCTION_NAME
from services.openai.media_inputs import build_inputs
from services.openai.response_parser import extract_usage, parse_function_call, to_analysis_fields

LOGGER = logging.getLogger(__name__)
DEFAULT_MODEL = "gpt-5"


class DiagnosisClient:
    """Request a structured diagnosis for a leaf image in a given language.

    The client holds no state between calls and never retries; a failed
    call surfaces as `DiagnosisError` carrying a message fit for the user.
    """

    def __init__(self, client: AsyncOpenAI, model: str = DEFAULT_MODEL) -> None:
        """Initialize the DiagnosisClient with an OpenAI async client."""
        if client is None:
            raise ValueError("OpenAI client must be provided.")
        self.client = client
        self.model = model
        self.system_prompt = build_system_prompt()

    async def diagnose(self, image: ImagePayload, target_language: str) -> AnalysisFields:
        """Return the diagnosis of `image` with every text field in `target_language`."""
        start_time = time.time()
        inputs = build_inputs(self.system_prompt, build_user_prompt(target_language), image)
        response = await self._create_response(inputs)
        try:
            fields = to_analysis_fields(parse_function_call(response, tool_name=FUNCTION_NAME))
        except DiagnosisError as exc:
            LOGGER.error("Malformed diagnosis output: %s", exc)
            LOGGER.debug("Full response object: %r", response)
            raise

        usage = extract_usage(response)
        LOGGER.info(
            "Diagnosis in '%s' took %.2fs (input_tokens=%s, output_tokens=%s)",
            target_language,
            time.time() - start_time,
            usage["input_tokens"],
            usage["output_tokens"],
        )
        return fields

    async def _create_response(self, inputs: List[Dict[str, Any]]) -> Any:
        """Send the multimodal request to the OpenAI Responses API."""
        try:
            return await self.client.responses.create(
                model=self.model,
                input=inputs,
                tools=[FUNCTION_DEFINITION],
                tool_choice={"type": "function", "name": FUNCTION_NAME},
            )
        except openai.APITimeoutError as exc:
            LOGGER.error("Diagnosis request timed out: %s", exc)
            raise DiagnosisError("The diagnosis service timed out. Please try again.") from exc
        except openai.APIStatusError as exc:
            LOGGER.error("Diagnosis request rejected (status %s): %s", exc.status_code, exc)
            raise DiagnosisError(f"The diagnosis service rejected the request: {exc.message}") from exc
        except openai.APIError as exc:
            LOGGER.error("Error during OpenAI Responses API call: %s", exc)
            raise DiagnosisError(f"The diagnosis service failed: {exc}") from exc

# end of DiagnosisClient
