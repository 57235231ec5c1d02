# tarot_app/services/llm/llm_utils.py
import asyncio
import logging
from typing import Optional

from google import genai
from google.genai import errors, types

from tarot_app.core.exceptions import GenerationTimeoutError, MissingCredentialsError, UpstreamError

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-2.5-flash-lite"
GENERATION_TIMEOUT_SECONDS = 30.0


def create_genai_client(api_key: Optional[str]) -> Optional[genai.Client]:
    """Build the Gemini client, or None when no key is configured (reported per request)."""
    if not api_key:
        logger.warning("GOOGLE_GENERATIVE_AI_API_KEY is not set; AI interpretations are disabled.")
        return None
    return genai.Client(api_key=api_key)


def extract_text(response) -> str:
    """
    Pull plain text out of a generate_content response.

    Uses the aggregated `.text` when the SDK provides it, otherwise joins the
    text parts of every candidate.
    """
    try:
        text = getattr(response, "text", None)
        if text:
            return text
    except ValueError:
        # .text raises when the candidate holds non-text parts only
        pass

    texts = []
    for candidate in getattr(response, "candidates", None) or []:
        content = getattr(candidate, "content", None)
        for part in getattr(content, "parts", None) or []:
            part_text = getattr(part, "text", None)
            if part_text:
                texts.append(part_text)
    return "\n".join(texts).strip()


async def query_genai_api(
    client: Optional[genai.Client],
    prompt: str,
    model: str = DEFAULT_MODEL,
    system_instruction: Optional[str] = None,
    temperature: float = 0.7,
    timeout: float = GENERATION_TIMEOUT_SECONDS,
) -> str:
    """
    Send one prompt to Gemini and return the response text.

    Raises:
        MissingCredentialsError: no client configured.
        GenerationTimeoutError: no answer within `timeout` seconds.
        UpstreamError: API error, or an empty response.
    """
    if client is None:
        raise MissingCredentialsError("AI service is not configured. Check GOOGLE_GENERATIVE_AI_API_KEY.")

    config = types.GenerateContentConfig(
        system_instruction=system_instruction,
        temperature=temperature,
        response_mime_type="application/json",
    )

    logger.info(f"Generating AI interpretation with prompt length: {len(prompt)}")
    try:
        response = await asyncio.wait_for(
            client.aio.models.generate_content(model=model, contents=prompt, config=config),
            timeout=timeout,
        )
    except asyncio.TimeoutError:
        logger.error(f"Gemini call timed out after {timeout} seconds")
        raise GenerationTimeoutError(f"AI generation timed out after {timeout} seconds")
    except errors.APIError as e:
        logger.error(f"Google API Error: {e}")
        raise UpstreamError(f"Google API Error: {e}") from e

    text = extract_text(response)
    if not text:
        logger.error("Empty response text from Gemini")
        raise UpstreamError("Empty response from AI service")

    logger.info(f"AI response received, length: {len(text)}")
    return text
