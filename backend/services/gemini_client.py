"""Google Gemini API wrapper with error handling."""

import asyncio
import json
import logging

from google import genai
from google.genai import types

from config import settings

logger = logging.getLogger(__name__)

_client: genai.Client | None = None


def get_client() -> genai.Client | None:
    global _client
    if not settings.gemini_api_key:
        logger.warning("No GEMINI_API_KEY set - Gemini features disabled")
        return None
    if _client is None:
        _client = genai.Client(api_key=settings.gemini_api_key)
    return _client


def _strip_fences(text: str) -> str:
    text = text.strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[1] if "\n" in text else text[3:]
        if text.endswith("```"):
            text = text[:-3]
        text = text.strip()
    return text


async def generate_json(prompt: str, max_output_tokens: int = 2048) -> dict | None:
    """Send a prompt to Gemini and parse the JSON response.

    Returns None when Gemini is not configured, times out, errors, or
    answers with something that is not a JSON object.
    """
    client = get_client()
    if client is None:
        return None

    try:
        response = await asyncio.wait_for(
            client.aio.models.generate_content(
                model=settings.gemini_model,
                contents=prompt,
                config=types.GenerateContentConfig(
                    temperature=0.2,
                    max_output_tokens=max_output_tokens,
                    response_mime_type="application/json",
                ),
            ),
            timeout=settings.external_call_timeout_s,
        )
        parsed = json.loads(_strip_fences(response.text or ""))
        if not isinstance(parsed, dict):
            logger.warning("Gemini returned JSON %s, expected an object", type(parsed).__name__)
            return None
        return parsed

    except asyncio.TimeoutError:
        logger.warning("Gemini generate_content timed out after %ss", settings.external_call_timeout_s)
        return None
    except json.JSONDecodeError as e:
        logger.error("Failed to parse Gemini response as JSON: %s", e)
        return None
    except Exception as e:
        logger.error("Gemini API error: %s", e)
        return None


async def embed_text(text: str) -> list[float] | None:
    """Embed one text with the configured embedding model. None on any failure."""
    client = get_client()
    if client is None or not text.strip():
        return None

    try:
        response = await asyncio.wait_for(
            client.aio.models.embed_content(
                model=settings.embedding_model,
                contents=text[: settings.max_embed_text_len],
            ),
            timeout=settings.external_call_timeout_s,
        )
        if not response.embeddings:
            return None
        values = response.embeddings[0].values
        return list(values) if values else None

    except asyncio.TimeoutError:
        logger.warning("Gemini embed_content timed out after %ss", settings.external_call_timeout_s)
        return None
    except Exception as e:
        logger.error("Gemini embedding error: %s", e)
        return None
