"""
LLM provider wrappers.

Thin, swappable clients for the hosted models the auditor talks to:
- a vision model that reads bill images/PDFs (OpenAI)
- a chat model that drafts complaint letters (Groq, OpenAI-compatible API)

Tests use MockProvider so no network calls are made.
"""

import base64
import json
import logging
import os
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

GROQ_BASE_URL = "https://api.groq.com/openai/v1"

# Errors that mean "try the fallback model" rather than "give up"
RETRYABLE_MARKERS = (
    "404",
    "429",
    "quota",
    "rate limit",
    "resource exhausted",
    "model not found",
    "model_not_found",
)


@dataclass
class ImagePart:
    """Binary document attached to a prompt."""
    data: bytes
    mime_type: str
    filename: str = "bill"

    def to_data_url(self) -> str:
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.mime_type};base64,{encoded}"


class LLMProvider(ABC):
    """Abstract base class for LLM providers."""

    @abstractmethod
    def generate(self, prompt: str, image: Optional[ImagePart] = None) -> str:
        """
        Generate text from prompt.

        Args:
            prompt: Input prompt text.
            image: Optional document to send alongside the prompt.

        Returns:
            str: Generated text response.
        """
        pass

    @abstractmethod
    def is_available(self) -> bool:
        """Check if the provider is available."""
        pass


def _is_retryable_error(error: Exception) -> bool:
    message = str(error).lower()
    return any(marker in message for marker in RETRYABLE_MARKERS)


class OpenAIProvider(LLMProvider):
    """OpenAI chat completions provider, with an optional fallback model."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "gpt-4o",
        fallback_model: Optional[str] = "gpt-4o-mini",
        temperature: float = 0.0,
        max_tokens: int = 2000,
        base_url: Optional[str] = None,
        system_prompt: str = "You are a medical billing expert assistant.",
    ):
        """
        Initialize OpenAI provider.

        Args:
            api_key: API key. Uses OPENAI_API_KEY env var if not provided.
            model: Primary model name.
            fallback_model: Model to retry with on quota / not-found errors.
            temperature: Sampling temperature (0-2).
            max_tokens: Maximum tokens in response.
            base_url: Alternative OpenAI-compatible endpoint.
            system_prompt: System message sent with every request.
        """
        self.api_key = api_key or os.getenv("OPENAI_API_KEY")
        self.model = model
        self.fallback_model = fallback_model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.base_url = base_url
        self.system_prompt = system_prompt
        self._client = None

    def is_available(self) -> bool:
        """Check if an API key is configured."""
        return bool(self.api_key)

    def _get_client(self):
        """Get or create the API client."""
        if self._client is None:
            from openai import OpenAI
            self._client = OpenAI(api_key=self.api_key, base_url=self.base_url)
        return self._client

    def _build_messages(self, prompt: str, image: Optional[ImagePart]) -> list[dict]:
        if image is None:
            user_content = prompt
        elif image.mime_type == "application/pdf":
            user_content = [
                {"type": "text", "text": prompt},
                {
                    "type": "file",
                    "file": {"filename": image.filename, "file_data": image.to_data_url()},
                },
            ]
        else:
            user_content = [
                {"type": "text", "text": prompt},
                {"type": "image_url", "image_url": {"url": image.to_data_url()}},
            ]
        return [
            {"role": "system", "content": self.system_prompt},
            {"role": "user", "content": user_content},
        ]

    def _complete(self, model: str, messages: list[dict]) -> str:
        response = self._get_client().chat.completions.create(
            model=model,
            messages=messages,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )
        return response.choices[0].message.content or ""

    def generate(self, prompt: str, image: Optional[ImagePart] = None) -> str:
        """
        Generate text, falling back to the secondary model on retryable errors.

        Raises:
            RuntimeError: If the API call fails (on both models, when a
                fallback is configured).
        """
        messages = self._build_messages(prompt, image)
        try:
            return self._complete(self.model, messages)
        except Exception as e:
            if not (self.fallback_model and _is_retryable_error(e)):
                logger.error(f"{self.model} API error: {e}")
                raise RuntimeError(f"LLM call failed: {e}") from e

            logger.warning(f"{self.model} unavailable ({e}), falling back to {self.fallback_model}")
            try:
                text = self._complete(self.fallback_model, messages)
            except Exception as fallback_error:
                logger.error(f"Fallback model {self.fallback_model} failed: {fallback_error}")
                raise RuntimeError(
                    f"Both models failed. Primary: {e}, Fallback: {fallback_error}"
                ) from fallback_error
            logger.info(f"Used fallback model {self.fallback_model}")
            return text


class GroqProvider(OpenAIProvider):
    """Groq provider via its OpenAI-compatible endpoint."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "llama-3.1-8b-instant",
        fallback_model: Optional[str] = None,
        base_url: str = GROQ_BASE_URL,
        **kwargs,
    ):
        super().__init__(
            api_key=api_key or os.getenv("GROQ_API_KEY"),
            model=model,
            fallback_model=fallback_model,
            base_url=base_url,
            **kwargs,
        )


class MockProvider(LLMProvider):
    """Mock provider for testing without API calls."""

    def __init__(self, response: Optional[str] = None, error: Optional[Exception] = None):
        """
        Initialize mock provider.

        Args:
            response: Fixed response to return. Uses default if None.
            error: Exception to raise from generate() instead.
        """
        self.response = response
        self.error = error
        self.prompts: list[str] = []
        self.images: list[Optional[ImagePart]] = []

    def is_available(self) -> bool:
        """Mock is always available."""
        return True

    def generate(self, prompt: str, image: Optional[ImagePart] = None) -> str:
        """Return mock response."""
        self.prompts.append(prompt)
        self.images.append(image)
        if self.error is not None:
            raise self.error
        if self.response is not None:
            return self.response

        return json.dumps({
            "hospital_name": "",
            "patient_name": "",
            "bill_date": "",
            "city": "",
            "line_items": [],
        })


def get_drafting_provider() -> LLMProvider:
    """
    Get the provider used for complaint drafting.

    Prefers Groq, then OpenAI, then the mock.
    """
    groq_provider = GroqProvider()
    if groq_provider.is_available():
        logger.info("Using Groq provider")
        return groq_provider

    openai_provider = OpenAIProvider(model="gpt-4o-mini", fallback_model=None)
    if openai_provider.is_available():
        logger.info("Using OpenAI provider")
        return openai_provider

    logger.warning("No LLM provider available, using mock")
    return MockProvider(response="")


def parse_json_response(response: str) -> dict:
    """
    Parse a model response into a JSON object.

    Handles markdown code fences and prose around the object.

    Args:
        response: Raw LLM response text.

    Returns:
        dict: Parsed object.

    Raises:
        ValueError: If response cannot be parsed.
    """
    response = (response or "").strip()

    json_match = re.search(r"```(?:json)?\s*([\s\S]*?)```", response)
    if json_match:
        response = json_match.group(1).strip()

    try:
        parsed = json.loads(response)
    except json.JSONDecodeError:
        parsed = None
        json_match = re.search(r"\{[\s\S]*\}", response)
        if json_match:
            try:
                parsed = json.loads(json_match.group())
            except json.JSONDecodeError:
                pass

    if not isinstance(parsed, dict):
        raise ValueError(f"Could not parse LLM response as JSON: {response[:200]}")
    return parsed
