# docchat/llm/client.py

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterator, Optional

import google.generativeai as genai
import openai
from google.api_core import exceptions as google_exceptions
from openai import OpenAI

from docchat.config import (
    API_KEY_HELP_URL,
    GEMINI_MODEL,
    GOOGLE_API_KEY,
    OPENAI_API_KEY,
    OPENAI_MODEL,
)
from docchat.errors import ModelAuthError, ModelError, ModelFailure

logger = logging.getLogger(__name__)


SAFETY_SETTINGS = {
    "HARM_CATEGORY_HARASSMENT": "BLOCK_MEDIUM_AND_ABOVE",
    "HARM_CATEGORY_HATE_SPEECH": "BLOCK_MEDIUM_AND_ABOVE",
    "HARM_CATEGORY_SEXUALLY_EXPLICIT": "BLOCK_MEDIUM_AND_ABOVE",
    "HARM_CATEGORY_DANGEROUS_CONTENT": "BLOCK_MEDIUM_AND_ABOVE",
}

_AUTH_EXCEPTIONS = (
    google_exceptions.PermissionDenied,
    google_exceptions.Unauthenticated,
    openai.AuthenticationError,
    openai.PermissionDeniedError,
)

AUTH_ERROR_MESSAGE = (
    "API key issue detected. Please update GOOGLE_API_KEY (or OPENAI_API_KEY) "
    f"in your .env file with a valid key, e.g. from {API_KEY_HELP_URL}"
)


@dataclass(frozen=True)
class GenerationConfig:
    temperature: float
    top_k: int
    top_p: float
    max_output_tokens: int
    candidate_count: int = 1


def is_auth_error(error: Exception) -> bool:

    if isinstance(error, _AUTH_EXCEPTIONS):
        return True

    message = str(error)

    return "API key" in message or "403" in message


def classify_model_error(error: Exception) -> ModelError:
    """Wrap a provider exception into the application's error taxonomy."""

    if isinstance(error, ModelError):
        return error

    if is_auth_error(error):
        return ModelAuthError(AUTH_ERROR_MESSAGE)

    return ModelFailure(f"Failed to process query: {error}")


class GenerativeModel(ABC):
    """Prompt in, text out. Providers raise their own SDK exceptions."""

    name = "model"

    @abstractmethod
    def generate(self, prompt: str, config: GenerationConfig) -> str:
        pass

    @abstractmethod
    def generate_stream(self, prompt: str, config: GenerationConfig) -> Iterator[str]:
        pass


class GeminiClient(GenerativeModel):
    """Google Gemini via google-generativeai."""

    name = "gemini"

    def __init__(self, model: str = GEMINI_MODEL, api_key: str = GOOGLE_API_KEY):

        if not api_key:
            raise ValueError(
                "GOOGLE_API_KEY environment variable not set. "
                "Please set it before running the application."
            )

        genai.configure(api_key=api_key)

        self._model = genai.GenerativeModel(
            model_name=model,
            safety_settings=SAFETY_SETTINGS,
        )
        self.model_name = model

    @staticmethod
    def _config(config: GenerationConfig) -> "genai.GenerationConfig":

        return genai.GenerationConfig(
            temperature=config.temperature,
            top_k=config.top_k,
            top_p=config.top_p,
            max_output_tokens=config.max_output_tokens,
            candidate_count=config.candidate_count,
        )

    def generate(self, prompt: str, config: GenerationConfig) -> str:

        response = self._model.generate_content(
            prompt,
            generation_config=self._config(config),
        )

        return response.text

    def generate_stream(self, prompt: str, config: GenerationConfig) -> Iterator[str]:

        response = self._model.generate_content(
            prompt,
            generation_config=self._config(config),
            stream=True,
        )

        for chunk in response:

            try:
                text = chunk.text
            except ValueError:
                # chunk carries no text part (e.g. finish reason only)
                logger.debug("Gemini stream chunk without text")
                continue

            if text:
                yield text


class OpenAIClient(GenerativeModel):
    """
    OpenAI chat completions.

    The API has no top-k sampling parameter; top_k is ignored.
    """

    name = "openai"

    def __init__(self, model: str = OPENAI_MODEL, api_key: str = OPENAI_API_KEY):

        if not api_key:
            raise ValueError(
                "OPENAI_API_KEY environment variable not set. "
                "Please set it before running the application."
            )

        self.client = OpenAI(api_key=api_key)
        self.model_name = model

    def _params(self, prompt: str, config: GenerationConfig) -> dict:

        return {
            "model": self.model_name,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": config.temperature,
            "top_p": config.top_p,
            "max_tokens": config.max_output_tokens,
            "n": config.candidate_count,
        }

    def generate(self, prompt: str, config: GenerationConfig) -> str:

        response = self.client.chat.completions.create(**self._params(prompt, config))

        return response.choices[0].message.content or ""

    def generate_stream(self, prompt: str, config: GenerationConfig) -> Iterator[str]:

        stream = self.client.chat.completions.create(
            stream=True,
            **self._params(prompt, config),
        )

        for chunk in stream:

            if not chunk.choices:
                continue

            text: Optional[str] = chunk.choices[0].delta.content

            if text:
                yield text
