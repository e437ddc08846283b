# docchat/llm/multi_model_client.py

import logging
import time
from typing import Callable, Dict, Iterator, List, Optional, Sequence

from docchat.errors import ModelAuthError, ModelFailure
from docchat.llm.client import (
    GeminiClient,
    GenerationConfig,
    GenerativeModel,
    OpenAIClient,
    classify_model_error,
)

logger = logging.getLogger(__name__)


class MultiModelLLMClient(GenerativeModel):
    """
    Multi-provider LLM client.

    Fallback order (STRICT):

    1. Gemini (primary)
    2. OpenAI (secondary)

    Guarantees:
    • Provider exceptions never escape raw: callers see ModelAuthError
      or ModelFailure
    • A stream only falls back before its first fragment was delivered
    • Provider latency tracking
    """

    name = "multi"

    def __init__(self, providers: Optional[Sequence[GenerativeModel]] = None):

        if providers is None:
            providers = self._init_default_providers()

        self.providers: List[GenerativeModel] = list(providers)

        logger.info(
            "LLM initialization complete",
            extra={"providers": [p.name for p in self.providers]},
        )

    # ============================================================
    # INITIALIZATION
    # ============================================================

    @staticmethod
    def _init_default_providers() -> List[GenerativeModel]:

        providers: List[GenerativeModel] = []

        factories: Dict[str, Callable[[], GenerativeModel]] = {
            "gemini": GeminiClient,
            "openai": OpenAIClient,
        }

        for name, factory in factories.items():

            try:
                providers.append(factory())
                logger.info(f"{name} initialized successfully")
            except ValueError as e:
                logger.warning(
                    f"{name} unavailable",
                    extra={"error": str(e)},
                )

        return providers

    # ============================================================
    # PUBLIC API
    # ============================================================

    def generate(self, prompt: str, config: GenerationConfig) -> str:

        logger.info(
            "LLM request started",
            extra={
                "providers": [p.name for p in self.providers],
                "prompt_length": len(prompt),
                "temperature": config.temperature,
                "max_output_tokens": config.max_output_tokens,
            },
        )

        errors: List[Exception] = []

        for provider in self.providers:

            start = time.time()

            try:
                text = provider.generate(prompt, config)
            except Exception as e:
                logger.warning(
                    f"{provider.name} failed",
                    extra={"error": str(e), "error_type": type(e).__name__},
                )
                errors.append(e)
                continue

            self._log_success(provider, start)

            return text.strip()

        raise self._final_error(errors)

    def generate_stream(self, prompt: str, config: GenerationConfig) -> Iterator[str]:

        errors: List[Exception] = []

        for provider in self.providers:

            start = time.time()
            delivered = False

            try:
                for fragment in provider.generate_stream(prompt, config):
                    delivered = True
                    yield fragment
            except Exception as e:
                logger.warning(
                    f"{provider.name} stream failed",
                    extra={"error": str(e), "delivered": delivered},
                )
                if delivered:
                    raise classify_model_error(e) from e
                errors.append(e)
                continue

            self._log_success(provider, start)

            return

        raise self._final_error(errors)

    # ============================================================
    # HELPERS
    # ============================================================

    @staticmethod
    def _log_success(provider: GenerativeModel, start: float):

        logger.info(
            "LLM provider success",
            extra={
                "provider": provider.name,
                "latency_seconds": round(time.time() - start, 3),
            },
        )

    @staticmethod
    def _final_error(errors: List[Exception]) -> Exception:

        if not errors:
            return ModelFailure("No LLM backend available")

        classified = [classify_model_error(e) for e in errors]

        # auth is only the cause when every provider rejected its key
        if all(isinstance(e, ModelAuthError) for e in classified):
            return classified[0]

        for error in classified:
            if isinstance(error, ModelFailure):
                return error

        return classified[-1]

    def get_usage_stats(self) -> Dict:

        return {"providers": [p.name for p in self.providers]}
