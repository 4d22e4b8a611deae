"""LLM service."""
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

import openai
from openai import OpenAI

from coach.core.config import settings
from coach.core.errors import ModelTimeoutError, ModelUnavailableError
from coach.core.logging import logger
from coach.services.model_selector import ModelTier
from coach.services.token_usage import TokenUsageTracker, token_usage


JSON_SYSTEM_PROMPT = "You are a classification assistant. Respond only with valid JSON."


class LanguageModel(ABC):
    """What the pipeline needs from a text-generation service."""

    @abstractmethod
    def generate(
        self,
        system_prompt: str,
        history: List[Dict[str, str]],
        user_text: str,
        max_tokens: int,
        tier: ModelTier = ModelTier.MAIN,
    ) -> str:
        """Generate a chat reply. Raises ModelUnavailableError on failure."""

    @abstractmethod
    def generate_json(self, prompt: str) -> str:
        """Generate best-effort JSON text. The caller must validate it."""


class LLMService(LanguageModel):
    """OpenAI-compatible chat completion client."""

    def __init__(self, client: Optional[OpenAI] = None, usage: Optional[TokenUsageTracker] = None):
        """Initialize LLM client."""
        self.client = client or OpenAI(
            base_url=settings.llm.base_url,
            api_key=settings.llm.api_key,
            timeout=settings.llm.timeout_seconds,
            max_retries=0,
        )
        self.usage = usage or token_usage
        logger.info(f"LLM client initialized: {settings.llm.base_url}")

    def call(
        self,
        model: str,
        messages: List[Dict[str, str]],
        max_tokens: int,
    ) -> str:
        """Run one chat completion and record its token usage."""
        try:
            resp = self.client.chat.completions.create(
                model=model,
                messages=messages,
                temperature=settings.llm.temperature,
                top_p=settings.llm.top_p,
                max_tokens=max_tokens,
            )
        except openai.APITimeoutError as e:
            logger.error(f"LLM call timed out after {settings.llm.timeout_seconds}s: {e}")
            raise ModelTimeoutError(f"Language model timed out: {e}") from e
        except openai.OpenAIError as e:
            logger.error(f"LLM call failed: {e}")
            raise ModelUnavailableError(f"Language model unavailable: {e}") from e

        usage = getattr(resp, "usage", None)
        if usage is not None:
            self.usage.record(usage.prompt_tokens or 0, usage.completion_tokens or 0)
        else:
            logger.debug("No usage data in LLM response")

        return resp.choices[0].message.content or ""

    def generate(
        self,
        system_prompt: str,
        history: List[Dict[str, str]],
        user_text: str,
        max_tokens: int,
        tier: ModelTier = ModelTier.MAIN,
    ) -> str:
        """Call LLM with conversation history."""
        messages = [{"role": "system", "content": system_prompt}]
        if history:
            messages.extend(history)
        messages.append({"role": "user", "content": user_text})

        logger.info(f"Sending {len(messages)} messages to {tier.model_name}")
        return self.call(tier.model_name, messages, max_tokens)

    def generate_json(self, prompt: str) -> str:
        """Classification-style call on the cheap model."""
        messages = [
            {"role": "system", "content": JSON_SYSTEM_PROMPT},
            {"role": "user", "content": prompt},
        ]
        return self.call(ModelTier.CHEAP.model_name, messages, ModelTier.CHEAP.max_tokens)

    def health_check(self) -> str:
        """Check LLM service health."""
        try:
            self.client.models.list()
            return "healthy"
        except openai.OpenAIError as e:
            logger.error(f"LLM health check failed: {e}")
            return f"unhealthy: {str(e)}"


_llm_service: Optional[LLMService] = None


def get_llm_service() -> LLMService:
    """Lazily create the shared LLM service."""
    global _llm_service
    if _llm_service is None:
        _llm_service = LLMService()
    return _llm_service
