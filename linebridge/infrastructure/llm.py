"""
LLM completion wrapper over the OpenAI chat completions API.

Uses the async client so completion calls overlap with other events' I/O.
Rate-limit errors are retried with exponential backoff (1s, 2s); any other
failure is raised to the caller, which decides on the fallback reply.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from openai import AsyncOpenAI

import config

logger = logging.getLogger(__name__)

RATE_LIMIT_TERMS = ['rate limit', 'rate_limit', 'ratelimit', 'quota', 'too many requests', '429']


class LLMProvider:
    """Chat completion collaborator with retry and token usage tracking.

    Attributes:
        client: AsyncOpenAI client, or None when no API key is configured
        model: Completion model identifier
        total_input_tokens: Cumulative prompt tokens across all calls
        total_output_tokens: Cumulative completion tokens across all calls
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        client: Optional[Any] = None
    ) -> None:
        """
        Initialize the completion provider.

        Args:
            api_key: OpenAI API key. Defaults to config.OPENAI_API_KEY.
            model: Model name. Defaults to config.OPENAI_MODEL.
            base_url: Optional OpenAI-compatible endpoint. Defaults to config.OPENAI_BASE_URL.
            client: Pre-built client (takes precedence over api_key)
        """
        self.api_key: Optional[str] = api_key or config.OPENAI_API_KEY
        self.model: str = model or config.OPENAI_MODEL
        self.base_url: Optional[str] = base_url or config.OPENAI_BASE_URL or None
        self.client = client

        self.total_input_tokens: int = 0
        self.total_output_tokens: int = 0
        self.total_calls: int = 0

        if self.client is None and self.api_key:
            try:
                self.client = AsyncOpenAI(api_key=self.api_key, base_url=self.base_url)
                logger.info(f"✓ OpenAI completion provider initialized ({self.model})")
            except Exception as e:
                logger.warning(f"Failed to initialize OpenAI client: {e}")

        if self.client is None:
            logger.warning("⚠️  No completion provider configured. Set OPENAI_API_KEY in environment.")

    @property
    def enabled(self) -> bool:
        return self.client is not None

    async def _call_with_retry(
        self,
        call_fn: Callable[[], Awaitable[str]],
        max_retries: int = 2
    ) -> str:
        """
        Await ``call_fn`` with exponential backoff retry for rate limits.

        Raises:
            Exception: Original exception if not a rate limit error or if all
                       retry attempts are exhausted
        """
        for attempt in range(max_retries + 1):
            try:
                return await call_fn()
            except Exception as e:
                error_str = str(e).lower()
                is_rate_limit = any(term in error_str for term in RATE_LIMIT_TERMS)

                if is_rate_limit and attempt < max_retries:
                    wait_time = (2 ** attempt)
                    logger.warning(f"OpenAI rate limit hit. Retrying in {wait_time}s...")
                    await asyncio.sleep(wait_time)
                    continue

                raise

        raise RuntimeError("OpenAI: All retry attempts failed")

    async def complete(
        self,
        messages: List[Dict[str, str]],
        model: Optional[str] = None
    ) -> Optional[str]:
        """
        Generate a reply for an ordered list of chat messages.

        Args:
            messages: Message dicts with 'role' ('system', 'user' or
                      'assistant') and 'content'
            model: Override of the configured model name

        Returns:
            Generated text (may be None or empty if the model returned nothing)

        Raises:
            RuntimeError: If no provider is configured
            openai.OpenAIError: If the API call fails after retries
        """
        if self.client is None:
            raise RuntimeError("No completion provider configured")

        async def openai_call():
            response = await self.client.chat.completions.create(
                model=model or self.model,
                messages=messages
            )
            usage = getattr(response, "usage", None)
            if usage is not None:
                self.total_input_tokens += usage.prompt_tokens or 0
                self.total_output_tokens += usage.completion_tokens or 0
            if not response.choices:
                return None
            return response.choices[0].message.content

        result = await self._call_with_retry(openai_call)
        self.total_calls += 1
        logger.info(f"✓ OpenAI | Tokens: {self.total_input_tokens:,} input, {self.total_output_tokens:,} output")
        return result

    def get_usage_stats(self) -> Dict[str, Any]:
        """Cumulative call and token counters."""
        return {
            "calls": self.total_calls,
            "input_tokens": self.total_input_tokens,
            "output_tokens": self.total_output_tokens,
        }
