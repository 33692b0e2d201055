"""
OpenAI-compatible chat completion provider

Defaults to the GitHub Models inference endpoint, which speaks the OpenAI
chat-completions protocol and accepts a GitHub token as the API key. Any
other OpenAI-compatible endpoint works by changing the base URL.
"""
from openai import AsyncOpenAI
from typing import Optional, Dict, Any
import time

from remediator.errors import ConfigurationError, ModelError


class OpenAIProvider:
    """Chat-completions wrapper using the OpenAI SDK"""

    GITHUB_MODELS_URL = "https://models.github.ai/inference"
    DEFAULT_MODEL = "gpt-4.1-mini"

    def __init__(
        self,
        api_key: str,
        base_url: str = GITHUB_MODELS_URL,
        timeout: Optional[float] = None,
    ):
        """Initialize the async OpenAI client"""
        if not api_key:
            raise ConfigurationError("Model API token not configured")

        self.client = AsyncOpenAI(api_key=api_key, base_url=base_url, timeout=timeout)

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        model: str = DEFAULT_MODEL,
        temperature: float = 0.2,
        max_tokens: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Run one chat completion.

        Args:
            system_prompt: System message
            user_prompt: User message
            model: Model identifier understood by the endpoint
            temperature: Sampling temperature
            max_tokens: Maximum tokens to generate

        Returns:
            Dict with response text, tokens, latency, model used
        """
        start_time = time.time()

        kwargs: Dict[str, Any] = {}
        if max_tokens:
            kwargs["max_tokens"] = max_tokens

        try:
            response = await self.client.chat.completions.create(
                model=model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=temperature,
                **kwargs,
            )
        except Exception as e:
            raise ModelError(f"OpenAI-compatible API error: {str(e)}") from e

        latency_ms = int((time.time() - start_time) * 1000)
        text = (response.choices[0].message.content or "") if response.choices else ""
        usage = getattr(response, "usage", None)

        return {
            "text": text,
            "model": model,
            "latency_ms": latency_ms,
            "tokens_used": usage.total_tokens if usage else self._estimate_tokens(system_prompt + user_prompt, text),
        }

    def _estimate_tokens(self, prompt: str, response: str) -> int:
        """
        Rough token estimation (~4 chars per token)
        """
        total_chars = len(prompt) + len(response)
        return total_chars // 4
