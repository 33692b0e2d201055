"""
Google Gemini LLM provider wrapper

Used when the configured model id is a Gemini model (gemini-*).
"""
from google import genai
from typing import Optional, Dict, Any
import time

from remediator.errors import ConfigurationError, ModelError


class GeminiProvider:
    """Google Gemini API wrapper"""

    FLASH_2_5 = "gemini-2.5-flash"

    def __init__(self, api_key: str, timeout: Optional[float] = None):
        """Initialize Gemini client"""
        if not api_key:
            raise ConfigurationError("Google API key not configured")

        http_options = {"timeout": int(timeout * 1000)} if timeout else None
        self.client = genai.Client(api_key=api_key, http_options=http_options)

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        model: str = FLASH_2_5,
        temperature: float = 0.2,
        max_tokens: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Generate content using Gemini models

        Args:
            system_prompt: System instruction
            user_prompt: Input prompt
            model: Gemini model to use
            temperature: Sampling temperature (0.0 - 1.0)
            max_tokens: Maximum tokens to generate

        Returns:
            Dict with response text, tokens, latency, model used
        """
        start_time = time.time()

        config = {
            "temperature": temperature,
            "system_instruction": system_prompt,
        }
        if max_tokens:
            config["max_output_tokens"] = max_tokens

        try:
            response = await self.client.aio.models.generate_content(
                model=model,
                contents=user_prompt,
                config=config,
            )
        except Exception as e:
            raise ModelError(f"Gemini API error: {str(e)}") from e

        latency_ms = int((time.time() - start_time) * 1000)
        text = response.text or ""

        return {
            "text": text,
            "model": model,
            "latency_ms": latency_ms,
            "tokens_used": self._estimate_tokens(system_prompt + user_prompt, text),
        }

    def _estimate_tokens(self, prompt: str, response: str) -> int:
        """
        Rough token estimation (Gemini uses ~4 chars per token)
        """
        total_chars = len(prompt) + len(response)
        return total_chars // 4
