"""
Model client — single entry point for every completion the agent makes

Routes to the provider that serves the configured model and exposes two
calls: `complete` (raw text, used by planner/executor/synthesizer) and
`generate` (one-shot reasoning + patches, used by the propose strategy).

A token of "dummy" skips the network entirely, for local runs and CI.
"""
from typing import Dict, Any, Optional
import logging

from pydantic import ValidationError

from remediator.agent.parsing import extract_json
from remediator.errors import ModelError
from remediator.models import FilePatch, ModelResponse, PatchAction
from remediator.orchestrator import strategies

logger = logging.getLogger(__name__)

DUMMY_TOKEN = "dummy"

GENERATE_SUFFIX = (
    "\n\nReturn a JSON object in a fenced code block with keys reasoning and "
    "patches (array of {file, action, content})."
)


class ModelClient:
    """Provider-agnostic completion client"""

    def __init__(
        self,
        model: str,
        api_token: str = "",
        endpoint: Optional[str] = None,
        google_api_key: str = "",
        temperature: float = 0.2,
        timeout: Optional[float] = None,
    ):
        self.model = model
        self.api_token = api_token
        self.endpoint = endpoint
        self.google_api_key = google_api_key
        self.temperature = temperature
        self.timeout = timeout
        self._provider = None

    @classmethod
    def from_settings(cls, settings) -> "ModelClient":
        return cls(
            model=settings.MODEL,
            api_token=settings.model_token,
            endpoint=settings.MODEL_ENDPOINT,
            google_api_key=settings.GOOGLE_API_KEY,
            temperature=settings.MODEL_TEMPERATURE,
            timeout=settings.MODEL_TIMEOUT_SECONDS,
        )

    @property
    def dummy(self) -> bool:
        return self.api_token == DUMMY_TOKEN

    def _get_provider(self):
        """Build the provider for the configured model on first use"""
        if self._provider is None:
            if strategies.select_provider(self.model) == strategies.PROVIDER_GEMINI:
                from remediator.orchestrator.gemini_provider import GeminiProvider
                self._provider = GeminiProvider(self.google_api_key, timeout=self.timeout)
            else:
                from remediator.orchestrator.openai_provider import OpenAIProvider
                self._provider = OpenAIProvider(
                    self.api_token,
                    base_url=self.endpoint or OpenAIProvider.GITHUB_MODELS_URL,
                    timeout=self.timeout,
                )
        return self._provider

    async def complete(self, system_prompt: str, user_prompt: str) -> Dict[str, Any]:
        """
        Run one completion.

        Returns:
            Dict with text, model, latency_ms, tokens_used

        Raises:
            ModelError: the provider call failed
        """
        if self.dummy:
            return {
                "text": "Local test mode; skipping real model call.",
                "model": self.model,
                "latency_ms": 0,
                "tokens_used": 0,
            }
        return await self._get_provider().generate(
            system_prompt=system_prompt,
            user_prompt=user_prompt,
            model=self.model,
            temperature=self.temperature,
        )

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        model: Optional[str] = None,
    ) -> ModelResponse:
        """
        One-shot proposal: reasoning plus patches.

        Raises:
            ModelError: the call failed or the answer is not a valid proposal
        """
        if self.dummy:
            return ModelResponse(
                reasoning="Local test mode; skipping real model call.",
                patches=[
                    FilePatch(file="scripts/cleanup.sh", action=PatchAction.CREATE, content="#!/bin/bash\necho test\n")
                ],
            )

        if model and model != self.model:
            client = ModelClient(
                model=model,
                api_token=self.api_token,
                endpoint=self.endpoint,
                google_api_key=self.google_api_key,
                temperature=self.temperature,
                timeout=self.timeout,
            )
            return await client.generate(system_prompt, user_prompt)

        result = await self.complete(system_prompt, user_prompt + GENERATE_SUFFIX)
        try:
            data = extract_json(result["text"], "{")
            return ModelResponse.model_validate(data)
        except (ValueError, ValidationError) as e:
            raise ModelError(f"Model returned an invalid proposal: {e}") from e
