"""Orchestrator package initialization"""
from remediator.orchestrator.orchestrator import Orchestrator, RunOutcome, run_remediation
from remediator.orchestrator.model_client import ModelClient
from remediator.orchestrator.gemini_provider import GeminiProvider
from remediator.orchestrator.openai_provider import OpenAIProvider
from remediator.orchestrator import strategies

__all__ = [
    "Orchestrator", "RunOutcome", "run_remediation",
    "ModelClient",
    "GeminiProvider",
    "OpenAIProvider",
    "strategies"
]
