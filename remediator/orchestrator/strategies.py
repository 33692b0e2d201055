"""
Execution strategy and provider routing

Two strategies:
1. plan_execute → Planner, step-by-step Executor, Patch Synthesizer
2. propose      → single model call returning reasoning + patches

Provider is chosen from the model id: Gemini models go to Google,
everything else to the OpenAI-compatible endpoint.
"""
from enum import Enum


class StrategyType(str, Enum):
    """Execution strategy types"""
    PLAN_EXECUTE = "plan_execute"
    PROPOSE = "propose"


# Provider constants
PROVIDER_OPENAI = "openai"
PROVIDER_GEMINI = "gemini"

# Model-id prefixes served by the Google API directly
GEMINI_PREFIXES = ("gemini-", "models/gemini-")


def select_provider(model: str) -> str:
    """Pick the provider that serves a model id"""
    if model.lower().startswith(GEMINI_PREFIXES):
        return PROVIDER_GEMINI
    return PROVIDER_OPENAI
