"""OpenRouter model catalog with an offline fallback."""

from typing import Any, Dict, List, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field

from utils.logging import logger

MODELS_PATH = "/models"

# Models listed first, matched case-insensitively against the model id
POPULAR_MODELS = ["gpt-4o", "gpt-4", "claude-3.5-sonnet", "claude-3", "gemini", "llama-3.1"]

PROVIDERS = [
    ("openai", "OpenAI"),
    ("anthropic", "Anthropic"),
    ("google", "Google"),
    ("meta", "Meta"),
    ("mistral", "Mistral"),
    ("cohere", "Cohere"),
]


class ModelPricing(BaseModel):
    """Per-token prices, as decimal strings in USD."""

    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    prompt: str = "0"
    completion: str = "0"


class ModelInfo(BaseModel):
    """A selectable model."""

    id: str
    name: str
    description: str = ""
    pricing: Optional[ModelPricing] = None
    context_length: Optional[int] = None
    architecture: Optional[Dict[str, Any]] = None


DEFAULT_MODELS: List[ModelInfo] = [
    ModelInfo(
        id="openai/gpt-4o",
        name="GPT-4o",
        description="OpenAI's most advanced multimodal flagship model",
        pricing=ModelPricing(prompt="0.000005", completion="0.000015"),
        context_length=128000,
    ),
    ModelInfo(
        id="openai/gpt-4o-mini",
        name="GPT-4o Mini",
        description="Affordable and intelligent small model for fast, lightweight tasks",
        pricing=ModelPricing(prompt="0.00000015", completion="0.0000006"),
        context_length=128000,
    ),
    ModelInfo(
        id="anthropic/claude-3.5-sonnet",
        name="Claude 3.5 Sonnet",
        description="Most intelligent model by Anthropic",
        pricing=ModelPricing(prompt="0.000003", completion="0.000015"),
        context_length=200000,
    ),
    ModelInfo(
        id="anthropic/claude-3-haiku",
        name="Claude 3 Haiku",
        description="Fastest and most compact model for near-instant responsiveness",
        pricing=ModelPricing(prompt="0.00000025", completion="0.00000125"),
        context_length=200000,
    ),
    ModelInfo(
        id="google/gemini-pro-1.5",
        name="Gemini Pro 1.5",
        description="Google's most capable multimodal model",
        pricing=ModelPricing(prompt="0.00000125", completion="0.000005"),
        context_length=1000000,
    ),
    ModelInfo(
        id="meta-llama/llama-3.1-8b-instruct",
        name="Llama 3.1 8B",
        description="Meta's efficient open-source model",
        pricing=ModelPricing(prompt="0.00000018", completion="0.00000018"),
        context_length=131072,
    ),
]


def is_popular(model_id: str) -> bool:
    model_id = model_id.lower()
    return any(popular in model_id for popular in POPULAR_MODELS)


def sort_models(models: List[ModelInfo]) -> List[ModelInfo]:
    """Popular models first, then alphabetically by name."""
    return sorted(models, key=lambda m: (not is_popular(m.id), m.name.lower()))


def normalize_model(raw: Dict[str, Any]) -> ModelInfo:
    return ModelInfo(
        id=raw["id"],
        name=raw.get("name") or raw["id"],
        description=raw.get("description") or "",
        pricing=raw.get("pricing"),
        context_length=raw.get("context_length"),
        architecture=raw.get("architecture"),
    )


def format_price(price: str) -> str:
    num = float(price)
    if num < 0.000001:
        return f"${num * 1000000:.2f}/1M tokens"
    if num < 0.001:
        return f"${num * 1000:.3f}/1K tokens"
    return f"${num:.6f}/token"


def provider_of(model_id: str) -> str:
    for needle, provider in PROVIDERS:
        if needle in model_id:
            return provider
    return "Other"


def filter_models(models: List[ModelInfo], query: str) -> List[ModelInfo]:
    query = (query or "").strip().lower()
    if not query:
        return list(models)
    return [m for m in models if query in m.name.lower() or query in m.id.lower() or query in m.description.lower()]


class ModelCatalog:
    """Fetches the upstream model list. The endpoint needs no API key."""

    def __init__(self, http_client: httpx.AsyncClient, timeout: float = 10.0):
        self.http_client = http_client
        self.timeout = timeout

    async def list_models(self) -> List[ModelInfo]:
        """Return the upstream catalog, or the static default catalog if it is unavailable."""
        try:
            response = await self.http_client.get(MODELS_PATH, timeout=self.timeout)
            response.raise_for_status()
            models = [normalize_model(raw) for raw in response.json()["data"]]
            logger.debug(f"Fetched {len(models)} models from OpenRouter")
            return sort_models(models)
        except Exception as e:
            logger.error(f"Failed to fetch models from OpenRouter, using defaults: {str(e)}")
            return list(DEFAULT_MODELS)
