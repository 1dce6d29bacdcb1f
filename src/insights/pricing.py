"""Token cost estimation.

Two estimators coexist:

* ``calculate_cost`` is the flat per-million rate used for period comparisons,
  where only token totals are known.
* ``PricingProvider.calculate_model_cost`` prices each token category of a
  specific model, used when the stats cache carries a per-model breakdown.

Both are estimates for display, not billing.
"""

from enum import StrEnum
from typing import NamedTuple

FLAT_RATE_PER_MILLION = 15.0
VERTEX_PREMIUM = 1.1


class ModelPricing(NamedTuple):
    """USD per 1M tokens."""

    input: float
    output: float
    cache_read: float
    cache_write: float

    def scaled(self, factor: float) -> "ModelPricing":
        return ModelPricing(*(price * factor for price in self))


# Anthropic list prices by normalized model tier
BASE_PRICING: dict[str, ModelPricing] = {
    "opus-4-5": ModelPricing(5.0, 25.0, 0.50, 6.25),
    "opus": ModelPricing(15.0, 75.0, 1.50, 18.75),
    "sonnet-4-5": ModelPricing(3.0, 15.0, 0.30, 3.75),
    "sonnet-3-5": ModelPricing(3.0, 15.0, 0.30, 3.75),
    "haiku-4-5": ModelPricing(1.0, 5.0, 0.10, 1.25),
    "haiku-3-5": ModelPricing(0.8, 4.0, 0.08, 1.0),
}
DEFAULT_TIER = "sonnet-4-5"


def normalize_model_name(model_id: str) -> str:
    """Map a model id (``claude-3-5-sonnet-20241022``, ``claude-opus-4-5``...) to a pricing tier."""
    name = model_id.lower()
    is_45 = "4-5" in name or "4.5" in name
    is_35 = "3-5" in name or "3.5" in name
    if "opus" in name:
        return "opus-4-5" if is_45 else "opus"
    if "sonnet" in name:
        if is_35:
            return "sonnet-3-5"
        return "sonnet-4-5"
    if "haiku" in name:
        if is_45:
            return "haiku-4-5"
        if is_35:
            return "haiku-3-5"
    return name


class PricingProvider(StrEnum):
    ANTHROPIC = "anthropic"
    AWS_BEDROCK = "aws_bedrock"
    GOOGLE_VERTEX = "google_vertex"

    @classmethod
    def from_tag(cls, tag: str | None) -> "PricingProvider":
        """Accept both ``google-vertex`` and ``google_vertex``; unknown tags price as Anthropic."""
        normalized = (tag or "").strip().lower().replace("-", "_")
        try:
            return cls(normalized)
        except ValueError:
            return cls.ANTHROPIC

    @property
    def display_name(self) -> str:
        return {
            PricingProvider.ANTHROPIC: "Anthropic",
            PricingProvider.AWS_BEDROCK: "AWS Bedrock",
            PricingProvider.GOOGLE_VERTEX: "Google Vertex AI",
        }[self]

    def pricing(self, model_id: str) -> ModelPricing:
        base = BASE_PRICING.get(normalize_model_name(model_id), BASE_PRICING[DEFAULT_TIER])
        if self is PricingProvider.GOOGLE_VERTEX:
            return base.scaled(VERTEX_PREMIUM)
        # Bedrock matches Anthropic list prices
        return base

    def calculate_model_cost(
        self,
        model_id: str,
        input_tokens: int,
        output_tokens: int,
        cache_read_tokens: int = 0,
        cache_write_tokens: int = 0,
    ) -> float:
        pricing = self.pricing(model_id)
        return (
            input_tokens / 1_000_000 * pricing.input
            + output_tokens / 1_000_000 * pricing.output
            + cache_read_tokens / 1_000_000 * pricing.cache_read
            + cache_write_tokens / 1_000_000 * pricing.cache_write
        )


def calculate_cost(tokens: float, provider: str | None) -> float:
    """Flat estimate: ``tokens / 1M * rate``, with the Vertex premium applied to its rate."""
    rate = FLAT_RATE_PER_MILLION
    if PricingProvider.from_tag(provider) is PricingProvider.GOOGLE_VERTEX:
        rate = 16.5
    return tokens / 1_000_000 * rate
