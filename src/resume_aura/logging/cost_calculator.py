"""Cost estimates for Gemini and Claude usage."""

from __future__ import annotations

# Pricing per 1M tokens (USD)
MODEL_PRICING: dict[str, dict[str, float]] = {
    "gemini-3-flash-preview": {"input": 0.50, "output": 3.00},
    "claude-haiku-4-5-20251001": {"input": 0.80, "output": 4.00},
}

# Flat price per generated image (USD)
IMAGE_PRICING: dict[str, float] = {
    "gemini-3-pro-image-preview": 0.134,
    "gemini-2.5-flash-image": 0.039,
}


def calculate_cost(
    calls: list[tuple[str, int, int]],
    images: list[str] | None = None,
) -> float:
    """Calculate total cost for a set of model calls and generated images.

    Args:
        calls: List of (model_id, input_tokens, output_tokens) tuples.
        images: Model ids of image generation calls, one entry per call.

    Returns:
        Total estimated cost in USD. Unknown models are not priced.
    """
    total = 0.0
    for model_id, input_tokens, output_tokens in calls:
        pricing = MODEL_PRICING.get(model_id)
        if pricing is None:
            continue
        total += (input_tokens / 1_000_000) * pricing["input"]
        total += (output_tokens / 1_000_000) * pricing["output"]
    for model_id in images or []:
        total += IMAGE_PRICING.get(model_id, 0.0)
    return total
