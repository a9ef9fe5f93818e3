"""
Dynamic pricing for gated generation requests.

Computes a price quote and complexity tier from the size of a request.
Pure and deterministic: no clock, no randomness, no storage access.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Optional

from .token_counter import TokenEstimate, estimate_input_tokens

PER_MILLION = Decimal("1000000")


class ComplexityTier(Enum):
    """Coarse request-size classification, ordered by size."""
    STANDARD = "Standard"
    DEEP = "Deep"
    ELITE = "Elite"


@dataclass(frozen=True)
class CostModel:
    """Fixed cost model used to price a request.

    Rates are currency units per million estimated tokens.
    """
    input_rate: Decimal = Decimal("1.25")
    output_rate: Decimal = Decimal("5.00")
    output_units: int = 20000
    volatility_buffer: Decimal = Decimal("1.25")
    margin_multiplier: Decimal = Decimal("3.5")
    overhead: Decimal = Decimal("0.45")
    price_floor: Decimal = Decimal("2.99")
    deep_threshold: int = 8000
    elite_threshold: int = 25000

    def __post_init__(self):
        """Validate the cost model is internally consistent."""
        if self.input_rate <= 0 or self.output_rate <= 0:
            raise ValueError("rates must be > 0")
        if self.output_units < 0:
            raise ValueError("output_units must be >= 0")
        if self.volatility_buffer <= 0 or self.margin_multiplier <= 0:
            raise ValueError("volatility_buffer and margin_multiplier must be > 0")
        if self.overhead < 0 or self.price_floor < 0:
            raise ValueError("overhead and price_floor must be >= 0")
        if not 0 < self.deep_threshold < self.elite_threshold:
            raise ValueError("tier thresholds must satisfy 0 < deep_threshold < elite_threshold")

    def classify(self, input_tokens: int) -> ComplexityTier:
        """Classify a request by estimated input tokens.

        The tier never decreases as input_tokens increases.
        """
        if input_tokens >= self.elite_threshold:
            return ComplexityTier.ELITE
        if input_tokens >= self.deep_threshold:
            return ComplexityTier.DEEP
        return ComplexityTier.STANDARD


DEFAULT_COST_MODEL = CostModel()


@dataclass(frozen=True)
class CostBreakdown:
    """Display details behind a price quote."""
    estimated_tokens: int
    margin_percent: int
    buffer_label: str


@dataclass(frozen=True)
class PriceQuote:
    """Advisory price for one pending access decision. Never persisted."""
    amount: float
    complexity_tier: ComplexityTier
    cost_breakdown: CostBreakdown


def raw_cost(estimate: TokenEstimate, model: CostModel = DEFAULT_COST_MODEL) -> Decimal:
    """Provider cost of a request before buffer, margin and overhead."""
    input_cost = (Decimal(estimate.input_tokens) / PER_MILLION) * model.input_rate
    output_cost = (Decimal(estimate.output_tokens) / PER_MILLION) * model.output_rate
    return input_cost + output_cost


def quote(
    prompt_text: str,
    existing_content: Optional[str] = None,
    model: CostModel = DEFAULT_COST_MODEL
) -> PriceQuote:
    """Compute the price quote for a request.

    protected = raw * volatility_buffer * margin_multiplier + overhead
    amount = max(price_floor, protected), rounded to 2 decimal places

    Args:
        prompt_text: Instruction or prompt being priced
        existing_content: Current artifact content, if the request edits one
        model: Cost model to price against

    Returns:
        PriceQuote for this exact request size
    """
    estimate = TokenEstimate(
        input_tokens=estimate_input_tokens(prompt_text, existing_content),
        output_tokens=model.output_units
    )

    protected = raw_cost(estimate, model) * model.volatility_buffer * model.margin_multiplier + model.overhead
    final = max(model.price_floor, protected)
    amount = final.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)

    margin_percent = int(((model.margin_multiplier - 1) * 100).to_integral_value(rounding=ROUND_HALF_UP))
    buffer_percent = int(((model.volatility_buffer - 1) * 100).to_integral_value(rounding=ROUND_HALF_UP))

    return PriceQuote(
        amount=float(amount),
        complexity_tier=model.classify(estimate.input_tokens),
        cost_breakdown=CostBreakdown(
            estimated_tokens=estimate.total_tokens,
            margin_percent=margin_percent,
            buffer_label=f"{buffer_percent}% volatility buffer"
        )
    )
