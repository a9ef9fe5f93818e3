"""
Token estimation for pricing.

Approximates token counts from character counts; no tokenizer involved.
"""

import math
from dataclasses import dataclass
from typing import Optional

CHARS_PER_TOKEN = 4


@dataclass(frozen=True)
class TokenEstimate:
    """Estimated request size in tokens.

    input_tokens is derived from the prompt and any existing content;
    output_tokens is a fixed assumption since generated artifacts are
    uniformly large.
    """
    input_tokens: int
    output_tokens: int

    @property
    def total_tokens(self) -> int:
        """Total estimated load (input + output)."""
        return self.input_tokens + self.output_tokens


def estimate_input_tokens(prompt_text: str, existing_content: Optional[str] = None) -> int:
    """Estimate input tokens as ceil(characters / 4)."""
    chars = len(prompt_text or "") + len(existing_content or "")
    return math.ceil(chars / CHARS_PER_TOKEN)
