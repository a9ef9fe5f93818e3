"""
Data models for storage layer.

Defines persisted records for usage metering and saved artifacts.
"""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class UsageRecord:
    """Per-owner usage counters.

    generations_consumed never decreases; paid_tier only moves from
    False to True through a confirmed payment.
    """
    owner_id: str
    generations_consumed: int = 0
    paid_tier: bool = False


@dataclass(frozen=True)
class Artifact:
    """A generated single-page web artifact.

    Edits produce a new Artifact with the same id and new content.
    """
    id: str
    name: str
    content: str
    updated_at: datetime
