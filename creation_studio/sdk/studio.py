"""
Wiring for a ready-to-use creation session.

Builds the ledger, gate, repositories and transform service from a
StudioConfig and hands back a state machine bound to one session.
"""

from typing import Optional

from ..config.loader import StudioConfig, default_studio_config
from ..core.access_gate import AccessGate
from ..core.creation import CreationStateMachine
from ..core.session import open_session
from ..core.transform import TransformService
from ..core.usage_ledger import UsageLedger
from ..storage.local_cache import LocalHistoryCache
from ..storage.repository import ArtifactRepository, UsageRepository, initialize_schema
from .openai_client import OpenAITransformService


def open_studio(
    owner_id: Optional[str] = None,
    config: Optional[StudioConfig] = None,
    transform: Optional[TransformService] = None
) -> CreationStateMachine:
    """Open a session and return its creation state machine.

    The database schema is created if missing and the history list is
    loaded before returning.

    Args:
        owner_id: Signed-in owner, or None for an anonymous session
        config: Studio configuration (defaults when omitted)
        transform: Transform service (OpenAI-backed when omitted)

    Returns:
        CreationStateMachine with history loaded
    """
    config = config or default_studio_config()
    db_path = config.storage.db_path
    initialize_schema(db_path)

    gate = AccessGate(
        UsageLedger(UsageRepository(db_path)),
        cost_model=config.pricing,
        free_generations=config.quota.free_generations
    )
    if transform is None:
        transform = OpenAITransformService(
            model=config.transform.model,
            temperature=config.transform.temperature,
            min_refine_length=config.transform.min_refine_length
        )

    machine = CreationStateMachine(
        session=open_session(owner_id),
        gate=gate,
        transform=transform,
        artifact_repository=ArtifactRepository(db_path),
        local_cache=LocalHistoryCache(config.storage.local_cache_path, config.history.local_cache_limit),
        undo_capacity=config.history.undo_capacity
    )
    machine.load_history()
    return machine
