"""
Creation lifecycle and undo/history state machine.

Owns the active artifact, its bounded undo history and the history list,
and keeps them consistent with durable storage across asynchronous
transform calls.

Lifecycle:
1. Authorize - the access gate admits or denies before any state changes
2. Transform - the only suspension point; the machine is busy meanwhile
3. Commit - usage is incremented, then active artifact, undo stack and
   history list are updated together, then the result is persisted

A result that resolves after the user selected another artifact or reset
is discarded rather than applied to the wrong artifact.
"""

import logging
import uuid
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum, auto
from typing import Awaitable, Callable, List, Optional

from .access_gate import AccessGate, Decision
from .errors import (
    ArtifactNotFound,
    ConcurrentOperationRejected,
    NoActiveArtifact,
    TransformFailure,
)
from .session import Session
from .transform import (
    COMPONENT_INJECTION_PROMPT,
    ImageInput,
    TransformService,
    action_instruction,
    component_instruction,
    derive_artifact_name,
)
from .undo import DEFAULT_UNDO_CAPACITY, UndoStack
from creation_studio.storage.local_cache import LocalHistoryCache
from creation_studio.storage.models import Artifact
from creation_studio.storage.repository import ArtifactRepository

logger = logging.getLogger(__name__)


class CreationStatus(Enum):
    """How a create or edit call ended."""
    COMMITTED = auto()  # New content is active, recorded and persisted
    DENIED = auto()     # Access gate refused; see decision.reason
    EMPTY = auto()      # Transform produced no artifact
    DISCARDED = auto()  # Result arrived after the user moved on


@dataclass(frozen=True)
class CreationResult:
    """Outcome of a gated create or edit call."""
    status: CreationStatus
    decision: Decision
    artifact: Optional[Artifact] = None

    @property
    def committed(self) -> bool:
        return self.status == CreationStatus.COMMITTED


@dataclass(frozen=True)
class _Ticket:
    """Identifies one in-flight operation for the staleness check."""
    sequence: int
    owner_id: Optional[str]


class CreationStateMachine:
    """Single owner of mutable creation state for one session.

    The busy flag is the only concurrency control: a mutating call made
    while another is in flight raises ConcurrentOperationRejected.
    select() and reset() stay available while busy; they advance the
    request sequence so the in-flight result is discarded on arrival.
    """

    def __init__(
        self,
        session: Session,
        gate: AccessGate,
        transform: TransformService,
        artifact_repository: Optional[ArtifactRepository] = None,
        local_cache: Optional[LocalHistoryCache] = None,
        undo_capacity: int = DEFAULT_UNDO_CAPACITY,
        clock: Callable[[], datetime] = datetime.now,
        id_factory: Callable[[], str] = lambda: uuid.uuid4().hex
    ):
        self.session = session
        self.gate = gate
        self.transform = transform
        self.artifact_repository = artifact_repository
        self.local_cache = local_cache
        self._clock = clock
        self._id_factory = id_factory

        self._active: Optional[Artifact] = None
        self._undo = UndoStack(undo_capacity)
        self._history: List[Artifact] = []
        self._busy = False
        self._sequence = 0

    @property
    def active_artifact(self) -> Optional[Artifact]:
        return self._active

    @property
    def history(self) -> List[Artifact]:
        """History list, newest first (a copy)."""
        return list(self._history)

    @property
    def busy(self) -> bool:
        return self._busy

    @property
    def can_undo(self) -> bool:
        return len(self._undo) > 0

    @property
    def undo_depth(self) -> int:
        return len(self._undo)

    def undo_snapshots(self) -> List[str]:
        """Undo frames from oldest to newest."""
        return self._undo.snapshots()

    def load_history(self) -> List[Artifact]:
        """Populate the history list from storage.

        Signed-in sessions read the artifact repository; anonymous ones
        read the local cache.
        """
        self._ensure_idle()
        owner_id = self.session.current_owner_id()
        if owner_id and self.artifact_repository is not None:
            self._history = self.artifact_repository.list_by_owner(owner_id)
        elif not owner_id and self.local_cache is not None:
            self._history = self.local_cache.load()
        else:
            self._history = []
        return self.history

    async def create(self, prompt_text: str, image: Optional[ImageInput] = None) -> CreationResult:
        """Generate a new artifact from a prompt, URL or screenshot.

        Returns:
            CreationResult; DENIED leaves all state untouched

        Raises:
            ConcurrentOperationRejected: If another operation is in flight
            TransformFailure: If generation failed; no artifact is active
        """
        ticket = self._begin()
        try:
            decision = self.gate.authorize(ticket.owner_id, prompt_text)
            if not decision.admitted:
                return CreationResult(CreationStatus.DENIED, decision)

            self._active = None
            self._undo.clear()

            content = await self._call_transform(lambda: self.transform.generate(prompt_text, image))

            if self._is_stale(ticket):
                logger.info("Discarding generated artifact: session moved on")
                return CreationResult(CreationStatus.DISCARDED, decision)
            if not content:
                logger.info("Transform produced no artifact")
                return CreationResult(CreationStatus.EMPTY, decision)

            self._record_usage(ticket)
            artifact = Artifact(
                id=self._id_factory(),
                name=derive_artifact_name(prompt_text, image),
                content=content,
                updated_at=self._clock()
            )
            self._active = artifact
            self._history.insert(0, artifact)
            self._persist(ticket.owner_id, artifact)
            return CreationResult(CreationStatus.COMMITTED, decision, artifact)
        finally:
            self._busy = False

    async def edit(self, instruction: str) -> CreationResult:
        """Refine the active artifact with a free-form instruction.

        Raises:
            NoActiveArtifact: If nothing is active
            ConcurrentOperationRejected: If another operation is in flight
            TransformFailure: If refinement failed; content is unchanged
        """
        return await self._run_edit(
            instruction,
            lambda content: self.transform.refine(content, instruction)
        )

    async def insert_component(self, description: str) -> CreationResult:
        """Generate a component and integrate it into the active artifact."""
        async def produce(content: str) -> str:
            snippet = await self.transform.generate_component(description)
            return await self.transform.refine(content, component_instruction(snippet))

        return await self._run_edit(COMPONENT_INJECTION_PROMPT, produce)

    async def run_action(self, action: str, artifact_id: Optional[str] = None) -> CreationResult:
        """Run a named archive action (remix, analyze, roadmap, ...).

        When artifact_id names a different artifact, it becomes active
        (clearing undo) once the action is admitted.
        """
        instruction = action_instruction(action)
        return await self._run_edit(
            f"action-{action}",
            lambda content: self.transform.refine(content, instruction),
            target_id=artifact_id
        )

    def undo(self) -> Optional[Artifact]:
        """Restore the newest undo frame. No-op when the stack is empty.

        Never gated and never calls the transform service.

        Raises:
            ConcurrentOperationRejected: If an operation is in flight
        """
        self._ensure_idle()
        if self._active is None:
            return None
        previous = self._undo.pop()
        if previous is None:
            return self._active

        self._apply_content(self._active, previous)
        self._persist(self.session.current_owner_id(), self._active)
        return self._active

    def replace_content(self, content: str) -> Artifact:
        """Apply a direct manual edit to the active artifact (ungated)."""
        self._ensure_idle()
        if self._active is None:
            raise NoActiveArtifact("No active artifact to update")

        self._undo.push(self._active.content)
        self._apply_content(self._active, content)
        self._persist(self.session.current_owner_id(), self._active)
        return self._active

    def select(self, artifact_id: str) -> Artifact:
        """Make a history entry active. Undo history does not carry over."""
        artifact = self._find(artifact_id)
        self._sequence += 1
        self._active = artifact
        self._undo.clear()
        return artifact

    def reset(self) -> None:
        """Clear the active artifact; the history list is kept."""
        self._sequence += 1
        self._active = None
        self._undo.clear()

    async def _run_edit(
        self,
        gate_prompt: str,
        produce: Callable[[str], Awaitable[str]],
        target_id: Optional[str] = None
    ) -> CreationResult:
        self._ensure_idle()
        if target_id is None and self._active is None:
            raise NoActiveArtifact("No active artifact to edit")

        ticket = self._begin()
        try:
            target = self._active if target_id is None else self._find(target_id)
            if target is None:
                raise NoActiveArtifact("No active artifact to edit")

            decision = self.gate.authorize(ticket.owner_id, gate_prompt, target.content)
            if not decision.admitted:
                return CreationResult(CreationStatus.DENIED, decision)

            if self._active is None or self._active.id != target.id:
                self._undo.clear()
            self._active = target

            content = await self._call_transform(lambda: produce(target.content))

            if self._is_stale(ticket) or self._active is None or self._active.id != target.id:
                logger.info("Discarding edit for %s: active artifact changed", target.id)
                return CreationResult(CreationStatus.DISCARDED, decision)

            self._record_usage(ticket)
            self._undo.push(self._active.content)
            self._apply_content(self._active, content)
            self._persist(ticket.owner_id, self._active)
            return CreationResult(CreationStatus.COMMITTED, decision, self._active)
        finally:
            self._busy = False

    def _begin(self) -> _Ticket:
        self._ensure_idle()
        self._busy = True
        self._sequence += 1
        return _Ticket(sequence=self._sequence, owner_id=self.session.current_owner_id())

    def _ensure_idle(self) -> None:
        if self._busy:
            logger.warning("Rejected operation: another operation is in progress")
            raise ConcurrentOperationRejected()

    def _is_stale(self, ticket: _Ticket) -> bool:
        return ticket.sequence != self._sequence

    async def _call_transform(self, call: Callable[[], Awaitable[str]]) -> str:
        try:
            return await call()
        except TransformFailure:
            logger.warning("Transform failed", exc_info=True)
            raise
        except Exception as e:
            logger.warning("Transform failed", exc_info=True)
            raise TransformFailure(str(e)) from e

    def _record_usage(self, ticket: _Ticket) -> None:
        if ticket.owner_id:
            self.gate.ledger.increment_usage(ticket.owner_id)

    def _apply_content(self, artifact: Artifact, content: str) -> None:
        """Update the active artifact and its history entry together."""
        updated = replace(artifact, content=content, updated_at=self._clock())
        self._active = updated
        for index, entry in enumerate(self._history):
            if entry.id == updated.id:
                self._history[index] = updated
                break
        else:
            self._history.insert(0, updated)

    def _find(self, artifact_id: str) -> Artifact:
        for entry in self._history:
            if entry.id == artifact_id:
                return entry
        raise ArtifactNotFound(artifact_id)

    def _persist(self, owner_id: Optional[str], artifact: Artifact) -> None:
        if owner_id and self.artifact_repository is not None:
            self.artifact_repository.put(owner_id, artifact)
        elif not owner_id and self.local_cache is not None:
            self.local_cache.save(self._history)
