"""
Usage ledger for free-quota metering.

Tracks generations consumed and paid-tier status per owner.
"""

import logging
import threading
import weakref
from typing import Optional

from .errors import NoSession, Unauthorized
from creation_studio.storage.models import UsageRecord
from creation_studio.storage.repository import UsageRepository

logger = logging.getLogger(__name__)


class UsageLedger:
    """Per-owner usage counters backed by a UsageRepository.

    Increments for the same owner are serialized by a per-owner lock on
    top of the repository's own write transaction; different owners
    share no mutable state beyond the lock table.
    """

    def __init__(self, repository: UsageRepository):
        self.repository = repository
        # Entries live only while some caller holds the lock object
        self._locks: "weakref.WeakValueDictionary[str, threading.Lock]" = weakref.WeakValueDictionary()
        self._locks_guard = threading.Lock()

    def _owner_lock(self, owner_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(owner_id)
            if lock is None:
                lock = self._locks[owner_id] = threading.Lock()
            return lock

    @staticmethod
    def _require_owner(owner_id: Optional[str], error=Unauthorized) -> str:
        if not owner_id:
            raise error("No owner is signed in")
        return owner_id

    def get_usage(self, owner_id: Optional[str]) -> UsageRecord:
        """Read an owner's usage; unknown owners start at zero.

        Raises:
            Unauthorized: If owner_id is not resolved
        """
        owner_id = self._require_owner(owner_id)
        record = self.repository.get(owner_id)
        if record is None:
            return UsageRecord(owner_id=owner_id)
        return record

    def increment_usage(self, owner_id: Optional[str]) -> int:
        """Add exactly one generation to an owner's counter.

        Returns:
            The new counter value

        Raises:
            Unauthorized: If owner_id is not resolved
        """
        owner_id = self._require_owner(owner_id)
        with self._owner_lock(owner_id):
            new_count = self.repository.increment(owner_id)
        logger.info("Usage for %s is now %d generation(s)", owner_id, new_count)
        return new_count

    def upgrade(self, owner_id: Optional[str]) -> UsageRecord:
        """Move an owner to the paid tier. Never reverts automatically.

        Raises:
            NoSession: If owner_id is not resolved
        """
        owner_id = self._require_owner(owner_id, NoSession)
        with self._owner_lock(owner_id):
            record = self.repository.set_paid_tier(owner_id)
        logger.info("Owner %s upgraded to paid tier", owner_id)
        return record
