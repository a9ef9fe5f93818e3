"""
Tests for the usage ledger.
"""
import os
import tempfile
import threading

import pytest

from creation_studio.core.errors import NoSession, Unauthorized
from creation_studio.core.usage_ledger import UsageLedger
from creation_studio.storage.models import UsageRecord
from creation_studio.storage.repository import UsageRepository, initialize_schema


class TestUsageLedger:
    """Test usage metering per owner."""

    def setup_method(self):
        """Set up test environment."""
        self.temp_dir = tempfile.mkdtemp()
        self.db_path = os.path.join(self.temp_dir, "test.db")
        initialize_schema(self.db_path)
        self.ledger = UsageLedger(UsageRepository(self.db_path))

    def teardown_method(self):
        """Clean up test environment."""
        import shutil
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_new_owner_starts_at_zero(self):
        """Verify absence of a record is not an error."""
        assert self.ledger.get_usage("owner") == UsageRecord("owner", 0, False)

    def test_increment_by_one(self):
        """Verify each increment adds exactly one."""
        assert self.ledger.increment_usage("owner") == 1
        assert self.ledger.increment_usage("owner") == 2
        assert self.ledger.get_usage("owner").generations_consumed == 2

    def test_owners_are_independent(self):
        """Verify increments don't leak across owners."""
        self.ledger.increment_usage("a")
        assert self.ledger.get_usage("b").generations_consumed == 0

    def test_upgrade(self):
        """Verify upgrade sets paid tier and keeps the counter."""
        self.ledger.increment_usage("owner")
        record = self.ledger.upgrade("owner")
        assert record.paid_tier is True
        assert record.generations_consumed == 1
        assert self.ledger.get_usage("owner").paid_tier is True

    def test_upgrade_is_sticky(self):
        """Verify later increments do not revert paid tier."""
        self.ledger.upgrade("owner")
        self.ledger.increment_usage("owner")
        assert self.ledger.get_usage("owner").paid_tier is True

    @pytest.mark.parametrize("owner_id", [None, ""])
    def test_requires_owner(self, owner_id):
        """Verify reads and increments need a resolved owner."""
        with pytest.raises(Unauthorized):
            self.ledger.get_usage(owner_id)
        with pytest.raises(Unauthorized):
            self.ledger.increment_usage(owner_id)

    def test_upgrade_requires_session(self):
        """Verify upgrade without an owner raises NoSession."""
        with pytest.raises(NoSession):
            self.ledger.upgrade(None)

    def test_concurrent_increments(self):
        """Verify threads sharing a ledger never lose increments."""
        def worker():
            for _ in range(10):
                self.ledger.increment_usage("owner")

        threads = [threading.Thread(target=worker) for _ in range(5)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert self.ledger.get_usage("owner").generations_consumed == 50

    def test_lock_table_does_not_grow(self):
        """Verify per-owner locks are released once no caller holds them."""
        for i in range(100):
            self.ledger.increment_usage(f"owner-{i}")

        assert len(self.ledger._locks) == 0

    def test_same_owner_shares_lock_while_held(self):
        """Verify callers for one owner get the same lock while it is in use."""
        lock = self.ledger._owner_lock("owner")
        assert self.ledger._owner_lock("owner") is lock
        assert self.ledger._owner_lock("other") is not lock
