"""
Unit tests for storage layer.

Tests schema creation, usage counters, saved artifacts and the local cache.
"""

import json
import os
import tempfile
import threading
from datetime import datetime, timedelta

import pytest

from creation_studio.storage.db import get_connection
from creation_studio.storage.local_cache import LocalHistoryCache
from creation_studio.storage.models import Artifact, UsageRecord
from creation_studio.storage.repository import (
    ArtifactRepository,
    UsageRepository,
    initialize_schema,
)


def make_artifact(artifact_id="a1", content="<html></html>", updated_at=None, name="Neural Artifact"):
    return Artifact(
        id=artifact_id,
        name=name,
        content=content,
        updated_at=updated_at or datetime(2024, 1, 1, 12, 0, 0)
    )


class TestStorageSchema:
    """Test database schema creation and structure."""

    def test_schema_creation(self):
        """Verify tables are created correctly."""
        with tempfile.TemporaryDirectory() as temp_dir:
            db_path = os.path.join(temp_dir, "test.db")
            initialize_schema(db_path)

            conn = get_connection(db_path)
            try:
                cursor = conn.execute("""
                    SELECT name FROM sqlite_master
                    WHERE type='table' ORDER BY name
                """)
                tables = [row[0] for row in cursor.fetchall()]
                assert tables == ["saved_artifact", "usage_record"]

                cursor = conn.execute("PRAGMA table_info(usage_record)")
                column_names = [col[1] for col in cursor.fetchall()]
                assert column_names == ["owner_id", "generations_consumed", "paid_tier"]
            finally:
                conn.close()

    def test_schema_creation_is_idempotent(self):
        """Verify initializing twice keeps existing data."""
        with tempfile.TemporaryDirectory() as temp_dir:
            db_path = os.path.join(temp_dir, "test.db")
            initialize_schema(db_path)
            UsageRepository(db_path).increment("owner")
            initialize_schema(db_path)
            assert UsageRepository(db_path).get("owner").generations_consumed == 1


class TestUsageRepository:
    """Test usage record persistence."""

    def setup_method(self):
        """Set up test environment."""
        self.temp_dir = tempfile.mkdtemp()
        self.db_path = os.path.join(self.temp_dir, "test.db")
        initialize_schema(self.db_path)
        self.repository = UsageRepository(self.db_path)

    def teardown_method(self):
        """Clean up test environment."""
        import shutil
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_get_missing_owner(self):
        """Verify an unknown owner has no record."""
        assert self.repository.get("nobody") is None

    def test_put_and_get(self):
        """Verify put is an idempotent upsert."""
        record = UsageRecord(owner_id="owner", generations_consumed=3, paid_tier=True)
        self.repository.put(record)
        self.repository.put(record)
        assert self.repository.get("owner") == record

    def test_increment_creates_record(self):
        """Verify the first increment materializes the record."""
        assert self.repository.increment("owner") == 1
        assert self.repository.increment("owner") == 2
        assert self.repository.get("owner") == UsageRecord("owner", 2, False)

    def test_set_paid_tier_keeps_counter(self):
        """Verify upgrading keeps generations consumed."""
        self.repository.increment("owner")
        record = self.repository.set_paid_tier("owner")
        assert record == UsageRecord("owner", 1, True)

    def test_set_paid_tier_new_owner(self):
        """Verify upgrading an unknown owner creates a paid record."""
        assert self.repository.set_paid_tier("fresh") == UsageRecord("fresh", 0, True)

    def test_concurrent_increments_not_lost(self):
        """Verify racing increments for one owner all land."""
        def worker():
            for _ in range(10):
                UsageRepository(self.db_path).increment("owner")

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert self.repository.get("owner").generations_consumed == 40


class TestArtifactRepository:
    """Test saved artifact persistence."""

    def setup_method(self):
        """Set up test environment."""
        self.temp_dir = tempfile.mkdtemp()
        self.db_path = os.path.join(self.temp_dir, "test.db")
        initialize_schema(self.db_path)
        self.repository = ArtifactRepository(self.db_path)

    def teardown_method(self):
        """Clean up test environment."""
        import shutil
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_put_and_list(self):
        """Verify artifacts round-trip through the database."""
        artifact = make_artifact()
        self.repository.put("owner", artifact)
        assert self.repository.list_by_owner("owner") == [artifact]

    def test_list_filters_by_owner(self):
        """Verify owners only see their own artifacts."""
        self.repository.put("owner", make_artifact("a1"))
        self.repository.put("other", make_artifact("a2"))
        assert [a.id for a in self.repository.list_by_owner("owner")] == ["a1"]
        assert self.repository.list_by_owner("nobody") == []

    def test_list_newest_first(self):
        """Verify artifacts are listed newest first."""
        base = datetime(2024, 1, 1)
        self.repository.put("owner", make_artifact("old", updated_at=base))
        self.repository.put("owner", make_artifact("new", updated_at=base + timedelta(hours=1)))
        assert [a.id for a in self.repository.list_by_owner("owner")] == ["new", "old"]

    def test_update_does_not_reorder(self):
        """Verify editing an older artifact keeps its position."""
        base = datetime(2024, 1, 1)
        self.repository.put("owner", make_artifact("old", updated_at=base))
        self.repository.put("owner", make_artifact("new", updated_at=base + timedelta(hours=1)))
        edited = make_artifact("old", content="<p>edited</p>", updated_at=base + timedelta(hours=2))
        self.repository.put("owner", edited)

        artifacts = self.repository.list_by_owner("owner")
        assert [a.id for a in artifacts] == ["new", "old"]
        assert artifacts[1] == edited

    def test_list_limit(self):
        """Verify the limit caps results."""
        for i in range(5):
            self.repository.put("owner", make_artifact(f"a{i}", updated_at=datetime(2024, 1, 1, i)))
        assert len(self.repository.list_by_owner("owner", limit=3)) == 3


class TestLocalHistoryCache:
    """Test the anonymous history cache."""

    def setup_method(self):
        """Set up test environment."""
        self.temp_dir = tempfile.mkdtemp()
        self.path = os.path.join(self.temp_dir, "history.json")

    def teardown_method(self):
        """Clean up test environment."""
        import shutil
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_missing_file_is_empty(self):
        """Verify a missing cache loads as empty history."""
        assert LocalHistoryCache(self.path).load() == []

    def test_save_and_load(self):
        """Verify artifacts round-trip through the cache file."""
        cache = LocalHistoryCache(self.path)
        history = [make_artifact("a2"), make_artifact("a1")]
        cache.save(history)
        assert cache.load() == history

    def test_save_keeps_newest_entries(self):
        """Verify only the newest `limit` entries are kept."""
        cache = LocalHistoryCache(self.path, limit=2)
        cache.save([make_artifact("a3"), make_artifact("a2"), make_artifact("a1")])
        assert [a.id for a in cache.load()] == ["a3", "a2"]

    def test_corrupt_file_is_empty(self):
        """Verify a corrupt cache is ignored."""
        with open(self.path, 'w', encoding='utf-8') as f:
            f.write("{not json")
        assert LocalHistoryCache(self.path).load() == []

    def test_wrong_shape_is_empty(self):
        """Verify entries missing fields are ignored."""
        with open(self.path, 'w', encoding='utf-8') as f:
            json.dump([{"id": "a1"}], f)
        assert LocalHistoryCache(self.path).load() == []

    def test_invalid_limit(self):
        """Verify limit must be positive."""
        with pytest.raises(ValueError, match="limit must be > 0"):
            LocalHistoryCache(self.path, limit=0)
