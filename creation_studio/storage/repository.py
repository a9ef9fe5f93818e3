"""
Repository pattern for data access.

Handles database operations for usage records and saved artifacts.
Both writes are idempotent on retry; there are no transactions spanning
the two tables.
"""

from datetime import datetime
from typing import List, Optional

from .db import DEFAULT_DB_PATH, get_connection
from .models import Artifact, UsageRecord


def initialize_schema(db_path: str = DEFAULT_DB_PATH) -> None:
    """Create the usage_record and saved_artifact tables if they don't exist.

    Args:
        db_path: Path to SQLite database file
    """
    conn = get_connection(db_path)
    try:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS usage_record (
                owner_id TEXT PRIMARY KEY,
                generations_consumed INTEGER NOT NULL DEFAULT 0
                    CHECK (generations_consumed >= 0),
                paid_tier INTEGER NOT NULL DEFAULT 0
            )
        """)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS saved_artifact (
                id TEXT PRIMARY KEY,
                owner_id TEXT NOT NULL,
                name TEXT NOT NULL,
                content TEXT NOT NULL,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        """)
        conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_saved_artifact_owner
            ON saved_artifact (owner_id, created_at)
        """)
        conn.commit()
    finally:
        conn.close()


class UsageRepository:
    """Repository for per-owner usage counters."""

    def __init__(self, db_path: str = DEFAULT_DB_PATH):
        self.db_path = db_path

    def get(self, owner_id: str) -> Optional[UsageRecord]:
        """Fetch the usage record for an owner, or None if never written."""
        conn = get_connection(self.db_path)
        try:
            row = conn.execute(
                "SELECT owner_id, generations_consumed, paid_tier FROM usage_record WHERE owner_id = ?",
                (owner_id,)
            ).fetchone()
            if row is None:
                return None
            return UsageRecord(owner_id=row[0], generations_consumed=row[1], paid_tier=bool(row[2]))
        finally:
            conn.close()

    def put(self, record: UsageRecord) -> None:
        """Insert or replace a usage record."""
        conn = get_connection(self.db_path)
        try:
            conn.execute("""
                INSERT INTO usage_record (owner_id, generations_consumed, paid_tier)
                VALUES (?, ?, ?)
                ON CONFLICT(owner_id) DO UPDATE SET
                    generations_consumed = excluded.generations_consumed,
                    paid_tier = excluded.paid_tier
            """, (record.owner_id, record.generations_consumed, int(record.paid_tier)))
            conn.commit()
        finally:
            conn.close()

    def increment(self, owner_id: str) -> int:
        """Atomically add one generation to an owner's counter.

        The read-modify-write happens inside a single write transaction,
        so concurrent callers for the same owner never lose an update.

        Args:
            owner_id: Owner whose counter is incremented

        Returns:
            The counter value after the increment
        """
        conn = get_connection(self.db_path)
        try:
            conn.execute("BEGIN IMMEDIATE")
            conn.execute("""
                INSERT INTO usage_record (owner_id, generations_consumed, paid_tier)
                VALUES (?, 1, 0)
                ON CONFLICT(owner_id) DO UPDATE SET
                    generations_consumed = generations_consumed + 1
            """, (owner_id,))
            row = conn.execute(
                "SELECT generations_consumed FROM usage_record WHERE owner_id = ?",
                (owner_id,)
            ).fetchone()
            conn.commit()
            return row[0]
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def set_paid_tier(self, owner_id: str) -> UsageRecord:
        """Mark an owner as paid tier, creating the record if needed."""
        conn = get_connection(self.db_path)
        try:
            conn.execute("BEGIN IMMEDIATE")
            conn.execute("""
                INSERT INTO usage_record (owner_id, generations_consumed, paid_tier)
                VALUES (?, 0, 1)
                ON CONFLICT(owner_id) DO UPDATE SET paid_tier = 1
            """, (owner_id,))
            row = conn.execute(
                "SELECT owner_id, generations_consumed, paid_tier FROM usage_record WHERE owner_id = ?",
                (owner_id,)
            ).fetchone()
            conn.commit()
            return UsageRecord(owner_id=row[0], generations_consumed=row[1], paid_tier=bool(row[2]))
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()


class ArtifactRepository:
    """Repository for artifacts saved by signed-in owners."""

    def __init__(self, db_path: str = DEFAULT_DB_PATH):
        self.db_path = db_path

    def put(self, owner_id: str, artifact: Artifact) -> None:
        """Insert or update an artifact by id.

        Args:
            owner_id: Owner the artifact belongs to
            artifact: Artifact to persist
        """
        conn = get_connection(self.db_path)
        try:
            conn.execute("""
                INSERT INTO saved_artifact (id, owner_id, name, content, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    name = excluded.name,
                    content = excluded.content,
                    updated_at = excluded.updated_at
            """, (
                artifact.id,
                owner_id,
                artifact.name,
                artifact.content,
                artifact.updated_at.isoformat(),
                artifact.updated_at.isoformat()
            ))
            conn.commit()
        finally:
            conn.close()

    def list_by_owner(self, owner_id: str, limit: int = 1000) -> List[Artifact]:
        """List an owner's artifacts, newest first.

        Args:
            owner_id: Owner to list artifacts for
            limit: Maximum number of artifacts to return

        Returns:
            List of artifacts ordered by creation time (newest first); edits
            do not reorder the list
        """
        conn = get_connection(self.db_path)
        try:
            cursor = conn.execute("""
                SELECT id, name, content, updated_at
                FROM saved_artifact
                WHERE owner_id = ?
                ORDER BY created_at DESC, rowid DESC
                LIMIT ?
            """, (owner_id, limit))
            artifacts = []
            for row in cursor.fetchall():
                artifacts.append(Artifact(
                    id=row[0],
                    name=row[1],
                    content=row[2],
                    updated_at=datetime.fromisoformat(row[3])
                ))
            return artifacts
        finally:
            conn.close()
