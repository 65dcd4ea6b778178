"""
MongoDB store for daily mood analyses.

This module provides database operations for:
- Atomic upsert of a day's analysis keyed by (user_id, date)
- Point lookup by (user_id, date)
- Per-user history, newest date first
- Maintenance: gradient rewrites and retention cleanup
"""

import os
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterator, List, Optional

import pymongo
from pymongo import MongoClient, ReturnDocument
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError, OperationFailure, ServerSelectionTimeoutError
import certifi

from mood_diary.core.errors import AnalysisLockedError, StorageError
from mood_diary.core.models import DailyAnalysis

logger = logging.getLogger(__name__)


# ============================================================================
# CONSTANTS
# ============================================================================

DATABASE_NAME = "mood_diary"
ANALYSES_COLLECTION_NAME = "daily_mood_analysis"
UNIQUE_INDEX_NAME = "user_date_unique"

CONNECTION_TIMEOUT_MS = 10000
DEFAULT_HISTORY_LIMIT = 30
MAX_RETENTION_DAYS = 365 * 3


# ============================================================================
# EXCEPTIONS
# ============================================================================

class MongoDBConnectionError(StorageError):
    """Raised when MongoDB connection fails."""
    code = "MONGODB_CONNECTION_ERROR"


class MongoDBOperationError(StorageError):
    """Raised when database operations fail."""
    code = "MONGODB_OPERATION_ERROR"


# ============================================================================
# DATABASE CONNECTION
# ============================================================================

class DatabaseConfig:
    """Encapsulates MongoDB connection configuration."""

    def __init__(self, uri: Optional[str] = None):
        """
        Initialize database configuration.

        Args:
            uri: MongoDB connection URI (defaults to MONGODB_URI env var)

        Raises:
            ValueError: If URI not provided and env var not set
        """
        self.uri = uri or os.environ.get("MONGODB_URI")
        if not self.uri:
            raise ValueError("MONGODB_URI environment variable not set")

    def get_client(self) -> MongoClient:
        """
        Creates a MongoDB client with TLS configuration.

        Returns:
            Connected MongoClient instance (timezone-aware datetimes).

        Raises:
            MongoDBConnectionError: If connection fails.
        """
        try:
            client = MongoClient(
                self.uri,
                tlsCAFile=certifi.where(),
                tz_aware=True,
                serverSelectionTimeoutMS=CONNECTION_TIMEOUT_MS,
                connectTimeoutMS=CONNECTION_TIMEOUT_MS
            )
            # Verify connection
            client.admin.command('ping')
            logger.info("[OK] MongoDB connected successfully")
            return client

        except ServerSelectionTimeoutError:
            logger.error("MongoDB connection timeout")
            raise MongoDBConnectionError("Connection timeout") from None
        except OperationFailure as e:
            logger.error(f"MongoDB authentication failed: {e}")
            raise MongoDBConnectionError(f"Authentication failed: {e}") from None
        except Exception as e:
            logger.error(f"MongoDB connection failed: {e}")
            raise MongoDBConnectionError(str(e)) from e


class DatabaseConnection:
    """Singleton connection manager for MongoDB."""

    _instance: Optional['DatabaseConnection'] = None
    _client: Optional[MongoClient] = None

    def __new__(cls) -> 'DatabaseConnection':
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def get_client(self) -> MongoClient:
        """
        Gets or creates MongoDB client.

        Raises:
            MongoDBConnectionError: If connection fails.
        """
        if self._client is None:
            try:
                config = DatabaseConfig()
                self._client = config.get_client()
            except ValueError as e:
                logger.error(str(e))
                raise MongoDBConnectionError(str(e)) from e

        return self._client

    def get_database(self) -> Database:
        client = self.get_client()
        return client[os.environ.get("MONGODB_DATABASE", DATABASE_NAME)]

    def close(self) -> None:
        """Closes database connection."""
        if self._client:
            self._client.close()
            self._client = None
            logger.info("MongoDB connection closed")


# ============================================================================
# DAILY ANALYSIS STORE
# ============================================================================

class DailyAnalysisStore:
    """
    Stores one mood analysis per (user_id, date).

    Writes are a single find_one_and_update upsert: the id set is merged
    with $addToSet, so concurrent writers for the same day union their ids
    instead of overwriting each other. Completed days are excluded by the
    write filter; a write against one collides with the unique index and
    is reported as AnalysisLockedError.
    """

    def __init__(self, collection: Collection):
        self.collection = collection

    @classmethod
    def from_database(cls, db: Optional[Database] = None) -> 'DailyAnalysisStore':
        db = db if db is not None else get_database()
        return cls(db[ANALYSES_COLLECTION_NAME])

    def ensure_indexes(self) -> None:
        """Creates the unique (user_id, date) index the upsert relies on."""
        try:
            self.collection.create_index(
                [("user_id", pymongo.ASCENDING), ("date", pymongo.DESCENDING)],
                unique=True,
                name=UNIQUE_INDEX_NAME
            )
        except Exception as e:
            logger.error(f"Failed to create indexes: {e}")
            raise MongoDBOperationError(f"Index creation failed: {e}") from e

    def get(self, user_id: str, date: str) -> Optional[DailyAnalysis]:
        """
        Point lookup by (user_id, date).

        Raises:
            MongoDBOperationError: If the query fails.
        """
        try:
            doc = self.collection.find_one({"user_id": user_id, "date": date})
        except Exception as e:
            logger.error(f"Failed to fetch analysis for {date}: {e}")
            raise MongoDBOperationError(f"Retrieval failed: {e}") from e

        return DailyAnalysis.from_document(doc) if doc else None

    def save(self, analysis: DailyAnalysis) -> DailyAnalysis:
        """
        Atomically upserts a day's analysis.

        Mood, text, gradient, sample and completeness are replaced; the
        analyzed track ids are unioned with whatever is already stored.

        Args:
            analysis: Record to write.

        Returns:
            The stored record after the write.

        Raises:
            AnalysisLockedError: If the stored day is already complete.
            MongoDBOperationError: If the write fails.
        """
        query = {
            "user_id": analysis.user_id,
            "date": analysis.date,
            "is_complete": {"$ne": True},
        }
        update = {
            "$set": {
                "mood_summary": analysis.mood_summary,
                "ai_analysis": analysis.ai_analysis,
                "sample_tracks": [t.to_dict() for t in analysis.sample_tracks],
                "mood_gradient": analysis.mood_gradient,
                "is_complete": analysis.is_complete,
                "updated_at": analysis.updated_at,
            },
            "$addToSet": {
                "analyzed_track_ids": {"$each": sorted(analysis.analyzed_track_ids)},
            },
            "$setOnInsert": {
                "created_at": analysis.created_at or analysis.updated_at,
            },
        }

        try:
            doc = self.collection.find_one_and_update(
                query,
                update,
                upsert=True,
                return_document=ReturnDocument.AFTER
            )
        except DuplicateKeyError:
            logger.warning(f"[WARN] Refusing to modify completed analysis for {analysis.date}")
            raise AnalysisLockedError(analysis.user_id, analysis.date) from None
        except Exception as e:
            logger.error(f"Failed to save analysis: {e}")
            raise MongoDBOperationError(f"Save failed: {e}") from e

        logger.info(f"[OK] Analysis saved for {analysis.date}")
        return DailyAnalysis.from_document(doc) if doc else analysis

    def list_for_user(self, user_id: str, limit: int = DEFAULT_HISTORY_LIMIT) -> List[DailyAnalysis]:
        """
        Retrieves a user's analyses, newest date first.

        Raises:
            MongoDBOperationError: If the query fails.
        """
        try:
            cursor = self.collection.find({"user_id": user_id}).sort(
                "date",
                pymongo.DESCENDING
            ).limit(limit)
            entries = [DailyAnalysis.from_document(doc) for doc in cursor]
        except Exception as e:
            logger.error(f"Failed to retrieve mood history for {user_id}: {e}")
            raise MongoDBOperationError(f"Retrieval failed: {e}") from e

        logger.info(f"[OK] Retrieved {len(entries)} analyses for {user_id}")
        return entries

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def iter_all(self) -> Iterator[DailyAnalysis]:
        """Iterates every stored analysis, newest date first."""
        for doc in self.collection.find({}).sort("date", pymongo.DESCENDING):
            yield DailyAnalysis.from_document(doc)

    def update_gradient(self, user_id: str, date: str, gradient: Dict[str, Any]) -> bool:
        """Rewrites only the derived gradient field of one analysis."""
        result = self.collection.update_one(
            {"user_id": user_id, "date": date},
            {"$set": {"mood_gradient": gradient}}
        )
        return result.modified_count > 0

    def delete_older_than(self, retention_days: int = MAX_RETENTION_DAYS,
                          now: Optional[datetime] = None) -> int:
        """
        Deletes analyses older than the retention period.

        Returns:
            Number of deleted documents.
        """
        now = now or datetime.now(timezone.utc)
        cutoff_date = (now - timedelta(days=retention_days)).strftime("%Y-%m-%d")
        try:
            result = self.collection.delete_many({"date": {"$lt": cutoff_date}})
        except Exception as e:
            logger.warning(f"Retention cleanup failed: {e}")
            return 0

        if result.deleted_count > 0:
            logger.info(f"Cleaned {result.deleted_count} analyses older than {cutoff_date}")
        return result.deleted_count


# ============================================================================
# PUBLIC API
# ============================================================================

def get_database() -> Database:
    """
    Gets database instance.
    This is the main entry point for database access.

    Raises:
        MongoDBConnectionError: If connection fails.
    """
    try:
        conn = DatabaseConnection()
        return conn.get_database()
    except MongoDBConnectionError as e:
        logger.error(f"Database connection failed: {e}")
        raise


def get_store() -> DailyAnalysisStore:
    """Returns a store bound to the configured database, indexes ensured."""
    store = DailyAnalysisStore.from_database()
    store.ensure_indexes()
    return store
