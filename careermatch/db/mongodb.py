"""
MongoDB Connection Utility

MongoDB stores:
- Raw voice transcripts dictated by recruiters
- The structured job fields parsed from them (AI or fallback)
- Generated student summaries, cached by profile hash

WHY MongoDB for these?
- Schema-flexible: AI outputs vary in structure
- Document-oriented: each transcript/summary is self-contained
- Nothing here is a source of truth; the relational DB is
"""
import logging

from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import PyMongoError

from careermatch.core.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)

# Global client (connection pooling handled internally by pymongo)
_client: MongoClient = None
_db: Database = None


def get_mongo_client() -> MongoClient:
    """Get or create MongoDB client (singleton pattern)"""
    global _client
    if _client is None:
        _client = MongoClient(settings.mongodb_uri, serverSelectionTimeoutMS=3000)
    return _client


def get_mongo_db() -> Database:
    """Get the careermatch_docs database"""
    global _db
    if _db is None:
        client = get_mongo_client()
        _db = client[settings.mongodb_db]
    return _db


def get_collection(name: str) -> Collection:
    """Get a specific collection. See COLLECTIONS for the names in use."""
    db = get_mongo_db()
    return db[name]


def test_mongo_connection() -> bool:
    """
    Test if MongoDB is reachable.
    Returns True if connection successful, False otherwise.
    """
    if not settings.mongodb_enabled:
        return False
    try:
        client = get_mongo_client()
        # ping command checks connection
        client.admin.command('ping')
        return True
    except PyMongoError as e:
        logger.warning("MongoDB connection failed: %s", e)
        return False


# Collection name constants (avoid typos)
COLLECTIONS = {
    "voice_transcripts": "voice_transcripts",
    "student_summaries": "student_summaries",
}


def init_mongo_indexes():
    """
    Create indexes for better query performance.
    Call this once during app startup.
    """
    db = get_mongo_db()

    # Latest transcripts first in admin review
    db[COLLECTIONS["voice_transcripts"]].create_index([("created_at", -1)])

    # One cached summary per (student, profile version)
    db[COLLECTIONS["student_summaries"]].create_index([
        ("student_id", 1),
        ("profile_hash", 1)
    ], unique=True)

    logger.info("MongoDB indexes created successfully")
