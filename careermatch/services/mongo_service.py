"""
MongoDB Service - storage for AI documents.

Collections in this database:
1. voice_transcripts  - Raw recruiter transcripts with the fields parsed from them
2. student_summaries  - Generated student summaries, keyed by profile hash

Nothing in MongoDB is a source of truth. Every write here is best-effort:
a failure is logged and the request carries on.
"""

import hashlib
import json
import logging
from datetime import datetime, timezone
from typing import Optional

from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from careermatch.core.config import get_settings
from careermatch.db.mongodb import get_collection, COLLECTIONS

logger = logging.getLogger(__name__)


# ============================================================
# HELPER: Convert ObjectId to string for JSON serialization
# ============================================================

def serialize_doc(doc: dict) -> dict:
    """Convert MongoDB document to JSON-serializable dict."""
    if doc is None:
        return None
    if "_id" in doc:
        doc["_id"] = str(doc["_id"])
    return doc


def profile_hash(student: dict) -> str:
    """Stable hash of the assessment answers; a changed profile gets a new summary."""
    keys = ("name", "education_degree", "specialization", "core_values",
            "work_preferences", "personality_scores")
    payload = json.dumps({k: student.get(k) for k in keys}, sort_keys=True, default=str)
    return hashlib.sha256(payload.encode()).hexdigest()


# ============================================================
# VOICE TRANSCRIPTS COLLECTION
# Raw dictation + parsed job fields, for review and prompt tuning
# ============================================================

class VoiceTranscriptService:
    """
    Handles voice transcript storage.
    """

    def __init__(self, collection: Optional[Collection] = None):
        self.collection = collection if collection is not None \
            else get_collection(COLLECTIONS["voice_transcripts"])

    def insert(self, transcript: str, parsed_data: dict, source: str) -> Optional[str]:
        """
        Store a transcript and what we parsed out of it.

        Returns:
            MongoDB ObjectId as string, or None if the write failed
        """
        doc = {
            "transcript": transcript,
            "parsed_data": parsed_data,
            "source": source,  # "ai" or "fallback"
            "created_at": datetime.now(timezone.utc),
        }
        try:
            result = self.collection.insert_one(doc)
        except PyMongoError as e:
            logger.warning("Could not store voice transcript: %s", e)
            return None
        return str(result.inserted_id)

    def get_recent(self, limit: int = 20) -> list:
        try:
            docs = self.collection.find({}, sort=[("created_at", -1)], limit=limit)
            return [serialize_doc(d) for d in docs]
        except PyMongoError as e:
            logger.warning("Could not read voice transcripts: %s", e)
            return []


# ============================================================
# STUDENT SUMMARIES COLLECTION
# Never regenerate a summary for an unchanged profile
# ============================================================

class StudentSummaryCacheService:
    """
    Caches generated summaries by (student_id, profile_hash).
    """

    def __init__(self, collection: Optional[Collection] = None):
        self.collection = collection if collection is not None \
            else get_collection(COLLECTIONS["student_summaries"])

    def get(self, student_id: int, profile_hash_value: str) -> Optional[dict]:
        try:
            doc = self.collection.find_one({"student_id": student_id, "profile_hash": profile_hash_value})
        except PyMongoError as e:
            logger.warning("Summary cache lookup failed: %s", e)
            return None
        return serialize_doc(doc)

    def store(self, student_id: int, profile_hash_value: str, summary: str, source: str) -> bool:
        try:
            self.collection.update_one(
                {"student_id": student_id, "profile_hash": profile_hash_value},
                {"$set": {
                    "summary": summary,
                    "source": source,
                    "generated_at": datetime.now(timezone.utc),
                }},
                upsert=True
            )
        except PyMongoError as e:
            logger.warning("Could not cache student summary: %s", e)
            return False
        return True

    def delete_for_student(self, student_id: int) -> None:
        try:
            self.collection.delete_many({"student_id": student_id})
        except PyMongoError as e:
            logger.warning("Could not drop cached summaries for student %s: %s", student_id, e)


def get_voice_transcript_service() -> Optional[VoiceTranscriptService]:
    """None when MongoDB is switched off."""
    if not get_settings().mongodb_enabled:
        return None
    return VoiceTranscriptService()


def get_summary_cache_service() -> Optional[StudentSummaryCacheService]:
    if not get_settings().mongodb_enabled:
        return None
    return StudentSummaryCacheService()
