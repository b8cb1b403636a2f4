"""
Relational schema.

Tables are declared with SQLAlchemy Core so the same definitions create the
schema on PostgreSQL (production) and SQLite (tests). All queries elsewhere
are raw SQL through text(); nothing here is an ORM model.

List/dict columns (core_values, work_preferences, personality_scores,
key_skills) are stored as JSON text. Use dump_json / load_json.
"""

import json
from typing import Any

from sqlalchemy import (
    Boolean, Column, DateTime, ForeignKey, Integer, MetaData, String, Table,
    Text, UniqueConstraint, func
)

metadata = MetaData()


users = Table(
    "users", metadata,
    Column("user_id", Integer, primary_key=True, autoincrement=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("password_hash", String(255), nullable=False),
    Column("role", String(20), nullable=False, server_default="admin"),
    Column("is_active", Boolean, nullable=False, server_default="1"),
    Column("created_at", DateTime, server_default=func.now()),
)

students = Table(
    "students", metadata,
    Column("student_id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(200), nullable=False),
    Column("email", String(255), nullable=False, unique=True),
    Column("phone", String(20), nullable=False, unique=True),
    Column("education_degree", String(100), nullable=False, server_default=""),
    Column("specialization", String(200), nullable=False, server_default=""),
    Column("core_values", Text, nullable=False, server_default="[]"),
    Column("work_preferences", Text, nullable=False, server_default="{}"),
    Column("personality_scores", Text, nullable=False, server_default="{}"),
    Column("created_at", DateTime, server_default=func.now()),
    Column("updated_at", DateTime, server_default=func.now()),
)

jobs = Table(
    "jobs", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("job_id", String(20), nullable=False, unique=True),
    Column("contact_name", String(200), nullable=False),
    Column("contact_number", String(30), nullable=False),
    Column("contact_email", String(255)),
    Column("company_name", String(200), nullable=False),
    Column("job_title", String(200), nullable=False),
    Column("job_type", String(20), nullable=False),
    Column("job_description", Text, nullable=False),
    Column("location", String(200), nullable=False, server_default="Remote"),
    Column("salary_stipend", String(100)),
    Column("key_skills", Text, nullable=False, server_default="[]"),
    Column("category", String(40), nullable=False, server_default="general", index=True),
    Column("qr_code_url", Text),
    Column("created_at", DateTime, server_default=func.now()),
    Column("updated_at", DateTime, server_default=func.now()),
)

career_recommendations = Table(
    "career_recommendations", metadata,
    Column("recommendation_id", Integer, primary_key=True, autoincrement=True),
    Column("student_id", Integer, ForeignKey("students.student_id", ondelete="CASCADE"),
           nullable=False, index=True),
    Column("role", String(200), nullable=False),
    Column("category", String(40), nullable=False, server_default="general"),
    Column("match_score", Integer, nullable=False),
    Column("explanation", Text, nullable=False, server_default=""),
    Column("job_openings", Integer, nullable=False, server_default="0"),
    Column("created_at", DateTime, server_default=func.now()),
)

student_job_interests = Table(
    "student_job_interests", metadata,
    Column("interest_id", Integer, primary_key=True, autoincrement=True),
    Column("student_id", Integer, ForeignKey("students.student_id", ondelete="CASCADE"),
           nullable=False),
    Column("job_id", Integer, ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False),
    Column("fitment_score", Integer),
    Column("is_interested", Boolean, nullable=False, server_default="0"),
    Column("status", String(20), nullable=False, server_default="viewed"),
    Column("created_at", DateTime, server_default=func.now()),
    Column("updated_at", DateTime, server_default=func.now()),
    UniqueConstraint("student_id", "job_id", name="uq_student_job_interest"),
)


def dump_json(value: Any) -> str:
    return json.dumps(value)


def load_json(raw: Any, default: Any) -> Any:
    """Decode a JSON text column; tolerates None, native values and bad text."""
    if raw is None or raw == "":
        return default
    if isinstance(raw, (list, dict)):
        return raw
    try:
        return json.loads(raw)
    except (TypeError, ValueError):
        return default
