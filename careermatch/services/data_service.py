"""
Data Service - typed query functions over the relational store.

Tables:
1. students                - one row per assessed student (unique email, unique phone)
2. jobs                    - postings, addressed by row id or by JOB_NNNN token
3. career_recommendations  - batches of 4-6 roles per completed assessment
4. student_job_interests   - (student, job) join with fitment score and status

All SQL is raw text() so the same statements run on PostgreSQL and SQLite.
Writes to student_job_interests are upserts on the (student_id, job_id)
unique constraint; that constraint is the only concurrency guard.
"""

import logging
from typing import Dict, List, Optional, Tuple

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from careermatch.core.catalog import normalize_phone
from careermatch.db.postgres import get_db_session, execute_raw_sql
from careermatch.db.schema import dump_json, load_json
from careermatch.services.career_taxonomy import classify_title, normalize_category
from careermatch.services.qr_service import generate_job_id, is_job_token, is_stale_qr_url, qr_code_url

logger = logging.getLogger(__name__)

MAX_JOB_ID_ATTEMPTS = 25


class DuplicateStudentError(Exception):
    """Email and phone already belong to two different students."""


class AlreadyAppliedError(Exception):
    """The student already applied for this job."""


class JobIdExhaustedError(Exception):
    """Could not find a free JOB_NNNN token."""


# ============================================================
# ROW HELPERS
# ============================================================

STUDENT_COLUMNS = """student_id, name, email, phone, education_degree, specialization,
    core_values, work_preferences, personality_scores, created_at, updated_at"""

JOB_COLUMNS = """id, job_id, contact_name, contact_number, contact_email, company_name,
    job_title, job_type, job_description, location, salary_stipend, key_skills,
    category, qr_code_url, created_at, updated_at"""

INTEREST_COLUMNS = """interest_id, student_id, job_id, fitment_score, is_interested, status,
    created_at, updated_at"""


def student_from_row(row: Optional[dict]) -> Optional[dict]:
    if row is None:
        return None
    student = dict(row)
    student["core_values"] = load_json(student.get("core_values"), [])
    student["work_preferences"] = load_json(student.get("work_preferences"), {})
    student["personality_scores"] = load_json(student.get("personality_scores"), {})
    return student


def job_from_row(row: Optional[dict]) -> Optional[dict]:
    if row is None:
        return None
    job = dict(row)
    job["key_skills"] = load_json(job.get("key_skills"), [])
    return job


def interest_from_row(row: Optional[dict]) -> Optional[dict]:
    if row is None:
        return None
    interest = dict(row)
    interest["is_interested"] = bool(interest.get("is_interested"))
    return interest


def _like(term: str) -> str:
    return f"%{term.strip().lower()}%"


# ============================================================
# STUDENTS
# ============================================================

class StudentDataService:

    def get_by_id(self, student_id: int) -> Optional[dict]:
        rows = execute_raw_sql(
            f"SELECT {STUDENT_COLUMNS} FROM students WHERE student_id = :id", {"id": student_id}
        )
        return student_from_row(rows[0]) if rows else None

    def get_by_email(self, email: str) -> Optional[dict]:
        rows = execute_raw_sql(
            f"SELECT {STUDENT_COLUMNS} FROM students WHERE email = :email",
            {"email": (email or "").strip().lower()}
        )
        return student_from_row(rows[0]) if rows else None

    def get_by_phone(self, phone: str) -> Optional[dict]:
        rows = execute_raw_sql(
            f"SELECT {STUDENT_COLUMNS} FROM students WHERE phone = :phone",
            {"phone": normalize_phone(phone)}
        )
        return student_from_row(rows[0]) if rows else None

    def email_exists(self, email: str) -> bool:
        return self.get_by_email(email) is not None

    def phone_exists(self, phone: str) -> bool:
        return self.get_by_phone(phone) is not None

    def upsert_from_assessment(self, data: Dict, _retry: bool = True) -> Tuple[dict, bool]:
        """
        Insert a student, or overwrite the existing row that has the same
        email or phone (the id is kept).

        Returns:
            (student, created)

        Raises:
            DuplicateStudentError if email and phone belong to different students
        """
        params = {
            "name": data["name"].strip(),
            "email": data["email"].strip().lower(),
            "phone": normalize_phone(data["phone"]),
            "education_degree": data.get("education_degree") or "",
            "specialization": data.get("specialization") or "",
            "core_values": dump_json(list(data.get("core_values") or [])),
            "work_preferences": dump_json(dict(data.get("work_preferences") or {})),
            "personality_scores": dump_json(dict(data.get("personality_scores") or {})),
        }

        by_email = self.get_by_email(params["email"])
        by_phone = self.get_by_phone(params["phone"])
        if by_email and by_phone and by_email["student_id"] != by_phone["student_id"]:
            raise DuplicateStudentError(
                "This email and phone number are registered to different students. "
                "Please use the phone number linked to this email."
            )
        existing = by_email or by_phone

        try:
            with get_db_session() as db:
                if existing:
                    params["id"] = existing["student_id"]
                    db.execute(text("""
                        UPDATE students SET name = :name, email = :email, phone = :phone,
                            education_degree = :education_degree, specialization = :specialization,
                            core_values = :core_values, work_preferences = :work_preferences,
                            personality_scores = :personality_scores, updated_at = CURRENT_TIMESTAMP
                        WHERE student_id = :id
                    """), params)
                    student_id = existing["student_id"]
                else:
                    result = db.execute(text("""
                        INSERT INTO students (name, email, phone, education_degree, specialization,
                            core_values, work_preferences, personality_scores)
                        VALUES (:name, :email, :phone, :education_degree, :specialization,
                            :core_values, :work_preferences, :personality_scores)
                        RETURNING student_id
                    """), params)
                    student_id = result.fetchone()[0]
        except IntegrityError:
            # Lost a race with a concurrent submission for the same email/phone
            if not _retry:
                raise
            logger.info("Concurrent insert for %s, retrying as update", params["email"])
            return self.upsert_from_assessment(data, _retry=False)

        return self.get_by_id(student_id), existing is None

    def list(self, search: Optional[str] = None, limit: int = 100) -> List[dict]:
        sql = f"SELECT {STUDENT_COLUMNS} FROM students"
        params = {"limit": limit}
        if search:
            sql += """ WHERE LOWER(name) LIKE :q OR LOWER(email) LIKE :q OR phone LIKE :q
                       OR LOWER(specialization) LIKE :q"""
            params["q"] = _like(search)
        sql += " ORDER BY created_at DESC, student_id DESC LIMIT :limit"
        return [student_from_row(r) for r in execute_raw_sql(sql, params)]

    def delete(self, student_id: int) -> bool:
        with get_db_session() as db:
            db.execute(text("DELETE FROM student_job_interests WHERE student_id = :id"), {"id": student_id})
            db.execute(text("DELETE FROM career_recommendations WHERE student_id = :id"), {"id": student_id})
            result = db.execute(text("DELETE FROM students WHERE student_id = :id"), {"id": student_id})
            return result.rowcount > 0


# ============================================================
# JOBS
# ============================================================

class JobDataService:

    def _token_taken(self, job_id: str) -> bool:
        return bool(execute_raw_sql("SELECT 1 FROM jobs WHERE job_id = :jid", {"jid": job_id}))

    def _free_job_id(self) -> str:
        for _ in range(MAX_JOB_ID_ATTEMPTS):
            job_id = generate_job_id()
            if not self._token_taken(job_id):
                return job_id
        raise JobIdExhaustedError("Could not allocate a free job id")

    def create(self, data: Dict) -> dict:
        """
        Insert a job posting with a fresh JOB_NNNN token, a taxonomy
        category and its QR code URL.
        """
        category = normalize_category(data["category"]) if data.get("category") \
            else classify_title(data["job_title"])
        params = {
            "contact_name": data["contact_name"].strip(),
            "contact_number": data["contact_number"].strip(),
            "contact_email": (data.get("contact_email") or "").strip() or None,
            "company_name": data["company_name"].strip(),
            "job_title": data["job_title"].strip(),
            "job_type": data["job_type"],
            "job_description": data["job_description"].strip(),
            "location": (data.get("location") or "").strip() or "Remote",
            "salary_stipend": (data.get("salary_stipend") or "").strip() or None,
            "key_skills": dump_json([s.strip() for s in data.get("key_skills") or [] if s and s.strip()]),
            "category": category,
        }

        for attempt in range(2):
            params["job_id"] = self._free_job_id()
            params["qr_code_url"] = qr_code_url(params["job_id"])
            try:
                with get_db_session() as db:
                    result = db.execute(text("""
                        INSERT INTO jobs (job_id, contact_name, contact_number, contact_email,
                            company_name, job_title, job_type, job_description, location,
                            salary_stipend, key_skills, category, qr_code_url)
                        VALUES (:job_id, :contact_name, :contact_number, :contact_email,
                            :company_name, :job_title, :job_type, :job_description, :location,
                            :salary_stipend, :key_skills, :category, :qr_code_url)
                        RETURNING id
                    """), params)
                    row_id = result.fetchone()[0]
                return self.get(row_id)
            except IntegrityError:
                logger.info("Job id %s taken concurrently, retrying", params["job_id"])
                if attempt:
                    raise
        raise JobIdExhaustedError("Could not allocate a free job id")

    def get(self, identifier) -> Optional[dict]:
        """Accepts the row id (int or digits) or the JOB_NNNN token."""
        value = str(identifier).strip()
        if is_job_token(value):
            rows = execute_raw_sql(f"SELECT {JOB_COLUMNS} FROM jobs WHERE job_id = :jid",
                                   {"jid": value.upper()})
        elif value.isdigit():
            rows = execute_raw_sql(f"SELECT {JOB_COLUMNS} FROM jobs WHERE id = :id", {"id": int(value)})
        else:
            return None
        return job_from_row(rows[0]) if rows else None

    def list(self, category: Optional[str] = None, job_type: Optional[str] = None,
             search: Optional[str] = None, limit: int = 100) -> List[dict]:
        sql = f"SELECT {JOB_COLUMNS} FROM jobs WHERE 1 = 1"
        params = {"limit": limit}
        if category:
            sql += " AND category = :category"
            params["category"] = category
        if job_type:
            sql += " AND job_type = :job_type"
            params["job_type"] = job_type
        if search:
            sql += """ AND (LOWER(job_title) LIKE :q OR LOWER(company_name) LIKE :q
                       OR LOWER(location) LIKE :q OR job_id LIKE :qu)"""
            params["q"] = _like(search)
            params["qu"] = f"%{search.strip().upper()}%"
        sql += " ORDER BY created_at DESC, id DESC LIMIT :limit"
        return [job_from_row(r) for r in execute_raw_sql(sql, params)]

    def delete(self, identifier) -> bool:
        job = self.get(identifier)
        if not job:
            return False
        with get_db_session() as db:
            db.execute(text("DELETE FROM student_job_interests WHERE job_id = :id"), {"id": job["id"]})
            db.execute(text("DELETE FROM jobs WHERE id = :id"), {"id": job["id"]})
        return True

    def fix_stale_qr_codes(self) -> List[dict]:
        """Rewrite QR URLs that point at localhost (or are missing) to the current base URL."""
        fixed = []
        rows = execute_raw_sql("SELECT id, job_id, qr_code_url FROM jobs")
        with get_db_session() as db:
            for row in rows:
                if not is_stale_qr_url(row["qr_code_url"]):
                    continue
                new_url = qr_code_url(row["job_id"])
                db.execute(
                    text("UPDATE jobs SET qr_code_url = :url, updated_at = CURRENT_TIMESTAMP WHERE id = :id"),
                    {"url": new_url, "id": row["id"]}
                )
                fixed.append({"job_id": row["job_id"], "old_url": row["qr_code_url"], "new_url": new_url})
        return fixed

    def stats(self) -> dict:
        """Totals for the admin dashboard."""
        counts = execute_raw_sql("""
            SELECT
                (SELECT COUNT(*) FROM jobs) AS total_jobs,
                (SELECT COUNT(*) FROM students) AS total_students,
                (SELECT COUNT(*) FROM student_job_interests WHERE is_interested = :yes) AS total_interests,
                (SELECT COUNT(*) FROM student_job_interests WHERE status = 'applied') AS total_applications
        """, {"yes": True})[0]
        by_type = execute_raw_sql("SELECT job_type, COUNT(*) AS n FROM jobs GROUP BY job_type")
        by_category = execute_raw_sql("SELECT category, COUNT(*) AS n FROM jobs GROUP BY category")
        return {
            "total_jobs": int(counts["total_jobs"]),
            "total_students": int(counts["total_students"]),
            "total_interests": int(counts["total_interests"]),
            "total_applications": int(counts["total_applications"]),
            "jobs_by_type": {r["job_type"]: int(r["n"]) for r in by_type},
            "jobs_by_category": {r["category"]: int(r["n"]) for r in by_category},
        }


# ============================================================
# CAREER RECOMMENDATIONS
# ============================================================

class RecommendationDataService:

    def save_batch(self, student_id: int, recommendations: List[Dict], replace: bool = False) -> List[dict]:
        with get_db_session() as db:
            if replace:
                db.execute(text("DELETE FROM career_recommendations WHERE student_id = :sid"),
                           {"sid": student_id})
            for rec in recommendations:
                db.execute(text("""
                    INSERT INTO career_recommendations
                        (student_id, role, category, match_score, explanation, job_openings)
                    VALUES (:sid, :role, :category, :match, :explanation, :openings)
                """), {
                    "sid": student_id,
                    "role": rec["role"],
                    "category": rec.get("category") or classify_title(rec["role"]),
                    "match": int(rec["match"]),
                    "explanation": rec.get("explanation") or "",
                    "openings": int(rec.get("openings") or 0),
                })
        return self.list_for_student(student_id)

    def list_for_student(self, student_id: int) -> List[dict]:
        return execute_raw_sql("""
            SELECT recommendation_id, student_id, role, category, match_score, explanation,
                   job_openings, created_at
            FROM career_recommendations
            WHERE student_id = :sid
            ORDER BY created_at DESC, match_score DESC, recommendation_id
        """, {"sid": student_id})

    def count_for_student(self, student_id: int) -> int:
        rows = execute_raw_sql(
            "SELECT COUNT(*) AS n FROM career_recommendations WHERE student_id = :sid", {"sid": student_id}
        )
        return int(rows[0]["n"])


# ============================================================
# JOB INTERESTS / APPLICATIONS
# ============================================================

class InterestDataService:

    def get(self, student_id: int, job_pk: int) -> Optional[dict]:
        rows = execute_raw_sql(
            f"SELECT {INTEREST_COLUMNS} FROM student_job_interests WHERE student_id = :sid AND job_id = :jid",
            {"sid": student_id, "jid": job_pk}
        )
        return interest_from_row(rows[0]) if rows else None

    def upsert_interest(self, student_id: int, job_pk: int, is_interested: bool,
                        fitment_score: Optional[int] = None) -> dict:
        """
        Record (or toggle) interest. Calling twice with the same pair updates
        the one row; an existing score is kept when none is sent, and an
        application stays an application.
        """
        with get_db_session() as db:
            result = db.execute(text(f"""
                INSERT INTO student_job_interests (student_id, job_id, fitment_score, is_interested, status)
                VALUES (:sid, :jid, :score, :interested, :status)
                ON CONFLICT (student_id, job_id) DO UPDATE SET
                    is_interested = EXCLUDED.is_interested,
                    fitment_score = COALESCE(EXCLUDED.fitment_score, student_job_interests.fitment_score),
                    status = CASE WHEN student_job_interests.status = 'applied'
                                  THEN 'applied' ELSE EXCLUDED.status END,
                    updated_at = CURRENT_TIMESTAMP
                RETURNING {INTEREST_COLUMNS}
            """), {
                "sid": student_id,
                "jid": job_pk,
                "score": fitment_score,
                "interested": bool(is_interested),
                "status": "interested" if is_interested else "viewed",
            })
            return interest_from_row(result.mappings().fetchone())

    def record_fitment(self, student_id: int, job_pk: int, fitment_score: int) -> dict:
        """Store a computed score without touching interest or status."""
        with get_db_session() as db:
            result = db.execute(text(f"""
                INSERT INTO student_job_interests (student_id, job_id, fitment_score, is_interested, status)
                VALUES (:sid, :jid, :score, :interested, 'viewed')
                ON CONFLICT (student_id, job_id) DO UPDATE SET
                    fitment_score = EXCLUDED.fitment_score,
                    updated_at = CURRENT_TIMESTAMP
                RETURNING {INTEREST_COLUMNS}
            """), {"sid": student_id, "jid": job_pk, "score": fitment_score, "interested": False})
            return interest_from_row(result.mappings().fetchone())

    def apply(self, student_id: int, job_pk: int, fitment_score: Optional[int] = None) -> dict:
        """
        Mark the pair as applied. The conditional upsert skips rows that are
        already applied, so a second application returns no row.

        Raises:
            AlreadyAppliedError
        """
        with get_db_session() as db:
            result = db.execute(text(f"""
                INSERT INTO student_job_interests (student_id, job_id, fitment_score, is_interested, status)
                VALUES (:sid, :jid, :score, :interested, 'applied')
                ON CONFLICT (student_id, job_id) DO UPDATE SET
                    is_interested = EXCLUDED.is_interested,
                    fitment_score = COALESCE(EXCLUDED.fitment_score, student_job_interests.fitment_score),
                    status = 'applied',
                    updated_at = CURRENT_TIMESTAMP
                WHERE student_job_interests.status <> 'applied'
                RETURNING {INTEREST_COLUMNS}
            """), {"sid": student_id, "jid": job_pk, "score": fitment_score, "interested": True})
            row = result.mappings().fetchone()
        if row is None:
            raise AlreadyAppliedError("You have already applied for this job")
        return interest_from_row(row)

    def list_for_student(self, student_id: int) -> List[dict]:
        rows = execute_raw_sql("""
            SELECT i.interest_id, i.student_id, i.job_id, i.fitment_score, i.is_interested, i.status,
                   i.created_at, i.updated_at, j.job_id AS job_token, j.job_title, j.company_name
            FROM student_job_interests i
            JOIN jobs j ON j.id = i.job_id
            WHERE i.student_id = :sid
            ORDER BY i.updated_at DESC, i.interest_id DESC
        """, {"sid": student_id})
        return [interest_from_row(r) for r in rows]

    def list_for_job(self, job_pk: int) -> List[dict]:
        rows = execute_raw_sql("""
            SELECT i.interest_id, i.student_id, i.job_id, i.fitment_score, i.is_interested, i.status,
                   i.created_at, i.updated_at, s.name AS student_name, s.email AS student_email,
                   s.phone AS student_phone
            FROM student_job_interests i
            JOIN students s ON s.student_id = i.student_id
            WHERE i.job_id = :jid AND (i.is_interested = :yes OR i.status = 'applied')
            ORDER BY COALESCE(i.fitment_score, -1) DESC, i.interest_id
        """, {"jid": job_pk, "yes": True})
        return [interest_from_row(r) for r in rows]

    def count_for_student(self, student_id: int) -> int:
        rows = execute_raw_sql(
            "SELECT COUNT(*) AS n FROM student_job_interests WHERE student_id = :sid AND is_interested = :yes",
            {"sid": student_id, "yes": True}
        )
        return int(rows[0]["n"])


def get_student_data() -> StudentDataService:
    return StudentDataService()


def get_job_data() -> JobDataService:
    return JobDataService()


def get_recommendation_data() -> RecommendationDataService:
    return RecommendationDataService()


def get_interest_data() -> InterestDataService:
    return InterestDataService()
