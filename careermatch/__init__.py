"""
CareerMatch
Connects job-posting companies with students through QR-linked job postings,
a five-step self assessment and AI-assisted career/job fitment scoring.

Architecture:
- PostgreSQL: Structured data (students, jobs, recommendations, interests)
- MongoDB: AI documents (voice transcripts, cached student summaries)
- LLM (OpenAI-compatible): Optional; every AI path has a deterministic fallback
"""

__version__ = "1.0.0"
