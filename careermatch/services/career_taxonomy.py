"""
Career Taxonomy

PURPOSE:
One set of category codes shared by job postings and recommended career
roles, so "show me jobs for this career" is an equality filter on a code
instead of guessing from titles.

HOW IT WORKS:
1. Every posted job gets a category from classify_title(job_title)
   (or an explicit category sent by the poster)
2. Every recommended role carries the category of its role family
3. Jobs-by-career filters jobs.category = recommendation.category

Student education is mapped to a coarse domain (technology, data,
business, design, other) used by the fitment heuristic.
"""

import re
from typing import List, Tuple


SOFTWARE = "software"
DATA = "data"
MARKETING = "marketing"
PRODUCT = "product"
DESIGN = "design"
PROJECT_MANAGEMENT = "project_management"
BUSINESS = "business"
GENERAL = "general"

CATEGORIES = [SOFTWARE, DATA, MARKETING, PRODUCT, DESIGN, PROJECT_MANAGEMENT, BUSINESS, GENERAL]

CATEGORY_LABELS = {
    SOFTWARE: "Software & Engineering",
    DATA: "Data & Analytics",
    MARKETING: "Marketing & Growth",
    PRODUCT: "Product Management",
    DESIGN: "Design & UX",
    PROJECT_MANAGEMENT: "Project & Delivery Management",
    BUSINESS: "Business & Consulting",
    GENERAL: "General",
}

# Order matters: first rule with a matching keyword wins.
# "product designer" is design, "data engineer" is data, "project manager" is not product.
_TITLE_RULES: List[Tuple[str, Tuple[str, ...]]] = [
    (DESIGN, ("ui", "ux", "designer", "design", "graphic", "illustrator", "creative")),
    (DATA, ("data", "analyst", "analytics", "machine learning", "ml", "scientist",
            "statistic", "statistics", "business intelligence", "bi")),
    (PROJECT_MANAGEMENT, ("project manager", "project coordinator", "program manager",
                          "scrum", "delivery", "project")),
    (PRODUCT, ("product manager", "product owner", "product")),
    (MARKETING, ("marketing", "seo", "content", "social media", "growth", "brand",
                 "digital", "sales")),
    (SOFTWARE, ("software", "developer", "engineer", "programmer", "devops", "full stack",
                "fullstack", "frontend", "front end", "backend", "back end", "web", "mobile",
                "android", "ios", "qa", "tester", "cloud", "sre")),
    (BUSINESS, ("business", "consultant", "operations", "strategy", "finance",
                "accountant", "coordinator", "associate", "customer success", "hr")),
]

_DOMAIN_RULES: List[Tuple[str, Tuple[str, ...]]] = [
    ("data", ("data", "statistic", "statistics", "mathematic", "mathematics")),
    ("technology", ("computer", "software", "information", "technology", "it",
                    "electronic", "electrical", "mechanical", "civil", "engineering")),
    ("design", ("design", "art", "fine arts", "animation", "architecture")),
    ("business", ("business", "management", "commerce", "marketing", "finance",
                  "economics", "accounting", "mba", "bba", "b.com")),
]


def _has_keyword(text: str, keyword: str) -> bool:
    return re.search(rf"(?<![a-z0-9]){re.escape(keyword)}(?![a-z0-9])", text) is not None


def classify_title(title: str) -> str:
    """Map a job or role title to a category code. Unknown titles are GENERAL."""
    text = (title or "").lower()
    if not text.strip():
        return GENERAL
    for category, keywords in _TITLE_RULES:
        if any(_has_keyword(text, keyword) for keyword in keywords):
            return category
    return GENERAL


def normalize_category(value: str) -> str:
    """
    Accept either a category code ("software") or a free-text career title
    ("Software Developer") and return a category code.
    """
    code = (value or "").strip().lower().replace("-", "_").replace(" ", "_")
    if code in CATEGORIES:
        return code
    return classify_title(value)


def domain_of_specialization(specialization: str) -> str:
    text = (specialization or "").lower()
    for domain, keywords in _DOMAIN_RULES:
        if any(_has_keyword(text, keyword) for keyword in keywords):
            return domain
    return "other"


def is_technical(specialization: str) -> bool:
    """Computer/software/IT style education (what the company tech bonus looks for)."""
    text = (specialization or "").lower()
    return any(word in text for word in ("computer", "software", "information technology"))
