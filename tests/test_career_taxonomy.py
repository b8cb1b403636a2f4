import pytest

from careermatch.services import career_taxonomy as taxonomy


@pytest.mark.parametrize("title, category", [
    ("Software Developer", taxonomy.SOFTWARE),
    ("Senior Backend Engineer", taxonomy.SOFTWARE),
    ("Full Stack Developer", taxonomy.SOFTWARE),
    ("Data Engineer", taxonomy.DATA),
    ("Data Analyst", taxonomy.DATA),
    ("Product Designer", taxonomy.DESIGN),
    ("UI/UX Designer", taxonomy.DESIGN),
    ("Project Manager", taxonomy.PROJECT_MANAGEMENT),
    ("Product Manager", taxonomy.PRODUCT),
    ("Digital Marketing Specialist", taxonomy.MARKETING),
    ("Business Consultant", taxonomy.BUSINESS),
    ("Chef", taxonomy.GENERAL),
    ("", taxonomy.GENERAL),
])
def test_classify_title(title, category):
    assert taxonomy.classify_title(title) == category


def test_keywords_match_whole_words_only():
    # "ui" inside "build" or "guide" must not make a title a design job
    assert taxonomy.classify_title("Build Engineer") == taxonomy.SOFTWARE
    assert taxonomy.classify_title("Tour Guide") == taxonomy.GENERAL


def test_normalize_category_accepts_codes_and_titles():
    assert taxonomy.normalize_category("software") == taxonomy.SOFTWARE
    assert taxonomy.normalize_category("Project-Management") == taxonomy.PROJECT_MANAGEMENT
    assert taxonomy.normalize_category("Software Developer") == taxonomy.SOFTWARE
    assert taxonomy.normalize_category("UI/UX Designer") == taxonomy.DESIGN


def test_recommended_roles_and_jobs_share_codes():
    assert set(taxonomy.CATEGORIES) == set(taxonomy.CATEGORY_LABELS)


@pytest.mark.parametrize("specialization, domain", [
    ("Computer Science", "technology"),
    ("Information Technology", "technology"),
    ("Data Science", "data"),
    ("Statistics", "data"),
    ("Marketing", "business"),
    ("Graphic Design", "design"),
    ("History", "other"),
    ("", "other"),
])
def test_domain_of_specialization(specialization, domain):
    assert taxonomy.domain_of_specialization(specialization) == domain


def test_is_technical():
    assert taxonomy.is_technical("Computer Science")
    assert taxonomy.is_technical("Software Engineering")
    assert not taxonomy.is_technical("Mechanical Engineering")
