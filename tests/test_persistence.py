from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from jobify.model import Opportunity
from jobify.persistence import delete_profile


def test_partial_upserts_accumulate(profiles):
    assert profiles.upsert("u1", name="A")
    assert profiles.upsert("u1", email="x@y.com")

    profile = profiles.get("u1")
    assert profile.name == "A"
    assert profile.email == "x@y.com"


def test_none_and_blank_values_never_overwrite(profiles):
    profiles.upsert("u1", name="Ada", skills="python")
    profiles.upsert("u1", name=None, skills="   ", career_interest="backend")

    profile = profiles.get("u1")
    assert profile.name == "Ada"
    assert profile.skills == "python"
    assert profile.career_interest == "backend"


def test_upsert_without_fields_creates_empty_profile(profiles):
    assert profiles.upsert("u1")
    profile = profiles.get("u1")
    assert profile is not None
    assert profile.display_fields() == {}


def test_get_missing_profile_returns_none(profiles):
    assert profiles.get("nobody") is None


def test_upsert_reports_store_failure(profiles, db):
    session = MagicMock()
    session.get.side_effect = OperationalError("SELECT", {}, Exception("disk full"))
    db.session_factory = MagicMock(return_value=session)

    assert profiles.upsert("u1", name="A") is False


def test_update_cv_text_skips_blank(profiles):
    profiles.upsert("u1", name="A")
    assert profiles.update_cv_text("u1", "  \n") is False
    assert profiles.get("u1").cv_text is None

    assert profiles.update_cv_text("u1", "Experienced engineer")
    assert profiles.get("u1").cv_text == "Experienced engineer"


def test_assignment_insert_is_idempotent(assignments):
    opportunity = Opportunity(id="42", title="Backend intern", deadline="2025-01-01")

    assert assignments.exists("u1", "42") is False
    assert assignments.insert("u1", opportunity) is True
    assert assignments.exists("u1", "42") is True
    assert assignments.insert("u1", opportunity) is False

    assert len(assignments.list_all("u1")) == 1


def test_assignments_are_per_user(assignments):
    opportunity = Opportunity(id="42", title="Backend intern")
    assignments.insert("u1", opportunity)
    assignments.insert("u2", opportunity)

    assert assignments.exists("u2", "42")
    assert assignments.delete_all("u1") == 1
    assert assignments.list_all("u1") == []
    assert [o.id for o in assignments.list_all("u2")] == ["42"]


def test_list_all_restores_snapshot_fields(assignments):
    assignments.insert(
        "u1",
        Opportunity(id="7", title="QA", company="Acme", deadline="2025-03-31", wage="", url="https://x"),
    )
    assignments.insert("u1", Opportunity(id="8", title="Ops", deadline="unknown"))

    first, second = assignments.list_all("u1")
    assert first.company == "Acme"
    assert first.deadline == "2025-03-31"
    assert first.url == "https://x"
    assert first.wage == ""
    assert second.deadline == "unknown"
    assert second.company == "Unknown"


def test_unparseable_deadline_is_stored_as_unknown(assignments):
    assignments.insert("u1", Opportunity(id="9", title="Data", deadline="next week"))
    assert assignments.list_all("u1")[0].deadline == "unknown"


def test_delete_profile_removes_assignments_and_profile(profiles, assignments):
    profiles.upsert("u1", name="A", skills="java")
    assignments.insert("u1", Opportunity(id="1", title="One"))
    assignments.insert("u1", Opportunity(id="2", title="Two"))

    assert delete_profile(profiles, assignments, "u1") is True
    assert profiles.get("u1") is None
    assert assignments.list_all("u1") == []


def test_delete_missing_profile_reports_false(profiles, assignments):
    assert delete_profile(profiles, assignments, "ghost") is False


def test_feedback_rating_targets_latest_unrated_entry(profiles, feedback):
    profiles.upsert("u1", name="A")
    feedback.add("u1", "first")
    assert feedback.rate("u1", 4)
    feedback.add("u1", "second")
    assert feedback.rate("u1", 5)

    profile = profiles.get("u1")
    assert profile.feedback == "second"
    assert profile.stars == 5


def test_rate_without_pending_feedback(feedback):
    assert feedback.rate("u1", 3) is False


def test_rate_rejects_out_of_range_stars(feedback):
    feedback.add("u1", "hello")
    with pytest.raises(ValueError):
        feedback.rate("u1", 6)
