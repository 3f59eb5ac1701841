from __future__ import annotations

from typing import Any, Dict

import pytest

from jobify.persistence import AssignmentStore, Database, FeedbackStore, ProfileStore


@pytest.fixture
def db():
    database = Database("sqlite://")
    database.create_all()
    return database


@pytest.fixture
def profiles(db):
    return ProfileStore(db)


@pytest.fixture
def assignments(db):
    return AssignmentStore(db)


@pytest.fixture
def feedback(db):
    return FeedbackStore(db)


def make_listing(opportunity_id: str, **overrides: Any) -> Dict[str, Any]:
    raw = {
        "opportunityId": opportunity_id,
        "opportunityName": f"Role {opportunity_id}",
        "opportunityDescription": f"Description of {opportunity_id}",
        "organizationBaseDtos": [{"organizationName": "Acme"}],
        "jobTypes": [2],
        "opportunitySignupDate": 1735689600000,
        "opportunityExtLink": f"https://jobs.example.com/{opportunity_id}",
    }
    raw.update(overrides)
    return raw
