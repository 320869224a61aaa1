"""
Unit tests for admin membership creation

Tests:
- Profile validation
- Created / already_exists / error results
- Single organization selection
"""

import pytest

from src.migration.errors import ProfileNotFoundError
from src.migration.memberships import MembershipCreator, summarize

PROFILE_ID = "5ea389fd-0000-0000-0000-000000000000"


@pytest.fixture
def db(fake_db_factory):
    return fake_db_factory({
        "FROM profiles": [{"id": PROFILE_ID, "email": "ops@laiki.co"}],
        "FROM organizations WHERE id": [{"id": "org-b", "name": "Beta"}],
        "FROM organizations": [{"id": "org-a", "name": "Alpha"}, {"id": "org-b", "name": "Beta"}],
        "FROM memberships": lambda sql, params: [{"id": 1}] if params[0] == "org-b" else [],
    })


class TestMembershipCreator:
    """Tests for MembershipCreator"""

    def test_creates_missing_memberships(self, db):
        results = MembershipCreator(db, PROFILE_ID, "ops@laiki.co").run()

        assert [(r.organization_id, r.status) for r in results] == [
            ("org-a", "created"),
            ("org-b", "already_exists"),
        ]
        inserts = [params for sql, params in db.executed if "INSERT INTO memberships" in sql]
        assert len(inserts) == 1
        assert inserts[0] == ("org-a", PROFILE_ID, "admin")

    def test_single_organization(self, db):
        results = MembershipCreator(db, PROFILE_ID).run("org-b")

        assert [r.organization_id for r in results] == ["org-b"]
        assert db.executed == []

    def test_email_is_checked_when_given(self, db):
        MembershipCreator(db, PROFILE_ID, "ops@laiki.co").validate_profile()

        assert db.queries[0][1] == (PROFILE_ID, "ops@laiki.co")

    def test_missing_profile(self, db):
        db.responses["FROM profiles"] = []

        with pytest.raises(ProfileNotFoundError):
            MembershipCreator(db, PROFILE_ID).run()

        assert db.executed == []

    def test_insert_error_is_reported(self, db):
        db.fail_on["INSERT INTO memberships"] = RuntimeError("fk violation")

        results = MembershipCreator(db, PROFILE_ID).run()

        assert results[0].status == "error"
        assert results[0].error == "fk violation"
        assert summarize(results) == {"created": 0, "already_exists": 1, "error": 1}

    def test_no_organizations(self, db):
        db.responses["FROM organizations WHERE id"] = []

        assert MembershipCreator(db, PROFILE_ID).run("missing") == []


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
