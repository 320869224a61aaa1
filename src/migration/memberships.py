"""
Admin membership provisioning for migrated organizations.

After a migration the operator profile has no access to the new
organization; this grants it an ``admin`` membership on every organization
or on a single one.
"""

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional

from src.migration.errors import ProfileNotFoundError

logger = logging.getLogger(__name__)

ADMIN_ROLE = "admin"

STATUS_CREATED = "created"
STATUS_ALREADY_EXISTS = "already_exists"
STATUS_ERROR = "error"

ORGANIZATIONS_SQL = "SELECT id, name, created_at FROM organizations ORDER BY created_at DESC"
ORGANIZATION_SQL = "SELECT id, name, created_at FROM organizations WHERE id = %s ORDER BY created_at DESC"
PROFILE_SQL = "SELECT id, email FROM profiles WHERE id = %s"
PROFILE_WITH_EMAIL_SQL = "SELECT id, email FROM profiles WHERE id = %s AND email = %s"
EXISTING_MEMBERSHIP_SQL = "SELECT id FROM memberships WHERE organization_id = %s AND profile_id = %s"
INSERT_MEMBERSHIP_SQL = """
    INSERT INTO memberships (organization_id, profile_id, role, created_at)
    VALUES (%s, %s, %s, NOW())
"""


@dataclass
class MembershipResult:
    organization_id: str
    organization_name: str
    status: str
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class MembershipCreator:
    """Grants the configured profile admin access to organizations"""

    def __init__(self, db, profile_id: str, email: str = "", role: str = ADMIN_ROLE):
        """
        Args:
            db: Target database handle
            profile_id: profiles.id receiving the memberships
            email: Expected profile email (checked when given)
            role: Membership role
        """
        self.db = db
        self.profile_id = profile_id
        self.email = email
        self.role = role

    def validate_profile(self) -> Dict[str, Any]:
        """
        Raises:
            ProfileNotFoundError: If the profile is missing
        """
        if self.email:
            profile = self.db.fetch_one(PROFILE_WITH_EMAIL_SQL, (self.profile_id, self.email))
        else:
            profile = self.db.fetch_one(PROFILE_SQL, (self.profile_id,))
        if not profile:
            raise ProfileNotFoundError(self.profile_id, self.email)
        logger.info("Found profile %s", profile.get("email") or self.profile_id)
        return profile

    def organizations(self, org_id: Optional[str] = None) -> List[Dict[str, Any]]:
        if org_id:
            return self.db.fetch_all(ORGANIZATION_SQL, (org_id,))
        return self.db.fetch_all(ORGANIZATIONS_SQL)

    def create_membership(self, org: Dict[str, Any]) -> MembershipResult:
        """Create one membership; failures are reported in the result"""
        org_id, org_name = org["id"], org.get("name") or ""
        try:
            if self.db.fetch_all(EXISTING_MEMBERSHIP_SQL, (org_id, self.profile_id)):
                return MembershipResult(org_id, org_name, STATUS_ALREADY_EXISTS)
            self.db.execute(INSERT_MEMBERSHIP_SQL, (org_id, self.profile_id, self.role))
            return MembershipResult(org_id, org_name, STATUS_CREATED)
        except Exception as e:
            logger.error("Membership for %s failed: %s", org_id, e)
            return MembershipResult(org_id, org_name, STATUS_ERROR, error=str(e))

    def run(self, org_id: Optional[str] = None) -> List[MembershipResult]:
        """
        Validate the profile, then create memberships

        Args:
            org_id: Restrict to one organization

        Returns:
            One result per organization (empty when none matched)
        """
        self.validate_profile()
        orgs = self.organizations(org_id)
        if not orgs:
            logger.warning("No organizations found%s", f" for id {org_id}" if org_id else "")
            return []

        results = []
        for org in orgs:
            result = self.create_membership(org)
            logger.info("%s (%s): %s", org.get("name"), org["id"], result.status)
            results.append(result)
        return results


def summarize(results: List[MembershipResult]) -> Dict[str, int]:
    """Result counts per status"""
    summary = {STATUS_CREATED: 0, STATUS_ALREADY_EXISTS: 0, STATUS_ERROR: 0}
    for result in results:
        summary[result.status] += 1
    return summary
