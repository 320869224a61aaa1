"""Migration error hierarchy."""
from typing import Dict, Optional


class MigrationError(Exception):
    """Base class for errors that abort a migration run."""


class SourceCompanyNotFoundError(MigrationError):
    def __init__(self, company_id: str):
        super().__init__(f"Source company {company_id} not found")
        self.company_id = company_id


class CriticalValidationError(MigrationError):
    """A blocking source data check failed."""


class TableMigrationError(MigrationError):
    """Wraps any failure while migrating a single table."""

    def __init__(self, table: str, cause: Exception):
        super().__init__(f"Failed to migrate {table}: {cause}")
        self.table = table
        self.cause = cause


class IntegrityValidationError(MigrationError):
    """Orphaned rows were found in the target after migrating."""

    def __init__(self, issues: Dict[str, int]):
        details = ", ".join(f"{issue}={count}" for issue, count in issues.items())
        super().__init__(f"Data integrity validation failed: {details}")
        self.issues = issues


class BackupNotFoundError(MigrationError):
    pass


class AnalysisError(MigrationError):
    """The origin dump could not be restored or analyzed."""

    def __init__(self, message: str, returncode: Optional[int] = None):
        super().__init__(message)
        self.returncode = returncode


class ProfileNotFoundError(MigrationError):
    """The admin profile that should receive memberships does not exist."""

    def __init__(self, profile_id: str, email: str = ""):
        label = f"{email} ({profile_id})" if email else profile_id
        super().__init__(f"Profile {label} not found in profiles table")
        self.profile_id = profile_id
        self.email = email
