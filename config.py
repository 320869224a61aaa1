"""Configuração da aplicação."""
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

from src.migration.errors import MigrationError


class ConfigurationError(MigrationError):
    """Required configuration is missing or invalid."""


@dataclass
class SourceDbConfig:
    """Connection settings for the legacy (source) database."""

    host: str = "localhost"
    port: int = 5432
    database: str = "postgres"
    user: str = "postgres"
    password: str = "password"

    @classmethod
    def from_env(cls) -> "SourceDbConfig":
        """Carrega config de variáveis de ambiente."""
        return cls(
            host=os.getenv("MIGRATION_SOURCE_HOST", "localhost"),
            port=int(os.getenv("MIGRATION_SOURCE_PORT", "5432")),
            database=os.getenv("MIGRATION_SOURCE_DB", "postgres"),
            user=os.getenv("MIGRATION_SOURCE_USER", "postgres"),
            password=os.getenv("MIGRATION_SOURCE_PASSWORD", "password"),
        )

    def connect_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments for psycopg2.connect."""
        return {
            "host": self.host,
            "port": self.port,
            "dbname": self.database,
            "user": self.user,
            "password": self.password,
        }


@dataclass
class TargetDbConfig:
    """Connection settings for the target (Supabase) database."""

    database_url: Optional[str] = None

    @classmethod
    def from_env(cls) -> "TargetDbConfig":
        """Carrega config de variáveis de ambiente."""
        return cls(database_url=os.getenv("DATABASE_URL") or None)

    def require_url(self) -> str:
        """Return the connection string or fail when it is not configured."""
        if not self.database_url:
            raise ConfigurationError("DATABASE_URL environment variable is required")
        return self.database_url


@dataclass
class AnalysisConfig:
    """Settings for the origin dump analysis."""

    backup_dir: str = "data/db-dumps"
    container_name: str = "laiki-migration-analysis-db"
    db_password: str = "migration_password"
    db_port: int = 5433  # avoids clashing with a local postgres on 5432
    report_file: str = "data/origin-db-analysis-report.md"
    startup_wait: float = 10.0

    @classmethod
    def from_env(cls) -> "AnalysisConfig":
        """Carrega config de variáveis de ambiente."""
        return cls(
            backup_dir=os.getenv("MIGRATION_BACKUP_DIR", "data/db-dumps"),
            container_name=os.getenv("MIGRATION_ANALYSIS_CONTAINER", "laiki-migration-analysis-db"),
            db_password=os.getenv("MIGRATION_ANALYSIS_PASSWORD", "migration_password"),
            db_port=int(os.getenv("MIGRATION_ANALYSIS_PORT", "5433")),
            report_file=os.getenv("MIGRATION_REPORT_FILE", "data/origin-db-analysis-report.md"),
            startup_wait=float(os.getenv("MIGRATION_ANALYSIS_WAIT", "10")),
        )


@dataclass
class MigrationSettings:
    """Tuning knobs for the table mover."""

    sql_dir: str = "./sql"
    output_dir: str = "./output"
    conversions_batch_size: int = 200
    custom_fields_batch_size: int = 1000
    id_length: int = 12

    @classmethod
    def from_env(cls) -> "MigrationSettings":
        """Carrega config de variáveis de ambiente."""
        return cls(
            sql_dir=os.getenv("MIGRATION_SQL_DIR", "./sql"),
            output_dir=os.getenv("MIGRATION_OUTPUT_DIR", "./output"),
            conversions_batch_size=int(os.getenv("MIGRATION_CONVERSIONS_BATCH", "200")),
            custom_fields_batch_size=int(os.getenv("MIGRATION_CUSTOM_FIELDS_BATCH", "1000")),
        )


@dataclass
class MembershipConfig:
    """Profile that receives admin memberships after a migration."""

    profile_id: str = ""
    email: str = ""

    @classmethod
    def from_env(cls) -> "MembershipConfig":
        """Carrega config de variáveis de ambiente."""
        return cls(
            profile_id=os.getenv("MIGRATION_ADMIN_PROFILE_ID", ""),
            email=os.getenv("MIGRATION_ADMIN_EMAIL", ""),
        )


@dataclass
class AppConfig:
    """Configuração da aplicação."""

    source_db: SourceDbConfig = None
    target_db: TargetDbConfig = None
    analysis: AnalysisConfig = None
    migration: MigrationSettings = None
    membership: MembershipConfig = None

    def __post_init__(self):
        """Inicializa valores padrão."""
        if self.source_db is None:
            self.source_db = SourceDbConfig.from_env()
        if self.target_db is None:
            self.target_db = TargetDbConfig.from_env()
        if self.analysis is None:
            self.analysis = AnalysisConfig.from_env()
        if self.migration is None:
            self.migration = MigrationSettings.from_env()
        if self.membership is None:
            self.membership = MembershipConfig.from_env()

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Carrega config de variáveis de ambiente."""
        return cls(
            source_db=SourceDbConfig.from_env(),
            target_db=TargetDbConfig.from_env(),
            analysis=AnalysisConfig.from_env(),
            migration=MigrationSettings.from_env(),
            membership=MembershipConfig.from_env(),
        )


# Instância global
app_config = AppConfig()
