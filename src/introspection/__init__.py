"""
Origin Introspection Module

Restores a legacy dump into a disposable PostgreSQL container and reports
on its structure and data quality:
- Latest dump discovery and version detection
- Docker container lifecycle
- Markdown analysis report
"""

from .container import PostgresContainer
from .origin_analyzer import OriginDatabaseAnalyzer, analyze_dump

__all__ = [
    "PostgresContainer",
    "OriginDatabaseAnalyzer",
    "analyze_dump",
]
