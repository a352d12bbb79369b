"""Herstel Recovery MCP Server: application factory.

This module provides:
- create_app() for testability (integration tests create fresh server instances)
- Module-level `mcp` variable for FastMCP discovery
"""

from __future__ import annotations

import logging

from fastmcp import FastMCP

from herstel.core.audit.logger import AuditLogger
from herstel.core.config.settings import get_settings
from herstel.core.storage.database import DatabaseError, RecoveryDatabase
from herstel.core.storage.encryption import EncryptionError, FieldEncryptor
from herstel.core.storage.repository import AssessmentRepository
from herstel.domains.recovery.domain_logic.activity_models import ActivityState
from herstel.domains.recovery.tools.recovery_tools import register_recovery_tools

logger = logging.getLogger(__name__)

SERVER_NAME = "Herstel Recovery"
SERVER_VERSION = "0.1.0"


def create_app(
    *,
    repository_override: AssessmentRepository | None = None,
    audit_logger_override: AuditLogger | None = None,
) -> FastMCP:
    """Create and configure the recovery MCP server.

    1. Creates the FastMCP server instance
    2. Initializes the encrypted assessment store (when ENCRYPTION_KEY is set)
    3. Registers scoring tools, plus history tools when storage is enabled
    """
    settings = get_settings()

    server = FastMCP(
        SERVER_NAME,
        instructions=(
            "Post-operative recovery scoring. Classifies a patient's daily "
            "activity state from self-reported answers and combines it with "
            "protein and step adherence into a 0-100 Recovery Index with a "
            "risk tier and clinician alerts. Deterministic; no AI involved."
        ),
    )

    # --- Initialize encrypted storage ---
    repository: AssessmentRepository | None = None
    audit_logger: AuditLogger | None = audit_logger_override
    if repository_override is not None:
        repository = repository_override
    elif settings.encryption_key:
        try:
            encryptor = FieldEncryptor(settings.encryption_key)
            recovery_db = RecoveryDatabase(settings.db_path)
            recovery_db.initialize()
            repository = AssessmentRepository(recovery_db, encryptor)
            if audit_logger is None:
                audit_logger = AuditLogger(recovery_db)
            logger.info(
                "Assessment store initialized: %s (schema v%d)",
                settings.db_path,
                recovery_db.get_schema_version(),
            )
        except (EncryptionError, DatabaseError) as exc:
            logger.error("Failed to initialize storage: %s", exc)
            logger.warning("Continuing without persistence: assessments will not be stored")
    else:
        logger.info(
            "No ENCRYPTION_KEY configured: running without persistence. "
            "Set ENCRYPTION_KEY to store assessments and enable trend history."
        )

    @server.tool
    def health_check() -> dict:
        """Check server health and return basic status information."""
        status = {
            "status": "ok",
            "server": SERVER_NAME,
            "version": SERVER_VERSION,
            "activity_states": [s.value for s in ActivityState],
            "default_step_target": settings.default_step_target,
            "storage_enabled": repository is not None,
        }
        if repository is not None:
            status["assessments_stored"] = repository.count_assessments()
        return status

    register_recovery_tools(server, settings, repository, audit_logger)
    logger.info("Recovery scoring tools registered")

    if repository is not None:
        from herstel.domains.recovery.domain_logic.trend_analyzer import RecoveryTrendAnalyzer
        from herstel.domains.recovery.tools.history_tools import register_history_tools

        register_history_tools(server, repository, RecoveryTrendAnalyzer(repository), audit_logger)
        logger.info("Recovery history tools registered")

    return server


# Module-level instance for FastMCP discovery. Lazy: only created on access.
def __getattr__(name: str):
    if name == "mcp":
        global mcp  # noqa: PLW0603
        mcp = create_app()
        return mcp
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
