"""Shared test fixtures for Herstel tests."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

# ---------------------------------------------------------------------------
# Test hermeticity
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _force_hermetic_test_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("ENCRYPTION_KEY", "")
    monkeypatch.setenv("DB_PATH", str(tmp_path / "recovery.db"))
    monkeypatch.delenv("DEFAULT_STEP_TARGET", raising=False)
    # Keep a developer's .env out of the settings
    monkeypatch.chdir(tmp_path)

# Allow running tests without `pip install -e .` by making `src/` importable.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_SRC_DIR = _PROJECT_ROOT / "src"
if str(_SRC_DIR) not in sys.path:
    sys.path.insert(0, str(_SRC_DIR))


# ---------------------------------------------------------------------------
# In-memory storage fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def recovery_db():
    """Create an in-memory RecoveryDatabase for testing."""
    from herstel.core.storage.database import RecoveryDatabase

    db = RecoveryDatabase(":memory:")
    db.initialize()
    yield db
    db.close()


@pytest.fixture
def field_encryptor():
    """Create a FieldEncryptor with a test key."""
    from cryptography.fernet import Fernet

    from herstel.core.storage.encryption import FieldEncryptor

    return FieldEncryptor(Fernet.generate_key().decode())


@pytest.fixture
def assessment_repository(recovery_db, field_encryptor):
    """Create an AssessmentRepository backed by in-memory SQLite."""
    from herstel.core.storage.repository import AssessmentRepository

    return AssessmentRepository(recovery_db, field_encryptor)


@pytest.fixture
def audit_logger(recovery_db):
    """Create an AuditLogger backed by in-memory SQLite."""
    from herstel.core.audit.logger import AuditLogger

    return AuditLogger(recovery_db)


def _make_record(
    assessment_date: str,
    score: int = 70,
    *,
    patient_id: str = "patient-1",
    activity_state: str = "ADEQUATE",
    risk_level: str | None = None,
    **overrides,
):
    """Create a stored-assessment record with consistent defaults."""
    from herstel.core.storage.models import DailyAssessmentRecord

    if risk_level is None:
        risk_level = "low" if score >= 70 else ("medium" if score >= 50 else "high")
    defaults = dict(
        id="",
        patient_id=patient_id,
        assessment_date=assessment_date,
        daily_data={"protein": 80.0, "steps": 1500.0, "fatigue_score": 4.0},
        post_op_week=2,
        activity_state=activity_state,
        score=score,
        protein_score=min(score, 33),
        activity_score=max(0, min(score - 33, 33)),
        adl_score=max(0, score - 66),
        risk_level=risk_level,
        trend="unknown",
        alerts=[],
    )
    defaults.update(overrides)
    return DailyAssessmentRecord(**defaults)


@pytest.fixture
def make_record():
    """Factory fixture for DailyAssessmentRecord instances."""
    return _make_record
