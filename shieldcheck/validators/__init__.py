"""Problem Validator — deterministic pre-commit validation for shielding problem descriptions.

Usage:
    from shieldcheck.validators import validation_engine

    report = validation_engine.run_comprehensive(problem)
    if not report.overall:
        # Abort the commit with report.errors
"""

from shieldcheck.validators.engine import ValidationEngine, validation_engine
from shieldcheck.validators.models import (
    CategoryResult,
    EngineContractError,
    IssueCode,
    OptimizationReport,
    Recommendation,
    Severity,
    ValidationIssue,
    ValidationReport,
    ValidationResult,
)
from shieldcheck.validators.unit_validator import UnitValidator
from shieldcheck.validators.nuclide_validator import NuclideValidator
from shieldcheck.validators.source_validator import SourceValidator
from shieldcheck.validators.detector_validator import DetectorValidator

__all__ = [
    "ValidationEngine",
    "validation_engine",
    "CategoryResult",
    "EngineContractError",
    "IssueCode",
    "OptimizationReport",
    "Recommendation",
    "Severity",
    "ValidationIssue",
    "ValidationReport",
    "ValidationResult",
    "UnitValidator",
    "NuclideValidator",
    "SourceValidator",
    "DetectorValidator",
]
